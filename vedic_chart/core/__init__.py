"""
Core chart-casting modules.

Time conversion, ayanamsa correction, house division, ephemeris sources and
the chart assembler that ties them together.
"""

from .errors import (
    ChartError,
    ConfigurationError,
    EphemerisUnavailable,
    ErrorClass,
    InvalidLocation,
    InvalidMoment,
    UnsupportedLatitude,
)
from .timescales import Moment, SiderealTimeModel, TimeConverter
from .ayanamsa import AYANAMSA_MODELS, AyanamsaCorrector, AyanamsaModel, get_ayanamsa_model
from .houses import (
    EqualHouses,
    HouseAngles,
    HouseCalculator,
    HouseCusps,
    HouseSystem,
    ObliquityModel,
    PlacidusHouses,
    PorphyryHouses,
    WholeSignHouses,
    get_house_system,
)
from .ephemeris import (
    EphemerisSource,
    LowPrecisionEphemeris,
    NodeModel,
    PlanetName,
    PlanetPositionProvider,
    SkyfieldEphemeris,
)
from .chart import (
    Chart,
    ChartAssembler,
    ChartConfig,
    Location,
    PlanetPosition,
    ZodiacMode,
    assemble_chart,
)
from .panchanga import Panchanga

__all__ = [
    "ChartError",
    "ConfigurationError",
    "EphemerisUnavailable",
    "ErrorClass",
    "InvalidLocation",
    "InvalidMoment",
    "UnsupportedLatitude",
    "Moment",
    "SiderealTimeModel",
    "TimeConverter",
    "AYANAMSA_MODELS",
    "AyanamsaCorrector",
    "AyanamsaModel",
    "get_ayanamsa_model",
    "EqualHouses",
    "HouseAngles",
    "HouseCalculator",
    "HouseCusps",
    "HouseSystem",
    "ObliquityModel",
    "PlacidusHouses",
    "PorphyryHouses",
    "WholeSignHouses",
    "get_house_system",
    "EphemerisSource",
    "LowPrecisionEphemeris",
    "NodeModel",
    "PlanetName",
    "PlanetPositionProvider",
    "SkyfieldEphemeris",
    "Chart",
    "ChartAssembler",
    "ChartConfig",
    "Location",
    "PlanetPosition",
    "Panchanga",
    "ZodiacMode",
    "assemble_chart",
]
