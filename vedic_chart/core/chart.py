# vedic_chart/core/chart.py
# -----------------------------------------------------------------------------
# Chart assembly
#
# Pipeline (ChartAssembler.assemble):
#   1. validate location
#   2. moment -> Julian Day                         (TimeConverter)
#   3. ayanamsa for the Julian Day                  (AyanamsaCorrector)
#   4. GMST -> local sidereal time                  (TimeConverter)
#   5. tropical ascendant and midheaven             (HouseCalculator)
#   6. angles shifted into the chart's zodiac, then cusps (HouseSystem,
#      which also receives RAMC, latitude and obliquity)
#   7. tropical longitudes of the nine grahas       (PlanetPositionProvider)
#   8. longitudes shifted into the chart's zodiac, house placement
#
# Cusps and planets are always expressed in the same zodiac. Errors from any
# step propagate unchanged; a Chart is either complete or not produced.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import math
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass, fields
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .angles import (
    NAKSHATRAS,
    SIGNS,
    degree_in_sign,
    nakshatra_of,
    normalize_degrees,
    sign_index,
)
from .ayanamsa import AyanamsaCorrector, AyanamsaModel
from .ephemeris import (
    EphemerisSource,
    LowPrecisionEphemeris,
    NodeModel,
    PlanetName,
    PlanetPositionProvider,
)
from .errors import InvalidLocation
from .houses import (
    DEFAULT_MAX_LATITUDE_DEG,
    HouseCalculator,
    HouseCusps,
    HouseSystem,
    ObliquityModel,
    mean_obliquity,
)
from .panchanga import Panchanga
from .timescales import Moment, SiderealTimeModel, TimeConverter

log = logging.getLogger(__name__)

__all__ = [
    "ZodiacMode",
    "Location",
    "PlanetPosition",
    "Chart",
    "ChartConfig",
    "ChartAssembler",
    "assemble_chart",
    "validate_location",
]


class ZodiacMode(Enum):
    SIDEREAL = "sidereal"
    TROPICAL = "tropical"


# ───────────────────────────── Inputs ─────────────────────────────

@dataclass(frozen=True)
class Location:
    """Geographic position; east longitude positive."""
    latitude: float
    longitude: float

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


def _check_coordinate(name: str, value: Any, limit: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidLocation(f"{name} must be a finite number, got {value!r}", field=name, value=value)
    if not -limit <= value <= limit:
        raise InvalidLocation(
            f"{name} {value} out of range [-{limit:g}, {limit:g}]", field=name, value=value
        )


def validate_location(location: Location) -> None:
    _check_coordinate("latitude", location.latitude, 90.0)
    _check_coordinate("longitude", location.longitude, 180.0)


# ───────────────────────────── Results ─────────────────────────────

@dataclass(frozen=True)
class PlanetPosition:
    """A graha placed in the chart's zodiac and houses."""
    name: PlanetName
    longitude: float
    house: int
    tropical_longitude: float
    speed_deg_per_day: Optional[float] = None

    @property
    def is_retrograde(self) -> bool:
        return self.speed_deg_per_day is not None and self.speed_deg_per_day < 0.0

    @property
    def sign_index(self) -> int:
        return sign_index(self.longitude)

    @property
    def sign(self) -> str:
        return SIGNS[self.sign_index]

    @property
    def degree_in_sign(self) -> float:
        return degree_in_sign(self.longitude)

    @property
    def nakshatra_index(self) -> int:
        return nakshatra_of(self.longitude)[0]

    @property
    def nakshatra(self) -> str:
        return NAKSHATRAS[self.nakshatra_index]

    @property
    def nakshatra_pada(self) -> int:
        return nakshatra_of(self.longitude)[1]

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "name": self.name.value,
            "longitude": self.longitude,
            "tropical_longitude": self.tropical_longitude,
            "house": self.house,
            "sign": self.sign,
            "degree_in_sign": self.degree_in_sign,
            "nakshatra": self.nakshatra,
            "nakshatra_pada": self.nakshatra_pada,
        }
        if self.speed_deg_per_day is not None:
            result.update({
                "speed_deg_per_day": self.speed_deg_per_day,
                "retrograde": self.is_retrograde,
            })
        return result


@dataclass(frozen=True)
class Chart:
    """Immutable result of one assembly."""
    moment: Moment
    location: Location
    julian_day: float
    ayanamsa: float
    ascendant: float
    houses: HouseCusps
    planets: Mapping[PlanetName, PlanetPosition]
    sidereal_time: float
    midheaven: float
    zodiac: ZodiacMode = ZodiacMode.SIDEREAL
    ayanamsa_model: str = "lahiri"
    ephemeris_source: str = ""

    def __post_init__(self):
        object.__setattr__(self, "planets", MappingProxyType(dict(self.planets)))

    def __hash__(self) -> int:
        return hash((
            self.moment,
            self.location,
            self.julian_day,
            self.houses,
            tuple(self.planets.items()),
            self.zodiac,
            self.ayanamsa_model,
        ))

    def __reduce__(self):
        # mappingproxy does not pickle; rebuild through __init__ from a plain dict
        args = tuple(
            dict(self.planets) if f.name == "planets" else getattr(self, f.name)
            for f in fields(self)
        )
        return (type(self), args)

    @property
    def ascendant_sign(self) -> str:
        return SIGNS[sign_index(self.ascendant)]

    @property
    def panchanga(self) -> Panchanga:
        """Tithi, karana, yoga, lunar nakshatra and weekday of the moment."""
        sun = self.planets[PlanetName.SUN].tropical_longitude - self.ayanamsa
        moon = self.planets[PlanetName.MOON].tropical_longitude - self.ayanamsa
        weekday = date(self.moment.year, self.moment.month, self.moment.day).weekday()
        return Panchanga.from_longitudes(sun, moon, weekday)

    def planets_in_house(self, house: int) -> List[PlanetName]:
        return [name for name, pos in self.planets.items() if pos.house == house]

    def to_dict(self) -> Dict[str, Any]:
        """Plain JSON-safe record."""
        return {
            "moment": self.moment.to_dict(),
            "location": self.location.to_dict(),
            "julian_day": self.julian_day,
            "ayanamsa": self.ayanamsa,
            "ascendant": self.ascendant,
            "ascendant_sign": self.ascendant_sign,
            "midheaven": self.midheaven,
            "sidereal_time": self.sidereal_time,
            "houses": self.houses.as_list(),
            "planets": {name.value: pos.to_dict() for name, pos in self.planets.items()},
            "panchanga": self.panchanga.to_dict(),
            "meta": {
                "zodiac": self.zodiac.value,
                "ayanamsa_model": self.ayanamsa_model,
                "house_system": self.houses.system,
                "ephemeris_source": self.ephemeris_source,
            },
        }


# ───────────────────────────── Configuration ─────────────────────────────

@dataclass(frozen=True)
class ChartConfig:
    """Chart casting options."""
    ayanamsa: Union[str, AyanamsaModel] = "lahiri"
    house_system: Union[str, HouseSystem] = "equal"
    zodiac: ZodiacMode = ZodiacMode.SIDEREAL
    sidereal_time_model: SiderealTimeModel = SiderealTimeModel.MEEUS
    obliquity_model: ObliquityModel = ObliquityModel.FIXED
    node_model: NodeModel = NodeModel.MEAN
    max_latitude_deg: float = DEFAULT_MAX_LATITUDE_DEG
    include_speeds: bool = True
    max_workers: int = 4


# ───────────────────────────── Assembler ─────────────────────────────

class ChartAssembler:
    """Wires the time, ayanamsa, house and ephemeris components together."""

    def __init__(
        self,
        config: Optional[ChartConfig] = None,
        ephemeris: Optional[EphemerisSource] = None,
    ):
        self.config = config or ChartConfig()
        self.time_converter = TimeConverter(self.config.sidereal_time_model)
        self.ayanamsa_corrector = AyanamsaCorrector(self.config.ayanamsa)
        self.house_calculator = HouseCalculator(
            house_system=self.config.house_system,
            max_latitude_deg=self.config.max_latitude_deg,
        )
        self.position_provider = PlanetPositionProvider(
            ephemeris or LowPrecisionEphemeris(self.config.node_model)
        )

    def assemble(self, moment: Moment, location: Location) -> Chart:
        config = self.config
        validate_location(location)

        jd = self.time_converter.to_julian_day(moment)
        ayanamsa = self.ayanamsa_corrector.ayanamsa_for(jd)
        lst = self.time_converter.local_sidereal_time(jd, location.longitude)

        obliquity = mean_obliquity(jd, config.obliquity_model)
        tropical_asc = self.house_calculator.ascendant(lst, location.latitude, obliquity)
        tropical_mc = self.house_calculator.midheaven(lst, obliquity)

        sidereal = config.zodiac == ZodiacMode.SIDEREAL
        shift = ayanamsa if sidereal else 0.0
        ascendant = normalize_degrees(tropical_asc - shift)
        midheaven = normalize_degrees(tropical_mc - shift)
        cusps = self.house_calculator.houses_from_ascendant(
            ascendant,
            midheaven,
            ramc=lst,
            latitude=location.latitude,
            obliquity_deg=obliquity,
            zodiac_shift=shift,
        )

        log.debug(
            f"jd={jd:.6f} lst={lst:.4f} ayanamsa={ayanamsa:.4f} "
            f"asc={ascendant:.4f} mc={midheaven:.4f} ({config.zodiac.value})"
        )

        tropical = self.position_provider.positions_at(jd)
        speeds = self.position_provider.daily_motion(jd) if config.include_speeds else {}

        planets: Dict[PlanetName, PlanetPosition] = {}
        for name in PlanetName:
            trop = tropical[name]
            lon = self.ayanamsa_corrector.to_sidereal(trop, jd) if sidereal else trop
            planets[name] = PlanetPosition(
                name=name,
                longitude=lon,
                house=self.house_calculator.house_for_longitude(lon, cusps),
                tropical_longitude=trop,
                speed_deg_per_day=speeds.get(name),
            )

        return Chart(
            moment=moment,
            location=location,
            julian_day=jd,
            ayanamsa=ayanamsa,
            ascendant=ascendant,
            houses=cusps,
            planets=planets,
            sidereal_time=lst,
            midheaven=midheaven,
            zodiac=config.zodiac,
            ayanamsa_model=self.ayanamsa_corrector.model.name,
            ephemeris_source=self.position_provider.source.name,
        )

    def assemble_many(
        self,
        requests: Iterable[Tuple[Moment, Location]],
        max_workers: Optional[int] = None,
        processes: bool = False,
    ) -> List[Chart]:
        """
        Assemble independent charts concurrently.

        Results keep request order; the first failing request's error is
        re-raised. With processes=True each chart is cast in a worker
        process from this assembler's config and ephemeris source, and the
        Chart is pickled back.
        """
        requests = list(requests)
        workers = max_workers or self.config.max_workers
        if workers <= 1 or len(requests) <= 1:
            return [self.assemble(moment, location) for moment, location in requests]

        if processes:
            source = self.position_provider.source
            with ProcessPoolExecutor(max_workers=workers) as pool:
                futures = [
                    pool.submit(assemble_chart, moment, location, self.config, source)
                    for moment, location in requests
                ]
                return [future.result() for future in futures]

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self.assemble, moment, location) for moment, location in requests]
            return [future.result() for future in futures]


def assemble_chart(
    moment: Moment,
    location: Location,
    config: Optional[ChartConfig] = None,
    ephemeris: Optional[EphemerisSource] = None,
) -> Chart:
    """One-shot convenience wrapper around ChartAssembler."""
    return ChartAssembler(config, ephemeris).assemble(moment, location)
