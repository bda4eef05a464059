# vedic_chart/core/houses.py
# -----------------------------------------------------------------------------
# Ascendant, midheaven and house division
#
#   • Ascendant from local sidereal time (RAMC), geographic latitude and the
#     obliquity of the ecliptic
#   • House systems are strategies fed a HouseAngles context (ascendant,
#     midheaven, RAMC, latitude, obliquity): EqualHouses (default),
#     WholeSignHouses, PorphyryHouses and PlacidusHouses; anything
#     implementing HouseSystem plugs in
#   • house_for_longitude never fails: an unmatched longitude is placed in
#     house 1 and a warning is logged
#
# Polar latitudes make the ascendant ill-conditioned (the ecliptic can lie on
# the horizon), so latitudes beyond max_latitude_deg are refused. Placidus
# semi-arcs degrade earlier and carry their own, lower limit.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Type

import erfa  # pyERFA - SOFA/ERFA

from .angles import (
    atan2_deg,
    cos_deg,
    normalize_degrees,
    sign_index,
    sin_deg,
    tan_deg,
    wrap_difference,
)
from .errors import ConfigurationError, UnsupportedLatitude
from .timescales import J2000_JD

log = logging.getLogger(__name__)

__all__ = [
    "OBLIQUITY_J2000_DEG",
    "DEFAULT_MAX_LATITUDE_DEG",
    "PLACIDUS_MAX_LATITUDE_DEG",
    "ObliquityModel",
    "HouseAngles",
    "HouseCusps",
    "HouseSystem",
    "EqualHouses",
    "WholeSignHouses",
    "PorphyryHouses",
    "PlacidusHouses",
    "HOUSE_SYSTEMS",
    "get_house_system",
    "mean_obliquity",
    "HouseCalculator",
]

OBLIQUITY_J2000_DEG = 23.4393
DEFAULT_MAX_LATITUDE_DEG = 66.0
PLACIDUS_MAX_LATITUDE_DEG = 60.0
HOUSE_COUNT = 12

_PLACIDUS_MAX_ITERATIONS = 100
_PLACIDUS_TOLERANCE_DEG = 1e-9


class ObliquityModel(Enum):
    FIXED = "fixed"        # 23.4393°, J2000 mean obliquity
    IAU2006 = "iau2006"    # ERFA obl06 mean obliquity of date


def mean_obliquity(jd: float, model: ObliquityModel = ObliquityModel.FIXED) -> float:
    """Mean obliquity of the ecliptic in degrees."""
    if model == ObliquityModel.IAU2006:
        return math.degrees(erfa.obl06(J2000_JD, jd - J2000_JD))
    return OBLIQUITY_J2000_DEG


# ───────────────────────────── House Cusps ─────────────────────────────

@dataclass(frozen=True)
class HouseAngles:
    """
    Angles handed to a HouseSystem.

    ascendant and midheaven are in the chart's zodiac. ramc, latitude and
    obliquity describe the sky itself; quadrant systems derive tropical
    cusps from them and subtract zodiac_shift (the ayanamsa for sidereal
    charts, 0 for tropical ones).
    """
    ascendant: float
    midheaven: Optional[float] = None
    ramc: Optional[float] = None
    latitude: Optional[float] = None
    obliquity: float = OBLIQUITY_J2000_DEG
    zodiac_shift: float = 0.0


@dataclass(frozen=True)
class HouseCusps:
    """Twelve cusp longitudes; cusps[0] opens house 1."""
    cusps: Tuple[float, ...]
    system: str = "equal"

    def __post_init__(self):
        if len(self.cusps) != HOUSE_COUNT:
            raise ConfigurationError(
                f"house system '{self.system}' produced {len(self.cusps)} cusps, expected 12",
                field="house_system",
            )
        object.__setattr__(
            self, "cusps", tuple(normalize_degrees(c) for c in self.cusps)
        )

    def __getitem__(self, index: int) -> float:
        return self.cusps[index]

    def __iter__(self):
        return iter(self.cusps)

    def __len__(self) -> int:
        return HOUSE_COUNT

    def as_list(self) -> List[float]:
        return list(self.cusps)


# ───────────────────────────── House Systems ─────────────────────────────

class HouseSystem(ABC):
    """Strategy turning the angles of a chart into twelve cusps."""

    name: str = ""
    requires_midheaven: bool = False

    @abstractmethod
    def cusps(self, angles: HouseAngles) -> HouseCusps:
        ...

    def _require(self, angles: HouseAngles, *fields: str) -> None:
        missing = [f for f in fields if getattr(angles, f) is None]
        if missing:
            raise ConfigurationError(
                f"{self.name} houses need {', '.join(missing)}", field="house_system"
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class EqualHouses(HouseSystem):
    """Thirty-degree houses measured from the ascendant degree."""

    name = "equal"

    def cusps(self, angles: HouseAngles) -> HouseCusps:
        return HouseCusps(
            tuple(normalize_degrees(angles.ascendant + 30.0 * i) for i in range(HOUSE_COUNT)),
            self.name,
        )


class WholeSignHouses(HouseSystem):
    """Each house is a whole sign, starting with the sign of the ascendant."""

    name = "whole_sign"

    def cusps(self, angles: HouseAngles) -> HouseCusps:
        first = sign_index(angles.ascendant)
        return HouseCusps(
            tuple(((first + i) % HOUSE_COUNT) * 30.0 for i in range(HOUSE_COUNT)),
            self.name,
        )


class PorphyryHouses(HouseSystem):
    """Quadrant system: the ASC-IC, IC-DSC arcs (and opposites) trisected."""

    name = "porphyry"
    requires_midheaven = True

    def cusps(self, angles: HouseAngles) -> HouseCusps:
        self._require(angles, "midheaven")
        ascendant, midheaven = angles.ascendant, angles.midheaven
        imum_coeli = normalize_degrees(midheaven + 180.0)
        descendant = normalize_degrees(ascendant + 180.0)

        first_arc = normalize_degrees(imum_coeli - ascendant)
        second_arc = normalize_degrees(descendant - imum_coeli)

        lower = [
            ascendant,
            ascendant + first_arc / 3.0,
            ascendant + 2.0 * first_arc / 3.0,
            imum_coeli,
            imum_coeli + second_arc / 3.0,
            imum_coeli + 2.0 * second_arc / 3.0,
        ]
        upper = [c + 180.0 for c in lower]
        return HouseCusps(tuple(lower + upper), self.name)


class PlacidusHouses(HouseSystem):
    """
    Time-based quadrant system.

    Cusps 11 and 12 are the ecliptic points lying one and two thirds of
    their diurnal semi-arc east of the meridian; cusps 2 and 3 do the same
    with the nocturnal semi-arc, measured from the lower meridian. For a
    point of declination d at latitude phi:

        AD  = asin(tan phi tan d)         ascensional difference
        RA11 = RAMC + (90 + AD) / 3       RA12 = RAMC + 2 (90 + AD) / 3
        RA3  = RAMC + 180 - (90 - AD) / 3 RA2  = RAMC + 180 - 2 (90 - AD) / 3

    d depends on the cusp itself, so each RA is found by fixed-point
    iteration. Cusps 5, 6, 8 and 9 are the opposites of 11, 12, 2 and 3.
    """

    name = "placidus"

    def __init__(self, max_latitude_deg: float = PLACIDUS_MAX_LATITUDE_DEG):
        self.max_latitude_deg = max_latitude_deg

    def cusps(self, angles: HouseAngles) -> HouseCusps:
        self._require(angles, "ramc", "latitude")
        latitude = angles.latitude
        if abs(latitude) > self.max_latitude_deg:
            raise UnsupportedLatitude(
                f"latitude {latitude} beyond ±{self.max_latitude_deg}; "
                f"placidus semi-arcs are undefined near the poles",
                latitude=latitude,
                max_latitude_deg=self.max_latitude_deg,
                house_system=self.name,
            )

        ramc, eps = angles.ramc, angles.obliquity
        shift = angles.zodiac_shift
        midheaven = angles.midheaven
        if midheaven is None:
            midheaven = normalize_degrees(_ecliptic_from_ra(ramc, eps) - shift)

        c11 = self._cusp(ramc, latitude, eps, 1.0 / 3.0, nocturnal=False) - shift
        c12 = self._cusp(ramc, latitude, eps, 2.0 / 3.0, nocturnal=False) - shift
        c2 = self._cusp(ramc, latitude, eps, 2.0 / 3.0, nocturnal=True) - shift
        c3 = self._cusp(ramc, latitude, eps, 1.0 / 3.0, nocturnal=True) - shift

        lower = [angles.ascendant, c2, c3, midheaven + 180.0, c11 + 180.0, c12 + 180.0]
        upper = [c + 180.0 for c in lower]
        return HouseCusps(tuple(lower + upper), self.name)

    def _cusp(
        self,
        ramc: float,
        latitude: float,
        obliquity: float,
        fraction: float,
        nocturnal: bool,
    ) -> float:
        """Tropical longitude of one intermediate cusp."""

        def right_ascension(ascensional_difference: float) -> float:
            if nocturnal:
                return ramc + 180.0 - fraction * (90.0 - ascensional_difference)
            return ramc + fraction * (90.0 + ascensional_difference)

        ra = right_ascension(0.0)
        for _ in range(_PLACIDUS_MAX_ITERATIONS):
            lon = _ecliptic_from_ra(ra, obliquity)
            declination = math.degrees(math.asin(sin_deg(obliquity) * sin_deg(lon)))
            product = tan_deg(latitude) * tan_deg(declination)
            if abs(product) >= 1.0:
                raise UnsupportedLatitude(
                    f"latitude {latitude}: ecliptic point {lon:.4f} never crosses the horizon",
                    latitude=latitude,
                    house_system=self.name,
                )
            next_ra = right_ascension(math.degrees(math.asin(product)))
            converged = abs(wrap_difference(next_ra, ra)) < _PLACIDUS_TOLERANCE_DEG
            ra = next_ra
            if converged:
                return _ecliptic_from_ra(ra, obliquity)

        raise UnsupportedLatitude(
            f"latitude {latitude}: placidus cusp did not converge",
            latitude=latitude,
            house_system=self.name,
        )

    def __repr__(self) -> str:
        return f"PlacidusHouses(max_latitude_deg={self.max_latitude_deg})"


def _ecliptic_from_ra(ra_deg: float, obliquity_deg: float) -> float:
    """Ecliptic longitude of the point with right ascension ra_deg."""
    return atan2_deg(sin_deg(ra_deg), cos_deg(ra_deg) * cos_deg(obliquity_deg))


HOUSE_SYSTEMS: Dict[str, Type[HouseSystem]] = {
    EqualHouses.name: EqualHouses,
    WholeSignHouses.name: WholeSignHouses,
    PorphyryHouses.name: PorphyryHouses,
    PlacidusHouses.name: PlacidusHouses,
}


def get_house_system(name) -> HouseSystem:
    """Resolve a house system by name; HouseSystem instances pass through."""
    if isinstance(name, HouseSystem):
        return name
    key = str(name).strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return HOUSE_SYSTEMS[key]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown house system '{name}'; known: {sorted(HOUSE_SYSTEMS)}",
            field="house_system",
        ) from None


# ───────────────────────────── Calculator ─────────────────────────────

class HouseCalculator:
    """Ascendant, midheaven, cusps and house placement."""

    def __init__(
        self,
        house_system=None,
        obliquity_deg: float = OBLIQUITY_J2000_DEG,
        max_latitude_deg: float = DEFAULT_MAX_LATITUDE_DEG,
    ):
        if not 0.0 < max_latitude_deg < 90.0:
            raise ConfigurationError(
                f"max_latitude_deg {max_latitude_deg} out of range (0, 90)",
                field="max_latitude_deg",
            )
        self.house_system = get_house_system(house_system or EqualHouses())
        self.obliquity_deg = obliquity_deg
        self.max_latitude_deg = max_latitude_deg

    def ascendant(
        self,
        lst_deg: float,
        latitude_deg: float,
        obliquity_deg: Optional[float] = None,
    ) -> float:
        """
        Ecliptic longitude rising on the eastern horizon.

        lst_deg is the local sidereal time in degrees (RAMC):

            asc = atan2(cos RAMC, -(sin RAMC cos e + tan phi sin e))
        """
        if abs(latitude_deg) > self.max_latitude_deg:
            raise UnsupportedLatitude(
                f"latitude {latitude_deg} beyond ±{self.max_latitude_deg}; "
                f"ascendant is ill-conditioned near the poles",
                latitude=latitude_deg,
                max_latitude_deg=self.max_latitude_deg,
            )
        eps = self.obliquity_deg if obliquity_deg is None else obliquity_deg
        y = cos_deg(lst_deg)
        x = -(sin_deg(lst_deg) * cos_deg(eps) + tan_deg(latitude_deg) * sin_deg(eps))
        return atan2_deg(y, x)

    def midheaven(self, lst_deg: float, obliquity_deg: Optional[float] = None) -> float:
        """Ecliptic longitude culminating on the local meridian."""
        eps = self.obliquity_deg if obliquity_deg is None else obliquity_deg
        return atan2_deg(sin_deg(lst_deg), cos_deg(lst_deg) * cos_deg(eps))

    def houses_from_ascendant(
        self,
        ascendant: float,
        midheaven: Optional[float] = None,
        ramc: Optional[float] = None,
        latitude: Optional[float] = None,
        obliquity_deg: Optional[float] = None,
        zodiac_shift: float = 0.0,
    ) -> HouseCusps:
        """
        Twelve cusps from the chart angles.

        Equal and whole-sign houses need only the ascendant. Quadrant systems
        also need the midheaven (Porphyry) or RAMC and latitude (Placidus).
        """
        angles = HouseAngles(
            ascendant=normalize_degrees(ascendant),
            midheaven=None if midheaven is None else normalize_degrees(midheaven),
            ramc=None if ramc is None else normalize_degrees(ramc),
            latitude=latitude,
            obliquity=self.obliquity_deg if obliquity_deg is None else obliquity_deg,
            zodiac_shift=zodiac_shift,
        )
        return self.house_system.cusps(angles)

    def house_for_longitude(self, longitude: float, cusps: Sequence[float]) -> int:
        """
        House number (1-12) whose interval [cusp_i, cusp_i+1) holds longitude.

        An interval with cusp_i > cusp_i+1 wraps through 0°.
        """
        lon = normalize_degrees(longitude)
        cusp_list = list(cusps)

        for i in range(HOUSE_COUNT):
            start = cusp_list[i]
            end = cusp_list[(i + 1) % HOUSE_COUNT]
            if start < end:
                if start <= lon < end:
                    return i + 1
            elif start > end:
                if lon >= start or lon < end:
                    return i + 1

        log.warning(
            f"Longitude {longitude} matched no house interval in {cusp_list}; "
            f"falling back to house 1"
        )
        return 1
