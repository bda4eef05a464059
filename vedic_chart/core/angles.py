# vedic_chart/core/angles.py
# -----------------------------------------------------------------------------
# Shared angle arithmetic and zodiac subdivisions
#
# All longitudes in the package are degrees on [0, 360). Every component
# normalizes through normalize_degrees so the half-open range holds even for
# inputs that land a rounding step below zero.
# -----------------------------------------------------------------------------

from __future__ import annotations

import math
from typing import Tuple

__all__ = [
    "SIGNS",
    "NAKSHATRAS",
    "NAKSHATRA_SPAN_DEG",
    "normalize_degrees",
    "wrap_difference",
    "sin_deg",
    "cos_deg",
    "tan_deg",
    "atan2_deg",
    "sign_index",
    "degree_in_sign",
    "nakshatra_of",
]

SIGNS: Tuple[str, ...] = (
    "Aries", "Taurus", "Gemini", "Cancer", "Leo", "Virgo",
    "Libra", "Scorpio", "Sagittarius", "Capricorn", "Aquarius", "Pisces",
)

NAKSHATRAS: Tuple[str, ...] = (
    "Ashwini", "Bharani", "Krittika", "Rohini", "Mrigashira", "Ardra",
    "Punarvasu", "Pushya", "Ashlesha", "Magha", "Purva Phalguni",
    "Uttara Phalguni", "Hasta", "Chitra", "Swati", "Vishakha", "Anuradha",
    "Jyeshtha", "Mula", "Purva Ashadha", "Uttara Ashadha", "Shravana",
    "Dhanishta", "Shatabhisha", "Purva Bhadrapada", "Uttara Bhadrapada",
    "Revati",
)

NAKSHATRA_SPAN_DEG = 360.0 / 27.0  # 13°20'
PADA_SPAN_DEG = NAKSHATRA_SPAN_DEG / 4.0


def normalize_degrees(degrees: float) -> float:
    """Normalize an angle to [0, 360)."""
    normalized = math.fmod(degrees, 360.0)
    if normalized < 0:
        normalized += 360.0
    # -1e-17 + 360.0 rounds to 360.0
    if normalized >= 360.0:
        normalized = 0.0
    return normalized


def wrap_difference(later: float, earlier: float) -> float:
    """Signed difference later - earlier folded into [-180, 180)."""
    diff = math.fmod(later - earlier + 180.0, 360.0)
    if diff < 0:
        diff += 360.0
    return diff - 180.0


def sin_deg(degrees: float) -> float:
    return math.sin(math.radians(degrees))


def cos_deg(degrees: float) -> float:
    return math.cos(math.radians(degrees))


def tan_deg(degrees: float) -> float:
    return math.tan(math.radians(degrees))


def atan2_deg(y: float, x: float) -> float:
    """atan2 in degrees, normalized to [0, 360)."""
    return normalize_degrees(math.degrees(math.atan2(y, x)))


def sign_index(longitude: float) -> int:
    """Zero-based rasi index (0 = Aries)."""
    return int(normalize_degrees(longitude) // 30.0) % 12


def degree_in_sign(longitude: float) -> float:
    return normalize_degrees(longitude) - 30.0 * sign_index(longitude)


def nakshatra_of(longitude: float) -> Tuple[int, int]:
    """
    Return (nakshatra_index, pada) for a sidereal longitude.

    nakshatra_index is zero-based (0 = Ashwini); pada runs 1..4.
    """
    lon = normalize_degrees(longitude)
    index = min(int(lon // NAKSHATRA_SPAN_DEG), 26)
    offset = lon - index * NAKSHATRA_SPAN_DEG
    pada = min(int(offset // PADA_SPAN_DEG), 3) + 1
    return index, pada
