# vedic_chart/core/timescales.py
# -----------------------------------------------------------------------------
# Civil time -> Julian Day -> sidereal time
#
# Conventions:
#   • Gregorian calendar only; dates before 1582-10-15 are rejected
#   • Moment carries its own UTC offset; the converter never consults a
#     timezone database
#   • Julian Day is UTC-based; 2000-01-01 12:00:00 UTC is exactly 2451545.0
#   • Sidereal time in degrees on [0, 360)
#
# Public API:
#   Moment(year, month, day, hour, minute, second, utc_offset_minutes)
#   TimeConverter.to_julian_day(moment) -> float
#   TimeConverter.julian_day_to_gmst(jd) -> float
#   TimeConverter.local_sidereal_time(jd, longitude_deg) -> float
# -----------------------------------------------------------------------------

from __future__ import annotations

import calendar
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import erfa  # pyERFA - SOFA/ERFA

from .angles import normalize_degrees
from .errors import InvalidMoment

log = logging.getLogger(__name__)

__all__ = [
    "J2000_JD",
    "DAYS_PER_JULIAN_CENTURY",
    "SiderealTimeModel",
    "Moment",
    "TimeConverter",
    "julian_centuries",
    "validate_moment",
]

# ───────────────────────────── Constants ─────────────────────────────

J2000_JD = 2451545.0
DAYS_PER_JULIAN_CENTURY = 36525.0
SECONDS_PER_DAY = 86400.0

GREGORIAN_START = (1582, 10, 15)
MAX_UTC_OFFSET_MINUTES = 14 * 60


class SiderealTimeModel(Enum):
    """Greenwich mean sidereal time models."""
    MEEUS = "meeus"        # Meeus cubic polynomial in UT
    IAU2006 = "iau2006"    # ERFA gmst06, UT1 taken as UTC


def julian_centuries(jd: float) -> float:
    """Julian centuries since J2000.0."""
    return (jd - J2000_JD) / DAYS_PER_JULIAN_CENTURY


# ───────────────────────────── Moment ─────────────────────────────

_DATE_RE = re.compile(r"^\s*(\d{4})-(\d{2})-(\d{2})\s*$")
_TIME_RE = re.compile(
    r"^\s*(?P<h>\d{2}):(?P<m>\d{2})(?::(?P<s>\d{2})(?:[\.,](?P<f>\d{1,9}))?)?"
    r"\s*(?P<tz>Z|[+-]\d{2}:?\d{2})?\s*$"
)


@dataclass(frozen=True)
class Moment:
    """
    A civil instant expressed as calendar fields plus a fixed UTC offset.

    Fields are not validated at construction; TimeConverter.to_julian_day
    rejects out-of-range values with InvalidMoment.
    """
    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: float = 0.0
    utc_offset_minutes: float = 0.0

    @classmethod
    def from_datetime(cls, dt: datetime) -> "Moment":
        """Build from a datetime; naive values are taken as UTC."""
        offset = dt.utcoffset()
        offset_minutes = offset.total_seconds() / 60.0 if offset is not None else 0.0
        return cls(
            year=dt.year,
            month=dt.month,
            day=dt.day,
            hour=dt.hour,
            minute=dt.minute,
            second=dt.second + dt.microsecond / 1e6,
            utc_offset_minutes=offset_minutes,
        )

    @classmethod
    def parse(
        cls,
        date_str: str,
        time_str: str = "00:00:00",
        utc_offset_minutes: Optional[float] = None,
    ) -> "Moment":
        """
        Parse ``YYYY-MM-DD`` and ``HH:MM[:SS[.fff]][Z|±HH:MM]``.

        An explicit utc_offset_minutes overrides a suffix in time_str.
        """
        m = _DATE_RE.match(date_str or "")
        if not m:
            raise InvalidMoment(f"Invalid date '{date_str}': expected YYYY-MM-DD", field="date")
        year, month, day = int(m.group(1)), int(m.group(2)), int(m.group(3))

        t = _TIME_RE.match(time_str or "")
        if not t:
            raise InvalidMoment(
                f"Invalid time '{time_str}': expected HH:MM[:SS[.fff]]", field="time"
            )
        second = float(t.group("s") or 0)
        if t.group("f"):
            second += float("0." + t.group("f"))

        offset = utc_offset_minutes
        if offset is None:
            offset = _parse_offset(t.group("tz"))

        return cls(
            year=year,
            month=month,
            day=day,
            hour=int(t.group("h")),
            minute=int(t.group("m")),
            second=second,
            utc_offset_minutes=offset,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "day": self.day,
            "hour": self.hour,
            "minute": self.minute,
            "second": self.second,
            "utc_offset_minutes": self.utc_offset_minutes,
        }


def _parse_offset(tz: Optional[str]) -> float:
    if not tz or tz == "Z":
        return 0.0
    sign = -1.0 if tz[0] == "-" else 1.0
    digits = tz[1:].replace(":", "")
    return sign * (int(digits[:2]) * 60 + int(digits[2:]))


# ───────────────────────────── Validation ─────────────────────────────

def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_finite(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def validate_moment(moment: Moment) -> None:
    """Raise InvalidMoment naming the first offending field."""
    for name in ("year", "month", "day", "hour", "minute"):
        value = getattr(moment, name)
        if not _is_int(value):
            raise InvalidMoment(f"{name} must be an integer, got {value!r}", field=name, value=value)

    if not 1 <= moment.month <= 12:
        raise InvalidMoment(
            f"month {moment.month} out of range [1, 12]", field="month", value=moment.month
        )
    if moment.year < GREGORIAN_START[0]:
        raise InvalidMoment(
            f"year {moment.year} precedes the Gregorian calendar (1582-10-15)",
            field="year",
            value=moment.year,
        )

    days_in_month = calendar.monthrange(moment.year, moment.month)[1]
    if not 1 <= moment.day <= days_in_month:
        raise InvalidMoment(
            f"day {moment.day} out of range [1, {days_in_month}] "
            f"for {moment.year}-{moment.month:02d}",
            field="day",
            value=moment.day,
        )

    if not 0 <= moment.hour <= 23:
        raise InvalidMoment(f"hour {moment.hour} out of range [0, 23]", field="hour", value=moment.hour)
    if not 0 <= moment.minute <= 59:
        raise InvalidMoment(
            f"minute {moment.minute} out of range [0, 59]", field="minute", value=moment.minute
        )
    if not _is_finite(moment.second) or not 0.0 <= moment.second < 60.0:
        raise InvalidMoment(
            f"second {moment.second} out of range [0, 60)", field="second", value=moment.second
        )
    if (
        not _is_finite(moment.utc_offset_minutes)
        or abs(moment.utc_offset_minutes) > MAX_UTC_OFFSET_MINUTES
    ):
        raise InvalidMoment(
            f"utc_offset_minutes {moment.utc_offset_minutes} out of range "
            f"[-{MAX_UTC_OFFSET_MINUTES}, {MAX_UTC_OFFSET_MINUTES}]",
            field="utc_offset_minutes",
            value=moment.utc_offset_minutes,
        )

    if (moment.year, moment.month, moment.day) < GREGORIAN_START:
        raise InvalidMoment(
            f"{moment.year}-{moment.month:02d}-{moment.day:02d} precedes the Gregorian "
            f"calendar (1582-10-15)",
            field="year",
            value=moment.year,
        )


# ───────────────────────────── Converter ─────────────────────────────

class TimeConverter:
    """Calendar to Julian Day, Julian Day to sidereal time."""

    def __init__(self, sidereal_model: SiderealTimeModel = SiderealTimeModel.MEEUS):
        self.sidereal_model = sidereal_model

    def to_julian_day(self, moment: Moment) -> float:
        """
        Julian Day (UTC) of a Gregorian moment.

        Meeus ch. 7: January and February count as months 13 and 14 of the
        previous year; B = 2 - A + A//4 with A = Y//100.
        """
        validate_moment(moment)

        year, month = moment.year, moment.month
        if month <= 2:
            year -= 1
            month += 12

        a = year // 100
        b = 2 - a + (a // 4)
        jd_midnight = (
            math.floor(365.25 * (year + 4716))
            + math.floor(30.6001 * (month + 1))
            + moment.day + b - 1524.5
        )

        day_seconds = moment.hour * 3600 + moment.minute * 60 + moment.second
        jd = jd_midnight + day_seconds / SECONDS_PER_DAY
        if moment.utc_offset_minutes:
            jd -= moment.utc_offset_minutes / 1440.0
        return float(jd)

    def julian_day_to_gmst(self, jd: float) -> float:
        """Greenwich mean sidereal time in degrees."""
        if self.sidereal_model == SiderealTimeModel.IAU2006:
            return self._gmst_iau2006(jd)

        d = jd - J2000_JD
        t = d / DAYS_PER_JULIAN_CENTURY
        theta = (
            280.46061837
            + 360.98564736629 * d
            + 0.000387933 * t * t
            - t ** 3 / 38710000.0
        )
        return normalize_degrees(theta)

    def local_sidereal_time(self, jd: float, longitude_deg: float) -> float:
        """Local sidereal time (RAMC) in degrees; east longitude positive."""
        return normalize_degrees(self.julian_day_to_gmst(jd) + longitude_deg)

    def _gmst_iau2006(self, jd: float) -> float:
        jd1, jd2 = _split_jd(jd)
        tai1, tai2 = erfa.utctai(jd1, jd2)
        tt1, tt2 = erfa.taitt(tai1, tai2)
        return normalize_degrees(math.degrees(erfa.gmst06(jd1, jd2, tt1, tt2)))


def _split_jd(jd: float) -> Tuple[float, float]:
    """Split at the preceding midnight for ERFA two-part arguments."""
    jd1 = math.floor(jd - 0.5) + 0.5
    return jd1, jd - jd1
