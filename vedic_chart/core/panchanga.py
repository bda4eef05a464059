# vedic_chart/core/panchanga.py
# -----------------------------------------------------------------------------
# Panchanga elements from the sidereal Sun and Moon
#
#   tithi   = floor(elongation / 12°) + 1           1..30, elongation = Moon - Sun
#   karana  = floor(elongation / 6°) + 1            1..60 (half tithis)
#   yoga    = floor((Sun + Moon) / 13°20') + 1      1..27
#   vara    = weekday of the civil date
#
# Karana 1 is Kimstughna, 2..57 cycle through the seven movable karanas, and
# 58..60 are Shakuni, Chatushpada and Naga. Tithi and karana depend only on
# the elongation, so they are the same in either zodiac; yoga uses sidereal
# longitudes.
# -----------------------------------------------------------------------------

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .angles import NAKSHATRAS, nakshatra_of, normalize_degrees

__all__ = [
    "TITHI_NAMES",
    "KARANA_NAMES",
    "YOGA_NAMES",
    "VARA_NAMES",
    "Panchanga",
]

TITHI_SPAN_DEG = 12.0
KARANA_SPAN_DEG = 6.0
YOGA_SPAN_DEG = 360.0 / 27.0

TITHI_NAMES = (
    "Pratipada", "Dwitiya", "Tritiya", "Chaturthi", "Panchami",
    "Shashthi", "Saptami", "Ashtami", "Navami", "Dashami",
    "Ekadashi", "Dwadashi", "Trayodashi", "Chaturdashi",
)

MOVABLE_KARANAS = ("Bava", "Balava", "Kaulava", "Taitila", "Gara", "Vanija", "Vishti")
KARANA_NAMES = ("Kimstughna",) + MOVABLE_KARANAS * 8 + ("Shakuni", "Chatushpada", "Naga")

YOGA_NAMES = (
    "Vishkambha", "Priti", "Ayushman", "Saubhagya", "Shobhana", "Atiganda",
    "Sukarma", "Dhriti", "Shula", "Ganda", "Vriddhi", "Dhruva", "Vyaghata",
    "Harshana", "Vajra", "Siddhi", "Vyatipata", "Variyan", "Parigha", "Shiva",
    "Siddha", "Sadhya", "Shubha", "Shukla", "Brahma", "Indra", "Vaidhriti",
)

# Monday first, matching datetime.date.weekday()
VARA_NAMES = (
    "Somavara", "Mangalavara", "Budhavara", "Guruvara",
    "Shukravara", "Shanivara", "Ravivara",
)


def _segment(angle: float, span: float, count: int) -> int:
    return min(int(math.floor(angle / span)), count - 1)


@dataclass(frozen=True)
class Panchanga:
    """Lunar-day elements of a chart; numbers are 1-based."""
    tithi: int
    tithi_progress: float
    karana: int
    yoga: int
    nakshatra_index: int
    weekday: Optional[int] = None   # 0 = Monday

    @classmethod
    def from_longitudes(
        cls,
        sun_longitude: float,
        moon_longitude: float,
        weekday: Optional[int] = None,
    ) -> "Panchanga":
        """Build from sidereal Sun and Moon longitudes in degrees."""
        elongation = normalize_degrees(moon_longitude - sun_longitude)
        tithi_index = _segment(elongation, TITHI_SPAN_DEG, 30)
        return cls(
            tithi=tithi_index + 1,
            tithi_progress=(elongation - tithi_index * TITHI_SPAN_DEG) / TITHI_SPAN_DEG,
            karana=_segment(elongation, KARANA_SPAN_DEG, 60) + 1,
            yoga=_segment(normalize_degrees(sun_longitude + moon_longitude), YOGA_SPAN_DEG, 27) + 1,
            nakshatra_index=nakshatra_of(moon_longitude)[0],
            weekday=weekday,
        )

    @property
    def paksha(self) -> str:
        return "shukla" if self.tithi <= 15 else "krishna"

    @property
    def tithi_name(self) -> str:
        if self.tithi == 15:
            return "Purnima"
        if self.tithi == 30:
            return "Amavasya"
        return TITHI_NAMES[(self.tithi - 1) % 15]

    @property
    def karana_name(self) -> str:
        return KARANA_NAMES[self.karana - 1]

    @property
    def karana_is_fixed(self) -> bool:
        return self.karana == 1 or self.karana >= 58

    @property
    def yoga_name(self) -> str:
        return YOGA_NAMES[self.yoga - 1]

    @property
    def nakshatra(self) -> str:
        return NAKSHATRAS[self.nakshatra_index]

    @property
    def vara(self) -> Optional[str]:
        return None if self.weekday is None else VARA_NAMES[self.weekday]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tithi": self.tithi,
            "tithi_name": self.tithi_name,
            "tithi_progress": self.tithi_progress,
            "paksha": self.paksha,
            "karana": self.karana,
            "karana_name": self.karana_name,
            "karana_fixed": self.karana_is_fixed,
            "yoga": self.yoga,
            "yoga_name": self.yoga_name,
            "nakshatra": self.nakshatra,
            "vara": self.vara,
        }
