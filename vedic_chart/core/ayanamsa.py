# vedic_chart/core/ayanamsa.py
# -----------------------------------------------------------------------------
# Ayanamsa models and the tropical -> sidereal correction
#
# An ayanamsa model is an explicit value: a reference epoch, the offset at that
# epoch and a precession rate (optionally with a quadratic term). Callers pick a
# model once, at AyanamsaCorrector construction, so two charts built with
# different models can never silently share a constant.
#
#   value(jd) = reference_value + (rate * y + acceleration * y^2) / 3600
#   y         = (jd - reference_jd) / 365.25         Julian years
# -----------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Union

from .angles import normalize_degrees
from .errors import ConfigurationError
from .timescales import J2000_JD

__all__ = [
    "AyanamsaModel",
    "AyanamsaCorrector",
    "AYANAMSA_MODELS",
    "LAHIRI",
    "get_ayanamsa_model",
]

DAYS_PER_JULIAN_YEAR = 365.25


@dataclass(frozen=True)
class AyanamsaModel:
    """Offset between the tropical and sidereal zodiacs as a function of time."""
    name: str
    reference_value_deg: float
    rate_arcsec_per_year: float
    acceleration_arcsec_per_year2: float = 0.0
    reference_jd: float = J2000_JD

    def value_at_years(self, years: float) -> float:
        """Ayanamsa in degrees, ``years`` Julian years after the reference epoch."""
        drift_arcsec = (
            self.rate_arcsec_per_year * years
            + self.acceleration_arcsec_per_year2 * years * years
        )
        return self.reference_value_deg + drift_arcsec / 3600.0


# Values at J2000.0. Lahiri (Chitrapaksha) follows the Indian Astronomical
# Ephemeris convention; the others keep their customary J2000 offsets.
LAHIRI = AyanamsaModel("lahiri", 23.853, 50.2882)

AYANAMSA_MODELS: Dict[str, AyanamsaModel] = {
    model.name: model
    for model in (
        LAHIRI,
        AyanamsaModel("raman", 22.410, 50.2388),
        AyanamsaModel("krishnamurti", 23.757, 50.2388),
        AyanamsaModel("fagan_bradley", 24.736, 50.2388),
        AyanamsaModel("yukteshwar", 22.463, 50.2388),
    )
}

_ALIASES = {
    "chitrapaksha": "lahiri",
    "kp": "krishnamurti",
    "fagan": "fagan_bradley",
}


def get_ayanamsa_model(name: Union[str, AyanamsaModel]) -> AyanamsaModel:
    """Resolve a registry name (case-insensitive) or pass a model through."""
    if isinstance(name, AyanamsaModel):
        return name
    key = str(name).strip().lower().replace("-", "_").replace(" ", "_")
    key = _ALIASES.get(key, key)
    try:
        return AYANAMSA_MODELS[key]
    except KeyError:
        raise ConfigurationError(
            f"Unknown ayanamsa model '{name}'; known: {sorted(AYANAMSA_MODELS)}",
            field="ayanamsa",
        ) from None


@lru_cache(maxsize=4096)
def _ayanamsa_deg(model: AyanamsaModel, years: float) -> float:
    return model.value_at_years(years)


class AyanamsaCorrector:
    """Pure ayanamsa evaluation for a single, fixed model."""

    def __init__(self, model: Union[str, AyanamsaModel]):
        self.model = get_ayanamsa_model(model)

    def ayanamsa_for(self, jd: float) -> float:
        """Ayanamsa in degrees at a Julian Day."""
        years = (jd - self.model.reference_jd) / DAYS_PER_JULIAN_YEAR
        return _ayanamsa_deg(self.model, years)

    def ayanamsa_for_year(self, year: float) -> float:
        """
        Ayanamsa for a (decimal) calendar year.

        Year 2000.0 is taken to coincide with J2000.0; the 1.5 day offset is
        far below the precision of any of the models.
        """
        reference_year = 2000.0 + (self.model.reference_jd - J2000_JD) / DAYS_PER_JULIAN_YEAR
        return _ayanamsa_deg(self.model, float(year) - reference_year)

    def to_sidereal(self, tropical_deg: float, jd: float) -> float:
        return normalize_degrees(tropical_deg - self.ayanamsa_for(jd))

    def __repr__(self) -> str:
        return f"AyanamsaCorrector(model={self.model.name!r})"
