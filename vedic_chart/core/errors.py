# vedic_chart/core/errors.py
# -----------------------------------------------------------------------------
# Error taxonomy for chart casting
#
# Every failure raised by the pipeline derives from ChartError and carries an
# ErrorClass tag, the offending input field (when one exists) and a free-form
# context dict. Nothing in the core swallows these; the only recovery path is
# the logged house-boundary fallback in houses.py.
# -----------------------------------------------------------------------------

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

__all__ = [
    "ErrorClass",
    "ChartError",
    "InvalidMoment",
    "InvalidLocation",
    "UnsupportedLatitude",
    "EphemerisUnavailable",
    "ConfigurationError",
]


class ErrorClass(Enum):
    INVALID_MOMENT = "invalid_moment"
    INVALID_LOCATION = "invalid_location"
    UNSUPPORTED_LATITUDE = "unsupported_latitude"
    EPHEMERIS_UNAVAILABLE = "ephemeris_unavailable"
    CONFIGURATION = "configuration"


class ChartError(Exception):
    """Base exception for chart computations."""
    def __init__(
        self,
        message: str,
        error_class: ErrorClass,
        field: Optional[str] = None,
        **context: Any,
    ):
        super().__init__(message)
        self.error_class = error_class
        self.field = field
        self.context = context


class InvalidMoment(ChartError):
    """Calendar fields out of range or before the Gregorian reform."""
    def __init__(self, message: str, field: Optional[str] = None, **context: Any):
        super().__init__(message, ErrorClass.INVALID_MOMENT, field, **context)


class InvalidLocation(ChartError):
    """Latitude or longitude out of range."""
    def __init__(self, message: str, field: Optional[str] = None, **context: Any):
        super().__init__(message, ErrorClass.INVALID_LOCATION, field, **context)


class UnsupportedLatitude(ChartError):
    """Ascendant is ill-conditioned this close to the poles."""
    def __init__(self, message: str, field: Optional[str] = "latitude", **context: Any):
        super().__init__(message, ErrorClass.UNSUPPORTED_LATITUDE, field, **context)


class EphemerisUnavailable(ChartError):
    """The ephemeris source cannot produce positions for the request."""
    def __init__(self, message: str, **context: Any):
        super().__init__(message, ErrorClass.EPHEMERIS_UNAVAILABLE, None, **context)


class ConfigurationError(ChartError):
    """Unknown model name or out-of-range setting."""
    def __init__(self, message: str, field: Optional[str] = None, **context: Any):
        super().__init__(message, ErrorClass.CONFIGURATION, field, **context)
