"""
Vedic Chart Core

Deterministic sidereal chart casting: Julian Day and sidereal time, ayanamsa
correction, ascendant and house cusps, planetary longitudes and house
placement for the nine Vedic grahas.
"""

__version__ = "0.3.0"
__author__ = "Vedic Chart Core Team"

# Version information
VERSION_INFO = {
    "major": 0,
    "minor": 3,
    "patch": 0,
    "status": "beta"
}
