# vedic_chart/core/ephemeris.py
# -----------------------------------------------------------------------------
# Tropical geocentric longitudes of the nine grahas
#
# Sources (EphemerisSource strategies):
#   • LowPrecisionEphemeris: closed-form series, no data files
#       Sun      mean longitude + equation of centre, apparent (Meeus ch. 25)
#       Moon     leading periodic terms of the lunar theory (Meeus ch. 47)
#       Planets  J2000 mean elements with secular rates (Standish, JPL),
#                Kepler's equation, heliocentric -> geocentric, precessed
#                to the mean equinox of date
#       Rahu     mean or true ascending lunar node
#     Accuracy is a few arcminutes for Sun and Moon and typically well under
#     0.5° for the planets between 1800 and 2050.
#   • SkyfieldEphemeris: JPL DE kernels through Skyfield, rotated to the true
#     ecliptic of date with ERFA
#
# PlanetPositionProvider wraps any source and guarantees the full set of nine
# bodies on [0, 360), with Ketu = Rahu + 180°.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import math
import os
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from .angles import normalize_degrees, wrap_difference
from .errors import EphemerisUnavailable
from .timescales import julian_centuries

log = logging.getLogger(__name__)

__all__ = [
    "PlanetName",
    "NodeModel",
    "CLASSICAL_BODIES",
    "SOURCE_BODIES",
    "EphemerisSource",
    "LowPrecisionEphemeris",
    "KernelInfo",
    "KernelManager",
    "SkyfieldEphemeris",
    "PlanetPositionProvider",
    "mean_lunar_node",
    "true_lunar_node",
]

# ───────────────────────────── Bodies ─────────────────────────────

class PlanetName(Enum):
    SUN = "Sun"
    MOON = "Moon"
    MARS = "Mars"
    MERCURY = "Mercury"
    JUPITER = "Jupiter"
    VENUS = "Venus"
    SATURN = "Saturn"
    RAHU = "Rahu"
    KETU = "Ketu"


class NodeModel(Enum):
    MEAN = "mean"
    TRUE = "true"


CLASSICAL_BODIES: Tuple[PlanetName, ...] = (
    PlanetName.SUN,
    PlanetName.MOON,
    PlanetName.MARS,
    PlanetName.MERCURY,
    PlanetName.JUPITER,
    PlanetName.VENUS,
    PlanetName.SATURN,
)

# Everything a source must supply; Ketu is always derived from Rahu.
SOURCE_BODIES: Tuple[PlanetName, ...] = CLASSICAL_BODIES + (PlanetName.RAHU,)


def _sin(deg: float) -> float:
    return math.sin(math.radians(deg))


# ───────────────────────────── Lunar Arguments & Nodes ─────────────────────────────

class _LunarArguments(NamedTuple):
    mean_longitude: float   # L'
    elongation: float       # D
    sun_anomaly: float      # M
    moon_anomaly: float     # M'
    latitude_arg: float     # F
    eccentricity: float     # E


def _lunar_arguments(t: float) -> _LunarArguments:
    t2, t3, t4 = t * t, t ** 3, t ** 4
    return _LunarArguments(
        mean_longitude=normalize_degrees(
            218.3164477 + 481267.88123421 * t - 0.0015786 * t2 + t3 / 538841.0 - t4 / 65194000.0
        ),
        elongation=normalize_degrees(
            297.8501921 + 445267.1114034 * t - 0.0018819 * t2 + t3 / 545868.0 - t4 / 113065000.0
        ),
        sun_anomaly=normalize_degrees(
            357.5291092 + 35999.0502909 * t - 0.0001536 * t2 + t3 / 24490000.0
        ),
        moon_anomaly=normalize_degrees(
            134.9633964 + 477198.8675055 * t + 0.0087414 * t2 + t3 / 69699.0 - t4 / 14712000.0
        ),
        latitude_arg=normalize_degrees(
            93.2720950 + 483202.0175233 * t - 0.0036539 * t2 - t3 / 3526000.0 + t4 / 863310000.0
        ),
        eccentricity=1.0 - 0.002516 * t - 0.0000074 * t2,
    )


def mean_lunar_node(t: float) -> float:
    """Mean ascending node of the Moon; t in Julian centuries from J2000."""
    omega = (
        125.0445479
        - 1934.1362891 * t
        + 0.0020754 * t * t
        + t ** 3 / 467441.0
        - t ** 4 / 60616000.0
    )
    return normalize_degrees(omega)


def true_lunar_node(t: float) -> float:
    """Mean node plus the five largest periodic terms."""
    a = _lunar_arguments(t)
    correction = (
        -1.4979 * _sin(2.0 * (a.elongation - a.latitude_arg))
        - 0.1500 * _sin(a.sun_anomaly)
        - 0.1226 * _sin(2.0 * a.elongation)
        + 0.1176 * _sin(2.0 * a.latitude_arg)
        - 0.0801 * _sin(2.0 * (a.moon_anomaly - a.latitude_arg))
    )
    return normalize_degrees(mean_lunar_node(t) + correction)


def _node_longitude(t: float, model: NodeModel) -> float:
    if model == NodeModel.TRUE:
        return true_lunar_node(t)
    return mean_lunar_node(t)


# ───────────────────────────── Source Interface ─────────────────────────────

class EphemerisSource(ABC):
    """Strategy producing tropical geocentric longitudes for a Julian Day."""

    name: str = ""

    @abstractmethod
    def tropical_longitudes(self, jd: float) -> Dict[PlanetName, float]:
        """Longitudes (degrees, ecliptic of date) for every body in SOURCE_BODIES."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


# ───────────────────────────── Low-Precision Series ─────────────────────────────

# Periodic terms for the Moon's longitude: (D, M, M', F, coefficient in 1e-6 deg)
_MOON_LONGITUDE_TERMS: Tuple[Tuple[int, int, int, int, int], ...] = (
    (0, 0, 1, 0, 6288774),
    (2, 0, -1, 0, 1274027),
    (2, 0, 0, 0, 658314),
    (0, 0, 2, 0, 213618),
    (0, 1, 0, 0, -185116),
    (0, 0, 0, 2, -114332),
    (2, 0, -2, 0, 58793),
    (2, -1, -1, 0, 57066),
    (2, 0, 1, 0, 53322),
    (2, -1, 0, 0, 45758),
    (0, 1, -1, 0, -40923),
    (1, 0, 0, 0, -34720),
    (0, 1, 1, 0, -30383),
    (2, 0, 0, -2, 15327),
    (0, 0, 1, 2, -12528),
    (0, 0, 1, -2, 10980),
    (4, 0, -1, 0, 10675),
    (0, 0, 3, 0, 10034),
    (4, 0, -2, 0, 8548),
    (2, 1, -1, 0, -7888),
    (2, 1, 0, 0, -6766),
    (1, 0, -1, 0, -5163),
    (1, 1, 0, 0, 4987),
    (2, -1, 1, 0, 4036),
    (2, 0, 2, 0, 3994),
    (4, 0, 0, 0, 3861),
    (2, 0, -3, 0, 3665),
    (0, 1, -2, 0, -2689),
    (2, 0, -1, 2, -2602),
    (2, -1, -2, 0, 2390),
    (1, 0, 1, 0, -2348),
    (2, -2, 0, 0, 2236),
    (0, 1, 2, 0, -2120),
    (0, 2, 0, 0, -2069),
    (2, -2, -1, 0, 2048),
)


class OrbitalElements(NamedTuple):
    """Keplerian elements at J2000 and their rates per Julian century."""
    a: float
    a_rate: float
    e: float
    e_rate: float
    inclination: float
    inclination_rate: float
    mean_longitude: float
    mean_longitude_rate: float
    perihelion: float           # longitude of perihelion (varpi)
    perihelion_rate: float
    node: float                 # longitude of ascending node
    node_rate: float


# Mean ecliptic and equinox of J2000, valid 1800-2050.
_PLANET_ELEMENTS: Dict[PlanetName, OrbitalElements] = {
    PlanetName.MERCURY: OrbitalElements(
        0.38709927, 0.00000037, 0.20563593, 0.00001906, 7.00497902, -0.00594749,
        252.25032350, 149472.67411175, 77.45779628, 0.16047689, 48.33076593, -0.12534081,
    ),
    PlanetName.VENUS: OrbitalElements(
        0.72333566, 0.00000390, 0.00677672, -0.00004107, 3.39467605, -0.00078890,
        181.97909950, 58517.81538729, 131.60246718, 0.00268329, 76.67984255, -0.27769418,
    ),
    PlanetName.MARS: OrbitalElements(
        1.52371034, 0.00001847, 0.09339410, 0.00007882, 1.84969142, -0.00813131,
        -4.55343205, 19140.30268499, -23.94362959, 0.44441088, 49.55953891, -0.29257343,
    ),
    PlanetName.JUPITER: OrbitalElements(
        5.20288700, -0.00011607, 0.04838624, -0.00013253, 1.30439695, -0.00183714,
        34.39644051, 3034.74612775, 14.72847983, 0.21252668, 100.47390909, 0.20469106,
    ),
    PlanetName.SATURN: OrbitalElements(
        9.53667594, -0.00125060, 0.05386179, -0.00050991, 2.48599187, 0.00193609,
        49.95424423, 1222.49362201, 92.59887831, -0.41897216, 113.66242448, -0.28867794,
    ),
}

_EARTH_MOON_BARYCENTER = OrbitalElements(
    1.00000261, 0.00000562, 0.01671123, -0.00004392, -0.00001531, -0.01294668,
    100.46457166, 35999.37244981, 102.93768193, 0.32327364, 0.0, 0.0,
)


def _solve_kepler(mean_anomaly_deg: float, e: float, tolerance: float = 1e-10) -> float:
    """Eccentric anomaly (radians) by Newton iteration."""
    m = math.radians(wrap_difference(mean_anomaly_deg, 0.0))
    ecc = m + e * math.sin(m)
    for _ in range(30):
        delta = (ecc - e * math.sin(ecc) - m) / (1.0 - e * math.cos(ecc))
        ecc -= delta
        if abs(delta) < tolerance:
            break
    return ecc


def _heliocentric_xyz(el: OrbitalElements, t: float) -> Tuple[float, float, float]:
    """Heliocentric ecliptic J2000 rectangular coordinates in au."""
    a = el.a + el.a_rate * t
    e = el.e + el.e_rate * t
    inc = math.radians(el.inclination + el.inclination_rate * t)
    mean_lon = el.mean_longitude + el.mean_longitude_rate * t
    varpi = el.perihelion + el.perihelion_rate * t
    node_deg = el.node + el.node_rate * t

    arg_peri = math.radians(varpi - node_deg)
    node = math.radians(node_deg)
    ecc_anomaly = _solve_kepler(mean_lon - varpi, e)

    x_orb = a * (math.cos(ecc_anomaly) - e)
    y_orb = a * math.sqrt(1.0 - e * e) * math.sin(ecc_anomaly)

    cw, sw = math.cos(arg_peri), math.sin(arg_peri)
    co, so = math.cos(node), math.sin(node)
    ci, si = math.cos(inc), math.sin(inc)

    x = (cw * co - sw * so * ci) * x_orb + (-sw * co - cw * so * ci) * y_orb
    y = (cw * so + sw * co * ci) * x_orb + (-sw * so + cw * co * ci) * y_orb
    z = (sw * si) * x_orb + (cw * si) * y_orb
    return x, y, z


def _precession_in_longitude(t: float) -> float:
    """General precession from J2000 to the mean equinox of date, degrees."""
    return (5029.0966 * t + 1.11113 * t * t) / 3600.0


class LowPrecisionEphemeris(EphemerisSource):
    """Closed-form series; always available, no data files."""

    name = "low_precision"

    def __init__(self, node_model: NodeModel = NodeModel.MEAN):
        self.node_model = node_model

    def tropical_longitudes(self, jd: float) -> Dict[PlanetName, float]:
        t = julian_centuries(jd)
        positions = {
            PlanetName.SUN: self.sun_longitude(t),
            PlanetName.MOON: self.moon_longitude(t),
        }

        earth = _heliocentric_xyz(_EARTH_MOON_BARYCENTER, t)
        precession = _precession_in_longitude(t)
        for planet, elements in _PLANET_ELEMENTS.items():
            px, py, _ = _heliocentric_xyz(elements, t)
            geo_lon = math.degrees(math.atan2(py - earth[1], px - earth[0]))
            positions[planet] = normalize_degrees(geo_lon + precession)

        positions[PlanetName.RAHU] = _node_longitude(t, self.node_model)
        return positions

    @staticmethod
    def sun_longitude(t: float) -> float:
        """Apparent geometric longitude of the Sun."""
        mean_lon = 280.46646 + 36000.76983 * t + 0.0003032 * t * t
        anomaly = 357.52911 + 35999.05029 * t - 0.0001537 * t * t
        centre = (
            (1.914602 - 0.004817 * t - 0.000014 * t * t) * _sin(anomaly)
            + (0.019993 - 0.000101 * t) * _sin(2.0 * anomaly)
            + 0.000289 * _sin(3.0 * anomaly)
        )
        omega = 125.04 - 1934.136 * t
        return normalize_degrees(mean_lon + centre - 0.00569 - 0.00478 * _sin(omega))

    @staticmethod
    def moon_longitude(t: float) -> float:
        a = _lunar_arguments(t)
        total = 0.0
        for d, m, mp, f, coeff in _MOON_LONGITUDE_TERMS:
            arg = d * a.elongation + m * a.sun_anomaly + mp * a.moon_anomaly + f * a.latitude_arg
            term = coeff * _sin(arg)
            if m:
                term *= a.eccentricity ** abs(m)
            total += term

        # Venus, Jupiter and flattening perturbations
        a1 = 119.75 + 131.849 * t
        a2 = 53.09 + 479264.290 * t
        total += (
            3958.0 * _sin(a1)
            + 1962.0 * _sin(a.mean_longitude - a.latitude_arg)
            + 318.0 * _sin(a2)
        )
        return normalize_degrees(a.mean_longitude + total / 1e6)


# ───────────────────────────── JPL Kernels via Skyfield ─────────────────────────────

class KernelInfo(NamedTuple):
    """An SPK kernel found on disk."""
    path: str
    name: str
    kernel_type: str  # "de440s", "de440", "de421", "other"
    coverage_jd: Tuple[float, float]

    def covers(self, jd: float) -> bool:
        return self.coverage_jd[0] <= jd <= self.coverage_jd[1]


_KERNEL_PREFERENCE = ("de440s", "de440", "de421")


class KernelManager:
    """Locate SPK kernels and read their coverage."""

    def __init__(
        self,
        kernel_path: Optional[str] = None,
        search_dirs: Optional[Sequence[str]] = None,
    ):
        self.kernel_path = kernel_path
        self.search_dirs = list(search_dirs) if search_dirs is not None else None

    def find_kernel_paths(self) -> List[str]:
        """Explicit path first, then environment, then the standard directories."""
        if self.kernel_path:
            return [self.kernel_path] if os.path.isfile(self.kernel_path) else []

        paths = []
        if env_path := os.getenv("VEDIC_EPHEMERIS"):
            paths.append(env_path)

        if ephem_dir := os.getenv("EPHEM_DIR"):
            ephem_file = os.getenv("EPHEM_FILE", "")
            if ephem_file:
                paths.append(os.path.join(ephem_dir, ephem_file))

        search_dirs = self.search_dirs
        if search_dirs is None:
            search_dirs = [
                os.path.join(os.getcwd(), "data"),
                os.path.expanduser("~/ephemeris"),
                "/usr/local/share/ephemeris",
            ]

        for search_dir in search_dirs:
            if os.path.isdir(search_dir):
                for filename in sorted(os.listdir(search_dir)):
                    if filename.lower().endswith(".bsp"):
                        paths.append(os.path.join(search_dir, filename))

        return [p for p in paths if os.path.isfile(p)]

    def analyze(self, path: str) -> KernelInfo:
        """Read kernel coverage from its SPK segment table."""
        from jplephem.spk import SPK

        filename = os.path.basename(path).lower()
        kernel_type = next((k for k in _KERNEL_PREFERENCE if k in filename), "other")

        spk = SPK.open(path)
        try:
            coverage = (
                min(seg.start_jd for seg in spk.segments),
                max(seg.end_jd for seg in spk.segments),
            )
        finally:
            spk.close()

        return KernelInfo(
            path=path,
            name=os.path.basename(path),
            kernel_type=kernel_type,
            coverage_jd=coverage,
        )

    def discover(self) -> List[KernelInfo]:
        infos = []
        for path in self.find_kernel_paths():
            try:
                infos.append(self.analyze(path))
            except Exception as e:
                log.warning(f"Failed to analyze kernel {path}: {e}")
        return infos

    def select(self) -> KernelInfo:
        """Preferred kernel: DE440s, then DE440, then DE421, then anything."""
        kernels = self.discover()
        if not kernels:
            raise EphemerisUnavailable(
                "No ephemeris kernels available",
                kernel_path=self.kernel_path,
            )
        for kernel_type in _KERNEL_PREFERENCE:
            for info in kernels:
                if info.kernel_type == kernel_type:
                    return info
        return kernels[0]


# Kernel target names, most specific first.
_SKYFIELD_TARGETS: Dict[PlanetName, Tuple[str, ...]] = {
    PlanetName.SUN: ("sun",),
    PlanetName.MOON: ("moon",),
    PlanetName.MERCURY: ("mercury", "mercury barycenter"),
    PlanetName.VENUS: ("venus", "venus barycenter"),
    PlanetName.MARS: ("mars", "mars barycenter"),
    PlanetName.JUPITER: ("jupiter barycenter",),
    PlanetName.SATURN: ("saturn barycenter",),
}


class SkyfieldEphemeris(EphemerisSource):
    """
    Apparent geocentric longitudes from a JPL DE kernel.

    Skyfield gives the apparent GCRS position; ERFA's IAU 2006/2000A
    bias-precession-nutation matrix takes it to the true equator of date,
    and the true obliquity of date rotates it onto the ecliptic. The input
    Julian Day is UTC and is used as UT1. Rahu comes from the lunar node
    series selected by node_model.
    """

    name = "skyfield"

    def __init__(
        self,
        kernel_path: Optional[str] = None,
        node_model: NodeModel = NodeModel.MEAN,
        search_dirs: Optional[Sequence[str]] = None,
    ):
        self.kernel_manager = KernelManager(kernel_path, search_dirs)
        self.node_model = node_model
        self._kernel = None
        self._kernel_info: Optional[KernelInfo] = None
        self._timescale = None
        self._lock = threading.Lock()

    def __getstate__(self):
        # the kernel and lock stay behind; a copy reloads lazily
        state = self.__dict__.copy()
        state.update(_kernel=None, _kernel_info=None, _timescale=None, _lock=None)
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
        self._lock = threading.Lock()

    @property
    def kernel_info(self) -> KernelInfo:
        self._ensure_loaded()
        return self._kernel_info

    def _ensure_loaded(self) -> None:
        with self._lock:
            if self._kernel is not None:
                return
            info = self.kernel_manager.select()
            try:
                from skyfield.api import load, load_file
                kernel = load_file(info.path)
                timescale = load.timescale()
            except Exception as e:
                raise EphemerisUnavailable(
                    f"Failed to load kernel {info.path}: {e}", kernel_path=info.path
                ) from e
            log.debug(f"Loaded ephemeris kernel {info.name} covering {info.coverage_jd}")
            self._kernel_info = info
            self._timescale = timescale
            self._kernel = kernel

    def _resolve_body(self, planet: PlanetName):
        for candidate in _SKYFIELD_TARGETS[planet]:
            try:
                return self._kernel[candidate]
            except (KeyError, ValueError):
                continue
        raise EphemerisUnavailable(
            f"Kernel {self._kernel_info.name} has no target for {planet.value}",
            body=planet.value,
        )

    def tropical_longitudes(self, jd: float) -> Dict[PlanetName, float]:
        import erfa

        self._ensure_loaded()
        if not self._kernel_info.covers(jd):
            raise EphemerisUnavailable(
                f"Date {jd} outside ephemeris coverage",
                jd_requested=jd,
                available_coverage=self._kernel_info.coverage_jd,
            )

        t = self._timescale.ut1_jd(jd)
        tt1, tt2 = t.whole, t.tt_fraction
        rbpn = erfa.pnm06a(tt1, tt2)
        _, deps = erfa.nut06a(tt1, tt2)
        eps = erfa.obl06(tt1, tt2) + deps
        cos_eps, sin_eps = math.cos(eps), math.sin(eps)

        earth = self._kernel["earth"].at(t)
        positions: Dict[PlanetName, float] = {}
        for planet in CLASSICAL_BODIES:
            target = self._resolve_body(planet)
            gcrs = earth.observe(target).apparent().position.au
            x, y, z = erfa.rxp(rbpn, gcrs)
            y_ecl = y * cos_eps + z * sin_eps
            positions[planet] = normalize_degrees(math.degrees(math.atan2(y_ecl, x)))

        positions[PlanetName.RAHU] = _node_longitude(julian_centuries(jd), self.node_model)
        return positions


# ───────────────────────────── Provider ─────────────────────────────

class PlanetPositionProvider:
    """Validated tropical positions for all nine grahas."""

    def __init__(self, source: Optional[EphemerisSource] = None):
        self.source = source or LowPrecisionEphemeris()

    def positions_at(self, jd: float) -> Dict[PlanetName, float]:
        raw = self.source.tropical_longitudes(jd)

        missing = [body.value for body in SOURCE_BODIES if body not in raw]
        if missing:
            raise EphemerisUnavailable(
                f"Ephemeris source '{self.source.name}' returned no position for {missing}",
                source=self.source.name,
                missing=missing,
            )

        positions: Dict[PlanetName, float] = {}
        for body in SOURCE_BODIES:
            value = raw[body]
            if not math.isfinite(value):
                raise EphemerisUnavailable(
                    f"Ephemeris source '{self.source.name}' returned {value} for {body.value}",
                    source=self.source.name,
                    body=body.value,
                )
            positions[body] = normalize_degrees(value)

        positions[PlanetName.KETU] = normalize_degrees(positions[PlanetName.RAHU] + 180.0)
        return positions

    def daily_motion(self, jd: float, step_days: float = 0.5) -> Dict[PlanetName, float]:
        """
        Longitude speed in degrees/day by central difference.

        Near the edge of the source's coverage the side that falls outside
        is replaced by jd itself (a one-sided difference over step_days).
        jd itself must be covered.
        """
        t0, t1 = jd - step_days, jd + step_days
        try:
            before = self.positions_at(t0)
        except EphemerisUnavailable as e:
            log.debug(f"daily_motion at {jd}: backward step unavailable ({e}); using forward difference")
            t0, before = jd, self.positions_at(jd)
        try:
            after = self.positions_at(t1)
        except EphemerisUnavailable as e:
            if t0 == jd:
                raise
            log.debug(f"daily_motion at {jd}: forward step unavailable ({e}); using backward difference")
            t1, after = jd, self.positions_at(jd)
        return {
            body: wrap_difference(after[body], before[body]) / (t1 - t0)
            for body in PlanetName
        }
