"""
Position sources.

A position source turns a moment and a place into body longitudes, twelve
house cusps, the ascendant and the midheaven. The chart engine treats those
values as opaque input, so any source can be swapped in:

- ``MockEphemeris``: deterministic hash-based positions. NOT astronomy; used
  for demos and tests where reproducible but arbitrary charts are enough.
- ``SwissEphemeris``: real positions from the Swiss Ephemeris (Moshier
  fallback when no ephemeris files are installed).
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Union

import pytz
import swisseph as swe

from chart import BodyId, CelestialBody, HouseCusp, make_body, normalize_degrees
from exceptions import EphemerisUnavailableError, InvalidCoordinatesError, InvalidTimezoneError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChartPositions:
    """Everything a position source yields for one moment and place."""
    bodies: List[CelestialBody]
    cusps: List[HouseCusp]
    ascendant: float
    midheaven: float


def parse_timezone(timezone: Optional[Union[str, pytz.tzinfo.BaseTzInfo]]):
    if timezone is None:
        return None
    if isinstance(timezone, str):
        try:
            return pytz.timezone(timezone)
        except pytz.exceptions.UnknownTimeZoneError:
            raise InvalidTimezoneError(f"Unknown timezone: {timezone}")
    return timezone


def to_utc(dt: datetime, timezone=None) -> datetime:
    """Interpret a naive datetime in the given timezone (UTC if none) and convert to UTC."""
    if dt.tzinfo is not None:
        return dt.astimezone(pytz.UTC)
    tz = parse_timezone(timezone)
    if tz is not None:
        try:
            local_dt = tz.localize(dt, is_dst=None)
        except pytz.exceptions.AmbiguousTimeError:
            local_dt = tz.localize(dt, is_dst=False)
        except pytz.exceptions.NonExistentTimeError:
            local_dt = tz.localize(dt, is_dst=True)
        return local_dt.astimezone(pytz.UTC)
    return dt.replace(tzinfo=pytz.UTC)


def validate_coordinates(latitude: float, longitude: float) -> None:
    if not -90 <= latitude <= 90:
        raise InvalidCoordinatesError("Latitude must be between -90 and 90")
    if not -180 <= longitude <= 180:
        raise InvalidCoordinatesError("Longitude must be between -180 and 180")


def _string_hash(seed: str) -> int:
    """Java-style 31x string hash wrapped to a signed 32-bit integer."""
    h = 0
    for ch in seed:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    return h - 0x100000000 if h >= 0x80000000 else h


def pseudo_random_degree(seed: str, low: int = 0, high: int = 360) -> int:
    """Deterministic integer in [low, high) derived from the seed."""
    return abs(_string_hash(seed)) % (high - low) + low


class MockEphemeris:
    """Deterministic stand-in for an ephemeris."""

    name = 'mock'
    BODIES = (
        BodyId.SUN, BodyId.MOON, BodyId.MERCURY, BodyId.VENUS, BodyId.MARS,
        BodyId.JUPITER, BodyId.SATURN, BodyId.URANUS, BodyId.NEPTUNE, BodyId.PLUTO,
    )

    def positions(self, moment: datetime, latitude: float, longitude: float) -> ChartPositions:
        validate_coordinates(latitude, longitude)
        timestamp = int(to_utc(moment).timestamp() * 1000)
        suffix = f"{timestamp}-{latitude:.2f}-{longitude:.2f}"

        bodies = []
        for body_id in self.BODIES:
            seed = f"{body_id.value}-{suffix}"
            bodies.append(make_body(
                body_id,
                float(pseudo_random_degree(seed)),
                retrograde=pseudo_random_degree(seed + 'retro', 0, 10) > 7,
                latitude=float(pseudo_random_degree(seed + 'lat', -10, 10)),
            ))

        cusps = []
        for index in range(12):
            variation = pseudo_random_degree(f"house-{index + 1}-{suffix}", -10, 10)
            cusps.append(HouseCusp(index + 1, normalize_degrees(index * 30 + variation)))

        return ChartPositions(
            bodies=bodies,
            cusps=cusps,
            ascendant=float(pseudo_random_degree(f"asc-{suffix}")),
            midheaven=float(pseudo_random_degree(f"mc-{suffix}")),
        )


class SwissEphemeris:
    """Positions and houses from the Swiss Ephemeris."""

    name = 'swisseph'

    PLANETS_CORE = {
        BodyId.SUN: swe.SUN,
        BodyId.MOON: swe.MOON,
        BodyId.MERCURY: swe.MERCURY,
        BodyId.VENUS: swe.VENUS,
        BodyId.MARS: swe.MARS,
        BodyId.JUPITER: swe.JUPITER,
        BodyId.SATURN: swe.SATURN,
        BodyId.URANUS: swe.URANUS,
        BodyId.NEPTUNE: swe.NEPTUNE,
        BodyId.PLUTO: swe.PLUTO,
    }

    HOUSE_SYSTEMS = {
        'Placidus': b'P',
        'Koch': b'K',
        'Equal (ASC)': b'A',
        'Equal (MC)': b'E',
        'Whole Sign': b'W',
        'Campanus': b'C',
        'Regiomontanus': b'R',
        'Porphyry': b'O',
        'Morinus': b'M',
        'Alcabitius': b'B',
        'Topocentric': b'T',
    }

    def __init__(self, ephemeris_path: Optional[str] = None, house_system: str = 'Placidus'):
        if house_system not in self.HOUSE_SYSTEMS:
            raise ValueError(f"Unknown house system: {house_system}")
        self.house_system = house_system
        self.house_system_code = self.HOUSE_SYSTEMS[house_system]
        self._use_moshier = True
        self._init_ephemeris(ephemeris_path)

    def _init_ephemeris(self, ephemeris_path: Optional[str]) -> None:
        if ephemeris_path and os.path.isdir(ephemeris_path):
            try:
                files = os.listdir(ephemeris_path)
            except OSError as e:
                logger.warning("Cannot read ephemeris directory %s: %s", ephemeris_path, e)
                return
            if any(f.endswith('.se1') for f in files):
                swe.set_ephe_path(str(ephemeris_path))
                self._use_moshier = False
        if self._use_moshier:
            logger.debug("Using Moshier ephemeris")

    def _get_calc_flags(self) -> int:
        flags = swe.FLG_MOSEPH if self._use_moshier else swe.FLG_SWIEPH
        return flags | swe.FLG_SPEED

    @staticmethod
    def julian_day(dt: datetime) -> float:
        hour_decimal = dt.hour + dt.minute / 60.0 + dt.second / 3600.0 + dt.microsecond / 3600000000.0
        return swe.julday(dt.year, dt.month, dt.day, hour_decimal)

    def _calculate_body(self, jd: float, body_id: BodyId, planet_id: int, flags: int) -> CelestialBody:
        result, _ = swe.calc_ut(jd, planet_id, flags)
        return make_body(body_id, result[0], retrograde=result[3] < 0, latitude=result[1])

    def positions(self, moment: datetime, latitude: float, longitude: float) -> ChartPositions:
        validate_coordinates(latitude, longitude)
        jd = self.julian_day(to_utc(moment))
        flags = self._get_calc_flags()

        bodies = [
            self._calculate_body(jd, body_id, planet_id, flags)
            for body_id, planet_id in self.PLANETS_CORE.items()
        ]

        try:
            bodies.append(self._calculate_body(jd, BodyId.CHIRON, swe.CHIRON, flags))
        except swe.Error as e:
            # Chiron needs the asteroid files
            logger.info("Chiron unavailable: %s", e)

        node = self._calculate_body(jd, BodyId.NORTH_NODE, swe.TRUE_NODE, flags)
        bodies.append(node)
        bodies.append(make_body(
            BodyId.SOUTH_NODE, normalize_degrees(node.longitude + 180), retrograde=node.retrograde
        ))

        cusps_raw, ascmc = swe.houses_ex(jd, latitude, longitude, self.house_system_code)
        cusps = [HouseCusp(i + 1, lon) for i, lon in enumerate(list(cusps_raw)[:12])]

        return ChartPositions(bodies=bodies, cusps=cusps, ascendant=ascmc[0], midheaven=ascmc[1])


def get_ephemeris(mode: str = 'mock', ephemeris_path: Optional[str] = None,
                  house_system: str = 'Placidus'):
    """Position source for a mode name."""
    if mode == 'mock':
        return MockEphemeris()
    if mode == 'swisseph':
        return SwissEphemeris(ephemeris_path, house_system)
    raise EphemerisUnavailableError(f"Unknown ephemeris mode: {mode}")
