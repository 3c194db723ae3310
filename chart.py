"""
Chart computation engine.

Pure functions that place longitudes in zodiac signs and houses and detect
aspects between bodies. Nothing here performs I/O or keeps state: callers pass
in longitudes (from any position source) and get new values back.
"""

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple


logger = logging.getLogger(__name__)


class BodyId(str, Enum):
    SUN = "sun"
    MOON = "moon"
    MERCURY = "mercury"
    VENUS = "venus"
    MARS = "mars"
    JUPITER = "jupiter"
    SATURN = "saturn"
    URANUS = "uranus"
    NEPTUNE = "neptune"
    PLUTO = "pluto"
    CHIRON = "chiron"
    NORTH_NODE = "north_node"
    SOUTH_NODE = "south_node"
    ASCENDANT = "ascendant"
    MIDHEAVEN = "midheaven"


class Element(str, Enum):
    FIRE = "Fire"
    EARTH = "Earth"
    AIR = "Air"
    WATER = "Water"


class Modality(str, Enum):
    CARDINAL = "Cardinal"
    FIXED = "Fixed"
    MUTABLE = "Mutable"


class AspectType(str, Enum):
    CONJUNCTION = "conjunction"
    OPPOSITION = "opposition"
    TRINE = "trine"
    SQUARE = "square"
    SEXTILE = "sextile"
    SEMISEXTILE = "semisextile"
    SEMISQUARE = "semisquare"
    SESQUIQUADRATE = "sesquiquadrate"
    QUINCUNX = "quincunx"
    QUINTILE = "quintile"
    BIQUINTILE = "biquintile"


class AspectScope(str, Enum):
    """Which chart(s) the two bodies of an aspect come from."""
    NATAL = "natal"
    TRANSIT_TO_NATAL = "transit_to_natal"
    TRANSIT_TO_TRANSIT = "transit_to_transit"


@dataclass(frozen=True)
class ZodiacSign:
    index: int
    name: str
    symbol: str

    @property
    def element(self) -> Element:
        return element_for_sign(self.index)

    @property
    def modality(self) -> Modality:
        return modality_for_sign(self.index)


@dataclass(frozen=True)
class CelestialBody:
    """A tracked point as delivered by a position source."""
    id: BodyId
    name: str
    symbol: str
    longitude: float
    retrograde: bool = False
    latitude: Optional[float] = None
    color: Optional[str] = None


@dataclass(frozen=True)
class HouseCusp:
    number: int
    longitude: float


@dataclass(frozen=True)
class AspectDefinition:
    """Definition of an astrological aspect with a single orb."""
    aspect: AspectType
    angle: float
    orb: float
    symbol: str
    major: bool = True

    @property
    def name(self) -> str:
        return ChartConfig.ASPECT_NAMES.get(self.aspect, self.aspect.value.capitalize())


@dataclass(frozen=True)
class AspectMatch:
    definition: AspectDefinition
    orb: float

    @property
    def aspect(self) -> AspectType:
        return self.definition.aspect


@dataclass(frozen=True)
class DetectedAspect:
    first: BodyId
    second: BodyId
    aspect: AspectType
    orb: float
    scope: AspectScope = AspectScope.NATAL

    @property
    def display_orb(self) -> str:
        return format_degrees(self.orb)


@dataclass(frozen=True)
class SignPlacement:
    sign: ZodiacSign
    degree: float

    @property
    def element(self) -> Element:
        return self.sign.element

    @property
    def modality(self) -> Modality:
        return self.sign.modality


class ChartConfig:
    """Shared tables for chart calculations."""

    ELEMENTS = (Element.FIRE, Element.EARTH, Element.AIR, Element.WATER)
    MODALITIES = (Modality.CARDINAL, Modality.FIXED, Modality.MUTABLE)

    SIGNS = (
        ZodiacSign(0, 'Aries', '♈'),
        ZodiacSign(1, 'Taurus', '♉'),
        ZodiacSign(2, 'Gemini', '♊'),
        ZodiacSign(3, 'Cancer', '♋'),
        ZodiacSign(4, 'Leo', '♌'),
        ZodiacSign(5, 'Virgo', '♍'),
        ZodiacSign(6, 'Libra', '♎'),
        ZodiacSign(7, 'Scorpio', '♏'),
        ZodiacSign(8, 'Sagittarius', '♐'),
        ZodiacSign(9, 'Capricorn', '♑'),
        ZodiacSign(10, 'Aquarius', '♒'),
        ZodiacSign(11, 'Pisces', '♓'),
    )

    # (name, symbol, color) per body
    BODIES: Dict[BodyId, Tuple[str, str, str]] = {
        BodyId.SUN: ('Sun', '☉', '#FFD700'),
        BodyId.MOON: ('Moon', '☽', '#C0C0C0'),
        BodyId.MERCURY: ('Mercury', '☿', '#B5A642'),
        BodyId.VENUS: ('Venus', '♀', '#FFC0CB'),
        BodyId.MARS: ('Mars', '♂', '#FF0000'),
        BodyId.JUPITER: ('Jupiter', '♃', '#FFA500'),
        BodyId.SATURN: ('Saturn', '♄', '#808080'),
        BodyId.URANUS: ('Uranus', '♅', '#40E0D0'),
        BodyId.NEPTUNE: ('Neptune', '♆', '#0000FF'),
        BodyId.PLUTO: ('Pluto', '♇', '#800080'),
        BodyId.CHIRON: ('Chiron', '⚷', '#8B4513'),
        BodyId.NORTH_NODE: ('North Node', '☊', '#696969'),
        BodyId.SOUTH_NODE: ('South Node', '☋', '#696969'),
        BodyId.ASCENDANT: ('Ascendant', 'AC', '#000000'),
        BodyId.MIDHEAVEN: ('Midheaven', 'MC', '#000000'),
    }

    # Order matters: on an exact orb tie the earlier entry wins.
    ASPECTS = (
        AspectDefinition(AspectType.CONJUNCTION, 0, 8, '☌'),
        AspectDefinition(AspectType.OPPOSITION, 180, 8, '☍'),
        AspectDefinition(AspectType.TRINE, 120, 8, '△'),
        AspectDefinition(AspectType.SQUARE, 90, 7, '□'),
        AspectDefinition(AspectType.SEXTILE, 60, 6, '⚹'),
        AspectDefinition(AspectType.SEMISEXTILE, 30, 2, '⚺', False),
        AspectDefinition(AspectType.SEMISQUARE, 45, 2, '∠', False),
        AspectDefinition(AspectType.SESQUIQUADRATE, 135, 2, '⚼', False),
        AspectDefinition(AspectType.QUINCUNX, 150, 3, '⚻', False),
        AspectDefinition(AspectType.QUINTILE, 72, 2, 'Q', False),
        AspectDefinition(AspectType.BIQUINTILE, 144, 1.5, 'bQ', False),
    )

    ASPECT_NAMES = {
        AspectType.CONJUNCTION: 'Conjunction',
        AspectType.OPPOSITION: 'Opposition',
        AspectType.TRINE: 'Trine',
        AspectType.SQUARE: 'Square',
        AspectType.SEXTILE: 'Sextile',
        AspectType.SEMISEXTILE: 'Semi-sextile',
        AspectType.SEMISQUARE: 'Semi-square',
        AspectType.SESQUIQUADRATE: 'Sesquiquadrate',
        AspectType.QUINCUNX: 'Quincunx',
        AspectType.QUINTILE: 'Quintile',
        AspectType.BIQUINTILE: 'Biquintile',
    }


def make_body(body_id: BodyId, longitude: float, retrograde: bool = False,
              latitude: Optional[float] = None) -> CelestialBody:
    """Build a body using the default name, glyph and color for its id."""
    name, symbol, color = ChartConfig.BODIES.get(
        body_id, (body_id.value.replace('_', ' ').title(), '?', None)
    )
    return CelestialBody(body_id, name, symbol, longitude, retrograde, latitude, color)


def format_degrees(value: float) -> str:
    """Display form used everywhere a degree or orb leaves the engine.

    Halves round up on the exact binary value, so 2.25 shows as "2.3".
    """
    return str(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


# Angular math

def normalize_degrees(deg: float) -> float:
    """Normalize degrees to the 0-360 range."""
    result = deg % 360.0
    # -1e-20 % 360 rounds up to 360.0
    if result >= 360.0:
        return 0.0
    return result


def angular_separation(pos1: float, pos2: float) -> float:
    """
    Calculate the shortest angular distance between two positions.
    Always returns a positive value 0-180.
    """
    diff = abs(normalize_degrees(pos1) - normalize_degrees(pos2))
    return 360.0 - diff if diff > 180 else diff


def signed_angular_distance(from_pos: float, to_pos: float) -> float:
    """
    Calculate signed angular distance from one position to another.
    Positive = to_pos is ahead (counterclockwise) of from_pos.
    Returns value in range (-180, 180].
    """
    diff = normalize_degrees(to_pos) - normalize_degrees(from_pos)
    if diff > 180:
        diff -= 360
    elif diff <= -180:
        diff += 360
    return diff


def midpoint(pos1: float, pos2: float) -> float:
    """Midpoint on the shorter arc between two positions."""
    start = normalize_degrees(pos1)
    return normalize_degrees(start + signed_angular_distance(start, pos2) / 2)


# Zodiac classification

def sign_index(longitude: float) -> int:
    return int(math.floor(normalize_degrees(longitude) / 30))


def degree_in_sign(longitude: float) -> float:
    return normalize_degrees(longitude) % 30


def element_for_sign(index: int) -> Element:
    return ChartConfig.ELEMENTS[index % 4]


def modality_for_sign(index: int) -> Modality:
    return ChartConfig.MODALITIES[index % 3]


def zodiac_sign(longitude: float) -> ZodiacSign:
    return ChartConfig.SIGNS[sign_index(longitude)]


def sign_placement(longitude: float) -> SignPlacement:
    return SignPlacement(zodiac_sign(longitude), degree_in_sign(longitude))


# House location

def house_for_longitude(longitude: float, cusps: Sequence[float]) -> int:
    """
    Return the house (1-12) whose cusp interval contains the longitude.

    Cusps are taken in house order; spacing is arbitrary and an interval may
    wrap past 0°. Falls back to house 1 when the cusps do not tile the circle.
    """
    position = normalize_degrees(longitude)
    count = len(cusps)

    for i in range(count):
        start = normalize_degrees(cusps[i])
        end = normalize_degrees(cusps[(i + 1) % count])
        query = position

        if end < start:  # House spans 0°
            end += 360
            if query < start:
                query += 360

        if start <= query < end:
            return i + 1

    logger.warning(
        "Longitude %.4f not inside any of %d house cusps %s; defaulting to house 1",
        position, count, list(cusps),
    )
    return 1


# Aspect detection

def aspect_catalog(include_minor: bool = False,
                   orb_factor: float = 1.0) -> List[AspectDefinition]:
    """Default aspect definitions, optionally with minor aspects and scaled orbs."""
    return [
        AspectDefinition(a.aspect, a.angle, a.orb * orb_factor, a.symbol, a.major)
        for a in ChartConfig.ASPECTS
        if a.major or include_minor
    ]


def find_aspect(pos1: float, pos2: float,
                catalog: Sequence[AspectDefinition]) -> Optional[AspectMatch]:
    """
    Find the catalog aspect whose angle is closest to the separation of two
    positions, among those within orb. Exact ties keep the earlier entry.
    """
    sep = angular_separation(pos1, pos2)
    best: Optional[AspectMatch] = None

    for aspect_def in catalog:
        orb = abs(sep - aspect_def.angle)
        if orb > aspect_def.orb:
            continue
        if best is None or orb < best.orb:
            best = AspectMatch(aspect_def, orb)

    return best


def all_aspects(bodies: Sequence[CelestialBody],
                catalog: Sequence[AspectDefinition],
                scope: AspectScope = AspectScope.NATAL) -> List[DetectedAspect]:
    """Aspects between every unordered pair of bodies, in input order."""
    aspects = []

    for i, body1 in enumerate(bodies):
        for body2 in bodies[i + 1:]:
            match = find_aspect(body1.longitude, body2.longitude, catalog)
            if match is not None:
                aspects.append(DetectedAspect(body1.id, body2.id, match.aspect, match.orb, scope))

    return aspects


def transit_aspects(transit_bodies: Sequence[CelestialBody],
                    natal_bodies: Sequence[CelestialBody],
                    catalog: Sequence[AspectDefinition]) -> List[DetectedAspect]:
    """
    Transit-to-natal aspects for every (transit, natal) pair, followed by the
    aspects the transiting bodies form among themselves.
    """
    aspects = []

    for transit in transit_bodies:
        for natal in natal_bodies:
            match = find_aspect(transit.longitude, natal.longitude, catalog)
            if match is not None:
                aspects.append(DetectedAspect(
                    transit.id, natal.id, match.aspect, match.orb, AspectScope.TRANSIT_TO_NATAL
                ))

    aspects.extend(all_aspects(transit_bodies, catalog, AspectScope.TRANSIT_TO_TRANSIT))
    return aspects
