"""
Plain-text interpretation of a chart snapshot.

Only the snapshot contract is consumed here, so an analysis can be produced
for any snapshot, including one loaded back from its JSON export.
"""

import math
from typing import Dict, List, Optional

from chart import AspectType, BodyId, ChartConfig, Element, Modality
from models import ChartAnalysis, ChartSnapshot, PlanetPlacement


PLANET_FUNCTIONS = {
    BodyId.SUN: 'express your core identity and purpose',
    BodyId.MOON: 'respond emotionally and seek security',
    BodyId.MERCURY: 'think, communicate, and process information',
    BodyId.VENUS: 'relate to others and experience pleasure',
    BodyId.MARS: 'assert yourself and take action',
    BodyId.JUPITER: 'grow, expand, and find meaning',
    BodyId.SATURN: 'structure, limit, and take responsibility',
    BodyId.URANUS: 'innovate, rebel, and seek freedom',
    BodyId.NEPTUNE: 'dream, imagine, and transcend boundaries',
    BodyId.PLUTO: 'transform, empower, and regenerate',
    BodyId.CHIRON: 'face old wounds and help others heal',
    BodyId.NORTH_NODE: 'grow toward your life direction',
    BodyId.SOUTH_NODE: 'fall back on familiar habits',
}

TRANSIT_INFLUENCES = {
    BodyId.SUN: 'conscious awareness and vitality',
    BodyId.MOON: 'emotional fluctuations and needs',
    BodyId.MERCURY: 'communication and thought patterns',
    BodyId.VENUS: 'relationship dynamics and values',
    BodyId.MARS: 'energy, action, and assertiveness',
    BodyId.JUPITER: 'growth, expansion, and opportunity',
    BodyId.SATURN: 'structure, limitation, and responsibility',
    BodyId.URANUS: 'sudden change, innovation, and freedom',
    BodyId.NEPTUNE: 'inspiration, confusion, or spiritual awareness',
    BodyId.PLUTO: 'deep transformation and empowerment',
}

SIGN_TRAITS = {
    'Aries': 'assertive, pioneering, and direct',
    'Taurus': 'steady, sensual, and resource-conscious',
    'Gemini': 'curious, versatile, and communicative',
    'Cancer': 'nurturing, protective, and emotionally sensitive',
    'Leo': 'expressive, proud, and creative',
    'Virgo': 'analytical, practical, and detail-oriented',
    'Libra': 'harmonious, relationship-focused, and fair-minded',
    'Scorpio': 'intense, transformative, and deeply perceptive',
    'Sagittarius': 'expansive, truth-seeking, and optimistic',
    'Capricorn': 'ambitious, disciplined, and achievement-oriented',
    'Aquarius': 'innovative, humanitarian, and independent',
    'Pisces': 'compassionate, intuitive, and spiritually attuned',
}

HOUSE_TOPICS = {
    1: 'self-identity and personal appearance',
    2: 'personal resources, values, and possessions',
    3: 'communication, learning, and immediate environment',
    4: 'home, family, and emotional foundations',
    5: 'creativity, self-expression, and pleasure',
    6: 'work, health, and daily routines',
    7: 'partnerships, relationships, and open enemies',
    8: 'shared resources, transformation, and intimacy',
    9: 'higher education, philosophy, and long-distance travel',
    10: 'career, public reputation, and authority',
    11: 'friendships, groups, and future aspirations',
    12: 'unconscious, spirituality, and hidden matters',
}

HOUSE_ORDINALS = {
    1: 'First', 2: 'Second', 3: 'Third', 4: 'Fourth',
    5: 'Fifth', 6: 'Sixth', 7: 'Seventh', 8: 'Eighth',
    9: 'Ninth', 10: 'Tenth', 11: 'Eleventh', 12: 'Twelfth',
}

ASPECT_VERBS = {
    AspectType.CONJUNCTION: 'conjunct',
    AspectType.OPPOSITION: 'opposite',
    AspectType.TRINE: 'trine',
    AspectType.SQUARE: 'square',
    AspectType.SEXTILE: 'sextile',
}

ASPECT_QUALITIES = {
    AspectType.CONJUNCTION: 'blended and intensified',
    AspectType.OPPOSITION: 'polarized and balanced',
    AspectType.TRINE: 'harmonious and flowing',
    AspectType.SQUARE: 'tense and challenging',
    AspectType.SEXTILE: 'supportive and opportunistic',
    AspectType.QUINCUNX: 'awkward and adjusting',
}

ASPECT_INFLUENCES = {
    AspectType.CONJUNCTION: 'intensified by',
    AspectType.OPPOSITION: 'challenged or balanced by',
    AspectType.TRINE: 'supported and enhanced by',
    AspectType.SQUARE: 'challenged or stressed by',
    AspectType.SEXTILE: 'given opportunity through',
}

ELEMENT_TRAITS = {
    Element.FIRE: 'energetic, passionate, and action-oriented',
    Element.EARTH: 'practical, grounded, and stability-focused',
    Element.AIR: 'intellectual, communicative, and socially oriented',
    Element.WATER: 'emotional, intuitive, and empathetic',
}

MODALITY_TRAITS = {
    Modality.CARDINAL: 'initiating and leadership-oriented',
    Modality.FIXED: 'persistent, determined, and resistant to change',
    Modality.MUTABLE: 'adaptable, flexible, and versatile',
}

MISSING_ELEMENT_NOTES = {
    Element.FIRE: 'You may find it challenging to take initiative or express passion and enthusiasm.',
    Element.EARTH: 'You might struggle with practical matters, stability, or grounding yourself.',
    Element.AIR: 'Communication and intellectual analysis may be areas for development.',
    Element.WATER: 'Emotional expression and intuitive understanding could be challenging areas.',
}

DOMINANT_ELEMENT_NOTES = {
    Element.FIRE: 'You are likely energetic, enthusiastic, and action-oriented in your approach to life.',
    Element.EARTH: 'You tend to be practical, reliable, and focused on tangible results.',
    Element.AIR: 'Your approach to life is likely intellectual, communicative, and socially oriented.',
    Element.WATER: 'You are probably emotionally sensitive, intuitive, and empathetically attuned to others.',
}

DOMINANT_MODALITY_NOTES = {
    Modality.CARDINAL: 'You tend to be a self-starter who initiates action and takes the lead.',
    Modality.FIXED: 'You are likely persistent, determined, and resistant to change once committed.',
    Modality.MUTABLE: 'You tend to be adaptable, flexible, and responsive to changing circumstances.',
}

DOMINANCE_THRESHOLD = 3


def _planet_function(body_id: Optional[BodyId]) -> str:
    return PLANET_FUNCTIONS.get(body_id, 'express yourself')


def _house_topic(house: int) -> str:
    return HOUSE_TOPICS.get(house, '')


def _house_ordinal(house: int) -> str:
    return HOUSE_ORDINALS.get(house, str(house))


def _aspect_verb(aspect: AspectType) -> str:
    return ASPECT_VERBS.get(aspect, ChartConfig.ASPECT_NAMES.get(aspect, aspect.value).lower())


def _percentage(count: int, total: int) -> int:
    if not total:
        return 0
    # Round half up
    return int(math.floor(count / total * 100 + 0.5))


def element_counts(planets: List[PlanetPlacement]) -> Dict[Element, int]:
    counts = {element: 0 for element in ChartConfig.ELEMENTS}
    for planet in planets:
        counts[planet.element] += 1
    return counts


def modality_counts(planets: List[PlanetPlacement]) -> Dict[Modality, int]:
    counts = {modality: 0 for modality in ChartConfig.MODALITIES}
    for planet in planets:
        counts[planet.modality] += 1
    return counts


def dominant(counts: Dict) -> object:
    """Key with the highest count; ties resolve to table order."""
    return max(counts, key=counts.get)


def _sign_of(planets: List[PlanetPlacement], body_id: BodyId) -> str:
    for planet in planets:
        if planet.id == body_id:
            return planet.sign
    return 'Unknown'


def _summary(snapshot: ChartSnapshot) -> str:
    info = snapshot.basic_info
    points = snapshot.special_points
    planets = snapshot.planets
    element = dominant(element_counts(planets))
    modality = dominant(modality_counts(planets))

    return (
        f"Natal Chart Analysis for {info.name}, born on {info.birth_date} at {info.birth_time} "
        f"in {info.birth_place}.\n\n"
        f"This chart has Ascendant in {points.ascendant.sign} and Midheaven in {points.midheaven.sign}.\n"
        f"The Sun is in {_sign_of(planets, BodyId.SUN)},\n"
        f"the Moon is in {_sign_of(planets, BodyId.MOON)},\n"
        f"and Mercury is in {_sign_of(planets, BodyId.MERCURY)}.\n\n"
        f"The dominant element is {element.value} and the dominant modality is {modality.value},\n"
        f"suggesting a personality that tends to be {ELEMENT_TRAITS[element]}\n"
        f"and {MODALITY_TRAITS[modality]}."
    )


def _planets(snapshot: ChartSnapshot) -> str:
    lines = ['Planetary Positions Analysis:\n']
    for p in snapshot.planets:
        retro = ' Retrograde' if p.is_retrograde else ''
        retro_note = (
            ' The retrograde motion suggests a more internalized or reflective expression of this energy.'
            if p.is_retrograde else ''
        )
        lines.append(f"{p.planet} in {p.sign} ({p.degree}°) in House {p.house}{retro}:")
        lines.append(
            f"{p.planet} in {p.sign} indicates a specific way of expressing the energy of {p.planet}."
            f"{retro_note} This placement influences how you {_planet_function(p.id)} "
            f"in the {SIGN_TRAITS.get(p.sign, '')} manner of {p.sign}."
        )
        lines.append(
            f"With {p.planet} in the {_house_ordinal(p.house)} House, the energy of {p.planet} "
            f"is expressed in the area of life related to {_house_topic(p.house)}.\n"
        )
    return '\n'.join(lines)


def _houses(snapshot: ChartSnapshot) -> str:
    lines = ['House Placements Analysis:\n']
    for house in snapshot.houses:
        occupants = [p.planet for p in snapshot.planets if p.house == house.house]
        lines.append(f"House {house.house} ({_house_topic(house.house)}) in {house.sign}:")
        if occupants:
            lines.append(f"Planets in this house: {', '.join(occupants)}")
        else:
            lines.append('No planets in this house.')
        lines.append(
            f"With the {_house_ordinal(house.house)} House in {house.sign}, you approach matters of "
            f"{_house_topic(house.house)} with the {SIGN_TRAITS.get(house.sign, '')} energy of {house.sign}.\n"
        )
    return '\n'.join(lines)


def _aspects(snapshot: ChartSnapshot) -> str:
    if not snapshot.aspects:
        return 'Aspect Analysis:\n\nNo significant aspects found in this chart.'

    ids = {p.planet: p.id for p in snapshot.planets}
    lines = ['Aspect Analysis:\n']
    for a in snapshot.aspects:
        lines.append(f"{a.planet1} {_aspect_verb(a.aspect)} {a.planet2} (orb: {a.orb}°):")
        lines.append(
            f"The {a.aspect.value} between {a.planet1} and {a.planet2} suggests a "
            f"{ASPECT_QUALITIES.get(a.aspect, 'subtle')} interaction between how you "
            f"{_planet_function(ids.get(a.planet1))} and how you {_planet_function(ids.get(a.planet2))}.\n"
        )
    return '\n'.join(lines)


def _elements(snapshot: ChartSnapshot) -> str:
    planets = snapshot.planets
    total = len(planets)
    elements = element_counts(planets)
    modalities = modality_counts(planets)

    lines = ['Elemental and Modality Balance:', '', 'Elements:']
    for element, count in elements.items():
        lines.append(f"{element.value}: {count} planets ({_percentage(count, total)}%)")
    lines += ['', 'Modalities:']
    for modality, count in modalities.items():
        lines.append(f"{modality.value}: {count} planets ({_percentage(count, total)}%)")
    lines += ['', 'Overall Balance Interpretation:']

    missing = [e for e, count in elements.items() if count == 0]
    if missing:
        notes = ' '.join(MISSING_ELEMENT_NOTES[e] for e in missing)
        lines.append(f"Missing elements: {', '.join(e.value for e in missing)}. {notes}")

    scarce = [e for e, count in elements.items() if count == 1]
    if scarce:
        lines.append(
            f"Underrepresented elements: {', '.join(e.value for e in scarce)}. This suggests a need to "
            f"consciously develop and integrate these qualities for greater balance."
        )

    element = dominant(elements)
    if elements[element] >= DOMINANCE_THRESHOLD:
        lines.append(
            f"Dominant element: {element.value} ({elements[element]} planets). {DOMINANT_ELEMENT_NOTES[element]}"
        )

    modality = dominant(modalities)
    if modalities[modality] >= DOMINANCE_THRESHOLD:
        lines.append(
            f"Dominant modality: {modality.value} ({modalities[modality]} planets). "
            f"{DOMINANT_MODALITY_NOTES[modality]}"
        )

    return '\n'.join(lines) + '\n'


def _transits(snapshot: ChartSnapshot) -> str:
    transits = snapshot.transits
    if transits is None:
        return 'No transit data available.'

    lines = [f"Transit Analysis for {transits.date} at {transits.time}:", '', 'Current Planetary Positions:']
    for p in transits.planets:
        retro = ' Retrograde' if p.is_retrograde else ''
        lines.append(f"{p.planet} in {p.sign} ({p.degree}°){retro}")

    if not transits.aspects:
        lines += ['', 'No significant transit aspects to natal chart at this time.']
        return '\n'.join(lines) + '\n'

    transit_ids = {p.planet: p.id for p in transits.planets}
    natal_ids = {p.planet: p.id for p in snapshot.planets}
    lines += ['', 'Significant Transit Aspects to Natal Chart:']
    for a in transits.aspects:
        lines.append(
            f"{a.transit_planet} {_aspect_verb(a.aspect)} natal {a.natal_planet} (orb: {a.orb}°):"
        )
        lines.append(
            f"Transiting {a.transit_planet} {_aspect_verb(a.aspect)} your natal {a.natal_planet} suggests "
            f"a period where your {_planet_function(natal_ids.get(a.natal_planet))} is being "
            f"{ASPECT_INFLUENCES.get(a.aspect, 'influenced by')} "
            f"{TRANSIT_INFLUENCES.get(transit_ids.get(a.transit_planet), 'planetary energies')}.\n"
        )
    return '\n'.join(lines)


def generate_analysis(snapshot: ChartSnapshot) -> ChartAnalysis:
    """Build every analysis section; ``transits`` is None without transit data."""
    return ChartAnalysis(
        summary=_summary(snapshot),
        planets=_planets(snapshot),
        houses=_houses(snapshot),
        aspects=_aspects(snapshot),
        elements=_elements(snapshot),
        transits=_transits(snapshot) if snapshot.transits is not None else None,
    )


def export_analysis_text(snapshot: ChartSnapshot) -> str:
    """Analysis rendered as one markdown document."""
    analysis = generate_analysis(snapshot)
    sections = [
        ('Summary', analysis.summary),
        ('Planetary Positions', analysis.planets),
        ('House Placements', analysis.houses),
        ('Aspects', analysis.aspects),
        ('Elemental Balance', analysis.elements),
    ]
    if analysis.transits:
        sections.append(('Transit Analysis', analysis.transits))

    text = '# NATAL CHART ANALYSIS\n\n'
    for title, body in sections:
        text += f"## {title}\n{body}\n\n"
    return text
