"""
Chart snapshot assembly.

Turns engine output (placements, houses, aspects) into the immutable
``ChartSnapshot`` that the API, the JSON export and the analysis text consume.
All display rounding happens here; raw longitudes keep full precision.
"""

from datetime import datetime, timezone
from typing import Dict, List, Sequence

from chart import (
    AspectDefinition, AspectScope, BodyId, CelestialBody, DetectedAspect, HouseCusp,
    all_aspects, format_degrees, house_for_longitude, sign_placement, transit_aspects,
)
from models import (
    AspectEntry, BasicInfo, BirthData, ChartSnapshot, HousePlacement, PlanetPlacement,
    PointPlacement, SpecialPoints, TransitAspectEntry, TransitSnapshot,
)


UNKNOWN = 'Unknown'


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _basic_info(birth: BirthData) -> BasicInfo:
    return BasicInfo(
        name=birth.name or UNKNOWN,
        birth_date=birth.date.isoformat(),
        birth_time=birth.time,
        birth_place=birth.place or UNKNOWN,
        latitude=birth.latitude,
        longitude=birth.longitude,
    )


def place_body(body: CelestialBody, cusps: Sequence[float]) -> PlanetPlacement:
    """Sign, house and classification of one body against the given cusps."""
    placement = sign_placement(body.longitude)
    return PlanetPlacement(
        id=body.id,
        planet=body.name,
        symbol=body.symbol,
        longitude=body.longitude,
        sign=placement.sign.name,
        degree=format_degrees(placement.degree),
        house=house_for_longitude(body.longitude, cusps),
        is_retrograde=body.retrograde,
        element=placement.element,
        modality=placement.modality,
        color=body.color,
    )


def place_point(longitude: float) -> PointPlacement:
    placement = sign_placement(longitude)
    return PointPlacement(
        longitude=longitude,
        sign=placement.sign.name,
        degree=format_degrees(placement.degree),
    )


def _house_placements(cusps: Sequence[HouseCusp]) -> List[HousePlacement]:
    houses = []
    for cusp in cusps:
        placement = sign_placement(cusp.longitude)
        houses.append(HousePlacement(
            house=cusp.number,
            sign=placement.sign.name,
            degree=format_degrees(placement.degree),
            longitude=cusp.longitude,
        ))
    return houses


def _aspect_entries(aspects: Sequence[DetectedAspect], names: Dict[BodyId, str]) -> List[AspectEntry]:
    return [
        AspectEntry(
            aspect=a.aspect,
            planet1=names.get(a.first, a.first.value),
            planet2=names.get(a.second, a.second.value),
            orb=a.display_orb,
        )
        for a in aspects
    ]


def build_snapshot(birth: BirthData,
                   bodies: Sequence[CelestialBody],
                   cusps: Sequence[HouseCusp],
                   catalog: Sequence[AspectDefinition],
                   ascendant: float,
                   midheaven: float) -> ChartSnapshot:
    """
    Assemble the natal snapshot for the given positions.

    Args:
        birth: Birth moment and place (only echoed into ``basicInfo``)
        bodies: Bodies from a position source
        cusps: The 12 house cusps in house order
        catalog: Aspect definitions to detect
        ascendant: Ascendant longitude
        midheaven: Midheaven longitude
    """
    cusp_longitudes = [c.longitude for c in cusps]
    names = {b.id: b.name for b in bodies}

    return ChartSnapshot(
        basic_info=_basic_info(birth),
        planets=[place_body(b, cusp_longitudes) for b in bodies],
        houses=_house_placements(cusps),
        aspects=_aspect_entries(all_aspects(bodies, catalog), names),
        special_points=SpecialPoints(
            ascendant=place_point(ascendant),
            midheaven=place_point(midheaven),
        ),
        timestamp=_utc_timestamp(),
    )


def natal_bodies(snapshot: ChartSnapshot) -> List[CelestialBody]:
    """Rebuild engine bodies from the planets of a snapshot."""
    return [
        CelestialBody(p.id, p.planet, p.symbol, p.longitude, p.is_retrograde, None, p.color)
        for p in snapshot.planets
    ]


def merge_transit(natal_snapshot: ChartSnapshot,
                  moment: datetime,
                  transit_bodies: Sequence[CelestialBody],
                  catalog: Sequence[AspectDefinition]) -> ChartSnapshot:
    """
    Return a copy of the natal snapshot with a ``transits`` section for the
    given moment. Transiting bodies are housed against the natal cusps.
    """
    natal = natal_bodies(natal_snapshot)
    natal_cusps = [h.longitude for h in natal_snapshot.houses]
    transit_names = {b.id: b.name for b in transit_bodies}
    natal_names = {b.id: b.name for b in natal}

    cross = []
    among_transits = []
    for a in transit_aspects(transit_bodies, natal, catalog):
        if a.scope == AspectScope.TRANSIT_TO_NATAL:
            cross.append(TransitAspectEntry(
                aspect=a.aspect,
                transit_planet=transit_names.get(a.first, a.first.value),
                natal_planet=natal_names.get(a.second, a.second.value),
                orb=a.display_orb,
            ))
        else:
            among_transits.append(a)

    transits = TransitSnapshot(
        date=moment.date().isoformat(),
        time=moment.strftime('%H:%M:%S'),
        planets=[place_body(b, natal_cusps) for b in transit_bodies],
        aspects=cross,
        transit_to_transit=_aspect_entries(among_transits, transit_names),
    )
    return natal_snapshot.model_copy(update={'transits': transits, 'timestamp': _utc_timestamp()})


def export_snapshot_json(snapshot: ChartSnapshot) -> str:
    """Serialize with the camelCase keys consumers expect."""
    return snapshot.model_dump_json(by_alias=True, indent=2)


def load_snapshot_json(text: str) -> ChartSnapshot:
    return ChartSnapshot.model_validate_json(text)
