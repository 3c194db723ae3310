import json
from datetime import datetime

import pytest
from pydantic import ValidationError

from chart import AspectType, BodyId, Element, HouseCusp, Modality, aspect_catalog, make_body
from models import BirthData
from snapshot import (
    build_snapshot,
    export_snapshot_json,
    load_snapshot_json,
    merge_transit,
    natal_bodies,
)


def test_planet_placements(natal_snapshot):
    sun, moon, mars = natal_snapshot.planets

    assert sun.id == BodyId.SUN
    assert sun.planet == 'Sun'
    assert sun.sign == 'Gemini'
    assert sun.degree == '24.5'
    assert sun.house == 3
    assert sun.element == Element.AIR
    assert sun.modality == Modality.MUTABLE
    assert sun.longitude == 84.5
    assert sun.color == '#FFD700'

    assert moon.sign == 'Libra'
    assert moon.house == 7
    assert moon.modality == Modality.CARDINAL

    assert mars.sign == 'Aries'
    assert mars.house == 1
    assert mars.is_retrograde is True


def test_aspects_use_display_names_and_rounded_orbs(natal_snapshot):
    assert len(natal_snapshot.aspects) == 1
    aspect = natal_snapshot.aspects[0]
    assert aspect.aspect == AspectType.TRINE
    assert (aspect.planet1, aspect.planet2) == ('Sun', 'Moon')
    assert aspect.orb == '0.0'


def test_half_values_round_up_in_snapshot(birth, even_cusps):
    bodies = [make_body(BodyId.SUN, 45.25), make_body(BodyId.MOON, 167.5)]
    snapshot = build_snapshot(birth, bodies, even_cusps, aspect_catalog(), 0.0, 270.0)
    assert snapshot.planets[0].degree == '15.3'
    assert snapshot.aspects[0].aspect == AspectType.TRINE
    assert snapshot.aspects[0].orb == '2.3'


def test_houses_and_special_points(natal_snapshot):
    assert [h.house for h in natal_snapshot.houses] == list(range(1, 13))
    assert natal_snapshot.houses[0].sign == 'Aries'
    assert natal_snapshot.houses[0].degree == '0.0'
    assert natal_snapshot.houses[11].sign == 'Pisces'
    assert natal_snapshot.houses[11].longitude == 330.0

    asc = natal_snapshot.special_points.ascendant
    assert (asc.sign, asc.degree, asc.longitude) == ('Cancer', '10.0', 100.0)
    mc = natal_snapshot.special_points.midheaven
    assert (mc.sign, mc.degree) == ('Capricorn', '5.0')


def test_basic_info(natal_snapshot):
    info = natal_snapshot.basic_info
    assert info.name == 'Test User'
    assert info.birth_date == '1990-06-15'
    assert info.birth_time == '14:30'
    assert info.birth_place == 'New York, NY'
    assert info.latitude == 40.7128


def test_missing_birth_fields_render_unknown(sample_bodies, even_cusps):
    birth = BirthData(date='2000-01-01', time='12:00', latitude=0, longitude=0)
    snapshot = build_snapshot(birth, sample_bodies, even_cusps, aspect_catalog(), 0, 270)
    assert snapshot.basic_info.name == 'Unknown'
    assert snapshot.basic_info.birth_place == 'Unknown'


def test_timestamp_is_utc_iso(natal_snapshot):
    stamp = datetime.fromisoformat(natal_snapshot.timestamp)
    assert stamp.utcoffset().total_seconds() == 0


def test_snapshot_is_immutable(natal_snapshot):
    with pytest.raises(ValidationError):
        natal_snapshot.timestamp = 'later'


def test_snapshot_requires_twelve_houses(birth, sample_bodies, even_cusps):
    with pytest.raises(ValidationError):
        build_snapshot(birth, sample_bodies, even_cusps[:11], aspect_catalog(), 0, 270)


def test_json_export_uses_camel_case(natal_snapshot):
    data = json.loads(export_snapshot_json(natal_snapshot))
    assert set(data) == {
        'basicInfo', 'planets', 'houses', 'aspects', 'specialPoints', 'transits', 'timestamp'
    }
    assert data['basicInfo']['birthDate'] == '1990-06-15'
    assert data['planets'][0]['isRetrograde'] is False
    assert data['planets'][0]['element'] == 'Air'
    assert data['aspects'][0] == {'aspect': 'trine', 'planet1': 'Sun', 'planet2': 'Moon', 'orb': '0.0'}
    assert data['transits'] is None


def test_json_round_trip(natal_snapshot):
    restored = load_snapshot_json(export_snapshot_json(natal_snapshot))
    assert restored == natal_snapshot
    assert [(p.sign, p.house, p.element, p.modality) for p in restored.planets] == [
        (p.sign, p.house, p.element, p.modality) for p in natal_snapshot.planets
    ]


def test_wraparound_cusps_in_snapshot(birth, sample_bodies):
    cusps = [HouseCusp(1, 350.0)] + [HouseCusp(i + 2, 20.0 + 30 * i) for i in range(11)]
    snapshot = build_snapshot(birth, sample_bodies, cusps, aspect_catalog(), 350.0, 260.0)
    houses = {p.id: p.house for p in snapshot.planets}
    # Mars at 10 sits between the 350 and 20 cusps
    assert houses[BodyId.MARS] == 1
    assert houses[BodyId.SUN] == 4
    assert snapshot.houses[0].sign == 'Pisces'


class TestMergeTransit:
    MOMENT = datetime(2024, 3, 20, 9, 15)

    @pytest.fixture
    def transit_bodies(self):
        return [make_body(BodyId.SUN, 264.5), make_body(BodyId.MOON, 24.5, retrograde=False)]

    @pytest.fixture
    def merged(self, natal_snapshot, transit_bodies):
        return merge_transit(natal_snapshot, self.MOMENT, transit_bodies, aspect_catalog())

    def test_natal_part_is_kept(self, natal_snapshot, merged):
        assert merged.planets == natal_snapshot.planets
        assert merged.aspects == natal_snapshot.aspects
        assert natal_snapshot.transits is None

    def test_transit_meta(self, merged):
        assert merged.transits.date == '2024-03-20'
        assert merged.transits.time == '09:15:00'

    def test_transit_bodies_use_natal_houses(self, merged):
        sun, moon = merged.transits.planets
        assert (sun.sign, sun.house) == ('Sagittarius', 9)
        assert (moon.sign, moon.house) == ('Aries', 1)

    def test_transit_to_natal_aspects(self, merged):
        assert [
            (a.transit_planet, a.aspect, a.natal_planet, a.orb) for a in merged.transits.aspects
        ] == [
            ('Sun', AspectType.OPPOSITION, 'Sun', '0.0'),
            ('Sun', AspectType.SEXTILE, 'Moon', '0.0'),
            ('Moon', AspectType.SEXTILE, 'Sun', '0.0'),
            ('Moon', AspectType.OPPOSITION, 'Moon', '0.0'),
        ]

    def test_transit_to_transit_aspects(self, merged):
        assert [(a.planet1, a.aspect, a.planet2) for a in merged.transits.transit_to_transit] == [
            ('Sun', AspectType.TRINE, 'Moon'),
        ]

    def test_round_trip_with_transits(self, merged):
        text = export_snapshot_json(merged)
        assert 'transitToTransit' in json.loads(text)['transits']
        assert load_snapshot_json(text) == merged


def test_natal_bodies_rebuilt_from_snapshot(natal_snapshot, sample_bodies):
    assert natal_bodies(natal_snapshot) == [
        make_body(b.id, b.longitude, b.retrograde) for b in sample_bodies
    ]
