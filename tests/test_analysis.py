from datetime import datetime

from analysis import (
    dominant,
    element_counts,
    export_analysis_text,
    generate_analysis,
    modality_counts,
)
from chart import BodyId, Element, Modality, aspect_catalog, make_body
from snapshot import build_snapshot, export_snapshot_json, load_snapshot_json, merge_transit


def _with_transits(snapshot):
    transit = [make_body(BodyId.SUN, 264.5), make_body(BodyId.MOON, 24.5)]
    return merge_transit(snapshot, datetime(2024, 3, 20, 9, 15), transit, aspect_catalog())


def test_counts(natal_snapshot):
    assert element_counts(natal_snapshot.planets) == {
        Element.FIRE: 1, Element.EARTH: 0, Element.AIR: 2, Element.WATER: 0
    }
    assert modality_counts(natal_snapshot.planets) == {
        Modality.CARDINAL: 2, Modality.FIXED: 0, Modality.MUTABLE: 1
    }


def test_dominant_ties_follow_table_order():
    assert dominant({Element.FIRE: 1, Element.EARTH: 1, Element.AIR: 1, Element.WATER: 1}) == Element.FIRE
    assert dominant({Modality.CARDINAL: 0, Modality.FIXED: 2, Modality.MUTABLE: 2}) == Modality.FIXED


def test_summary(natal_snapshot):
    summary = generate_analysis(natal_snapshot).summary
    assert summary.startswith("Natal Chart Analysis for Test User, born on 1990-06-15 at 14:30 in New York, NY.")
    assert "Ascendant in Cancer and Midheaven in Capricorn" in summary
    assert "The Sun is in Gemini" in summary
    assert "the Moon is in Libra" in summary
    assert "Mercury is in Unknown" in summary
    assert "The dominant element is Air and the dominant modality is Cardinal" in summary


def test_planets_section(natal_snapshot):
    text = generate_analysis(natal_snapshot).planets
    assert text.startswith("Planetary Positions Analysis:")
    assert "Sun in Gemini (24.5°) in House 3:" in text
    assert "Mars in Aries (10.0°) in House 1 Retrograde:" in text
    assert "how you express your core identity and purpose in the curious, versatile" in text
    assert "With Moon in the Seventh House" in text


def test_houses_section(natal_snapshot):
    text = generate_analysis(natal_snapshot).houses
    assert "House 3 (communication, learning, and immediate environment) in Gemini:" in text
    assert "Planets in this house: Sun" in text
    assert "No planets in this house." in text


def test_aspects_section(natal_snapshot):
    text = generate_analysis(natal_snapshot).aspects
    assert "Sun trine Moon (orb: 0.0°):" in text
    assert "suggests a harmonious and flowing interaction" in text


def test_aspects_section_without_aspects(birth, even_cusps):
    bodies = [make_body(BodyId.SUN, 0), make_body(BodyId.MOON, 100)]
    snapshot = build_snapshot(birth, bodies, even_cusps, aspect_catalog(), 0, 270)
    assert generate_analysis(snapshot).aspects.endswith("No significant aspects found in this chart.")


def test_elements_section(natal_snapshot):
    text = generate_analysis(natal_snapshot).elements
    assert "Air: 2 planets (67%)" in text
    assert "Fire: 1 planets (33%)" in text
    assert "Cardinal: 2 planets (67%)" in text
    assert "Missing elements: Earth, Water." in text
    assert "Underrepresented elements: Fire." in text
    assert "Dominant element" not in text


def test_dominant_element_reported_from_three(birth, even_cusps):
    bodies = [make_body(BodyId.SUN, 5), make_body(BodyId.MOON, 125), make_body(BodyId.MARS, 245)]
    text = generate_analysis(build_snapshot(birth, bodies, even_cusps, aspect_catalog(), 0, 270)).elements
    assert "Dominant element: Fire (3 planets)." in text


def test_no_transit_section_without_transits(natal_snapshot):
    assert generate_analysis(natal_snapshot).transits is None


def test_transit_section(natal_snapshot):
    text = generate_analysis(_with_transits(natal_snapshot)).transits
    assert text.startswith("Transit Analysis for 2024-03-20 at 09:15:00:")
    assert "Sun in Sagittarius (24.5°)" in text
    assert "Sun opposite natal Sun (orb: 0.0°):" in text
    assert "Transiting Moon sextile your natal Sun suggests a period where your express your core identity" in text


def test_export_text(natal_snapshot):
    text = export_analysis_text(natal_snapshot)
    assert text.startswith("# NATAL CHART ANALYSIS\n\n## Summary\n")
    for heading in ("## Planetary Positions", "## House Placements", "## Aspects", "## Elemental Balance"):
        assert heading in text
    assert "## Transit Analysis" not in text
    assert "## Transit Analysis" in export_analysis_text(_with_transits(natal_snapshot))


def test_analysis_of_reloaded_snapshot(natal_snapshot):
    reloaded = load_snapshot_json(export_snapshot_json(natal_snapshot))
    assert generate_analysis(reloaded).summary == generate_analysis(natal_snapshot).summary
