from datetime import date

import pytest
from fastapi.testclient import TestClient

from chart import BodyId, HouseCusp, aspect_catalog, make_body
from models import BirthData
from settings import Settings, get_settings
from snapshot import build_snapshot


@pytest.fixture
def birth():
    return BirthData(
        name="Test User",
        date=date(1990, 6, 15),
        time="14:30",
        place="New York, NY",
        latitude=40.7128,
        longitude=-74.0060,
        timezone="America/New_York",
    )


@pytest.fixture
def even_cusps():
    return [HouseCusp(i + 1, i * 30.0) for i in range(12)]


@pytest.fixture
def sample_bodies():
    # Sun in Gemini, Moon in Libra (exact trine), Mars in Aries
    return [
        make_body(BodyId.SUN, 84.5),
        make_body(BodyId.MOON, 204.5),
        make_body(BodyId.MARS, 10.0, retrograde=True),
    ]


@pytest.fixture
def natal_snapshot(birth, sample_bodies, even_cusps):
    return build_snapshot(birth, sample_bodies, even_cusps, aspect_catalog(), 100.0, 275.0)


@pytest.fixture
def api_settings(tmp_path):
    return Settings(ephemeris_mode="mock", profiles_path=tmp_path / "profiles.json")


@pytest.fixture
def client(api_settings):
    from main import app

    app.dependency_overrides[get_settings] = lambda: api_settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
