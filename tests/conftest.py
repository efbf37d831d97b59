"""
PyTest configuration and shared fixtures.
"""

import pytest

from mathemelody.infrastructure.config.settings import (
    AppConfig,
    AuthConfig,
    DatabaseConfig,
    LoggingConfig,
    set_config,
)
from mathemelody.playback.engine import PlaybackEngine
from mathemelody.playback.scheduler import ManualScheduler
from mathemelody.playback.tone import RecordingSink, ToneTrigger

# Small sample rate keeps rendered tones cheap
TEST_SAMPLE_RATE = 8000


@pytest.fixture
def scheduler():
    """Virtual clock; nothing fires until the test advances it."""
    return ManualScheduler()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def engine(scheduler, sink):
    """Engine with a 4-step grid at 120 BPM, recording every tone."""
    trigger = ToneTrigger(sink, sample_rate=TEST_SAMPLE_RATE, clock=scheduler.now)
    return PlaybackEngine(scheduler, trigger, grid_size=4, tempo=120)


@pytest.fixture
def test_config(tmp_path):
    """Config pointing at a throwaway SQLite file."""
    return AppConfig(
        environment="testing",
        logging=LoggingConfig(level="WARNING"),
        database=DatabaseConfig(url=f"sqlite:///{tmp_path / 'mathemelody-test.db'}"),
        auth=AuthConfig(jwt_secret="test-secret", bcrypt_rounds=4),
    )


@pytest.fixture(autouse=True)
def reset_global_config():
    """Keep the process-wide config from leaking between tests."""
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def client(test_config):
    """TestClient with the lifespan running, so the database is connected."""
    from fastapi.testclient import TestClient

    from mathemelody.api.app import create_app

    with TestClient(create_app(test_config)) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register a user and return ``(user, auth headers)``."""

    def _register(username: str = "fourier", password: str = "harmonic"):
        response = client.post(
            "/api/auth/register",
            json={"username": username, "email": f"{username}@mathemelody.io", "password": password},
        )
        assert response.status_code == 201, response.text
        data = response.json()
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _register


@pytest.fixture
def make_composition(client):
    """Create a composition as the given user and return it."""

    def _make(headers, title="Squares", equations=None, is_public=True, settings=None):
        body = {
            "title": title,
            "description": "x^2 walking up the scale",
            "equations": equations or ["x", "x^2", "", "i"],
            "settings": settings or {"wave_type": "triangle", "tempo": 140},
            "is_public": is_public,
        }
        response = client.post("/api/compositions", json=body, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["composition"]

    return _make


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests that test individual components")
    config.addinivalue_line(
        "markers", "integration: Integration tests that test the API against a real database"
    )
