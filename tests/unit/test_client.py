"""
Tests for mathemelody.client
"""

import json

import httpx
import pytest

from mathemelody.client import MathemelodyClient
from mathemelody.core.exceptions import (
    AuthenticationError,
    MathemelodyError,
    NotFoundError,
    ValidationError,
)
from mathemelody.playback.tone import WaveType

COMPOSITION = {
    "id": "cmp_1",
    "title": "Squares",
    "equations": ["x", "x^2", "", "i"],
    "settings": {"wave_type": "triangle", "tempo": 140},
}


def handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/api/auth/login":
        body = json.loads(request.content)
        if body["password"] != "harmonic":
            return httpx.Response(401, json={"error": "Invalid credentials"})
        return httpx.Response(200, json={"message": "Login successful", "user": {"id": "usr_1"}, "token": "tok"})
    if path == "/api/compositions/cmp_1":
        return httpx.Response(200, json={"composition": COMPOSITION, "auth": request.headers.get("authorization")})
    if path == "/api/compositions/public/gallery":
        if request.url.params["sort"] not in ("recent", "popular", "trending"):
            return httpx.Response(400, json={"error": "Invalid sort"})
        return httpx.Response(200, json={"compositions": [dict(COMPOSITION, sort=request.url.params["sort"])]})
    if path == "/boom":
        return httpx.Response(500, text="Internal Server Error")
    return httpx.Response(404, json={"error": "Composition not found"})


@pytest.fixture
def api():
    with MathemelodyClient("http://testserver", transport=httpx.MockTransport(handler)) as client:
        yield client


@pytest.mark.unit
class TestClient:
    def test_login_stores_token(self, api):
        user = api.login("fourier@mathemelody.io", "harmonic")
        assert user == {"id": "usr_1"}
        assert api.token == "tok"
        assert api._headers() == {"Authorization": "Bearer tok"}

    def test_login_failure(self, api):
        with pytest.raises(AuthenticationError) as exc_info:
            api.login("fourier@mathemelody.io", "wrong")
        assert exc_info.value.message == "Invalid credentials"
        assert api.token is None

    def test_get_composition(self, api):
        assert api.get_composition("cmp_1")["equations"] == COMPOSITION["equations"]

    def test_not_found(self, api):
        with pytest.raises(NotFoundError, match="Composition not found"):
            api.get_composition("cmp_missing")

    def test_gallery(self, api):
        items = api.gallery(sort="popular", limit=5)
        assert items[0]["sort"] == "popular"

    def test_validation_error(self, api):
        with pytest.raises(ValidationError):
            api.gallery(sort="random")

    def test_non_json_error(self, api):
        with pytest.raises(MathemelodyError) as exc_info:
            api._request("GET", "/boom")
        assert exc_info.value.message == "HTTP 500"

    def test_load_into_engine(self, api, engine):
        api.load_into(engine, api.get_composition("cmp_1"))

        assert engine.grid.expressions == ["x", "x^2", "", "i"]
        assert engine.tempo == 140
        assert engine.wave_type is WaveType.TRIANGLE

    def test_load_into_without_settings(self, api, engine):
        api.load_into(engine, {"id": "cmp_2", "equations": ["x"]})
        assert len(engine.grid) == 1
        assert engine.tempo == 120
