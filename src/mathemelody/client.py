"""
HTTP client for the Composition API.

Fetches compositions and loads their equations and playback settings into a
:class:`~mathemelody.playback.engine.PlaybackEngine`.
"""

from typing import Any, Dict, List, Optional

import httpx

from .core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    MathemelodyError,
    NotFoundError,
    ValidationError,
)
from .infrastructure.monitoring.logging import get_logger

logger = get_logger(__name__)

ERRORS_BY_STATUS = {
    400: ValidationError,
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
    409: ConflictError,
}


def raise_for_error(response: httpx.Response) -> None:
    """Raise the matching MathemelodyError for a non-2xx response."""
    if response.is_success:
        return

    try:
        message = response.json().get("error")
    except ValueError:
        message = None
    message = message or f"HTTP {response.status_code}"

    error_class = ERRORS_BY_STATUS.get(response.status_code, MathemelodyError)
    raise error_class(message, details={"status_code": response.status_code, "url": str(response.url)})


class MathemelodyClient:
    """Thin synchronous client over the JSON API."""

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        token: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.token = token
        self._client = httpx.Client(base_url=base_url, transport=transport, timeout=timeout)

    def __enter__(self) -> "MathemelodyClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _headers(self) -> Dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        response = self._client.request(method, path, headers=self._headers(), **kwargs)
        raise_for_error(response)
        return response.json()

    # Auth

    def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        data = self._request(
            "POST",
            "/api/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        self.token = data["token"]
        return data["user"]

    def login(self, email: str, password: str) -> Dict[str, Any]:
        data = self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        self.token = data["token"]
        return data["user"]

    # Compositions

    def get_composition(self, composition_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/compositions/{composition_id}")["composition"]

    def gallery(self, sort: str = "recent", limit: int = 20, offset: int = 0) -> List[Dict[str, Any]]:
        params = {"sort": sort, "limit": limit, "offset": offset}
        return self._request("GET", "/api/compositions/public/gallery", params=params)["compositions"]

    def load_into(self, engine, composition: Dict[str, Any]) -> None:
        """
        Replace the engine's grid with the composition's equations and apply
        its tempo and wave type.
        """
        engine.load(composition["equations"])

        settings = composition.get("settings") or {}
        if settings.get("tempo"):
            engine.set_tempo(settings["tempo"])
        if settings.get("wave_type"):
            engine.set_wave_type(settings["wave_type"])

        logger.info(
            "Loaded composition",
            composition_id=composition.get("id"),
            steps=len(composition["equations"]),
        )
