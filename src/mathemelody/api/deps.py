"""
Authentication and common dependencies for the Composition API.
Provides reusable dependency injection functions for FastAPI endpoints.
"""

from typing import Annotated, Any, Dict, Optional

from databases import Database
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core.exceptions import AuthenticationError, InvalidTokenError
from ..infrastructure.config.settings import AppConfig
from ..infrastructure.monitoring.logging import get_logger
from ..infrastructure.repositories import CompositionRepository, UserRepository
from .auth import decode_access_token

logger = get_logger(__name__)

# Security scheme for OpenAPI documentation
security = HTTPBearer(auto_error=False)

Credentials = Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)]


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_user_repository(database: Annotated[Database, Depends(get_database)]) -> UserRepository:
    return UserRepository(database)


def get_composition_repository(
    database: Annotated[Database, Depends(get_database)],
) -> CompositionRepository:
    return CompositionRepository(database)


async def get_current_user(
    credentials: Credentials, config: Annotated[AppConfig, Depends(get_config)]
) -> Dict[str, Any]:
    """
    Claims of the authenticated caller.

    Raises:
        AuthenticationError: 401 if no bearer token was sent
        InvalidTokenError: 403 if the token does not verify
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required")
    return decode_access_token(credentials.credentials, config.auth)


async def get_optional_user(
    credentials: Credentials, config: Annotated[AppConfig, Depends(get_config)]
) -> Optional[Dict[str, Any]]:
    """
    Claims of the caller if a valid token was sent, otherwise None.

    A bad token on these routes is treated as no token at all.
    """
    if credentials is None or not credentials.credentials:
        return None
    try:
        return decode_access_token(credentials.credentials, config.auth)
    except InvalidTokenError as e:
        logger.debug("Ignoring invalid token on public route", reason=e.details.get("reason"))
        return None


# Type aliases for better readability
Config = Annotated[AppConfig, Depends(get_config)]
CurrentUser = Annotated[Dict[str, Any], Depends(get_current_user)]
OptionalUser = Annotated[Optional[Dict[str, Any]], Depends(get_optional_user)]
Users = Annotated[UserRepository, Depends(get_user_repository)]
Compositions = Annotated[CompositionRepository, Depends(get_composition_repository)]
