"""
Health check endpoints for the Composition API.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Response, status

from ... import __version__
from ...infrastructure.database.connection import check_connection
from ..deps import Config, get_database

router = APIRouter()


@router.get("")
async def health_check(
    config: Config, response: Response, database=Depends(get_database)
) -> Dict[str, Any]:
    """
    Liveness plus database status.

    Returns 503 when the database does not answer.
    """
    database_ok = await check_connection(database)
    if not database_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "healthy" if database_ok else "degraded",
        "service": "mathemelody",
        "version": __version__,
        "environment": config.environment,
        "database": "connected" if database_ok else "unavailable",
    }
