"""
Shared helpers for repositories.

Rows are returned as plain dicts keyed by the selected column or label
names. Values are read through the record's key lookup so JSON, boolean and
datetime columns come back as Python values on every backend.
"""

from typing import Any, Dict, List, Optional

from databases import Database
from sqlalchemy.sql import Select


def is_unique_violation(error: Exception) -> bool:
    """True for a unique constraint failure from sqlite3 or asyncpg."""
    return type(error).__name__ in ("IntegrityError", "UniqueViolationError")


def _keys(query: Select) -> List[str]:
    return [column.key for column in query.selected_columns]


class Repository:
    """Base class holding the database handle."""

    def __init__(self, database: Database):
        self.db = database

    async def fetch_one(self, query: Select) -> Optional[Dict[str, Any]]:
        row = await self.db.fetch_one(query)
        if row is None:
            return None
        return {key: row[key] for key in _keys(query)}

    async def fetch_all(self, query: Select) -> List[Dict[str, Any]]:
        keys = _keys(query)
        return [{key: row[key] for key in keys} for row in await self.db.fetch_all(query)]
