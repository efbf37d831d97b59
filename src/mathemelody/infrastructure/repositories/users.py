"""
User queries.
"""

from typing import Any, Dict, Optional

from sqlalchemy import or_, select

from ...core.exceptions import ConflictError
from ..database.schema import new_id, users, utcnow
from .base import Repository, is_unique_violation

PUBLIC_COLUMNS = (users.c.id, users.c.username, users.c.email, users.c.created_at)


class UserRepository(Repository):
    """Reads and writes the users table."""

    async def exists(self, username: str, email: str) -> bool:
        query = select(users.c.id).where(or_(users.c.username == username, users.c.email == email))
        return await self.fetch_one(query) is not None

    async def create(self, username: str, email: str, password_hash: str) -> Dict[str, Any]:
        """
        Insert a user.

        Raises:
            ConflictError: if the username or email is taken
        """
        if await self.exists(username, email):
            raise ConflictError("Username or email already exists")

        now = utcnow()
        user_id = new_id("usr")
        query = users.insert().values(
            id=user_id,
            username=username,
            email=email,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        try:
            await self.db.execute(query)
        except Exception as e:
            if is_unique_violation(e):
                raise ConflictError("Username or email already exists") from e
            raise

        return {"id": user_id, "username": username, "email": email, "created_at": now}

    async def get_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.fetch_one(select(*PUBLIC_COLUMNS).where(users.c.id == user_id))

    async def get_credentials(self, email: str) -> Optional[Dict[str, Any]]:
        """User row including the password hash, for login."""
        query = select(*PUBLIC_COLUMNS, users.c.password_hash).where(users.c.email == email)
        return await self.fetch_one(query)
