"""
Composition, like and comment queries.

Owner-only writes are single conditional statements on ``id`` and
``user_id``, so a write can never land on a row the caller does not own.
Callers read the owner first only to choose between "not found" and
"forbidden".
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import and_, exists, false, func, or_, select

from ..database.schema import comments, compositions, likes, new_id, users, utcnow
from ..monitoring.logging import get_logger
from .base import Repository, is_unique_violation

logger = get_logger(__name__)

GALLERY_SORTS = ("recent", "popular", "trending")

likes_count = (
    select(func.count(likes.c.id))
    .where(likes.c.composition_id == compositions.c.id)
    .scalar_subquery()
    .label("likes_count")
)

comments_count = (
    select(func.count(comments.c.id))
    .where(comments.c.composition_id == compositions.c.id)
    .scalar_subquery()
    .label("comments_count")
)

GALLERY_ORDER = {
    "recent": (compositions.c.created_at.desc(),),
    "popular": (likes_count.desc(), compositions.c.created_at.desc()),
    "trending": (compositions.c.play_count.desc(), likes_count.desc()),
}


def _visible_to(viewer_id: Optional[str]):
    if viewer_id is None:
        return compositions.c.is_public == True  # noqa: E712
    return or_(compositions.c.is_public == True, compositions.c.user_id == viewer_id)  # noqa: E712


class CompositionRepository(Repository):
    """Reads and writes compositions and their likes and comments."""

    # Compositions

    async def create(
        self,
        user_id: str,
        title: str,
        equations: List[str],
        description: Optional[str] = None,
        settings: Optional[Dict[str, Any]] = None,
        is_public: bool = False,
    ) -> Dict[str, Any]:
        now = utcnow()
        composition_id = new_id("cmp")
        await self.db.execute(
            compositions.insert().values(
                id=composition_id,
                user_id=user_id,
                title=title,
                description=description,
                equations=equations,
                settings=settings,
                is_public=is_public,
                play_count=0,
                created_at=now,
                updated_at=now,
            )
        )
        return await self.get(composition_id)

    async def get(self, composition_id: str) -> Optional[Dict[str, Any]]:
        """Bare composition row, regardless of visibility."""
        return await self.fetch_one(select(compositions).where(compositions.c.id == composition_id))

    async def get_owner(self, composition_id: str) -> Optional[str]:
        query = select(compositions.c.user_id).where(compositions.c.id == composition_id)
        row = await self.fetch_one(query)
        return row["user_id"] if row else None

    async def get_visible(
        self, composition_id: str, viewer_id: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Composition with owner name, counts and the viewer's like status.

        Only public compositions and the viewer's own are visible.
        """
        if viewer_id is None:
            user_has_liked = false().label("user_has_liked")
        else:
            user_has_liked = (
                exists()
                .where(and_(likes.c.composition_id == compositions.c.id, likes.c.user_id == viewer_id))
                .label("user_has_liked")
            )

        query = (
            select(compositions, users.c.username, likes_count, comments_count, user_has_liked)
            .join(users, users.c.id == compositions.c.user_id)
            .where(and_(compositions.c.id == composition_id, _visible_to(viewer_id)))
        )
        row = await self.fetch_one(query)
        if row is not None:
            row["user_has_liked"] = bool(row["user_has_liked"])
        return row

    async def is_visible(self, composition_id: str, viewer_id: Optional[str]) -> bool:
        query = select(compositions.c.id).where(
            and_(compositions.c.id == composition_id, _visible_to(viewer_id))
        )
        return await self.fetch_one(query) is not None

    async def list_by_user(self, user_id: str) -> List[Dict[str, Any]]:
        query = (
            select(compositions, likes_count, comments_count)
            .where(compositions.c.user_id == user_id)
            .order_by(compositions.c.created_at.desc())
        )
        return await self.fetch_all(query)

    async def gallery(self, sort: str = "recent", limit: int = 20, offset: int = 0) -> List[Dict[str, Any]]:
        """Public compositions, ordered by ``sort``."""
        if sort not in GALLERY_ORDER:
            raise ValueError(f"Unknown sort {sort!r}; expected one of {', '.join(GALLERY_SORTS)}")

        query = (
            select(
                compositions.c.id,
                compositions.c.title,
                compositions.c.description,
                compositions.c.created_at,
                compositions.c.play_count,
                users.c.username,
                likes_count,
                comments_count,
            )
            .join(users, users.c.id == compositions.c.user_id)
            .where(compositions.c.is_public == True)  # noqa: E712
            .order_by(*GALLERY_ORDER[sort], compositions.c.id)
            .limit(limit)
            .offset(offset)
        )
        return await self.fetch_all(query)

    async def increment_play_count(self, composition_id: str) -> None:
        await self.db.execute(
            compositions.update()
            .where(compositions.c.id == composition_id)
            .values(play_count=compositions.c.play_count + 1)
        )

    async def update(
        self,
        composition_id: str,
        owner_id: str,
        title: str,
        equations: List[str],
        description: Optional[str] = None,
        settings: Optional[Dict[str, Any]] = None,
        is_public: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """Replace every editable field. Returns None unless ``owner_id`` owns the row."""
        await self.db.execute(
            compositions.update()
            .where(and_(compositions.c.id == composition_id, compositions.c.user_id == owner_id))
            .values(
                title=title,
                description=description,
                equations=equations,
                settings=settings,
                is_public=is_public,
                updated_at=utcnow(),
            )
        )
        row = await self.get(composition_id)
        if row is None or row["user_id"] != owner_id:
            return None
        return row

    async def delete(self, composition_id: str, owner_id: str) -> None:
        """Delete a composition with its likes and comments, if ``owner_id`` owns it."""
        owned = select(compositions.c.id).where(
            and_(compositions.c.id == composition_id, compositions.c.user_id == owner_id)
        )
        async with self.db.transaction():
            await self.db.execute(likes.delete().where(likes.c.composition_id.in_(owned)))
            await self.db.execute(comments.delete().where(comments.c.composition_id.in_(owned)))
            await self.db.execute(
                compositions.delete().where(
                    and_(compositions.c.id == composition_id, compositions.c.user_id == owner_id)
                )
            )

    # Likes

    async def toggle_like(self, composition_id: str, user_id: str) -> bool:
        """Like or unlike. Returns whether the composition is now liked."""
        match = and_(likes.c.composition_id == composition_id, likes.c.user_id == user_id)
        existing = await self.fetch_one(select(likes.c.id).where(match))

        if existing is not None:
            await self.db.execute(likes.delete().where(match))
            return False

        try:
            await self.db.execute(
                likes.insert().values(
                    id=new_id("lik"),
                    composition_id=composition_id,
                    user_id=user_id,
                    created_at=utcnow(),
                )
            )
        except Exception as e:
            if not is_unique_violation(e):
                raise
            logger.debug("Concurrent like already recorded", composition_id=composition_id)
        return True

    # Comments

    def _comment_query(self):
        return select(comments, users.c.username).join(users, users.c.id == comments.c.user_id)

    async def add_comment(self, composition_id: str, user_id: str, content: str) -> Dict[str, Any]:
        now = utcnow()
        comment_id = new_id("cmt")
        await self.db.execute(
            comments.insert().values(
                id=comment_id,
                composition_id=composition_id,
                user_id=user_id,
                content=content,
                created_at=now,
                updated_at=now,
            )
        )
        return await self.get_comment(comment_id)

    async def get_comment(self, comment_id: str) -> Optional[Dict[str, Any]]:
        return await self.fetch_one(self._comment_query().where(comments.c.id == comment_id))

    async def list_comments(self, composition_id: str) -> List[Dict[str, Any]]:
        query = (
            self._comment_query()
            .where(comments.c.composition_id == composition_id)
            .order_by(comments.c.created_at.desc(), comments.c.id)
        )
        return await self.fetch_all(query)

    async def get_comment_owner(self, comment_id: str) -> Optional[str]:
        row = await self.fetch_one(select(comments.c.user_id).where(comments.c.id == comment_id))
        return row["user_id"] if row else None

    async def delete_comment(self, comment_id: str, owner_id: str) -> None:
        await self.db.execute(
            comments.delete().where(and_(comments.c.id == comment_id, comments.c.user_id == owner_id))
        )
