"""
Table definitions for the Composition API.

Ids are prefixed strings generated by the application, and timestamps are
naive UTC datetimes set by the application on insert and update.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", String(40), primary_key=True),
    Column("username", String(50), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

compositions = Table(
    "compositions",
    metadata,
    Column("id", String(40), primary_key=True),
    Column("user_id", String(40), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("equations", JSON, nullable=False),
    Column("settings", JSON),
    Column("is_public", Boolean, nullable=False, default=False),
    Column("play_count", Integer, nullable=False, default=0),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
    Index("idx_compositions_user_id", "user_id"),
    Index("idx_compositions_is_public", "is_public"),
    Index("idx_compositions_created_at", "created_at"),
)

likes = Table(
    "likes",
    metadata,
    Column("id", String(40), primary_key=True),
    Column(
        "composition_id",
        String(40),
        ForeignKey("compositions.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("user_id", String(40), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("created_at", DateTime, nullable=False),
    UniqueConstraint("composition_id", "user_id", name="uq_likes_composition_user"),
    Index("idx_likes_composition_id", "composition_id"),
    Index("idx_likes_user_id", "user_id"),
)

comments = Table(
    "comments",
    metadata,
    Column("id", String(40), primary_key=True),
    Column(
        "composition_id",
        String(40),
        ForeignKey("compositions.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("user_id", String(40), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
    Index("idx_comments_composition_id", "composition_id"),
    Index("idx_comments_user_id", "user_id"),
)


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
