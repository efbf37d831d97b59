from .connection import check_connection, create_database, create_tables, init_database
from .schema import comments, compositions, likes, metadata, users

__all__ = [
    "check_connection",
    "create_database",
    "create_tables",
    "init_database",
    "comments",
    "compositions",
    "likes",
    "metadata",
    "users",
]
