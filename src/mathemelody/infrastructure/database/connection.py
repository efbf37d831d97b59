"""
Database connection and schema creation.
"""

from typing import Optional

from databases import Database
from sqlalchemy.schema import CreateIndex, CreateTable

from ..config.settings import DatabaseConfig, get_config
from ..monitoring.logging import get_logger
from .schema import metadata

logger = get_logger(__name__)


def create_database(config: Optional[DatabaseConfig] = None) -> Database:
    """Create a (not yet connected) database for the configured URL."""
    config = config or get_config().database
    return Database(config.url)


async def create_tables(database: Database) -> None:
    """Create every table and index that does not exist yet."""
    for table in metadata.sorted_tables:
        await database.execute(CreateTable(table, if_not_exists=True))
        for index in sorted(table.indexes, key=lambda i: i.name):
            await database.execute(CreateIndex(index, if_not_exists=True))

    logger.info("Database schema ready", tables=[t.name for t in metadata.sorted_tables])


async def check_connection(database: Database) -> bool:
    """Run a trivial query; used by the health check."""
    try:
        await database.fetch_val("SELECT 1")
    except Exception as e:
        logger.warning("Database check failed", error=str(e))
        return False
    return True


async def init_database(config: Optional[DatabaseConfig] = None) -> None:
    """Connect, create the schema and disconnect."""
    database = create_database(config)
    await database.connect()
    try:
        await create_tables(database)
    finally:
        await database.disconnect()
