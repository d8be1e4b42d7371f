"""
Schema migrations for the PostgreSQL resource store.

Migrations are forward-only SQL files named ``NNN_description.sql`` in the
migrations/ directory next to this module. Each one is applied inside its own
transaction and recorded in ``schema_migrations``.
"""

import logging
import re
from pathlib import Path
from typing import List, NamedTuple, Set

import asyncpg

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

MIGRATION_PATTERN = re.compile(r"^(\d{3})_.+\.sql$")


class Migration(NamedTuple):
    version: str
    filename: str
    path: Path


async def ensure_migration_table(conn: asyncpg.Connection) -> None:
    """Create the schema_migrations table if it does not exist yet."""
    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version VARCHAR(16) PRIMARY KEY,
            filename VARCHAR(255) NOT NULL,
            applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """
    )


def discover_migrations(directory: Path = None) -> List[Migration]:
    """
    Find migration files, ordered by version.

    Raises:
        FileNotFoundError: If the migrations directory doesn't exist.
    """
    directory = directory or MIGRATIONS_DIR
    if not directory.is_dir():
        raise FileNotFoundError(f"Migrations directory not found: {directory}")

    migrations = []
    for entry in sorted(directory.iterdir()):
        match = MIGRATION_PATTERN.match(entry.name)
        if match and entry.is_file():
            migrations.append(Migration(match.group(1), entry.name, entry))
    return migrations


async def get_applied_versions(conn: asyncpg.Connection) -> Set[str]:
    rows = await conn.fetch("SELECT version FROM schema_migrations")
    return {row["version"] for row in rows}


async def apply_migration(pool: asyncpg.Pool, migration: Migration) -> None:
    """Apply one migration and record it, atomically."""
    sql = migration.path.read_text(encoding="utf-8")

    async with pool.acquire() as conn:
        async with conn.transaction():
            await conn.execute(sql)
            await conn.execute(
                "INSERT INTO schema_migrations (version, filename) VALUES ($1, $2)",
                migration.version,
                migration.filename,
            )

    logger.info(f"Applied migration {migration.filename}")


async def run_migrations(pool: asyncpg.Pool) -> int:
    """
    Apply all pending migrations in version order.

    Returns:
        Number of migrations applied.

    Raises:
        asyncpg.PostgresError: If a migration fails. That migration is rolled
            back; earlier ones stay applied.
    """
    async with pool.acquire() as conn:
        await ensure_migration_table(conn)
        applied = await get_applied_versions(conn)

    pending = [m for m in discover_migrations() if m.version not in applied]
    if not pending:
        logger.info("Database schema is up to date")
        return 0

    for migration in pending:
        await apply_migration(pool, migration)

    logger.info(f"Applied {len(pending)} migration(s)")
    return len(pending)
