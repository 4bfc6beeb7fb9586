"""Lightweight migration runner with tracking table."""

from __future__ import annotations

import logging
from pathlib import Path

import asyncpg

logger = logging.getLogger(__name__)

VERSIONS_DIR = Path(__file__).resolve().parent / "versions"


class MigrationRunner:
    """Execute and track database migrations.

    Migrations are plain SQL files in ``versions/`` named ``NNN_description.sql``.
    Applied versions are recorded in ``schema_migrations`` and never re-applied.
    """

    TRACKING_TABLE = "schema_migrations"

    def __init__(self, pool: asyncpg.Pool, migrations_dir: Path | None = None) -> None:
        self.pool = pool
        self.migrations_dir = migrations_dir or VERSIONS_DIR

    async def ensure_table(self) -> None:
        """Create the tracking table if it does not exist."""
        async with self.pool.acquire() as conn:
            await conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.TRACKING_TABLE} (
                    version    TEXT PRIMARY KEY,
                    name       TEXT NOT NULL,
                    applied_at TIMESTAMPTZ DEFAULT NOW()
                )
                """
            )

    async def get_applied(self) -> set[str]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(f"SELECT version FROM {self.TRACKING_TABLE}")  # noqa: S608
            return {row["version"] for row in rows}

    async def pending(self) -> list[Path]:
        """Return the SQL files not applied yet, in version order."""
        await self.ensure_table()
        applied = await self.get_applied()
        return [p for p in sorted(self.migrations_dir.glob("*.sql")) if p.stem not in applied]

    async def run_pending(self) -> list[str]:
        """Apply all pending migrations in order; return the applied versions."""
        to_apply = await self.pending()
        if not to_apply:
            logger.info("Database is up to date, no pending migrations")
            return []

        for sql_path in to_apply:
            await self._apply_one(sql_path)

        versions = [p.stem for p in to_apply]
        logger.info("Applied %d migration(s): %s", len(versions), ", ".join(versions))
        return versions

    async def _apply_one(self, sql_path: Path) -> None:
        """Execute a single migration inside a transaction."""
        version = sql_path.stem
        logger.info("Applying migration: %s", version)
        sql = sql_path.read_text(encoding="utf-8")
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(sql)
                await conn.execute(
                    f"INSERT INTO {self.TRACKING_TABLE} (version, name) VALUES ($1, $2)",
                    version,
                    sql_path.name,
                )
