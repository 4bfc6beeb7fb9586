"""Run database migrations.

Usage:
    python -m truthlens.scripts.db_migrate          # Run all pending migrations
    python -m truthlens.scripts.db_migrate --dry    # Show pending migrations without applying
"""

import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from truthlens.shared.database import DatabaseManager, PoolConfig
from truthlens.shared.migrations import MigrationRunner

load_dotenv(Path(__file__).resolve().parent.parent / "api" / ".env")

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


async def main() -> None:
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL not set. Check truthlens/api/.env or environment variables.")
        sys.exit(1)

    ssl = os.getenv("DATABASE_SSL", "require") or None
    db = DatabaseManager(database_url, PoolConfig.for_service("scripts", ssl=ssl))
    await db.connect()

    try:
        runner = MigrationRunner(db.pool)

        if "--dry" in sys.argv:
            pending = await runner.pending()
            print(f"Pending: {len(pending)}")
            for path in pending:
                print(f"  -> {path.stem}")
            if not pending:
                print("Database is up to date.")
        else:
            newly_applied = await runner.run_pending()
            if not newly_applied:
                print("No pending migrations.")
            else:
                print(f"Applied {len(newly_applied)} migration(s).")
    finally:
        await db.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
