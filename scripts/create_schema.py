"""Create the HR engine tables.

Usage:
    python scripts/create_schema.py
    python scripts/create_schema.py --database-url postgresql+asyncpg://...
    python scripts/create_schema.py --dry-run
"""

from __future__ import annotations

import argparse
import asyncio

from sqlalchemy.ext.asyncio import create_async_engine

from hr_engine.config import get_settings
from hr_engine.models import Base


async def create_schema(database_url: str, dry_run: bool) -> None:
    """Create every table that does not exist yet."""
    tables = list(Base.metadata.sorted_tables)
    print(f"Target database: {database_url.split('@')[1] if '@' in database_url else database_url}")

    if dry_run:
        for table in tables:
            print(f"  [DRY RUN] Would create {table.name}")
        return

    engine = create_async_engine(database_url, echo=False)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()

    print(f"Schema ready ({len(tables)} tables).")


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Create the HR engine schema")
    parser.add_argument(
        "--database-url",
        type=str,
        default=get_settings().database_url,
        help="Database URL (default: from settings)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the tables without creating them",
    )

    args = parser.parse_args()

    asyncio.run(create_schema(args.database_url, args.dry_run))


if __name__ == "__main__":
    main()
