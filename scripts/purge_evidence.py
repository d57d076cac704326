"""Purge selfie and location evidence past the retention window.

Run with:
    python scripts/purge_evidence.py --company-id ID
    python scripts/purge_evidence.py --all-companies --before 2025-01-01

Meant for a nightly cron job.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import date
from uuid import UUID

from hr_engine.database import dispose_db, get_session
from hr_engine.models import EmployeeRole
from hr_engine.services.attendance_service import AttendanceService
from hr_engine.services.authority import Actor
from hr_engine.services.context import ServiceContext


async def purge(company_id: UUID | None, before: date | None) -> int:
    ctx = ServiceContext.from_settings()
    if company_id is None:
        # Company id is ignored for super admins; any value will do.
        actor = Actor(company_id=UUID(int=0), role=EmployeeRole.SUPER_ADMIN.value)
    else:
        actor = Actor(company_id=company_id, role=EmployeeRole.ADMIN.value)

    async with get_session() as session:
        purged = await AttendanceService(session, ctx).purge_evidence(actor, before)

    await dispose_db()
    return purged


def main() -> None:
    parser = argparse.ArgumentParser(description="Purge attendance evidence")
    scope = parser.add_mutually_exclusive_group(required=True)
    scope.add_argument("--company-id", type=UUID)
    scope.add_argument("--all-companies", action="store_true")
    parser.add_argument(
        "--before",
        type=date.fromisoformat,
        default=None,
        help="Purge work dates before this ISO date (default: retention window)",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    purged = asyncio.run(purge(args.company_id, args.before))
    print(f"Purged evidence from {purged} punch(es).")


if __name__ == "__main__":
    main()
