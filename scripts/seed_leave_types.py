"""Seed the statutory leave types.

Run with:
    python scripts/seed_leave_types.py                  # global types
    python scripts/seed_leave_types.py --company-id ID  # one company

Creates Annual, Medical, Hospitalization, Maternity, Paternity and Unpaid
leave with Employment Act 1955 entitlements. Existing codes are left alone.
"""

from __future__ import annotations

import argparse
import asyncio
from uuid import UUID

from hr_engine.database import dispose_db, get_session
from hr_engine.services.organization_service import OrganizationService


async def seed(company_id: UUID | None) -> None:
    """Run seed script."""
    scope = f"company {company_id}" if company_id else "all companies"
    print(f"Seeding leave types for {scope}...")

    async with get_session() as session:
        created = await OrganizationService(session).seed_leave_types(company_id)
        for leave_type in created:
            print(f"Created {leave_type.code} ({leave_type.name})")

    await dispose_db()
    print(f"\nDone! {len(created)} leave type(s) created.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed statutory leave types")
    parser.add_argument("--company-id", type=UUID, default=None, help="Scope to one company")
    args = parser.parse_args()
    asyncio.run(seed(args.company_id))


if __name__ == "__main__":
    main()
