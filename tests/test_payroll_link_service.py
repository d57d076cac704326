"""Tests for the payroll linkage gate.

Verifies:
1. Linking snapshots approved attendance, unpaid leave and approved claims
2. Bound records refuse every mutation with LinkedToPayroll
3. Unlinking releases the records and deletes the item
"""

from datetime import date, time
from decimal import Decimal
from uuid import uuid4

import pytest

from hr_engine.calculators.types import ReceiptSignals
from hr_engine.errors import AuthorizationDenied, Conflict, LinkedToPayroll, ValidationFailed
from hr_engine.models import LeaveRequest, PayrollItem, Timecard
from hr_engine.services.attendance_service import AttendanceService
from hr_engine.services.claim_service import ClaimService, ClaimSubmission
from hr_engine.services.leave_service import LeaveDecision, LeaveService
from hr_engine.services.payroll_link_service import PayrollLinkService

from tests.conftest import admin_of


async def add_timecard(
    session, employee, work_date, work_minutes=480, ot_minutes=0, approval="approved"
) -> Timecard:
    timecard = Timecard(
        timecard_id=uuid4(),
        employee_id=employee.employee_id,
        company_id=employee.company_id,
        work_date=work_date,
        clock_in_1=time(9, 0),
        clock_out_1=time(13, 0),
        clock_in_2=time(14, 0),
        clock_out_2=time(18, 0),
        work_minutes=work_minutes,
        ot_minutes=ot_minutes,
        ot_flagged=ot_minutes > 0,
        status="completed",
        approval_status=approval,
    )
    session.add(timecard)
    await session.commit()
    return timecard


async def add_approved_leave(session, employee, leave_type, start, end, days) -> LeaveRequest:
    request = LeaveRequest(
        leave_request_id=uuid4(),
        employee_id=employee.employee_id,
        leave_type_id=leave_type.leave_type_id,
        start_date=start,
        end_date=end,
        total_days=Decimal(days),
        half_day=False,
        status="approved",
        approval_level=3,
        payroll_links=[],
    )
    session.add(request)
    await session.commit()
    return request


def meal_claim(amount="25") -> ClaimSubmission:
    return ClaimSubmission(
        claim_date=date(2025, 11, 28),
        category="meal",
        amount=Decimal(amount),
        signals=ReceiptSignals(Decimal(amount), "high"),
    )


@pytest.fixture
async def november(
    session, ctx, staff, staff_actor, annual_leave, unpaid_leave, claim_categories
):
    """A month of approved and unapproved records for the outlet staff."""
    records = {
        "approved": [
            await add_timecard(session, staff, date(2025, 11, 3)),
            await add_timecard(session, staff, date(2025, 11, 5), 600, 90),
        ],
        "pending": await add_timecard(session, staff, date(2025, 11, 4), approval="pending"),
        "next_month": await add_timecard(session, staff, date(2025, 12, 1)),
        # Fri 28th to Tue 2nd: two working days fall in November
        "unpaid": await add_approved_leave(
            session, staff, unpaid_leave, date(2025, 11, 28), date(2025, 12, 2), "4"
        ),
        "paid": await add_approved_leave(
            session, staff, annual_leave, date(2025, 11, 10), date(2025, 11, 11), "2"
        ),
    }
    claims = ClaimService(session, ctx)
    records["claim"] = await claims.submit(staff_actor, meal_claim())
    records["pending_claim"] = await claims.submit(
        staff_actor,
        ClaimSubmission(claim_date=date(2025, 11, 20), category="fuel", amount=Decimal("20")),
    )
    return records


async def link(session, ctx, admin, employee_id, month=11, year=2025):
    service = PayrollLinkService(session, ctx)
    item = await service.open_payroll_item(admin, employee_id, month, year)
    return item, await service.link_to_payroll(admin, item.payroll_item_id)


class TestOpenPayrollItem:
    async def test_idempotent(self, session, ctx, staff, admin_actor):
        service = PayrollLinkService(session, ctx)

        first = await service.open_payroll_item(admin_actor, staff.employee_id, 11, 2025)
        second = await service.open_payroll_item(admin_actor, staff.employee_id, 11, 2025)

        assert first.payroll_item_id == second.payroll_item_id
        assert first.status == "draft"

    async def test_invalid_month(self, session, ctx, staff, admin_actor):
        with pytest.raises(ValidationFailed):
            await PayrollLinkService(session, ctx).open_payroll_item(
                admin_actor, staff.employee_id, 13, 2025
            )

    async def test_admin_only(self, session, ctx, staff, manager_actor):
        with pytest.raises(AuthorizationDenied):
            await PayrollLinkService(session, ctx).open_payroll_item(
                manager_actor, staff.employee_id, 11, 2025
            )


class TestLinkToPayroll:
    """Test the snapshot and binding."""

    async def test_snapshot(self, session, ctx, staff, admin_actor, november):
        item, snapshot = await link(session, ctx, admin_actor, staff.employee_id)

        assert snapshot.work_minutes == 1080
        assert snapshot.ot_minutes == 90
        assert sorted(snapshot.timecard_ids) == sorted(
            t.timecard_id for t in november["approved"]
        )
        assert snapshot.unpaid_leave_days == Decimal("2")
        assert snapshot.leave_request_ids == [november["unpaid"].leave_request_id]
        assert snapshot.claims_total == Decimal("25.00")
        assert snapshot.claim_ids == [november["claim"].claim_id]

        assert item.status == "linked"
        assert item.linked_at is not None
        assert item.work_minutes == 1080
        assert item.unpaid_leave_days == Decimal("2")

        assert all(t.linked_payroll_item_id == item.payroll_item_id for t in november["approved"])
        assert november["pending"].linked_payroll_item_id is None
        assert november["next_month"].linked_payroll_item_id is None
        assert november["pending_claim"].linked_payroll_item_id is None
        assert november["claim"].linked_payroll_item_id == item.payroll_item_id

    async def test_leave_across_months(self, session, ctx, staff, admin_actor, november):
        """Each month's item takes the working days inside that month."""
        await link(session, ctx, admin_actor, staff.employee_id, 11, 2025)
        _, december = await link(session, ctx, admin_actor, staff.employee_id, 12, 2025)

        assert december.unpaid_leave_days == Decimal("2")
        assert december.timecard_ids == [november["next_month"].timecard_id]
        assert len(november["unpaid"].payroll_links) == 2
        assert november["unpaid"].is_linked

    async def test_rejected_overtime_not_paid(self, session, ctx, staff, admin_actor):
        approved_ot = await add_timecard(session, staff, date(2025, 11, 3), 600, 90)
        rejected_ot = await add_timecard(session, staff, date(2025, 11, 4), 570, 60)
        approved_ot.ot_approved = True
        rejected_ot.ot_approved = False
        await session.commit()

        _, snapshot = await link(session, ctx, admin_actor, staff.employee_id)

        assert snapshot.work_minutes == 1170
        assert snapshot.ot_minutes == 90
        assert len(snapshot.timecard_ids) == 2

    async def test_link_twice(self, session, ctx, staff, admin_actor, november):
        item, _ = await link(session, ctx, admin_actor, staff.employee_id)

        with pytest.raises(Conflict):
            await PayrollLinkService(session, ctx).link_to_payroll(
                admin_actor, item.payroll_item_id
            )

    async def test_admin_of_other_company(
        self, session, ctx, staff, admin_actor, dept_company, november
    ):
        item = await PayrollLinkService(session, ctx).open_payroll_item(
            admin_actor, staff.employee_id, 11, 2025
        )
        outsider = await admin_of(session, dept_company)

        with pytest.raises(AuthorizationDenied):
            await PayrollLinkService(session, ctx).link_to_payroll(
                outsider, item.payroll_item_id
            )


class TestLinkedRecordsFrozen:
    """Bound records refuse changes until unlinked."""

    async def test_claim(self, session, ctx, staff, supervisor_actor, admin_actor, november):
        claim_id = november["claim"].claim_id
        item, _ = await link(session, ctx, admin_actor, staff.employee_id)
        item_id = item.payroll_item_id
        claims = ClaimService(session, ctx)

        with pytest.raises(LinkedToPayroll):
            await claims.revert(supervisor_actor, claim_id)
        with pytest.raises(LinkedToPayroll):
            await claims.delete(supervisor_actor, claim_id)

        await PayrollLinkService(session, ctx).unlink(admin_actor, item_id)

        reverted = await claims.revert(supervisor_actor, claim_id)
        assert reverted.status == "pending"
        assert reverted.linked_payroll_item_id is None

    async def test_timecard(self, session, ctx, staff, supervisor_actor, admin_actor, november):
        timecard_id = november["approved"][0].timecard_id
        item, _ = await link(session, ctx, admin_actor, staff.employee_id)
        item_id = item.payroll_item_id
        attendance = AttendanceService(session, ctx)

        with pytest.raises(LinkedToPayroll):
            await attendance.clear_slot(supervisor_actor, timecard_id, "in2")
        with pytest.raises(LinkedToPayroll):
            await attendance.reject_timecard(supervisor_actor, timecard_id, "Wrong hours")

        await PayrollLinkService(session, ctx).unlink(admin_actor, item_id)

        cleared = await attendance.clear_slot(supervisor_actor, timecard_id, "in2")
        assert cleared.linked_payroll_item_id is None
        assert cleared.status == "in_progress"

    async def test_leave_request(self, session, ctx, staff, admin_actor, november):
        request_id = november["unpaid"].leave_request_id
        item, _ = await link(session, ctx, admin_actor, staff.employee_id)
        item_id = item.payroll_item_id
        leave = LeaveService(session, ctx)

        with pytest.raises(LinkedToPayroll):
            await leave.admin_cancel(admin_actor, request_id, reason="Entered twice")
        with pytest.raises(LinkedToPayroll):
            await leave.decide(admin_actor, request_id, LeaveDecision.APPROVE)

        await PayrollLinkService(session, ctx).unlink(admin_actor, item_id)

        cancelled = await leave.admin_cancel(admin_actor, request_id, reason="Entered twice")
        assert cancelled.status == "cancelled"
        assert cancelled.payroll_links == []


class TestUnlink:
    async def test_deletes_item(self, session, ctx, staff, admin_actor, november):
        item, _ = await link(session, ctx, admin_actor, staff.employee_id)
        item_id = item.payroll_item_id

        await PayrollLinkService(session, ctx).unlink(admin_actor, item_id)

        assert await session.get(PayrollItem, item_id) is None
        assert all(t.linked_payroll_item_id is None for t in november["approved"])
        assert november["claim"].linked_payroll_item_id is None
        assert november["unpaid"].payroll_links == []

    async def test_relink_after_unlink(self, session, ctx, staff, admin_actor, november):
        item, _ = await link(session, ctx, admin_actor, staff.employee_id)
        await PayrollLinkService(session, ctx).unlink(admin_actor, item.payroll_item_id)

        _, snapshot = await link(session, ctx, admin_actor, staff.employee_id)

        assert snapshot.work_minutes == 1080
        assert snapshot.unpaid_leave_days == Decimal("2")
