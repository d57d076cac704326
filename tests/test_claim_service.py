"""Tests for claim submission and review."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from hr_engine.calculators.types import ReceiptSignals
from hr_engine.errors import AuthorizationDenied, Conflict, LinkedToPayroll, ValidationFailed
from hr_engine.models import Claim
from hr_engine.services.claim_service import (
    ClaimEdit,
    ClaimService,
    ClaimSubmission,
    receipt_hash,
)
from hr_engine.services.payroll_link_service import PayrollLinkService

from tests.conftest import actor_for, add_employee

RECEIPT = b"\x89PNG receipt 2025-11-28 RM45.00"


def expense(category: str, amount: str, **kwargs) -> ClaimSubmission:
    return ClaimSubmission(
        claim_date=date(2025, 11, 28),
        category=category,
        amount=Decimal(amount),
        **kwargs,
    )


def read_as(amount: str | None, confidence: str = "high") -> ReceiptSignals:
    return ReceiptSignals(Decimal(amount) if amount is not None else None, confidence)


class TestSubmit:
    """Test submission through capping and AI disposition."""

    async def test_capped_and_auto_approved(self, session, ctx, staff_actor, claim_categories):
        """Meal of 45 against a cap of 30."""
        claim = await ClaimService(session, ctx).submit(
            staff_actor, expense("meal", "45", signals=read_as("45"))
        )

        assert claim.amount == Decimal("30.00")
        assert claim.claimed_amount == Decimal("45")
        assert claim.status == "approved"
        assert claim.auto_approved is True
        assert claim.approved_at is not None
        assert claim.review_reason is None

    async def test_over_claim_routed_to_review(
        self, session, ctx, staff_actor, claim_categories
    ):
        """Fuel of 80 against a receipt reading 50."""
        claim = await ClaimService(session, ctx).submit(
            staff_actor, expense("fuel", "80", signals=read_as("50"))
        )

        assert claim.status == "pending"
        assert claim.auto_approved is False
        assert claim.amount == Decimal("80.00")
        assert claim.ai_extracted_amount == Decimal("50")
        assert claim.amount_mismatch_ignored is True
        assert "over-claim" in claim.review_reason

    async def test_without_ai_signals(self, session, ctx, staff_actor, claim_categories):
        claim = await ClaimService(session, ctx).submit(staff_actor, expense("fuel", "20"))

        assert claim.status == "pending"
        assert claim.ai_confidence is None

    async def test_receipt_uploaded_and_hashed(
        self, session, ctx, object_store, staff_actor, claim_categories
    ):
        claim = await ClaimService(session, ctx).submit(
            staff_actor,
            expense("parking", "12", receipt=RECEIPT, receipt_name="parking.png"),
        )

        assert claim.receipt_url.startswith("memory://receipts/")
        assert claim.receipt_url in object_store
        assert claim.receipt_hash == receipt_hash(RECEIPT)

    async def test_receipt_required(self, session, ctx, staff_actor, claim_categories):
        with pytest.raises(ValidationFailed) as exc_info:
            await ClaimService(session, ctx).submit(staff_actor, expense("parking", "12"))

        assert "receipt is required" in exc_info.value.message

    async def test_unknown_category(self, session, ctx, staff_actor, claim_categories):
        with pytest.raises(ValidationFailed):
            await ClaimService(session, ctx).submit(staff_actor, expense("travel", "12"))

    async def test_amount_must_be_positive(self, session, ctx, staff_actor, claim_categories):
        with pytest.raises(ValidationFailed):
            await ClaimService(session, ctx).submit(staff_actor, expense("fuel", "0"))

    async def test_duplicate_receipt(
        self, session, ctx, staff_actor, supervisor_actor, claim_categories
    ):
        """A rejected claim frees its receipt for resubmission."""
        service = ClaimService(session, ctx)
        first = await service.submit(staff_actor, expense("fuel", "50", receipt=RECEIPT))
        await service.reject(supervisor_actor, first.claim_id, "Wrong category")

        second = await service.submit(staff_actor, expense("fuel", "50", receipt=RECEIPT))
        assert second.status == "pending"

        with pytest.raises(Conflict):
            await service.submit(staff_actor, expense("fuel", "50", receipt=RECEIPT))

    async def test_admin_cannot_submit(self, session, ctx, admin_actor, claim_categories):
        with pytest.raises(AuthorizationDenied):
            await ClaimService(session, ctx).submit(admin_actor, expense("fuel", "20"))


class TestReview:
    """Test reviewer decisions."""

    async def test_approve(self, session, ctx, staff_actor, supervisor_actor, claim_categories):
        service = ClaimService(session, ctx)
        claim = await service.submit(staff_actor, expense("fuel", "80", signals=read_as("50")))

        approved = await service.approve(supervisor_actor, claim.claim_id)

        assert approved.status == "approved"
        assert approved.approver_id == supervisor_actor.employee_id
        assert approved.approved_at is not None

        with pytest.raises(Conflict):
            await service.approve(supervisor_actor, claim.claim_id)

    async def test_reject_notifies_owner(
        self, session, ctx, sink, staff_actor, supervisor_actor, claim_categories
    ):
        service = ClaimService(session, ctx)
        claim = await service.submit(staff_actor, expense("fuel", "20"))

        with pytest.raises(ValidationFailed):
            await service.reject(supervisor_actor, claim.claim_id, "  ")

        rejected = await service.reject(supervisor_actor, claim.claim_id, "No receipt")

        assert rejected.status == "rejected"
        assert rejected.rejection_reason == "No receipt"
        assert sink.recipients("claim_rejected") == {staff_actor.employee_id}

    async def test_outside_authority(
        self, session, ctx, company, other_outlet, staff_actor, claim_categories
    ):
        stranger = await add_employee(
            session,
            company,
            "Farah",
            role="supervisor",
            outlet=other_outlet,
            manages=[other_outlet],
        )
        service = ClaimService(session, ctx)
        claim = await service.submit(staff_actor, expense("fuel", "20"))

        with pytest.raises(AuthorizationDenied):
            await service.approve(await actor_for(session, stranger), claim.claim_id)

    async def test_revert(self, session, ctx, staff_actor, supervisor_actor, claim_categories):
        service = ClaimService(session, ctx)
        claim = await service.submit(staff_actor, expense("meal", "25", signals=read_as("25")))
        assert claim.auto_approved is True

        reverted = await service.revert(supervisor_actor, claim.claim_id)

        assert reverted.status == "pending"
        assert reverted.auto_approved is False
        assert reverted.approved_at is None

        with pytest.raises(Conflict):
            await service.revert(supervisor_actor, claim.claim_id)



class TestUpdate:
    """Test editing a pending claim."""

    async def test_corrected_amount_auto_approves(
        self, session, ctx, staff_actor, claim_categories
    ):
        """An over-claim of 80 against a receipt of 50, corrected to 50."""
        service = ClaimService(session, ctx)
        claim = await service.submit(staff_actor, expense("fuel", "80", signals=read_as("50")))
        assert claim.status == "pending"

        edited = await service.update(
            staff_actor,
            claim.claim_id,
            ClaimEdit(date(2025, 11, 27), "fuel", Decimal("50"), description="Toll and fuel"),
        )

        assert edited.claimed_amount == Decimal("50")
        assert edited.amount == Decimal("50.00")
        assert edited.amount_mismatch_ignored is False
        assert edited.status == "approved"
        assert edited.auto_approved is True
        assert edited.approved_at is not None
        assert edited.claim_date == date(2025, 11, 27)
        assert edited.description == "Toll and fuel"

    async def test_recapped_on_category_change(
        self, session, ctx, staff_actor, claim_categories
    ):
        service = ClaimService(session, ctx)
        claim = await service.submit(staff_actor, expense("fuel", "45"))

        edited = await service.update(
            staff_actor, claim.claim_id, ClaimEdit(date(2025, 11, 28), "meal", Decimal("45"))
        )

        assert edited.category == "meal"
        assert edited.amount == Decimal("30.00")
        assert edited.claimed_amount == Decimal("45")
        # No receipt reading, so still pending.
        assert edited.status == "pending"

    async def test_new_receipt_drops_signals(
        self, session, ctx, staff_actor, claim_categories
    ):
        service = ClaimService(session, ctx)
        claim = await service.submit(staff_actor, expense("fuel", "80", signals=read_as("50")))

        edited = await service.update(
            staff_actor,
            claim.claim_id,
            ClaimEdit(
                date(2025, 11, 28),
                "fuel",
                Decimal("50"),
                receipt_url="https://receipts.example/fuel-2.jpg",
            ),
        )

        assert edited.receipt_url == "https://receipts.example/fuel-2.jpg"
        assert edited.ai_confidence is None
        assert edited.ai_extracted_amount is None
        assert edited.receipt_hash is None
        assert edited.status == "pending"

    async def test_receipt_still_required(self, session, ctx, staff_actor, claim_categories):
        service = ClaimService(session, ctx)
        claim = await service.submit(staff_actor, expense("fuel", "12"))
        claim_id = claim.claim_id

        with pytest.raises(ValidationFailed):
            await service.update(
                staff_actor, claim_id, ClaimEdit(date(2025, 11, 28), "parking", Decimal("12"))
            )

        assert (await session.get(Claim, claim_id)).category == "fuel"

    async def test_only_pending(self, session, ctx, staff_actor, claim_categories):
        service = ClaimService(session, ctx)
        claim = await service.submit(staff_actor, expense("meal", "25", signals=read_as("25")))
        assert claim.status == "approved"

        with pytest.raises(Conflict):
            await service.update(
                staff_actor, claim.claim_id, ClaimEdit(date(2025, 11, 28), "meal", Decimal("20"))
            )

    async def test_linked_claim(
        self, session, ctx, staff, staff_actor, admin_actor, claim_categories
    ):
        service = ClaimService(session, ctx)
        claim = await service.submit(staff_actor, expense("meal", "25", signals=read_as("25")))
        links = PayrollLinkService(session, ctx)
        item = await links.open_payroll_item(admin_actor, staff.employee_id, 11, 2025)
        await links.link_to_payroll(admin_actor, item.payroll_item_id)

        with pytest.raises(LinkedToPayroll):
            await service.update(
                admin_actor, claim.claim_id, ClaimEdit(date(2025, 11, 28), "meal", Decimal("20"))
            )

    async def test_reviewer_authority(
        self, session, ctx, company, other_outlet, staff_actor, supervisor_actor, claim_categories
    ):
        stranger = await add_employee(
            session,
            company,
            "Farah",
            role="supervisor",
            outlet=other_outlet,
            manages=[other_outlet],
        )
        service = ClaimService(session, ctx)
        claim = await service.submit(staff_actor, expense("fuel", "20"))
        edit = ClaimEdit(date(2025, 11, 28), "fuel", Decimal("18"))

        with pytest.raises(AuthorizationDenied):
            await service.update(await actor_for(session, stranger), claim.claim_id, edit)

        edited = await service.update(supervisor_actor, claim.claim_id, edit)
        assert edited.amount == Decimal("18.00")

    async def test_amount_must_be_positive(self, session, ctx, staff_actor, claim_categories):
        service = ClaimService(session, ctx)
        claim = await service.submit(staff_actor, expense("fuel", "20"))

        with pytest.raises(ValidationFailed):
            await service.update(
                staff_actor, claim.claim_id, ClaimEdit(date(2025, 11, 28), "fuel", Decimal("0"))
            )


class TestDelete:
    async def test_owner_deletes_pending(self, session, ctx, staff_actor, claim_categories):
        service = ClaimService(session, ctx)
        claim = await service.submit(staff_actor, expense("fuel", "20"))
        claim_id = claim.claim_id

        await service.delete(staff_actor, claim_id)

        assert await session.get(Claim, claim_id) is None

    async def test_owner_cannot_delete_approved(
        self, session, ctx, staff_actor, supervisor_actor, claim_categories
    ):
        service = ClaimService(session, ctx)
        claim = await service.submit(staff_actor, expense("meal", "25", signals=read_as("25")))
        claim_id = claim.claim_id

        with pytest.raises(Conflict):
            await service.delete(staff_actor, claim_id)

        await service.delete(supervisor_actor, claim_id)
        assert await session.get(Claim, claim_id) is None


class TestBulkApprove:
    async def test_outcomes_per_claim(
        self, session, ctx, staff_actor, supervisor_actor, manager_actor, claim_categories
    ):
        service = ClaimService(session, ctx)
        pending = await service.submit(staff_actor, expense("fuel", "20"))
        auto = await service.submit(staff_actor, expense("meal", "25", signals=read_as("25")))
        own = await service.submit(supervisor_actor, expense("fuel", "35"))
        missing = uuid4()

        outcomes = await service.bulk_approve(
            supervisor_actor,
            [pending.claim_id, auto.claim_id, missing, own.claim_id, pending.claim_id],
        )

        assert [(o.claim_id, o.outcome) for o in outcomes] == [
            (pending.claim_id, "approved"),
            (auto.claim_id, "skipped"),
            (missing, "not_found"),
            (own.claim_id, "denied"),
        ]
        assert pending.status == "approved"
        assert own.status == "pending"

        manager_outcomes = await service.bulk_approve(manager_actor, [own.claim_id])
        assert manager_outcomes[0].outcome == "approved"
