"""Claim service: submission through capping and AI disposition, then review."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_engine.calculators.claim_rules import dispose_claim
from hr_engine.calculators.types import CategoryRule, ClaimDisposition, ReceiptSignals
from hr_engine.database import unit_of_work
from hr_engine.errors import (
    AuthorizationDenied,
    Conflict,
    LinkedToPayroll,
    NotFound,
    ValidationFailed,
)
from hr_engine.integrations.notifications import Notification
from hr_engine.integrations.object_store import upload_with_deadline
from hr_engine.models import Claim, ClaimCategory, ClaimStatus, Company, Employee
from hr_engine.services.authority import (
    Actor,
    ApprovalTarget,
    get_employee,
    require_authority,
)
from hr_engine.services.context import ServiceContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClaimSubmission:
    """A claim as entered by the employee, with optional receipt reader output."""

    claim_date: date
    category: str
    amount: Decimal
    description: str | None = None
    receipt: bytes | None = None
    receipt_name: str | None = None
    receipt_url: str | None = None
    signals: ReceiptSignals | None = None


@dataclass(frozen=True)
class ClaimEdit:
    """New values for a pending claim. A ``receipt_url`` of None keeps the receipt."""

    claim_date: date
    category: str
    amount: Decimal
    description: str | None = None
    receipt_url: str | None = None


@dataclass(frozen=True)
class BulkOutcome:
    """Per-claim result of a bulk approval."""

    claim_id: UUID
    outcome: str  # approved | skipped | denied | not_found
    detail: str | None = None


def receipt_hash(data: bytes) -> str:
    """Content hash used to spot the same receipt submitted twice."""
    return hashlib.sha256(data).hexdigest()


def _finite(value: Decimal | None) -> Decimal | None:
    if value is None or not Decimal(value).is_finite():
        return None
    return Decimal(value)


class ClaimService:
    """Service for expense claims.

    Operations:
    - submit: cap, read AI signals, auto-approve or route to review
    - update: edit a pending claim and run it through the same rules again
    - approve / reject / revert: reviewer decisions
    - delete: remove an unlinked claim
    - bulk_approve: approve many, reporting an outcome per claim
    """

    def __init__(self, session: AsyncSession, ctx: ServiceContext):
        self.session = session
        self.ctx = ctx

    async def _get_employee(self, employee_id: UUID) -> Employee:
        return await get_employee(self.session, employee_id)

    async def _get_category(self, company_id: UUID, code: str) -> ClaimCategory:
        result = await self.session.execute(
            select(ClaimCategory).where(
                ClaimCategory.company_id == company_id,
                ClaimCategory.code == code,
                ClaimCategory.is_active.is_(True),
            )
        )
        category = result.scalar_one_or_none()
        if category is None:
            raise ValidationFailed(f"unknown claim category '{code}'")
        return category

    async def _lock_claim(self, claim_id: UUID) -> Claim:
        result = await self.session.execute(
            select(Claim).where(Claim.claim_id == claim_id).with_for_update(of=Claim)
        )
        claim = result.scalar_one_or_none()
        if claim is None:
            raise NotFound("Claim", claim_id)
        return claim

    @staticmethod
    def _dispose(
        company: Company,
        category: ClaimCategory,
        amount: Decimal,
        signals: ReceiptSignals | None,
    ) -> ClaimDisposition:
        return dispose_claim(
            amount,
            CategoryRule(
                code=category.code,
                max_amount=category.max_amount,
                auto_cap=category.auto_cap,
                receipt_required=category.receipt_required,
            ),
            signals,
            tolerance=Decimal(company.claim_amount_tolerance),
            auto_approve_threshold=Decimal(company.claim_auto_approve_threshold),
        )

    async def _find_duplicate(self, employee_id: UUID, hash_value: str) -> Claim | None:
        result = await self.session.execute(
            select(Claim)
            .where(
                Claim.employee_id == employee_id,
                Claim.receipt_hash == hash_value,
                Claim.status != ClaimStatus.REJECTED.value,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def submit(self, actor: Actor, submission: ClaimSubmission) -> Claim:
        if actor.employee_id is None:
            raise AuthorizationDenied("Only employees can submit claims")

        amount = Decimal(submission.amount)
        if not amount.is_finite() or amount <= 0:
            raise ValidationFailed("amount must be greater than zero")

        employee = await self._get_employee(actor.employee_id)
        company = employee.company

        async with unit_of_work(self.session):
            category = await self._get_category(employee.company_id, submission.category)
            has_receipt = bool(submission.receipt) or bool(submission.receipt_url)
            if category.receipt_required and not has_receipt:
                raise ValidationFailed(f"a receipt is required for {category.name} claims")

            signals = submission.signals
            hash_value = signals.receipt_hash if signals else None
            if hash_value is None and submission.receipt:
                hash_value = receipt_hash(submission.receipt)
            if hash_value is not None:
                duplicate = await self._find_duplicate(employee.employee_id, hash_value)
                if duplicate is not None:
                    raise Conflict(
                        f"receipt already submitted with claim {duplicate.claim_id}"
                    )

            disposition = self._dispose(company, category, amount, signals)

            receipt_url = submission.receipt_url
            if submission.receipt:
                name = submission.receipt_name or "receipt"
                receipt_url = await upload_with_deadline(
                    self.ctx.object_store,
                    submission.receipt,
                    folder="receipts",
                    key=f"{employee.employee_id}/{uuid4().hex}-{name}",
                    timeout=self.ctx.settings.upload_timeout_seconds,
                )

            claim = Claim(
                claim_id=uuid4(),
                employee_id=employee.employee_id,
                company_id=employee.company_id,
                claim_date=submission.claim_date,
                category=category.code,
                description=submission.description,
                claimed_amount=amount,
                amount=disposition.amount,
                receipt_url=receipt_url,
                receipt_hash=hash_value,
                ai_extracted_amount=_finite(signals.extracted_amount) if signals else None,
                ai_confidence=signals.confidence.lower() if signals else None,
                amount_mismatch_ignored=disposition.amount_mismatch_ignored,
                status=disposition.status,
                auto_approved=disposition.auto_approved,
                review_reason=disposition.review_reason,
                approved_at=self.ctx.clock.now() if disposition.auto_approved else None,
            )
            self.session.add(claim)

        logger.info(
            "Claim %s submitted by %s: %s %s (claimed %s) status=%s reason=%s",
            claim.claim_id,
            employee.employee_id,
            claim.category,
            claim.amount,
            amount,
            claim.status,
            claim.review_reason,
        )
        return claim

    async def update(self, actor: Actor, claim_id: UUID, edit: ClaimEdit) -> Claim:
        """Edit a pending claim; the owner or a reviewer with authority may do so.

        The new amount goes through capping and the stored receipt signals
        again, so an edit can auto-approve the claim. Replacing the receipt
        drops the signals read from the old one.
        """
        amount = Decimal(edit.amount)
        if not amount.is_finite() or amount <= 0:
            raise ValidationFailed("amount must be greater than zero")

        async with unit_of_work(self.session):
            claim = await self._lock_claim(claim_id)
            if claim.is_linked:
                raise LinkedToPayroll("Claim", claim_id, claim.linked_payroll_item_id)
            employee = await self._get_employee(claim.employee_id)
            if actor.employee_id is None or actor.employee_id != claim.employee_id:
                require_authority(actor, ApprovalTarget.for_employee(employee))
            if claim.status != ClaimStatus.PENDING.value:
                raise Conflict(
                    f"Only pending claims can be edited; claim {claim_id} is {claim.status}"
                )

            category = await self._get_category(claim.company_id, edit.category)
            if edit.receipt_url is not None and edit.receipt_url != claim.receipt_url:
                claim.receipt_url = edit.receipt_url
                claim.receipt_hash = None
                claim.ai_extracted_amount = None
                claim.ai_confidence = None
            if category.receipt_required and not claim.receipt_url:
                raise ValidationFailed(f"a receipt is required for {category.name} claims")

            signals = None
            if claim.ai_confidence is not None:
                signals = ReceiptSignals(
                    extracted_amount=claim.ai_extracted_amount,
                    confidence=claim.ai_confidence,
                    receipt_hash=claim.receipt_hash,
                )
            disposition = self._dispose(employee.company, category, amount, signals)

            claim.claim_date = edit.claim_date
            claim.category = category.code
            claim.description = edit.description
            claim.claimed_amount = amount
            claim.amount = disposition.amount
            claim.amount_mismatch_ignored = disposition.amount_mismatch_ignored
            claim.status = disposition.status
            claim.auto_approved = disposition.auto_approved
            claim.review_reason = disposition.review_reason
            claim.approved_at = self.ctx.clock.now() if disposition.auto_approved else None

        logger.info(
            "Claim %s edited by %s: %s %s status=%s",
            claim_id,
            actor.employee_id or actor.role,
            claim.category,
            claim.amount,
            claim.status,
        )
        return claim

    async def _reviewable(self, actor: Actor, claim_id: UUID) -> tuple[Claim, Employee]:
        claim = await self._lock_claim(claim_id)
        if claim.is_linked:
            raise LinkedToPayroll("Claim", claim_id, claim.linked_payroll_item_id)
        employee = await self._get_employee(claim.employee_id)
        require_authority(actor, ApprovalTarget.for_employee(employee))
        return claim, employee

    def _approve(self, actor: Actor, claim: Claim) -> None:
        claim.status = ClaimStatus.APPROVED.value
        claim.approver_id = actor.employee_id
        claim.approved_at = self.ctx.clock.now()
        claim.rejection_reason = None

    async def approve(self, actor: Actor, claim_id: UUID) -> Claim:
        async with unit_of_work(self.session):
            claim, _ = await self._reviewable(actor, claim_id)
            if claim.status != ClaimStatus.PENDING.value:
                raise Conflict(f"Claim {claim_id} is {claim.status}")
            self._approve(actor, claim)

        logger.info("Claim %s approved by %s", claim_id, actor.employee_id or actor.role)
        return claim

    async def reject(self, actor: Actor, claim_id: UUID, reason: str) -> Claim:
        if not reason or not reason.strip():
            raise ValidationFailed("rejection reason is required")

        async with self.ctx.notifier.outbox() as outbox:
            async with unit_of_work(self.session):
                claim, _ = await self._reviewable(actor, claim_id)
                if claim.status != ClaimStatus.PENDING.value:
                    raise Conflict(f"Claim {claim_id} is {claim.status}")

                claim.status = ClaimStatus.REJECTED.value
                claim.rejection_reason = reason.strip()
                claim.approver_id = actor.employee_id
                claim.approved_at = None
                outbox.add(
                    Notification(
                        employee_id=claim.employee_id,
                        type="claim_rejected",
                        title="Claim rejected",
                        message=(
                            f"Your {claim.category} claim of RM{claim.amount} was rejected: "
                            f"{claim.rejection_reason}"
                        ),
                        reference_type="claim",
                        reference_id=claim.claim_id,
                    )
                )

        logger.info("Claim %s rejected by %s", claim_id, actor.employee_id or actor.role)
        return claim

    async def revert(self, actor: Actor, claim_id: UUID) -> Claim:
        """Send an approved or rejected claim back to pending review."""
        async with unit_of_work(self.session):
            claim, _ = await self._reviewable(actor, claim_id)
            if claim.status == ClaimStatus.PENDING.value:
                raise Conflict(f"Claim {claim_id} is already pending")

            claim.status = ClaimStatus.PENDING.value
            claim.auto_approved = False
            claim.approver_id = None
            claim.approved_at = None
            claim.rejection_reason = None

        logger.info("Claim %s reverted to pending by %s", claim_id, actor.employee_id or actor.role)
        return claim

    async def delete(self, actor: Actor, claim_id: UUID) -> None:
        """Owners delete their own pending claims; reviewers any unlinked one."""
        async with unit_of_work(self.session):
            claim = await self._lock_claim(claim_id)
            if claim.is_linked:
                raise LinkedToPayroll("Claim", claim_id, claim.linked_payroll_item_id)

            own = actor.employee_id is not None and claim.employee_id == actor.employee_id
            if own:
                if claim.status != ClaimStatus.PENDING.value:
                    raise Conflict("Only pending claims can be deleted by their owner")
            else:
                employee = await self._get_employee(claim.employee_id)
                require_authority(actor, ApprovalTarget.for_employee(employee))

            await self.session.delete(claim)

        logger.info("Claim %s deleted by %s", claim_id, actor.employee_id or actor.role)

    async def bulk_approve(self, actor: Actor, claim_ids: list[UUID]) -> list[BulkOutcome]:
        """Approve each pending, unlinked claim the actor may decide.

        Claims that are linked, not pending or outside the actor's authority
        are reported and skipped; the others are approved together.
        """
        outcomes: list[BulkOutcome] = []
        async with unit_of_work(self.session):
            for claim_id in dict.fromkeys(claim_ids):
                try:
                    claim, _ = await self._reviewable(actor, claim_id)
                except NotFound as e:
                    outcomes.append(BulkOutcome(claim_id, "not_found", e.message))
                    continue
                except AuthorizationDenied as e:
                    outcomes.append(BulkOutcome(claim_id, "denied", e.message))
                    continue
                except LinkedToPayroll as e:
                    outcomes.append(BulkOutcome(claim_id, "skipped", e.message))
                    continue

                if claim.status != ClaimStatus.PENDING.value:
                    outcomes.append(BulkOutcome(claim_id, "skipped", f"claim is {claim.status}"))
                    continue

                self._approve(actor, claim)
                outcomes.append(BulkOutcome(claim_id, "approved"))

        approved = sum(1 for o in outcomes if o.outcome == "approved")
        logger.info(
            "Bulk approval by %s: %d of %d claims approved",
            actor.employee_id or actor.role,
            approved,
            len(outcomes),
        )
        return outcomes
