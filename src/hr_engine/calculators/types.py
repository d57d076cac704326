"""Type definitions for the calculation layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import UUID

CENTS = Decimal("0.01")


def round_to_cents(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places."""
    return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class WorkTime:
    """Derived totals for a timecard."""

    work_minutes: int
    break_minutes: int
    ot_minutes: int
    ot_flagged: bool

    @property
    def work_hours(self) -> Decimal:
        return (Decimal(self.work_minutes) / 60).quantize(CENTS, rounding=ROUND_HALF_UP)

    @property
    def ot_hours(self) -> Decimal:
        return (Decimal(self.ot_minutes) / 60).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class EligibilityResult:
    """Outcome of leave eligibility checks."""

    eligible: bool
    reason: str | None = None


@dataclass(frozen=True)
class EntitlementStep:
    """One step of a service-years entitlement schedule."""

    min_years: int
    max_years: int | None
    days: Decimal

    def applies_to(self, years: int) -> bool:
        if years < self.min_years:
            return False
        return self.max_years is None or years < self.max_years


class ReviewReason(str, Enum):
    """Why a claim was routed to manual review."""

    EXCEEDS_LIMIT = "exceeds limit"
    LOW_CONFIDENCE = "receipt unreadable or low confidence"
    OVER_CLAIM = "over-claim vs receipt"
    NO_AI = "no receipt verification"
    OVER_THRESHOLD = "above auto-approve threshold"


@dataclass(frozen=True)
class CategoryRule:
    """Claim category limits."""

    code: str
    max_amount: Decimal | None = None
    auto_cap: bool = False
    receipt_required: bool = False


@dataclass(frozen=True)
class ReceiptSignals:
    """Output of the external receipt reader."""

    extracted_amount: Decimal | None
    confidence: str
    receipt_hash: str | None = None


@dataclass
class ClaimDisposition:
    """Result of running a claim through the capping and AI rules."""

    amount: Decimal
    auto_approved: bool = False
    capped: bool = False
    amount_mismatch_ignored: bool = False
    reasons: list[ReviewReason] = field(default_factory=list)

    @property
    def status(self) -> str:
        return "approved" if self.auto_approved else "pending"

    @property
    def review_reason(self) -> str | None:
        if not self.reasons:
            return None
        return "; ".join(r.value for r in self.reasons)


@dataclass(frozen=True)
class AdvanceTerms:
    """The parts of a salary advance that drive its monthly deduction."""

    advance_id: UUID | None
    method: str
    remaining: Decimal
    installment_amount: Decimal | None
    first_month: int
    first_year: int


@dataclass(frozen=True)
class DeductionLine:
    """Amount to deduct from one advance in one payroll month."""

    advance_id: UUID
    amount: Decimal
    remaining_after: Decimal
