"""Claim capping, AI receipt signals and auto-approval disposition."""

from __future__ import annotations

from decimal import Decimal

from hr_engine.calculators.types import (
    CategoryRule,
    ClaimDisposition,
    ReceiptSignals,
    ReviewReason,
    round_to_cents,
)

TRUSTED_CONFIDENCE = frozenset({"high", "medium"})
UNTRUSTED_CONFIDENCE = frozenset({"low", "unreadable"})


def dispose_claim(
    amount: Decimal,
    rule: CategoryRule,
    signals: ReceiptSignals | None,
    tolerance: Decimal,
    auto_approve_threshold: Decimal,
) -> ClaimDisposition:
    """Decide the stored amount and whether a claim is auto-approved.

    1. Over the category max: cap when auto-cap is on, otherwise review.
    2. Low/unreadable AI confidence forces review; an amount above the
       extracted receipt amount plus tolerance is an over-claim.
    3. Auto-approval needs: within cap, trusted AI, no mismatch, at or under
       the company threshold.
    """
    disposition = ClaimDisposition(amount=round_to_cents(amount))
    within_cap = True

    if rule.max_amount is not None and disposition.amount > rule.max_amount:
        if rule.auto_cap:
            disposition.amount = round_to_cents(rule.max_amount)
            disposition.capped = True
        else:
            within_cap = False
            disposition.reasons.append(ReviewReason.EXCEEDS_LIMIT)

    trusted = False
    if signals is None:
        disposition.reasons.append(ReviewReason.NO_AI)
    else:
        confidence = (signals.confidence or "").lower()
        if confidence in UNTRUSTED_CONFIDENCE:
            disposition.reasons.append(ReviewReason.LOW_CONFIDENCE)
        elif confidence in TRUSTED_CONFIDENCE:
            trusted = True

        extracted = signals.extracted_amount
        if extracted is not None and Decimal(extracted).is_finite():
            if disposition.amount > Decimal(extracted) + tolerance:
                disposition.amount_mismatch_ignored = True
                disposition.reasons.append(ReviewReason.OVER_CLAIM)

    if disposition.amount > auto_approve_threshold:
        disposition.reasons.append(ReviewReason.OVER_THRESHOLD)

    disposition.auto_approved = (
        within_cap
        and trusted
        and not disposition.amount_mismatch_ignored
        and disposition.amount <= auto_approve_threshold
    )
    return disposition
