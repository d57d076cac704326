"""Tests for claim capping, AI signals and auto-approval."""

from decimal import Decimal

from hr_engine.calculators.claim_rules import dispose_claim
from hr_engine.calculators.types import CategoryRule, ReceiptSignals, ReviewReason

MEAL = CategoryRule(code="meal", max_amount=Decimal("30.00"), auto_cap=True)
FUEL = CategoryRule(code="fuel", max_amount=Decimal("200.00"), auto_cap=False)
THRESHOLD = Decimal("100.00")
NO_TOLERANCE = Decimal("0.00")


def dispose(amount, rule, signals, tolerance=NO_TOLERANCE, threshold=THRESHOLD):
    return dispose_claim(Decimal(amount), rule, signals, tolerance, threshold)


class TestDisposeClaim:
    """Test the claim disposition rules."""

    def test_auto_cap_then_auto_approve(self):
        """Meal of 45 against a cap of 30 is stored as 30 and auto-approved."""
        result = dispose("45", MEAL, ReceiptSignals(Decimal("45"), "high"))

        assert result.amount == Decimal("30.00")
        assert result.capped is True
        assert result.auto_approved is True
        assert result.status == "approved"
        assert result.review_reason is None

    def test_over_claim_goes_to_review(self):
        """Fuel of 80 against a receipt reading 50 is an over-claim."""
        result = dispose("80", FUEL, ReceiptSignals(Decimal("50"), "high"))

        assert result.status == "pending"
        assert result.amount == Decimal("80.00")
        assert result.amount_mismatch_ignored is True
        assert "over-claim" in result.review_reason

    def test_over_limit_without_cap(self):
        result = dispose("250", FUEL, ReceiptSignals(Decimal("250"), "high"))

        assert result.auto_approved is False
        assert ReviewReason.EXCEEDS_LIMIT in result.reasons
        assert result.amount == Decimal("250.00")

    def test_low_confidence_forces_review(self):
        for confidence in ("low", "unreadable"):
            result = dispose("20", FUEL, ReceiptSignals(Decimal("20"), confidence))

            assert result.auto_approved is False
            assert ReviewReason.LOW_CONFIDENCE in result.reasons

    def test_no_ai_signals(self):
        result = dispose("20", FUEL, None)

        assert result.auto_approved is False
        assert result.reasons == [ReviewReason.NO_AI]

    def test_medium_confidence_trusted(self):
        result = dispose("20", FUEL, ReceiptSignals(Decimal("20"), "Medium"))

        assert result.auto_approved is True

    def test_above_threshold(self):
        """A clean claim above the company threshold still needs review."""
        result = dispose("150", FUEL, ReceiptSignals(Decimal("150"), "high"))

        assert result.auto_approved is False
        assert result.reasons == [ReviewReason.OVER_THRESHOLD]

    def test_at_threshold_approved(self):
        result = dispose("100", FUEL, ReceiptSignals(Decimal("100"), "high"))

        assert result.auto_approved is True

    def test_tolerance(self):
        """Within the company tolerance the amounts are treated as matching."""
        signals = ReceiptSignals(Decimal("50"), "high")

        assert dispose("50.50", FUEL, signals, tolerance=Decimal("1.00")).auto_approved is True
        assert dispose("51.50", FUEL, signals, tolerance=Decimal("1.00")).auto_approved is False

    def test_missing_extracted_amount(self):
        """No extracted amount means nothing to compare against."""
        result = dispose("20", FUEL, ReceiptSignals(None, "high"))

        assert result.amount_mismatch_ignored is False
        assert result.auto_approved is True

    def test_rounds_to_cents(self):
        result = dispose("12.345", FUEL, ReceiptSignals(Decimal("20"), "high"))

        assert result.amount == Decimal("12.35")
