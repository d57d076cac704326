"""Salary advance deduction schedule."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from hr_engine.calculators.types import AdvanceTerms, round_to_cents


def period_key(month: int, year: int) -> tuple[int, int]:
    """Sortable (year, month) key."""
    return (year, month)


def next_month(on: date) -> tuple[int, int]:
    """(month, year) of the month after ``on``."""
    if on.month == 12:
        return 1, on.year + 1
    return on.month + 1, on.year


def first_allowed_period(today: date) -> tuple[int, int]:
    """Earliest (month, year) a new advance may start deducting."""
    return next_month(today)


def deduction_for(terms: AdvanceTerms, month: int, year: int) -> Decimal:
    """Amount due from one active advance in the given month.

    Nothing is due before the first deduction month. ``full`` takes the whole
    remaining balance; ``installment`` takes the installment, never more than
    what is left.
    """
    if period_key(month, year) < period_key(terms.first_month, terms.first_year):
        return Decimal("0.00")

    remaining = Decimal(terms.remaining)
    if remaining <= 0:
        return Decimal("0.00")

    if terms.method == "installment" and terms.installment_amount:
        return round_to_cents(min(Decimal(terms.installment_amount), remaining))
    return round_to_cents(remaining)
