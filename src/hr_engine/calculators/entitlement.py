"""Leave entitlement and eligibility rules (Malaysian Employment Act 1955 defaults)."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Any

from hr_engine.calculators.types import EligibilityResult, EntitlementStep

HALF = Decimal("0.5")


def parse_steps(rules: Iterable[Mapping[str, Any]] | None) -> list[EntitlementStep]:
    """Build entitlement steps from the JSON stored on a leave type."""
    steps: list[EntitlementStep] = []
    for rule in rules or []:
        max_years = rule.get("max_years")
        steps.append(
            EntitlementStep(
                min_years=int(rule.get("min_years", 0)),
                max_years=int(max_years) if max_years is not None else None,
                days=Decimal(str(rule["days"])),
            )
        )
    return steps


def entitlement_for_years(
    default_days: Decimal,
    rules: Iterable[Mapping[str, Any]] | None,
    completed_years: int,
) -> Decimal:
    """Stepped entitlement lookup; falls back to the default when no step applies."""
    for step in parse_steps(rules):
        if step.applies_to(completed_years):
            return step.days
    return Decimal(default_days)


def completed_service_years(join_date: date, as_of: date) -> int:
    """Whole years of service completed on ``as_of``."""
    if as_of < join_date:
        return 0
    years = as_of.year - join_date.year
    if (as_of.month, as_of.day) < (join_date.month, join_date.day):
        years -= 1
    return max(0, years)


def service_days(join_date: date, as_of: date) -> int:
    return max(0, (as_of - join_date).days)


def prorate_entitlement(
    entitled: Decimal,
    join_date: date,
    year: int,
    rounding: str = "nearest",
    count_join_month: bool = True,
) -> Decimal:
    """Prorate a full-year entitlement for someone who joined during ``year``.

    Prorated = entitled * months_worked / 12. Joiners from earlier years get the
    full entitlement; ``nearest`` rounds to the nearest half day.
    """
    if join_date.year < year:
        return Decimal(entitled)
    if join_date.year > year:
        return Decimal("0")

    months_worked = 12 - (join_date.month - 1)
    if not count_join_month and join_date.day > 15:
        months_worked = max(0, months_worked - 1)

    prorated = Decimal(entitled) * months_worked / 12
    if rounding == "up":
        return prorated.to_integral_value(rounding=ROUND_CEILING)
    if rounding == "down":
        return prorated.to_integral_value(rounding=ROUND_FLOOR)
    return (prorated * 2).to_integral_value(rounding=ROUND_HALF_UP) / 2


def carry_forward(
    previous_available: Decimal, carries_forward: bool, max_carry: Decimal
) -> Decimal:
    """Unused days moved into the next year, capped at ``max_carry``."""
    if not carries_forward:
        return Decimal("0")
    return min(max(Decimal("0"), Decimal(previous_available)), Decimal(max_carry))


def evaluate_eligibility(
    *,
    employee_gender: str | None,
    join_date: date,
    as_of: date,
    gender_restriction: str | None,
    min_service_days: int,
    max_occurrences: int | None,
    approved_occurrences: int,
) -> EligibilityResult:
    """Gender, tenure and occurrence checks, in that order."""
    if gender_restriction:
        if (employee_gender or "").lower() != gender_restriction.lower():
            return EligibilityResult(
                False,
                f"This leave type is only available for {gender_restriction} employees",
            )

    if min_service_days and min_service_days > 0:
        if service_days(join_date, as_of) < min_service_days:
            return EligibilityResult(
                False, f"Minimum {min_service_days} days of service required"
            )

    if max_occurrences is not None and approved_occurrences >= max_occurrences:
        return EligibilityResult(
            False, f"Maximum {max_occurrences} occurrences already used this year"
        )

    return EligibilityResult(True)


# Statutory defaults seeded for new companies.
DEFAULT_LEAVE_TYPES: list[dict[str, Any]] = [
    {
        "code": "AL",
        "name": "Annual Leave",
        "is_paid": True,
        "default_days_per_year": Decimal("8"),
        "carries_forward": True,
        "max_carry_forward": Decimal("5"),
        "entitlement_rules": [
            {"min_years": 0, "max_years": 2, "days": 8},
            {"min_years": 2, "max_years": 5, "days": 12},
            {"min_years": 5, "max_years": None, "days": 16},
        ],
    },
    {
        "code": "ML",
        "name": "Medical Leave",
        "is_paid": True,
        "requires_attachment": True,
        "default_days_per_year": Decimal("14"),
        "entitlement_rules": [
            {"min_years": 0, "max_years": 2, "days": 14},
            {"min_years": 2, "max_years": 5, "days": 18},
            {"min_years": 5, "max_years": None, "days": 22},
        ],
    },
    {
        "code": "HL",
        "name": "Hospitalization Leave",
        "is_paid": True,
        "requires_attachment": True,
        "default_days_per_year": Decimal("60"),
    },
    {
        "code": "MAT",
        "name": "Maternity Leave",
        "is_paid": True,
        "is_consecutive": True,
        "gender_restriction": "female",
        "min_service_days": 90,
        "max_occurrences": 5,
        "default_days_per_year": Decimal("98"),
    },
    {
        "code": "PAT",
        "name": "Paternity Leave",
        "is_paid": True,
        "is_consecutive": True,
        "gender_restriction": "male",
        "min_service_days": 365,
        "max_occurrences": 5,
        "default_days_per_year": Decimal("7"),
    },
    {
        "code": "UL",
        "name": "Unpaid Leave",
        "is_paid": False,
        "default_days_per_year": Decimal("0"),
    },
]
