"""Pure calculation functions used by the services."""

from hr_engine.calculators.amortization import deduction_for, first_allowed_period
from hr_engine.calculators.claim_rules import dispose_claim
from hr_engine.calculators.entitlement import (
    completed_service_years,
    entitlement_for_years,
    evaluate_eligibility,
    prorate_entitlement,
)
from hr_engine.calculators.work_time import compute_work_time
from hr_engine.calculators.working_days import count_working_days

__all__ = [
    "completed_service_years",
    "compute_work_time",
    "count_working_days",
    "deduction_for",
    "dispose_claim",
    "entitlement_for_years",
    "evaluate_eligibility",
    "first_allowed_period",
    "prorate_entitlement",
]
