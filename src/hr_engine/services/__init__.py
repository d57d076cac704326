"""Business services for the HR engine."""

from hr_engine.services.advance_service import AdvanceInput, AdvanceService
from hr_engine.services.attendance_service import (
    AttendanceHistory,
    AttendanceService,
    PunchEvidence,
    TodayStatus,
)
from hr_engine.services.authority import (
    Actor,
    ActorClaims,
    ApprovalTarget,
    can_act_for,
    initial_approval_level,
    load_actor,
    role_matches_level,
)
from hr_engine.services.claim_service import BulkOutcome, ClaimService, ClaimSubmission
from hr_engine.services.clock_state_machine import ClockAction, ClockState, ClockStateMachine
from hr_engine.services.context import ServiceContext
from hr_engine.services.holiday_service import HolidayCache, HolidayService
from hr_engine.services.leave_entitlement_service import LeaveEntitlementService
from hr_engine.services.leave_service import LeaveDecision, LeaveService, LeaveSubmission
from hr_engine.services.organization_service import OrganizationService
from hr_engine.services.payroll_link_service import PayrollLinkService, PayrollSnapshot

__all__ = [
    "Actor",
    "ActorClaims",
    "AdvanceInput",
    "AdvanceService",
    "ApprovalTarget",
    "AttendanceHistory",
    "AttendanceService",
    "BulkOutcome",
    "ClaimService",
    "ClaimSubmission",
    "ClockAction",
    "ClockState",
    "ClockStateMachine",
    "HolidayCache",
    "HolidayService",
    "LeaveDecision",
    "LeaveEntitlementService",
    "LeaveService",
    "LeaveSubmission",
    "OrganizationService",
    "PayrollLinkService",
    "PayrollSnapshot",
    "PunchEvidence",
    "ServiceContext",
    "TodayStatus",
    "can_act_for",
    "initial_approval_level",
    "load_actor",
    "role_matches_level",
]
