"""Error taxonomy for core operations.

Every error carries a stable ``code``; mapping codes to a transport (HTTP
status, CLI exit code) is the wrapper's concern.
"""

from __future__ import annotations

from uuid import UUID


class HREngineError(Exception):
    """Base class for all core operation errors."""

    code = "INTERNAL_ERROR"
    retryable = False

    def __init__(self, message: str, reasons: list[str] | None = None):
        self.message = message
        self.reasons = list(reasons or [])
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Serializable form used by the HTTP wrapper."""
        return {"detail": self.message, "code": self.code, "reasons": self.reasons}


class ValidationFailed(HREngineError):
    """Inputs violate a precondition."""

    code = "VALIDATION_FAILED"

    def __init__(self, reasons: list[str] | str, message: str | None = None):
        if isinstance(reasons, str):
            reasons = [reasons]
        super().__init__(message or "; ".join(reasons), reasons)


class Conflict(HREngineError):
    """A state precondition fails."""

    code = "CONFLICT"


class AlreadyClockedIn(Conflict):
    """First clock-in of the day already recorded."""

    code = "ALREADY_CLOCKED_IN"

    def __init__(self, employee_id: UUID, work_date: object):
        self.employee_id = employee_id
        self.work_date = work_date
        super().__init__(f"Employee {employee_id} has already clocked in on {work_date}")


class OutOfOrderAction(Conflict):
    """A clock action was attempted from a state that does not allow it."""

    code = "OUT_OF_ORDER_ACTION"

    def __init__(self, action: str, state: str, reason: str | None = None):
        self.action = action
        self.state = state
        msg = f"Action '{action}' is not allowed in state '{state}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class AuthorizationDenied(HREngineError):
    """The approval authority resolver refused the action."""

    code = "AUTHORIZATION_DENIED"


class NotFound(HREngineError):
    """Entity absent."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class LinkedToPayroll(HREngineError):
    """The record is bound to a payroll item and can no longer change."""

    code = "LINKED_TO_PAYROLL"

    def __init__(self, entity: str, entity_id: object, payroll_item_id: object = None):
        self.entity = entity
        self.entity_id = entity_id
        self.payroll_item_id = payroll_item_id
        msg = f"{entity} {entity_id} is linked to payroll"
        if payroll_item_id is not None:
            msg += f" item {payroll_item_id}"
        super().__init__(msg)


class ConcurrentBalanceMismatch(HREngineError):
    """A parallel decision consumed the leave balance first."""

    code = "CONCURRENT_BALANCE_MISMATCH"
    retryable = True


class ExternalUnavailable(HREngineError):
    """Object store or another collaborator failed."""

    code = "EXTERNAL_UNAVAILABLE"
