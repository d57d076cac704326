"""Pydantic schemas for API request/response models."""

from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID

from pydantic import Base64Bytes, BaseModel, ConfigDict, Field


# ============================================================================
# Errors
# ============================================================================


class ErrorResponse(BaseModel):
    """Error body rendered for every core error."""

    detail: str
    code: str
    reasons: list[str] = Field(default_factory=list)


# ============================================================================
# Company schemas
# ============================================================================


class CompanyCreate(BaseModel):
    name: str = Field(min_length=1)
    grouping_mode: str = Field(default="outlet", pattern="^(outlet|department)$")
    standard_work_minutes: int | None = Field(default=None, gt=0)
    claim_auto_approve_threshold: Decimal | None = Field(default=None, ge=0)
    claim_amount_tolerance: Decimal | None = Field(default=None, ge=0)


class CompanyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    company_id: UUID
    name: str
    grouping_mode: str
    standard_work_minutes: int
    claim_auto_approve_threshold: Decimal
    claim_amount_tolerance: Decimal


class GroupingModeRequest(BaseModel):
    grouping_mode: str


# ============================================================================
# Attendance schemas
# ============================================================================


class ClockActionRequest(BaseModel):
    """Evidence captured by the device; the server stamps the time."""

    selfie: Base64Bytes | None = None
    face_detected: bool = False
    face_confidence: float | None = None
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    address: str | None = None


class PunchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    slot: str
    punched_at: time
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    address: str | None = None
    selfie_url: str | None = None
    face_detected: bool
    face_confidence: float | None = None


class TimecardResponse(BaseModel):
    """Schema for timecard response."""

    model_config = ConfigDict(from_attributes=True)

    timecard_id: UUID
    employee_id: UUID
    work_date: date
    clock_in_1: time | None = None
    clock_out_1: time | None = None
    clock_in_2: time | None = None
    clock_out_2: time | None = None
    work_minutes: int
    ot_minutes: int
    ot_flagged: bool
    ot_rate: Decimal | None = None
    ot_approved: bool | None = None
    ot_decided_by: UUID | None = None
    ot_decided_at: datetime | None = None
    ot_rejection_reason: str | None = None
    status: str
    approval_status: str
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    schedule_id: UUID | None = None
    attendance_status: str | None = None
    linked_payroll_item_id: UUID | None = None
    punches: list[PunchResponse] = Field(default_factory=list)


class TodayStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    work_date: date
    state: str
    next_action: str | None = None
    timecard: TimecardResponse | None = None


class AttendanceHistoryResponse(BaseModel):
    """A month of timecards with totals."""

    model_config = ConfigDict(from_attributes=True)

    month: int
    year: int
    days_worked: int
    days_completed: int
    total_work_minutes: int
    total_ot_minutes: int
    timecards: list[TimecardResponse]


class RejectRequest(BaseModel):
    reason: str = Field(min_length=1)


class TimecardBulkApproveRequest(BaseModel):
    timecard_ids: list[UUID] = Field(min_length=1)


class OvertimeDecisionRequest(BaseModel):
    timecard_ids: list[UUID] = Field(min_length=1)
    decision: str = Field(pattern="^(approve|reject)$")
    reason: str | None = None


class TimecardOutcomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    timecard_id: UUID
    outcome: str
    detail: str | None = None


class ClearSlotRequest(BaseModel):
    slot: str


class PurgeEvidenceRequest(BaseModel):
    before: date | None = None


class PurgeEvidenceResponse(BaseModel):
    purged: int
    before: date | None = None


# ============================================================================
# Holiday schemas
# ============================================================================


class HolidayCreate(BaseModel):
    name: str
    holiday_date: date
    company_id: UUID | None = None
    extra_pay: bool = True


class HolidayResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    holiday_id: UUID
    company_id: UUID | None = None
    name: str
    holiday_date: date
    extra_pay: bool


class WorkingDaysResponse(BaseModel):
    start: date
    end: date
    working_days: int


# ============================================================================
# Leave schemas
# ============================================================================


class LeaveSubmitRequest(BaseModel):
    """Schema for a new leave application."""

    leave_type_id: UUID
    start_date: date
    end_date: date
    half_day: bool = False
    reason: str | None = None
    attachment: Base64Bytes | None = None
    attachment_name: str | None = None
    attachment_url: str | None = None


class LeaveRequestResponse(BaseModel):
    """Schema for leave request response."""

    model_config = ConfigDict(from_attributes=True)

    leave_request_id: UUID
    employee_id: UUID
    leave_type_id: UUID
    start_date: date
    end_date: date
    total_days: Decimal
    half_day: bool
    reason: str | None = None
    attachment_url: str | None = None
    status: str
    approval_level: int
    supervisor_id: UUID | None = None
    supervisor_approved_at: datetime | None = None
    manager_id: UUID | None = None
    manager_approved_at: datetime | None = None
    approver_id: UUID | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    cancelled_at: datetime | None = None
    is_linked: bool = False


class LeaveDecisionRequest(BaseModel):
    decision: str = Field(pattern="^(approve|reject)$")
    reason: str | None = None


class AdminCancelRequest(BaseModel):
    reason: str | None = None


# ============================================================================
# Claim schemas
# ============================================================================


class ReceiptSignalsIn(BaseModel):
    """Receipt reader output forwarded with the claim."""

    extracted_amount: Decimal | None = None
    confidence: str = Field(pattern="^(high|medium|low|unreadable)$")
    receipt_hash: str | None = None


class ClaimSubmitRequest(BaseModel):
    claim_date: date
    category: str
    amount: Decimal = Field(gt=0, decimal_places=2)
    description: str | None = None
    receipt: Base64Bytes | None = None
    receipt_name: str | None = None
    receipt_url: str | None = None
    ai: ReceiptSignalsIn | None = None


class ClaimUpdateRequest(BaseModel):
    """New values for a pending claim; omit receipt_url to keep the receipt."""

    claim_date: date
    category: str
    amount: Decimal = Field(gt=0, decimal_places=2)
    description: str | None = None
    receipt_url: str | None = None


class ClaimResponse(BaseModel):
    """Schema for claim response."""

    model_config = ConfigDict(from_attributes=True)

    claim_id: UUID
    employee_id: UUID
    claim_date: date
    category: str
    description: str | None = None
    claimed_amount: Decimal
    amount: Decimal
    receipt_url: str | None = None
    ai_extracted_amount: Decimal | None = None
    ai_confidence: str | None = None
    amount_mismatch_ignored: bool
    status: str
    auto_approved: bool
    review_reason: str | None = None
    rejection_reason: str | None = None
    approver_id: UUID | None = None
    approved_at: datetime | None = None
    linked_payroll_item_id: UUID | None = None


class BulkApproveRequest(BaseModel):
    claim_ids: list[UUID] = Field(min_length=1)


class BulkOutcomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    claim_id: UUID
    outcome: str
    detail: str | None = None


# ============================================================================
# Salary advance schemas
# ============================================================================


class AdvanceCreate(BaseModel):
    employee_id: UUID
    amount: Decimal = Field(gt=0, decimal_places=2)
    advance_date: date
    deduction_method: str = Field(default="full", pattern="^(full|installment)$")
    installment_amount: Decimal | None = None
    first_deduction_month: int | None = Field(default=None, ge=1, le=12)
    first_deduction_year: int | None = None
    reason: str | None = None
    reference_number: str | None = None


class AdvanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    advance_id: UUID
    employee_id: UUID
    amount: Decimal
    advance_date: date
    reason: str | None = None
    reference_number: str | None = None
    deduction_method: str
    installment_amount: Decimal | None = None
    first_deduction_month: int
    first_deduction_year: int
    total_deducted: Decimal
    remaining_balance: Decimal
    status: str


class DeductionLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    advance_id: UUID
    amount: Decimal
    remaining_after: Decimal


# ============================================================================
# Payroll link schemas
# ============================================================================


class PayrollItemCreate(BaseModel):
    employee_id: UUID
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)


class PayrollItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payroll_item_id: UUID
    employee_id: UUID
    month: int
    year: int
    status: str
    work_minutes: int
    ot_minutes: int
    unpaid_leave_days: Decimal
    claims_total: Decimal
    advance_deduction: Decimal
    linked_at: datetime | None = None


class PayrollSnapshotResponse(BaseModel):
    """Snapshot handed to the payroll service."""

    model_config = ConfigDict(from_attributes=True)

    payroll_item_id: UUID
    employee_id: UUID
    month: int
    year: int
    work_minutes: int
    ot_minutes: int
    unpaid_leave_days: Decimal
    claims_total: Decimal
    advance_deduction: Decimal
    timecard_ids: list[UUID]
    leave_request_ids: list[UUID]
    claim_ids: list[UUID]
    advance_ids: list[UUID]
