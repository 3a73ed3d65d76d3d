"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from hrms_core.calculators.types import PayComponentCategory, PayComponentType


# ============================================================================
# Location / distance schemas
# ============================================================================


class LocationPayload(BaseModel):
    """A reported GPS position."""

    employee_id: UUID
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: float | None = Field(default=None, ge=0)


class CheckInCreate(LocationPayload):
    """Schema for recording a check-in."""

    timestamp: datetime | None = None
    site_id: UUID | None = None
    site_name: str | None = None


class SiteDistanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    site_id: UUID
    site_name: str
    distance: Decimal
    is_within_radius: bool


class LocationValidationResponse(BaseModel):
    """Geofence verdict."""

    is_valid: bool
    requires_approval: bool
    nearest_site_id: UUID | None = None
    nearest_site_name: str | None = None
    distance_from_nearest: Decimal | None = None
    site_distances: list[SiteDistanceResponse] = []


class CheckInPointResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    check_in_point_id: UUID
    employee_id: UUID
    work_date: date
    timestamp: datetime
    latitude: Decimal
    longitude: Decimal
    accuracy: Decimal | None = None
    site_id: UUID | None = None
    site_name: str | None = None
    distance_from_previous: Decimal
    duration_from_previous: int
    calculation_method: str


class CheckInResponse(BaseModel):
    """A recorded check-in and the geofence verdict for its location."""

    point: CheckInPointResponse
    location: LocationValidationResponse


class DistanceAnomalyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    anomaly_id: UUID
    check_in_point_id: UUID
    anomaly_type: str
    severity: str
    description: str
    detected_at: datetime


class DailyDistanceRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    record_id: UUID
    employee_id: UUID
    work_date: date
    total_distance: Decimal
    total_duration: int
    check_in_count: int
    is_validated: bool


class DailyDistanceResponse(BaseModel):
    """A day's aggregate with its check-ins and anomalies."""

    record: DailyDistanceRecordResponse
    points: list[CheckInPointResponse]
    anomalies: list[DistanceAnomalyResponse]


class DistanceStatisticsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_distance: Decimal
    total_duration: int
    average_distance_per_day: Decimal
    max_distance_per_day: Decimal
    days_with_anomalies: int
    total_anomalies: int
    anomalies_by_severity: dict[str, int]


# ============================================================================
# Leave schemas
# ============================================================================


class AccrualRequest(BaseModel):
    employee_id: UUID
    policy_id: UUID
    as_of_date: date | None = None


class AccrualResponse(BaseModel):
    employee_id: UUID
    policy_id: UUID
    as_of_date: date
    days: Decimal


class InitializeBalancesRequest(BaseModel):
    employee_id: UUID
    as_of_date: date | None = None


class CarryForwardRequest(BaseModel):
    employee_id: UUID
    from_year: int = Field(ge=1900)
    to_year: int = Field(ge=1900)


class LeaveBalanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    balance_id: UUID
    employee_id: UUID
    policy_id: UUID
    year: int
    allocated: Decimal
    used: Decimal
    pending: Decimal
    carried_forward: Decimal
    encashed: Decimal
    expired: Decimal
    available: Decimal


class LeaveRequestCreate(BaseModel):
    """Schema for submitting a leave request."""

    employee_id: UUID
    policy_id: UUID
    start_date: date
    end_date: date
    days: Decimal = Field(gt=0)
    reason: str | None = None


class LeaveRequestValidate(BaseModel):
    employee_id: UUID
    policy_id: UUID
    start_date: date
    end_date: date
    days: Decimal
    exclude_request_id: UUID | None = None


class LeaveValidationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_valid: bool
    errors: list[str]


class BalanceCheckRequest(BaseModel):
    employee_id: UUID
    policy_id: UUID
    days: Decimal
    start_date: date


class BalanceCheckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    has_balance: bool
    available_days: Decimal
    message: str | None = None


class LeaveRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    request_id: UUID
    employee_id: UUID
    policy_id: UUID
    start_date: date
    end_date: date
    days: Decimal
    reason: str | None = None
    status: str
    decided_at: datetime | None = None


class StatusChangeRequest(BaseModel):
    status: str


# ============================================================================
# Payroll schemas
# ============================================================================


class ComponentCalculationRequest(BaseModel):
    """Calculate a structure's components for one employee and period."""

    employee_id: UUID
    ctc: Decimal = Field(ge=0)
    period: date
    working_days: Decimal = Field(default=Decimal("22"), ge=0)
    present_days: Decimal = Field(default=Decimal("22"), ge=0)
    overtime_hours: Decimal = Field(default=Decimal("0"), ge=0)


class CalculationDetailsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    formula: str | None = None
    base_component: str | None = None
    applied_rate: Decimal | None = None
    rounding_applied: bool
    proration_applied: bool
    validation_errors: list[str]


class ComponentResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    component_id: UUID
    component_code: str
    component_name: str
    type: PayComponentType
    category: PayComponentCategory
    base_value: Decimal
    calculated_value: Decimal
    is_prorated: bool
    is_statutory: bool
    is_taxable: bool
    calculation_details: CalculationDetailsResponse


class StructureValidationResponse(BaseModel):
    structure_id: UUID
    is_valid: bool
    calculation_order: list[str]


class AttendanceDayPayload(BaseModel):
    status: str = Field(pattern="^(PRESENT|ABSENT|HALF_DAY|ON_LEAVE)$")
    overtime_hours: Decimal = Field(default=Decimal("0"), ge=0)


class EmployeePayrollRequest(BaseModel):
    structure_id: UUID
    ctc: Decimal = Field(ge=0)
    period: date
    working_days: Decimal = Field(gt=0)
    attendance: list[AttendanceDayPayload] = []


class StatutoryRequest(BaseModel):
    basic: Decimal = Field(ge=0)
    gross: Decimal = Field(ge=0)


class StatutoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pf: Decimal
    esi: Decimal
    tds: Decimal
    pt: Decimal
    total: Decimal


class AttendanceMetricsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    working_days: Decimal
    present_days: Decimal
    absent_days: Decimal
    half_days: Decimal
    lop_days: Decimal
    overtime_hours: Decimal
    lop_amount: Decimal
    overtime_amount: Decimal


class EmployeePayrollResponse(BaseModel):
    employee_id: UUID
    period: date
    basic_salary: Decimal
    gross_salary: Decimal
    total_earnings: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    statutory: StatutoryResponse
    attendance: AttendanceMetricsResponse
    components: list[ComponentResultResponse]
    errors: list[str]


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
