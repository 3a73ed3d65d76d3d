"""Salary structure and payroll calculation endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from hrms_core.api.dependencies import DbSession
from hrms_core.api.schemas import (
    AttendanceMetricsResponse,
    ComponentCalculationRequest,
    ComponentResultResponse,
    EmployeePayrollRequest,
    EmployeePayrollResponse,
    ErrorResponse,
    StatutoryRequest,
    StatutoryResponse,
    StructureValidationResponse,
)
from hrms_core.calculators.statutory import calculate_statutory_deductions
from hrms_core.calculators.summary import AttendanceDay, AttendanceStatus
from hrms_core.calculators.types import CalculationContext
from hrms_core.services.payroll_service import PayrollService

router = APIRouter(prefix="/payroll", tags=["payroll"])


@router.post(
    "/structures/{structure_id}/validate",
    response_model=StructureValidationResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def validate_structure(
    db: DbSession,
    structure_id: Annotated[UUID, Path()],
) -> StructureValidationResponse:
    """Check a structure's components can be ordered for calculation."""
    plan = await PayrollService(db).validate_structure(structure_id)
    return StructureValidationResponse(
        structure_id=structure_id,
        is_valid=plan.is_valid,
        calculation_order=[sc.code for sc in plan.ordered],
    )


@router.post(
    "/structures/{structure_id}/calculate",
    response_model=list[ComponentResultResponse],
    responses={404: {"model": ErrorResponse}},
)
async def calculate_components(
    db: DbSession,
    structure_id: Annotated[UUID, Path()],
    payload: ComponentCalculationRequest,
) -> list[ComponentResultResponse]:
    """Calculate every component of a structure for one employee."""
    context = CalculationContext.from_attendance(
        employee_id=payload.employee_id,
        period=payload.period,
        ctc=payload.ctc,
        working_days=payload.working_days,
        present_days=payload.present_days,
        overtime_hours=payload.overtime_hours,
    )
    results = await PayrollService(db).calculate_components(
        payload.employee_id, structure_id, payload.ctc, context
    )
    return [ComponentResultResponse.model_validate(r) for r in results]


@router.post(
    "/employees/{employee_id}/calculate",
    response_model=EmployeePayrollResponse,
    responses={404: {"model": ErrorResponse}},
)
async def calculate_employee_payroll(
    db: DbSession,
    employee_id: Annotated[UUID, Path()],
    payload: EmployeePayrollRequest,
) -> EmployeePayrollResponse:
    """Calculate an employee's pay for a period from daily attendance."""
    attendance = [
        AttendanceDay(status=AttendanceStatus(day.status), overtime_hours=day.overtime_hours)
        for day in payload.attendance
    ]
    payroll = await PayrollService(db).calculate_employee_payroll(
        employee_id,
        payload.structure_id,
        payload.ctc,
        payload.period,
        payload.working_days,
        attendance,
    )
    summary = payroll.summary
    return EmployeePayrollResponse(
        employee_id=employee_id,
        period=payroll.period,
        basic_salary=summary.basic_salary,
        gross_salary=summary.gross_salary,
        total_earnings=summary.total_earnings,
        total_deductions=summary.total_deductions,
        net_salary=summary.net_salary,
        statutory=StatutoryResponse.model_validate(summary.statutory),
        attendance=AttendanceMetricsResponse.model_validate(payroll.attendance),
        components=[ComponentResultResponse.model_validate(r) for r in summary.components],
        errors=summary.errors,
    )


@router.post("/statutory", response_model=StatutoryResponse)
async def statutory_deductions(payload: StatutoryRequest) -> StatutoryResponse:
    """Monthly PF, ESI, TDS and professional tax for a basic/gross pair."""
    deductions = calculate_statutory_deductions(payload.basic, payload.gross)
    return StatutoryResponse.model_validate(deductions)
