"""Leave accrual, balance and request endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from hrms_core.api.dependencies import DbSession
from hrms_core.api.schemas import (
    AccrualRequest,
    AccrualResponse,
    BalanceCheckRequest,
    BalanceCheckResponse,
    CarryForwardRequest,
    ErrorResponse,
    InitializeBalancesRequest,
    LeaveBalanceResponse,
    LeaveRequestCreate,
    LeaveRequestResponse,
    LeaveRequestValidate,
    LeaveValidationResponse,
    StatusChangeRequest,
)
from hrms_core.services.leave_service import LeaveService

router = APIRouter(prefix="/leave", tags=["leave"])


@router.post(
    "/accrual",
    response_model=AccrualResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def calculate_accrual(db: DbSession, payload: AccrualRequest) -> AccrualResponse:
    """Days accrued under a policy as of a date (default today)."""
    as_of = payload.as_of_date or date.today()
    days = await LeaveService(db).calculate_accrual(payload.employee_id, payload.policy_id, as_of)
    return AccrualResponse(
        employee_id=payload.employee_id,
        policy_id=payload.policy_id,
        as_of_date=as_of,
        days=days,
    )


@router.post(
    "/balances/initialize",
    response_model=list[LeaveBalanceResponse],
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def initialize_balances(
    db: DbSession, payload: InitializeBalancesRequest
) -> list[LeaveBalanceResponse]:
    """Create the year's balances for every applicable active policy."""
    balances = await LeaveService(db).initialize_employee_leave_balances(
        payload.employee_id, payload.as_of_date
    )
    await db.commit()
    return [LeaveBalanceResponse.model_validate(b) for b in balances]


@router.post(
    "/balances/check",
    response_model=BalanceCheckResponse,
)
async def check_balance(db: DbSession, payload: BalanceCheckRequest) -> BalanceCheckResponse:
    check = await LeaveService(db).check_leave_balance(
        payload.employee_id, payload.policy_id, payload.days, payload.start_date
    )
    return BalanceCheckResponse.model_validate(check)


@router.post(
    "/carry-forward",
    response_model=list[LeaveBalanceResponse],
    responses={422: {"model": ErrorResponse}},
)
async def carry_forward(db: DbSession, payload: CarryForwardRequest) -> list[LeaveBalanceResponse]:
    """Carry unused days from one year into the next."""
    balances = await LeaveService(db).process_carry_forward(
        payload.employee_id, payload.from_year, payload.to_year
    )
    await db.commit()
    return [LeaveBalanceResponse.model_validate(b) for b in balances]


@router.post(
    "/requests/validate",
    response_model=LeaveValidationResponse,
)
async def validate_request(db: DbSession, payload: LeaveRequestValidate) -> LeaveValidationResponse:
    validation = await LeaveService(db).validate_leave_request(
        payload.employee_id,
        payload.policy_id,
        payload.start_date,
        payload.end_date,
        payload.days,
        payload.exclude_request_id,
    )
    return LeaveValidationResponse.model_validate(validation)


@router.post(
    "/requests",
    response_model=LeaveRequestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def submit_request(db: DbSession, payload: LeaveRequestCreate) -> LeaveRequestResponse:
    """Submit a leave request; its days are reserved as pending."""
    request = await LeaveService(db).submit_leave_request(
        payload.employee_id,
        payload.policy_id,
        payload.start_date,
        payload.end_date,
        payload.days,
        payload.reason,
    )
    await db.commit()
    return LeaveRequestResponse.model_validate(request)


@router.post(
    "/requests/{request_id}/status",
    response_model=LeaveBalanceResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def change_request_status(
    db: DbSession,
    request_id: Annotated[UUID, Path()],
    payload: StatusChangeRequest,
) -> LeaveBalanceResponse:
    """Approve, reject or cancel a request and return the updated balance."""
    balance = await LeaveService(db).update_balance_for_leave_request(request_id, payload.status)
    await db.commit()
    return LeaveBalanceResponse.model_validate(balance)
