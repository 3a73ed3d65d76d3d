"""Leave service - accrual, carry-forward and request-driven balance updates."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_core.exceptions import ConcurrencyConflict, NotFoundError, ValidationError
from hrms_core.leave.accrual import LeaveAccrualEngine
from hrms_core.leave.balance import (
    BalanceDelta,
    LeaveRequestStateMachine,
    LeaveRequestStatus,
    expected_available,
)
from hrms_core.models import Employee, LeaveBalance, LeavePolicy, LeaveRequest

logger = logging.getLogger(__name__)


@dataclass
class BalanceCheck:
    has_balance: bool
    available_days: Decimal
    message: str | None = None


@dataclass
class LeaveValidation:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


class LeaveService:
    """Service for leave balances and the request lifecycle.

    Balance changes are applied as single conditional UPDATE statements
    (``col = col + delta`` guarded by the current values) and request status
    changes as compare-and-swap on the current status, so two concurrent
    decisions can never both apply. A lost race raises ConcurrencyConflict.
    """

    def __init__(self, session: AsyncSession, engine: LeaveAccrualEngine | None = None):
        self.session = session
        self.engine = engine or LeaveAccrualEngine()

    async def calculate_accrual(
        self,
        employee_id: UUID,
        policy_id: UUID,
        as_of_date: date | None = None,
    ) -> Decimal:
        employee = await self._get_employee(employee_id)
        policy = await self._get_policy(policy_id)
        return self.engine.calculate_accrual(employee, policy, as_of_date)

    async def initialize_employee_leave_balances(
        self,
        employee_id: UUID,
        as_of_date: date | None = None,
    ) -> list[LeaveBalance]:
        """Create this year's balance for every applicable active policy.

        Policies restricted to another gender are skipped, as are policies
        that already have a balance for the year.
        """
        as_of = as_of_date or date.today()
        employee = await self._get_employee(employee_id)

        result = await self.session.execute(
            select(LeavePolicy).where(LeavePolicy.is_active.is_(True)).order_by(LeavePolicy.name)
        )
        policies = list(result.scalars())

        result = await self.session.execute(
            select(LeaveBalance.policy_id).where(
                LeaveBalance.employee_id == employee_id,
                LeaveBalance.year == as_of.year,
            )
        )
        existing = set(result.scalars())

        created: list[LeaveBalance] = []
        for policy in policies:
            if policy.gender and employee.gender != policy.gender:
                continue
            if policy.policy_id in existing:
                continue

            accrued = self.engine.calculate_accrual(employee, policy, as_of)
            balance = LeaveBalance(
                employee_id=employee_id,
                policy_id=policy.policy_id,
                year=as_of.year,
                allocated=accrued,
                used=Decimal("0"),
                pending=Decimal("0"),
                carried_forward=Decimal("0"),
                encashed=Decimal("0"),
                expired=Decimal("0"),
                available=accrued,
                last_accrual_date=as_of,
            )
            self.session.add(balance)
            created.append(balance)

        await self.session.flush()
        return created

    async def process_carry_forward(
        self,
        employee_id: UUID,
        from_year: int,
        to_year: int,
    ) -> list[LeaveBalance]:
        """Carry unused days into the next year's balances.

        Days beyond the policy maximum expire in the old year. The new
        year's carried_forward is set (not added), so reruns are no-ops.
        Returns the new-year balances that received a carry-forward.
        """
        if to_year <= from_year:
            raise ValidationError("Carry-forward target year must be after the source year")

        result = await self.session.execute(
            select(LeaveBalance).where(
                LeaveBalance.employee_id == employee_id,
                LeaveBalance.year == from_year,
            )
        )
        previous_balances = list(result.unique().scalars())

        carried: list[LeaveBalance] = []
        for balance in previous_balances:
            policy = balance.policy
            if not policy.carry_forward:
                continue

            amount = max(Decimal("0"), Decimal(balance.available))
            if policy.max_carry_forward is not None and amount > policy.max_carry_forward:
                excess = amount - Decimal(policy.max_carry_forward)
                amount = Decimal(policy.max_carry_forward)
                balance.expired = Decimal(balance.expired) + excess
                balance.available = Decimal(balance.available) - excess

            if amount <= 0:
                continue

            target = await self._find_balance(employee_id, balance.policy_id, to_year)
            if target is None:
                target = LeaveBalance(
                    employee_id=employee_id,
                    policy_id=balance.policy_id,
                    year=to_year,
                    allocated=Decimal(policy.days_per_year),
                    used=Decimal("0"),
                    pending=Decimal("0"),
                    encashed=Decimal("0"),
                    expired=Decimal("0"),
                )
                self.session.add(target)

            target.carried_forward = amount
            target.available = expected_available(target)
            carried.append(target)

        await self.session.flush()
        logger.info(
            "Carried forward %d balances for employee %s from %d to %d",
            len(carried),
            employee_id,
            from_year,
            to_year,
        )
        return carried

    async def update_balance_for_leave_request(
        self,
        request_id: UUID,
        status: str,
    ) -> LeaveBalance:
        """Move a request to ``status`` and apply the matching balance delta.

        Raises:
            NotFoundError: request or its balance does not exist
            InvalidTransitionError: status change not allowed
            ConcurrencyConflict: the request or balance changed concurrently
        """
        request = await self.session.get(LeaveRequest, request_id)
        if request is None:
            raise NotFoundError("Leave request", request_id)

        from_status = request.status
        delta = LeaveRequestStateMachine.delta_for(from_status, status, Decimal(request.days))

        balance = await self._find_balance(
            request.employee_id, request.policy_id, request.start_date.year
        )
        if balance is None:
            raise NotFoundError(
                "Leave balance", f"{request.employee_id}/{request.policy_id}/{request.start_date.year}"
            )

        swapped = await self.session.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.request_id == request_id,
                LeaveRequest.status == from_status,
            )
            .values(status=LeaveRequestStatus(status).value, decided_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        if swapped.rowcount == 0:
            raise ConcurrencyConflict(
                f"Leave request {request_id} is no longer {from_status}"
            )

        await self._apply_delta(balance.balance_id, delta)
        await self.session.refresh(request)

        logger.info(
            "Leave request %s: %s -> %s (%s days)", request_id, from_status, status, request.days
        )
        return await self._reload_balance(balance.balance_id)

    async def check_leave_balance(
        self,
        employee_id: UUID,
        policy_id: UUID,
        days: Decimal,
        start_date: date,
    ) -> BalanceCheck:
        balance = await self._find_balance(employee_id, policy_id, start_date.year)
        if balance is None:
            return BalanceCheck(
                has_balance=False,
                available_days=Decimal("0"),
                message="No leave balance found for this policy",
            )

        available = Decimal(balance.available)
        if Decimal(days) > available:
            return BalanceCheck(
                has_balance=False,
                available_days=available,
                message=(
                    f"Insufficient leave balance. Available: {available} days, "
                    f"Requested: {days} days"
                ),
            )
        return BalanceCheck(has_balance=True, available_days=available)

    async def validate_leave_request(
        self,
        employee_id: UUID,
        policy_id: UUID,
        start_date: date,
        end_date: date,
        days: Decimal,
        exclude_request_id: UUID | None = None,
    ) -> LeaveValidation:
        errors: list[str] = []

        if end_date < start_date:
            errors.append("End date must not be before start date")
        if Decimal(days) <= 0:
            errors.append("Requested days must be positive")

        query = select(LeaveRequest.request_id).where(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status.in_([s.value for s in LeaveRequestStateMachine.ACTIVE_STATUSES]),
            LeaveRequest.start_date <= end_date,
            LeaveRequest.end_date >= start_date,
        )
        if exclude_request_id is not None:
            query = query.where(LeaveRequest.request_id != exclude_request_id)
        overlapping = (await self.session.execute(query.limit(1))).first()
        if overlapping is not None:
            errors.append("Leave request overlaps with existing leave requests")

        balance = await self._find_balance(employee_id, policy_id, start_date.year)
        if balance is None:
            errors.append(f"Leave balance not found for {start_date.year}")
        elif Decimal(balance.available) < Decimal(days):
            errors.append(
                f"Insufficient leave balance. Available: {balance.available}, Requested: {days}"
            )

        return LeaveValidation(is_valid=not errors, errors=errors)

    async def submit_leave_request(
        self,
        employee_id: UUID,
        policy_id: UUID,
        start_date: date,
        end_date: date,
        days: Decimal,
        reason: str | None = None,
    ) -> LeaveRequest:
        """Validate and create a PENDING request, reserving its days."""
        validation = await self.validate_leave_request(
            employee_id, policy_id, start_date, end_date, days
        )
        if not validation.is_valid:
            raise ValidationError("; ".join(validation.errors))

        balance = await self._find_balance(employee_id, policy_id, start_date.year)
        request = LeaveRequest(
            employee_id=employee_id,
            policy_id=policy_id,
            start_date=start_date,
            end_date=end_date,
            days=Decimal(days),
            reason=reason,
            status=LeaveRequestStatus.PENDING.value,
        )
        self.session.add(request)
        await self.session.flush()

        await self._apply_delta(
            balance.balance_id, LeaveRequestStateMachine.reservation_delta(Decimal(days))
        )
        return request

    async def _apply_delta(self, balance_id: UUID, delta: BalanceDelta) -> None:
        """Apply ``delta`` in one statement, refusing to drive a column negative."""
        guards = [LeaveBalance.balance_id == balance_id]
        if delta.pending < 0:
            guards.append(LeaveBalance.pending >= -delta.pending)
        if delta.used < 0:
            guards.append(LeaveBalance.used >= -delta.used)
        if delta.available < 0:
            guards.append(LeaveBalance.available >= -delta.available)

        result = await self.session.execute(
            update(LeaveBalance)
            .where(*guards)
            .values(
                used=LeaveBalance.used + delta.used,
                pending=LeaveBalance.pending + delta.pending,
                available=LeaveBalance.available + delta.available,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConcurrencyConflict(f"Leave balance {balance_id} changed concurrently")

    async def _reload_balance(self, balance_id: UUID) -> LeaveBalance:
        result = await self.session.execute(
            select(LeaveBalance)
            .where(LeaveBalance.balance_id == balance_id)
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one()

    async def _find_balance(
        self, employee_id: UUID, policy_id: UUID, year: int
    ) -> LeaveBalance | None:
        result = await self.session.execute(
            select(LeaveBalance).where(
                LeaveBalance.employee_id == employee_id,
                LeaveBalance.policy_id == policy_id,
                LeaveBalance.year == year,
            )
        )
        return result.unique().scalar_one_or_none()

    async def _get_employee(self, employee_id: UUID) -> Employee:
        employee = await self.session.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    async def _get_policy(self, policy_id: UUID) -> LeavePolicy:
        policy = await self.session.get(LeavePolicy, policy_id)
        if policy is None:
            raise NotFoundError("Leave policy", policy_id)
        return policy
