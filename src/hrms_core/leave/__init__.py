"""Leave accrual and balance bookkeeping."""

from hrms_core.leave.accrual import AccrualType, DateRange, LeaveAccrualEngine, days_in_year
from hrms_core.leave.balance import (
    BalanceDelta,
    InvalidTransitionError,
    LeaveRequestStateMachine,
    LeaveRequestStatus,
    expected_available,
    holds_invariant,
)

__all__ = [
    "AccrualType",
    "DateRange",
    "LeaveAccrualEngine",
    "days_in_year",
    "BalanceDelta",
    "InvalidTransitionError",
    "LeaveRequestStateMachine",
    "LeaveRequestStatus",
    "expected_available",
    "holds_invariant",
]
