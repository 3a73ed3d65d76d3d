"""Leave request state machine and the balance deltas each transition applies."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from hrms_core.exceptions import ValidationError


class LeaveRequestStatus(str, Enum):
    """Leave request status values."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class InvalidTransitionError(ValidationError):
    """Raised when an invalid leave request transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


@dataclass(frozen=True)
class BalanceDelta:
    """Signed change to each ledger column of a LeaveBalance."""

    used: Decimal = Decimal("0")
    pending: Decimal = Decimal("0")
    available: Decimal = Decimal("0")

    def is_balanced(self) -> bool:
        """available must move by exactly -(used + pending)."""
        return self.available == -(self.used + self.pending)


class LeaveRequestStateMachine:
    """State machine for leave request status transitions.

    Allowed transitions:
    - (new) → pending     (days reserved)
    - pending → approved  (reserved days consumed)
    - pending → rejected  (reservation released)
    - pending → cancelled (reservation released)
    - approved → cancelled (consumed days returned)
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        LeaveRequestStatus.PENDING: [
            LeaveRequestStatus.APPROVED,
            LeaveRequestStatus.REJECTED,
            LeaveRequestStatus.CANCELLED,
        ],
        LeaveRequestStatus.APPROVED: [LeaveRequestStatus.CANCELLED],
        LeaveRequestStatus.REJECTED: [],  # Terminal state
        LeaveRequestStatus.CANCELLED: [],  # Terminal state
    }

    # Statuses that hold days against the balance
    ACTIVE_STATUSES = {LeaveRequestStatus.PENDING, LeaveRequestStatus.APPROVED}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        try:
            allowed = cls.VALID_TRANSITIONS.get(LeaveRequestStatus(from_status), [])
            return LeaveRequestStatus(to_status) in allowed
        except ValueError:
            return False

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def reservation_delta(cls, days: Decimal) -> BalanceDelta:
        """Delta applied when a new request is submitted as pending."""
        return BalanceDelta(pending=days, available=-days)

    @classmethod
    def delta_for(cls, from_status: str, to_status: str, days: Decimal) -> BalanceDelta:
        """Balance delta for a validated transition."""
        cls.validate_transition(from_status, to_status)
        from_status = LeaveRequestStatus(from_status)
        to_status = LeaveRequestStatus(to_status)

        if from_status == LeaveRequestStatus.PENDING:
            if to_status == LeaveRequestStatus.APPROVED:
                return BalanceDelta(used=days, pending=-days)
            return BalanceDelta(pending=-days, available=days)

        # approved → cancelled
        return BalanceDelta(used=-days, available=days)


def expected_available(balance: Any) -> Decimal:
    """Available days implied by the ledger columns of ``balance``."""
    return (
        Decimal(balance.allocated)
        + Decimal(balance.carried_forward)
        - Decimal(balance.used)
        - Decimal(balance.pending)
        - Decimal(balance.expired)
    )


def holds_invariant(balance: Any) -> bool:
    return Decimal(balance.available) == expected_available(balance)
