"""Leave policy, balance and request models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms_core.models.base import Base, TimestampMixin


class LeavePolicy(Base, TimestampMixin):
    """Leave entitlement and accrual configuration."""

    __tablename__ = "leave_policy"

    policy_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    accrual_type: Mapped[str] = mapped_column(String, nullable=False, default="ANNUAL")
    days_per_year: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    accrual_rate: Mapped[Decimal | None] = mapped_column(Numeric(6, 2))
    probation_period_days: Mapped[int | None] = mapped_column(Integer)
    carry_forward: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_carry_forward: Mapped[Decimal | None] = mapped_column(Numeric(6, 2))
    gender: Mapped[str | None] = mapped_column(String)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "accrual_type IN ('ANNUAL', 'MONTHLY', 'QUARTERLY', 'ON_JOINING')",
            name="leave_policy_accrual_type_check",
        ),
        CheckConstraint("days_per_year >= 0", name="leave_policy_days_check"),
    )


class LeaveBalance(Base, TimestampMixin):
    """Per (employee, policy, year) leave ledger.

    available = allocated + carried_forward - used - pending - expired
    """

    __tablename__ = "leave_balance"

    balance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    policy_id: Mapped[UUID] = mapped_column(
        ForeignKey("leave_policy.policy_id", ondelete="CASCADE"),
        nullable=False,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    allocated: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    used: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    pending: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    carried_forward: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("0")
    )
    encashed: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    expired: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    available: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    last_accrual_date: Mapped[date | None] = mapped_column(Date)

    __table_args__ = (
        UniqueConstraint("employee_id", "policy_id", "year", name="leave_balance_employee_policy_year_unique"),
        CheckConstraint("pending >= 0", name="leave_balance_pending_check"),
        CheckConstraint("used >= 0", name="leave_balance_used_check"),
    )

    # Relationships
    policy: Mapped[LeavePolicy] = relationship(lazy="joined")


class LeaveRequest(Base, TimestampMixin):
    """A leave application whose status drives balance transitions."""

    __tablename__ = "leave_request"

    request_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    policy_id: Mapped[UUID] = mapped_column(
        ForeignKey("leave_policy.policy_id", ondelete="CASCADE"),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    days: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED')",
            name="leave_request_status_check",
        ),
        CheckConstraint("end_date >= start_date", name="leave_request_dates_check"),
        CheckConstraint("days > 0", name="leave_request_days_check"),
    )
