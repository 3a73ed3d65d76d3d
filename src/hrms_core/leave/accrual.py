"""Leave accrual calculation."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_FLOOR, Decimal
from enum import Enum
from typing import Any, Protocol

from hrms_core.exceptions import ValidationError


class AccrualType(str, Enum):
    """How a policy's yearly entitlement becomes available."""

    ANNUAL = "ANNUAL"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    ON_JOINING = "ON_JOINING"


class AccrualEmployee(Protocol):
    joining_date: Any


class AccrualPolicy(Protocol):
    accrual_type: Any
    days_per_year: Any
    accrual_rate: Any
    probation_period_days: int | None


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar dates."""

    start: date
    end: date

    @property
    def days(self) -> int:
        """Number of calendar days covered, counting both ends."""
        return max(0, (self.end - self.start).days + 1)

    @property
    def full_months(self) -> int:
        """Calendar months elapsed from start to end.

        A month is credited once the start's day-of-month is reached in the
        end month (clamped to that month's length, so a 31st start is
        credited on the last day of a shorter month).
        """
        months = (self.end.year - self.start.year) * 12 + self.end.month - self.start.month
        anniversary_day = min(self.start.day, _days_in_month(self.end.year, self.end.month))
        if self.end.day < anniversary_day:
            months -= 1
        return max(0, months)


def days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365


def parse_date(value: Any, field_name: str) -> date:
    """Coerce a date, datetime or ISO string, raising ValidationError otherwise."""
    if value is None:
        raise ValidationError(f"{field_name} is required for leave accrual calculation")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            raise ValidationError(f"Invalid {field_name}: {value!r}") from None
    raise ValidationError(f"Invalid {field_name}: {value!r}")


class LeaveAccrualEngine:
    """Computes leave days earned under a policy as of a date.

    Accrual runs per calendar year: the accrual start is the later of the
    joining date and 1 January of the as-of year. Probation blocks all
    accrual regardless of accrual type. Results are whole days, floored.
    """

    def calculate_accrual(
        self,
        employee: AccrualEmployee,
        policy: AccrualPolicy,
        as_of_date: date | str | None = None,
    ) -> Decimal:
        joining_date = parse_date(getattr(employee, "joining_date", None), "joining date")
        as_of = parse_date(as_of_date if as_of_date is not None else date.today(), "as-of date")

        if as_of < joining_date:
            return Decimal("0")

        if self.in_probation(joining_date, policy.probation_period_days, as_of):
            return Decimal("0")

        try:
            accrual_type = AccrualType(_enum_value(policy.accrual_type))
        except ValueError:
            raise ValidationError(f"Unsupported accrual type: {policy.accrual_type!r}") from None

        days_per_year = Decimal(str(policy.days_per_year))
        year_start = date(as_of.year, 1, 1)
        year_end = date(as_of.year, 12, 31)
        accrual_start = max(joining_date, year_start)

        if accrual_type == AccrualType.ANNUAL:
            accrued = days_per_year

        elif accrual_type == AccrualType.MONTHLY:
            months = DateRange(accrual_start, as_of).full_months
            if policy.accrual_rate:
                monthly_rate = Decimal(str(policy.accrual_rate))
            else:
                monthly_rate = days_per_year / 12
            accrued = months * monthly_rate

        elif accrual_type == AccrualType.QUARTERLY:
            quarters = DateRange(accrual_start, as_of).full_months // 3
            accrued = quarters * (days_per_year / 4)

        else:  # ON_JOINING
            worked = DateRange(accrual_start, min(as_of, year_end)).days
            accrued = Decimal(worked) / Decimal(days_in_year(as_of.year)) * days_per_year

        return max(Decimal("0"), accrued.to_integral_value(rounding=ROUND_FLOOR))

    @staticmethod
    def in_probation(joining_date: date, probation_days: int | None, as_of: date) -> bool:
        if not probation_days or probation_days <= 0:
            return False
        return DateRange(joining_date, as_of).days <= probation_days


def _days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value
