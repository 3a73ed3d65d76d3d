"""Attendance metrics feeding a pay run, and payroll totals derived from results."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from hrms_core.calculators.statutory import STATUTORY_CODES, StatutoryDeductions
from hrms_core.calculators.types import (
    CalculationContext,
    ComponentCalculationResult,
    PayComponentCategory,
    PayComponentType,
)

CENT = Decimal("0.01")
HOURS_PER_DAY = Decimal("8")
OVERTIME_MULTIPLIER = Decimal("1.5")


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    HALF_DAY = "HALF_DAY"
    ON_LEAVE = "ON_LEAVE"


@dataclass(frozen=True)
class AttendanceDay:
    status: AttendanceStatus
    overtime_hours: Decimal = Decimal("0")


@dataclass
class AttendanceMetrics:
    """Attendance totals for one pay period."""

    working_days: Decimal
    present_days: Decimal = Decimal("0")
    absent_days: Decimal = Decimal("0")
    half_days: Decimal = Decimal("0")
    lop_days: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    lop_amount: Decimal = Decimal("0")
    overtime_amount: Decimal = Decimal("0")

    def price(self, basic_salary: Decimal) -> None:
        """Value LOP days and overtime hours at the basic daily/hourly rate."""
        if self.working_days <= 0:
            return
        daily_rate = basic_salary / self.working_days
        self.lop_amount = (daily_rate * self.lop_days).quantize(CENT, rounding=ROUND_HALF_UP)
        hourly_rate = daily_rate / HOURS_PER_DAY
        self.overtime_amount = (
            hourly_rate * OVERTIME_MULTIPLIER * self.overtime_hours
        ).quantize(CENT, rounding=ROUND_HALF_UP)

    def to_context(self, employee_id: Any, period: date, ctc: Decimal) -> CalculationContext:
        return CalculationContext.from_attendance(
            employee_id=employee_id,
            period=period,
            ctc=ctc,
            working_days=self.working_days,
            present_days=self.present_days,
            overtime_hours=self.overtime_hours,
        )


def summarize_attendance(
    days: Iterable[AttendanceDay], working_days: Decimal
) -> AttendanceMetrics:
    """Count present/absent/half days; leave days count as present."""
    metrics = AttendanceMetrics(working_days=Decimal(working_days))

    for day in days:
        status = AttendanceStatus(day.status)
        if status in (AttendanceStatus.PRESENT, AttendanceStatus.ON_LEAVE):
            metrics.present_days += 1
        elif status == AttendanceStatus.HALF_DAY:
            metrics.half_days += 1
            metrics.present_days += Decimal("0.5")
        elif status == AttendanceStatus.ABSENT:
            metrics.absent_days += 1

        if day.overtime_hours and day.overtime_hours > 0:
            metrics.overtime_hours += Decimal(day.overtime_hours)

    metrics.lop_days = max(Decimal("0"), metrics.working_days - metrics.present_days)
    return metrics


@dataclass
class PayrollSummary:
    """Totals for one employee's calculated components."""

    basic_salary: Decimal
    gross_salary: Decimal
    total_earnings: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    statutory: StatutoryDeductions
    components: list[ComponentCalculationResult] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        return [
            f"{r.component_code}: {error}"
            for r in self.components
            for error in r.calculation_details.validation_errors
        ]


def summarize_payroll(results: Sequence[ComponentCalculationResult]) -> PayrollSummary:
    earnings = [r for r in results if r.type == PayComponentType.EARNING]
    deductions = [r for r in results if r.type == PayComponentType.DEDUCTION]

    total_earnings = sum((r.calculated_value for r in earnings), Decimal("0"))
    total_deductions = sum((r.calculated_value for r in deductions), Decimal("0"))
    basic = sum(
        (r.calculated_value for r in earnings if r.category == PayComponentCategory.BASIC),
        Decimal("0"),
    )

    by_code = {r.component_code: r.calculated_value for r in deductions}
    pf, esi, tds, pt = (by_code.get(code, Decimal("0")) for code in STATUTORY_CODES)

    return PayrollSummary(
        basic_salary=basic,
        gross_salary=total_earnings,
        total_earnings=total_earnings,
        total_deductions=total_deductions,
        net_salary=total_earnings - total_deductions,
        statutory=StatutoryDeductions(pf=pf, esi=esi, tds=tds, pt=pt),
        components=list(results),
    )
