"""Type definitions for the salary calculation pipeline."""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any


class PayComponentType(str, Enum):
    """Pay component direction."""

    EARNING = "EARNING"
    DEDUCTION = "DEDUCTION"


class PayComponentCategory(str, Enum):
    """Pay component categories."""

    BASIC = "BASIC"
    ALLOWANCE = "ALLOWANCE"
    BONUS = "BONUS"
    OVERTIME = "OVERTIME"
    REIMBURSEMENT = "REIMBURSEMENT"
    STATUTORY = "STATUTORY"
    TAX = "TAX"
    LOAN = "LOAN"
    OTHER = "OTHER"


class CalculationType(str, Enum):
    """How a component's raw value is derived."""

    FIXED = "FIXED"
    PERCENTAGE = "PERCENTAGE"
    FORMULA = "FORMULA"
    ATTENDANCE_BASED = "ATTENDANCE_BASED"


class RoundingRule(str, Enum):
    """Whole-unit rounding applied after proration."""

    ROUND_UP = "ROUND_UP"
    ROUND_DOWN = "ROUND_DOWN"
    ROUND_NEAREST = "ROUND_NEAREST"


class ProrationRule(str, Enum):
    """Attendance proration for non-basic, non-statutory components."""

    DAILY = "DAILY"
    MONTHLY = "MONTHLY"
    NONE = "NONE"


# Tokens always resolvable by percentage and formula components
RESERVED_BASES = ("CTC", "BASIC", "GROSS")


@dataclass(frozen=True)
class PayComponent:
    """Reusable component definition."""

    id: Any
    code: str
    name: str
    type: PayComponentType
    category: PayComponentCategory
    calculation_type: CalculationType
    is_statutory: bool = False
    is_taxable: bool = True
    formula: str | None = None
    rounding_rule: RoundingRule | None = None
    proration_rule: ProrationRule = ProrationRule.DAILY
    effective_from: date | None = None
    effective_to: date | None = None
    depends_on: tuple[str, ...] = ()


@dataclass(frozen=True)
class StructureComponent:
    """A component as configured inside one salary structure."""

    component: PayComponent
    value: Decimal | None = None
    percentage: Decimal | None = None
    base_component: str | None = None
    min_value: Decimal | None = None
    max_value: Decimal | None = None
    order: int = 0

    @property
    def code(self) -> str:
        return self.component.code


@dataclass(frozen=True)
class SalaryStructure:
    """Ordered list of structure components."""

    id: Any
    name: str
    components: tuple[StructureComponent, ...]


@dataclass
class CalculationContext:
    """Context for calculating one employee's components for a period.

    ``basic_salary``, ``gross_salary`` and ``components`` are running values.
    The engine fills them on its own copy; the caller's context is not changed.
    """

    employee_id: Any
    period: date  # any date inside the pay month
    ctc: Decimal = Decimal("0")
    attendance_ratio: Decimal = Decimal("1")
    working_days: Decimal = Decimal("22")
    present_days: Decimal = Decimal("22")
    overtime_hours: Decimal = Decimal("0")

    # Populated during calculation
    basic_salary: Decimal = Decimal("0")
    gross_salary: Decimal = Decimal("0")
    components: dict[str, Decimal] = field(default_factory=dict)

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.period.year, self.period.month)[1]

    @classmethod
    def from_attendance(
        cls,
        employee_id: Any,
        period: date,
        ctc: Decimal,
        working_days: Decimal,
        present_days: Decimal,
        overtime_hours: Decimal = Decimal("0"),
    ) -> CalculationContext:
        """Build a context, deriving the attendance ratio (clamped to 0..1)."""
        if working_days > 0:
            ratio = min(Decimal("1"), max(Decimal("0"), present_days / working_days))
        else:
            ratio = Decimal("1")
        return cls(
            employee_id=employee_id,
            period=period,
            ctc=ctc,
            attendance_ratio=ratio,
            working_days=working_days,
            present_days=present_days,
            overtime_hours=overtime_hours,
        )


@dataclass
class CalculationDetails:
    """Traceability for one component's calculation."""

    formula: str | None = None
    base_component: str | None = None
    applied_rate: Decimal | None = None
    rounding_applied: bool = False
    proration_applied: bool = False
    validation_errors: list[str] = field(default_factory=list)


@dataclass
class ComponentCalculationResult:
    """Result of calculating one structure component."""

    component_id: Any
    component_code: str
    component_name: str
    type: PayComponentType
    category: PayComponentCategory
    base_value: Decimal
    calculated_value: Decimal
    is_prorated: bool
    is_statutory: bool
    is_taxable: bool
    calculation_details: CalculationDetails = field(default_factory=CalculationDetails)

    @property
    def success(self) -> bool:
        return not self.calculation_details.validation_errors


@dataclass
class TaxBracket:
    """Tax bracket for progressive taxation."""

    min_amount: Decimal
    max_amount: Decimal | None  # None = no upper limit
    rate: Decimal  # As decimal, e.g., 0.05 for 5%
    flat_amount: Decimal = Decimal("0")  # Flat amount at bracket start
