"""Payroll service - loads salary structures and runs the calculation engine."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms_core.calculators.engine import SalaryCalculationEngine
from hrms_core.calculators.ordering import CalculationPlan, validate_structure
from hrms_core.calculators.statutory import StatutoryRates, apply_statutory
from hrms_core.calculators.summary import (
    AttendanceDay,
    AttendanceMetrics,
    PayrollSummary,
    summarize_attendance,
    summarize_payroll,
)
from hrms_core.calculators.types import (
    CalculationContext,
    CalculationType,
    ComponentCalculationResult,
    PayComponent,
    PayComponentCategory,
    PayComponentType,
    ProrationRule,
    RoundingRule,
    SalaryStructure,
    StructureComponent,
)
from hrms_core.exceptions import NotFoundError
from hrms_core.models import Employee
from hrms_core.models import SalaryStructure as SalaryStructureModel
from hrms_core.models import SalaryStructureComponent as SalaryStructureComponentModel


@dataclass
class EmployeePayroll:
    """One employee's calculated pay for a period."""

    employee_id: UUID
    period: date
    attendance: AttendanceMetrics
    summary: PayrollSummary


class PayrollService:
    """Bridges persisted salary structures and the pure calculation engine."""

    def __init__(
        self,
        session: AsyncSession,
        engine: SalaryCalculationEngine | None = None,
        rates: StatutoryRates | None = None,
    ):
        self.session = session
        self.engine = engine or SalaryCalculationEngine()
        self.rates = rates

    async def load_structure(self, structure_id: UUID) -> SalaryStructure:
        result = await self.session.execute(
            select(SalaryStructureModel)
            .where(SalaryStructureModel.structure_id == structure_id)
            .options(selectinload(SalaryStructureModel.components))
        )
        structure = result.scalar_one_or_none()
        if structure is None:
            raise NotFoundError("Salary structure", structure_id)

        return SalaryStructure(
            id=structure.structure_id,
            name=structure.name,
            components=tuple(
                _to_structure_component(sc)
                for sc in structure.components
                if sc.component.is_active
            ),
        )

    async def validate_structure(self, structure_id: UUID) -> CalculationPlan:
        """Raise StructureConfigurationError if the structure cannot be ordered."""
        return validate_structure(await self.load_structure(structure_id))

    async def calculate_components(
        self,
        employee_id: UUID,
        structure_id: UUID,
        ctc: Decimal,
        context: CalculationContext | None = None,
    ) -> list[ComponentCalculationResult]:
        structure = await self.load_structure(structure_id)
        return self.engine.calculate_all_components(employee_id, structure, ctc, context)

    async def calculate_employee_payroll(
        self,
        employee_id: UUID,
        structure_id: UUID,
        ctc: Decimal,
        period: date,
        working_days: Decimal,
        attendance: Iterable[AttendanceDay],
    ) -> EmployeePayroll:
        """Summarize attendance, calculate components and total the result.

        PF, ESI, TDS and PT deductions are set from the statutory rates using
        the run's basic and gross.
        """
        if await self.session.get(Employee, employee_id) is None:
            raise NotFoundError("Employee", employee_id)

        metrics = summarize_attendance(attendance, working_days)
        context = metrics.to_context(employee_id, period, Decimal(ctc))
        results = await self.calculate_components(employee_id, structure_id, ctc, context)

        summary = summarize_payroll(apply_statutory(results, self.rates))
        metrics.price(summary.basic_salary)

        return EmployeePayroll(
            employee_id=employee_id,
            period=period,
            attendance=metrics,
            summary=summary,
        )


def _to_structure_component(sc: SalaryStructureComponentModel) -> StructureComponent:
    c = sc.component
    return StructureComponent(
        component=PayComponent(
            id=c.component_id,
            code=c.code,
            name=c.name,
            type=PayComponentType(c.component_type),
            category=PayComponentCategory(c.category),
            calculation_type=CalculationType(c.calculation_type),
            is_statutory=c.is_statutory,
            is_taxable=c.is_taxable,
            formula=c.formula,
            rounding_rule=RoundingRule(c.rounding_rule) if c.rounding_rule else None,
            proration_rule=ProrationRule(c.proration_rule or ProrationRule.DAILY.value),
            effective_from=c.effective_from,
            effective_to=c.effective_to,
            depends_on=tuple(c.depends_on or ()),
        ),
        value=sc.value,
        percentage=sc.percentage,
        base_component=sc.base_component,
        min_value=sc.min_value,
        max_value=sc.max_value,
        order=sc.order,
    )
