"""Salary calculation engine - resolves every component of a salary structure."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Any

from hrms_core.calculators.formula import FormulaError, evaluate
from hrms_core.calculators.ordering import plan_calculation
from hrms_core.calculators.types import (
    CalculationContext,
    CalculationDetails,
    CalculationType,
    ComponentCalculationResult,
    PayComponentCategory,
    PayComponentType,
    ProrationRule,
    RoundingRule,
    SalaryStructure,
    StructureComponent,
)
from hrms_core.exceptions import ComponentCalculationError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")

_ROUNDING_MODES = {
    RoundingRule.ROUND_UP: ROUND_CEILING,
    RoundingRule.ROUND_DOWN: ROUND_FLOOR,
    RoundingRule.ROUND_NEAREST: ROUND_HALF_UP,
}


class SalaryCalculationEngine:
    """Calculates the components of a salary structure for one employee.

    Pipeline per component (in dependency order):
    1) Validate effective window and declared dependencies
    2) Raw value by calculation type (fixed / percentage / formula / attendance)
    3) Proration by attendance
    4) Rounding
    5) Clamp to the configured min/max
    6) Update running BASIC / GROSS / per-code values

    A failing component yields 0 with its errors recorded; the rest of the
    structure still calculates.
    """

    def calculate_all_components(
        self,
        employee_id: Any,
        structure: SalaryStructure,
        ctc: Decimal,
        context: CalculationContext | None = None,
    ) -> list[ComponentCalculationResult]:
        ctx = replace(
            context or CalculationContext(employee_id=employee_id, period=date.today()),
            employee_id=employee_id,
            ctc=Decimal(ctc),
            basic_salary=ZERO,
            gross_salary=ZERO,
            components={},
        )

        plan = plan_calculation(structure)
        results: list[ComponentCalculationResult] = []

        for sc in plan.ordered:
            if sc.code in plan.blocked:
                results.append(self._failed_result(sc, [plan.blocked[sc.code]]))
                continue

            try:
                result = self._calculate_single(sc, ctx)
            except ComponentCalculationError as e:
                logger.warning(
                    "Component %s failed for employee %s: %s", sc.code, employee_id, e.reason
                )
                results.append(self._failed_result(sc, e.reason.split("; ")))
                continue
            except Exception as e:
                logger.exception("Unexpected error calculating component %s", sc.code)
                results.append(self._failed_result(sc, [f"Unexpected error: {e}"]))
                continue

            results.append(result)
            self._apply_to_context(sc, result.calculated_value, ctx)

        return results

    def _calculate_single(
        self, sc: StructureComponent, ctx: CalculationContext
    ) -> ComponentCalculationResult:
        component = sc.component
        errors = self._validate(sc, ctx)
        if errors:
            raise ComponentCalculationError(component.code, "; ".join(errors))

        details = CalculationDetails()
        base_value = self._raw_value(sc, ctx, details)
        value = base_value

        is_prorated = self._should_prorate(sc, ctx)
        if is_prorated:
            value = self._prorate(value, sc, ctx)
            details.proration_applied = True

        if component.rounding_rule is not None:
            rounded = value.quantize(Decimal("1"), rounding=_ROUNDING_MODES[component.rounding_rule])
            details.rounding_applied = rounded != value
            value = rounded

        value = self._clamp(value, sc).quantize(CENT, rounding=ROUND_HALF_UP)

        return ComponentCalculationResult(
            component_id=component.id,
            component_code=component.code,
            component_name=component.name,
            type=component.type,
            category=component.category,
            base_value=base_value.quantize(CENT, rounding=ROUND_HALF_UP),
            calculated_value=value,
            is_prorated=is_prorated,
            is_statutory=component.is_statutory,
            is_taxable=component.is_taxable,
            calculation_details=details,
        )

    def _validate(self, sc: StructureComponent, ctx: CalculationContext) -> list[str]:
        component = sc.component
        errors: list[str] = []

        if component.effective_from and ctx.period < component.effective_from:
            errors.append(
                f"Component not yet effective (effective from {component.effective_from.isoformat()})"
            )
        if component.effective_to and ctx.period > component.effective_to:
            errors.append(
                f"Component has expired (expired on {component.effective_to.isoformat()})"
            )

        for dependency in component.depends_on:
            if dependency not in ctx.components:
                errors.append(f"Missing dependency: {dependency}")

        return errors

    def _raw_value(
        self, sc: StructureComponent, ctx: CalculationContext, details: CalculationDetails
    ) -> Decimal:
        component = sc.component
        calc_type = component.calculation_type

        if calc_type == CalculationType.FIXED:
            return Decimal(sc.value or 0)

        if calc_type == CalculationType.PERCENTAGE:
            base_code = sc.base_component or "CTC"
            rate = Decimal(sc.percentage or 0)
            details.base_component = base_code
            details.applied_rate = rate
            return self._resolve_base(base_code, component.code, ctx) * rate / 100

        if calc_type == CalculationType.FORMULA:
            if not component.formula:
                raise ComponentCalculationError(
                    component.code, f"Formula not defined for component {component.code}"
                )
            details.formula = component.formula
            variables = dict(ctx.components)
            variables.update(CTC=ctx.ctc, BASIC=ctx.basic_salary, GROSS=ctx.gross_salary)
            try:
                return evaluate(component.formula, variables)
            except FormulaError as e:
                raise ComponentCalculationError(
                    component.code, f"Formula evaluation failed: {e}"
                ) from e

        if calc_type == CalculationType.ATTENDANCE_BASED:
            return Decimal(sc.value or 0) * ctx.attendance_ratio

        raise ComponentCalculationError(
            component.code, f"Unsupported calculation type: {calc_type}"
        )

    @staticmethod
    def _resolve_base(base_code: str, code: str, ctx: CalculationContext) -> Decimal:
        if base_code == "CTC":
            return ctx.ctc
        if base_code == "BASIC":
            return ctx.basic_salary
        if base_code == "GROSS":
            return ctx.gross_salary
        if base_code not in ctx.components:
            raise ComponentCalculationError(code, f"Missing dependency: {base_code}")
        return ctx.components[base_code]

    @staticmethod
    def _should_prorate(sc: StructureComponent, ctx: CalculationContext) -> bool:
        component = sc.component
        if component.category == PayComponentCategory.BASIC or component.is_statutory:
            return False
        if component.proration_rule == ProrationRule.NONE:
            return False
        return ctx.attendance_ratio < 1

    @staticmethod
    def _prorate(amount: Decimal, sc: StructureComponent, ctx: CalculationContext) -> Decimal:
        if sc.component.proration_rule == ProrationRule.MONTHLY:
            return amount * ctx.present_days / ctx.days_in_month
        return amount * ctx.attendance_ratio

    @staticmethod
    def _clamp(amount: Decimal, sc: StructureComponent) -> Decimal:
        if sc.min_value is not None:
            amount = max(amount, Decimal(sc.min_value))
        if sc.max_value is not None:
            amount = min(amount, Decimal(sc.max_value))
        return amount

    @staticmethod
    def _apply_to_context(sc: StructureComponent, value: Decimal, ctx: CalculationContext) -> None:
        ctx.components[sc.code] = value
        if sc.component.category == PayComponentCategory.BASIC:
            ctx.basic_salary += value
        if sc.component.type == PayComponentType.EARNING:
            ctx.gross_salary += value

    @staticmethod
    def _failed_result(sc: StructureComponent, errors: list[str]) -> ComponentCalculationResult:
        component = sc.component
        return ComponentCalculationResult(
            component_id=component.id,
            component_code=component.code,
            component_name=component.name,
            type=component.type,
            category=component.category,
            base_value=Decimal("0.00"),
            calculated_value=Decimal("0.00"),
            is_prorated=False,
            is_statutory=component.is_statutory,
            is_taxable=component.is_taxable,
            calculation_details=CalculationDetails(validation_errors=list(errors)),
        )
