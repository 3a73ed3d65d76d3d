"""Tests for the salary calculation engine."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from hrms_core.calculators.engine import SalaryCalculationEngine
from hrms_core.calculators.types import (
    CalculationContext,
    CalculationType,
    PayComponentCategory,
    PayComponentType,
    ProrationRule,
    RoundingRule,
)
from tests.factories import basic, component, structure

EMPLOYEE_ID = uuid4()
CTC = Decimal("50000")


@pytest.fixture
def engine() -> SalaryCalculationEngine:
    return SalaryCalculationEngine()


def hra(percentage="50"):
    return component(
        "HRA",
        CalculationType.PERCENTAGE,
        percentage=Decimal(percentage),
        base_component="BASIC",
        order=2,
    )


def pf():
    return component(
        "PF",
        CalculationType.FORMULA,
        type=PayComponentType.DEDUCTION,
        category=PayComponentCategory.STATUTORY,
        formula="BASIC * 0.12",
        is_statutory=True,
        max_value=Decimal("1800"),
        order=3,
    )


def context(present_days="22", working_days="22", period=date(2024, 4, 15)):
    return CalculationContext.from_attendance(
        employee_id=EMPLOYEE_ID,
        period=period,
        ctc=CTC,
        working_days=Decimal(working_days),
        present_days=Decimal(present_days),
    )


def by_code(results):
    return {r.component_code: r for r in results}


class TestStandardStructure:
    """Test BASIC, HRA and PF on a 50,000 CTC."""

    def test_values(self, engine):
        results = by_code(
            engine.calculate_all_components(EMPLOYEE_ID, structure(basic(), hra(), pf()), CTC)
        )

        assert results["BASIC"].calculated_value == Decimal("20000.00")
        assert results["HRA"].calculated_value == Decimal("10000.00")
        assert results["PF"].base_value == Decimal("2400.00")
        assert results["PF"].calculated_value == Decimal("1800.00")
        assert all(r.success for r in results.values())

    def test_calculation_details(self, engine):
        results = by_code(
            engine.calculate_all_components(EMPLOYEE_ID, structure(basic(), hra(), pf()), CTC)
        )

        details = results["HRA"].calculation_details
        assert details.base_component == "BASIC"
        assert details.applied_rate == Decimal("50")
        assert results["PF"].calculation_details.formula == "BASIC * 0.12"

    def test_one_result_per_component(self, engine):
        results = engine.calculate_all_components(
            EMPLOYEE_ID, structure(pf(), hra(), basic()), CTC
        )
        assert sorted(r.component_code for r in results) == ["BASIC", "HRA", "PF"]

    def test_caller_context_not_modified(self, engine):
        """Running totals live on the engine's copy of the context."""
        ctx = context()
        ctx.components["STALE"] = Decimal("99")
        other_employee = uuid4()

        results = by_code(
            engine.calculate_all_components(
                other_employee, structure(basic(), hra(), pf()), Decimal("60000"), ctx
            )
        )

        assert results["BASIC"].calculated_value == Decimal("24000.00")
        assert ctx.employee_id == EMPLOYEE_ID
        assert ctx.ctc == CTC
        assert ctx.basic_salary == Decimal("0")
        assert ctx.gross_salary == Decimal("0")
        assert ctx.components == {"STALE": Decimal("99")}

    def test_repeat_runs_on_same_context_agree(self, engine):
        ctx = context()
        first = engine.calculate_all_components(EMPLOYEE_ID, structure(basic(), hra()), CTC, ctx)
        second = engine.calculate_all_components(EMPLOYEE_ID, structure(basic(), hra()), CTC, ctx)
        assert [r.calculated_value for r in first] == [r.calculated_value for r in second]

    def test_gross_formula(self, engine):
        special = component("SPECIAL", CalculationType.FORMULA, formula="GROSS * 0.1", order=4)
        results = by_code(
            engine.calculate_all_components(
                EMPLOYEE_ID, structure(special, basic(), hra()), CTC
            )
        )
        assert results["SPECIAL"].calculated_value == Decimal("3000.00")

    def test_percentage_of_gross_derived_component(self, engine):
        """A chain hanging off GROSS calculates instead of being flagged circular."""
        special = component(
            "SPECIAL", CalculationType.PERCENTAGE, percentage=Decimal("10"), base_component="GROSS"
        )
        bonus = component(
            "BONUS", CalculationType.PERCENTAGE, percentage=Decimal("50"), base_component="SPECIAL"
        )
        results = by_code(
            engine.calculate_all_components(EMPLOYEE_ID, structure(basic(), special, bonus), CTC)
        )

        assert results["SPECIAL"].calculated_value == Decimal("2000.00")
        assert results["BONUS"].calculated_value == Decimal("1000.00")
        assert all(r.success for r in results.values())


class TestProration:
    """Test attendance proration."""

    def test_daily_proration(self, engine):
        """Half attendance halves HRA but never BASIC."""
        results = by_code(
            engine.calculate_all_components(
                EMPLOYEE_ID, structure(basic(), hra()), CTC, context(present_days="11")
            )
        )

        assert results["BASIC"].calculated_value == Decimal("20000.00")
        assert results["BASIC"].is_prorated is False
        assert results["HRA"].calculated_value == Decimal("5000.00")
        assert results["HRA"].base_value == Decimal("10000.00")
        assert results["HRA"].is_prorated is True
        assert results["HRA"].calculation_details.proration_applied is True

    def test_statutory_not_prorated(self, engine):
        results = by_code(
            engine.calculate_all_components(
                EMPLOYEE_ID, structure(basic(), pf()), CTC, context(present_days="11")
            )
        )
        assert results["PF"].is_prorated is False
        assert results["PF"].calculated_value == Decimal("1800.00")

    def test_monthly_proration_uses_calendar_days(self, engine):
        """15 present days of a 30-day April."""
        allowance = component(
            "CONV", value=Decimal("3000"), proration_rule=ProrationRule.MONTHLY
        )
        results = by_code(
            engine.calculate_all_components(
                EMPLOYEE_ID, structure(allowance), CTC, context(present_days="15")
            )
        )
        assert results["CONV"].calculated_value == Decimal("1500.00")

    def test_proration_none(self, engine):
        allowance = component("CONV", value=Decimal("3000"), proration_rule=ProrationRule.NONE)
        results = by_code(
            engine.calculate_all_components(
                EMPLOYEE_ID, structure(allowance), CTC, context(present_days="11")
            )
        )
        assert results["CONV"].calculated_value == Decimal("3000.00")
        assert results["CONV"].is_prorated is False

    def test_full_attendance_not_prorated(self, engine):
        allowance = component("CONV", value=Decimal("3000"))
        results = by_code(
            engine.calculate_all_components(EMPLOYEE_ID, structure(allowance), CTC, context())
        )
        assert results["CONV"].is_prorated is False

    def test_attendance_based_is_prorated(self, engine):
        """The attendance-scaled value is prorated like any other earning."""
        incentive = component(
            "INCENTIVE", CalculationType.ATTENDANCE_BASED, value=Decimal("1000")
        )
        results = by_code(
            engine.calculate_all_components(
                EMPLOYEE_ID,
                structure(incentive),
                CTC,
                context(present_days="10", working_days="20"),
            )
        )
        assert results["INCENTIVE"].base_value == Decimal("500.00")
        assert results["INCENTIVE"].calculated_value == Decimal("250.00")
        assert results["INCENTIVE"].is_prorated is True

    def test_attendance_based_with_proration_none(self, engine):
        incentive = component(
            "INCENTIVE",
            CalculationType.ATTENDANCE_BASED,
            value=Decimal("1000"),
            proration_rule=ProrationRule.NONE,
        )
        results = by_code(
            engine.calculate_all_components(
                EMPLOYEE_ID,
                structure(incentive),
                CTC,
                context(present_days="10", working_days="20"),
            )
        )
        assert results["INCENTIVE"].calculated_value == Decimal("500.00")
        assert results["INCENTIVE"].is_prorated is False


class TestRoundingAndClamp:
    """Test rounding rules and min/max bounds."""

    @pytest.mark.parametrize(
        "rule,value,expected",
        [
            (RoundingRule.ROUND_UP, "1000.40", "1001.00"),
            (RoundingRule.ROUND_DOWN, "1000.60", "1000.00"),
            (RoundingRule.ROUND_NEAREST, "1000.50", "1001.00"),
            (RoundingRule.ROUND_NEAREST, "1000.49", "1000.00"),
        ],
    )
    def test_rounding(self, engine, rule, value, expected):
        allowance = component("CONV", value=Decimal(value), rounding_rule=rule)
        result = engine.calculate_all_components(EMPLOYEE_ID, structure(allowance), CTC)[0]

        assert result.calculated_value == Decimal(expected)
        assert result.calculation_details.rounding_applied is True

    def test_rounding_not_applied_to_whole_value(self, engine):
        allowance = component(
            "CONV", value=Decimal("1000"), rounding_rule=RoundingRule.ROUND_UP
        )
        result = engine.calculate_all_components(EMPLOYEE_ID, structure(allowance), CTC)[0]
        assert result.calculation_details.rounding_applied is False

    def test_min_value(self, engine):
        allowance = component("CONV", value=Decimal("500"), min_value=Decimal("1600"))
        result = engine.calculate_all_components(EMPLOYEE_ID, structure(allowance), CTC)[0]
        assert result.calculated_value == Decimal("1600.00")

    def test_values_are_cents(self, engine):
        share = component(
            "SHARE", CalculationType.PERCENTAGE, percentage=Decimal("33.333"), base_component="CTC"
        )
        result = engine.calculate_all_components(EMPLOYEE_ID, structure(share), CTC)[0]
        assert result.calculated_value == Decimal("16666.50")
        assert result.calculated_value.as_tuple().exponent == -2


class TestValidationFailures:
    """Test that failing components yield zero without stopping the run."""

    def test_not_yet_effective(self, engine):
        bonus = component("BONUS", value=Decimal("5000"), effective_from=date(2024, 5, 1))
        results = by_code(
            engine.calculate_all_components(
                EMPLOYEE_ID, structure(basic(), bonus), CTC, context()
            )
        )

        assert results["BONUS"].calculated_value == Decimal("0.00")
        assert results["BONUS"].calculation_details.validation_errors == [
            "Component not yet effective (effective from 2024-05-01)"
        ]
        assert results["BASIC"].calculated_value == Decimal("20000.00")

    def test_expired(self, engine):
        bonus = component("BONUS", value=Decimal("5000"), effective_to=date(2024, 3, 31))
        result = engine.calculate_all_components(
            EMPLOYEE_ID, structure(bonus), CTC, context()
        )[0]

        assert result.success is False
        assert result.calculation_details.validation_errors == [
            "Component has expired (expired on 2024-03-31)"
        ]

    def test_missing_declared_dependency(self, engine):
        bonus = component("BONUS", value=Decimal("5000"), depends_on=("SALES",))
        result = engine.calculate_all_components(EMPLOYEE_ID, structure(bonus), CTC)[0]

        assert result.calculated_value == Decimal("0.00")
        assert result.calculation_details.validation_errors == ["Missing dependency: SALES"]

    def test_dependent_of_failed_component(self, engine):
        lta = component("LTA", value=Decimal("2000"), effective_to=date(2024, 3, 31))
        share = component(
            "LTA_TAX", CalculationType.PERCENTAGE, percentage=Decimal("10"), base_component="LTA"
        )
        results = by_code(
            engine.calculate_all_components(EMPLOYEE_ID, structure(lta, share), CTC, context())
        )

        assert results["LTA"].success is False
        assert results["LTA_TAX"].calculated_value == Decimal("0.00")
        assert results["LTA_TAX"].calculation_details.validation_errors == [
            "Missing dependency: LTA"
        ]

    def test_bad_formula(self, engine):
        broken = component("BROKEN", CalculationType.FORMULA, formula="BASIC / 0")
        result = engine.calculate_all_components(EMPLOYEE_ID, structure(broken), CTC)[0]

        assert result.calculated_value == Decimal("0.00")
        assert result.calculation_details.validation_errors == [
            "Formula evaluation failed: Division by zero"
        ]

    def test_missing_formula(self, engine):
        broken = component("BROKEN", CalculationType.FORMULA)
        result = engine.calculate_all_components(EMPLOYEE_ID, structure(broken), CTC)[0]
        assert result.calculation_details.validation_errors == [
            "Formula not defined for component BROKEN"
        ]

    def test_cycle_members_yield_zero(self, engine):
        a = component("A", CalculationType.FORMULA, formula="B + 1")
        b = component("B", CalculationType.FORMULA, formula="A + 1")
        results = by_code(
            engine.calculate_all_components(EMPLOYEE_ID, structure(basic(), a, b), CTC)
        )

        assert results["BASIC"].calculated_value == Decimal("20000.00")
        for code in ("A", "B"):
            assert results[code].calculated_value == Decimal("0.00")
            assert results[code].calculation_details.validation_errors == [
                "Circular dependency: A -> B -> A"
            ]

    def test_failure_is_logged(self, engine, caplog):
        bonus = component("BONUS", value=Decimal("5000"), depends_on=("SALES",))
        with caplog.at_level("WARNING", logger="hrms_core.calculators.engine"):
            engine.calculate_all_components(EMPLOYEE_ID, structure(bonus), CTC)
        assert "BONUS" in caplog.text
