"""Tests for payroll calculation from persisted salary structures."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from hrms_core.calculators.statutory import StatutoryRates
from hrms_core.calculators.summary import AttendanceDay, AttendanceStatus
from hrms_core.exceptions import NotFoundError, StructureConfigurationError
from hrms_core.services.payroll_service import PayrollService
from tests.factories import STANDARD_COMPONENTS, create_employee, create_structure

APRIL = date(2024, 4, 1)


def attendance(present: int, absent: int) -> list[AttendanceDay]:
    return [AttendanceDay(AttendanceStatus.PRESENT)] * present + [
        AttendanceDay(AttendanceStatus.ABSENT)
    ] * absent


class TestLoadStructure:
    """Test conversion of persisted structures."""

    @pytest.mark.asyncio
    async def test_load(self, session):
        record = await create_structure(session, STANDARD_COMPONENTS)

        structure = await PayrollService(session).load_structure(record.structure_id)

        assert [sc.code for sc in structure.components] == ["BASIC", "HRA", "PF"]
        pf = structure.components[2]
        assert pf.component.formula == "BASIC * 0.12"
        assert pf.component.is_statutory is True
        assert pf.max_value == Decimal("1800")

    @pytest.mark.asyncio
    async def test_inactive_components_skipped(self, session):
        components = STANDARD_COMPONENTS + [
            {
                "code": "OLD",
                "component_type": "EARNING",
                "category": "ALLOWANCE",
                "calculation_type": "FIXED",
                "value": Decimal("500"),
                "is_active": False,
                "order": 9,
            }
        ]
        record = await create_structure(session, components)

        structure = await PayrollService(session).load_structure(record.structure_id)
        assert "OLD" not in [sc.code for sc in structure.components]

    @pytest.mark.asyncio
    async def test_unknown_structure(self, session):
        with pytest.raises(NotFoundError):
            await PayrollService(session).load_structure(uuid4())


class TestValidateStructure:
    @pytest.mark.asyncio
    async def test_valid(self, session):
        record = await create_structure(session, STANDARD_COMPONENTS)
        plan = await PayrollService(session).validate_structure(record.structure_id)
        assert [sc.code for sc in plan.ordered] == ["BASIC", "HRA", "PF"]

    @pytest.mark.asyncio
    async def test_cycle(self, session):
        record = await create_structure(
            session,
            [
                {
                    "code": "A",
                    "component_type": "EARNING",
                    "category": "ALLOWANCE",
                    "calculation_type": "FORMULA",
                    "formula": "B + 1",
                },
                {
                    "code": "B",
                    "component_type": "EARNING",
                    "category": "ALLOWANCE",
                    "calculation_type": "FORMULA",
                    "formula": "A + 1",
                },
            ],
            code="CYCLIC",
        )

        with pytest.raises(StructureConfigurationError) as exc_info:
            await PayrollService(session).validate_structure(record.structure_id)
        assert exc_info.value.cycle == ["A", "B"]


class TestEmployeePayroll:
    """Test a full pay run for one employee."""

    @pytest.mark.asyncio
    async def test_full_attendance(self, session):
        employee = await create_employee(session)
        record = await create_structure(session, STANDARD_COMPONENTS)

        payroll = await PayrollService(session).calculate_employee_payroll(
            employee.employee_id,
            record.structure_id,
            Decimal("50000"),
            APRIL,
            Decimal("22"),
            attendance(22, 0),
        )
        summary = payroll.summary

        assert summary.basic_salary == Decimal("20000.00")
        assert summary.gross_salary == Decimal("30000.00")
        assert summary.total_deductions == Decimal("1800.00")
        assert summary.net_salary == Decimal("28200.00")
        assert summary.statutory.pf == Decimal("1800.00")
        assert payroll.attendance.lop_days == Decimal("0")
        assert summary.errors == []

    @pytest.mark.asyncio
    async def test_absences_prorate_allowances(self, session):
        employee = await create_employee(session)
        record = await create_structure(session, STANDARD_COMPONENTS)

        payroll = await PayrollService(session).calculate_employee_payroll(
            employee.employee_id,
            record.structure_id,
            Decimal("50000"),
            APRIL,
            Decimal("22"),
            attendance(20, 2),
        )
        results = {r.component_code: r for r in payroll.summary.components}

        assert results["BASIC"].calculated_value == Decimal("20000.00")
        assert results["HRA"].calculated_value == Decimal("9090.91")
        assert results["PF"].calculated_value == Decimal("1800.00")
        assert payroll.summary.net_salary == Decimal("27290.91")
        assert payroll.attendance.lop_days == Decimal("2")
        assert payroll.attendance.lop_amount == Decimal("1818.18")

    @pytest.mark.asyncio
    async def test_unknown_employee(self, session):
        record = await create_structure(session, STANDARD_COMPONENTS)
        with pytest.raises(NotFoundError):
            await PayrollService(session).calculate_employee_payroll(
                uuid4(), record.structure_id, Decimal("50000"), APRIL, Decimal("22"), []
            )


def statutory_deduction(code: str, value: str = "0", order: int = 10, **overrides):
    values = {
        "code": code,
        "component_type": "DEDUCTION",
        "category": "STATUTORY",
        "calculation_type": "FIXED",
        "value": Decimal(value),
        "is_statutory": True,
        "order": order,
    }
    values.update(overrides)
    return values


class TestStatutoryDeductionsInPayRun:
    """Test that PF, ESI, TDS and PT follow the statutory rates."""

    @pytest.fixture
    def components(self):
        return STANDARD_COMPONENTS[:2] + [
            statutory_deduction("PF", "999", order=3),
            statutory_deduction("ESI", order=4),
            statutory_deduction("PT", order=5),
            statutory_deduction("TDS", order=6),
        ]

    @pytest.mark.asyncio
    async def test_configured_values_replaced(self, session, components):
        """40,000 CTC: basic 16,000 and gross 24,000, inside the ESI limit."""
        employee = await create_employee(session)
        record = await create_structure(session, components)

        payroll = await PayrollService(session).calculate_employee_payroll(
            employee.employee_id,
            record.structure_id,
            Decimal("40000"),
            APRIL,
            Decimal("22"),
            attendance(22, 0),
        )
        summary = payroll.summary
        results = {r.component_code: r.calculated_value for r in summary.components}

        assert results["PF"] == Decimal("1800.00")
        assert results["ESI"] == Decimal("180.00")
        assert results["PT"] == Decimal("200.00")
        assert results["TDS"] == Decimal("158.33")
        assert summary.statutory.total == Decimal("2338.33")
        assert summary.total_deductions == Decimal("2338.33")
        assert summary.net_salary == Decimal("21661.67")

    @pytest.mark.asyncio
    async def test_custom_rates(self, session, components):
        employee = await create_employee(session)
        record = await create_structure(session, components)

        service = PayrollService(session, rates=StatutoryRates(professional_tax=Decimal("150")))
        payroll = await service.calculate_employee_payroll(
            employee.employee_id,
            record.structure_id,
            Decimal("40000"),
            APRIL,
            Decimal("22"),
            attendance(22, 0),
        )
        assert payroll.summary.statutory.pt == Decimal("150.00")

    @pytest.mark.asyncio
    async def test_ineffective_statutory_component_stays_zero(self, session):
        components = STANDARD_COMPONENTS[:2] + [
            statutory_deduction("PT", effective_from=date(2024, 5, 1)),
        ]
        employee = await create_employee(session)
        record = await create_structure(session, components)

        payroll = await PayrollService(session).calculate_employee_payroll(
            employee.employee_id,
            record.structure_id,
            Decimal("40000"),
            APRIL,
            Decimal("22"),
            attendance(22, 0),
        )
        assert payroll.summary.statutory.pt == Decimal("0.00")
        assert payroll.summary.errors == [
            "PT: Component not yet effective (effective from 2024-05-01)"
        ]
