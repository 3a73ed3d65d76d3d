"""Salary calculation: component engine, statutory deductions and summaries."""

from hrms_core.calculators.engine import SalaryCalculationEngine
from hrms_core.calculators.formula import FormulaError, evaluate
from hrms_core.calculators.ordering import CalculationPlan, plan_calculation, validate_structure
from hrms_core.calculators.statutory import (
    StatutoryDeductions,
    StatutoryRates,
    calculate_esi,
    calculate_pf,
    calculate_professional_tax,
    calculate_statutory_deductions,
    calculate_tds,
)
from hrms_core.calculators.summary import (
    AttendanceDay,
    AttendanceMetrics,
    AttendanceStatus,
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

__all__ = [
    "SalaryCalculationEngine",
    "FormulaError",
    "evaluate",
    "CalculationPlan",
    "plan_calculation",
    "validate_structure",
    "StatutoryDeductions",
    "StatutoryRates",
    "calculate_esi",
    "calculate_pf",
    "calculate_professional_tax",
    "calculate_statutory_deductions",
    "calculate_tds",
    "AttendanceDay",
    "AttendanceMetrics",
    "AttendanceStatus",
    "PayrollSummary",
    "summarize_attendance",
    "summarize_payroll",
    "CalculationContext",
    "CalculationType",
    "ComponentCalculationResult",
    "PayComponent",
    "PayComponentCategory",
    "PayComponentType",
    "ProrationRule",
    "RoundingRule",
    "SalaryStructure",
    "StructureComponent",
]
