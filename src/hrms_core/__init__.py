"""HRMS calculation core: payroll components, leave accrual and GPS distance tracking."""

__version__ = "0.1.0"
