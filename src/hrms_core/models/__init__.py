"""ORM models."""

from hrms_core.models.base import Base, TimestampMixin
from hrms_core.models.employee import Employee
from hrms_core.models.attendance import (
    CheckInPoint,
    DailyDistanceRecord,
    DistanceAnomaly,
    EmployeeLocationAssignment,
    WorkSite,
)
from hrms_core.models.leave import LeaveBalance, LeavePolicy, LeaveRequest
from hrms_core.models.payroll import PayComponent, SalaryStructure, SalaryStructureComponent

__all__ = [
    "Base",
    "TimestampMixin",
    "Employee",
    "WorkSite",
    "EmployeeLocationAssignment",
    "CheckInPoint",
    "DailyDistanceRecord",
    "DistanceAnomaly",
    "LeavePolicy",
    "LeaveBalance",
    "LeaveRequest",
    "PayComponent",
    "SalaryStructure",
    "SalaryStructureComponent",
]
