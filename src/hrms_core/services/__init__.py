"""HRMS core services."""

from hrms_core.services.distance_service import (
    DailyDistanceView,
    DistanceStatistics,
    DistanceTrackingService,
    build_route_provider,
)
from hrms_core.services.leave_service import BalanceCheck, LeaveService, LeaveValidation
from hrms_core.services.location_service import LocationService
from hrms_core.services.payroll_service import EmployeePayroll, PayrollService

__all__ = [
    "DailyDistanceView",
    "DistanceStatistics",
    "DistanceTrackingService",
    "build_route_provider",
    "BalanceCheck",
    "LeaveService",
    "LeaveValidation",
    "LocationService",
    "EmployeePayroll",
    "PayrollService",
]
