"""Geofence checks against an employee's assigned work sites."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_core.geo.distance import GPSPoint
from hrms_core.geo.geofence import LocationValidationResult, LocationValidator, WorkSite
from hrms_core.models import EmployeeLocationAssignment
from hrms_core.models import WorkSite as WorkSiteModel


class LocationService:
    """Loads active site assignments and runs the geofence validator."""

    def __init__(self, session: AsyncSession, validator: LocationValidator | None = None):
        self.session = session
        self.validator = validator or LocationValidator()

    async def assigned_sites(self, employee_id: UUID) -> list[WorkSite]:
        result = await self.session.execute(
            select(WorkSiteModel)
            .join(
                EmployeeLocationAssignment,
                EmployeeLocationAssignment.site_id == WorkSiteModel.site_id,
            )
            .where(
                EmployeeLocationAssignment.employee_id == employee_id,
                EmployeeLocationAssignment.is_active.is_(True),
                WorkSiteModel.is_active.is_(True),
            )
            .order_by(WorkSiteModel.name)
        )
        return [
            WorkSite(
                id=site.site_id,
                name=site.name,
                center=GPSPoint(latitude=float(site.latitude), longitude=float(site.longitude)),
                radius_meters=Decimal(site.radius_meters),
                address=site.address,
            )
            for site in result.scalars()
        ]

    async def validate_location(self, employee_id: UUID, point: GPSPoint) -> LocationValidationResult:
        sites = await self.assigned_sites(employee_id)
        return self.validator.validate(employee_id, point, sites)
