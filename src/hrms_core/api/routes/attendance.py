"""Location validation and distance tracking endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from hrms_core.api.dependencies import AnomalyConfigDep, DbSession, RouteProviderDep
from hrms_core.api.schemas import (
    CheckInCreate,
    CheckInPointResponse,
    CheckInResponse,
    DailyDistanceRecordResponse,
    DailyDistanceResponse,
    DistanceAnomalyResponse,
    DistanceStatisticsResponse,
    ErrorResponse,
    LocationPayload,
    LocationValidationResponse,
    SiteDistanceResponse,
)
from hrms_core.exceptions import NotFoundError, ValidationError
from hrms_core.geo.distance import GPSPoint
from hrms_core.geo.geofence import LocationValidationResult
from hrms_core.services.distance_service import DistanceTrackingService
from hrms_core.services.location_service import LocationService

router = APIRouter(prefix="/attendance", tags=["attendance"])


def _location_response(result: LocationValidationResult) -> LocationValidationResponse:
    nearest = result.nearest_site
    return LocationValidationResponse(
        is_valid=result.is_valid,
        requires_approval=result.requires_approval,
        nearest_site_id=nearest.id if nearest else None,
        nearest_site_name=nearest.name if nearest else None,
        distance_from_nearest=result.distance_from_nearest,
        site_distances=[SiteDistanceResponse.model_validate(d) for d in result.site_distances],
    )


@router.post(
    "/validate-location",
    response_model=LocationValidationResponse,
)
async def validate_location(db: DbSession, payload: LocationPayload) -> LocationValidationResponse:
    """Check a location against the employee's assigned work sites."""
    point = GPSPoint(payload.latitude, payload.longitude, payload.accuracy)
    result = await LocationService(db).validate_location(payload.employee_id, point)
    return _location_response(result)


@router.post(
    "/check-ins",
    response_model=CheckInResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def record_check_in(
    db: DbSession,
    provider: RouteProviderDep,
    config: AnomalyConfigDep,
    payload: CheckInCreate,
) -> CheckInResponse:
    """Record a GPS check-in and update the day's distance aggregate.

    Check-ins outside every assigned site are still recorded; the verdict
    tells the caller the point needs approval.
    """
    point = GPSPoint(payload.latitude, payload.longitude, payload.accuracy, payload.timestamp)
    location = await LocationService(db).validate_location(payload.employee_id, point)

    site_id, site_name = payload.site_id, payload.site_name
    if site_id is None and location.is_valid and location.nearest_site is not None:
        site_id, site_name = location.nearest_site.id, location.nearest_site.name

    service = DistanceTrackingService(db, provider=provider, config=config)
    check_in = await service.record_point(payload.employee_id, point, site_id, site_name)
    await db.commit()

    return CheckInResponse(
        point=CheckInPointResponse.model_validate(check_in),
        location=_location_response(location),
    )


@router.get(
    "/distance/{employee_id}",
    response_model=list[DailyDistanceRecordResponse],
)
async def list_distance_records(
    db: DbSession,
    employee_id: Annotated[UUID, Path()],
    start_date: Annotated[date, Query()],
    end_date: Annotated[date, Query()],
) -> list[DailyDistanceRecordResponse]:
    """List daily distance records in a date range."""
    if end_date < start_date:
        raise ValidationError("end_date must not be before start_date")
    records = await DistanceTrackingService(db).get_records(employee_id, start_date, end_date)
    return [DailyDistanceRecordResponse.model_validate(r) for r in records]


@router.get(
    "/distance/{employee_id}/statistics",
    response_model=DistanceStatisticsResponse,
)
async def distance_statistics(
    db: DbSession,
    employee_id: Annotated[UUID, Path()],
    start_date: Annotated[date, Query()],
    end_date: Annotated[date, Query()],
) -> DistanceStatisticsResponse:
    """Distance and anomaly totals over a date range."""
    if end_date < start_date:
        raise ValidationError("end_date must not be before start_date")
    stats = await DistanceTrackingService(db).get_statistics(employee_id, start_date, end_date)
    return DistanceStatisticsResponse.model_validate(stats)


@router.get(
    "/distance/{employee_id}/{work_date}",
    response_model=DailyDistanceResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_daily_distance(
    db: DbSession,
    employee_id: Annotated[UUID, Path()],
    work_date: Annotated[date, Path()],
) -> DailyDistanceResponse:
    """Get a day's distance record with its check-ins and anomalies."""
    view = await DistanceTrackingService(db).get_daily_record(employee_id, work_date)
    if view is None:
        raise NotFoundError("Daily distance record", f"{employee_id} on {work_date}")
    return DailyDistanceResponse(
        record=DailyDistanceRecordResponse.model_validate(view.record),
        points=[CheckInPointResponse.model_validate(p) for p in view.points],
        anomalies=[DistanceAnomalyResponse.model_validate(a) for a in view.anomalies],
    )


@router.post(
    "/distance/{employee_id}/{work_date}/recalculate",
    response_model=DailyDistanceRecordResponse,
    responses={404: {"model": ErrorResponse}},
)
async def recalculate_daily_distance(
    db: DbSession,
    provider: RouteProviderDep,
    config: AnomalyConfigDep,
    employee_id: Annotated[UUID, Path()],
    work_date: Annotated[date, Path()],
) -> DailyDistanceRecordResponse:
    """Recompute every leg of a day and its aggregate."""
    service = DistanceTrackingService(db, provider=provider, config=config)
    record = await service.recalculate(employee_id, work_date)
    await db.commit()
    return DailyDistanceRecordResponse.model_validate(record)
