"""Daily distance tracking: check-in legs, aggregates and anomaly records."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_core.config import Settings
from hrms_core.database import acquire_xact_lock
from hrms_core.exceptions import NotFoundError
from hrms_core.geo.anomalies import (
    Anomaly,
    AnomalyConfig,
    TrackPoint,
    as_utc,
    dedupe,
    detect_anomalies,
)
from hrms_core.geo.distance import GPSPoint
from hrms_core.geo.routing import (
    CalculationMethod,
    DistanceMatrixProvider,
    LegResult,
    RouteProvider,
    resolve_leg,
)
from hrms_core.models import CheckInPoint, DailyDistanceRecord, DistanceAnomaly

logger = logging.getLogger(__name__)


def build_route_provider(settings: Settings) -> RouteProvider | None:
    """Route provider from settings, or None when no API key is configured."""
    if not settings.routing_enabled:
        return None
    return DistanceMatrixProvider(
        api_key=settings.routing_api_key,
        base_url=settings.routing_api_url,
        timeout_seconds=settings.routing_timeout_seconds,
    )


def anomaly_config_from_settings(settings: Settings) -> AnomalyConfig:
    return AnomalyConfig().with_overrides(
        max_speed_kmh=settings.max_speed_kmh,
        max_distance_per_day_km=settings.max_distance_per_day_km,
        min_minutes_between_check_ins=settings.min_minutes_between_check_ins,
    )


@dataclass
class DailyDistanceView:
    """A day's aggregate with its ordered check-ins and recorded anomalies."""

    record: DailyDistanceRecord
    points: list[CheckInPoint] = field(default_factory=list)
    anomalies: list[DistanceAnomaly] = field(default_factory=list)


@dataclass
class DistanceStatistics:
    """Totals over a date range of daily records."""

    total_distance: Decimal = Decimal("0")
    total_duration: int = 0
    average_distance_per_day: Decimal = Decimal("0")
    max_distance_per_day: Decimal = Decimal("0")
    days_with_anomalies: int = 0
    total_anomalies: int = 0
    anomalies_by_severity: dict[str, int] = field(default_factory=dict)


class DistanceTrackingService:
    """Records GPS check-ins and keeps each day's aggregate consistent.

    Every write path ends in ``update_aggregate``, which is serialized per
    (employee, date) and appends anomalies with skip-duplicates semantics.
    """

    def __init__(
        self,
        session: AsyncSession,
        provider: RouteProvider | None = None,
        config: AnomalyConfig | None = None,
    ):
        self.session = session
        self.provider = provider
        self.config = config or AnomalyConfig()

    async def record_point(
        self,
        employee_id: UUID,
        point: GPSPoint,
        site_id: UUID | None = None,
        site_name: str | None = None,
    ) -> CheckInPoint:
        """Persist a check-in with its leg from the preceding point of the day."""
        timestamp = as_utc(point.timestamp or datetime.now(timezone.utc))
        work_date = timestamp.date()

        previous = await self._preceding_point(employee_id, work_date, timestamp)
        if previous is None:
            leg = LegResult(distance=Decimal("0"), duration=0, method=CalculationMethod.HAVERSINE)
        else:
            leg = await resolve_leg(_gps(previous), point, self.provider)

        check_in = CheckInPoint(
            employee_id=employee_id,
            work_date=work_date,
            timestamp=timestamp,
            latitude=Decimal(str(point.latitude)),
            longitude=Decimal(str(point.longitude)),
            accuracy=Decimal(str(point.accuracy)) if point.accuracy is not None else None,
            site_id=site_id,
            site_name=site_name,
            distance_from_previous=leg.distance,
            duration_from_previous=leg.duration,
            calculation_method=leg.method.value,
        )
        self.session.add(check_in)
        await self.session.flush()

        logger.debug(
            "Recorded check-in %s for employee %s: %s m via %s",
            check_in.check_in_point_id,
            employee_id,
            leg.distance,
            leg.method.value,
        )

        await self.update_aggregate(employee_id, work_date)
        return check_in

    async def update_aggregate(self, employee_id: UUID, work_date: date) -> DailyDistanceRecord:
        """Recompute the day's totals and append newly detected anomalies."""
        await acquire_xact_lock(self.session, f"distance:{employee_id}:{work_date.isoformat()}")

        points = await self._points_for_day(employee_id, work_date)
        total_distance = sum((Decimal(p.distance_from_previous or 0) for p in points), Decimal("0"))
        total_duration = sum(p.duration_from_previous or 0 for p in points)

        anomalies = dedupe(
            detect_anomalies(
                [
                    TrackPoint(
                        id=p.check_in_point_id,
                        timestamp=p.timestamp,
                        distance_from_previous=Decimal(p.distance_from_previous or 0),
                    )
                    for p in points
                ],
                self.config,
            )
        )

        record = await self._find_record(employee_id, work_date)
        if record is None:
            record = DailyDistanceRecord(employee_id=employee_id, work_date=work_date)
            self.session.add(record)

        record.total_distance = total_distance
        record.total_duration = total_duration
        record.check_in_count = len(points)
        record.is_validated = not anomalies

        added = await self._append_anomalies(employee_id, work_date, anomalies)
        await self.session.flush()

        if anomalies:
            logger.info(
                "Employee %s on %s: %d anomalies detected (%d new)",
                employee_id,
                work_date,
                len(anomalies),
                added,
            )
        return record

    async def recalculate(self, employee_id: UUID, work_date: date) -> DailyDistanceRecord:
        """Recompute every leg of the day, then the aggregate."""
        points = await self._points_for_day(employee_id, work_date)
        if not points:
            raise NotFoundError("Check-in points", f"{employee_id} on {work_date}")

        first = points[0]
        first.distance_from_previous = Decimal("0")
        first.duration_from_previous = 0
        first.calculation_method = CalculationMethod.HAVERSINE.value

        for previous, current in zip(points, points[1:]):
            leg = await resolve_leg(_gps(previous), _gps(current), self.provider)
            current.distance_from_previous = leg.distance
            current.duration_from_previous = leg.duration
            current.calculation_method = leg.method.value

        await self.session.flush()
        return await self.update_aggregate(employee_id, work_date)

    async def get_daily_record(self, employee_id: UUID, work_date: date) -> DailyDistanceView | None:
        record = await self._find_record(employee_id, work_date)
        if record is None:
            return None

        points = await self._points_for_day(employee_id, work_date)
        result = await self.session.execute(
            select(DistanceAnomaly)
            .where(
                DistanceAnomaly.employee_id == employee_id,
                DistanceAnomaly.work_date == work_date,
            )
            .order_by(DistanceAnomaly.detected_at)
        )
        return DailyDistanceView(record=record, points=points, anomalies=list(result.scalars()))

    async def get_records(
        self, employee_id: UUID, start_date: date, end_date: date
    ) -> list[DailyDistanceRecord]:
        result = await self.session.execute(
            select(DailyDistanceRecord)
            .where(
                DailyDistanceRecord.employee_id == employee_id,
                DailyDistanceRecord.work_date >= start_date,
                DailyDistanceRecord.work_date <= end_date,
            )
            .order_by(DailyDistanceRecord.work_date)
        )
        return list(result.scalars())

    async def get_statistics(
        self, employee_id: UUID, start_date: date, end_date: date
    ) -> DistanceStatistics:
        records = await self.get_records(employee_id, start_date, end_date)
        result = await self.session.execute(
            select(DistanceAnomaly.work_date, DistanceAnomaly.severity).where(
                DistanceAnomaly.employee_id == employee_id,
                DistanceAnomaly.work_date >= start_date,
                DistanceAnomaly.work_date <= end_date,
            )
        )
        anomaly_rows = result.all()

        stats = DistanceStatistics()
        if records:
            distances = [Decimal(r.total_distance) for r in records]
            stats.total_distance = sum(distances, Decimal("0"))
            stats.total_duration = sum(r.total_duration for r in records)
            stats.average_distance_per_day = (stats.total_distance / len(records)).quantize(
                Decimal("0.01")
            )
            stats.max_distance_per_day = max(distances)

        stats.days_with_anomalies = len({row.work_date for row in anomaly_rows})
        stats.total_anomalies = len(anomaly_rows)
        stats.anomalies_by_severity = dict(Counter(row.severity for row in anomaly_rows))
        return stats

    async def _preceding_point(
        self, employee_id: UUID, work_date: date, timestamp: datetime
    ) -> CheckInPoint | None:
        result = await self.session.execute(
            select(CheckInPoint)
            .where(
                CheckInPoint.employee_id == employee_id,
                CheckInPoint.work_date == work_date,
                CheckInPoint.timestamp <= timestamp,
            )
            .order_by(CheckInPoint.timestamp.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _points_for_day(self, employee_id: UUID, work_date: date) -> list[CheckInPoint]:
        result = await self.session.execute(
            select(CheckInPoint)
            .where(
                CheckInPoint.employee_id == employee_id,
                CheckInPoint.work_date == work_date,
            )
            .order_by(CheckInPoint.timestamp)
        )
        return list(result.scalars())

    async def _find_record(self, employee_id: UUID, work_date: date) -> DailyDistanceRecord | None:
        result = await self.session.execute(
            select(DailyDistanceRecord).where(
                DailyDistanceRecord.employee_id == employee_id,
                DailyDistanceRecord.work_date == work_date,
            )
        )
        return result.scalar_one_or_none()

    async def _append_anomalies(
        self, employee_id: UUID, work_date: date, anomalies: list[Anomaly]
    ) -> int:
        """Insert anomalies not already recorded for their (point, type)."""
        if not anomalies:
            return 0

        result = await self.session.execute(
            select(DistanceAnomaly.check_in_point_id, DistanceAnomaly.anomaly_type).where(
                DistanceAnomaly.employee_id == employee_id,
                DistanceAnomaly.work_date == work_date,
            )
        )
        existing = {(str(row.check_in_point_id), row.anomaly_type) for row in result}

        added = 0
        for anomaly in anomalies:
            if anomaly.key in existing:
                continue
            self.session.add(
                DistanceAnomaly(
                    employee_id=employee_id,
                    work_date=work_date,
                    check_in_point_id=anomaly.check_in_point_id,
                    anomaly_type=anomaly.type.value,
                    severity=anomaly.severity.value,
                    description=anomaly.description,
                    detected_at=datetime.now(timezone.utc),
                )
            )
            existing.add(anomaly.key)
            added += 1
        return added


def _gps(point: Any) -> GPSPoint:
    return GPSPoint(
        latitude=float(point.latitude),
        longitude=float(point.longitude),
        accuracy=float(point.accuracy) if point.accuracy is not None else None,
        timestamp=point.timestamp,
    )
