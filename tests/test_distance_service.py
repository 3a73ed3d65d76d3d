"""Tests for daily distance tracking against the database."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from hrms_core.exceptions import NotFoundError
from hrms_core.geo.distance import GPSPoint, calculate_distance
from hrms_core.services.distance_service import DistanceTrackingService
from tests.factories import create_employee

WORK_DATE = date(2024, 3, 4)
NINE_AM = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)


def at(latitude: float, minutes: int, longitude: float = 77.5946, day: datetime = NINE_AM) -> GPSPoint:
    return GPSPoint(latitude, longitude, timestamp=day + timedelta(minutes=minutes))


class TestRecordPoint:
    """Test leg resolution when check-ins arrive."""

    @pytest.mark.asyncio
    async def test_first_point_of_day(self, session):
        employee = await create_employee(session)
        service = DistanceTrackingService(session)

        point = await service.record_point(employee.employee_id, at(12.9716, 0))

        assert point.work_date == WORK_DATE
        assert point.distance_from_previous == Decimal("0")
        assert point.duration_from_previous == 0
        assert point.calculation_method == "HAVERSINE"

        view = await service.get_daily_record(employee.employee_id, WORK_DATE)
        assert view.record.check_in_count == 1
        assert view.record.total_distance == Decimal("0")
        assert view.record.is_validated is True

    @pytest.mark.asyncio
    async def test_second_point_uses_straight_line_fallback(self, session):
        employee = await create_employee(session)
        service = DistanceTrackingService(session)
        first, second = at(12.9716, 0), at(12.9352, 30, longitude=77.6245)

        await service.record_point(employee.employee_id, first)
        point = await service.record_point(employee.employee_id, second)

        expected = calculate_distance(first, second)
        assert point.distance_from_previous == expected
        assert point.calculation_method == "HAVERSINE"

        records = await service.get_records(employee.employee_id, WORK_DATE, WORK_DATE)
        assert len(records) == 1
        assert records[0].total_distance == expected
        assert records[0].check_in_count == 2

    @pytest.mark.asyncio
    async def test_points_on_different_days_are_separate(self, session):
        employee = await create_employee(session)
        service = DistanceTrackingService(session)

        await service.record_point(employee.employee_id, at(12.00, 0))
        next_day = await service.record_point(
            employee.employee_id, at(12.02, 0, day=NINE_AM + timedelta(days=1))
        )

        assert next_day.distance_from_previous == Decimal("0")

    @pytest.mark.asyncio
    async def test_out_of_order_point_is_fixed_by_recalculation(self, session):
        employee = await create_employee(session)
        service = DistanceTrackingService(session)
        a, b, c = at(12.00, 0), at(12.02, 60), at(12.04, 120)

        await service.record_point(employee.employee_id, a)
        await service.record_point(employee.employee_id, c)
        late = await service.record_point(employee.employee_id, b)

        assert late.distance_from_previous == calculate_distance(a, b)

        record = await service.recalculate(employee.employee_id, WORK_DATE)
        assert record.total_distance == calculate_distance(a, b) + calculate_distance(b, c)
        assert record.check_in_count == 3


class TestAnomalies:
    """Test anomaly recording through the aggregate."""

    @pytest.mark.asyncio
    async def test_jump_is_recorded(self, session):
        """About 67 km in 20 minutes: excessive speed and a location jump."""
        employee = await create_employee(session)
        service = DistanceTrackingService(session)

        await service.record_point(employee.employee_id, at(12.0, 0))
        await service.record_point(employee.employee_id, at(12.6, 20))

        view = await service.get_daily_record(employee.employee_id, WORK_DATE)
        types = sorted(a.anomaly_type for a in view.anomalies)

        assert types == ["EXCESSIVE_SPEED", "LOCATION_JUMP"]
        assert view.record.is_validated is False

    @pytest.mark.asyncio
    async def test_recalculation_does_not_duplicate(self, session):
        employee = await create_employee(session)
        service = DistanceTrackingService(session)

        await service.record_point(employee.employee_id, at(12.0, 0))
        await service.record_point(employee.employee_id, at(12.6, 20))

        first = await service.recalculate(employee.employee_id, WORK_DATE)
        total = first.total_distance
        second = await service.recalculate(employee.employee_id, WORK_DATE)

        view = await service.get_daily_record(employee.employee_id, WORK_DATE)
        assert len(view.anomalies) == 2
        assert second.total_distance == total

    @pytest.mark.asyncio
    async def test_plausible_day_is_validated(self, session):
        employee = await create_employee(session)
        service = DistanceTrackingService(session)

        await service.record_point(employee.employee_id, at(12.00, 0))
        await service.record_point(employee.employee_id, at(12.05, 30))

        view = await service.get_daily_record(employee.employee_id, WORK_DATE)
        assert view.anomalies == []
        assert view.record.is_validated is True

    @pytest.mark.asyncio
    async def test_recalculate_without_points(self, session):
        employee = await create_employee(session)
        with pytest.raises(NotFoundError):
            await DistanceTrackingService(session).recalculate(employee.employee_id, WORK_DATE)


class TestStatistics:
    @pytest.mark.asyncio
    async def test_range_totals(self, session):
        employee = await create_employee(session)
        service = DistanceTrackingService(session)
        day_two = NINE_AM + timedelta(days=1)

        await service.record_point(employee.employee_id, at(12.0, 0))
        await service.record_point(employee.employee_id, at(12.6, 20))
        await service.record_point(employee.employee_id, at(12.00, 0, day=day_two))
        await service.record_point(employee.employee_id, at(12.05, 30, day=day_two))

        stats = await service.get_statistics(
            employee.employee_id, WORK_DATE, WORK_DATE + timedelta(days=1)
        )

        first_day = calculate_distance(at(12.0, 0), at(12.6, 20))
        second_day = calculate_distance(at(12.00, 0), at(12.05, 30))
        assert stats.total_distance == first_day + second_day
        assert stats.max_distance_per_day == first_day
        assert stats.average_distance_per_day == ((first_day + second_day) / 2).quantize(
            Decimal("0.01")
        )
        assert stats.days_with_anomalies == 1
        assert stats.total_anomalies == 2
        assert stats.anomalies_by_severity == {"HIGH": 1, "MEDIUM": 1}

    @pytest.mark.asyncio
    async def test_empty_range(self, session):
        employee = await create_employee(session)
        stats = await DistanceTrackingService(session).get_statistics(
            employee.employee_id, WORK_DATE, WORK_DATE
        )
        assert stats.total_distance == Decimal("0")
        assert stats.total_anomalies == 0
