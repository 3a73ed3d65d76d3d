"""Work site, geofence assignment and distance tracking models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms_core.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from hrms_core.models.employee import Employee


# ===== Work sites =====


class WorkSite(Base, TimestampMixin):
    """An office or field location with a geofence radius."""

    __tablename__ = "work_site"

    site_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    address: Mapped[str | None] = mapped_column(Text)
    latitude: Mapped[Decimal] = mapped_column(Numeric(10, 8), nullable=False)
    longitude: Mapped[Decimal] = mapped_column(Numeric(11, 8), nullable=False)
    radius_meters: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("radius_meters > 0", name="work_site_radius_check"),
    )


class EmployeeLocationAssignment(Base, TimestampMixin):
    """Employee to work site assignment."""

    __tablename__ = "employee_location_assignment"

    assignment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    site_id: Mapped[UUID] = mapped_column(
        ForeignKey("work_site.site_id", ondelete="CASCADE"),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "site_id", name="employee_location_unique"),
    )

    # Relationships
    site: Mapped[WorkSite] = relationship(lazy="joined")
    employee: Mapped[Employee] = relationship()


# ===== Distance tracking =====


class CheckInPoint(Base, TimestampMixin):
    """A single GPS check-in, ordered by timestamp within its work date."""

    __tablename__ = "check_in_point"

    check_in_point_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    latitude: Mapped[Decimal] = mapped_column(Numeric(10, 8), nullable=False)
    longitude: Mapped[Decimal] = mapped_column(Numeric(11, 8), nullable=False)
    accuracy: Mapped[Decimal | None] = mapped_column(Numeric(8, 2))
    site_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("work_site.site_id", ondelete="SET NULL")
    )
    site_name: Mapped[str | None] = mapped_column(String)
    distance_from_previous: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    duration_from_previous: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    calculation_method: Mapped[str] = mapped_column(
        String, nullable=False, default="HAVERSINE"
    )

    __table_args__ = (
        Index("check_in_point_employee_date_idx", "employee_id", "work_date", "timestamp"),
        CheckConstraint(
            "calculation_method IN ('HAVERSINE', 'EXTERNAL_API')",
            name="check_in_point_method_check",
        ),
    )


class DailyDistanceRecord(Base, TimestampMixin):
    """Derived per-day distance aggregate, keyed by (employee, date)."""

    __tablename__ = "daily_distance_record"

    record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_distance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    total_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    check_in_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_validated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="daily_distance_employee_date_unique"),
    )


class DistanceAnomaly(Base):
    """Append-only record of a detected movement anomaly."""

    __tablename__ = "distance_anomaly"

    anomaly_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    check_in_point_id: Mapped[UUID] = mapped_column(
        ForeignKey("check_in_point.check_in_point_id", ondelete="CASCADE"),
        nullable=False,
    )
    anomaly_type: Mapped[str] = mapped_column(String, nullable=False)
    severity: Mapped[str] = mapped_column(String, nullable=False, default="MEDIUM")
    description: Mapped[str] = mapped_column(Text, nullable=False)
    detected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("check_in_point_id", "anomaly_type", name="distance_anomaly_point_type_unique"),
        Index("distance_anomaly_employee_date_idx", "employee_id", "work_date"),
        CheckConstraint(
            "anomaly_type IN ('EXCESSIVE_SPEED', 'IMPOSSIBLE_DISTANCE', 'LOCATION_JUMP', 'MISSING_ROUTE')",
            name="distance_anomaly_type_check",
        ),
        CheckConstraint(
            "severity IN ('LOW', 'MEDIUM', 'HIGH')",
            name="distance_anomaly_severity_check",
        ),
    )
