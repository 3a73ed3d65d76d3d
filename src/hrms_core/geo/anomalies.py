"""Movement plausibility checks over a day's ordered check-ins."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from hrms_core.exceptions import ValidationError

_ONE_DP = Decimal("0.1")


class AnomalyType(str, Enum):
    """Kinds of movement anomaly."""

    EXCESSIVE_SPEED = "EXCESSIVE_SPEED"
    IMPOSSIBLE_DISTANCE = "IMPOSSIBLE_DISTANCE"
    LOCATION_JUMP = "LOCATION_JUMP"
    MISSING_ROUTE = "MISSING_ROUTE"


class AnomalySeverity(str, Enum):
    """Anomaly severity levels."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


_SEVERITY_RANK = {AnomalySeverity.LOW: 0, AnomalySeverity.MEDIUM: 1, AnomalySeverity.HIGH: 2}


@dataclass(frozen=True)
class AnomalyConfig:
    """
    Thresholds for anomaly detection.

    Attributes:
        max_speed_kmh: Highest plausible travel speed. Default 120.
        max_distance_per_day_km: Daily distance cap. Default 500.
        min_minutes_between_check_ins: Pairs closer in time than this are
            GPS noise and are not evaluated. Default 5.
        location_jump_distance_km: Distance that counts as a jump when
            covered within the jump window. Default 50.
        location_jump_window_minutes: Default 30.
        impossible_distance_factor: Multiple of the reachable distance
            (at max speed) beyond which a leg is impossible. Default 2.
        high_severity_speed_factor: Multiple of max speed above which an
            excessive-speed anomaly is HIGH rather than MEDIUM. Default 1.5.
    """

    max_speed_kmh: Decimal = Decimal("120")
    max_distance_per_day_km: Decimal = Decimal("500")
    min_minutes_between_check_ins: Decimal = Decimal("5")
    location_jump_distance_km: Decimal = Decimal("50")
    location_jump_window_minutes: Decimal = Decimal("30")
    impossible_distance_factor: Decimal = Decimal("2")
    high_severity_speed_factor: Decimal = Decimal("1.5")

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_speed_kmh <= 0:
            raise ValidationError("max_speed_kmh must be positive")
        if self.max_distance_per_day_km <= 0:
            raise ValidationError("max_distance_per_day_km must be positive")
        if self.min_minutes_between_check_ins < 0:
            raise ValidationError("min_minutes_between_check_ins cannot be negative")
        if self.impossible_distance_factor < 1:
            raise ValidationError("impossible_distance_factor must be at least 1")

    def with_overrides(self, **overrides: Any) -> AnomalyConfig:
        """Return a copy with the given (non-None) thresholds replaced."""
        values = {
            k: Decimal(str(v)) for k, v in overrides.items() if v is not None
        }
        if not values:
            return self
        return AnomalyConfig(**{**self.__dict__, **values})


@dataclass(frozen=True)
class TrackPoint:
    """The fields of a check-in that anomaly detection reads."""

    id: Any
    timestamp: datetime
    distance_from_previous: Decimal


@dataclass(frozen=True)
class Anomaly:
    """A detected anomaly, attributed to the later point of a leg."""

    type: AnomalyType
    severity: AnomalySeverity
    check_in_point_id: Any
    description: str

    @property
    def key(self) -> tuple[str, str]:
        return (str(self.check_in_point_id), self.type.value)


def detect_anomalies(
    points: Sequence[TrackPoint],
    config: AnomalyConfig | None = None,
) -> list[Anomaly]:
    """Evaluate consecutive legs and the daily total.

    ``points`` must be ordered by timestamp. The first point of a day is
    never evaluated on its own.
    """
    config = config or AnomalyConfig()
    anomalies: list[Anomaly] = []

    min_gap_seconds = config.min_minutes_between_check_ins * 60
    jump_distance = config.location_jump_distance_km * 1000
    jump_window_seconds = config.location_jump_window_minutes * 60

    for previous, current in zip(points, points[1:]):
        distance = Decimal(current.distance_from_previous or 0)
        gap = Decimal(str(_elapsed_seconds(previous.timestamp, current.timestamp)))

        if gap <= 0 or gap < min_gap_seconds:
            continue

        speed_kmh = (distance / 1000) / (gap / 3600)
        minutes = gap / 60

        if speed_kmh > config.max_speed_kmh:
            severity = (
                AnomalySeverity.HIGH
                if speed_kmh > config.max_speed_kmh * config.high_severity_speed_factor
                else AnomalySeverity.MEDIUM
            )
            anomalies.append(
                Anomaly(
                    type=AnomalyType.EXCESSIVE_SPEED,
                    severity=severity,
                    check_in_point_id=current.id,
                    description=(
                        f"Speed of {_fmt(speed_kmh)} km/h exceeds maximum allowed "
                        f"speed of {config.max_speed_kmh} km/h"
                    ),
                )
            )

        max_reachable = config.max_speed_kmh * 1000 * (gap / 3600)
        if distance > max_reachable * config.impossible_distance_factor:
            anomalies.append(
                Anomaly(
                    type=AnomalyType.IMPOSSIBLE_DISTANCE,
                    severity=AnomalySeverity.HIGH,
                    check_in_point_id=current.id,
                    description=(
                        f"Distance of {_fmt(distance / 1000)} km in {_fmt(minutes)} "
                        "minutes is physically impossible"
                    ),
                )
            )

        if distance > jump_distance and gap < jump_window_seconds:
            anomalies.append(
                Anomaly(
                    type=AnomalyType.LOCATION_JUMP,
                    severity=AnomalySeverity.MEDIUM,
                    check_in_point_id=current.id,
                    description=(
                        f"Large distance jump of {_fmt(distance / 1000)} km in "
                        f"{_fmt(minutes)} minutes"
                    ),
                )
            )

    total = sum((Decimal(p.distance_from_previous or 0) for p in points), Decimal("0"))
    if points and total > config.max_distance_per_day_km * 1000:
        anomalies.append(
            Anomaly(
                type=AnomalyType.EXCESSIVE_SPEED,
                severity=AnomalySeverity.HIGH,
                check_in_point_id=points[-1].id,
                description=(
                    f"Total daily distance of {_fmt(total / 1000)} km exceeds maximum "
                    f"allowed distance of {config.max_distance_per_day_km} km"
                ),
            )
        )

    return anomalies


def dedupe(anomalies: Sequence[Anomaly]) -> list[Anomaly]:
    """Keep the most severe anomaly per (check-in point, type).

    Ties keep the earliest. Output order follows each key's first appearance.
    """
    kept: dict[tuple[str, str], Anomaly] = {}
    for anomaly in anomalies:
        current = kept.get(anomaly.key)
        if current is None or _SEVERITY_RANK[anomaly.severity] > _SEVERITY_RANK[current.severity]:
            kept[anomaly.key] = anomaly
    return list(kept.values())


def as_utc(value: datetime) -> datetime:
    """Normalize a timestamp to aware UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _elapsed_seconds(start: datetime, end: datetime) -> int:
    return int((as_utc(end) - as_utc(start)).total_seconds())


def _fmt(value: Decimal) -> Decimal:
    return value.quantize(_ONE_DP, rounding=ROUND_HALF_UP)
