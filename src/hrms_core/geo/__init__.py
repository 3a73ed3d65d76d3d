"""GPS distance, geofencing and movement anomaly detection."""

from hrms_core.geo.anomalies import (
    Anomaly,
    AnomalyConfig,
    AnomalySeverity,
    AnomalyType,
    TrackPoint,
    detect_anomalies,
)
from hrms_core.geo.distance import EARTH_RADIUS_METERS, GPSPoint, calculate_distance
from hrms_core.geo.geofence import LocationValidationResult, LocationValidator, WorkSite
from hrms_core.geo.routing import (
    CalculationMethod,
    DistanceMatrixProvider,
    LegResult,
    RouteProvider,
    resolve_leg,
)

__all__ = [
    "Anomaly",
    "AnomalyConfig",
    "AnomalySeverity",
    "AnomalyType",
    "TrackPoint",
    "detect_anomalies",
    "EARTH_RADIUS_METERS",
    "GPSPoint",
    "calculate_distance",
    "LocationValidationResult",
    "LocationValidator",
    "WorkSite",
    "CalculationMethod",
    "DistanceMatrixProvider",
    "LegResult",
    "RouteProvider",
    "resolve_leg",
]
