"""Great-circle distance between GPS points."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

EARTH_RADIUS_METERS = 6_371_000

_CENTIMETRE = Decimal("0.01")


@dataclass(frozen=True)
class GPSPoint:
    """A reported GPS position.

    Coordinates are range-checked at the API boundary, not here.
    """

    latitude: float
    longitude: float
    accuracy: float | None = None
    timestamp: datetime | None = None


def calculate_distance(a: GPSPoint, b: GPSPoint) -> Decimal:
    """Haversine distance in metres on a spherical Earth, to the centimetre."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    delta_phi = math.radians(b.latitude - a.latitude)
    delta_lambda = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    h = min(1.0, h)  # float error near antipodes
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return Decimal(repr(EARTH_RADIUS_METERS * c)).quantize(_CENTIMETRE, rounding=ROUND_HALF_UP)
