"""Leg distance resolution: external route provider with Haversine fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Protocol

import httpx

from hrms_core.exceptions import ExternalServiceError
from hrms_core.geo.distance import GPSPoint, calculate_distance

logger = logging.getLogger(__name__)


class CalculationMethod(str, Enum):
    """How a leg distance was obtained."""

    HAVERSINE = "HAVERSINE"
    EXTERNAL_API = "EXTERNAL_API"


@dataclass(frozen=True)
class LegResult:
    """Distance (metres) and duration (seconds) between two check-ins."""

    distance: Decimal
    duration: int
    method: CalculationMethod
    route: str | None = None


class RouteProvider(Protocol):
    """External driving-route lookup.

    Implementations raise ExternalServiceError on any failure, including
    timeouts and malformed responses.
    """

    async def route(self, origin: GPSPoint, destination: GPSPoint) -> LegResult:
        ...


class DistanceMatrixProvider:
    """Route provider backed by a Distance Matrix style JSON API.

    Expected payload:
    {
        "status": "OK",
        "rows": [{"elements": [{
            "status": "OK",
            "distance": {"value": 1234, "text": "1.2 km"},
            "duration": {"value": 300, "text": "5 mins"}
        }]}]
    }
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout_seconds: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self._client = client

    async def route(self, origin: GPSPoint, destination: GPSPoint) -> LegResult:
        params = {
            "origins": f"{origin.latitude},{origin.longitude}",
            "destinations": f"{destination.latitude},{destination.longitude}",
            "mode": "driving",
            "units": "metric",
            "key": self.api_key,
        }
        try:
            if self._client is not None:
                response = await self._client.get(
                    self.base_url, params=params, timeout=self.timeout_seconds
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.get(self.base_url, params=params)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ExternalServiceError(f"Route lookup failed: {e}") from e

        return self._parse(payload)

    def _parse(self, payload: Any) -> LegResult:
        try:
            if payload.get("status") != "OK":
                raise ExternalServiceError(f"Route API status {payload.get('status')!r}")
            element = payload["rows"][0]["elements"][0]
            if element.get("status") != "OK":
                raise ExternalServiceError(f"Route element status {element.get('status')!r}")
            distance = Decimal(str(element["distance"]["value"]))
            duration = int(element["duration"]["value"])
            route = element["distance"].get("text")
            if not distance.is_finite():
                raise ExternalServiceError(f"Route response has non-finite distance {distance}")
            if distance < 0 or duration < 0:
                raise ExternalServiceError("Route response has negative distance or duration")
            distance = distance.quantize(Decimal("0.01"))
        except ExternalServiceError:
            raise
        except (
            AttributeError,
            KeyError,
            IndexError,
            TypeError,
            ValueError,
            OverflowError,
            InvalidOperation,
        ) as e:
            raise ExternalServiceError(f"Malformed route response: {e!r}") from e

        return LegResult(
            distance=distance,
            duration=duration,
            method=CalculationMethod.EXTERNAL_API,
            route=route,
        )


async def resolve_leg(
    origin: GPSPoint,
    destination: GPSPoint,
    provider: RouteProvider | None = None,
) -> LegResult:
    """Resolve a leg via the provider, falling back to straight-line distance.

    The fallback always completes; it carries no duration.
    """
    if provider is not None:
        try:
            return await provider.route(origin, destination)
        except ExternalServiceError as e:
            logger.warning("Route provider unavailable, using Haversine: %s", e)

    return LegResult(
        distance=calculate_distance(origin, destination),
        duration=0,
        method=CalculationMethod.HAVERSINE,
    )
