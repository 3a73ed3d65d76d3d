"""Geofence validation of reported locations against assigned work sites."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from hrms_core.geo.distance import GPSPoint, calculate_distance


@dataclass(frozen=True)
class WorkSite:
    """A site centre and the radius within which check-ins are accepted."""

    id: Any
    name: str
    center: GPSPoint
    radius_meters: Decimal
    address: str | None = None


@dataclass(frozen=True)
class SiteDistance:
    """Diagnostic distance from the reported point to one site."""

    site_id: Any
    site_name: str
    distance: Decimal  # whole metres
    is_within_radius: bool


@dataclass
class LocationValidationResult:
    """Verdict for a single reported location."""

    is_valid: bool
    nearest_site: WorkSite | None = None
    distance_from_nearest: Decimal | None = None  # whole metres
    site_distances: list[SiteDistance] = field(default_factory=list)

    @property
    def requires_approval(self) -> bool:
        return not self.is_valid

    @property
    def is_restricted(self) -> bool:
        return bool(self.site_distances)


class LocationValidator:
    """Decides whether a location lies inside any of an employee's sites.

    Employees without active site assignments are unrestricted: every
    location is accepted. Otherwise the location is valid as soon as one
    site's radius test passes; the nearest site is always reported so the
    caller can tell the user how far away they are.
    """

    def validate(
        self,
        employee_id: Any,
        point: GPSPoint,
        assigned_sites: Iterable[WorkSite],
    ) -> LocationValidationResult:
        sites = list(assigned_sites)
        if not sites:
            return LocationValidationResult(is_valid=True)

        nearest: WorkSite | None = None
        min_distance: Decimal | None = None
        site_distances: list[SiteDistance] = []
        is_valid = False

        for site in sites:
            distance = calculate_distance(point, site.center)
            within = distance <= Decimal(site.radius_meters)

            site_distances.append(
                SiteDistance(
                    site_id=site.id,
                    site_name=site.name,
                    distance=_whole_metres(distance),
                    is_within_radius=within,
                )
            )

            if min_distance is None or distance < min_distance:
                min_distance = distance
                nearest = site

            if within:
                is_valid = True
                break

        return LocationValidationResult(
            is_valid=is_valid,
            nearest_site=nearest,
            distance_from_nearest=_whole_metres(min_distance) if min_distance is not None else None,
            site_distances=site_distances,
        )


def _whole_metres(distance: Decimal) -> Decimal:
    return distance.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
