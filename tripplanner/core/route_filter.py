"""
Route-aware filtering of candidate stops.

A membership policy decides whether a coordinate is plausible for a trip
between two endpoints. `filter_places` applies a policy, removes duplicates
and orders the survivors by distance from the start.
"""

from __future__ import annotations

import logging
from typing import Protocol

from tripplanner.core.errors import NoValidPlaces
from tripplanner.core.geo_utils import distance_km
from tripplanner.core.geocoder import place_key
from tripplanner.core.schemas import Coordinate, Place, Route
from tripplanner.core.settings import Settings

logger = logging.getLogger(__name__)

RADIUS_ANCHORS = ("either", "start", "end")


class MembershipPolicy(Protocol):
    def admits(self, coordinate: Coordinate, route: Route) -> bool: ...


class BoundingBoxPolicy:
    """Admit points inside the start/end rectangle grown by `buffer_deg` on every side."""

    def __init__(self, buffer_deg: float = 1.5) -> None:
        if buffer_deg < 0:
            raise ValueError("buffer_deg must be non-negative")
        self.buffer_deg = buffer_deg

    def admits(self, coordinate: Coordinate, route: Route) -> bool:
        min_lat = min(route.start.lat, route.end.lat) - self.buffer_deg
        max_lat = max(route.start.lat, route.end.lat) + self.buffer_deg
        min_lon = min(route.start.lon, route.end.lon) - self.buffer_deg
        max_lon = max(route.start.lon, route.end.lon) + self.buffer_deg
        return min_lat <= coordinate.lat <= max_lat and min_lon <= coordinate.lon <= max_lon

    def __repr__(self) -> str:
        return f"BoundingBoxPolicy(buffer_deg={self.buffer_deg})"


class RadiusPolicy:
    """
    Admit points within `threshold_km` of a route endpoint.

    anchor:
        "either" - within range of the start OR the end
        "start"  - within range of the start only
        "end"    - within range of the end only
    """

    def __init__(self, threshold_km: float = 100, anchor: str = "either") -> None:
        if threshold_km <= 0:
            raise ValueError("threshold_km must be positive")
        if anchor not in RADIUS_ANCHORS:
            raise ValueError(f"anchor must be one of {', '.join(RADIUS_ANCHORS)}")
        self.threshold_km = threshold_km
        self.anchor = anchor

    def admits(self, coordinate: Coordinate, route: Route) -> bool:
        near_start = distance_km(route.start, coordinate) <= self.threshold_km
        if self.anchor == "start":
            return near_start
        near_end = distance_km(route.end, coordinate) <= self.threshold_km
        if self.anchor == "end":
            return near_end
        return near_start or near_end

    def __repr__(self) -> str:
        return f"RadiusPolicy(threshold_km={self.threshold_km}, anchor={self.anchor!r})"


def build_policy(settings: Settings) -> MembershipPolicy:
    """Select the membership policy named in settings."""
    name = settings.route_filter_policy.strip().lower()
    if name == "radius":
        return RadiusPolicy(settings.route_radius_km, settings.route_radius_anchor.strip().lower())
    if name in ("bbox", "bounding_box"):
        return BoundingBoxPolicy(settings.route_bbox_buffer_deg)
    raise ValueError(f"Unknown route filter policy: {settings.route_filter_policy!r}")


def filter_places(
    candidates: list[Place], route: Route, policy: MembershipPolicy
) -> list[Place]:
    """
    Keep the candidates that belong on the route, in route order.

    Candidates without a coordinate are dropped. Duplicates (by normalized
    name) keep their first occurrence. Survivors are stably sorted by
    distance from the route start.

    Raises:
        NoValidPlaces: if no candidate survives
    """
    admitted: list[Place] = []
    seen: set[str] = set()

    for place in candidates:
        if place.coordinate is None:
            continue
        if not policy.admits(place.coordinate, route):
            logger.debug(f"Dropping off-route place '{place.name}' under {policy!r}")
            continue
        key = place_key(place.name)
        if key in seen:
            continue
        seen.add(key)
        admitted.append(place)

    if not admitted:
        raise NoValidPlaces()

    # sorted() is stable, so ties keep candidate order
    return sorted(admitted, key=lambda p: distance_km(route.start, p.coordinate))
