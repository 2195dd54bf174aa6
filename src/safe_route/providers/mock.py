from __future__ import annotations

import itertools
from typing import Any, Dict, List, Optional

from safe_route.contracts.notification_contract import PositionError
from safe_route.core.geo import distance_km
from safe_route.core.models import GeoPoint, PositionSample, RawRoute, Step
from safe_route.providers.base import (
    PositionCallback,
    PositionErrorCallback,
    PositionSource,
    RoutingOracle,
)


def _leg_step(text: str, a: GeoPoint, b: GeoPoint, speed_kmh: float) -> Step:
    d = distance_km(a, b)
    return Step(point=b, instruction=text, distance_km=d, duration_sec=d / speed_kmh * 3600)


def _direct_route(start: GeoPoint, end: GeoPoint) -> RawRoute:
    d = distance_km(start, end)
    return RawRoute(
        points=[start, end],
        steps=[_leg_step(f"Continue {d:.1f} km towards your destination", start, end, 50.0)],
        distance_km=d,
        duration_sec=d / 50.0 * 3600,
    )


def _route_via(start: GeoPoint, via: GeoPoint, end: GeoPoint) -> RawRoute:
    first = _leg_step(f"Take the detour for {distance_km(start, via):.1f} km", start, via, 45.0)
    second = _leg_step(f"Continue {distance_km(via, end):.1f} km towards your destination", via, end, 45.0)
    d = first.distance_km + second.distance_km
    return RawRoute(
        points=[start, via, end],
        steps=[first, second],
        distance_km=d,
        duration_sec=d / 45.0 * 3600,
    )


class MockRoutingOracle(RoutingOracle):
    """
    Deterministic fake routes so the pipeline runs end-to-end without OSRM:
    a direct line plus detours north and south of the midpoint.
    """

    def __init__(self, detour_deg: float = 0.01, fail_with: Optional[Exception] = None) -> None:
        self.detour_deg = detour_deg
        self.fail_with = fail_with
        self.calls: List[tuple] = []

    async def get_routes(self, origin: GeoPoint, destination: GeoPoint, profile: str = "driving") -> List[RawRoute]:
        self.calls.append((origin, destination, profile))
        if self.fail_with is not None:
            raise self.fail_with

        mid_lat = (origin.lat + destination.lat) / 2
        mid_lng = (origin.lng + destination.lng) / 2
        north = GeoPoint(lat=mid_lat + self.detour_deg, lng=mid_lng)
        south = GeoPoint(lat=mid_lat - self.detour_deg, lng=mid_lng)
        return [
            _direct_route(origin, destination),
            _route_via(origin, north, destination),
            _route_via(origin, south, destination),
        ]


class SimulatedPositionSource(PositionSource):
    """Position stream driven by hand: push() a fix, fail() an error."""

    def __init__(self) -> None:
        self._watchers: Dict[int, tuple] = {}
        self._ids = itertools.count(1)

    def watch(self, callback: PositionCallback, on_error: Optional[PositionErrorCallback] = None) -> Any:
        handle = next(self._ids)
        self._watchers[handle] = (callback, on_error)
        return handle

    def unsubscribe(self, handle: Any) -> None:
        self._watchers.pop(handle, None)

    @property
    def watcher_count(self) -> int:
        return len(self._watchers)

    def push(self, sample: PositionSample) -> None:
        for callback, _ in list(self._watchers.values()):
            callback(sample)

    def fail(self, error: PositionError) -> None:
        for _, on_error in list(self._watchers.values()):
            if on_error is not None:
                on_error(error)
