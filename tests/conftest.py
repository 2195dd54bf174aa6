from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import pytest

from safe_route.core.models import Alert, AlertSeverity, GeoPoint, PositionSample, RouteCandidate, Step
from safe_route.providers.alerts import InMemoryAlertFeed
from safe_route.providers.mock import SimulatedPositionSource
from safe_route.providers.notify import CollectingNotificationSink


def _alert(alert_id, severity: AlertSeverity, lat: float, lng: float, **kw) -> Alert:
    return Alert(
        id=alert_id,
        severity=severity,
        position=GeoPoint(lat=lat, lng=lng),
        title=kw.pop("title", f"alert {alert_id}"),
        **kw,
    )


def _route(
    route_id: str,
    coords: Sequence[Tuple[float, float]],
    steps: Optional[List[Step]] = None,
    distance_km: float = 1.0,
    duration_sec: float = 60.0,
    risk_score: float = 0.0,
) -> RouteCandidate:
    points = [GeoPoint(lat=lat, lng=lng) for lat, lng in coords]
    if steps is None:
        steps = [Step(point=points[-1], instruction="Continue to destination")] if points else []
    return RouteCandidate(
        id=route_id,
        points=points,
        steps=steps,
        distance_km=distance_km,
        duration_sec=duration_sec,
        risk_score=risk_score,
    )


def _fix(lat: float, lng: float, t: float = 0.0, **kw) -> PositionSample:
    return PositionSample(lat=lat, lng=lng, timestamp=t, **kw)


@pytest.fixture
def make_alert():
    return _alert


@pytest.fixture
def make_route():
    return _route


@pytest.fixture
def make_fix():
    return _fix


@pytest.fixture
def sink() -> CollectingNotificationSink:
    return CollectingNotificationSink()


@pytest.fixture
def gps() -> SimulatedPositionSource:
    return SimulatedPositionSource()


@pytest.fixture
def feed() -> InMemoryAlertFeed:
    return InMemoryAlertFeed()
