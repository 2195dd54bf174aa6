from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

from safe_route.contracts.notification_contract import Notification, PositionError
from safe_route.core.models import Alert, GeoPoint, PositionSample, RawRoute

PositionCallback = Callable[[PositionSample], None]
PositionErrorCallback = Callable[[PositionError], None]
AlertCallback = Callable[[Alert], None]


class PositionSource(ABC):
    """Stream of GPS fixes delivered through callbacks."""

    @abstractmethod
    def watch(self, callback: PositionCallback, on_error: Optional[PositionErrorCallback] = None) -> Any:
        """Start delivering fixes to *callback*; returns a handle for unsubscribe()."""
        raise NotImplementedError

    @abstractmethod
    def unsubscribe(self, handle: Any) -> None:
        raise NotImplementedError


class RoutingOracle(ABC):
    """Turns two coordinates into one or more street-following paths."""

    @abstractmethod
    async def get_routes(self, origin: GeoPoint, destination: GeoPoint, profile: str = "driving") -> List[RawRoute]:
        raise NotImplementedError


class AlertSource(ABC):
    """Current hazard snapshot plus a push channel for newly created alerts."""

    @abstractmethod
    def get_active_alerts(self) -> List[Alert]:
        raise NotImplementedError

    @abstractmethod
    def subscribe(self, callback: AlertCallback) -> Callable[[], None]:
        raise NotImplementedError


class NotificationSink(ABC):
    """Delivers notifications; rendering, sound and vibration live behind this."""

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        raise NotImplementedError
