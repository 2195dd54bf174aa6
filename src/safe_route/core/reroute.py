from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from safe_route.contracts.notification_contract import Notification, NotificationKind, Urgency
from safe_route.core.events import EventEmitter
from safe_route.core.geo import min_distance_to_polyline_km
from safe_route.core.models import Alert, AlertSeverity, RouteCandidate

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RerouteSignal:
    alert: Alert
    distance_km: float


class RerouteEvaluator:
    """
    Flags critical alerts that land on (or next to) the active route.

    Advisory only: it never recomputes routes, it records the offending
    alerts and emits REROUTE_NEEDED (once per alert id until reset()) for the
    presentation layer to act on.
    """

    def __init__(self, threshold_km: float = 0.3) -> None:
        self.threshold_km = threshold_km
        self.events: EventEmitter[Notification] = EventEmitter()
        self._alerts_near_route: List[Alert] = []

    @property
    def alerts_near_route(self) -> List[Alert]:
        return list(self._alerts_near_route)

    @property
    def needs_reroute(self) -> bool:
        return bool(self._alerts_near_route)

    def reset(self) -> None:
        self._alerts_near_route = []

    def evaluate(self, route: Optional[RouteCandidate], alert: Alert) -> Optional[RerouteSignal]:
        """Check one newly created alert against the active route."""
        if route is None or not route.points:
            return None
        if alert.severity != AlertSeverity.CRITICA:
            return None

        d = min_distance_to_polyline_km(alert.position, route.points)
        if not d <= self.threshold_km:
            return None

        signal = RerouteSignal(alert=alert, distance_km=d)
        if not self._record(alert):
            log.debug("Critical alert %s already flagged on route %s", alert.id, route.id)
            return signal
        log.info("Critical alert %s is %.0fm from route %s", alert.id, d * 1000, route.id)
        self.events.emit(
            Notification(
                kind=NotificationKind.REROUTE_NEEDED,
                payload={"alert": alert, "alert_id": alert.id, "distance_km": d, "route_id": route.id},
                title="Alert on your route",
                body=f"{alert.title} reported {d * 1000:.0f} m from your route. Consider rerouting.",
                urgency=Urgency.CRITICAL,
                vibrate=True,
                dismissible=False,
            )
        )
        return signal

    def evaluate_route(self, route: Optional[RouteCandidate]) -> List[Alert]:
        """Record the critical alerts already known to lie on *route*."""
        if route is None:
            return []
        critical = [a for a in route.alerts_on_route if a.severity == AlertSeverity.CRITICA]
        for alert in critical:
            self._record(alert)
        return critical

    def _record(self, alert: Alert) -> bool:
        """Add *alert* unless its id is already flagged. True when newly added."""
        if any(a.id == alert.id for a in self._alerts_near_route):
            return False
        self._alerts_near_route.append(alert)
        return True
