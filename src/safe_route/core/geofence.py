"""Proximity alerting: circular zones around alerts, enter/exit with hysteresis."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Union

from safe_route.contracts.notification_contract import (
    Notification,
    NotificationKind,
    PositionError,
    Urgency,
)
from safe_route.core.events import EventEmitter
from safe_route.core.geo import distance_m
from safe_route.core.models import Alert, AlertSeverity, GeoPoint, PositionSample
from safe_route.providers.base import PositionSource

log = logging.getLogger(__name__)

ZONE_RADIUS_M: Dict[AlertSeverity, float] = {
    AlertSeverity.CRITICA: 1000.0,
    AlertSeverity.ALTA: 750.0,
    AlertSeverity.MEDIA: 500.0,
    AlertSeverity.BAJA: 250.0,
}
DEFAULT_ZONE_RADIUS_M = 500.0


def zone_radius_m(
    severity: AlertSeverity,
    radii: Optional[Mapping[AlertSeverity, float]] = None,
    default: float = DEFAULT_ZONE_RADIUS_M,
) -> float:
    return (radii or ZONE_RADIUS_M).get(severity, default)


@dataclass(frozen=True)
class GeofenceZone:
    alert_id: Union[int, str]
    center: GeoPoint
    radius_m: float
    alert: Alert


@dataclass(frozen=True)
class NearbyAlert:
    alert: Alert
    distance_m: float


def _enter_notification(zone: GeofenceZone, distance: float) -> Notification:
    alert = zone.alert
    payload = {
        "action": "enter",
        "alert_id": zone.alert_id,
        "alert": alert,
        "distance_m": distance,
        "radius_m": zone.radius_m,
    }
    if alert.severity == AlertSeverity.CRITICA:
        return Notification(
            kind=NotificationKind.ENTER,
            payload=payload,
            title="CRITICAL ZONE",
            body=f"Critical alert: {alert.type.value}. {alert.description or alert.title}. Extreme caution!",
            urgency=Urgency.CRITICAL,
            speak=True,
            vibrate=True,
            dismissible=False,
        )
    if alert.severity == AlertSeverity.ALTA:
        return Notification(
            kind=NotificationKind.ENTER,
            payload=payload,
            title="Important alert",
            body=f"Risk zone: {alert.title}. Drive carefully.",
            urgency=Urgency.HIGH,
        )
    body = f"{alert.title} near your location." if alert.severity == AlertSeverity.MEDIA else f"{alert.title} in the area."
    return Notification(
        kind=NotificationKind.ENTER,
        payload=payload,
        title="Notice" if alert.severity == AlertSeverity.MEDIA else "Information",
        body=body,
        urgency=Urgency.INFO,
    )


def _exit_notification(zone: GeofenceZone, distance: float) -> Notification:
    return Notification(
        kind=NotificationKind.EXIT,
        payload={
            "action": "exit",
            "alert_id": zone.alert_id,
            "alert": zone.alert,
            "distance_m": distance,
            "radius_m": zone.radius_m,
        },
        title="Zone cleared",
        body=f"You have left the {zone.alert.title} zone.",
        urgency=Urgency.MILD,
    )


class GeofenceMonitor:
    """
    Watches the position stream against every alert zone.

    Runs independently of navigation. ``entered_zone_ids`` is the hysteresis
    memory: a zone only produces ENTER when it was not already entered, and
    EXIT when it was, so lingering on a boundary does not repeat notifications.
    """

    def __init__(
        self,
        position_source: Optional[PositionSource] = None,
        radii: Optional[Mapping[AlertSeverity, float]] = None,
        default_radius_m: float = DEFAULT_ZONE_RADIUS_M,
        prune_stale_zones: bool = False,
    ) -> None:
        self._source = position_source
        self._radii = dict(radii or ZONE_RADIUS_M)
        self._default_radius_m = default_radius_m
        self._prune_stale = prune_stale_zones
        self.events: EventEmitter[Notification] = EventEmitter()

        self._zones: List[GeofenceZone] = []
        self._entered: Set[Union[int, str]] = set()
        self._position: Optional[GeoPoint] = None
        self._handle: Any = None
        self._monitoring = False

    # ------------------------------------------------------------------

    def _build_zones(self, alerts: Sequence[Alert]) -> List[GeofenceZone]:
        return [
            GeofenceZone(
                alert_id=a.id,
                center=a.position,
                radius_m=zone_radius_m(a.severity, self._radii, self._default_radius_m),
                alert=a,
            )
            for a in alerts
        ]

    def start(self, alerts: Sequence[Alert]) -> bool:
        if self._monitoring:
            log.info("Geofencing already running")
            return True

        self._zones = self._build_zones(alerts)
        self._entered = set()
        self._monitoring = True
        if self._source is not None:
            self._handle = self._source.watch(self.on_position, self.on_position_error)
        log.info("Geofencing started with %d zones", len(self._zones))
        return True

    def stop(self) -> None:
        if self._source is not None and self._handle is not None:
            self._source.unsubscribe(self._handle)
        self._handle = None
        self._monitoring = False
        self._entered.clear()
        self._position = None
        log.info("Geofencing stopped")

    def update_alerts(self, alerts: Sequence[Alert]) -> List[Notification]:
        if not self._monitoring:
            return []

        log.info("Updating geofence zones: %d alerts", len(alerts))
        self._zones = self._build_zones(alerts)
        if self._prune_stale:
            live = {z.alert_id for z in self._zones}
            self._entered &= live

        if self._position is not None:
            return self._evaluate(self._position)
        return []

    # ------------------------------------------------------------------
    # Position stream callbacks
    # ------------------------------------------------------------------

    def on_position(self, sample: PositionSample) -> List[Notification]:
        if not self._monitoring:
            return []
        self._position = sample.point
        return self._evaluate(self._position)

    def on_position_error(self, error: PositionError) -> None:
        log.warning("Position error during geofencing: %s %s", error.code, error.message)
        self.events.emit(
            Notification(
                kind=NotificationKind.STATUS,
                payload={"source": "geofencing", "code": error.code, "message": error.message},
                title="Location unavailable",
                body="Could not get your location for proximity alerts.",
                urgency=Urgency.MILD,
            )
        )

    def _evaluate(self, p: GeoPoint) -> List[Notification]:
        out: List[Notification] = []
        for zone in self._zones:
            d = distance_m(p, zone.center)
            was_inside = zone.alert_id in self._entered
            is_inside = d <= zone.radius_m

            if is_inside and not was_inside:
                self._entered.add(zone.alert_id)
                log.info("ENTERED zone %s: %s (%.0fm)", zone.alert_id, zone.alert.title, zone.radius_m)
                out.append(_enter_notification(zone, d))
            elif was_inside and not is_inside:
                self._entered.discard(zone.alert_id)
                log.info("EXITED zone %s: %s", zone.alert_id, zone.alert.title)
                out.append(_exit_notification(zone, d))

        for n in out:
            self.events.emit(n)
        return out

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_monitoring(self) -> bool:
        return self._monitoring

    @property
    def last_position(self) -> Optional[GeoPoint]:
        return self._position

    @property
    def zones(self) -> List[GeofenceZone]:
        return list(self._zones)

    @property
    def entered_zone_ids(self) -> Set[Union[int, str]]:
        return set(self._entered)

    def entered_zones(self) -> List[Alert]:
        return [z.alert for z in self._zones if z.alert_id in self._entered]

    def nearby_alerts(self, radius_m: float = 2000.0) -> List[NearbyAlert]:
        if self._position is None:
            return []
        found = [NearbyAlert(alert=z.alert, distance_m=distance_m(self._position, z.center)) for z in self._zones]
        return sorted((n for n in found if n.distance_m <= radius_m), key=lambda n: n.distance_m)
