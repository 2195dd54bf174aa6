"""Navigation engine facade.

Owns no scoring or geometry logic of its own: it wires the position source,
alert source, routing oracle and notification sink to the specialist
components and exposes a read-only NavigationSession for the UI.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple, Union

from safe_route.config import Settings
from safe_route.contracts.notification_contract import (
    Notification,
    NotificationKind,
    PositionError,
    Urgency,
)
from safe_route.core.events import EventEmitter
from safe_route.core.geofence import GeofenceMonitor, NearbyAlert
from safe_route.core.models import Alert, GeoPoint, PositionSample, RouteCandidate
from safe_route.core.progress import NavigationError, NavigationState, ProgressTracker, ProgressUpdate
from safe_route.core.reroute import RerouteEvaluator, RerouteSignal
from safe_route.core.scoring import RiskScorer
from safe_route.core.selector import RoutePreference, select_routes
from safe_route.providers.base import AlertSource, NotificationSink, PositionSource, RoutingOracle

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavigationSession:
    is_navigating: bool
    state: NavigationState
    current_location: Optional[GeoPoint]
    destination: Optional[GeoPoint]
    routes: Tuple[RouteCandidate, ...]
    selected_route: Optional[RouteCandidate]
    current_step_index: int
    route_history: Tuple[GeoPoint, ...]
    alerts_near_route: Tuple[Alert, ...]
    needs_reroute: bool
    speed_kmh: Optional[float] = None
    heading_deg: Optional[float] = None


class NavigationEngine:
    """
    Typical lifecycle:
        engine = NavigationEngine(oracle, alert_feed, gps, sink)
        engine.enable_proximity_alerts()          # runs with or without navigation
        engine.update_location(first_fix)
        await engine.request_routes(destination)
        engine.start_navigation()
        ...                                       # fixes arrive through the position source
        engine.stop_navigation()
    """

    def __init__(
        self,
        routing: RoutingOracle,
        alerts: AlertSource,
        positions: PositionSource,
        sink: NotificationSink,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or Settings()
        s = self.settings

        self.routing = routing
        self.alerts = alerts
        self.positions = positions
        self.sink = sink

        self.scorer = RiskScorer(
            influence_radius_km=s.influence_radius_km,
            on_route_radius_km=s.on_route_radius_km,
            weights=s.severity_weights,
        )
        self.tracker = ProgressTracker(
            announce_far_km=s.announce_far_km,
            announce_near_km=s.announce_near_km,
            step_arrival_km=s.step_arrival_km,
            voice_guidance=s.voice_guidance,
        )
        self.geofence = GeofenceMonitor(
            positions,
            radii=s.zone_radii_m,
            default_radius_m=s.default_radius_m,
            prune_stale_zones=s.prune_stale_zones,
        )
        self.reroute = RerouteEvaluator(threshold_km=s.reroute_threshold_km)

        # status notices raised by the engine itself
        self.events: EventEmitter[Notification] = EventEmitter()
        for emitter in (self.tracker.events, self.geofence.events, self.reroute.events, self.events):
            emitter.subscribe(sink.notify)

        self._current: Optional[PositionSample] = None
        self._destination: Optional[GeoPoint] = None
        self._routes: List[RouteCandidate] = []
        self._selected: Optional[RouteCandidate] = None

        self._nav_handle: Any = None
        self._nav_alert_unsub: Optional[Callable[[], None]] = None
        self._zone_alert_unsub: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------
    # Location & destination
    # ------------------------------------------------------------------

    def update_location(self, sample: PositionSample) -> None:
        """Record a one-off fix (e.g. getCurrentPosition before navigation starts)."""
        self._current = sample

    def set_destination(self, destination: Optional[GeoPoint]) -> None:
        if self.is_navigating:
            log.warning("Ignoring destination change while navigating")
            return
        if destination != self._destination:
            self._routes = []
            self._selected = None
            self.reroute.reset()
        self._destination = destination

    # ------------------------------------------------------------------
    # Route candidates
    # ------------------------------------------------------------------

    async def request_routes(
        self,
        destination: GeoPoint,
        origin: Optional[GeoPoint] = None,
        preference: Union[RoutePreference, str, None] = None,
        profile: Optional[str] = None,
    ) -> List[RouteCandidate]:
        """
        Ask the routing oracle for candidates, score them against the current
        alert snapshot and rank them. Failures give an empty list; a result
        whose destination changed while the request was in flight is dropped.
        """
        if origin is None and self._current is not None:
            origin = self._current.point
        if origin is None:
            log.warning("No origin and no position fix; cannot request routes")
            return []

        self.set_destination(destination)
        profile = profile or self.settings.routing_profile

        try:
            raws = await self.routing.get_routes(origin, destination, profile)
        except Exception as exc:
            log.warning("Route calculation failed: %s: %s", type(exc).__name__, exc)
            if self._destination == destination and not self.is_navigating:
                self._routes = []
                self._selected = None
                self.reroute.reset()
            return []

        if self._destination != destination:
            log.info("Discarding stale routes for %s (destination changed)", destination)
            return []

        alerts = self.alerts.get_active_alerts()
        candidates = [
            self.scorer.score_candidate(
                raw,
                alerts,
                route_id=f"route-{i}",
                name="Main route" if i == 0 else f"Alternative {i}",
            )
            for i, raw in enumerate(raws)
        ]
        ranked = select_routes(
            candidates,
            preference or self.settings.route_preference,
            alerts=alerts,
            avoid_critical_alerts=self.settings.avoid_critical_alerts,
            critical_avoidance_km=self.settings.critical_avoidance_km,
        )
        self._routes = ranked
        log.info("Ranked %d route candidate(s) for %s", len(ranked), destination)

        if not self.is_navigating:
            self._selected = ranked[0] if ranked else None
            # flags describe the current snapshot, not every snapshot seen so far
            self.reroute.reset()
            if self.settings.auto_reroute:
                self.reroute.evaluate_route(self._selected)
        return ranked

    def select_route(self, route_id: str) -> RouteCandidate:
        if self.is_navigating:
            raise NavigationError("Stop navigation before choosing another route.")
        for route in self._routes:
            if route.id == route_id:
                self._selected = route
                self.reroute.reset()
                if self.settings.auto_reroute:
                    self.reroute.evaluate_route(route)
                return route
        raise KeyError(route_id)

    # ------------------------------------------------------------------
    # Navigation control
    # ------------------------------------------------------------------

    def start_navigation(self) -> Tuple[bool, str]:
        """
        Begin tracking the selected route.

        Returns:
            (success, message)
        """
        if self.is_navigating:
            return True, "Already navigating."
        if self._selected is None:
            return False, "No route selected."
        try:
            self.tracker.start(self._selected, self._destination, self._current)
        except NavigationError as exc:
            log.warning("Could not start navigation: %s", exc)
            return False, str(exc)

        self._nav_handle = self.positions.watch(self._on_nav_position, self._on_nav_position_error)
        self._nav_alert_unsub = self.alerts.subscribe(self.handle_new_alert)
        return True, f"Route ready. {len(self._selected.steps)} steps."

    def stop_navigation(self) -> None:
        """End the session: unsubscribe first, then clear route and progress state."""
        if self._nav_handle is not None:
            self.positions.unsubscribe(self._nav_handle)
            self._nav_handle = None
        if self._nav_alert_unsub is not None:
            self._nav_alert_unsub()
            self._nav_alert_unsub = None

        self.tracker.stop()
        self.reroute.reset()
        self._routes = []
        self._selected = None
        self._destination = None

    def _on_nav_position(self, sample: PositionSample) -> ProgressUpdate:
        self._current = sample
        update = self.tracker.update(sample)
        if update.state == NavigationState.ARRIVED:
            log.info("Session finished on arrival")
            self.stop_navigation()
        return update

    def _on_nav_position_error(self, error: PositionError) -> None:
        log.warning("Position error during navigation: %s %s", error.code, error.message)
        self.events.emit(
            Notification(
                kind=NotificationKind.STATUS,
                payload={"source": "navigation", "code": error.code, "message": error.message},
                title="Location unavailable",
                body="Could not get your location.",
                urgency=Urgency.MILD,
            )
        )

    def handle_new_alert(self, alert: Alert) -> Optional[RerouteSignal]:
        if not self.is_navigating:
            return None
        return self.reroute.evaluate(self._selected, alert)

    # ------------------------------------------------------------------
    # Proximity alerting (independent of navigation)
    # ------------------------------------------------------------------

    def enable_proximity_alerts(self) -> bool:
        if self.geofence.is_monitoring:
            return True
        started = self.geofence.start(self.alerts.get_active_alerts())
        self._zone_alert_unsub = self.alerts.subscribe(lambda _alert: self.refresh_alerts())
        return started

    def disable_proximity_alerts(self) -> None:
        if self._zone_alert_unsub is not None:
            self._zone_alert_unsub()
            self._zone_alert_unsub = None
        self.geofence.stop()

    def refresh_alerts(self) -> List[Notification]:
        """Re-read the alert snapshot into the geofence zones."""
        return self.geofence.update_alerts(self.alerts.get_active_alerts())

    def entered_zones(self) -> List[Alert]:
        return self.geofence.entered_zones()

    def nearby_alerts(self, radius_m: Optional[float] = None) -> List[NearbyAlert]:
        return self.geofence.nearby_alerts(self.settings.nearby_radius_m if radius_m is None else radius_m)

    # ------------------------------------------------------------------
    # Convenience read-only properties
    # ------------------------------------------------------------------

    @property
    def is_navigating(self) -> bool:
        return self.tracker.state == NavigationState.NAVIGATING

    @property
    def routes(self) -> List[RouteCandidate]:
        return list(self._routes)

    @property
    def selected_route(self) -> Optional[RouteCandidate]:
        return self._selected

    @property
    def alerts_near_route(self) -> List[Alert]:
        return self.reroute.alerts_near_route

    @property
    def needs_reroute(self) -> bool:
        return self.reroute.needs_reroute

    @property
    def session(self) -> NavigationSession:
        return NavigationSession(
            is_navigating=self.is_navigating,
            state=self.tracker.state,
            current_location=self._current.point if self._current else None,
            destination=self._destination,
            routes=tuple(self._routes),
            selected_route=self._selected,
            current_step_index=self.tracker.step_index,
            route_history=tuple(self.tracker.history),
            alerts_near_route=tuple(self.reroute.alerts_near_route),
            needs_reroute=self.reroute.needs_reroute,
            speed_kmh=self.tracker.speed_kmh,
            heading_deg=self.tracker.heading_deg,
        )
