# progress.py
# State machine that tracks a user's position against the selected route.
# Call start() once, then update() on every position fix.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from safe_route.contracts.notification_contract import Notification, NotificationKind, Urgency
from safe_route.core.events import EventEmitter
from safe_route.core.geo import bearing_deg, distance_km
from safe_route.core.models import GeoPoint, PositionSample, RouteCandidate, Step

log = logging.getLogger(__name__)

ARRIVAL_TEXT = "You have reached your destination."


class NavigationError(RuntimeError):
    """Navigation could not be started."""


class NavigationState(str, Enum):
    IDLE = "idle"
    NAVIGATING = "navigating"
    ARRIVED = "arrived"


@dataclass
class ProgressUpdate:
    """Returned by ProgressTracker.update() for every position fix."""

    state: NavigationState
    step_index: int
    distance_to_step_km: Optional[float] = None
    speed_kmh: Optional[float] = None
    heading_deg: Optional[float] = None
    notifications: List[Notification] = field(default_factory=list)


class ProgressTracker:
    """
    Turn-by-turn progress for a single navigation session.

    Usage:
        tracker = ProgressTracker()
        tracker.start(route, destination, first_fix)

        # Inside the position callback:
        update = tracker.update(sample)

    The step index moves forward by at most one per fix, even when the
    position jumps past several steps at once.
    """

    def __init__(
        self,
        announce_far_km: float = 0.3,
        announce_near_km: float = 0.05,
        step_arrival_km: float = 0.02,
        voice_guidance: bool = False,
    ) -> None:
        self.announce_far_km = announce_far_km
        self.announce_near_km = announce_near_km
        self.step_arrival_km = step_arrival_km
        self.voice_guidance = voice_guidance
        self.events: EventEmitter[Notification] = EventEmitter()
        self._reset()

    def _reset(self) -> None:
        self._state = NavigationState.IDLE
        self._route: Optional[RouteCandidate] = None
        self._destination: Optional[GeoPoint] = None
        self._step_index = 0
        self._far_announced_at: Optional[int] = None
        self._near_announced_at: Optional[int] = None
        self._history: List[GeoPoint] = []
        self._last_sample: Optional[PositionSample] = None
        self._speed_kmh: Optional[float] = None
        self._heading_deg: Optional[float] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(
        self,
        route: RouteCandidate,
        destination: Optional[GeoPoint],
        fix: Optional[PositionSample],
    ) -> Notification:
        if destination is None:
            raise NavigationError("A destination is required to start navigation.")
        if fix is None:
            raise NavigationError("No position fix yet; cannot start navigation.")
        if not route.steps:
            raise NavigationError(f"Route {route.id!r} has no steps.")

        self._reset()
        self._state = NavigationState.NAVIGATING
        self._route = route
        self._destination = destination
        self._history.append(fix.point)
        self._last_sample = fix

        log.info("Navigation started on %s (%d steps)", route.id, len(route.steps))
        first = route.steps[0]
        return self._announce(
            f"Starting navigation. {first.instruction}",
            step_index=0,
            trigger="start",
        )

    def stop(self) -> None:
        """End the session and return to IDLE."""
        if self._state != NavigationState.IDLE:
            log.info("Navigation stopped (%s)", self._state.value)
        self._reset()

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def route(self) -> Optional[RouteCandidate]:
        return self._route

    @property
    def destination(self) -> Optional[GeoPoint]:
        return self._destination

    @property
    def step_index(self) -> int:
        return self._step_index

    @property
    def current_step(self) -> Optional[Step]:
        if self._route and 0 <= self._step_index < len(self._route.steps):
            return self._route.steps[self._step_index]
        return None

    @property
    def history(self) -> List[GeoPoint]:
        return list(self._history)

    @property
    def speed_kmh(self) -> Optional[float]:
        return self._speed_kmh

    @property
    def heading_deg(self) -> Optional[float]:
        return self._heading_deg

    # ------------------------------------------------------------------
    # Core method: call on every position fix
    # ------------------------------------------------------------------

    def update(self, sample: PositionSample) -> ProgressUpdate:
        if self._state != NavigationState.NAVIGATING or self._route is None:
            return ProgressUpdate(state=self._state, step_index=self._step_index)

        p = sample.point
        self._history.append(p)
        self._update_telemetry(sample)
        self._last_sample = sample

        steps = self._route.steps
        step = steps[self._step_index]
        d = distance_km(p, step.point)
        out: List[Notification] = []

        if d <= self.step_arrival_km:
            if self._step_index + 1 < len(steps):
                self._step_index += 1
                self._far_announced_at = None
                self._near_announced_at = None
                nxt = steps[self._step_index]
                out.append(self._announce(nxt.instruction, self._step_index, "step"))
            else:
                self._step_index = len(steps)
                self._state = NavigationState.ARRIVED
                log.info("Arrived at destination")
                out.append(self._announce(ARRIVAL_TEXT, self._step_index, "arrival"))
        elif d <= self.announce_near_km:
            if self._near_announced_at != self._step_index:
                self._near_announced_at = self._step_index
                out.append(self._announce(f"In 50 m: {step.instruction}", self._step_index, "50m"))
        elif d <= self.announce_far_km:
            if self._far_announced_at != self._step_index:
                self._far_announced_at = self._step_index
                out.append(self._announce(f"In 300 m: {step.instruction}", self._step_index, "300m"))

        log.debug("fix %.5f,%.5f step=%d d=%.3fkm", p.lat, p.lng, self._step_index, d)
        return ProgressUpdate(
            state=self._state,
            step_index=self._step_index,
            distance_to_step_km=d,
            speed_kmh=self._speed_kmh,
            heading_deg=self._heading_deg,
            notifications=out,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _update_telemetry(self, sample: PositionSample) -> None:
        prev = self._last_sample
        speed = None
        if prev is not None and sample.timestamp > prev.timestamp:
            dt_s = sample.timestamp - prev.timestamp
            speed = distance_km(prev.point, sample.point) / dt_s * 3600.0
        elif sample.speed is not None:
            speed = sample.speed * 3.6
        self._speed_kmh = speed

        if sample.heading is not None:
            self._heading_deg = sample.heading
        elif prev is not None and prev.point != sample.point:
            self._heading_deg = bearing_deg(prev.point, sample.point)

    def _announce(self, text: str, step_index: int, trigger: str) -> Notification:
        n = Notification(
            kind=NotificationKind.INSTRUCTION,
            payload={"step_index": step_index, "trigger": trigger, "instruction": text},
            title="Navigation",
            body=text,
            urgency=Urgency.INFO,
            speak=self.voice_guidance,
        )
        self.events.emit(n)
        return n
