from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Mapping, Optional, Sequence

from safe_route.core.geo import distance_km
from safe_route.core.models import Alert, AlertSeverity, GeoPoint, RawRoute, RouteCandidate


DEFAULT_SEVERITY_WEIGHTS: Dict[AlertSeverity, float] = {
    AlertSeverity.CRITICA: 10.0,
    AlertSeverity.ALTA: 5.0,
    AlertSeverity.MEDIA: 2.0,
    AlertSeverity.BAJA: 1.0,
}

# Trip-planning screens weigh mid severities a little heavier.
PLANNING_SEVERITY_WEIGHTS: Dict[AlertSeverity, float] = {
    AlertSeverity.CRITICA: 10.0,
    AlertSeverity.ALTA: 6.0,
    AlertSeverity.MEDIA: 3.0,
    AlertSeverity.BAJA: 1.0,
}

_SEVERITY_ORDER = (AlertSeverity.CRITICA, AlertSeverity.ALTA, AlertSeverity.MEDIA, AlertSeverity.BAJA)


def validate_weights(weights: Mapping[AlertSeverity, float]) -> Dict[AlertSeverity, float]:
    """Return a copy of *weights*, raising if severities are not strictly ordered."""
    missing = [s.value for s in _SEVERITY_ORDER if s not in weights]
    if missing:
        raise ValueError(f"Missing severity weights: {', '.join(missing)}")
    ordered = [float(weights[s]) for s in _SEVERITY_ORDER]
    if not all(a > b for a, b in zip(ordered, ordered[1:])):
        raise ValueError(f"Severity weights must be strictly decreasing CRITICA..BAJA, got {ordered}")
    if ordered[-1] < 0:
        raise ValueError("Severity weights must be non-negative")
    return dict(zip(_SEVERITY_ORDER, ordered))


@dataclass(frozen=True)
class RiskResult:
    risk_score: float
    alerts_on_route: List[Alert] = field(default_factory=list)


def score_route(
    points: Sequence[GeoPoint],
    alerts: Sequence[Alert],
    influence_radius_km: float = 0.5,
    on_route_radius_km: Optional[float] = None,
    weights: Optional[Mapping[AlertSeverity, float]] = None,
) -> RiskResult:
    """
    Accumulate proximity-weighted alert risk over every route vertex.

    Each (vertex, alert) pair closer than *influence_radius_km* adds
    ``weight * (1 - d / influence_radius_km)``. Contributions are additive and
    uncapped, so dense geometry near a hazard scores higher than sparse geometry.

    ``alerts_on_route`` lists each alert once (first-encounter order) when any
    vertex lies within *on_route_radius_km* (defaults to the influence radius).
    """
    w = validate_weights(weights) if weights is not None else DEFAULT_SEVERITY_WEIGHTS
    on_route_km = influence_radius_km if on_route_radius_km is None else on_route_radius_km

    risk = 0.0
    on_route: Dict[object, Alert] = {}

    for p in points:
        for alert in alerts:
            d = distance_km(p, alert.position)
            if d < influence_radius_km:
                risk += w.get(alert.severity, 1.0) * (1.0 - d / influence_radius_km)
            if d < on_route_km and alert.id not in on_route:
                on_route[alert.id] = alert

    return RiskResult(risk_score=risk, alerts_on_route=list(on_route.values()))


def risk_label(score: float) -> Literal["low", "medium", "high", "very_high"]:
    if score < 5:
        return "low"
    if score < 10:
        return "medium"
    if score < 20:
        return "high"
    return "very_high"


@dataclass(frozen=True)
class RiskScorer:
    """Scoring parameters bundled so callers do not thread them around."""

    influence_radius_km: float = 0.5
    on_route_radius_km: Optional[float] = None
    weights: Mapping[AlertSeverity, float] = field(default_factory=lambda: dict(DEFAULT_SEVERITY_WEIGHTS))

    def __post_init__(self) -> None:
        validate_weights(self.weights)

    def score(self, points: Sequence[GeoPoint], alerts: Sequence[Alert]) -> RiskResult:
        return score_route(
            points,
            alerts,
            influence_radius_km=self.influence_radius_km,
            on_route_radius_km=self.on_route_radius_km,
            weights=self.weights,
        )

    def score_candidate(
        self,
        raw: RawRoute,
        alerts: Sequence[Alert],
        route_id: str,
        name: str = "",
    ) -> RouteCandidate:
        result = self.score(raw.points, alerts)
        return RouteCandidate(
            id=route_id,
            name=name,
            points=list(raw.points),
            steps=list(raw.steps),
            distance_km=raw.distance_km,
            duration_sec=raw.duration_sec,
            risk_score=result.risk_score,
            alerts_on_route=result.alerts_on_route,
            is_recommended=False,
        )
