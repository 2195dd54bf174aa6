"""Route ordering by user preference, with optional critical-alert avoidance."""
from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional, Sequence, Union

from safe_route.core.geo import min_distance_to_polyline_km
from safe_route.core.models import Alert, AlertSeverity, RouteCandidate

log = logging.getLogger(__name__)


class RoutePreference(str, Enum):
    FASTEST = "fastest"
    SHORTEST = "shortest"
    SAFEST = "safest"


def _sort_key(preference: RoutePreference):
    if preference == RoutePreference.FASTEST:
        return lambda c: c.duration_sec
    if preference == RoutePreference.SHORTEST:
        return lambda c: c.distance_km
    return lambda c: c.risk_score


def is_degenerate(candidate: RouteCandidate) -> bool:
    return not candidate.points or not candidate.steps


def passes_near_critical(candidate: RouteCandidate, alerts: Sequence[Alert], radius_km: float) -> bool:
    for alert in alerts:
        if alert.severity != AlertSeverity.CRITICA:
            continue
        if min_distance_to_polyline_km(alert.position, candidate.points) <= radius_km:
            return True
    return False


def select_routes(
    candidates: Sequence[RouteCandidate],
    preference: Union[RoutePreference, str] = RoutePreference.SAFEST,
    *,
    alerts: Optional[Sequence[Alert]] = None,
    avoid_critical_alerts: bool = False,
    critical_avoidance_km: float = 0.3,
) -> List[RouteCandidate]:
    """
    Order *candidates* for the route picker and flag the first as recommended.

    Returns copies; the input candidates are left untouched. Equal keys keep
    their input order. Candidates passing a CRITICA alert are dropped when
    *avoid_critical_alerts* is set, unless every candidate would be dropped.
    """
    pref = RoutePreference(preference)

    pool = [c for c in candidates if not is_degenerate(c)]
    if len(pool) != len(candidates):
        log.warning("Rejected %d degenerate route candidate(s)", len(candidates) - len(pool))

    if avoid_critical_alerts and alerts:
        safe = [c for c in pool if not passes_near_critical(c, alerts, critical_avoidance_km)]
        if safe:
            pool = safe
        elif pool:
            log.info("Every candidate passes a critical alert; keeping the unfiltered pool")

    ordered = sorted(pool, key=_sort_key(pref))
    return [c.model_copy(update={"is_recommended": i == 0}) for i, c in enumerate(ordered)]
