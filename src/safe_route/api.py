"""FastAPI REST backend for route ranking and reroute checks."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Optional, Union

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from safe_route.cache.redis_client import RedisCache
from safe_route.config import Settings
from safe_route.core.models import Alert, GeoPoint, RawRoute, RouteCandidate
from safe_route.core.reroute import RerouteEvaluator
from safe_route.core.scoring import RiskScorer, risk_label
from safe_route.core.selector import RoutePreference, is_degenerate, select_routes

log = logging.getLogger(__name__)

app = FastAPI(title="Safe Route", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def get_cache(settings: Settings = Depends(get_settings)) -> RedisCache:
    return RedisCache(settings.redis_url)


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class CandidateIn(RawRoute):
    name: str = ""


class RankRequest(BaseModel):
    candidates: List[CandidateIn] = Field(..., min_length=1)
    alerts: List[Alert] = []
    preference: RoutePreference = RoutePreference.SAFEST
    avoid_critical_alerts: Optional[bool] = None


class RankedRoute(RouteCandidate):
    risk_label: str


class RankResponse(BaseModel):
    routes: List[RankedRoute]
    degenerate: int = 0   # dropped for lacking points or steps
    avoided: int = 0      # dropped for passing near a critical alert


class CheckAlertRequest(BaseModel):
    route_id: str = "active"
    points: List[GeoPoint] = Field(..., min_length=1)
    alert: Alert


class CheckAlertResponse(BaseModel):
    route_id: str
    alert_id: Union[int, str]
    needs_reroute: bool
    distance_km: Optional[float] = None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/health")
def health(cache: RedisCache = Depends(get_cache)):
    return {"status": "ok", "redis": cache.ping()}


@app.post("/routes/rank", response_model=RankResponse)
def rank_routes(req: RankRequest, settings: Settings = Depends(get_settings)):
    scorer = RiskScorer(
        influence_radius_km=settings.influence_radius_km,
        on_route_radius_km=settings.on_route_radius_km,
        weights=settings.severity_weights,
    )
    candidates = [
        scorer.score_candidate(c, req.alerts, route_id=f"route-{i}", name=c.name or f"Route {i + 1}")
        for i, c in enumerate(req.candidates)
    ]
    avoid = settings.avoid_critical_alerts if req.avoid_critical_alerts is None else req.avoid_critical_alerts
    ranked = select_routes(
        candidates,
        req.preference,
        alerts=req.alerts,
        avoid_critical_alerts=avoid,
        critical_avoidance_km=settings.critical_avoidance_km,
    )
    if not ranked:
        raise HTTPException(status_code=422, detail="No usable route candidates (every route lacks points or steps)")

    degenerate = sum(1 for c in candidates if is_degenerate(c))
    routes = [RankedRoute(**c.model_dump(), risk_label=risk_label(c.risk_score)) for c in ranked]
    return RankResponse(routes=routes, degenerate=degenerate, avoided=len(candidates) - degenerate - len(ranked))


@app.post("/routes/check-alert", response_model=CheckAlertResponse)
def check_alert(req: CheckAlertRequest, settings: Settings = Depends(get_settings)):
    route = RouteCandidate(id=req.route_id, points=req.points, steps=[], distance_km=0.0, duration_sec=0.0)
    evaluator = RerouteEvaluator(threshold_km=settings.reroute_threshold_km)
    signal = evaluator.evaluate(route, req.alert)
    return CheckAlertResponse(
        route_id=req.route_id,
        alert_id=req.alert.id,
        needs_reroute=signal is not None,
        distance_km=signal.distance_km if signal else None,
    )
