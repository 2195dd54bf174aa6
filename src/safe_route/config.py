"""Centralized settings for the safe-route engine."""
from __future__ import annotations

from typing import Dict, Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings

from safe_route.core.models import AlertSeverity
from safe_route.core.scoring import PLANNING_SEVERITY_WEIGHTS


class Settings(BaseSettings):
    model_config = {"env_prefix": "SAFE_ROUTE_"}

    # Redis: empty string means disabled (graceful fallback)
    redis_url: str = ""

    # TTL values in seconds for each cached data type
    ttl_osrm_routes: int = 300        # 5 min, street geometry is stable, alternatives less so
    ttl_active_alerts: int = 30       # 30 s, alerts change often

    # Routing oracle
    osrm_base_url: str = "https://router.project-osrm.org"
    osrm_timeout_s: int = 10
    routing_profile: str = "driving"

    # Alert backend: empty string means "use an in-memory feed"
    alerts_api_url: str = ""

    # Risk scoring
    # "planning" swaps in the trip-planning preset and ignores weight_*
    weight_profile: Literal["custom", "planning"] = "custom"
    influence_radius_km: float = 0.5
    on_route_radius_km: float = 0.5
    weight_critica: float = 10.0
    weight_alta: float = 5.0
    weight_media: float = 2.0
    weight_baja: float = 1.0

    # Route selection
    route_preference: str = "safest"
    avoid_critical_alerts: bool = True
    critical_avoidance_km: float = 0.3
    auto_reroute: bool = True
    reroute_threshold_km: float = 0.3

    # Turn-by-turn
    announce_far_km: float = 0.3
    announce_near_km: float = 0.05
    step_arrival_km: float = 0.02
    voice_guidance: bool = False

    # Geofencing
    radius_critica_m: float = 1000.0
    radius_alta_m: float = 750.0
    radius_media_m: float = 500.0
    radius_baja_m: float = 250.0
    default_radius_m: float = 500.0
    nearby_radius_m: float = 2000.0
    prune_stale_zones: bool = False

    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_thresholds(self) -> "Settings":
        w = [self.weight_critica, self.weight_alta, self.weight_media, self.weight_baja]
        if not all(a > b for a, b in zip(w, w[1:])):
            raise ValueError("severity weights must satisfy CRITICA > ALTA > MEDIA > BAJA")
        if not (self.step_arrival_km < self.announce_near_km < self.announce_far_km):
            raise ValueError("expected step_arrival_km < announce_near_km < announce_far_km")
        return self

    @property
    def severity_weights(self) -> Dict[AlertSeverity, float]:
        if self.weight_profile == "planning":
            return dict(PLANNING_SEVERITY_WEIGHTS)
        return {
            AlertSeverity.CRITICA: self.weight_critica,
            AlertSeverity.ALTA: self.weight_alta,
            AlertSeverity.MEDIA: self.weight_media,
            AlertSeverity.BAJA: self.weight_baja,
        }

    @property
    def zone_radii_m(self) -> Dict[AlertSeverity, float]:
        return {
            AlertSeverity.CRITICA: self.radius_critica_m,
            AlertSeverity.ALTA: self.radius_alta_m,
            AlertSeverity.MEDIA: self.radius_media_m,
            AlertSeverity.BAJA: self.radius_baja_m,
        }
