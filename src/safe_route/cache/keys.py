"""Redis key naming conventions for the safe-route cache layer."""
from __future__ import annotations

import hashlib

_PREFIX = "sr"


# ── Routing ──────────────────────────────────────────────────────────────

def osrm_routes(profile: str, o_lat: float, o_lng: float, d_lat: float, d_lng: float) -> str:
    """Key for an OSRM alternatives response between two rounded coordinates."""
    return f"{_PREFIX}:osrm:{profile}:{o_lat:.5f},{o_lng:.5f}:{d_lat:.5f},{d_lng:.5f}"


# ── Alerts ───────────────────────────────────────────────────────────────

def active_alerts(api_url: str) -> str:
    h = hashlib.sha256(api_url.encode()).hexdigest()[:16]
    return f"{_PREFIX}:alerts:active:{h}"
