from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from safe_route.cache import keys
from safe_route.cache.redis_client import RedisCache
from safe_route.core.models import GeoPoint, RawRoute, Step
from safe_route.providers.base import RoutingOracle
from safe_route.providers.http import HTTPClient

log = logging.getLogger(__name__)

FALLBACK_INSTRUCTION = "Follow the route"


class RoutingError(RuntimeError):
    """The routing service answered with something we cannot use."""


def _instruction_for(step: Dict[str, Any]) -> str:
    """
    OSRM only ships ``maneuver.instruction`` behind a text-instructions
    plugin, so compose one from type/modifier/name when it is absent.
    """
    maneuver = step.get("maneuver") or {}
    if maneuver.get("instruction"):
        return str(maneuver["instruction"])

    name = (step.get("name") or "").strip()
    mtype = maneuver.get("type")
    modifier = maneuver.get("modifier")

    if mtype == "depart":
        return f"Head out on {name}" if name else "Head out"
    if mtype == "arrive":
        return "You have reached your destination"
    if mtype in ("turn", "end of road", "fork", "merge", "on ramp", "off ramp") and modifier:
        verb = "Keep" if mtype == "fork" else "Turn"
        text = f"{verb} {modifier}"
        return f"{text} onto {name}" if name else text
    if mtype in ("roundabout", "rotary"):
        exit_no = maneuver.get("exit")
        text = f"At the roundabout take exit {exit_no}" if exit_no else "Enter the roundabout"
        return f"{text} onto {name}" if name else text
    if name:
        return f"Continue on {name}"
    return FALLBACK_INSTRUCTION


def parse_osrm_response(data: Dict[str, Any]) -> List[RawRoute]:
    """Convert an OSRM ``route`` response into RawRoute objects ([lng, lat] -> GeoPoint, m -> km)."""
    if data.get("code") not in (None, "Ok"):
        raise RoutingError(f"OSRM error: {data.get('code')} {data.get('message', '')}".strip())

    routes = data.get("routes")
    if not isinstance(routes, list) or not routes:
        raise RoutingError("OSRM returned no routes")

    out: List[RawRoute] = []
    for r in routes:
        coords = (r.get("geometry") or {}).get("coordinates") or []
        points = [GeoPoint(lat=lat, lng=lng) for lng, lat in coords]

        steps: List[Step] = []
        for leg in r.get("legs") or []:
            for s in leg.get("steps") or []:
                location = (s.get("maneuver") or {}).get("location")
                if not location:
                    geom = (s.get("geometry") or {}).get("coordinates") or []
                    location = geom[0] if geom else None
                if not location:
                    continue
                m_lng, m_lat = location
                steps.append(
                    Step(
                        point=GeoPoint(lat=m_lat, lng=m_lng),
                        instruction=_instruction_for(s),
                        distance_km=float(s.get("distance", 0.0)) / 1000.0,
                        duration_sec=float(s.get("duration", 0.0)),
                    )
                )

        out.append(
            RawRoute(
                points=points,
                steps=steps,
                distance_km=float(r.get("distance", 0.0)) / 1000.0,
                duration_sec=float(r.get("duration", 0.0)),
            )
        )
    return out


class OSRMRoutingOracle(RoutingOracle):
    """
    OSRM ``route/v1`` client returning the main route plus alternatives.

    The HTTP call is blocking (requests), so it runs in a worker thread and
    never stalls position processing on the event loop.
    """

    def __init__(
        self,
        base_url: str = "https://router.project-osrm.org",
        http: Optional[HTTPClient] = None,
        cache: Optional[RedisCache] = None,
        cache_ttl_s: int = 300,
        timeout_s: int = 10,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http or HTTPClient(timeout_s=timeout_s)
        self.cache = cache
        self.cache_ttl_s = cache_ttl_s

    def _url(self, origin: GeoPoint, destination: GeoPoint, profile: str) -> str:
        return (
            f"{self.base_url}/route/v1/{profile}/"
            f"{origin.lng},{origin.lat};{destination.lng},{destination.lat}"
        )

    def _fetch(self, origin: GeoPoint, destination: GeoPoint, profile: str) -> Dict[str, Any]:
        key = keys.osrm_routes(profile, origin.lat, origin.lng, destination.lat, destination.lng)
        if self.cache is not None:
            cached = self.cache.get_json(key)
            if cached is not None:
                return cached

        params = {
            "overview": "full",
            "geometries": "geojson",
            "steps": "true",
            "alternatives": "true",
        }
        data = self.http.get_json(self._url(origin, destination, profile), params=params, error_body_ok=True)
        if self.cache is not None and data.get("code") == "Ok":
            self.cache.set_json(key, data, self.cache_ttl_s)
        return data

    async def get_routes(self, origin: GeoPoint, destination: GeoPoint, profile: str = "driving") -> List[RawRoute]:
        data = await asyncio.to_thread(self._fetch, origin, destination, profile)
        routes = parse_osrm_response(data)
        log.info("OSRM returned %d route(s) for %s", len(routes), profile)
        return routes
