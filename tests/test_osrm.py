import asyncio
import json

import pytest

from safe_route.cache.redis_client import RedisCache
from safe_route.core.models import GeoPoint
from safe_route.providers.osrm import (
    FALLBACK_INSTRUCTION,
    OSRMRoutingOracle,
    RoutingError,
    _instruction_for,
    parse_osrm_response,
)

OSRM_OK = {
    "code": "Ok",
    "routes": [
        {
            "distance": 1500.0,
            "duration": 120.0,
            "geometry": {
                "type": "LineString",
                "coordinates": [[-78.5, -0.2], [-78.495, -0.2], [-78.49, -0.2]],
            },
            "legs": [
                {
                    "steps": [
                        {
                            "distance": 1000.0,
                            "duration": 80.0,
                            "name": "Av. Amazonas",
                            "maneuver": {"type": "depart", "location": [-78.5, -0.2]},
                        },
                        {
                            "distance": 500.0,
                            "duration": 40.0,
                            "name": "Calle Sucre",
                            "maneuver": {"type": "turn", "modifier": "left", "location": [-78.495, -0.2]},
                        },
                        {
                            "distance": 0.0,
                            "duration": 0.0,
                            "name": "",
                            "maneuver": {"type": "arrive", "location": [-78.49, -0.2]},
                        },
                    ]
                }
            ],
        },
        {
            "distance": 1800.0,
            "duration": 100.0,
            "geometry": {"type": "LineString", "coordinates": [[-78.5, -0.2], [-78.49, -0.2]]},
            "legs": [{"steps": []}],
        },
    ],
}


class FakeHTTP:
    def __init__(self, payload):
        self.payload = payload
        self.calls = []

    def get_json(self, url, params=None, timeout_s=None, error_body_ok=False):
        self.calls.append((url, params))
        return self.payload


class FakeRedis:
    def __init__(self):
        self.store = {}

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self.store[key] = value


def test_parse_converts_coordinates_and_units():
    main, alt = parse_osrm_response(OSRM_OK)
    assert main.points[0] == GeoPoint(lat=-0.2, lng=-78.5)
    assert main.distance_km == pytest.approx(1.5)
    assert main.duration_sec == 120.0
    assert [s.instruction for s in main.steps] == [
        "Head out on Av. Amazonas",
        "Turn left onto Calle Sucre",
        "You have reached your destination",
    ]
    assert main.steps[1].point == GeoPoint(lat=-0.2, lng=-78.495)
    assert main.steps[0].distance_km == pytest.approx(1.0)
    assert alt.steps == []


@pytest.mark.parametrize(
    "payload",
    [{"code": "NoRoute", "message": "Impossible route"}, {"code": "Ok", "routes": []}, {}],
)
def test_parse_rejects_unusable_responses(payload):
    with pytest.raises(RoutingError):
        parse_osrm_response(payload)


def test_instruction_fallbacks():
    assert _instruction_for({"maneuver": {"type": "new name"}}) == FALLBACK_INSTRUCTION
    assert _instruction_for({"name": "Av. 6 de Diciembre", "maneuver": {"type": "continue"}}) == "Continue on Av. 6 de Diciembre"
    assert _instruction_for({"maneuver": {"type": "turn", "instruction": "Gire a la derecha"}}) == "Gire a la derecha"
    assert _instruction_for({"maneuver": {"type": "roundabout", "exit": 2}}) == "At the roundabout take exit 2"


def test_step_location_falls_back_to_step_geometry():
    payload = json.loads(json.dumps(OSRM_OK))
    step = payload["routes"][0]["legs"][0]["steps"][1]
    del step["maneuver"]["location"]
    step["geometry"] = {"coordinates": [[-78.496, -0.201], [-78.495, -0.2]]}
    main, _ = parse_osrm_response(payload)
    assert main.steps[1].point == GeoPoint(lat=-0.201, lng=-78.496)


def test_oracle_requests_alternatives_with_steps():
    http = FakeHTTP(OSRM_OK)
    oracle = OSRMRoutingOracle("https://osrm.example/", http=http)
    routes = asyncio.run(
        oracle.get_routes(GeoPoint(lat=-0.2, lng=-78.5), GeoPoint(lat=-0.2, lng=-78.49), "driving")
    )
    assert len(routes) == 2
    ((url, params),) = http.calls
    assert url == "https://osrm.example/route/v1/driving/-78.5,-0.2;-78.49,-0.2"
    assert params == {"overview": "full", "geometries": "geojson", "steps": "true", "alternatives": "true"}


def test_oracle_uses_cache_for_repeated_requests():
    http = FakeHTTP(OSRM_OK)
    oracle = OSRMRoutingOracle(http=http, cache=RedisCache(client=FakeRedis()))
    o, d = GeoPoint(lat=-0.2, lng=-78.5), GeoPoint(lat=-0.2, lng=-78.49)
    first = asyncio.run(oracle.get_routes(o, d))
    second = asyncio.run(oracle.get_routes(o, d))
    assert first == second
    assert len(http.calls) == 1


def test_oracle_does_not_cache_errors():
    http = FakeHTTP({"code": "NoRoute"})
    fake = FakeRedis()
    oracle = OSRMRoutingOracle(http=http, cache=RedisCache(client=fake))
    with pytest.raises(RoutingError):
        asyncio.run(oracle.get_routes(GeoPoint(lat=0, lng=0), GeoPoint(lat=1, lng=1)))
    assert fake.store == {}
