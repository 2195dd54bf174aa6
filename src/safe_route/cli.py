from __future__ import annotations

import argparse
import asyncio
import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from rich.console import Console
from rich.table import Table

from safe_route.cache.redis_client import RedisCache
from safe_route.config import Settings
from safe_route.contracts.notification_contract import Notification
from safe_route.core.engine import NavigationEngine
from safe_route.core.models import Alert, GeoPoint, PositionSample
from safe_route.core.scoring import risk_label
from safe_route.providers.alerts import HTTPAlertSource, InMemoryAlertFeed
from safe_route.providers.base import AlertSource, RoutingOracle
from safe_route.providers.mock import MockRoutingOracle, SimulatedPositionSource
from safe_route.providers.notify import CollectingNotificationSink
from safe_route.providers.osrm import OSRMRoutingOracle

log = logging.getLogger(__name__)


class ScheduledAlert(BaseModel):
    at: int  # track index the alert appears before
    alert: Alert


class TripFile(BaseModel):
    trip_id: str = "trip"
    origin: GeoPoint
    destination: GeoPoint
    preference: Optional[str] = None
    alerts: List[Alert] = []
    track: List[PositionSample] = []
    new_alerts: List[ScheduledAlert] = []


def _read_trip(path: Path) -> TripFile:
    data = json.loads(path.read_text(encoding="utf-8"))
    return TripFile(**data)


def _save_json(path: Path, obj) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2), encoding="utf-8")


def _build_oracle(name: str, settings: Settings) -> RoutingOracle:
    if name == "mock":
        return MockRoutingOracle()
    if name == "osrm":
        return OSRMRoutingOracle(
            settings.osrm_base_url,
            cache=RedisCache(settings.redis_url),
            cache_ttl_s=settings.ttl_osrm_routes,
            timeout_s=settings.osrm_timeout_s,
        )
    raise SystemExit(f"Unknown provider: {name}")


def _build_alert_source(trip: TripFile, settings: Settings) -> AlertSource:
    if settings.alerts_api_url:
        return HTTPAlertSource(
            settings.alerts_api_url,
            cache=RedisCache(settings.redis_url),
            cache_ttl_s=settings.ttl_active_alerts,
        )
    return InMemoryAlertFeed(trip.alerts)


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _event_row(fix_index: int, n: Notification) -> Dict[str, Any]:
    return {
        "fix": fix_index,
        "kind": n.kind.value,
        "urgency": n.urgency.value,
        "title": n.title,
        "body": n.body,
        "payload": _jsonable(n.payload),
    }


def main() -> None:
    ap = argparse.ArgumentParser(description="Rank routes by alert risk and replay a GPS track.")
    ap.add_argument("--trip", default="trips/sample_trip.json", help="Path to a trip JSON file")
    ap.add_argument("--provider", default="mock", choices=["mock", "osrm"])
    ap.add_argument("--preference", default=None, choices=["fastest", "shortest", "safest"])
    ap.add_argument("--debug", action="store_true")
    args = ap.parse_args()

    settings = Settings()
    logging.basicConfig(
        level=logging.DEBUG if args.debug else settings.log_level,
        format="%(asctime)s [safe-route] %(levelname)s %(message)s",
    )

    trip = _read_trip(Path(args.trip))
    feed = _build_alert_source(trip, settings)
    if isinstance(feed, HTTPAlertSource):
        # the first poll loads the snapshot and primes the seen ids
        feed.poll()
        if trip.alerts or trip.new_alerts:
            log.info("Alert backend configured; ignoring alerts in %s", args.trip)
    gps = SimulatedPositionSource()
    sink = CollectingNotificationSink()
    engine = NavigationEngine(_build_oracle(args.provider, settings), feed, gps, sink, settings)

    track = trip.track or [PositionSample(lat=trip.origin.lat, lng=trip.origin.lng, timestamp=0.0)]
    scheduled: Dict[int, List[Alert]] = defaultdict(list)
    for item in trip.new_alerts:
        scheduled[item.at].append(item.alert)

    engine.enable_proximity_alerts()
    engine.update_location(track[0])
    gps.push(track[0])

    preference = args.preference or trip.preference
    routes = asyncio.run(engine.request_routes(trip.destination, origin=trip.origin, preference=preference))

    console = Console()
    table = Table(title=f"Safe Route: {trip.trip_id}")
    table.add_column("#")
    table.add_column("Route")
    table.add_column("Km")
    table.add_column("Min")
    table.add_column("Risk")
    table.add_column("Label")
    table.add_column("Alerts on route")
    table.add_column("Pick")
    for i, r in enumerate(routes):
        table.add_row(
            str(i + 1),
            r.name or r.id,
            f"{r.distance_km:.2f}",
            f"{r.duration_sec / 60:.1f}",
            f"{r.risk_score:.2f}",
            risk_label(r.risk_score),
            ", ".join(str(a.id) for a in r.alerts_on_route),
            "*" if r.is_recommended else "",
        )
    console.print(table)

    events: List[Dict[str, Any]] = [_event_row(0, n) for n in sink.received]
    sink.clear()

    ok, message = engine.start_navigation()
    console.print(message)
    if ok:
        for i, sample in enumerate(track[1:], start=1):
            if isinstance(feed, HTTPAlertSource):
                feed.poll()
            else:
                for alert in scheduled.get(i, []):
                    feed.publish(alert)
            gps.push(sample)
            events.extend(_event_row(i, n) for n in sink.received)
            sink.clear()
            if not engine.is_navigating:
                break
        engine.stop_navigation()
    engine.disable_proximity_alerts()

    ev_table = Table(title="Events")
    ev_table.add_column("Fix")
    ev_table.add_column("Kind")
    ev_table.add_column("Urgency")
    ev_table.add_column("Title")
    ev_table.add_column("Message")
    for e in events:
        ev_table.add_row(str(e["fix"]), e["kind"], e["urgency"], e["title"], e["body"])
    console.print(ev_table)

    trips_dir = Path("trips")
    _save_json(trips_dir / "last_run_events.json", events)
    console.print(f"Saved: {(trips_dir / 'last_run_events.json').resolve()}")

    if args.debug:
        _save_json(trips_dir / "last_run_routes.json", [r.model_dump(mode="json") for r in routes])
        console.print(f"Saved: {(trips_dir / 'last_run_routes.json').resolve()}")


if __name__ == "__main__":
    main()
