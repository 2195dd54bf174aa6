from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Set, Union

from pydantic import ValidationError

from safe_route.cache import keys
from safe_route.cache.redis_client import RedisCache
from safe_route.core.events import EventEmitter
from safe_route.core.models import Alert, AlertStatus
from safe_route.providers.base import AlertCallback, AlertSource
from safe_route.providers.http import HTTPClient

log = logging.getLogger(__name__)


class InMemoryAlertFeed(AlertSource):
    """
    Alert snapshot held in memory with a push channel for new alerts.

    Subscribers are called synchronously, in subscription order, when
    publish() adds an alert.
    """

    def __init__(self, alerts: Iterable[Alert] = ()) -> None:
        self._alerts: List[Alert] = list(alerts)
        self._new = EventEmitter[Alert]()

    def get_active_alerts(self) -> List[Alert]:
        return [a for a in self._alerts if a.status != AlertStatus.RESOLVED]

    def subscribe(self, callback: AlertCallback) -> Callable[[], None]:
        return self._new.subscribe(callback)

    def publish(self, alert: Alert) -> None:
        self._alerts = [a for a in self._alerts if a.id != alert.id] + [alert]
        self._new.emit(alert)

    def remove(self, alert_id: Union[int, str]) -> None:
        self._alerts = [a for a in self._alerts if a.id != alert_id]

    def replace(self, alerts: Iterable[Alert]) -> None:
        self._alerts = list(alerts)


class HTTPAlertSource(AlertSource):
    """
    Active alerts from the alert backend (``GET {base_url}/alerts/active``).

    There is no server push here; call poll() periodically and alerts with
    previously unseen ids are published to subscribers.
    """

    def __init__(
        self,
        base_url: str,
        http: Optional[HTTPClient] = None,
        cache: Optional[RedisCache] = None,
        cache_ttl_s: int = 30,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http or HTTPClient()
        self.cache = cache
        self.cache_ttl_s = cache_ttl_s
        self._snapshot: List[Alert] = []
        self._seen: Set[Union[int, str]] = set()
        self._primed = False
        self._new = EventEmitter[Alert]()

    def _fetch_rows(self) -> list:
        url = f"{self.base_url}/alerts/active"
        key = keys.active_alerts(url)
        if self.cache is not None:
            cached = self.cache.get_json(key)
            if cached is not None:
                return cached
        rows = self.http.get_json(url)
        if isinstance(rows, dict):
            rows = rows.get("alerts") or rows.get("data") or []
        if self.cache is not None:
            self.cache.set_json(key, rows, self.cache_ttl_s)
        return rows

    def refresh(self) -> List[Alert]:
        """Re-read the backend; keeps the previous snapshot if the call fails."""
        self._load()
        return list(self._snapshot)

    def _load(self) -> bool:
        try:
            rows = self._fetch_rows()
        except Exception as exc:
            log.warning("Alert fetch failed (%s); keeping %d cached alerts", exc, len(self._snapshot))
            return False

        alerts: List[Alert] = []
        for row in rows:
            try:
                alerts.append(Alert.model_validate(row))
            except ValidationError as exc:
                log.warning("Skipping malformed alert %r: %s", row.get("id") if isinstance(row, dict) else row, exc)
        self._snapshot = [a for a in alerts if a.status != AlertStatus.RESOLVED]
        return True

    def get_active_alerts(self) -> List[Alert]:
        return list(self._snapshot)

    def subscribe(self, callback: AlertCallback) -> Callable[[], None]:
        return self._new.subscribe(callback)

    def poll(self) -> List[Alert]:
        """
        Refresh and publish alerts not seen on earlier polls.

        The first successful fetch only primes the seen set, even when the
        backend had nothing active; failed fetches publish nothing.
        """
        if not self._load():
            return []
        alerts = list(self._snapshot)
        fresh = [a for a in alerts if a.id not in self._seen]
        self._seen.update(a.id for a in alerts)
        if not self._primed:
            self._primed = True
            return []
        for alert in fresh:
            self._new.emit(alert)
        return fresh
