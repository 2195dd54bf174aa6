"""Redis connection + JSON cache helpers.

All operations are wrapped in try/except; a Redis failure never breaks the engine.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

log = logging.getLogger(__name__)


class RedisCache:
    """Lazily connected JSON cache.  An empty URL disables it."""

    def __init__(self, url: str = "", client: Any = None) -> None:
        self.url = url
        self._client = client
        self._checked = client is not None

    def client(self):
        """Returns ``redis.Redis`` or ``None`` if unavailable."""
        if self._checked:
            return self._client
        self._checked = True
        if not self.url:
            return None
        try:
            import redis

            self._client = redis.Redis.from_url(self.url, decode_responses=True, socket_connect_timeout=3)
            self._client.ping()
            log.info("Redis connected: %s", self.url)
        except Exception as exc:
            log.warning("Redis unavailable (%s), running without cache", exc)
            self._client = None
        return self._client

    @property
    def enabled(self) -> bool:
        return self.client() is not None

    def ping(self) -> bool:
        try:
            r = self.client()
            if r is None:
                return False
            r.ping()
            return True
        except Exception:
            return False

    def get_json(self, key: str) -> Optional[Any]:
        try:
            r = self.client()
            if r is None:
                return None
            raw = r.get(key)
            if raw is None:
                return None
            return json.loads(raw)
        except Exception:
            return None

    def set_json(self, key: str, value: Any, ttl: int) -> None:
        try:
            r = self.client()
            if r is None:
                return
            r.set(key, json.dumps(value), ex=ttl)
        except Exception as exc:
            log.debug("Cache write failed for %s: %s", key, exc)
