from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from requests.exceptions import ConnectionError, ReadTimeout

log = logging.getLogger(__name__)

RETRY_STATUS = (429, 502, 503, 504)


class RetryableStatus(requests.HTTPError):
    """Transient server answer (rate limit, gateway trouble)."""


@dataclass
class HTTPClient:
    user_agent: str = "SafeRoute/0.1.0"
    timeout_s: int = 10
    tries: int = 3
    backoff_s: float = 0.5

    def __post_init__(self) -> None:
        self.s = requests.Session()
        self.s.headers.update(
            {
                "User-Agent": self.user_agent,
                "Accept": "application/json, text/plain;q=0.9, */*;q=0.8",
            }
        )

    def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout_s: Optional[int] = None,
        error_body_ok: bool = False,
    ) -> Any:
        """
        GET *url* and decode JSON, retrying timeouts, dropped connections and
        429/5xx gateway answers with exponential backoff.

        With *error_body_ok*, a 4xx answer that carries a JSON body is returned
        instead of raised (OSRM reports ``NoRoute`` and friends that way).
        """
        timeout = timeout_s if timeout_s is not None else self.timeout_s
        last_err: Optional[Exception] = None
        for attempt in range(self.tries):
            try:
                r = self.s.get(url, params=params, timeout=timeout)
                if r.status_code in RETRY_STATUS:
                    raise RetryableStatus(f"{r.status_code} from {url}", response=r)
                if error_body_ok and 400 <= r.status_code < 500:
                    try:
                        return r.json()
                    except ValueError:
                        pass
                r.raise_for_status()
                return r.json()
            except (ReadTimeout, ConnectionError, RetryableStatus) as e:
                last_err = e
                log.debug("GET %s failed (attempt %d/%d): %s", url, attempt + 1, self.tries, e)
                time.sleep(self.backoff_s * (2**attempt))
        raise last_err if last_err else RuntimeError("HTTP get_json failed")
