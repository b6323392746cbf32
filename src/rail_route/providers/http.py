from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import requests
from requests.exceptions import RequestException

from rail_route.core.errors import NetworkUnavailable, RouteCancelled

log = logging.getLogger(__name__)


@dataclass
class HTTPClient:
    """
    POST a body to a list of mirror endpoints, ``tries`` attempts each with a
    fixed ``backoff_s`` pause, and return the first JSON document received.
    """

    user_agent: str
    timeout_s: int = 60
    tries: int = 2
    backoff_s: float = 1.5

    def __post_init__(self) -> None:
        self.s = requests.Session()
        self.s.headers.update(
            {
                "User-Agent": self.user_agent,
                "Accept": "application/json, text/plain;q=0.9, */*;q=0.8",
            }
        )

    def post_json(
        self,
        endpoints: Sequence[str],
        body: str,
        cancel: Optional[threading.Event] = None,
        content_type: str = "text/plain",
    ) -> Dict[str, Any]:
        if not endpoints:
            raise NetworkUnavailable(endpoints, ValueError("no endpoints configured"))

        total = len(endpoints) * self.tries
        n = 0
        last_err: Optional[Exception] = None
        for url in endpoints:
            for attempt in range(1, self.tries + 1):
                if cancel is not None and cancel.is_set():
                    raise RouteCancelled("fetch abandoned")
                n += 1
                try:
                    r = self.s.post(
                        url,
                        data=body.encode("utf-8"),
                        headers={"Content-Type": content_type},
                        timeout=self.timeout_s,
                    )
                    r.raise_for_status()
                    data = r.json()
                    log.info("Fetched %s (attempt %d)", url, attempt)
                    return data
                except (RequestException, ValueError) as e:
                    last_err = e
                    log.warning("Request to %s failed (attempt %d/%d): %s", url, attempt, self.tries, e)

                if n < total:
                    self._pause(cancel)

        raise NetworkUnavailable(endpoints, last_err)

    def _pause(self, cancel: Optional[threading.Event]) -> None:
        if cancel is None:
            time.sleep(self.backoff_s)
            return
        if cancel.wait(self.backoff_s):
            raise RouteCancelled("fetch abandoned")
