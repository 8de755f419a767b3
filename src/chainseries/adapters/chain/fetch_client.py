from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import requests

from chainseries.adapters.chain.rate_limiter import TokenBucket, backoff_delay
from chainseries.core.errors import DataSourceError, RateLimitExhausted, TransientNetworkError, UpstreamError

logger = logging.getLogger(__name__)

_RATE_LIMIT_MARKER = "max rate limit"

_TRANSIENT_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
)


class RateLimitedFetchClient:
    """
    Single gateway for every upstream HTTP call.

    - Throttle: shared token bucket, one token per attempt
    - Retried: HTTP 502, "max rate limit" bodies, connection errors, timeouts, truncated bodies
    - Not retried: every other non-2xx status or requests error (UpstreamError)
    """

    def __init__(
        self,
        bucket: TokenBucket,
        session: Optional[requests.Session] = None,
        timeout: float = 15.0,
        max_retries: int = 5,
        backoff_base: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self._bucket = bucket
        self._session = session or requests.Session()
        self._timeout = timeout
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._sleep = sleep

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", url, **kwargs)

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        kwargs.setdefault("timeout", self._timeout)
        last_err: Optional[Exception] = None

        for attempt in range(self._max_retries):
            self._bucket.acquire()
            try:
                resp = self._session.request(method, url, **kwargs)
            except _TRANSIENT_ERRORS as e:
                last_err = TransientNetworkError(f"{method} {url}: {e}")
                self._backoff(attempt, last_err)
                continue
            except requests.RequestException as e:
                raise UpstreamError(None, f"{method} {url}: {e}") from e

            if resp.status_code == 502:
                last_err = UpstreamError(502, _short_body(resp))
                self._backoff(attempt, last_err)
                continue

            if _is_rate_limited(resp):
                last_err = RateLimitExhausted(_short_body(resp))
                self._backoff(attempt, last_err)
                continue

            if not 200 <= resp.status_code < 300:
                raise UpstreamError(resp.status_code, _short_body(resp))

            return resp

        raise last_err or DataSourceError(f"{method} {url}: no attempt made")

    def _backoff(self, attempt: int, err: Exception) -> None:
        if attempt + 1 >= self._max_retries:
            return
        delay = backoff_delay(attempt, base=self._backoff_base)
        logger.warning("upstream retry %d/%d in %.2fs: %s", attempt + 1, self._max_retries, delay, err)
        self._sleep(delay)


def _short_body(resp: requests.Response, limit: int = 200) -> str:
    return (resp.text or "")[:limit] or (resp.reason or "")


def _is_rate_limited(resp: requests.Response) -> bool:
    if resp.status_code == 429:
        return True
    return _RATE_LIMIT_MARKER in (resp.text or "").lower()
