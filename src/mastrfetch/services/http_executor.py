"""
Single-request executor for the registry endpoints.

Design:
- one GET per attempt, hard-bounded by the policy timeout
- 429 / 5xx gateway statuses and transport failures are retried with
  exponential backoff, honouring Retry-After when the server sends one
- everything else is terminal and raised as a classified UpstreamError,
  including undecodable bodies and redirect loops
- the shared CancelToken aborts both the request and any backoff wait
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Awaitable, Callable

import httpx

from mastrfetch.errors import (
    UpstreamError,
    UpstreamHTTPError,
    UpstreamMalformed,
    UpstreamUnavailable,
)
from mastrfetch.models.domain import RetryPolicy
from mastrfetch.services.cancellation import CancelToken

log = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
BODY_EXCERPT_CHARS = 300


class _Transient(Exception):
    def __init__(self, status: int | None = None, cause: str | None = None, retry_after_s: float = 0.0):
        super().__init__(cause or f"HTTP {status}")
        self.status = status
        self.cause = cause
        self.retry_after_s = retry_after_s


def parse_retry_after(value: str | None, now: datetime | None = None) -> float:
    """Retry-After as seconds; accepts delta-seconds or an HTTP-date."""
    if not value:
        return 0.0
    value = value.strip()
    if value.isascii() and value.isdigit():
        return float(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return 0.0
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (when - now).total_seconds())


class RetryingRequestExecutor:
    def __init__(
        self,
        client: httpx.AsyncClient,
        policy: RetryPolicy,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.policy = policy
        self._sleep = sleep

    def backoff_s(self, attempt: int, retry_after_s: float = 0.0) -> float:
        base = self.policy.base_backoff_ms * (2**attempt) / 1000.0
        return max(retry_after_s, base)

    async def get_json(self, url: str, cancel_token: CancelToken) -> Any:
        attempt = 0
        while True:
            cancel_token.raise_if_cancelled()
            try:
                return await cancel_token.race(self._attempt(url))
            except _Transient as t:
                if attempt >= self.policy.max_attempts:
                    raise UpstreamUnavailable(
                        url, attempts=attempt + 1, status=t.status, cause=t.cause
                    ) from t
                delay = self.backoff_s(attempt, t.retry_after_s)
                log.warning(
                    "transient upstream failure (%s), retry %d/%d in %.2fs",
                    t, attempt + 1, self.policy.max_attempts, delay,
                )
                await cancel_token.race(self._sleep(delay))
                attempt += 1

    async def _attempt(self, url: str) -> Any:
        timeout_s = self.policy.timeout_ms / 1000.0
        try:
            resp = await asyncio.wait_for(self.client.get(url, timeout=timeout_s), timeout=timeout_s)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise _Transient(cause=f"timeout after {timeout_s:.1f}s")
        except httpx.TransportError as e:
            raise _Transient(cause=f"{type(e).__name__}: {e}")
        except httpx.DecodingError as e:
            raise UpstreamMalformed(f"Upstream body could not be decoded: {e}") from e
        except httpx.RequestError as e:
            raise UpstreamError(f"Upstream request failed: {type(e).__name__}: {e}") from e

        if resp.status_code in RETRYABLE_STATUSES:
            raise _Transient(
                status=resp.status_code,
                retry_after_s=parse_retry_after(resp.headers.get("Retry-After")),
            )
        if not resp.is_success:
            raise UpstreamHTTPError(resp.status_code, resp.text[:BODY_EXCERPT_CHARS])

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamMalformed(f"Upstream returned non-JSON body: {resp.text[:BODY_EXCERPT_CHARS]!r}") from e
