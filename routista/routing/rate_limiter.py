"""Soft concurrency limiter shared by routing provider clients."""

from __future__ import annotations

import logging
import random
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Mapping, Optional

from ..config import (
    RATE_LIMIT_JITTER_RANGE,
    RATE_LIMIT_MAX_CONCURRENT,
    RATE_LIMIT_THROTTLE_SECONDS,
)

__all__ = ["RateLimiter"]

LOGGER = logging.getLogger(__name__)


class RateLimiter:
    """Soft concurrency cap with a 429 throttle and jitter to smooth bursts."""

    def __init__(
        self,
        max_concurrent: int = RATE_LIMIT_MAX_CONCURRENT,
        jitter_range: tuple[float, float] = RATE_LIMIT_JITTER_RANGE,
        throttle_seconds: float = RATE_LIMIT_THROTTLE_SECONDS,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self._lock = threading.Lock()
        self._cond = threading.Condition(self._lock)
        self._max_allowed = max_concurrent
        self._in_flight = 0
        self._throttle_until: float = 0.0
        self._jitter_range = jitter_range
        self._throttle_seconds = throttle_seconds

    def before_request(self) -> None:
        with self._cond:
            while self._in_flight >= self._max_allowed:
                self._cond.wait()
            self._in_flight += 1
            wait_for = max(0.0, self._throttle_until - time.time())
        if wait_for > 0:
            time.sleep(wait_for)
        lo, hi = self._jitter_range
        if hi > 0:
            jitter = random.uniform(lo, hi)  # nosec B311
            # Random jitter smooths bursts; not used for security-sensitive logic.
            time.sleep(jitter)

    def after_response(
        self, headers: Mapping[str, object] | None, status_code: int | None
    ) -> None:
        if status_code == 429:
            pause = self._retry_after(headers)
            LOGGER.warning("Rate limit: 429. Throttling %ss.", pause)
            with self._cond:
                self._throttle_until = max(self._throttle_until, time.time() + pause)
        with self._cond:
            self._in_flight = max(0, self._in_flight - 1)
            if self._in_flight < self._max_allowed:
                self._cond.notify()

    @contextmanager
    def slot(self) -> Iterator["_SlotOutcome"]:
        """Hold one request slot; record the response on the yielded outcome.

        The slot is released on exit even when the request raised, in which
        case no status is recorded and no throttle is applied.
        """

        self.before_request()
        outcome = _SlotOutcome()
        try:
            yield outcome
        finally:
            self.after_response(outcome.headers, outcome.status_code)

    def _retry_after(self, headers: Mapping[str, object] | None) -> float:
        if headers:
            value = headers.get("Retry-After")
            if value is not None:
                try:
                    return max(0.0, float(str(value)))
                except (TypeError, ValueError):
                    LOGGER.debug("Ignoring unparsable Retry-After=%r", value)
        return self._throttle_seconds

    def snapshot(self) -> dict[str, float | int]:
        """Return current limiter stats (used by tests and diagnostics)."""

        with self._lock:
            return {
                "max_allowed": self._max_allowed,
                "in_flight": self._in_flight,
                "throttle_until": self._throttle_until,
            }


class _SlotOutcome:
    """Response details reported back to the limiter when a slot is released."""

    __slots__ = ("headers", "status_code")

    def __init__(self) -> None:
        self.headers: Optional[Mapping[str, object]] = None
        self.status_code: Optional[int] = None

    def record(self, response: object) -> None:
        self.headers = getattr(response, "headers", None)
        self.status_code = getattr(response, "status_code", None)
