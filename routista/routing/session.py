"""HTTP session factory for routing provider calls."""

from __future__ import annotations

import threading

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import HTTP_POOL_CONNECTIONS, HTTP_POOL_MAXSIZE, HTTP_RETRY_TOTAL

__all__ = ["create_routing_session", "get_default_session"]

USER_AGENT = "routista/0.1 (+shape-to-route)"


def _leg_retry(total: int) -> Retry:
    # Only idempotent leg lookups are retried, and only on upstream 5xx.
    # A 429 reaches the caller so the rate limiter can back off instead.
    return Retry(
        total=total,
        connect=total,
        read=0,
        backoff_factor=0.5,
        status_forcelist=[500, 502, 503, 504],
        allowed_methods=["GET"],
        respect_retry_after_header=False,
    )


def create_routing_session(
    *,
    pool_size: int = HTTP_POOL_MAXSIZE,
    retries: int = HTTP_RETRY_TOTAL,
) -> Session:
    """Build a pooled session sized for ``pool_size`` concurrent legs."""

    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=HTTP_POOL_CONNECTIONS,
        pool_maxsize=max(1, pool_size),
        max_retries=_leg_retry(max(0, retries)),
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update(
        {
            "Accept-Encoding": "gzip, deflate",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
    )
    return session


_DEFAULT_SESSION: Session | None = None
_SESSION_LOCK = threading.Lock()


def get_default_session() -> Session:
    """Return the process-wide routing session, creating it on first use."""

    global _DEFAULT_SESSION
    with _SESSION_LOCK:
        if _DEFAULT_SESSION is None:
            _DEFAULT_SESSION = create_routing_session()
        return _DEFAULT_SESSION
