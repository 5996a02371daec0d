"""Shared helpers for calling the upstream design, catalog and session services.

Network handling, retry/back-off and auth headers live in one place so the
individual gateways stay small.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any

import requests

DEFAULT_TIMEOUT = 10  # seconds
MAX_RETRIES = 3  # total attempts for transient errors
RETRY_STATUS = {429, 502, 503, 504}  # include rate‑limit 429

logger = logging.getLogger(__name__)


def _headers(token: str | None) -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def join_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def get_json(
    url: str,
    *,
    token: str | None = None,
    params: dict[str, Any] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    max_retries: int = MAX_RETRIES,
) -> Any:
    """GET *url* and return decoded JSON.

    Retries the usual transient errors (429, 502, 503, 504) up to
    ``max_retries`` attempts using exponential back‑off (1 s, 2 s, 4 s, …)
    plus a small random jitter; a 429 honours ``Retry-After``. Any other
    error status raises ``requests.HTTPError``.
    """
    attempts = max(1, max_retries)
    for attempt in range(1, attempts + 1):
        resp = requests.get(url, headers=_headers(token), params=params, timeout=timeout)

        if resp.status_code < 400:
            return resp.json()

        if resp.status_code in RETRY_STATUS and attempt < attempts:
            if resp.status_code == 429:
                delay = float(resp.headers.get("Retry-After", "5"))
            else:
                delay = 2 ** (attempt - 1)
            delay += random.uniform(0, 0.5)
            logger.warning(
                "GET %s -> %s, retrying in %.1fs (attempt %d/%d)",
                url,
                resp.status_code,
                delay,
                attempt,
                attempts,
            )
            time.sleep(delay)
            continue

        resp.raise_for_status()

    raise RuntimeError("Unreachable – retries exhausted")


def status_of(exc: requests.HTTPError) -> int | None:
    return exc.response.status_code if exc.response is not None else None
