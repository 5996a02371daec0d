from __future__ import annotations

from collections.abc import Mapping
from urllib.parse import quote

import requests

from core.errors import UnauthorizedError

from .http_client import DEFAULT_TIMEOUT, get_json, join_url, status_of


class HttpSessionResolver:
    """Session service: ``GET {base}/sessions/{token}`` → ``{"userId": ...}``."""

    def __init__(self, base_url: str, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._base_url = base_url
        self._timeout = timeout

    def resolve(self, session_token: str) -> str:
        if not session_token:
            raise UnauthorizedError("Unauthorized: Please log in")
        url = join_url(self._base_url, f"/sessions/{quote(session_token, safe='')}")
        try:
            payload = get_json(url, token=session_token, timeout=self._timeout, max_retries=1)
        except requests.HTTPError as exc:
            if status_of(exc) in (401, 403, 404):
                raise UnauthorizedError("Unauthorized: Please log in") from exc
            raise
        user_id = payload.get("userId", payload.get("user_id")) if isinstance(payload, Mapping) else None
        if not user_id:
            raise UnauthorizedError("Unauthorized: User not found")
        return str(user_id)
