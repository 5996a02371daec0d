from __future__ import annotations

import logging
from collections.abc import Mapping
from urllib.parse import quote

import requests

from app.adapters import payload_to_design_snapshot
from core.dtos import DesignSnapshot
from core.errors import DesignNotFoundError, GatewayError

from .http_client import DEFAULT_TIMEOUT, MAX_RETRIES, get_json, join_url, status_of

logger = logging.getLogger(__name__)


class HttpDesignSnapshots:
    """Design snapshot service: ``GET {base}/designs/{id}`` → ``{title, items}``."""

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
    ) -> None:
        self._base_url = base_url
        self._token = token
        self._timeout = timeout
        self._max_retries = max_retries

    def get_design_items(self, design_id: str) -> DesignSnapshot:
        url = join_url(self._base_url, f"/designs/{quote(design_id, safe='')}")
        try:
            payload = get_json(
                url, token=self._token, timeout=self._timeout, max_retries=self._max_retries
            )
        except requests.HTTPError as exc:
            if status_of(exc) in (404, 410):
                raise DesignNotFoundError(design_id) from exc
            raise
        if payload is None:
            raise DesignNotFoundError(design_id)
        if not isinstance(payload, Mapping):
            raise GatewayError(f"Unexpected design payload for {design_id}: {type(payload).__name__}")
        snapshot = payload_to_design_snapshot(design_id, payload)
        logger.debug("design %s resolved with %d items", design_id, len(snapshot.items))
        return snapshot
