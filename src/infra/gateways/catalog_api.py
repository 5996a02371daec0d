from __future__ import annotations

from collections.abc import Mapping

import requests

from app.adapters import payload_to_item_metadata
from core.dtos import ItemMetadata

from .http_client import DEFAULT_TIMEOUT, MAX_RETRIES, get_json, join_url, status_of


class HttpItemCatalog:
    """
    Item catalog service: ``GET {base}/items/{id}`` → display metadata.

    Returns None for unknown items. Transport errors still raise; the engine
    treats any failure here as a placeholder.
    """

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

    def get_item_metadata(self, item_id: int) -> ItemMetadata | None:
        url = join_url(self._base_url, f"/items/{int(item_id)}")
        try:
            payload = get_json(
                url, token=self._token, timeout=self._timeout, max_retries=self._max_retries
            )
        except requests.HTTPError as exc:
            if status_of(exc) in (404, 410):
                return None
            raise
        if not isinstance(payload, Mapping) or not payload.get("name"):
            return None
        return payload_to_item_metadata(item_id, payload)
