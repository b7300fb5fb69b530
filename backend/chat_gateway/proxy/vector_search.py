"""
Vector similarity search proxy.

Forwards the caller's JSON body ({"query": "...", ...}) to the configured
VECTORIZE_SEARCH_URL with a single POST and relays whatever comes back.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from chat_gateway.core.config import Settings, get_settings
from chat_gateway.core.errors import MisconfiguredProvider, UpstreamUnavailable
from chat_gateway.observability.tracing import traced

logger = logging.getLogger(__name__)


class VectorSearchProxy:

    def __init__(self, client: httpx.AsyncClient, settings: Settings | None = None) -> None:
        self._client   = client
        self._settings = settings or get_settings()

    def check_configured(self) -> str:
        url = self._settings.vectorize_search_url
        if not url:
            raise MisconfiguredProvider("Vector search", ["VECTORIZE_SEARCH_URL"])
        return url

    @traced("proxy.vector_search")
    async def search(self, body: dict[str, Any]) -> httpx.Response:
        url     = self.check_configured()
        headers = {}
        if self._settings.vectorize_api_token:
            headers["Authorization"] = f"Bearer {self._settings.vectorize_api_token}"

        logger.info("VectorSearchProxy | query_chars=%d", len(str(body.get("query", ""))))
        try:
            return await self._client.post(url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable.from_exception("Vector search", exc) from exc
