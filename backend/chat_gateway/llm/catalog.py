"""
Model Catalog Adapter — normalized model lists per provider

listModels(provider) performs exactly ONE upstream GET and runs the raw
response through the provider's CatalogSpec:

    entries(payload) → keep(entry) → model_id(entry) → sorted()

Degradation rules (intentionally asymmetric with chat):
  - Missing credentials    → MisconfiguredProvider (500), no network call.
                             "cannot ask" must be distinguishable from "no models".
  - Upstream non-2xx       → empty list.
  - Transport failure      → empty list.
  - Unparseable body       → empty list.
"""

from __future__ import annotations

import logging

import httpx

from chat_gateway.llm.registry import ProviderRegistry, get_registry
from chat_gateway.observability.tracing import traced
from chat_gateway.schemas.chat import ModelCatalogEntry

logger = logging.getLogger(__name__)


class ModelCatalog:
    """
    Usage::

        catalog = ModelCatalog(http_client)
        entries = await catalog.list_models("openai")
    """

    def __init__(self, client: httpx.AsyncClient, registry: ProviderRegistry | None = None) -> None:
        self._client   = client
        self._registry = registry or get_registry()

    @traced("catalog.list_models")
    async def list_models(self, provider: str) -> list[ModelCatalogEntry]:
        spec  = self._registry.resolve(provider)
        creds = self._registry.credentials_for(spec)

        if spec.catalog is None:
            logger.info("ModelCatalog | provider=%s has no catalog endpoint", spec.name)
            return []

        catalog = spec.catalog
        try:
            response = await self._client.get(catalog.url(creds), headers=catalog.headers(creds))
        except httpx.HTTPError as exc:
            logger.warning(
                "ModelCatalog | provider=%s transport error=%s", spec.name, type(exc).__name__,
            )
            return []

        if not response.is_success:
            logger.warning(
                "ModelCatalog | provider=%s upstream status=%d — returning empty catalog",
                spec.name, response.status_code,
            )
            return []

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            logger.warning("ModelCatalog | provider=%s returned an unexpected body", spec.name)
            return []

        ids = sorted(
            catalog.model_id(entry)
            for entry in catalog.entries(payload)
            if isinstance(entry, dict) and catalog.keep(entry)
        )
        logger.debug("ModelCatalog | provider=%s models=%d", spec.name, len(ids))
        return [ModelCatalogEntry(id=model_id) for model_id in ids if model_id]
