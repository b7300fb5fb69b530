"""
LLM Gateway Package

Provider routing over interchangeable chat backends:
  - OpenAI               (GPT-4o family)
  - Gemini               (Google Generative Language, OpenAI-compatible endpoint)
  - Cloudflare Workers AI (Llama / Mistral, OpenAI-compatible endpoint)

Public API::

    from chat_gateway.llm import ChatRouter, ModelCatalog

    router = ChatRouter()
    stream = await router.open_stream(chat_request)
    async for text in stream:
        ...

    models = await ModelCatalog(http_client).list_models("openai")
"""

from chat_gateway.llm.catalog import ModelCatalog
from chat_gateway.llm.gateway import ChatRouter, ChatStream
from chat_gateway.llm.registry import (
    CatalogSpec,
    ProviderRegistry,
    ProviderSpec,
    build_default_registry,
    get_registry,
)

__all__ = [
    "CatalogSpec",
    "ChatRouter",
    "ChatStream",
    "ModelCatalog",
    "ProviderRegistry",
    "ProviderSpec",
    "build_default_registry",
    "get_registry",
]
