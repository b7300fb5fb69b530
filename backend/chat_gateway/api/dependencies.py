"""
FastAPI dependencies — the only place route handlers get collaborators from.

Tests replace any of these through app.dependency_overrides:
  get_http_client    → httpx.AsyncClient on a MockTransport
  get_chat_router    → ChatRouter with a fake registry / fresh store
  get_session_store  → InMemorySessionStore
"""

from __future__ import annotations

import httpx
from fastapi import Depends

from chat_gateway.llm.catalog import ModelCatalog
from chat_gateway.llm.gateway import ChatRouter
from chat_gateway.proxy.apps_script import AppsScriptProxy
from chat_gateway.proxy.transcription import TranscriptionProxy
from chat_gateway.proxy.upstream import get_http_client
from chat_gateway.proxy.vector_search import VectorSearchProxy
from chat_gateway.sessions.factory import get_session_store

__all__ = [
    "get_apps_script_proxy",
    "get_chat_router",
    "get_http_client",
    "get_model_catalog",
    "get_session_store",
    "get_transcription_proxy",
    "get_vector_search_proxy",
]

# Created on first use and shared by every request. Two requests racing on
# the first call may each build one; construction has no side effects, so the
# loser is simply garbage-collected.
_chat_router: ChatRouter | None = None


def get_chat_router() -> ChatRouter:
    global _chat_router
    if _chat_router is None:
        _chat_router = ChatRouter()
    return _chat_router


def get_model_catalog(client: httpx.AsyncClient = Depends(get_http_client)) -> ModelCatalog:
    return ModelCatalog(client)


def get_transcription_proxy(client: httpx.AsyncClient = Depends(get_http_client)) -> TranscriptionProxy:
    return TranscriptionProxy(client)


def get_vector_search_proxy(client: httpx.AsyncClient = Depends(get_http_client)) -> VectorSearchProxy:
    return VectorSearchProxy(client)


def get_apps_script_proxy(client: httpx.AsyncClient = Depends(get_http_client)) -> AppsScriptProxy:
    return AppsScriptProxy(client)
