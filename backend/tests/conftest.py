"""
Root conftest.py — Shared fixtures for ALL tests (unit + integration)

Fixture hierarchy:
  function-scoped : fake_llm, fake_registry, memory_store, upstream,
                    http_client, chat_router, app_with_overrides, async_client

Environment strategy:
  - Every provider credential is set to a dummy value BEFORE any app import;
    tests that need a missing credential blank it with monkeypatch.
  - No test reaches a real provider: chat models are replaced by FakeChatModel
    through the registry, and every outbound httpx call goes through
    UpstreamStub (an httpx.MockTransport that records requests).

How to run:
  pytest                          # all tests
  pytest -m unit                  # unit tests only
  pytest -m integration           # API-level tests
"""

from __future__ import annotations

import asyncio
import dataclasses
import os
from typing import AsyncGenerator, Callable

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient
from langchain_core.messages import AIMessageChunk

# ─────────────────────────────────────────────────────────────────────────────
# Patch settings BEFORE any app imports so modules read test config
# ─────────────────────────────────────────────────────────────────────────────

os.environ.setdefault("OPENAI_API_KEY",               "sk-test-key")
os.environ.setdefault("GOOGLE_GENERATIVE_AI_API_KEY", "gemini-test-key")
os.environ.setdefault("CLOUDFLARE_AI_TOKEN",          "cf-test-token")
os.environ.setdefault("CLOUDFLARE_ACCOUNT_ID",        "cf-account-123")
os.environ.setdefault("GOOGLE_APPS_SCRIPT_API_KEY",   "gas-test-key")
os.environ.setdefault("VECTORIZE_SEARCH_URL",         "https://vector.test/search")
os.environ.setdefault("SESSION_STORE_BACKEND",        "memory")
os.environ.setdefault("APP_ENV",                      "development")
os.environ["LANGSMITH_API_KEY"] = ""


# ─────────────────────────────────────────────────────────────────────────────
# Fake chat model — stands in for a LangChain BaseChatModel
# ─────────────────────────────────────────────────────────────────────────────

class FakeChatModel:
    """
    Streams `chunks` as AIMessageChunks.

    error_before: raised before the first chunk (handshake failure)
    error_after:  index at which a mid-stream RuntimeError is raised
    hold_after:   index at which the stream blocks until `release` is set
    """

    def __init__(
        self,
        chunks:       list[str],
        error_before: Exception | None = None,
        error_after:  int | None = None,
        hold_after:   int | None = None,
    ) -> None:
        self.chunks       = chunks
        self.error_before = error_before
        self.error_after  = error_after
        self.hold_after   = hold_after
        self.release      = asyncio.Event()
        self.calls: list[list] = []
        self.closed = False

    async def astream(self, messages):
        self.calls.append(list(messages))
        try:
            if self.error_before is not None:
                raise self.error_before
            for index, text in enumerate(self.chunks):
                if self.error_after is not None and index == self.error_after:
                    raise RuntimeError("connection reset by upstream")
                if self.hold_after is not None and index == self.hold_after:
                    await self.release.wait()
                yield AIMessageChunk(content=text)
        finally:
            self.closed = True


class FakeModelBuilder:
    """Replaces ProviderSpec.build_chat_model; records every build."""

    def __init__(self) -> None:
        self.model  = FakeChatModel(["Hello!"])
        self.builds: list[tuple[str, dict]] = []

    def __call__(self, model: str, creds) -> FakeChatModel:
        self.builds.append((model, dict(creds)))
        return self.model


class UpstreamStub:
    """
    Records outbound httpx requests and answers them with `responder`.

    Usage::

        upstream.responder = lambda request: httpx.Response(200, json={"data": []})
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json={})
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)


# ─────────────────────────────────────────────────────────────────────────────
# Core fixtures
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def fake_llm() -> FakeModelBuilder:
    return FakeModelBuilder()


@pytest.fixture
def fake_registry(fake_llm):
    """Default providers (names, defaults, credentials) with a fake chat model."""
    from chat_gateway.llm.registry import DEFAULT_PROVIDERS, ProviderRegistry

    registry = ProviderRegistry()
    for spec in DEFAULT_PROVIDERS:
        registry.register(dataclasses.replace(spec, build_chat_model=fake_llm))
    return registry


@pytest.fixture
def memory_store():
    from chat_gateway.sessions.memory import InMemorySessionStore
    return InMemorySessionStore()


@pytest.fixture
def chat_router(fake_registry, memory_store):
    from chat_gateway.llm.gateway import ChatRouter
    return ChatRouter(registry=fake_registry, store=memory_store)


@pytest.fixture
def upstream() -> UpstreamStub:
    return UpstreamStub()


@pytest_asyncio.fixture
async def http_client(upstream) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        yield client


@pytest.fixture
def settings():
    """The live settings object — blank a credential with monkeypatch.setattr."""
    from chat_gateway.core.config import settings as live_settings
    return live_settings


# ─────────────────────────────────────────────────────────────────────────────
# FastAPI test client with dependency overrides
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def app_with_overrides(chat_router, memory_store, http_client):
    """
    FastAPI app with every external collaborator overridden:
      - get_chat_router   → ChatRouter over the fake registry + memory store
      - get_session_store → the same memory store
      - get_http_client   → httpx client on UpstreamStub
    """
    from chat_gateway.api.dependencies import get_chat_router, get_http_client, get_session_store
    from chat_gateway.main import app

    app.dependency_overrides[get_chat_router]   = lambda: chat_router
    app.dependency_overrides[get_session_store] = lambda: memory_store
    app.dependency_overrides[get_http_client]   = lambda: http_client

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(app_with_overrides) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client using the overridden app (httpx ASGITransport)."""
    from httpx import ASGITransport
    transport = ASGITransport(app=app_with_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
