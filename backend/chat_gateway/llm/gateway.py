"""
Chat Router — provider dispatch + streaming relay

  ┌──────────────────────────────────────────────────────────┐
  │  ChatRouter.open_stream(request)                         │
  │       │                                                  │
  │       ▼                                                  │
  │  ProviderRegistry.resolve()      ← 400 UnknownProvider    │
  │  ProviderRegistry.credentials()  ← 500 Misconfigured      │
  │       │          (both before ANY network call)          │
  │       ▼                                                  │
  │  spec.build_chat_model(model)    ← "" → default model     │
  │       │                                                  │
  │       ▼                                                  │
  │  llm.astream(full history)       ← first chunk awaited    │
  │       │          failure here → UpstreamUnavailable       │
  │       ▼                                                  │
  │  ChatStream  → relayed chunk by chunk to the caller       │
  │       └── SessionStore.put()  fire-and-forget             │
  └──────────────────────────────────────────────────────────┘

Only the first chunk is awaited before the HTTP response starts, so an
upstream that refuses the handshake produces a normal (non-streamed) error
response. After that, a failing upstream simply ends the stream early.

No retries: one upstream attempt per caller request.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, AsyncIterator, Callable

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from chat_gateway.core.errors import UpstreamUnavailable
from chat_gateway.llm.registry import ProviderRegistry, ProviderSpec, get_registry
from chat_gateway.schemas.chat import ChatRequest, Message
from chat_gateway.sessions.base import SessionStoreBase

logger = logging.getLogger(__name__)

_MESSAGE_TYPES: dict[str, type[BaseMessage]] = {
    "user":      HumanMessage,
    "assistant": AIMessage,
    "system":    SystemMessage,
}

# Strong references to in-flight persistence tasks (the event loop only keeps weak ones).
_background_tasks: set[asyncio.Task] = set()


def to_langchain_messages(messages: list[Message]) -> list[BaseMessage]:
    return [_MESSAGE_TYPES[str(m.role)](content=m.content) for m in messages]


def _chunk_text(chunk: Any) -> str:
    """Text delta of one AIMessageChunk; non-text content parts are dropped."""
    content = getattr(chunk, "content", chunk)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part if isinstance(part, str) else str(part.get("text", ""))
            for part in content
            if isinstance(part, (str, dict))
        )
    return ""


async def _aclose(iterator: Any) -> None:
    aclose = getattr(iterator, "aclose", None)
    if aclose is not None:
        await aclose()


# ---------------------------------------------------------------------------
# ChatStream — the relay handed to StreamingResponse
# ---------------------------------------------------------------------------

class ChatStream:
    """
    Async iterator of text chunks, already primed with the first upstream chunk.

    Iterating drains the upstream one chunk at a time; nothing is buffered
    beyond the chunk in hand. If the consumer stops early (client disconnect
    cancels the response task), the upstream iterator is closed, which
    cancels the in-flight provider call.
    """

    def __init__(
        self,
        provider:    str,
        model:       str,
        first:       Any | None,
        upstream:    AsyncIterator[Any],
        on_complete: Callable[[str], None] | None = None,
    ) -> None:
        self.provider     = provider
        self.model        = model
        self._first       = first
        self._upstream    = upstream
        self._on_complete = on_complete

    async def aclose(self) -> None:
        """Close the upstream iterator. Safe to call after the relay already did."""
        await _aclose(self._upstream)

    def __aiter__(self) -> AsyncIterator[str]:
        return self._relay()

    async def _relay(self) -> AsyncIterator[str]:
        t0     = time.perf_counter()
        parts: list[str] = []
        try:
            if self._first is not None:
                text = _chunk_text(self._first)
                if text:
                    parts.append(text)
                    yield text
            async for chunk in self._upstream:
                text = _chunk_text(chunk)
                if text:
                    parts.append(text)
                    yield text
        except Exception as exc:
            # Headers are already sent; the truncated body is the failure signal.
            logger.warning(
                "ChatStream | provider=%s model=%s stream truncated after %d chunks: %s",
                self.provider, self.model, len(parts), type(exc).__name__,
            )
            return
        finally:
            await _aclose(self._upstream)

        logger.info(
            "ChatStream | provider=%s model=%s chunks=%d chars=%d latency_ms=%.1f",
            self.provider, self.model, len(parts), sum(map(len, parts)),
            (time.perf_counter() - t0) * 1000,
        )
        if self._on_complete is not None:
            self._on_complete("".join(parts))


# ---------------------------------------------------------------------------
# ChatRouter
# ---------------------------------------------------------------------------

class ChatRouter:
    """
    Provider-agnostic chat entry point.

    Instantiate once per application and reuse; it holds no per-request state.

    Usage (FastAPI endpoint)::

        stream = await router.open_stream(chat_request)
        return StreamingResponse(stream, media_type="text/plain")
    """

    def __init__(
        self,
        registry: ProviderRegistry | None = None,
        store:    SessionStoreBase | None = None,
    ) -> None:
        self._registry = registry or get_registry()
        self._store    = store

    @property
    def store(self) -> SessionStoreBase:
        if self._store is None:
            from chat_gateway.sessions.factory import get_session_store
            self._store = get_session_store()
        return self._store

    def prepare(self, request: ChatRequest) -> tuple[ProviderSpec, str, Any]:
        """
        Validate and build the callable model. Pure: no network I/O.

        Raises:
            UnknownProvider, MisconfiguredProvider
        """
        spec  = self._registry.resolve(request.provider)
        creds = self._registry.credentials_for(spec)
        model = spec.resolve_model(request.model)
        return spec, model, spec.build_chat_model(model, creds)

    async def open_stream(self, request: ChatRequest) -> ChatStream:
        """
        Start the upstream call and wait for its first chunk.

        Raises:
            UnknownProvider:       provider not registered (no upstream call made)
            MisconfiguredProvider: credentials missing (no upstream call made)
            UpstreamUnavailable:   upstream failed before producing output
        """
        spec, model, llm = self.prepare(request)
        logger.info(
            "ChatRouter | provider=%s model=%s messages=%d session=%s",
            spec.name, model, len(request.messages), request.session_id or "-",
        )

        upstream = llm.astream(to_langchain_messages(request.messages)).__aiter__()
        try:
            first = await upstream.__anext__()
        except StopAsyncIteration:
            first = None
        except Exception as exc:
            await _aclose(upstream)
            error = UpstreamUnavailable.from_exception(spec.display_name, exc)
            logger.warning(
                "ChatRouter | provider=%s model=%s handshake failed status=%d: %s",
                spec.name, model, error.status_code, exc,
            )
            raise error from exc

        on_complete: Callable[[str], None] | None = None
        if request.session_id:
            session_id  = request.session_id
            history     = [m.model_dump() for m in request.messages]
            first_write = self._persist(session_id, history)

            def on_complete(reply: str) -> None:
                self._persist(
                    session_id,
                    history + [{"role": "assistant", "content": reply}],
                    after=first_write,
                )

        return ChatStream(spec.name, model, first, upstream, on_complete)

    # -----------------------------------------------------------------------
    # Session persistence — fire-and-forget, never delays the stream
    # -----------------------------------------------------------------------

    def _persist(
        self,
        session_id: str,
        messages:   list[dict],
        after:      asyncio.Task | None = None,
    ) -> asyncio.Task:
        task = asyncio.create_task(self._write_session(session_id, messages, after))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        return task

    async def _write_session(
        self,
        session_id: str,
        messages:   list[dict],
        after:      asyncio.Task | None = None,
    ) -> None:
        """
        Errors here are logged but never surfaced to the caller.

        `after` is an earlier write for the same request; it must commit
        first so the record ends with the assistant reply.
        """
        if after is not None:
            await asyncio.wait([after])
        try:
            await self.store.put(session_id, messages)
        except Exception as exc:
            logger.warning(
                "ChatRouter | session write failed (non-fatal) session=%s: %s", session_id, exc,
            )


async def drain_background_tasks() -> None:
    """Wait for pending session writes (used at shutdown and in tests)."""
    if _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)
