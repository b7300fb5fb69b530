"""
Observability Tracing — LangSmith activation + span logging

Two pieces:

  TracingConfig.init()
    Called once at app startup. When LANGSMITH_API_KEY is configured,
    exports the LANGCHAIN_* variables that LangChain reads on import, so
    every provider call made through a chat model is traced automatically.

  @traced(name)
    Instruments an async upstream call with timing and error logging.
    Always active; uses Python logging as the baseline backend.

Environment variables:
  LANGSMITH_API_KEY=ls__...
  LANGSMITH_PROJECT=chat-gateway
"""

from __future__ import annotations

import functools
import logging
import os
import time
from typing import Any, Callable, Coroutine, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Coroutine[Any, Any, Any]])


class TracingConfig:
    """Initialise LangSmith tracing from settings, once per process."""

    _initialised: bool = False

    @classmethod
    def init(cls) -> None:
        if cls._initialised:
            return
        cls._initialised = True

        from chat_gateway.core.config import settings

        if settings.langsmith_api_key and not os.environ.get("LANGCHAIN_API_KEY"):
            os.environ["LANGCHAIN_TRACING_V2"] = "true"
            os.environ["LANGCHAIN_API_KEY"]    = settings.langsmith_api_key
            os.environ["LANGCHAIN_PROJECT"]    = settings.langsmith_project
            logger.info("LangSmith tracing enabled | project=%s", settings.langsmith_project)
        elif os.environ.get("LANGCHAIN_TRACING_V2") == "true":
            logger.info(
                "LangSmith tracing active (from env) | project=%s",
                os.environ.get("LANGCHAIN_PROJECT", "default"),
            )
        else:
            logger.debug("LangSmith tracing disabled")


def traced(name: str | None = None) -> Callable[[F], F]:
    """
    Decorator that logs elapsed time and failures of an async function.

    Usage::

        @traced("catalog.list_models")
        async def list_models(self, provider: str) -> list[ModelCatalogEntry]:
            ...
    """
    def decorator(func: F) -> F:
        span_name = name or func.__qualname__

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            t0 = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as exc:
                elapsed_ms = (time.perf_counter() - t0) * 1000
                logger.warning(
                    "trace | span=%s elapsed_ms=%.1f error=%s",
                    span_name, elapsed_ms, type(exc).__name__,
                )
                raise
            elapsed_ms = (time.perf_counter() - t0) * 1000
            logger.debug("trace | span=%s elapsed_ms=%.1f ok", span_name, elapsed_ms)
            return result

        return wrapper  # type: ignore[return-value]
    return decorator
