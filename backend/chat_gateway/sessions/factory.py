"""
Session Store Factory

Selects the backend (memory | database) from SESSION_STORE_BACKEND. The rest
of the app only imports get_session_store() — never the concrete classes.

The store is process-wide: every request shares the same instance so that a
write from one request is visible to a later read from another.
"""

from __future__ import annotations

from chat_gateway.core.config import settings
from chat_gateway.sessions.base import SessionStoreBase

_store: SessionStoreBase | None = None


def create_session_store(backend: str | None = None) -> SessionStoreBase:
    backend = (backend or settings.session_store_backend).lower()

    if backend == "memory":
        from chat_gateway.sessions.memory import InMemorySessionStore
        return InMemorySessionStore()

    if backend == "database":
        from chat_gateway.sessions.database import DatabaseSessionStore
        return DatabaseSessionStore()

    raise ValueError(
        f"Unknown session store backend: '{backend}'. "
        f"Valid options: 'memory', 'database'"
    )


def get_session_store() -> SessionStoreBase:
    global _store
    if _store is None:
        _store = create_session_store()
    return _store


async def close_session_store() -> None:
    global _store
    if _store is not None:
        await _store.close()
        _store = None
