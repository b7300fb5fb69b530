"""
Session Store — Abstract Base

Every backend (in-memory, SQL database) implements this interface. The chat
router and the session endpoint only speak this protocol, so backends are
swappable without touching API code.

Partition contract (enforced by ALL implementations):
  - Each session_id maps to exactly one independent record.
  - put() overwrites the whole record (last writer wins, no merge).
  - get() after a completed put() on the same key returns that payload.
  - get() on a never-written key returns None — never raises.
  - Payloads are JSON-serializable values (the router stores message lists).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class SessionStoreBase(ABC):
    """Keyed, durable put/get of per-session payloads."""

    @abstractmethod
    async def put(self, session_id: str, payload: Any) -> None:
        """Replace the record stored under session_id."""

    @abstractmethod
    async def get(self, session_id: str) -> Any | None:
        """Return the stored payload, or None when the key was never written."""

    async def close(self) -> None:
        """Release backend resources (connection pools). No-op by default."""
