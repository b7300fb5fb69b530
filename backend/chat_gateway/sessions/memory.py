"""
In-process session store.

One asyncio.Lock per session_id gives each key its own partition:
operations on different keys never wait on each other, and operations on
the same key are applied one at a time in arrival order.

Payloads are deep-copied on the way in and out so a caller mutating its own
list after put() cannot change what is stored.

Records are never deleted, and neither are their locks: both maps grow by
one entry per distinct session_id for the life of the process. Use the
database backend where that matters.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections import defaultdict
from typing import Any

from chat_gateway.sessions.base import SessionStoreBase

logger = logging.getLogger(__name__)


class InMemorySessionStore(SessionStoreBase):

    def __init__(self) -> None:
        self._records: dict[str, Any]           = {}
        self._locks:   dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def put(self, session_id: str, payload: Any) -> None:
        async with self._locks[session_id]:
            self._records[session_id] = copy.deepcopy(payload)
        logger.debug("InMemorySessionStore | put session_id=%s", session_id)

    async def get(self, session_id: str) -> Any | None:
        if session_id not in self._records:
            return None
        async with self._locks[session_id]:
            return copy.deepcopy(self._records.get(session_id))

    def __len__(self) -> int:
        return len(self._records)
