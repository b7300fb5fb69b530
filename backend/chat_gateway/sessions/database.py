"""
SQL-backed session store (PostgreSQL via asyncpg).

Table: chat_sessions
  session_id  TEXT PRIMARY KEY      — the opaque key, one row per session
  payload     JSONB NOT NULL        — the whole message history
  updated_at  TIMESTAMPTZ NOT NULL  — time of the last overwrite

put() is a single-statement upsert (INSERT ... ON CONFLICT DO UPDATE) in its
own transaction, so concurrent writers on the same key never produce a
merged or duplicate row: the last statement to commit wins.

Rows are never deleted here; expiry is handled outside the gateway.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, String, func, select
from sqlalchemy.dialects.postgresql import JSONB, insert
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from chat_gateway.core.config import settings
from chat_gateway.sessions.base import SessionStoreBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class ChatSession(Base):
    __tablename__ = "chat_sessions"

    session_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    payload:    Mapped[Any] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


def create_engine_from_settings() -> AsyncEngine:
    if not settings.database_url:
        raise RuntimeError("SESSION_STORE_BACKEND=database requires DATABASE_URL")
    return create_async_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,          # detect stale connections before use
        pool_recycle=3600,
        echo=settings.db_echo_sql,
    )


class DatabaseSessionStore(SessionStoreBase):
    """
    Usage::

        store = DatabaseSessionStore()            # engine from DATABASE_URL
        await store.create_tables()               # once, at startup
        await store.put("abc", [{"role": "user", "content": "hi"}])
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        engine:          AsyncEngine | None = None,
    ) -> None:
        if session_factory is None:
            engine = engine or create_engine_from_settings()
            session_factory = async_sessionmaker(
                bind=engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        self._engine          = engine
        self._session_factory = session_factory

    async def create_tables(self) -> None:
        if self._engine is None:
            return
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("DatabaseSessionStore | table %s ready", ChatSession.__tablename__)

    async def put(self, session_id: str, payload: Any) -> None:
        now  = datetime.now(timezone.utc)
        stmt = insert(ChatSession).values(session_id=session_id, payload=payload, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ChatSession.session_id],
            set_={"payload": stmt.excluded.payload, "updated_at": stmt.excluded.updated_at},
        )
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(stmt)
        logger.debug("DatabaseSessionStore | put session_id=%s", session_id)

    async def get(self, session_id: str) -> Any | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatSession.payload).where(ChatSession.session_id == session_id)
            )
            return result.scalar_one_or_none()

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
