"""
GET /api/session?id=  → stored message list, or [] for an unknown session.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from chat_gateway.api.dependencies import get_session_store
from chat_gateway.core.errors import InvalidRequestBody
from chat_gateway.schemas.errors import ErrorResponse
from chat_gateway.sessions.base import SessionStoreBase

router = APIRouter(tags=["Sessions"])


@router.get(
    "/session",
    summary="Load a stored conversation",
    responses={400: {"model": ErrorResponse, "description": "Missing id"}},
)
async def get_session(
    session_id: str | None = Query(None, alias="id"),
    store: SessionStoreBase = Depends(get_session_store),
) -> Any:
    if not session_id:
        raise InvalidRequestBody("Missing session id", field="id")
    payload = await store.get(session_id)
    return payload if payload is not None else []
