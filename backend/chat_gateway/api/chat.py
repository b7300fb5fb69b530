"""
Chat API — streaming chat + model catalog

POST /api/chat              → text/plain token stream
GET  /api/models?provider=  → {"models": [...]}

Streaming response format:
  Raw text deltas, in upstream order, no framing. Concatenating the body
  gives the assistant reply. A body that ends early (no trailer) means the
  upstream failed mid-stream; errors raised before the first chunk come back
  as a normal JSON ErrorResponse instead.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from chat_gateway.api.dependencies import get_chat_router, get_model_catalog
from chat_gateway.llm.catalog import ModelCatalog
from chat_gateway.llm.gateway import ChatRouter
from chat_gateway.schemas.chat import ChatRequest, ModelListResponse
from chat_gateway.schemas.errors import ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])


@router.post(
    "/chat",
    summary="Stream a chat completion",
    response_class=StreamingResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Unknown provider"},
        500: {"model": ErrorResponse, "description": "Provider credentials missing"},
        502: {"model": ErrorResponse, "description": "Upstream failed before streaming"},
    },
)
async def chat(
    body:        ChatRequest,
    chat_router: ChatRouter = Depends(get_chat_router),
) -> StreamingResponse:
    # Validation, credentials and the upstream handshake all happen here,
    # BEFORE the StreamingResponse exists, so they surface as real statuses.
    stream = await chat_router.open_stream(body)

    return StreamingResponse(
        stream,
        media_type="text/plain; charset=utf-8",
        headers={
            "Cache-Control":     "no-cache",
            "X-Accel-Buffering": "no",    # disable nginx buffering
            "X-Provider":        stream.provider,
            "X-Model":           stream.model,
        },
        # Closes the upstream even when the body is never iterated.
        background=BackgroundTask(stream.aclose),
    )


@router.get(
    "/models",
    response_model=ModelListResponse,
    summary="List chat-capable models for a provider",
    responses={
        400: {"model": ErrorResponse, "description": "Unknown provider"},
        500: {"model": ErrorResponse, "description": "Provider credentials missing"},
    },
)
async def list_models(
    provider: str | None = Query(None, description="Registered provider name"),
    catalog:  ModelCatalog = Depends(get_model_catalog),
) -> ModelListResponse:
    entries = await catalog.list_models(provider)
    return ModelListResponse(models=[entry.id for entry in entries])
