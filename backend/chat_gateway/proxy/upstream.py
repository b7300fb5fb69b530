"""
Shared outbound HTTP client + verbatim relay helper.

One httpx.AsyncClient is created lazily and shared by every proxy and the
model catalog (connection pooling across requests). No timeout is set: an
upstream that hangs blocks only the request waiting on it.

relay() copies the upstream status, body and content type onto a FastAPI
Response unchanged. Auxiliary endpoints are dumb pipes: upstream error
bodies are never rewrapped.
"""

from __future__ import annotations

import logging

import httpx
from fastapi import Response

logger = logging.getLogger(__name__)

_client: httpx.AsyncClient | None = None


def get_http_client() -> httpx.AsyncClient:
    global _client
    if _client is None:
        _client = httpx.AsyncClient(timeout=None, follow_redirects=True)
    return _client


async def close_http_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def relay(response: httpx.Response) -> Response:
    media_type = response.headers.get("content-type", "application/octet-stream")
    return Response(
        content=response.content,
        status_code=response.status_code,
        media_type=media_type,
    )
