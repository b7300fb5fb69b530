"""
Auxiliary proxy endpoints — dumb pipes

POST /api/transcribe           multipart (file | audio) → Whisper, relayed
POST /api/vectorize/search     {"query": ...}           → vector search, relayed
GET  /api/projects                                      → {"projects": [...]}
GET  /api/projects/files?id=                            → {"files": [...]}

Validation happens before the upstream call: a bad request never costs an
outbound request.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from chat_gateway.api.dependencies import (
    get_apps_script_proxy,
    get_transcription_proxy,
    get_vector_search_proxy,
)
from chat_gateway.core.errors import InvalidRequestBody
from chat_gateway.proxy.apps_script import AppsScriptProxy
from chat_gateway.proxy.transcription import TranscriptionProxy
from chat_gateway.proxy.upstream import relay
from chat_gateway.proxy.vector_search import VectorSearchProxy
from chat_gateway.schemas.chat import VectorSearchRequest
from chat_gateway.schemas.errors import ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Proxies"])

_AUDIO_FIELDS = ("file", "audio")


@router.post(
    "/transcribe",
    summary="Transcribe an uploaded audio file",
    responses={
        400: {"model": ErrorResponse, "description": "Missing file part"},
        500: {"model": ErrorResponse, "description": "Transcription not configured"},
    },
)
async def transcribe(
    request: Request,
    proxy:   TranscriptionProxy = Depends(get_transcription_proxy),
) -> Response:
    form   = await request.form()
    upload = next(
        (form[name] for name in _AUDIO_FIELDS if isinstance(form.get(name), UploadFile)),
        None,
    )
    if upload is None:
        raise InvalidRequestBody("Missing audio file part", field="file")

    content = await upload.read()
    if not content:
        raise InvalidRequestBody("Uploaded audio file is empty", field="file")

    upstream = await proxy.transcribe(
        filename=upload.filename or "audio",
        content=content,
        content_type=upload.content_type,
    )
    return relay(upstream)


@router.post(
    "/vectorize/search",
    summary="Similarity search over the vector index",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid body"},
        500: {"model": ErrorResponse, "description": "Vector search not configured"},
    },
)
async def vector_search(
    request: Request,
    proxy:   VectorSearchProxy = Depends(get_vector_search_proxy),
) -> Response:
    try:
        payload = await request.json()
    except ValueError as exc:
        raise InvalidRequestBody("Invalid JSON body") from exc

    try:
        body = VectorSearchRequest.model_validate(payload)
    except ValidationError as exc:
        raise InvalidRequestBody("Body must be an object with a non-empty 'query'", field="query") from exc

    upstream = await proxy.search(body.model_dump())
    return relay(upstream)


@router.get(
    "/projects",
    summary="List Apps Script projects",
    response_model=None,
    responses={500: {"model": ErrorResponse, "description": "Apps Script not configured"}},
)
async def list_projects(proxy: AppsScriptProxy = Depends(get_apps_script_proxy)) -> Response | dict:
    upstream, projects = await proxy.list_projects()
    if not upstream.is_success:
        return relay(upstream)
    return {"projects": projects}


@router.get(
    "/projects/files",
    summary="List the files of one Apps Script project",
    response_model=None,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or missing id"},
        500: {"model": ErrorResponse, "description": "Apps Script not configured"},
    },
)
async def list_project_files(
    script_id: str | None = Query(None, alias="id"),
    proxy:     AppsScriptProxy = Depends(get_apps_script_proxy),
) -> Response | dict:
    upstream, files = await proxy.list_files(script_id)
    if not upstream.is_success:
        return relay(upstream)
    return {"files": files}
