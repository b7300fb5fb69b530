"""
Audio transcription proxy — OpenAI Whisper.

POST https://api.openai.com/v1/audio/transcriptions
  multipart: file=<audio blob>, model=<TRANSCRIPTION_MODEL>

The upstream JSON ({"text": "..."}) and status are relayed as-is.
"""

from __future__ import annotations

import logging

import httpx

from chat_gateway.core.config import Settings, get_settings
from chat_gateway.core.errors import MisconfiguredProvider, UpstreamUnavailable
from chat_gateway.observability.tracing import traced

logger = logging.getLogger(__name__)

OPENAI_TRANSCRIPTIONS_URL = "https://api.openai.com/v1/audio/transcriptions"


class TranscriptionProxy:

    def __init__(self, client: httpx.AsyncClient, settings: Settings | None = None) -> None:
        self._client   = client
        self._settings = settings or get_settings()

    def check_configured(self) -> str:
        api_key = self._settings.openai_api_key
        if not api_key:
            raise MisconfiguredProvider("Audio transcription", ["OPENAI_API_KEY"])
        return api_key

    @traced("proxy.transcribe")
    async def transcribe(
        self,
        filename:     str,
        content:      bytes,
        content_type: str | None = None,
    ) -> httpx.Response:
        api_key = self.check_configured()
        logger.info("TranscriptionProxy | file=%s bytes=%d", filename, len(content))
        try:
            return await self._client.post(
                OPENAI_TRANSCRIPTIONS_URL,
                headers={"Authorization": f"Bearer {api_key}"},
                data={"model": self._settings.transcription_model},
                files={"file": (filename, content, content_type or "application/octet-stream")},
            )
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable.from_exception("Audio transcription", exc) from exc
