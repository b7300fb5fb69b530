"""
Google Apps Script project proxy.

  list_projects()      GET /v1/projects               → [{"id", "title"}]
  list_files(id)       GET /v1/projects/{id}/content  → [file name]

Success bodies are reduced to the fields the project browser renders; a
non-2xx upstream response is returned untouched so the endpoint can relay it.
A 2xx body that is not a JSON object raises UpstreamUnavailable (502).
"""

from __future__ import annotations

import logging
import re

import httpx

from chat_gateway.core.config import Settings, get_settings
from chat_gateway.core.errors import InvalidRequestBody, MisconfiguredProvider, UpstreamUnavailable
from chat_gateway.observability.tracing import traced

logger = logging.getLogger(__name__)

APPS_SCRIPT_API = "https://script.googleapis.com/v1/projects"

_SCRIPT_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class AppsScriptProxy:

    def __init__(self, client: httpx.AsyncClient, settings: Settings | None = None) -> None:
        self._client   = client
        self._settings = settings or get_settings()

    def check_configured(self) -> str:
        api_key = self._settings.google_apps_script_api_key
        if not api_key:
            raise MisconfiguredProvider("Google Apps Script", ["GOOGLE_APPS_SCRIPT_API_KEY"])
        return api_key

    async def _get(self, url: str) -> httpx.Response:
        api_key = self.check_configured()
        try:
            return await self._client.get(
                url,
                params={"key": api_key},
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable.from_exception("Google Apps Script", exc) from exc

    def _payload(self, response: httpx.Response) -> dict:
        """2xx body as a JSON object; anything else is an upstream fault."""
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            logger.warning(
                "AppsScriptProxy | unexpected %d body content-type=%s",
                response.status_code, response.headers.get("content-type", "-"),
            )
            raise UpstreamUnavailable("Google Apps Script returned an unreadable response")
        return payload

    @traced("proxy.apps_script.projects")
    async def list_projects(self) -> tuple[httpx.Response, list[dict[str, str]]]:
        response = await self._get(APPS_SCRIPT_API)
        if not response.is_success:
            return response, []
        projects = [
            {"id": project.get("scriptId", ""), "title": project.get("title", "")}
            for project in self._payload(response).get("projects") or []
            if isinstance(project, dict)
        ]
        return response, projects

    @traced("proxy.apps_script.files")
    async def list_files(self, script_id: str | None) -> tuple[httpx.Response, list[str]]:
        if not script_id or not _SCRIPT_ID_RE.match(script_id):
            raise InvalidRequestBody("Invalid or missing id", field="id")
        response = await self._get(f"{APPS_SCRIPT_API}/{script_id}/content")
        if not response.is_success:
            return response, []
        files = [
            f.get("name", "")
            for f in self._payload(response).get("files") or []
            if isinstance(f, dict)
        ]
        return response, files
