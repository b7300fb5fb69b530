"""
Unit Tests — Auxiliary proxies
══════════════════════════════
TranscriptionProxy, VectorSearchProxy, AppsScriptProxy and relay().
Outbound calls are captured by UpstreamStub.
"""

from __future__ import annotations

import httpx
import pytest

from chat_gateway.core.errors import InvalidRequestBody, MisconfiguredProvider, UpstreamUnavailable
from chat_gateway.proxy.apps_script import AppsScriptProxy
from chat_gateway.proxy.transcription import OPENAI_TRANSCRIPTIONS_URL, TranscriptionProxy
from chat_gateway.proxy.upstream import relay
from chat_gateway.proxy.vector_search import VectorSearchProxy


def _refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


# ─────────────────────────────────────────────────────────────────────────────
# relay()
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
class TestRelay:

    def test_copies_status_body_and_content_type(self):
        upstream = httpx.Response(429, json={"error": "slow down"})
        response = relay(upstream)

        assert response.status_code == 429
        assert response.body == upstream.content
        assert response.headers["content-type"] == "application/json"

    def test_missing_content_type_falls_back_to_octet_stream(self):
        response = relay(httpx.Response(200, content=b"\x00\x01"))
        assert response.headers["content-type"] == "application/octet-stream"


# ─────────────────────────────────────────────────────────────────────────────
# Transcription
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
class TestTranscriptionProxy:

    async def test_posts_multipart_to_whisper(self, http_client, upstream):
        upstream.responder = lambda request: httpx.Response(200, json={"text": "hello world"})
        proxy = TranscriptionProxy(http_client)

        response = await proxy.transcribe("clip.webm", b"RIFF....", "audio/webm")

        assert response.json() == {"text": "hello world"}
        request = upstream.requests[0]
        assert request.url == OPENAI_TRANSCRIPTIONS_URL
        assert request.headers["Authorization"] == "Bearer sk-test-key"
        assert request.headers["content-type"].startswith("multipart/form-data")
        body = request.read()
        assert b'name="model"' in body and b"whisper-1" in body
        assert b'filename="clip.webm"' in body

    async def test_missing_key_raises_without_network(self, http_client, upstream, settings, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", "")
        with pytest.raises(MisconfiguredProvider):
            await TranscriptionProxy(http_client).transcribe("a.wav", b"x")
        assert upstream.requests == []

    async def test_transport_error_is_upstream_unavailable(self, http_client, upstream):
        upstream.responder = _refuse
        with pytest.raises(UpstreamUnavailable) as exc_info:
            await TranscriptionProxy(http_client).transcribe("a.wav", b"x")
        assert exc_info.value.status_code == 502


# ─────────────────────────────────────────────────────────────────────────────
# Vector search
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
class TestVectorSearchProxy:

    async def test_forwards_body_to_configured_url(self, http_client, upstream):
        upstream.responder = lambda request: httpx.Response(200, json={"matches": []})

        response = await VectorSearchProxy(http_client).search({"query": "refund policy", "topK": 3})

        assert response.status_code == 200
        request = upstream.requests[0]
        assert str(request.url) == "https://vector.test/search"
        assert request.method == "POST"
        assert b'"topK"' in request.read()
        assert "Authorization" not in request.headers

    async def test_optional_bearer_token(self, http_client, upstream, settings, monkeypatch):
        monkeypatch.setattr(settings, "vectorize_api_token", "vec-token")
        await VectorSearchProxy(http_client).search({"query": "q"})
        assert upstream.requests[0].headers["Authorization"] == "Bearer vec-token"

    async def test_unconfigured_url(self, http_client, upstream, settings, monkeypatch):
        monkeypatch.setattr(settings, "vectorize_search_url", "")
        with pytest.raises(MisconfiguredProvider) as exc_info:
            await VectorSearchProxy(http_client).search({"query": "q"})
        assert exc_info.value.missing == ["VECTORIZE_SEARCH_URL"]
        assert upstream.requests == []


# ─────────────────────────────────────────────────────────────────────────────
# Apps Script
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
class TestAppsScriptProxy:

    async def test_list_projects_reduces_fields(self, http_client, upstream):
        upstream.responder = lambda request: httpx.Response(200, json={"projects": [
            {"scriptId": "abc_123", "title": "Mailer", "createTime": "2024-01-01T00:00:00Z"},
        ]})

        response, projects = await AppsScriptProxy(http_client).list_projects()

        assert response.is_success
        assert projects == [{"id": "abc_123", "title": "Mailer"}]
        assert upstream.requests[0].url.params["key"] == "gas-test-key"

    async def test_list_files_returns_names(self, http_client, upstream):
        upstream.responder = lambda request: httpx.Response(200, json={"files": [
            {"name": "Code", "type": "SERVER_JS"},
            {"name": "appsscript", "type": "JSON"},
        ]})

        _, files = await AppsScriptProxy(http_client).list_files("abc_123")

        assert files == ["Code", "appsscript"]
        assert upstream.requests[0].url.path == "/v1/projects/abc_123/content"

    @pytest.mark.parametrize("script_id", [None, "", "../etc", "abc def", "id?x=1"])
    async def test_invalid_script_id_rejected_without_network(self, http_client, upstream, script_id):
        with pytest.raises(InvalidRequestBody):
            await AppsScriptProxy(http_client).list_files(script_id)
        assert upstream.requests == []

    async def test_upstream_error_returned_untouched(self, http_client, upstream):
        upstream.responder = lambda request: httpx.Response(403, json={"error": {"code": 403}})

        response, projects = await AppsScriptProxy(http_client).list_projects()

        assert response.status_code == 403
        assert projects == []

    @pytest.mark.parametrize("body", [
        {"content": b"<html>captive portal</html>", "headers": {"content-type": "text/html"}},
        {"json": [{"scriptId": "s1"}]},
    ])
    async def test_unreadable_success_body_is_upstream_unavailable(self, http_client, upstream, body):
        upstream.responder = lambda request: httpx.Response(200, **body)

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await AppsScriptProxy(http_client).list_projects()
        assert exc_info.value.status_code == 502

        with pytest.raises(UpstreamUnavailable):
            await AppsScriptProxy(http_client).list_files("s1")

    async def test_missing_api_key(self, http_client, upstream, settings, monkeypatch):
        monkeypatch.setattr(settings, "google_apps_script_api_key", "")
        with pytest.raises(MisconfiguredProvider):
            await AppsScriptProxy(http_client).list_projects()
        assert upstream.requests == []
