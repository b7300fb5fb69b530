"""
Auxiliary Proxies — validate config → one upstream call → relay

  TranscriptionProxy   audio blob → OpenAI Whisper
  VectorSearchProxy    {query}    → configured similarity-search endpoint
  AppsScriptProxy      project / file listing → Google Apps Script API

No retries, no normalization of upstream error bodies.
"""

from chat_gateway.proxy.apps_script import AppsScriptProxy
from chat_gateway.proxy.transcription import TranscriptionProxy
from chat_gateway.proxy.upstream import close_http_client, get_http_client, relay
from chat_gateway.proxy.vector_search import VectorSearchProxy

__all__ = [
    "AppsScriptProxy",
    "TranscriptionProxy",
    "VectorSearchProxy",
    "close_http_client",
    "get_http_client",
    "relay",
]
