"""
Chat Gateway — Pydantic Request/Response Schemas

Design decisions:
  - The caller resends the full message history on every request; the
    gateway never builds context server-side.
  - `provider` is a free string here and is validated against the provider
    registry by the chat router (so unknown names fail with UNKNOWN_PROVIDER,
    not a generic 422).
  - An empty `model` string is equivalent to an omitted one: the router
    substitutes the provider's default.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Role(str, Enum):
    USER      = "user"
    ASSISTANT = "assistant"
    SYSTEM    = "system"


class Message(BaseModel):
    """One turn of the conversation. Insertion order is conversation order."""
    model_config = ConfigDict(frozen=True, use_enum_values=True, extra="ignore")

    role:    Role
    content: str


class ChatRequest(BaseModel):
    """POST /api/chat body."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    session_id: str | None = Field(
        None,
        alias="sessionId",
        description="Opaque session key. When present the history is persisted.",
    )
    provider: str = Field(..., examples=["openai"])
    model:    str = Field("", description="Provider model id; empty = provider default.")
    messages: list[Message] = Field(..., min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _legacy_session_key(cls, data: Any) -> Any:
        """Older clients send the session id as `id`."""
        if isinstance(data, dict) and "id" in data and not data.keys() & {"sessionId", "session_id"}:
            data = {**data, "sessionId": data["id"]}
        return data

    @field_validator("model", mode="before")
    @classmethod
    def _none_model_is_default(cls, value: Any) -> Any:
        return "" if value is None else value


class ModelCatalogEntry(BaseModel):
    """Normalized catalog entry — provider-specific metadata is discarded."""
    id: str


class ModelListResponse(BaseModel):
    """GET /api/models response."""
    models: list[str] = Field(default_factory=list)


class VectorSearchRequest(BaseModel):
    """POST /api/vectorize/search body."""
    model_config = ConfigDict(extra="allow")

    query: str = Field(..., min_length=1)
