"""
Provider Registry — name → provider description

Each provider is one ProviderSpec value:

  name                  unique lookup key ("openai", "gemini", "cloudflare")
  default_model         used when the caller omits the model (or sends "")
  required_credentials  names of the secrets that must be configured
  build_chat_model      (model, credentials) → LangChain chat model
  catalog               how to ask the provider for its model list

The router and the catalog adapter only ever talk to the registry, so adding
a provider means registering one more ProviderSpec — no router changes.

Credentials are resolved from Settings on every call (never from the caller)
and checked BEFORE anything touches the network.

All three default providers are reached through langchain_openai.ChatOpenAI:
OpenAI natively, Gemini and Workers AI through their OpenAI-compatible
endpoints. `max_retries=0` keeps it to a single upstream attempt per request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from langchain_core.language_models.chat_models import BaseChatModel

from chat_gateway.core.config import Settings, get_settings
from chat_gateway.core.errors import MisconfiguredProvider, UnknownProvider

logger = logging.getLogger(__name__)

Credentials = Mapping[str, str]

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
CLOUDFLARE_API_BASE    = "https://api.cloudflare.com/client/v4/accounts"


# ---------------------------------------------------------------------------
# Catalog description — pure filter + sort pipeline over the upstream JSON
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CatalogSpec:
    """
    How to read one provider's model list.

    url(credentials)      → upstream GET url
    headers(credentials)  → request headers (auth)
    entries(payload)      → the list of raw model objects in the response
    model_id(entry)       → identifier extracted from one raw object
    keep(entry)           → provider-specific predicate (chat-capable models)
    """
    url:      Callable[[Credentials], str]
    entries:  Callable[[dict], list]
    model_id: Callable[[dict], str]
    keep:     Callable[[dict], bool]
    headers:  Callable[[Credentials], dict[str, str]] = lambda _creds: {}


# ---------------------------------------------------------------------------
# ProviderSpec
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProviderSpec:
    name:                 str
    display_name:         str
    default_model:        str
    required_credentials: tuple[str, ...]
    build_chat_model:     Callable[[str, Credentials], BaseChatModel]
    catalog:              CatalogSpec | None = None
    aliases:              tuple[str, ...]   = field(default_factory=tuple)

    def resolve_model(self, requested: str | None) -> str:
        """Caller's model passes through verbatim; empty/omitted → default."""
        return requested or self.default_model


class ProviderRegistry:
    """
    Lookup table of ProviderSpecs.

    Usage::

        registry = build_default_registry()
        spec     = registry.resolve("gemini")
        creds    = registry.credentials_for(spec)
        llm      = spec.build_chat_model(spec.resolve_model(""), creds)
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._providers: dict[str, ProviderSpec] = {}
        self._aliases:   dict[str, str]          = {}
        self._settings  = settings

    def register(self, spec: ProviderSpec) -> None:
        key = spec.name.lower()
        if key in self._providers or key in self._aliases:
            raise ValueError(f"Provider already registered: {spec.name!r}")
        self._providers[key] = spec
        for alias in spec.aliases:
            self._aliases[alias.lower()] = key

    def resolve(self, name: str | None) -> ProviderSpec:
        key = (name or "").strip().lower()
        key = self._aliases.get(key, key)
        spec = self._providers.get(key)
        if spec is None:
            raise UnknownProvider(name)
        return spec

    def names(self) -> list[str]:
        return sorted(self._providers)

    def credentials_for(self, spec: ProviderSpec) -> dict[str, str]:
        """
        Read the provider's secrets from settings.

        Raises:
            MisconfiguredProvider: naming every missing secret (never a value).
        """
        settings = self._settings or get_settings()
        creds = {
            secret: getattr(settings, secret.lower(), "") or ""
            for secret in spec.required_credentials
        }
        missing = [secret for secret, value in creds.items() if not value]
        if missing:
            logger.error(
                "ProviderRegistry | provider=%s missing credentials=%s",
                spec.name, ",".join(missing),
            )
            raise MisconfiguredProvider(spec.display_name, missing)
        return creds


# ---------------------------------------------------------------------------
# Provider-specific builders
# ---------------------------------------------------------------------------

def _chat_openai(**kwargs: Any) -> BaseChatModel:
    from langchain_openai import ChatOpenAI
    return ChatOpenAI(
        temperature=get_settings().llm_temperature,
        streaming=True,
        max_retries=0,
        **kwargs,
    )


def _build_openai(model: str, creds: Credentials) -> BaseChatModel:
    return _chat_openai(model=model, api_key=creds["OPENAI_API_KEY"])


def _build_gemini(model: str, creds: Credentials) -> BaseChatModel:
    return _chat_openai(
        model=model,
        api_key=creds["GOOGLE_GENERATIVE_AI_API_KEY"],
        base_url=GEMINI_OPENAI_BASE_URL,
    )


def _build_cloudflare(model: str, creds: Credentials) -> BaseChatModel:
    return _chat_openai(
        model=model,
        api_key=creds["CLOUDFLARE_AI_TOKEN"],
        base_url=f"{CLOUDFLARE_API_BASE}/{creds['CLOUDFLARE_ACCOUNT_ID']}/ai/v1",
    )


def _bearer(secret: str) -> Callable[[Credentials], dict[str, str]]:
    return lambda creds: {"Authorization": f"Bearer {creds[secret]}"}


def _strip_models_prefix(name: str) -> str:
    return name.removeprefix("models/")


OPENAI = ProviderSpec(
    name                 = "openai",
    display_name         = "OpenAI",
    default_model        = "gpt-4o-mini",
    required_credentials = ("OPENAI_API_KEY",),
    build_chat_model     = _build_openai,
    catalog              = CatalogSpec(
        url      = lambda _creds: "https://api.openai.com/v1/models",
        headers  = _bearer("OPENAI_API_KEY"),
        entries  = lambda payload: payload.get("data") or [],
        model_id = lambda entry: entry.get("id", ""),
        keep     = lambda entry: entry.get("id", "").startswith("gpt-"),
    ),
)

GEMINI = ProviderSpec(
    name                 = "gemini",
    display_name         = "Gemini",
    default_model        = "gemini-1.5-pro-latest",
    required_credentials = ("GOOGLE_GENERATIVE_AI_API_KEY",),
    build_chat_model     = _build_gemini,
    catalog              = CatalogSpec(
        url      = lambda creds: (
            "https://generativelanguage.googleapis.com/v1/models"
            f"?key={creds['GOOGLE_GENERATIVE_AI_API_KEY']}"
        ),
        entries  = lambda payload: payload.get("models") or [],
        model_id = lambda entry: _strip_models_prefix(entry.get("name", "")),
        keep     = lambda entry: "generateContent" in (entry.get("supportedGenerationMethods") or []),
    ),
)

CLOUDFLARE = ProviderSpec(
    name                 = "cloudflare",
    display_name         = "Cloudflare Workers AI",
    default_model        = "@cf/meta/llama-3.1-8b-instruct",
    required_credentials = ("CLOUDFLARE_AI_TOKEN", "CLOUDFLARE_ACCOUNT_ID"),
    build_chat_model     = _build_cloudflare,
    catalog              = CatalogSpec(
        url      = lambda creds: f"{CLOUDFLARE_API_BASE}/{creds['CLOUDFLARE_ACCOUNT_ID']}/ai/models/search",
        headers  = _bearer("CLOUDFLARE_AI_TOKEN"),
        entries  = lambda payload: payload.get("result") or [],
        model_id = lambda entry: entry.get("name", ""),
        keep     = lambda entry: any(family in entry.get("name", "") for family in ("llama", "mistral")),
    ),
    aliases              = ("workers",),
)

DEFAULT_PROVIDERS: tuple[ProviderSpec, ...] = (OPENAI, GEMINI, CLOUDFLARE)


def build_default_registry(settings: Settings | None = None) -> ProviderRegistry:
    registry = ProviderRegistry(settings=settings)
    for spec in DEFAULT_PROVIDERS:
        registry.register(spec)
    return registry


_registry: ProviderRegistry | None = None


def get_registry() -> ProviderRegistry:
    global _registry
    if _registry is None:
        _registry = build_default_registry()
    return _registry
