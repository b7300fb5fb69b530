"""
Gateway error taxonomy.

Every error the gateway reports deliberately is a GatewayError. The FastAPI
exception handler in main.py renders them all through the same
ErrorResponse envelope, so route handlers only ever `raise`.

  UnknownProvider        400  caller error, no retry helps
  InvalidRequestBody     400  caller error
  MisconfiguredProvider  500  operator error, caller cannot fix
  UpstreamUnavailable    502  transient (or the upstream's own status)
"""

from __future__ import annotations

from fastapi import status


class GatewayError(Exception):
    """Base class for errors rendered as a structured ErrorResponse."""

    error_code:  str = "GATEWAY_ERROR"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field   = field


class UnknownProvider(GatewayError):
    error_code  = "UNKNOWN_PROVIDER"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, provider: str | None) -> None:
        super().__init__(f"Unknown provider: {provider!r}", field="provider")
        self.provider = provider


class MisconfiguredProvider(GatewayError):
    """A required secret is absent. The message names the secret, never its value."""

    error_code  = "MISCONFIGURED_PROVIDER"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, target: str, missing: list[str]) -> None:
        super().__init__(f"{target} is not configured: missing {', '.join(missing)}")
        self.target  = target
        self.missing = missing


class InvalidRequestBody(GatewayError):
    error_code  = "INVALID_REQUEST_BODY"
    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamUnavailable(GatewayError):
    error_code  = "UPSTREAM_UNAVAILABLE"
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, *, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        if upstream_status is not None and 400 <= upstream_status <= 599:
            self.status_code = upstream_status

    @classmethod
    def from_exception(cls, target: str, exc: BaseException) -> "UpstreamUnavailable":
        """
        Classify an exception raised by an upstream SDK or HTTP client.

        openai.APIStatusError exposes `status_code`; httpx.HTTPStatusError
        exposes `response.status_code`. Anything else (connection refused,
        DNS failure, ...) has no informative status and maps to 502.
        """
        upstream_status = getattr(exc, "status_code", None)
        if upstream_status is None:
            response = getattr(exc, "response", None)
            upstream_status = getattr(response, "status_code", None)
        if not isinstance(upstream_status, int):
            upstream_status = None
        return cls(
            f"{target} upstream call failed: {type(exc).__name__}",
            upstream_status=upstream_status,
        )
