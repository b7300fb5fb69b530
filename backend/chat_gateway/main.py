"""
FastAPI Application — Entry Point

Multi-provider chat gateway

Architecture:
  - All gateway routes live under /api/ (the browser client's base path)
  - Provider credentials come from process configuration, never the caller
  - Chat responses stream as text/plain; everything else is JSON
  - Structured JSON error responses on all gateway-generated 4xx/5xx

Middleware stack (innermost → outermost):
  1. CORS — restrict to configured origins
  2. Request ID + logging — X-Request-ID header and one log line per request

No compression middleware: it would buffer the token stream.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chat_gateway.api.chat import router as chat_router
from chat_gateway.api.proxies import router as proxies_router
from chat_gateway.api.sessions import router as sessions_router
from chat_gateway.core.config import settings
from chat_gateway.core.errors import GatewayError
from chat_gateway.llm.gateway import drain_background_tasks
from chat_gateway.observability.tracing import TracingConfig
from chat_gateway.proxy.upstream import close_http_client
from chat_gateway.schemas.errors import ErrorDetail, ErrorResponse
from chat_gateway.sessions.factory import close_session_store, get_session_store

logger = logging.getLogger(__name__)

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)


# ---------------------------------------------------------------------------
# Application lifespan — startup / shutdown hooks
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: log which providers are configured, prepare the session store.
    Shutdown: flush pending session writes, close pools.
    """
    from chat_gateway.llm.registry import get_registry

    registry = get_registry()
    for name in registry.names():
        spec = registry.resolve(name)
        configured = all(getattr(settings, secret.lower(), "") for secret in spec.required_credentials)
        logger.info("Provider %s: %s", name, "configured" if configured else "NOT configured")

    store = get_session_store()
    create_tables = getattr(store, "create_tables", None)
    if create_tables is not None:
        await create_tables()
    logger.info("Session store: %s", type(store).__name__)

    yield

    logger.info("Shutting down chat gateway")
    await drain_background_tasks()
    await close_http_client()
    await close_session_store()


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app() -> FastAPI:
    app = FastAPI(
        title="Chat Gateway",
        description=(
            "Routes chat requests to interchangeable LLM providers and relays "
            "their token streams, model catalogs and auxiliary results."
        ),
        version="1.0.0",
        docs_url="/api/docs" if not settings.is_production else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )

    allowed_origins = ["*"] if settings.app_env == "development" else []
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-Provider", "X-Model"],
    )

    # ----------------------------------------------------------------
    # Request ID + structured logging middleware
    # ----------------------------------------------------------------

    @app.middleware("http")
    async def request_id_and_logging(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()

        response = await call_next(request)

        # For streamed chat responses this is time-to-headers, not time-to-last-byte.
        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "HTTP %s %s %d %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    # ----------------------------------------------------------------
    # Exception handlers — uniform structured error responses
    # ----------------------------------------------------------------

    def _request_id(request: Request) -> str:
        return getattr(request.state, "request_id", None) or request.headers.get(
            "X-Request-ID", str(uuid.uuid4())
        )

    @app.exception_handler(GatewayError)
    async def gateway_exception_handler(request: Request, exc: GatewayError):
        body = ErrorResponse(
            error_code=exc.error_code,
            message=exc.message,
            details=(
                [ErrorDetail(field=exc.field, message=exc.message, code=exc.error_code)]
                if exc.field else []
            ),
            request_id=_request_id(request),
        )
        return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Convert Pydantic/FastAPI validation errors to structured ErrorResponse."""
        details = [
            ErrorDetail(
                field=" → ".join(str(loc) for loc in err["loc"]),
                message=err["msg"],
                code="VALIDATION_ERROR",
            )
            for err in exc.errors()
        ]
        body = ErrorResponse(
            error_code="VALIDATION_ERROR",
            message="Request validation failed.",
            details=details,
            request_id=_request_id(request),
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=body.model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch-all for unhandled exceptions — never expose stack traces."""
        request_id = _request_id(request)
        logger.exception(
            "Unhandled exception | path=%s request_id=%s",
            request.url.path, request_id,
        )
        body = ErrorResponse(
            error_code="INTERNAL_ERROR",
            message="An unexpected error occurred.",
            request_id=request_id,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(mode="json"),
            headers={"X-Request-ID": request_id},
        )

    # ----------------------------------------------------------------
    # Routers
    # ----------------------------------------------------------------

    app.include_router(chat_router,     prefix="/api")
    app.include_router(sessions_router, prefix="/api")
    app.include_router(proxies_router,  prefix="/api")

    TracingConfig.init()

    @app.get(
        "/health",
        tags=["Operations"],
        summary="Liveness probe",
        description="Returns 200 if the process is alive. No upstream checks.",
    )
    async def health() -> dict:
        return {"status": "ok", "service": "chat-gateway"}

    return app


# ---------------------------------------------------------------------------
# Application instance (imported by uvicorn)
# ---------------------------------------------------------------------------

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "chat_gateway.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.app_env == "development",
        log_level="debug" if settings.debug else "info",
        access_log=True,
    )
