"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.responses import Response

from manifestarr.infrastructure.config import AppConfig
from manifestarr.interfaces.app_state import AppState
from manifestarr.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app: configuration ONLY, NO resource initialization.

    Resources (cache, browser pool, extractor) are created in lifespan().
    """
    app = FastAPI(
        title="Manifestarr",
        description="Resolves movies and TV episodes to HLS manifest URLs",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config
    app.state.ready = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    from manifestarr.interfaces.api.manifest import router as manifest_router
    from manifestarr.interfaces.api.stats import router as stats_router

    app.include_router(manifest_router)
    app.include_router(stats_router)

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        """Liveness probe, returns 200 as long as the process is running."""
        return {"status": "ok"}

    @app.get("/readyz")
    async def readyz() -> Response:
        """Readiness probe: 200 after startup complete, 503 otherwise."""
        if getattr(app.state, "ready", False):
            return JSONResponse({"status": "ready"}, status_code=200)
        return JSONResponse({"status": "not_ready"}, status_code=503)

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ):
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                query=str(request.url.query),
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
