"""Debug endpoint for in-memory service metrics."""

from __future__ import annotations

from typing import cast

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from manifestarr.interfaces.app_state import AppState

router = APIRouter(tags=["stats"])


@router.get("/stats")
async def stats(request: Request) -> JSONResponse:
    """Return cache/extraction counters plus live cache and in-flight sizes."""
    state = cast(AppState, request.app.state)
    snapshot = state.metrics.snapshot()
    snapshot["cache_size"] = len(state.cache)
    snapshot["in_flight"] = state.resolve_manifest_uc.in_flight
    snapshot["browser_running"] = state.browser_pool.is_running
    return JSONResponse(content=snapshot)
