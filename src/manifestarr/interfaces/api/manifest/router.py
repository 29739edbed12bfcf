"""Manifest resolution endpoints.

GET /movie/{id}                   -> movie embed
GET /tv/{id}/{season}/{episode}   -> tv episode embed

Response shapes::

    200 {"success": true, "m3u8Url": "...", "server": "Vfast"}
    400 {"error": "<reason>"}          invalid request
    404 {"error": "m3u8 not found"}    extraction saw no manifest
    500 {"error": "<message>"}         browser / upstream failure
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from contextlib import suppress
from typing import TypeVar, cast

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from manifestarr.domain.entities.media import (
    InvalidRequest,
    ManifestNotFound,
    MediaRequest,
    MediaType,
    UpstreamError,
)
from manifestarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["manifest"])

_T = TypeVar("_T")

# How often a waiting request checks whether its client is still connected.
_DISCONNECT_POLL_SECONDS = 1.0

# nginx convention for "client closed request"; never actually delivered.
_CLIENT_CLOSED_STATUS = 499


class _ClientDisconnected(Exception):
    """The caller went away before resolution finished."""


async def _cancel_on_disconnect(
    request: Request,
    work: Awaitable[_T],
    *,
    poll_interval: float = _DISCONNECT_POLL_SECONDS,
) -> _T:
    """Await *work*, cancelling it if the client disconnects first."""
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
                raise _ClientDisconnected
    finally:
        if not task.done():
            task.cancel()


async def _resolve(request: Request, media_request: MediaRequest) -> Response:
    state = cast(AppState, request.app.state)
    use_case = state.resolve_manifest_uc

    try:
        result = await _cancel_on_disconnect(
            request, use_case.execute(media_request)
        )
    except InvalidRequest as e:
        log.info("manifest_invalid_request", error=str(e))
        return JSONResponse(status_code=400, content={"error": str(e)})
    except ManifestNotFound as e:
        return JSONResponse(status_code=404, content={"error": str(e)})
    except UpstreamError as e:
        log.warning("manifest_upstream_error", error=str(e))
        return JSONResponse(status_code=500, content={"error": str(e)})
    except _ClientDisconnected:
        log.info(
            "manifest_client_disconnected",
            media_type=media_request.media_type.value,
            media_id=media_request.media_id,
        )
        return Response(status_code=_CLIENT_CLOSED_STATUS)
    except Exception as e:
        log.exception("manifest_unhandled_error", media_id=media_request.media_id)
        return JSONResponse(
            status_code=500, content={"error": str(e) or type(e).__name__}
        )

    return JSONResponse(
        content={
            "success": True,
            "m3u8Url": result.manifest_url,
            "server": result.server,
        }
    )


@router.get("/movie/{media_id}")
async def movie_manifest(
    request: Request,
    media_id: str,
    server: str | None = Query(default=None, description="Embed server label."),
) -> Response:
    """Resolve the manifest URL of a movie."""
    return await _resolve(
        request,
        MediaRequest(media_type=MediaType.MOVIE, media_id=media_id, server=server),
    )


@router.get("/tv/{media_id}/{season}/{episode}")
async def tv_manifest(
    request: Request,
    media_id: str,
    season: int,
    episode: int,
    server: str | None = Query(default=None, description="Embed server label."),
) -> Response:
    """Resolve the manifest URL of a TV episode."""
    return await _resolve(
        request,
        MediaRequest(
            media_type=MediaType.TV_EPISODE,
            media_id=media_id,
            season=season,
            episode=episode,
            server=server,
        ),
    )
