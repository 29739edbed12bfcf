"""Tests for the manifest resolution router."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from manifestarr.domain.entities.media import (
    BrowserLaunchError,
    InvalidRequest,
    ManifestNotFound,
    MediaRequest,
    MediaType,
    ResolvedManifest,
    UpstreamError,
)
from manifestarr.interfaces.api.manifest.router import (
    _cancel_on_disconnect,
    _ClientDisconnected,
    router,
)

_MANIFEST = "https://cdn.example/stream/abc.m3u8"


def _make_app(execute: AsyncMock) -> FastAPI:
    """Create a minimal FastAPI app with the manifest router."""
    app = FastAPI()
    app.include_router(router)

    use_case = MagicMock()
    use_case.execute = execute
    app.state.resolve_manifest_uc = use_case
    return app


def _found(server: str = "Vfast") -> AsyncMock:
    return AsyncMock(
        return_value=ResolvedManifest(manifest_url=_MANIFEST, server=server)
    )


class TestMovieRoute:
    def test_found(self) -> None:
        execute = _found()
        client = TestClient(_make_app(execute))

        resp = client.get("/movie/12345")

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "m3u8Url": _MANIFEST, "server": "Vfast"}
        request: MediaRequest = execute.call_args[0][0]
        assert request.media_type is MediaType.MOVIE
        assert request.media_id == "12345"
        assert request.server is None

    def test_server_query_param(self) -> None:
        execute = _found(server="Alpha")
        client = TestClient(_make_app(execute))

        resp = client.get("/movie/12345?server=Alpha")

        assert resp.json()["server"] == "Alpha"
        assert execute.call_args[0][0].server == "Alpha"

    def test_not_found(self) -> None:
        execute = AsyncMock(side_effect=ManifestNotFound("https://vidfast.pro/x"))
        client = TestClient(_make_app(execute))

        resp = client.get("/movie/12345")

        assert resp.status_code == 404
        assert resp.json() == {"error": "m3u8 not found"}

    def test_upstream_error(self) -> None:
        execute = AsyncMock(side_effect=UpstreamError("page crashed"))
        client = TestClient(_make_app(execute))

        resp = client.get("/movie/12345")

        assert resp.status_code == 500
        assert resp.json() == {"error": "page crashed"}

    def test_launch_error(self) -> None:
        execute = AsyncMock(side_effect=BrowserLaunchError("Browser launch failed"))
        client = TestClient(_make_app(execute))

        resp = client.get("/movie/12345")

        assert resp.status_code == 500
        assert "error" in resp.json()

    def test_unexpected_error(self) -> None:
        execute = AsyncMock(side_effect=RuntimeError("boom"))
        client = TestClient(_make_app(execute))

        resp = client.get("/movie/12345")

        assert resp.status_code == 500
        assert resp.json() == {"error": "boom"}


class TestTvRoute:
    def test_found(self) -> None:
        execute = _found()
        client = TestClient(_make_app(execute))

        resp = client.get("/tv/999/1/5")

        assert resp.status_code == 200
        assert resp.json()["m3u8Url"] == _MANIFEST
        request: MediaRequest = execute.call_args[0][0]
        assert request.media_type is MediaType.TV_EPISODE
        assert (request.media_id, request.season, request.episode) == ("999", 1, 5)

    def test_invalid_request(self) -> None:
        execute = AsyncMock(side_effect=InvalidRequest("season must be >= 1, got 0"))
        client = TestClient(_make_app(execute))

        resp = client.get("/tv/999/0/5")

        assert resp.status_code == 400
        assert resp.json() == {"error": "season must be >= 1, got 0"}

    def test_non_numeric_season_rejected(self) -> None:
        execute = _found()
        client = TestClient(_make_app(execute))

        resp = client.get("/tv/999/one/5")

        assert resp.status_code == 422
        execute.assert_not_awaited()

    def test_missing_episode_segment(self) -> None:
        execute = _found()
        client = TestClient(_make_app(execute))

        resp = client.get("/tv/999/1")

        assert resp.status_code == 404
        execute.assert_not_awaited()


class TestCancelOnDisconnect:
    async def test_returns_result(self) -> None:
        request = MagicMock()
        request.is_disconnected = AsyncMock(return_value=False)

        async def _work() -> str:
            await asyncio.sleep(0.02)
            return "done"

        result = await _cancel_on_disconnect(request, _work(), poll_interval=0.005)

        assert result == "done"

    async def test_propagates_work_error(self) -> None:
        request = MagicMock()
        request.is_disconnected = AsyncMock(return_value=False)

        async def _work() -> str:
            raise ManifestNotFound("https://vidfast.pro/x")

        with pytest.raises(ManifestNotFound):
            await _cancel_on_disconnect(request, _work(), poll_interval=0.005)

    async def test_disconnect_cancels_work(self) -> None:
        request = MagicMock()
        request.is_disconnected = AsyncMock(return_value=True)
        cancelled = asyncio.Event()

        async def _work() -> str:
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return "never"

        with pytest.raises(_ClientDisconnected):
            await _cancel_on_disconnect(request, _work(), poll_interval=0.005)

        assert cancelled.is_set()
