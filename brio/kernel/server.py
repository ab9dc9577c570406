"""Control-plane HTTP server with health, metrics and WebSocket endpoints."""

from __future__ import annotations

import asyncio
import ipaddress
import logging

from aiohttp import web

from brio.kernel.broadcaster import Broadcaster
from brio.kernel.config import Settings
from brio.kernel.connection import Connection
from brio.kernel.ws_types import WsError

logger = logging.getLogger(__name__)

_BROADCASTER = web.AppKey("broadcaster", Broadcaster)


async def health_check(request: web.Request) -> web.Response:
    """Liveness and readiness probe."""
    return web.Response(text="OK")


async def _metrics(request: web.Request) -> web.Response:
    return web.Response(text="", content_type="text/plain")


async def handle_ws_upgrade(request: web.Request) -> web.WebSocketResponse:
    """Upgrade to a WebSocket and stream broadcasts to the client."""
    logger.info("WebSocket upgrade requested")
    broadcaster = request.app[_BROADCASTER]
    socket = web.WebSocketResponse(autoping=False)
    await socket.prepare(request)

    connection = Connection(socket, broadcaster.subscribe())
    try:
        await connection.run()
    except WsError as error:
        logger.error("WebSocket connection error: %s", error)
    return socket


def ws_router(broadcaster: Broadcaster) -> web.Application:
    """An application serving the ``/ws`` endpoint for ``broadcaster``."""
    app = web.Application()
    app[_BROADCASTER] = broadcaster
    app.router.add_get("/ws", handle_ws_upgrade)
    return app


def create_app(broadcaster: Broadcaster) -> web.Application:
    """The full control plane: health probes, metrics and the WebSocket endpoint."""
    app = ws_router(broadcaster)
    app.router.add_get("/health/live", health_check)
    app.router.add_get("/health/ready", health_check)
    app.router.add_get("/metrics", _metrics)
    return app


async def run_server(settings: Settings, broadcaster: Broadcaster) -> None:
    """Serve the control plane until cancelled."""
    host = settings.server.host
    port = settings.server.port
    try:
        ipaddress.ip_address(host)
    except ValueError:
        raise ValueError(f"invalid socket address syntax: {host}:{port}") from None

    runner = web.AppRunner(create_app(broadcaster))
    await runner.setup()
    try:
        site = web.TCPSite(runner, host, port)
        await site.start()
        logger.info("Control Plane listening on %s:%s", host, port)
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()