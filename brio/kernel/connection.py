"""Lifecycle of one WebSocket client connection."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import aiohttp
from aiohttp import WSMsgType

from brio.kernel.broadcaster import BroadcastReceiver
from brio.kernel.ws_types import (
    BroadcastMessage,
    ChannelClosedError,
    ClientId,
    ShutdownMessage,
    WsConnectionError,
    WsError,
    to_frame_payload,
)

logger = logging.getLogger(__name__)

PING_INTERVAL = 30.0

_SEND_ERRORS = (OSError, RuntimeError, aiohttp.ClientError)


class Connection:
    """Relays broadcast messages to one WebSocket client and keeps it alive.

    ``stream`` is a WebSocket with ``receive``, ``send_str``, ``ping``,
    ``pong``, ``close`` and ``exception`` coroutines/methods, such as
    ``aiohttp.web.WebSocketResponse``.
    """

    def __init__(
        self,
        stream: Any,
        receiver: BroadcastReceiver,
        ping_interval: float = PING_INTERVAL,
    ) -> None:
        self.client_id = ClientId.generate()
        self._stream = stream
        self._receiver = receiver
        self._ping_interval = ping_interval
        logger.info("WebSocket connection established (client_id=%s)", self.client_id)

    async def run(self) -> None:
        """Serve the client until it closes or the broadcast channel closes.

        Raises WsConnectionError if the WebSocket fails.
        """
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        incoming: Optional[asyncio.Future] = None
        broadcast: Optional[asyncio.Future] = None
        tick: Optional[asyncio.Future] = None
        try:
            while True:
                if incoming is None:
                    incoming = asyncio.ensure_future(self._stream.receive())
                if broadcast is None:
                    broadcast = asyncio.ensure_future(self._receiver.recv())
                if tick is None:
                    tick = asyncio.ensure_future(asyncio.sleep(max(0.0, next_tick - loop.time())))

                done, _ = await asyncio.wait(
                    {incoming, broadcast, tick}, return_when=asyncio.FIRST_COMPLETED
                )

                if incoming in done:
                    finished, incoming = incoming, None
                    if await self._handle_incoming(finished):
                        break

                if broadcast in done:
                    finished, broadcast = broadcast, None
                    try:
                        message = finished.result()
                    except ChannelClosedError:
                        logger.info("Broadcast channel closed (client_id=%s)", self.client_id)
                        break
                    except WsError as error:
                        logger.warning(
                            "Broadcast error (client_id=%s): %s", self.client_id, error
                        )
                    else:
                        await self._send_broadcast_message(message)

                if tick in done:
                    tick = None
                    next_tick += self._ping_interval
                    await self._send_ping()
        finally:
            pending = [task for task in (incoming, broadcast, tick) if task is not None]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            self._receiver.close()

        await self._graceful_close()

    async def _handle_incoming(self, finished: asyncio.Future) -> bool:
        """Handle one frame from the client; True means stop serving."""
        try:
            message = finished.result()
        except _SEND_ERRORS as error:
            logger.error("WebSocket error (client_id=%s): %s", self.client_id, error)
            raise WsConnectionError(error) from error

        kind = message.type
        if kind is WSMsgType.TEXT or kind is WSMsgType.BINARY:
            logger.debug("Received %s frame (client_id=%s)", kind.name.lower(), self.client_id)
            logger.warning(
                "Unexpected %s from client (client_id=%s)", kind.name.lower(), self.client_id
            )
            return False
        if kind is WSMsgType.PING:
            logger.debug("Ping received (client_id=%s)", self.client_id)
            await self._send(self._stream.pong(message.data or b""))
            return False
        if kind is WSMsgType.PONG:
            logger.debug("Pong received (client_id=%s)", self.client_id)
            return False
        if kind is WSMsgType.CLOSE:
            logger.info("Client initiated close (client_id=%s)", self.client_id)
            return True
        if kind is WSMsgType.ERROR:
            error = self._stream.exception()
            logger.error("WebSocket error (client_id=%s): %s", self.client_id, error)
            raise WsConnectionError(error)
        logger.debug("Stream ended (client_id=%s)", self.client_id)
        return True

    async def _send_broadcast_message(self, message: BroadcastMessage) -> None:
        payload = to_frame_payload(message)
        await self._send(self._stream.send_str(payload))
        if isinstance(message, ShutdownMessage):
            logger.info("Shutdown broadcast received (client_id=%s)", self.client_id)

    async def _send_ping(self) -> None:
        logger.debug("Sending ping (client_id=%s)", self.client_id)
        await self._send(self._stream.ping(b""))

    async def _graceful_close(self) -> None:
        logger.debug("Closing gracefully (client_id=%s)", self.client_id)
        await self._send(self._stream.close())
        logger.info("Connection closed (client_id=%s)", self.client_id)

    @staticmethod
    async def _send(operation: Any) -> None:
        try:
            await operation
        except _SEND_ERRORS as error:
            raise WsConnectionError(error) from error