"""Fan-out of broadcast messages to subscribed WebSocket clients."""

from __future__ import annotations

import asyncio
import logging
from collections import deque

from brio.kernel.ws_types import BroadcastMessage, ChannelClosedError

logger = logging.getLogger(__name__)

BROADCAST_CAPACITY = 256


class _Channel:
    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self.receivers: list[BroadcastReceiver] = []


class Broadcaster:
    """Sends each message to every current subscriber.

    Copies of a broadcaster share the same channel and subscribers.
    """

    def __init__(self, capacity: int = BROADCAST_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._channel = _Channel(capacity)

    def subscribe(self) -> BroadcastReceiver:
        """Register a new subscriber; it receives messages sent from now on."""
        receiver = BroadcastReceiver(self._channel)
        self._channel.receivers.append(receiver)
        logger.debug("Client subscribed (client_count=%d)", self.client_count())
        return receiver

    def broadcast(self, message: BroadcastMessage) -> None:
        """Queue a message for every subscriber; succeeds with no subscribers too."""
        receivers = list(self._channel.receivers)
        if not receivers:
            logger.warning("Broadcast sent but no clients connected")
            return
        for receiver in receivers:
            receiver._push(message)
        logger.debug("Broadcast sent (receiver_count=%d)", len(receivers))

    def client_count(self) -> int:
        """Number of subscribers that have not been closed."""
        return len(self._channel.receivers)


class BroadcastReceiver:
    """One subscriber's view of the broadcast channel."""

    def __init__(self, channel: _Channel) -> None:
        self._channel = channel
        self._buffer: deque[BroadcastMessage] = deque()
        self._skipped = 0
        self._ready = asyncio.Event()
        self._closed = False

    def _push(self, message: BroadcastMessage) -> None:
        if len(self._buffer) >= self._channel.capacity:
            self._buffer.popleft()
            self._skipped += 1
        self._buffer.append(message)
        self._ready.set()

    async def recv(self) -> BroadcastMessage:
        """Wait for the next message.

        Raises ChannelClosedError once the receiver is closed, or once after it
        fell behind and older messages were dropped.
        """
        while True:
            if self._closed:
                raise ChannelClosedError()
            if self._skipped:
                logger.warning("Receiver lagged (skipped=%d)", self._skipped)
                self._skipped = 0
                raise ChannelClosedError()
            if self._buffer:
                return self._buffer.popleft()
            self._ready.clear()
            await self._ready.wait()

    def close(self) -> None:
        """Unsubscribe; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._channel.receivers.remove(self)
        self._buffer.clear()
        self._ready.set()
        logger.debug("Client unsubscribed (client_count=%d)", len(self._channel.receivers))

    def __enter__(self) -> BroadcastReceiver:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()