"""Types exchanged over the WebSocket broadcast channel."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Sequence, Union

_OPERATION_FIELDS: dict[str, tuple[str, ...]] = {
    "add": ("path", "value"),
    "remove": ("path",),
    "replace": ("path", "value"),
    "move": ("from", "path"),
    "copy": ("from", "path"),
    "test": ("path", "value"),
}

_SHUTDOWN_FRAME = '{"type":"shutdown"}'


class WsError(Exception):
    """Base class for WebSocket failures."""


class WsConnectionError(WsError):
    """The WebSocket connection failed."""

    def __init__(self, error: object) -> None:
        super().__init__(f"WebSocket connection error: {error}")
        self.error = error


class WsSerializationError(WsError):
    """A message could not be serialized."""

    def __init__(self, error: object) -> None:
        super().__init__(f"Serialization error: {error}")
        self.error = error


class ChannelClosedError(WsError):
    """The broadcast channel is closed or the receiver fell behind."""

    def __init__(self) -> None:
        super().__init__("Broadcast channel closed")


class ClientDisconnectedError(WsError):
    """The client closed the connection."""

    def __init__(self) -> None:
        super().__init__("Connection closed by client")


@dataclass(frozen=True)
class ClientId:
    """Unique identifier of a connected client."""

    value: uuid.UUID

    @classmethod
    def generate(cls) -> ClientId:
        return cls(uuid.uuid4())

    def __str__(self) -> str:
        return str(self.value)


def _normalize_operation(operation: Mapping[str, Any]) -> dict[str, Any]:
    if not isinstance(operation, Mapping):
        raise ValueError(f"patch operation must be a mapping, got {type(operation).__name__}")
    name = operation.get("op")
    fields = _OPERATION_FIELDS.get(name) if isinstance(name, str) else None
    if fields is None:
        raise ValueError(f"unknown patch operation: {name!r}")
    missing = [key for key in fields if key not in operation]
    if missing:
        raise ValueError(f"patch operation {name!r} is missing {', '.join(missing)}")
    for key in ("path", "from"):
        if key in fields:
            pointer = operation[key]
            if not isinstance(pointer, str) or (pointer and not pointer.startswith("/")):
                raise ValueError(f"invalid JSON pointer for {key!r}: {pointer!r}")
    return {"op": name, **{key: operation[key] for key in fields}}


@dataclass(frozen=True)
class WsPatch:
    """A JSON Patch document: an ordered list of operations."""

    operations: Sequence[Mapping[str, Any]]

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "operations", tuple(_normalize_operation(op) for op in self.operations)
        )

    def to_json(self) -> str:
        """Serialize the patch as compact JSON."""
        try:
            return json.dumps(
                list(self.operations),
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
            )
        except (TypeError, ValueError) as error:
            raise WsSerializationError(error) from error


@dataclass(frozen=True)
class PatchMessage:
    """Broadcast of a state patch."""

    patch: WsPatch


@dataclass(frozen=True)
class ShutdownMessage:
    """Broadcast announcing that the server is shutting down."""


BroadcastMessage = Union[PatchMessage, ShutdownMessage]


def to_frame_payload(message: BroadcastMessage) -> str:
    """Return the text frame sent to clients for a broadcast message."""
    if isinstance(message, PatchMessage):
        return message.patch.to_json()
    if isinstance(message, ShutdownMessage):
        return _SHUTDOWN_FRAME
    raise TypeError(f"not a broadcast message: {message!r}")