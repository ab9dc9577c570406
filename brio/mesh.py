"""Messages routed between components on the service mesh."""

from __future__ import annotations

from concurrent.futures import Future, InvalidStateError
from dataclasses import dataclass, field
from typing import Callable, Union


@dataclass(frozen=True)
class Json:
    """A payload carrying JSON text."""

    text: str


@dataclass(frozen=True)
class Binary:
    """A payload carrying raw bytes."""

    data: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))


Payload = Union[Json, Binary]


@dataclass
class MeshMessage:
    """A call addressed to a component, with a one-shot reply slot.

    ``reply_future`` resolves to the reply payload, or raises ``RuntimeError``
    carrying the error text the component reported.
    """

    target: str
    method: str
    payload: Payload
    reply_future: Future = field(default_factory=Future, repr=False, compare=False)

    def reply(self, payload: Payload) -> bool:
        """Answer the call; returns False if nobody is waiting for the reply any more."""
        return self._settle(lambda: self.reply_future.set_result(payload))

    def fail(self, error: str) -> bool:
        """Answer the call with an error; returns False if the reply was already settled."""
        return self._settle(lambda: self.reply_future.set_exception(RuntimeError(error)))

    def _settle(self, action: Callable[[], None]) -> bool:
        if self.reply_future.done():
            return False
        try:
            action()
        except InvalidStateError:
            return False
        return True