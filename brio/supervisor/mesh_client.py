"""Dispatching tasks to agents over the service mesh."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

from brio.mesh import Binary, Json, Payload
from brio.supervisor import bindings
from brio.supervisor.domain import AgentId, Task

MeshCall = Callable[[str, str, Payload], Payload]


class MeshError(Exception):
    """Base class for failures while talking to an agent."""

    prefix = "Mesh error"

    def __init__(self, message: str) -> None:
        super().__init__(f"{self.prefix}: {message}")
        self.message = message


class AgentNotFoundError(MeshError):
    """The target agent is not known to the mesh."""

    prefix = "Agent not found"


class SerializationError(MeshError):
    """A request or response could not be encoded or decoded."""

    prefix = "Serialization error"


class AgentError(MeshError):
    """The agent answered with an error."""

    prefix = "Agent error"


class TransportError(MeshError):
    """The call could not be delivered."""

    prefix = "Transport error"


class DispatchResult(Enum):
    """Outcome of handing a task to an agent."""

    ACCEPTED = "accepted"
    AGENT_BUSY = "busy"


class AgentDispatcher(ABC):
    """Contract for handing tasks to agents."""

    @abstractmethod
    def dispatch(self, agent: AgentId, task: Task) -> DispatchResult:
        """Send a task to an agent; raises MeshError on failure."""


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def encode_dispatch_request(task: Task) -> str:
    """Encode the request an agent receives to execute a task."""
    return (
        f'{{"task_id":{task.id.value},'
        f'"content":"{_escape(task.content)}",'
        f'"priority":{task.priority.value}}}'
    )


class BindingAgentDispatcher(AgentDispatcher):
    """Dispatcher backed by the host service-mesh interface."""

    def __init__(self, call: Optional[MeshCall] = None) -> None:
        self._call = call

    def dispatch(self, agent: AgentId, task: Task) -> DispatchResult:
        payload = Json(encode_dispatch_request(task))
        call = self._call if self._call is not None else bindings.call
        try:
            response = call(agent.value, "execute", payload)
        except RuntimeError as error:
            raise TransportError(str(error)) from error

        if isinstance(response, Binary):
            raise SerializationError("Unexpected binary response")
        if "accepted" in response.text:
            return DispatchResult.ACCEPTED
        if "busy" in response.text:
            return DispatchResult.AGENT_BUSY
        raise AgentError(response.text)