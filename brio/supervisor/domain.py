"""Value objects and entities of the supervisor."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional

_U64_MAX = 2**64 - 1


@dataclass(frozen=True)
class TaskId:
    """Unique identifier of a task."""

    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= _U64_MAX:
            raise ValueError(f"TaskId out of range: {self.value}")

    def __str__(self) -> str:
        return f"task_{self.value}"


@dataclass(frozen=True)
class AgentId:
    """Identifier of an agent in the mesh; never empty."""

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("AgentId cannot be empty")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, order=True)
class Priority:
    """Task priority from 0 to 255; higher is more urgent."""

    MIN: ClassVar[Priority]
    MAX: ClassVar[Priority]
    DEFAULT: ClassVar[Priority]

    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= 255:
            raise ValueError(f"Priority out of range: {self.value}")


Priority.MIN = Priority(0)
Priority.MAX = Priority(255)
Priority.DEFAULT = Priority(128)


class ParseStatusError(ValueError):
    """Raised for a status string that names no known status."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Unknown task status: '{text}'")
        self.text = text


class TaskStatus(Enum):
    """Task lifecycle: pending, then assigned, then completed or failed."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def parse(cls, text: str) -> TaskStatus:
        """Parse a status name, ignoring case."""
        try:
            return cls(text.lower())
        except ValueError:
            raise ParseStatusError(text) from None


@dataclass(frozen=True)
class Task:
    """An immutable unit of work."""

    id: TaskId
    content: str
    priority: Priority = Priority.DEFAULT
    status: TaskStatus = TaskStatus.PENDING
    assigned_agent: Optional[AgentId] = None

    def is_pending(self) -> bool:
        """True if the task is waiting to be dispatched."""
        return self.status is TaskStatus.PENDING