"""Access to task state through the host SQL interface."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Sequence

from brio.supervisor import bindings
from brio.supervisor.domain import (
    AgentId,
    ParseStatusError,
    Priority,
    Task,
    TaskId,
    TaskStatus,
)

_FETCH_PENDING_SQL = (
    "SELECT id, content, priority, status, assigned_agent "
    "FROM tasks "
    "WHERE status = ? "
    "ORDER BY priority DESC"
)
_MARK_ASSIGNED_SQL = "UPDATE tasks SET status = ?, assigned_agent = ? WHERE id = ?"
_MARK_COMPLETED_SQL = "UPDATE tasks SET status = ? WHERE id = ?"
_MARK_FAILED_SQL = "UPDATE tasks SET status = ?, failure_reason = ? WHERE id = ?"

_UNSIGNED = re.compile(r"\+?[0-9]+")


class RepositoryError(Exception):
    """Base class for task repository failures."""


class TaskSqlError(RepositoryError):
    """A SQL query or statement failed."""

    def __init__(self, message: str) -> None:
        super().__init__(f"SQL error: {message}")
        self.message = message


class TaskParseError(RepositoryError):
    """Data read from the database could not be parsed."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Parse error: {message}")
        self.message = message


class TaskNotFoundError(RepositoryError):
    """No task exists with the given id."""

    def __init__(self, task_id: TaskId) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class TaskRepository(ABC):
    """Contract for reading and updating task state."""

    @abstractmethod
    def fetch_pending_tasks(self) -> list[Task]:
        """Return all pending tasks, highest priority first."""

    @abstractmethod
    def mark_assigned(self, task_id: TaskId, agent: AgentId) -> None:
        """Record that a task was assigned to an agent."""

    @abstractmethod
    def mark_completed(self, task_id: TaskId) -> None:
        """Record that a task completed."""

    @abstractmethod
    def mark_failed(self, task_id: TaskId, reason: str) -> None:
        """Record that a task failed, with the reason."""


def _parse_unsigned(text: str, limit: int) -> int:
    if not text:
        raise ValueError("cannot parse integer from empty string")
    if not _UNSIGNED.fullmatch(text):
        raise ValueError("invalid digit found in string")
    number = int(text)
    if number > limit:
        raise ValueError("number too large to fit in target type")
    return number


def parse_row(columns: Sequence[str], values: Sequence[str]) -> Task:
    """Build a Task from a row given as parallel column and value lists."""
    cells = dict(zip(columns, values))

    def value_of(name: str) -> str:
        if name not in columns:
            raise TaskParseError(f"Missing column: {name}")
        index = list(columns).index(name)
        if index >= len(values):
            raise TaskParseError(f"Missing column: {name}")
        return values[index]

    try:
        raw_id = _parse_unsigned(value_of("id"), 2**64 - 1)
    except ValueError as error:
        raise TaskParseError(f"Invalid id: {error}") from None

    content = value_of("content")

    try:
        raw_priority = _parse_unsigned(value_of("priority"), 255)
    except ValueError as error:
        raise TaskParseError(f"Invalid priority: {error}") from None

    try:
        status = TaskStatus.parse(value_of("status"))
    except ParseStatusError as error:
        raise TaskParseError(str(error)) from None

    agent_text = cells.get("assigned_agent") if "assigned_agent" in columns else None
    if "assigned_agent" in columns and list(columns).index("assigned_agent") >= len(values):
        agent_text = None
    assigned_agent = AgentId(agent_text) if agent_text and agent_text != "NULL" else None

    return Task(TaskId(raw_id), content, Priority(raw_priority), status, assigned_agent)


class BindingTaskRepository(TaskRepository):
    """Task repository backed by the host SQL interface."""

    def fetch_pending_tasks(self) -> list[Task]:
        try:
            rows = bindings.query(_FETCH_PENDING_SQL, [TaskStatus.PENDING.value])
        except RuntimeError as error:
            raise TaskSqlError(str(error)) from error
        return [parse_row(row.columns, row.values) for row in rows]

    def mark_assigned(self, task_id: TaskId, agent: AgentId) -> None:
        self._update(
            task_id,
            _MARK_ASSIGNED_SQL,
            [TaskStatus.ASSIGNED.value, agent.value, str(task_id.value)],
        )

    def mark_completed(self, task_id: TaskId) -> None:
        self._update(
            task_id,
            _MARK_COMPLETED_SQL,
            [TaskStatus.COMPLETED.value, str(task_id.value)],
        )

    def mark_failed(self, task_id: TaskId, reason: str) -> None:
        self._update(
            task_id,
            _MARK_FAILED_SQL,
            [TaskStatus.FAILED.value, reason, str(task_id.value)],
        )

    @staticmethod
    def _update(task_id: TaskId, sql: str, params: list[str]) -> None:
        try:
            affected = bindings.execute(sql, params)
        except RuntimeError as error:
            raise TaskSqlError(str(error)) from error
        if affected == 0:
            raise TaskNotFoundError(task_id)