"""The supervision loop: fetch pending tasks and dispatch them to agents."""

from __future__ import annotations

from brio.supervisor.domain import AgentId, Task
from brio.supervisor.mesh_client import (
    AgentDispatcher,
    BindingAgentDispatcher,
    DispatchResult,
    MeshError,
)
from brio.supervisor.repository import (
    BindingTaskRepository,
    RepositoryError,
    TaskRepository,
)

_DEFAULT_AGENT = "agent_coder"


class SupervisorError(Exception):
    """Base class for supervision failures."""

    prefix = "Supervisor failure"

    def __init__(self, error: Exception) -> None:
        super().__init__(f"{self.prefix}: {error}")
        self.error = error


class RepositoryFailure(SupervisorError):
    """Pending tasks could not be fetched."""

    prefix = "Repository failure"


class DispatchFailure(SupervisorError):
    """A task could not be dispatched to an agent."""

    prefix = "Dispatch failure"


class StatusUpdateFailure(SupervisorError):
    """A task's status could not be updated."""

    prefix = "Status update failure"


class Supervisor:
    """Coordinates fetching tasks, dispatching them and recording the outcome."""

    def __init__(self, repository: TaskRepository, dispatcher: AgentDispatcher) -> None:
        self.repository = repository
        self.dispatcher = dispatcher

    def poll_pending_tasks(self) -> int:
        """Run one cycle; returns how many tasks were dispatched."""
        try:
            pending = self.repository.fetch_pending_tasks()
        except RepositoryError as error:
            raise RepositoryFailure(error) from error

        dispatched = 0
        for task in pending:
            try:
                if self._dispatch_task(task):
                    dispatched += 1
            except SupervisorError as error:
                self._handle_dispatch_failure(task, error)
        return dispatched

    def _dispatch_task(self, task: Task) -> bool:
        agent = self._select_agent(task)
        try:
            result = self.dispatcher.dispatch(agent, task)
        except MeshError as error:
            raise DispatchFailure(error) from error

        if result is DispatchResult.AGENT_BUSY:
            return False
        try:
            self.repository.mark_assigned(task.id, agent)
        except RepositoryError as error:
            raise StatusUpdateFailure(error) from error
        return True

    def _select_agent(self, task: Task) -> AgentId:
        return AgentId(_DEFAULT_AGENT)

    def _handle_dispatch_failure(self, task: Task, error: SupervisorError) -> None:
        try:
            self.repository.mark_failed(task.id, str(error))
        except RepositoryError:
            pass


def run() -> int:
    """Run one supervision cycle against the host; -1 if it fails."""
    supervisor = Supervisor(BindingTaskRepository(), BindingAgentDispatcher())
    try:
        return supervisor.poll_pending_tasks()
    except SupervisorError:
        return -1