import pytest

from brio.supervisor.domain import AgentId, Priority, Task, TaskId, TaskStatus
from brio.supervisor.repository import (
    BindingTaskRepository,
    RepositoryError,
    TaskNotFoundError,
    TaskParseError,
    TaskRepository,
    TaskSqlError,
    parse_row,
)

COLUMNS = ["id", "content", "priority", "status", "assigned_agent"]


def test_parse_row_builds_task():
    task = parse_row(COLUMNS, ["7", "Fix bug", "200", "pending", "NULL"])
    assert task == Task(TaskId(7), "Fix bug", Priority(200), TaskStatus.PENDING, None)


def test_parse_row_reads_assigned_agent():
    task = parse_row(COLUMNS, ["1", "x", "5", "ASSIGNED", "agent_coder"])
    assert task.assigned_agent == AgentId("agent_coder")
    assert task.status is TaskStatus.ASSIGNED


def test_parse_row_empty_agent_is_none():
    task = parse_row(COLUMNS, ["1", "x", "5", "pending", ""])
    assert task.assigned_agent is None


def test_parse_row_without_agent_column():
    task = parse_row(COLUMNS[:4], ["3", "y", "0", "failed"])
    assert task.assigned_agent is None
    assert task.priority == Priority.MIN


def test_parse_row_column_order_is_free():
    columns = ["status", "priority", "content", "id"]
    task = parse_row(columns, ["completed", "255", "z", "9"])
    assert task.id == TaskId(9)
    assert task.priority == Priority.MAX
    assert task.content == "z"


def test_parse_row_missing_column():
    with pytest.raises(TaskParseError) as info:
        parse_row(["id", "priority", "status"], ["1", "2", "pending"])
    assert "Missing column: content" in str(info.value)


def test_parse_row_short_values():
    with pytest.raises(TaskParseError, match="Missing column"):
        parse_row(COLUMNS, ["1", "x"])


@pytest.mark.parametrize("raw", ["abc", "-1", "", "1.5"])
def test_parse_row_invalid_id(raw):
    with pytest.raises(TaskParseError, match="Invalid id"):
        parse_row(COLUMNS, [raw, "x", "1", "pending", "NULL"])


@pytest.mark.parametrize("raw", ["256", "x", ""])
def test_parse_row_invalid_priority(raw):
    with pytest.raises(TaskParseError, match="Invalid priority"):
        parse_row(COLUMNS, ["1", "x", raw, "pending", "NULL"])


def test_parse_row_unknown_status():
    with pytest.raises(TaskParseError) as info:
        parse_row(COLUMNS, ["1", "x", "1", "bogus", "NULL"])
    assert "bogus" in str(info.value)


def test_parse_errors_are_repository_errors():
    with pytest.raises(RepositoryError) as info:
        parse_row(COLUMNS, ["abc", "x", "1", "pending", "NULL"])
    assert isinstance(info.value, TaskParseError)


def test_not_found_errors_are_repository_errors():
    with pytest.raises(RepositoryError) as info:
        BindingTaskRepository().mark_completed(TaskId(11))
    assert isinstance(info.value, TaskNotFoundError)


def test_not_found_message_names_task():
    error = TaskNotFoundError(TaskId(9))
    assert str(error) == f"Task not found: {TaskId(9)}"
    assert error.task_id == TaskId(9)


def test_sql_error_keeps_message():
    error = TaskSqlError("no such table")
    assert error.message == "no such table"
    assert "no such table" in str(error)


def test_repository_contract_is_abstract():
    with pytest.raises(TypeError):
        TaskRepository()


def test_binding_repository_fetch_detached():
    assert BindingTaskRepository().fetch_pending_tasks() == []


def test_binding_repository_mark_assigned_not_found():
    with pytest.raises(TaskNotFoundError) as info:
        BindingTaskRepository().mark_assigned(TaskId(3), AgentId("agent_coder"))
    assert info.value.task_id == TaskId(3)


def test_binding_repository_mark_completed_not_found():
    with pytest.raises(TaskNotFoundError) as info:
        BindingTaskRepository().mark_completed(TaskId(4))
    assert info.value.task_id == TaskId(4)


def test_binding_repository_mark_failed_not_found():
    with pytest.raises(TaskNotFoundError) as info:
        BindingTaskRepository().mark_failed(TaskId(5), "boom")
    assert info.value.task_id == TaskId(5)