import sqlite3

import pytest

from brio.kernel.policy import PrefixPolicy, ScopeViolationError
from brio.kernel.store import (
    GenericRow,
    SqlStore,
    StoreDatabaseError,
    StorePolicyError,
    convert_cell,
)


@pytest.fixture
def store():
    connection = sqlite3.connect(":memory:")
    connection.execute("CREATE TABLE agent_1_data (id INTEGER PRIMARY KEY, content TEXT)")
    yield SqlStore(connection, PrefixPolicy())
    connection.close()


@pytest.mark.asyncio
async def test_store_query_success(store):
    affected = await store.execute(
        "agent_1", "INSERT INTO agent_1_data (content) VALUES (?)", ["hello"]
    )
    assert affected == 1

    rows = await store.query("agent_1", "SELECT * FROM agent_1_data", [])
    assert len(rows) == 1
    assert rows[0].values[1] == "hello"
    assert rows[0] == GenericRow(["id", "content"], ["1", "hello"])


@pytest.mark.asyncio
async def test_store_policy_violation(store):
    with pytest.raises(StorePolicyError) as excinfo:
        await store.query("agent_2", "SELECT * FROM agent_1_data", [])
    assert isinstance(excinfo.value.error, ScopeViolationError)
    assert str(excinfo.value).startswith("Policy Violation: Access Denied")


@pytest.mark.asyncio
async def test_store_generic_types(store):
    await store.execute(
        "agent_1", "INSERT INTO agent_1_data (id, content) VALUES (99, 'test')", []
    )
    rows = await store.query(
        "agent_1", "SELECT id, content FROM agent_1_data WHERE id = 99", []
    )
    assert rows[0].values[0] == "99"
    assert rows[0].values[1] == "test"


@pytest.mark.asyncio
async def test_null_and_float_cells(store):
    await store.execute("agent_1", "INSERT INTO agent_1_data (id, content) VALUES (5, NULL)")
    rows = await store.query("agent_1", "SELECT content, 2.5 AS ratio FROM agent_1_data")
    assert rows == [GenericRow(["content", "ratio"], ["NULL", "2.5"])]


@pytest.mark.asyncio
async def test_policy_violation_leaves_data_untouched(store):
    await store.execute("agent_1", "INSERT INTO agent_1_data (content) VALUES ('keep')")
    with pytest.raises(StorePolicyError):
        await store.execute("agent_2", "DELETE FROM agent_1_data")
    rows = await store.query("agent_1", "SELECT content FROM agent_1_data")
    assert [row.values for row in rows] == [["keep"]]


@pytest.mark.asyncio
async def test_database_error(store):
    with pytest.raises(StoreDatabaseError) as excinfo:
        await store.query("agent_1", "SELECT * FROM agent_1_missing")
    assert str(excinfo.value).startswith("Database Error: ")


@pytest.mark.asyncio
async def test_update_counts_affected_rows(store):
    for content in ("a", "b", "c"):
        await store.execute("agent_1", "INSERT INTO agent_1_data (content) VALUES (?)", [content])
    affected = await store.execute("agent_1", "UPDATE agent_1_data SET content = 'z'")
    assert affected == 3


@pytest.mark.parametrize(
    "value, text",
    [
        (None, "NULL"),
        ("abc", "abc"),
        (42, "42"),
        (-7, "-7"),
        (1.5, "1.5"),
        (2.0, "2"),
        (1e-07, "0.0000001"),
        (b"\x00\x01", "UNSUPPORTED_TYPE"),
    ],
)
def test_convert_cell(value, text):
    assert convert_cell(value) == text