"""Tests for workflow_registry.duckdb_helpers."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import duckdb
import pytest
from duckdb import DuckDBPyConnection

from workflow_common.errors import StoreError
from workflow_registry import duckdb_helpers
from workflow_registry.duckdb_helpers import DuckDBQueryOptions, with_operation


@pytest.fixture
def connection(tmp_path: Path) -> Iterator[DuckDBPyConnection]:
    conn = duckdb_helpers.connect(tmp_path / "nested" / "helpers.duckdb")
    try:
        duckdb_helpers.execute(
            conn,
            "CREATE TABLE items(id INT, name TEXT)",
            options=with_operation("tests.create_table"),
        )
        yield conn
    finally:
        conn.close()


def test_execute_with_parameters_inserts_rows(connection: DuckDBPyConnection) -> None:
    duckdb_helpers.execute(
        connection,
        "INSERT INTO items VALUES (?, ?)",
        [1, "alpha"],
        options=with_operation("tests.insert_item"),
    )

    rows = duckdb_helpers.fetch_all(connection, "SELECT id, name FROM items ORDER BY id")

    assert rows == [(1, "alpha")]


def test_fetch_one_returns_none_without_rows(connection: DuckDBPyConnection) -> None:
    assert duckdb_helpers.fetch_one(connection, "SELECT id FROM items WHERE id = ?", [7]) is None


def test_unparameterized_query_is_rejected_when_required(
    connection: DuckDBPyConnection,
) -> None:
    options = DuckDBQueryOptions(operation="tests.strict", require_parameterized=True)
    with pytest.raises(StoreError, match="must be parameterized"):
        duckdb_helpers.execute(connection, "SELECT * FROM items", options=options)


def test_failed_query_wraps_duckdb_error(connection: DuckDBPyConnection) -> None:
    with pytest.raises(StoreError, match="DuckDB query failed") as exc_info:
        duckdb_helpers.execute(connection, "SELECT * FROM missing_table")
    assert isinstance(exc_info.value.__cause__, duckdb.Error)
    assert "missing_table" in str(exc_info.value.context["sql_preview"])


def test_connect_memory_database() -> None:
    conn = duckdb_helpers.connect(":memory:")
    try:
        assert duckdb_helpers.fetch_one(conn, "SELECT 42") == (42,)
    finally:
        conn.close()


def test_connect_read_only_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(StoreError, match="Unable to open the workflow store"):
        duckdb_helpers.connect(tmp_path / "absent.duckdb", read_only=True)
