"""DuckDB-backed implementation of the workflow store.

Each record is one row of ``workflows(id TEXT PRIMARY KEY, body TEXT)`` where
``body`` is the workflow's JSON document form. The database file lives inside
a caller-supplied directory; DuckDB's file lock makes a second writer process
fail fast with :class:`StoreError`.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Final, Self

import duckdb
from pydantic import ValidationError

from workflow_common.errors import StoreError
from workflow_common.logging import get_logger
from workflow_common.models import Workflow
from workflow_registry import duckdb_helpers
from workflow_registry.duckdb_helpers import with_operation

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

__all__ = ["DB_FILENAME", "DuckDBStore"]

logger = get_logger(__name__)

DB_FILENAME: Final[str] = "workflows.duckdb"

_SCHEMA_SQL: Final[str] = (
    "CREATE TABLE IF NOT EXISTS workflows (id TEXT PRIMARY KEY, body TEXT NOT NULL)"
)


def _decode(workflow_id: object, body: object) -> Workflow:
    """Turn a stored row back into a :class:`Workflow`."""
    if not isinstance(body, str):
        msg = f"Stored record {workflow_id!r} has a non-text body"
        raise StoreError(msg, context={"id": str(workflow_id)})
    try:
        return Workflow.model_validate_json(body)
    except ValidationError as exc:
        msg = f"Stored record {workflow_id!r} could not be deserialized"
        raise StoreError(msg, cause=exc, context={"id": str(workflow_id)}) from exc


def _encode(workflow: Workflow) -> str:
    return workflow.model_dump_json(by_alias=True, exclude_none=True)


class DuckDBStore:
    """Persistent workflow store on a single DuckDB database file.

    Parameters
    ----------
    conn : DuckDBPyConnection
        Open connection; the store owns it and closes it in :meth:`close`.
    location : str
        Human-readable location, used in logs and errors.

    Examples
    --------
    >>> from pathlib import Path
    >>> from workflow_common.models import Workflow
    >>> with DuckDBStore.open(Path("/tmp/workflow-store-demo")) as store:
    ...     store.insert(Workflow(name="Greet", command="echo hi"))
    ...     store.get("greet").command
    'echo hi'
    """

    def __init__(self, conn: DuckDBPyConnection, location: str) -> None:
        self._conn = conn
        self.location = location
        self._closed = False
        duckdb_helpers.execute(
            self._conn, _SCHEMA_SQL, options=with_operation("store.schema")
        )

    @classmethod
    def open(cls, directory: Path) -> DuckDBStore:
        """Open (creating if needed) the store inside ``directory``.

        Raises
        ------
        StoreError
            If the directory cannot be created or the database cannot be
            opened, including when another process holds the lock.
        """
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Unable to create the store directory {directory}"
            raise StoreError(msg, cause=exc, context={"directory": str(directory)}) from exc
        db_path = directory / DB_FILENAME
        conn = duckdb_helpers.connect(db_path)
        logger.debug(
            "Opened workflow store",
            extra={"operation": "store.open", "db_path": str(db_path)},
        )
        return cls(conn, str(db_path))

    @classmethod
    def in_memory(cls) -> DuckDBStore:
        """Open a throwaway store backed by an in-memory DuckDB database."""
        return cls(duckdb_helpers.connect(":memory:"), ":memory:")

    def insert(self, workflow: Workflow) -> None:
        """Insert or replace a single record."""
        self.insert_all([workflow])

    def insert_all(self, workflows: Iterable[Workflow]) -> None:
        """Insert or replace every record in one transaction.

        Raises
        ------
        StoreError
            If any write fails; the transaction is rolled back and no record
            becomes visible.
        """
        rows = {workflow.id: _encode(workflow) for workflow in workflows}
        if not rows:
            return
        options = with_operation("store.insert_all")
        placeholders = ", ".join(["(?, ?)"] * len(rows))
        params = [value for row in rows.items() for value in row]
        duckdb_helpers.execute(self._conn, "BEGIN TRANSACTION", options=options)
        try:
            duckdb_helpers.execute(
                self._conn,
                f"INSERT OR REPLACE INTO workflows (id, body) VALUES {placeholders}",  # noqa: S608
                params,
                options=options,
            )
            duckdb_helpers.execute(self._conn, "COMMIT", options=options)
        except StoreError as exc:
            self._rollback()
            msg = f"Failed to insert {len(rows)} workflow(s); nothing was written"
            raise StoreError(msg, cause=exc, context={"ids": sorted(rows)}) from exc
        logger.info(
            "Inserted workflows",
            extra={"operation": "store.insert_all", "count": len(rows)},
        )

    def _rollback(self) -> None:
        try:
            self._conn.execute("ROLLBACK")
        except duckdb.Error as exc:
            logger.warning(
                "Rollback failed",
                extra={"operation": "store.rollback", "error": str(exc)},
            )

    def get(self, workflow_id: str) -> Workflow | None:
        """Return the record stored under ``workflow_id``, if any."""
        row = duckdb_helpers.fetch_one(
            self._conn,
            "SELECT id, body FROM workflows WHERE id = ?",
            [workflow_id],
            options=with_operation("store.get"),
        )
        if row is None:
            return None
        return _decode(row[0], row[1])

    def get_all(self) -> list[Workflow]:
        """Return every record in ascending id order."""
        rows = duckdb_helpers.fetch_all(
            self._conn,
            "SELECT id, body FROM workflows ORDER BY id",
            options=with_operation("store.get_all"),
        )
        return [_decode(row[0], row[1]) for row in rows]

    def delete(self, workflow_id: str) -> None:
        """Remove the record stored under ``workflow_id``."""
        duckdb_helpers.execute(
            self._conn,
            "DELETE FROM workflows WHERE id = ?",
            [workflow_id],
            options=with_operation("store.delete"),
        )

    def delete_all(self) -> None:
        """Remove every record."""
        duckdb_helpers.execute(
            self._conn, "DELETE FROM workflows", options=with_operation("store.delete_all")
        )

    def close(self) -> None:
        """Close the connection, releasing the file lock."""
        if self._closed:
            return
        self._closed = True
        try:
            self._conn.close()
        except duckdb.Error as exc:
            msg = f"Failed to close the workflow store at {self.location}"
            raise StoreError(msg, cause=exc) from exc

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
