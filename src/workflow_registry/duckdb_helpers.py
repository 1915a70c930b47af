"""Typed DuckDB helper utilities for parameterized queries and logging."""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Final, cast

import duckdb

from workflow_common.errors import StoreError
from workflow_common.logging import get_logger, with_fields

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

Params = Sequence[object] | Mapping[str, object] | None

DEFAULT_SLOW_QUERY_THRESHOLD_S: Final[float] = 0.5
DEFAULT_THREADS: Final[int] = 1
MAX_SQL_PREVIEW_CHARS: Final[int] = 160


@dataclass(slots=True, frozen=True)
class DuckDBQueryOptions:
    """Configuration for DuckDB query execution helpers."""

    slow_query_threshold_s: float = DEFAULT_SLOW_QUERY_THRESHOLD_S
    operation: str = "duckdb.execute"
    require_parameterized: bool | None = None


__all__ = [
    "DEFAULT_SLOW_QUERY_THRESHOLD_S",
    "DuckDBQueryOptions",
    "connect",
    "execute",
    "fetch_all",
    "fetch_one",
    "with_operation",
]

logger = get_logger(__name__)


def connect(
    db_path: Path | str,
    *,
    read_only: bool = False,
    pragmas: Mapping[str, object] | None = None,
) -> DuckDBPyConnection:
    """Create a DuckDB connection with standard pragmas applied.

    DuckDB takes an exclusive file lock for read-write connections, so a
    second process opening the same database fails immediately.

    Parameters
    ----------
    db_path : Path | str
        Path to DuckDB database file, or ``":memory:"``.
    read_only : bool, optional
        Whether to open in read-only mode. Defaults to False.
    pragmas : Mapping[str, object] | None, optional
        Additional pragma settings.

    Returns
    -------
    DuckDBPyConnection
        Configured DuckDB connection.

    Raises
    ------
    StoreError
        If the database cannot be opened (missing directory, lock held by
        another process, corrupt file).
    """
    target = str(db_path)
    if target != ":memory:" and not read_only:
        try:
            Path(target).parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Unable to create the store directory for {target}"
            raise StoreError(msg, cause=exc, context={"db_path": target}) from exc
    try:
        conn = duckdb.connect(target, read_only=read_only)
    except (duckdb.Error, OSError) as exc:
        msg = f"Unable to open the workflow store at {target}"
        raise StoreError(msg, cause=exc, context={"db_path": target}) from exc
    effective_pragmas: dict[str, object] = {"threads": DEFAULT_THREADS}
    if pragmas:
        effective_pragmas.update({key.lower(): value for key, value in pragmas.items()})
    for pragma_key, value in effective_pragmas.items():
        if isinstance(value, bool):
            literal = "true" if value else "false"
        elif isinstance(value, (int, float)):
            literal = str(value)
        else:
            literal = f"'{value}'"
        conn.execute(f"PRAGMA {pragma_key}={literal}")
    return conn


def _format_sql(sql: str) -> str:
    """Compact whitespace and truncate ``sql`` for log previews."""
    compact = " ".join(sql.split())
    if len(compact) <= MAX_SQL_PREVIEW_CHARS:
        return compact
    return f"{compact[:MAX_SQL_PREVIEW_CHARS]}..."


def _truncate_value(value: object) -> object:
    if isinstance(value, str) and len(value) > MAX_SQL_PREVIEW_CHARS:
        return value[:MAX_SQL_PREVIEW_CHARS] + "..."
    return value


def _format_params(params: Params) -> object:
    """Format query parameters for logging preview.

    Parameters
    ----------
    params : Params
        Query parameters (Sequence for positional, Mapping for named, or None).

    Returns
    -------
    object
        Dict for named params, list for positional params, or an empty dict.
    """
    if params is None:
        return {}
    if isinstance(params, Mapping):
        return {str(key): _truncate_value(value) for key, value in params.items()}
    return [_truncate_value(value) for value in params]


def _ensure_parameterized(sql: str, *, require_parameterized: bool) -> None:
    """Reject queries without placeholders when parameters are expected.

    Raises
    ------
    StoreError
        If ``require_parameterized`` is True and the query has no ``?``,
        ``:name`` or ``$n`` placeholder.
    """
    if not require_parameterized:
        return
    if "?" in sql or ":" in sql or "$" in sql:
        return
    error_message = "DuckDB query must be parameterized"
    raise StoreError(
        error_message,
        context={"sql_preview": _format_sql(sql)},
    )


def _coerce_options(
    options: DuckDBQueryOptions | None,
    *,
    operation: str,
) -> DuckDBQueryOptions:
    if options is None:
        return DuckDBQueryOptions(operation=operation)
    return options


def execute(
    conn: DuckDBPyConnection,
    sql: str,
    params: Params = None,
    *,
    options: DuckDBQueryOptions | None = None,
) -> DuckDBPyConnection:
    """Execute a DuckDB query with parameter binding and logging.

    Parameters
    ----------
    conn : DuckDBPyConnection
        DuckDB connection to execute the query on.
    sql : str
        SQL query string.
    params : Params, optional
        Query parameters (Sequence for positional, Mapping for named).
        Defaults to None.
    options : DuckDBQueryOptions | None, optional
        Logging metadata and parameter enforcement. Defaults to None.

    Returns
    -------
    DuckDBPyConnection
        Connection with the query result pending.

    Raises
    ------
    StoreError
        If query execution fails or parameterization is required but missing.
    """
    opts = _coerce_options(options, operation="duckdb.execute")
    require_flag = (
        params is not None if opts.require_parameterized is None else opts.require_parameterized
    )
    _ensure_parameterized(sql, require_parameterized=require_flag)

    sql_preview = _format_sql(sql)
    query_params = _format_params(params)

    with with_fields(
        logger,
        component="registry",
        operation=opts.operation,
        sql_preview=sql_preview,
    ) as log:
        start = time.perf_counter()
        try:
            relation = conn.execute(sql) if params is None else conn.execute(sql, params)
        except duckdb.Error as exc:
            log.error(
                "DuckDB query failed",
                extra={"params": query_params, "error_type": type(exc).__name__},
            )
            error_message = "DuckDB query failed"
            raise StoreError(
                error_message,
                cause=exc,
                context={"sql_preview": sql_preview, "params": query_params},
            ) from exc
        duration = time.perf_counter() - start
        if duration >= opts.slow_query_threshold_s:
            log.warning(
                "Slow DuckDB query",
                extra={"duration_ms": round(duration * 1000, 2), "params": query_params},
            )
        else:
            log.debug(
                "DuckDB query executed",
                extra={"duration_ms": round(duration * 1000, 2)},
            )
        return relation


def fetch_all(
    conn: DuckDBPyConnection,
    sql: str,
    params: Params = None,
    *,
    options: DuckDBQueryOptions | None = None,
) -> list[tuple[object, ...]]:
    """Execute a query and return all rows as a list of tuples."""
    opts = _coerce_options(options, operation="duckdb.fetch_all")
    relation = execute(conn, sql, params, options=opts)
    try:
        raw_rows = cast("list[tuple[object, ...]]", relation.fetchall())
    except duckdb.Error as exc:
        msg = "Failed to fetch DuckDB rows"
        raise StoreError(msg, cause=exc, context={"sql_preview": _format_sql(sql)}) from exc
    return [tuple(row) for row in raw_rows]


def fetch_one(
    conn: DuckDBPyConnection,
    sql: str,
    params: Params = None,
    *,
    options: DuckDBQueryOptions | None = None,
) -> tuple[object, ...] | None:
    """Execute a query and return the first row or None."""
    opts = _coerce_options(options, operation="duckdb.fetch_one")
    relation = execute(conn, sql, params, options=opts)
    try:
        raw_row = cast("tuple[object, ...] | None", relation.fetchone())
    except duckdb.Error as exc:
        msg = "Failed to fetch a DuckDB row"
        raise StoreError(msg, cause=exc, context={"sql_preview": _format_sql(sql)}) from exc
    if raw_row is None:
        return None
    return tuple(raw_row)


def with_operation(operation: str) -> DuckDBQueryOptions:
    """Return default query options tagged with ``operation``."""
    return replace(DuckDBQueryOptions(), operation=operation)
