"""Structured logging helpers for the workflow catalog.

Library modules obtain a :class:`LoggerAdapter` through :func:`get_logger` and
only emit records; handlers are installed once by the CLI through
:func:`setup_logging`. Records are rendered as one JSON object per line on
stderr so that stdout stays reserved for command output.

Examples
--------
>>> from workflow_common.logging import get_logger
>>> logger = get_logger(__name__)
>>> logger.info("Reconciled catalog", extra={"operation": "reconcile", "status": "success"})
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from types import TracebackType

__all__ = [
    "JsonFormatter",
    "LoggerAdapter",
    "get_logger",
    "setup_logging",
    "with_fields",
]

_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Formats log records as JSON with timestamp, level, name, message and the
    structured ``operation``/``status`` fields, followed by any JSON-friendly
    extra fields attached to the record.

    Examples
    --------
    >>> import logging
    >>> handler = logging.StreamHandler()
    >>> handler.setFormatter(JsonFormatter())
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format. May include extra fields in ``record.__dict__``.

        Returns
        -------
        str
            JSON-encoded log entry.
        """
        data: dict[str, object] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if (
                key not in _STANDARD_ATTRS
                and key not in data
                and not key.startswith("_")
                and value is not None
                and isinstance(value, (str, int, float, bool, list, dict))
            ):
                data[key] = value
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class LoggerAdapter(logging.LoggerAdapter):  # type: ignore[type-arg]
    """Logger adapter that injects structured context fields.

    Bound fields (from :func:`with_fields`) are merged into every record, and
    ``operation``/``status`` are always present: ``status`` is inferred from
    the log level when the caller does not set it.

    Parameters
    ----------
    logger : logging.Logger
        Base logger instance to wrap.
    extra : Mapping[str, object] | None, optional
        Structured fields to inject into log entries. Defaults to None.
    """

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:  # noqa: ANN401
        """Merge bound fields into the record's ``extra`` mapping.

        Parameters
        ----------
        msg : Any
            Log message.
        kwargs : Any
            Keyword arguments from the logging call.

        Returns
        -------
        tuple[Any, Any]
            Message and kwargs with ``extra`` populated.
        """
        extra = dict(kwargs.get("extra") or {})
        if isinstance(self.extra, Mapping):
            for key, value in self.extra.items():
                extra.setdefault(key, value)
        extra.setdefault("operation", "unknown")
        kwargs["extra"] = extra
        return msg, kwargs

    def log(self, level: int, msg: object, *args: object, **kwargs: Any) -> None:  # noqa: ANN401
        """Log ``msg`` at ``level`` with a status inferred from the level."""
        extra = dict(kwargs.get("extra") or {})
        if "status" not in extra:
            if level >= logging.ERROR:
                extra["status"] = "error"
            elif level >= logging.WARNING:
                extra["status"] = "warning"
            else:
                extra["status"] = "success"
        kwargs["extra"] = extra
        super().log(level, msg, *args, **kwargs)


def get_logger(name: str) -> LoggerAdapter:
    """Get a logger adapter with structured logging support.

    Module-level loggers carry a ``NullHandler`` so importing a library
    module never prints anything until :func:`setup_logging` runs.

    Parameters
    ----------
    name : str
        Logger name (typically ``__name__`` from the calling module).

    Returns
    -------
    LoggerAdapter
        Logger adapter with structured context injection.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return LoggerAdapter(logger, {})


def setup_logging(level: int | str = logging.WARNING) -> None:
    """Configure the root logger with the JSON formatter on stderr.

    Parameters
    ----------
    level : int | str, optional
        Logging level threshold, numeric or by name. Defaults to WARNING.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    resolved = level.upper() if isinstance(level, str) else level
    logging.basicConfig(level=resolved, handlers=[handler], force=True)


class _WithFieldsContext(AbstractContextManager[LoggerAdapter]):
    """Context manager implementation for :func:`with_fields`."""

    def __init__(
        self, logger: logging.Logger | LoggerAdapter, fields: Mapping[str, object]
    ) -> None:
        self._logger = logger
        self._fields = dict(fields)

    def __enter__(self) -> LoggerAdapter:
        if isinstance(self._logger, LoggerAdapter):
            base_logger = self._logger.logger
            merged = dict(self._logger.extra or {})
            merged.update(self._fields)
        else:
            base_logger = self._logger
            merged = dict(self._fields)
        return LoggerAdapter(base_logger, merged)

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        del exc_type, exc_value, exc_tb


def with_fields(
    logger: logging.Logger | LoggerAdapter,
    **fields: object,
) -> AbstractContextManager[LoggerAdapter]:
    """Bind structured fields to every log entry emitted inside the block.

    Parameters
    ----------
    logger : logging.Logger | LoggerAdapter
        Base logger to wrap (may already be an adapter).
    **fields : object
        Structured fields, e.g. ``operation="reconcile"``.

    Returns
    -------
    AbstractContextManager[LoggerAdapter]
        Context manager yielding an adapter with the bound fields.

    Examples
    --------
    >>> logger = get_logger(__name__)
    >>> with with_fields(logger, operation="index", directory="/tmp/wf") as log:
    ...     log.info("Index rebuilt")
    """
    return _WithFieldsContext(logger, fields)
