"""Typed exception hierarchy for the workflow catalog.

All catalog exceptions inherit from :class:`WorkflowError`, which carries a
stable :class:`ErrorCode`, a log level, structured context, and the leaf
cause that triggered it.

Examples
--------
>>> from workflow_common.errors import ErrorCode, StoreError
>>> try:
...     raise StoreError("Failed to open store", cause=OSError("locked"))
... except StoreError as e:
...     assert e.code == ErrorCode.STORE_ERROR
...     assert isinstance(e.__cause__, OSError)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from workflow_common.errors.codes import ErrorCode

__all__ = [
    "InvalidArgumentsError",
    "InvalidCommandError",
    "InvalidDescriptionError",
    "InvalidNameError",
    "ParseError",
    "ReadError",
    "SchemaError",
    "SettingsError",
    "StoreError",
    "WorkflowError",
    "WorkflowErrorConfig",
    "WorkflowIOError",
    "WriteError",
    "format_error_chain",
]


@dataclass(slots=True)
class WorkflowErrorConfig:
    """Configuration options used when instantiating :class:`WorkflowError`."""

    code: ErrorCode = ErrorCode.RUNTIME_ERROR
    log_level: int = logging.ERROR
    cause: BaseException | None = None
    context: Mapping[str, object] | None = None


class WorkflowError(Exception):
    """Base exception for all workflow catalog errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    config : WorkflowErrorConfig | None, optional
        Structured configuration for the error. When omitted, the keyword
        arguments below are used instead. Defaults to None.
    code : ErrorCode, optional
        Stable error code. Defaults to ``ErrorCode.RUNTIME_ERROR``.
    log_level : int, optional
        Logging level used when the error is reported. Defaults to ERROR.
    cause : BaseException | None, optional
        Underlying exception. Stored as ``__cause__`` so the full chain is
        available for diagnostics. Defaults to None.
    context : Mapping[str, object] | None, optional
        Additional structured fields. Defaults to None.

    Attributes
    ----------
    message : str
        Human-readable error message.
    code : ErrorCode
        Error code enum value.
    log_level : int
        Logging level for error logging.
    context : dict[str, object]
        Additional context dictionary for error details.
    """

    def __init__(
        self,
        message: str,
        *,
        config: WorkflowErrorConfig | None = None,
        code: ErrorCode = ErrorCode.RUNTIME_ERROR,
        log_level: int = logging.ERROR,
        cause: BaseException | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message)
        resolved = config or WorkflowErrorConfig(
            code=code, log_level=log_level, cause=cause, context=context
        )
        self.message = message
        self.code = resolved.code
        self.log_level = resolved.log_level
        self.context = dict(resolved.context) if resolved.context else {}
        if resolved.cause is not None:
            self.__cause__ = resolved.cause

    def __str__(self) -> str:
        """Return formatted error string.

        Returns
        -------
        str
            Formatted error string (e.g., ``"StoreError[store-error]: Failed to open store"``).
        """
        return f"{self.__class__.__name__}[{self.code.value}]: {self.message}"


class InvalidNameError(WorkflowError):
    """The workflow name is invalid (blank or not a string)."""

    def __init__(
        self,
        message: str = "The workflow name is invalid.",
        cause: BaseException | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.INVALID_NAME, cause=cause, context=context)


class InvalidDescriptionError(WorkflowError):
    """The workflow description is invalid."""

    def __init__(
        self,
        message: str = "The workflow description is invalid.",
        cause: BaseException | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.INVALID_DESCRIPTION, cause=cause, context=context
        )


class InvalidCommandError(WorkflowError):
    """The workflow command is invalid, or a CLI command was misused."""

    def __init__(
        self,
        message: str = "The workflow command is invalid.",
        cause: BaseException | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.INVALID_COMMAND, cause=cause, context=context)


class InvalidArgumentsError(WorkflowError):
    """The workflow arguments are invalid (e.g. duplicate names)."""

    def __init__(
        self,
        message: str = "The workflow arguments are invalid.",
        cause: BaseException | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.INVALID_ARGUMENTS, cause=cause, context=context
        )


class ParseError(WorkflowError):
    """A workflow document or command template could not be parsed.

    Examples
    --------
    >>> raise ParseError("Unable to parse the workflow.", cause=ValueError("bad yaml"))
    Traceback (most recent call last):
        ...
    workflow_common.errors.exceptions.ParseError: ParseError[parse-error]: Unable to parse the workflow.
    """

    def __init__(
        self,
        message: str = "Unable to parse the workflow.",
        cause: BaseException | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.PARSE_ERROR, cause=cause, context=context)


class ReadError(WorkflowError):
    """Reading a workflow document or interactive input failed."""

    def __init__(
        self,
        message: str = "Unable to read the workflow.",
        cause: BaseException | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.READ_ERROR, cause=cause, context=context)


class WriteError(WorkflowError):
    """Writing a workflow document failed."""

    def __init__(
        self,
        message: str = "Unable to write the workflow.",
        cause: BaseException | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.WRITE_ERROR, cause=cause, context=context)


class StoreError(WorkflowError):
    """Key-value store I/O, locking or (de)serialization failure."""

    def __init__(
        self,
        message: str = "The workflow store failed.",
        cause: BaseException | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.STORE_ERROR, cause=cause, context=context)


class SchemaError(WorkflowError):
    """Search index schema, query or persistence failure."""

    def __init__(
        self,
        message: str = "The search index failed.",
        cause: BaseException | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.SCHEMA_ERROR, cause=cause, context=context)


class WorkflowIOError(WorkflowError):
    """Generic filesystem failure (directory listing, index directory management)."""

    def __init__(
        self,
        message: str = "The workflow is invalid.",
        cause: BaseException | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.IO_ERROR, cause=cause, context=context)


class SettingsError(WorkflowError):
    """Configuration validation failure."""

    def __init__(
        self,
        message: str = "Configuration validation failed.",
        cause: BaseException | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.CONFIGURATION_ERROR, cause=cause, context=context
        )


def format_error_chain(error: BaseException) -> str:
    """Render an error followed by every cause in its chain.

    Parameters
    ----------
    error : BaseException
        Outermost exception.

    Returns
    -------
    str
        The error message, a blank line, then one ``Caused by:`` entry per
        cause (explicit ``__cause__`` first, implicit ``__context__`` otherwise).

    Examples
    --------
    >>> err = ParseError("Unable to parse the workflow.", cause=ValueError("line 3"))
    >>> print(format_error_chain(err))
    ParseError[parse-error]: Unable to parse the workflow.
    <BLANKLINE>
    Caused by:
    	ValueError: line 3
    """
    lines = [str(error), ""]
    seen: set[int] = {id(error)}
    current = error.__cause__ or error.__context__
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        rendered = (
            str(current)
            if isinstance(current, WorkflowError)
            else f"{type(current).__name__}: {current}"
        )
        lines.append(f"Caused by:\n\t{rendered}")
        current = current.__cause__ or current.__context__
    if len(lines) == 2:
        lines.pop()
    return "\n".join(lines)
