"""Stable error codes for workflow catalog exceptions.

Codes are kebab-case strings so they can be logged and compared without
importing the enum.

Examples
--------
>>> from workflow_common.errors.codes import ErrorCode
>>> ErrorCode.STORE_ERROR == "store-error"
True
"""

from __future__ import annotations

from enum import StrEnum

__all__ = ["ErrorCode"]


class ErrorCode(StrEnum):
    """Stable error codes for workflow catalog exceptions.

    Error codes are organized by category:
    - Document validation
    - Parsing & I/O
    - Persistence & Search
    - Configuration & Runtime

    Examples
    --------
    >>> code = ErrorCode.PARSE_ERROR
    >>> assert code == "parse-error"
    >>> assert isinstance(code, ErrorCode)
    """

    # Document validation
    INVALID_NAME = "invalid-name"
    INVALID_DESCRIPTION = "invalid-description"
    INVALID_COMMAND = "invalid-command"
    INVALID_ARGUMENTS = "invalid-arguments"

    # Parsing & I/O
    PARSE_ERROR = "parse-error"
    READ_ERROR = "read-error"
    WRITE_ERROR = "write-error"
    IO_ERROR = "io-error"

    # Persistence & Search
    STORE_ERROR = "store-error"
    SCHEMA_ERROR = "schema-error"

    # Configuration & Runtime
    CONFIGURATION_ERROR = "configuration-error"
    RUNTIME_ERROR = "runtime-error"
