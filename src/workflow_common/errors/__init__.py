"""Exception hierarchy and error codes for the workflow catalog.

Examples
--------
>>> from workflow_common.errors import ParseError, WorkflowError
>>> issubclass(ParseError, WorkflowError)
True
"""

from __future__ import annotations

from workflow_common.errors.codes import ErrorCode
from workflow_common.errors.exceptions import (
    InvalidArgumentsError,
    InvalidCommandError,
    InvalidDescriptionError,
    InvalidNameError,
    ParseError,
    ReadError,
    SchemaError,
    SettingsError,
    StoreError,
    WorkflowError,
    WorkflowErrorConfig,
    WorkflowIOError,
    WriteError,
    format_error_chain,
)

__all__ = [
    "ErrorCode",
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
