"""Shared building blocks for the workflow catalog.

Errors, logging, settings, filesystem and serialization helpers, the workflow
models, the content hasher and the YAML document parser.
"""

from __future__ import annotations

from workflow_common.errors import WorkflowError
from workflow_common.hashing import checksum, hash_text
from workflow_common.models import Argument, Workflow, normalize_id
from workflow_common.parser import load_workflow_file, parse_workflow, serialize_workflow

__all__ = [
    "Argument",
    "Workflow",
    "WorkflowError",
    "checksum",
    "hash_text",
    "load_workflow_file",
    "normalize_id",
    "parse_workflow",
    "serialize_workflow",
]
