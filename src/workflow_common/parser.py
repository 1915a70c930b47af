"""Parse and serialize YAML workflow documents.

Examples
--------
>>> from workflow_common.parser import parse_workflow, serialize_workflow
>>> wf = parse_workflow("name: Greet\\ncommand: echo {{msg}}\\n")
>>> parse_workflow(serialize_workflow(wf)) == wf
True
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from workflow_common.errors import ParseError, ReadError
from workflow_common.fs import read_text
from workflow_common.models import Workflow, validate_workflow

__all__ = ["load_workflow_file", "parse_workflow", "serialize_workflow"]


def parse_workflow(document_text: str, *, source: str | None = None) -> Workflow:
    """Parse one YAML workflow document.

    Parameters
    ----------
    document_text : str
        YAML text of the document.
    source : str | None, optional
        Where the text came from, used in error messages. Defaults to None.

    Returns
    -------
    Workflow
        Validated workflow.

    Raises
    ------
    ParseError
        If the text is not YAML, not a mapping, or misses/mistypes a field.
    InvalidNameError
        If the name is blank.
    InvalidCommandError
        If the command is blank.
    InvalidArgumentsError
        If argument names repeat.
    """
    where = f" {source}" if source else ""
    context = {"source": source} if source else None
    try:
        data = yaml.safe_load(document_text)
    except yaml.YAMLError as exc:
        msg = f"Unable to parse the workflow document{where}."
        raise ParseError(msg, cause=exc, context=context) from exc
    if not isinstance(data, dict):
        msg = f"The workflow document{where} must be a mapping, got {type(data).__name__}."
        raise ParseError(msg, context=context)
    try:
        workflow = Workflow.model_validate(data)
    except ValidationError as exc:
        msg = f"The workflow document{where} is malformed."
        raise ParseError(msg, cause=exc, context=context) from exc
    return validate_workflow(workflow)


def serialize_workflow(workflow: Workflow) -> str:
    """Dump ``workflow`` as a YAML document in declaration order."""
    return yaml.safe_dump(
        workflow.to_document(),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


def load_workflow_file(path: Path) -> Workflow:
    """Read and parse the workflow document at ``path``.

    Raises
    ------
    ReadError
        If the file cannot be read or decoded.
    ParseError
        If the document is invalid.
    """
    try:
        text = read_text(path)
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Unable to read the workflow document {path}."
        raise ReadError(msg, cause=exc, context={"path": str(path)}) from exc
    return parse_workflow(text, source=str(path))
