"""Create new workflow documents from a name and a command template."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path

from workflow_common.errors import WriteError
from workflow_common.fs import atomic_write
from workflow_common.logging import get_logger
from workflow_common.models import Argument, Workflow, validate_workflow
from workflow_common.parser import serialize_workflow
from workflow_orchestration.resolver import placeholders

__all__ = ["document_path", "scaffold_workflow", "write_workflow"]

logger = get_logger(__name__)


def scaffold_workflow(
    name: str,
    command: str,
    description: str | None = None,
    *,
    defaults: Mapping[str, str] | None = None,
    author: str | None = None,
    tags: Sequence[str] = (),
) -> Workflow:
    """Build a workflow with one argument per placeholder of ``command``.

    Parameters
    ----------
    name : str
        Workflow name.
    command : str
        Command template with ``{{name}}`` placeholders.
    description : str, optional
        Human-readable description.
    defaults : Mapping[str, str], optional
        Default values keyed by placeholder name.
    author : str, optional
        Author recorded in the document.
    tags : Sequence[str], optional
        Free-form tags.

    Returns
    -------
    Workflow
        Validated workflow; arguments follow the first appearance of each
        placeholder.

    Raises
    ------
    InvalidNameError, InvalidCommandError
        If ``name`` or ``command`` is blank.
    ParseError
        If ``command`` is not a well-formed template.

    Examples
    --------
    >>> wf = scaffold_workflow("Copy", "cp {{src}} {{dst}}")
    >>> [argument.name for argument in wf.arguments]
    ['src', 'dst']
    """
    defaults = defaults or {}
    arguments = [
        Argument(name=placeholder, default=defaults.get(placeholder))
        for placeholder in placeholders(command)
    ]
    workflow = Workflow(
        name=name,
        description=description,
        command=command,
        arguments=arguments,
        author=author,
        tags=list(tags),
    )
    return validate_workflow(workflow)


def document_path(workflow: Workflow, directory: Path) -> Path:
    """Return where ``workflow`` is stored under ``directory``."""
    return directory / f"{workflow.id}.yaml"


def write_workflow(workflow: Workflow, directory: Path) -> Path:
    """Write ``workflow`` as ``<id>.yaml`` under ``directory``.

    Raises
    ------
    WriteError
        If the document already exists or cannot be written.
    """
    path = document_path(workflow, directory)
    if path.exists():
        msg = f"The workflow document {path} already exists."
        raise WriteError(msg, context={"path": str(path)})
    try:
        atomic_write(path, serialize_workflow(workflow))
    except OSError as exc:
        msg = f"Unable to write the workflow document {path}."
        raise WriteError(msg, cause=exc, context={"path": str(path)}) from exc
    logger.info(
        "Workflow document created",
        extra={"operation": "create", "id": workflow.id, "path": str(path)},
    )
    return path
