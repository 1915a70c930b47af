"""Typed models for workflow documents.

A workflow is a named, parameterized shell command. Its store key and search
id is derived from the name through :func:`normalize_id`, never stored on its
own.

Examples
--------
>>> from workflow_common.models import Workflow
>>> wf = Workflow(name="Say Hello", command="echo {{msg}}")
>>> wf.id
'say_hello'
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from workflow_common.errors import (
    InvalidArgumentsError,
    InvalidCommandError,
    InvalidDescriptionError,
    InvalidNameError,
)

__all__ = ["Argument", "Workflow", "normalize_id", "validate_workflow"]


def normalize_id(name: str) -> str:
    """Derive a store/search id from a workflow name.

    Surrounding whitespace is trimmed, the result lowercased, and every ``-``
    and space becomes ``_``. The function is idempotent.

    Parameters
    ----------
    name : str
        Human-readable workflow name.

    Returns
    -------
    str
        Normalized id.

    Examples
    --------
    >>> [normalize_id(n) for n in ("My Workflow", "my-workflow", " my_workflow ")]
    ['my_workflow', 'my_workflow', 'my_workflow']
    """
    return name.strip().lower().replace("-", "_").replace(" ", "_")


class Argument(BaseModel):
    """A named placeholder of a workflow command."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    description: str | None = None
    default: str | None = Field(default=None, alias="default_value")
    values: list[str] = Field(default_factory=list)


class Workflow(BaseModel):
    """A named, parameterized shell command.

    Document keys follow the on-disk YAML shape: ``source_url`` maps to
    :attr:`source` and ``default_value`` (on arguments) to
    :attr:`Argument.default`. Unknown document keys are ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    description: str | None = None
    command: str
    arguments: list[Argument] = Field(default_factory=list)
    source: str | None = Field(default=None, alias="source_url")
    author: str | None = None
    version: str | None = None
    tags: list[str] = Field(default_factory=list)

    @property
    def id(self) -> str:
        """Store key derived from :attr:`name`."""
        return normalize_id(self.name)

    def argument(self, name: str) -> Argument | None:
        """Return the argument called ``name``, if declared."""
        for arg in self.arguments:
            if arg.name == name:
                return arg
        return None

    def to_document(self) -> dict[str, object]:
        """Return the JSON-compatible document form (aliased keys, no nulls)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def validate_workflow(workflow: Workflow) -> Workflow:
    """Apply the semantic checks that field types alone cannot express.

    Parameters
    ----------
    workflow : Workflow
        Structurally valid workflow.

    Returns
    -------
    Workflow
        The same workflow, for chaining.

    Raises
    ------
    InvalidNameError
        If the name is blank.
    InvalidDescriptionError
        If a description is given but blank.
    InvalidCommandError
        If the command is blank.
    InvalidArgumentsError
        If two arguments share a name, or an argument name is blank.
    """
    if not workflow.name.strip():
        msg = "The workflow name must not be blank."
        raise InvalidNameError(msg)
    if workflow.description is not None and not workflow.description.strip():
        msg = f"The description of workflow {workflow.name!r} must not be blank when given."
        raise InvalidDescriptionError(msg, context={"workflow": workflow.id})
    if not workflow.command.strip():
        msg = f"The command of workflow {workflow.name!r} must not be blank."
        raise InvalidCommandError(msg, context={"workflow": workflow.id})
    seen: set[str] = set()
    for arg in workflow.arguments:
        if not arg.name.strip():
            msg = f"Workflow {workflow.name!r} declares an argument with a blank name."
            raise InvalidArgumentsError(msg, context={"workflow": workflow.id})
        if arg.name in seen:
            msg = f"Workflow {workflow.name!r} declares argument {arg.name!r} more than once."
            raise InvalidArgumentsError(
                msg, context={"workflow": workflow.id, "argument": arg.name}
            )
        seen.add(arg.name)
    return workflow
