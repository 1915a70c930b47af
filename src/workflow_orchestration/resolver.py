"""Resolve argument values and render workflow commands.

Values come from, in increasing precedence: the ``<insert value>`` sentinel,
an argument's ``default_value``, and the caller's precedence map. Rendering
replaces every ``{{ name }}`` placeholder with its shell-escaped value.

Examples
--------
>>> from workflow_common.models import Argument, Workflow
>>> wf = Workflow(name="echo", command="echo {{msg}}", arguments=[Argument(name="msg")])
>>> resolve_and_render(wf, {"msg": "hi"})
'echo hi'
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Final

from jinja2 import (
    Environment,
    StrictUndefined,
    Template,
    TemplateSyntaxError,
    UndefinedError,
    nodes,
)
from jinja2.meta import find_undeclared_variables

from workflow_common.errors import ParseError
from workflow_common.models import Workflow

__all__ = [
    "SENTINEL",
    "escape_value",
    "placeholders",
    "render_command",
    "resolve_and_render",
    "resolve_arguments",
]

SENTINEL: Final[str] = "<insert value>"


def escape_value(value: object) -> str:
    r"""Escape single quotes for a POSIX shell.

    Examples
    --------
    >>> escape_value("it's")
    "it'\\''s"
    """
    return str(value).replace("'", "'\\''")


def _build_environment() -> Environment:
    """Build the Jinja2 environment used for command templates.

    Returns
    -------
    Environment
        Strict environment without autoescaping; every substituted value is
        shell-escaped by ``finalize``. Comments use ``{{!-- --}}`` so that
        shell text such as ``${#array[@]}`` stays literal.
    """
    return Environment(
        undefined=StrictUndefined,
        autoescape=False,
        finalize=escape_value,
        keep_trailing_newline=True,
        comment_start_string="{{!--",
        comment_end_string="--}}",
    )


_ENV: Final[Environment] = _build_environment()


def _parse(command: str) -> nodes.Template:
    try:
        return _ENV.parse(command)
    except TemplateSyntaxError as exc:
        msg = f"Malformed command template: {exc.message}"
        raise ParseError(
            msg, cause=exc, context={"command": command, "line": exc.lineno}
        ) from exc


def placeholders(command: str) -> list[str]:
    """Return distinct placeholder names in order of first appearance.

    Raises
    ------
    ParseError
        If ``command`` is not a well-formed template.

    Examples
    --------
    >>> placeholders("cp {{src}} {{ dst }} && ls {{src}}")
    ['src', 'dst']
    """
    tree = _parse(command)
    undeclared = find_undeclared_variables(tree)
    names = (node.name for node in tree.find_all(nodes.Name) if node.name in undeclared)
    return list(dict.fromkeys(names))


def resolve_arguments(workflow: Workflow, precedence: Mapping[str, str]) -> dict[str, str]:
    """Compute the value of every declared argument.

    Parameters
    ----------
    workflow : Workflow
        Workflow whose arguments are resolved in declaration order.
    precedence : Mapping[str, str]
        Caller-supplied values, winning over defaults.

    Returns
    -------
    dict[str, str]
        Argument name to value. Keys of ``precedence`` that name no declared
        argument are ignored.
    """
    values: dict[str, str] = {}
    for argument in workflow.arguments:
        value = argument.default if argument.default is not None else SENTINEL
        values[argument.name] = precedence.get(argument.name, value)
    return values


def render_command(command: str, values: Mapping[str, str]) -> str:
    """Substitute every placeholder of ``command``.

    Raises
    ------
    ParseError
        If the template is malformed or a placeholder has no value.
    """
    missing = [name for name in placeholders(command) if name not in values]
    if missing:
        msg = f"Unresolved placeholders in command: {', '.join(missing)}"
        raise ParseError(msg, context={"command": command, "missing": missing})
    template: Template = _ENV.from_string(command)
    try:
        return template.render(values)
    except UndefinedError as exc:
        msg = f"Unresolved value while rendering command: {exc}"
        raise ParseError(msg, cause=exc, context={"command": command}) from exc


def resolve_and_render(workflow: Workflow, precedence: Mapping[str, str]) -> str:
    """Resolve ``workflow``'s arguments and render its command."""
    return render_command(workflow.command, resolve_arguments(workflow, precedence))
