"""Command-line interface of the workflow catalog.

Every command except ``clean`` and ``create`` reconciles the workflow
directory with the store (rebuilding the search index when needed) before
doing its work. Failures print the error and its causes to stderr and exit
with status 1; aborting an interactive prompt exits cleanly.
"""

from __future__ import annotations

import subprocess
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer

from workflow_common.errors import (
    InvalidArgumentsError,
    InvalidNameError,
    WorkflowError,
    format_error_chain,
)
from workflow_common.logging import get_logger, setup_logging
from workflow_common.models import Argument, Workflow
from workflow_common.settings import CatalogSettings, load_settings
from workflow_search.index import Index
from workflow_orchestration.context import CatalogContext
from workflow_orchestration.resolver import SENTINEL, resolve_and_render
from workflow_orchestration.scaffold import scaffold_workflow, write_workflow
from workflow_orchestration.suggest import argument_suggester, name_suggester, rank

__all__ = ["app", "parse_assignments"]

LOGGER = get_logger(__name__)

NO_SELECTION_MESSAGE = "No selection made."
MAX_NAME_SUGGESTIONS = 3

app = typer.Typer(
    help="Catalog, search and run parameterized shell workflows.",
    no_args_is_help=True,
    add_completion=False,
)

_WorkflowDirOption = Annotated[
    Path | None,
    typer.Option("--workflow-dir", "-d", help="Directory holding workflow documents"),
]
_LogLevelOption = Annotated[str | None, typer.Option("--log-level", help="Logging level")]
_NameArg = Annotated[str, typer.Argument(help="Workflow name or id")]
_AssignmentOption = Annotated[
    list[str] | None,
    typer.Option("--arg", "-a", help="Argument value as NAME=VALUE (repeatable)"),
]
_NoInputOption = Annotated[
    bool, typer.Option("--no-input", help="Never prompt; use defaults and --arg values")
]
_ExecuteOption = Annotated[
    bool,
    typer.Option("--execute/--no-execute", help="Offer to run the rendered command"),
]
_QueryArg = Annotated[str, typer.Argument(help="Search query")]
_LimitOption = Annotated[int | None, typer.Option("--limit", "-n", min=1, help="Maximum hits")]
_CommandArg = Annotated[str, typer.Argument(help="Command template with {{placeholders}}")]
_DescriptionOption = Annotated[str | None, typer.Option("--description", help="Description")]


@app.callback()
def main(
    ctx: typer.Context,
    workflow_dir: _WorkflowDirOption = None,
    log_level: _LogLevelOption = None,
) -> None:
    """Catalog, search and run parameterized shell workflows."""
    overrides: dict[str, object] = {}
    if workflow_dir is not None:
        overrides["workflow_dir"] = workflow_dir
    if log_level is not None:
        overrides["log_level"] = log_level
    ctx.obj = overrides


def parse_assignments(pairs: Sequence[str]) -> dict[str, str]:
    """Turn ``NAME=VALUE`` strings into a precedence map.

    Raises
    ------
    InvalidArgumentsError
        If an entry has no ``=`` or an empty name.

    Examples
    --------
    >>> parse_assignments(["msg=hello world", "n=1"])
    {'msg': 'hello world', 'n': '1'}
    """
    values: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name.strip():
            msg = f"Invalid argument assignment {pair!r}; expected NAME=VALUE."
            raise InvalidArgumentsError(msg, context={"assignment": pair})
        values[name.strip()] = value
    return values


@contextmanager
def _guard() -> Iterator[None]:
    try:
        yield
    except typer.Abort:
        typer.echo(NO_SELECTION_MESSAGE, err=True)
        raise typer.Exit(code=0) from None
    except WorkflowError as exc:
        LOGGER.debug("Command failed", extra={"status": "error", "code": str(exc.code)})
        typer.echo(format_error_chain(exc), err=True)
        raise typer.Exit(code=1) from exc


def _settings(ctx: typer.Context) -> CatalogSettings:
    settings = load_settings(**(ctx.obj or {}))
    setup_logging(settings.log_level)
    return settings


@contextmanager
def _catalog(ctx: typer.Context, *, sync: bool = True) -> Iterator[CatalogContext]:
    with CatalogContext.open(_settings(ctx)) as catalog:
        if sync:
            catalog.sync()
        yield catalog


def _find(catalog: CatalogContext, name: str) -> Workflow:
    workflow = catalog.lookup(name)
    if workflow is not None:
        return workflow
    close = rank(name, name_suggester(catalog.reader)(""), above_mean=True)
    msg = f"No workflow named {name!r}."
    if close:
        msg = f"{msg} Did you mean: {', '.join(close[:MAX_NAME_SUGGESTIONS])}?"
    raise InvalidNameError(msg, context={"name": name})


def _prompt_argument(argument: Argument) -> str:
    suggestions = argument_suggester(argument)("")
    if suggestions:
        typer.echo(f"  {argument.name} suggestions: {', '.join(suggestions)}")
    label = argument.name
    if argument.description:
        label = f"{label} ({argument.description})"
    default = argument.default if argument.default is not None else SENTINEL
    value: str = typer.prompt(label, default=default)
    return value


@app.command()
def run(
    ctx: typer.Context,
    name: _NameArg,
    arg: _AssignmentOption = None,
    no_input: _NoInputOption = False,
    execute: _ExecuteOption = False,
) -> None:
    """Render a workflow's command, prompting for argument values.

    Parameters
    ----------
    ctx : typer.Context
        Invocation context carrying settings overrides.
    name : str
        Workflow name or id.
    arg : list[str], optional
        ``NAME=VALUE`` assignments that win over defaults and prompts.
    no_input : bool, optional
        Skip prompts. Defaults to False.
    execute : bool, optional
        After confirmation, run the rendered command through the shell.
        Defaults to False.

    Raises
    ------
    typer.Exit
        With status 1 on any catalog error, or with the command's own exit
        status when it was executed.
    """
    with _guard(), _catalog(ctx) as catalog:
        workflow = _find(catalog, name)
        precedence = parse_assignments(arg or [])
        if not no_input:
            for argument in workflow.arguments:
                if argument.name not in precedence:
                    precedence[argument.name] = _prompt_argument(argument)
        command = resolve_and_render(workflow, precedence)
        typer.echo(command)
        if not execute:
            return
        if not no_input and not typer.confirm("Do you want to execute the command?"):
            return
        LOGGER.info("Executing workflow command", extra={"operation": "run", "id": workflow.id})
        completed = subprocess.run(command, shell=True, check=False)  # noqa: S602
        if completed.returncode != 0:
            raise typer.Exit(code=completed.returncode)


@app.command(name="list")
def list_workflows(ctx: typer.Context) -> None:
    """List catalog entries sorted by name."""
    with _guard(), _catalog(ctx) as catalog:
        workflows = sorted(catalog.store.get_all(), key=lambda wf: wf.name.lower())
        if not workflows:
            typer.echo(f"No workflows in {catalog.settings.workflow_dir}")
            return
        for workflow in workflows:
            typer.echo(f"- {workflow.name}: {workflow.description or ''}".rstrip())
            typer.echo(f"    {workflow.command}")


@app.command()
def search(ctx: typer.Context, query: _QueryArg, limit: _LimitOption = None) -> None:
    """Search the catalog; exact matches first, typo-tolerant otherwise."""
    with _guard(), _catalog(ctx) as catalog:
        hits = catalog.reader.query_as(query, limit=limit or catalog.settings.search_limit)
        if not hits:
            typer.echo(f"No workflows match {query!r}")
            return
        for score, workflow in hits:
            typer.echo(f"{score:7.3f}  {workflow.name}  {workflow.description or ''}".rstrip())


@app.command()
def scan(ctx: typer.Context) -> None:
    """Reconcile the workflow directory and rebuild the search index."""
    with _guard(), _catalog(ctx, sync=False) as catalog:
        report = catalog.sync(force_index=True)
        typer.echo(
            f"Scanned {report.parsed} workflows in {catalog.settings.workflow_dir} "
            f"({len(report.changed_ids)} changed)"
        )


@app.command()
def clean(ctx: typer.Context) -> None:
    """Delete the search index contents."""
    with _guard():
        settings = _settings(ctx)
        Index.open_in_dir(settings.index_dir).clear()
        typer.echo(f"Index cleared at {settings.index_dir}")


@app.command()
def create(
    ctx: typer.Context,
    name: _NameArg,
    command: _CommandArg,
    description: _DescriptionOption = None,
) -> None:
    """Scaffold a workflow document in the workflow directory."""
    with _guard():
        settings = _settings(ctx)
        workflow = scaffold_workflow(name, command, description)
        path = write_workflow(workflow, settings.workflow_dir)
        typer.echo(f"Created {path}")


if __name__ == "__main__":
    app()
