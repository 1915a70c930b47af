"""Reconciliation, argument resolution, suggestions and the ``workflow`` CLI."""

from __future__ import annotations

from workflow_orchestration.context import CatalogContext
from workflow_orchestration.crawler import ReconcileReport, index_catalog, reconcile
from workflow_orchestration.resolver import (
    SENTINEL,
    render_command,
    resolve_and_render,
    resolve_arguments,
)
from workflow_orchestration.scaffold import scaffold_workflow, write_workflow
from workflow_orchestration.suggest import Suggester, argument_suggester, name_suggester, rank

__all__ = [
    "SENTINEL",
    "CatalogContext",
    "ReconcileReport",
    "Suggester",
    "argument_suggester",
    "index_catalog",
    "name_suggester",
    "rank",
    "reconcile",
    "render_command",
    "resolve_and_render",
    "resolve_arguments",
    "scaffold_workflow",
    "write_workflow",
]
