"""Reconcile the workflow directory with the store and the search index.

The crawler parses every document in the workflow directory before touching
the store. When the parsed set diverges from what the store holds, the store
is replaced wholesale; otherwise nothing is written.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from workflow_common.errors import WorkflowIOError
from workflow_common.fs import list_regular_files
from workflow_common.hashing import checksum
from workflow_common.logging import get_logger, with_fields
from workflow_common.models import Workflow
from workflow_common.parser import load_workflow_file
from workflow_registry.api import Store
from workflow_search.writer import IndexWriter

__all__ = [
    "DOCUMENT_SUFFIXES",
    "ReconcileReport",
    "crawl",
    "index_catalog",
    "normalize_reference",
    "reconcile",
]

logger = get_logger(__name__)

DOCUMENT_SUFFIXES: Final[tuple[str, ...]] = (".yaml", ".yml")


@dataclass(frozen=True, slots=True)
class ReconcileReport:
    """Outcome of one :func:`reconcile` pass.

    Attributes
    ----------
    divergent : bool
        Whether the store was rewritten.
    parsed : int
        Number of documents parsed from the workflow directory.
    changed_ids : tuple[str, ...]
        Ids whose content was new or different, in id order.
    """

    divergent: bool
    parsed: int
    changed_ids: tuple[str, ...] = field(default_factory=tuple)


def normalize_reference(filename: str) -> str:
    """Map a file name to the document reference that gets parsed.

    Examples
    --------
    >>> [normalize_reference(n) for n in ("echo.yml", "echo.yaml", "echo")]
    ['echo.yml', 'echo.yaml', 'echo.yaml']
    """
    if filename.endswith(DOCUMENT_SUFFIXES):
        return filename
    return f"{filename}.yaml"


def crawl(directory: Path) -> list[Workflow]:
    """Parse every document directly under ``directory``.

    Parameters
    ----------
    directory : Path
        Workflow directory (not recursed).

    Returns
    -------
    list[Workflow]
        Parsed workflows in file-name order.

    Raises
    ------
    WorkflowIOError
        If the directory cannot be listed.
    ReadError
        If a referenced document cannot be read.
    ParseError
        If a document is not a valid workflow.
    """
    try:
        files = list_regular_files(directory)
    except OSError as exc:
        msg = f"Unable to list the workflow directory {directory}."
        raise WorkflowIOError(msg, cause=exc, context={"directory": str(directory)}) from exc
    return [load_workflow_file(directory / normalize_reference(path.name)) for path in files]


def _checksums(workflows: list[Workflow]) -> dict[str, int]:
    return {workflow.id: checksum(workflow) for workflow in workflows}


def reconcile(directory: Path, store: Store) -> ReconcileReport:
    """Bring ``store`` in line with the documents under ``directory``.

    The store is considered divergent when some parsed id is missing from it
    or carries a different checksum. A divergent store is cleared and
    refilled with the parsed set. Ids present only in the store do not make
    it divergent.

    Parameters
    ----------
    directory : Path
        Workflow directory.
    store : Store
        Store to reconcile.

    Returns
    -------
    ReconcileReport
        Whether the store was rewritten and which ids changed.

    Raises
    ------
    WorkflowIOError
        If the directory cannot be listed.
    ReadError, ParseError
        If a document is invalid; the store is left untouched.
    StoreError
        If the store cannot be read or written.
    """
    with with_fields(logger, operation="reconcile", directory=str(directory)) as log:
        fresh = crawl(directory)
        fresh_sums = _checksums(fresh)
        stored_sums = _checksums(store.get_all())
        changed = tuple(
            sorted(
                workflow_id
                for workflow_id, value in fresh_sums.items()
                if stored_sums.get(workflow_id) != value
            )
        )
        if not changed:
            log.debug("Store is up to date", extra={"parsed": len(fresh)})
            return ReconcileReport(divergent=False, parsed=len(fresh))

        store.delete_all()
        store.insert_all(fresh)
        log.info(
            "Store reconciled",
            extra={"parsed": len(fresh), "changed": len(changed)},
        )
        return ReconcileReport(divergent=True, parsed=len(fresh), changed_ids=changed)


def index_catalog(store: Store, writer: IndexWriter) -> int:
    """Rebuild the search index from every workflow in ``store``.

    Returns
    -------
    int
        Opstamp of the commit that published the rebuilt index.
    """
    workflows = store.get_all()
    writer.delete_all_documents()
    stamps = writer.add_many([(workflow.id, workflow) for workflow in workflows])
    logger.info(
        "Search index rebuilt",
        extra={"operation": "index.rebuild", "num_docs": len(workflows)},
    )
    return stamps[-1]
