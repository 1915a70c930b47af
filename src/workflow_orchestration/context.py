"""Runtime context shared by the crawler, the resolver and the CLI commands.

A :class:`CatalogContext` is built once per invocation and handed to every
consumer. It owns the store and the search index and releases both in
:meth:`CatalogContext.close`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Self

from workflow_common.errors import WorkflowIOError
from workflow_common.fs import ensure_dir
from workflow_common.logging import get_logger
from workflow_common.models import Workflow, normalize_id
from workflow_common.settings import CatalogSettings
from workflow_registry.api import Store
from workflow_registry.duckdb_store import DuckDBStore
from workflow_registry.memory_store import MemoryStore
from workflow_search.index import Index
from workflow_search.reader import IndexReader
from workflow_search.writer import IndexWriter
from workflow_orchestration.crawler import ReconcileReport, index_catalog, reconcile

__all__ = ["CatalogContext"]

logger = get_logger(__name__)


@dataclass(slots=True)
class CatalogContext:
    """Store, index and settings of one catalog.

    Parameters
    ----------
    settings : CatalogSettings
        Resolved configuration.
    store : Store
        Workflow store.
    index : Index
        Search index.

    Examples
    --------
    >>> from workflow_common.settings import load_settings
    >>> with CatalogContext.open(load_settings()) as context:  # doctest: +SKIP
    ...     report = context.sync()
    """

    settings: CatalogSettings
    store: Store
    index: Index
    _writer: IndexWriter | None = field(default=None, init=False, repr=False)
    _reader: IndexReader | None = field(default=None, init=False, repr=False)

    @classmethod
    def open(cls, settings: CatalogSettings) -> CatalogContext:
        """Open the persistent store and index named by ``settings``.

        Raises
        ------
        WorkflowIOError
            If the workflow or index directory cannot be created.
        StoreError
            If the store cannot be opened.
        """
        try:
            ensure_dir(settings.workflow_dir)
        except OSError as exc:
            msg = f"Unable to create the workflow directory {settings.workflow_dir}."
            raise WorkflowIOError(
                msg, cause=exc, context={"directory": str(settings.workflow_dir)}
            ) from exc
        store = DuckDBStore.open(settings.store_dir)
        try:
            index = Index.open_in_dir(settings.index_dir)
        except WorkflowIOError:
            store.close()
            raise
        return cls(settings=settings, store=store, index=index)

    @classmethod
    def ephemeral(cls, settings: CatalogSettings) -> CatalogContext:
        """Build a context over an in-memory store and index."""
        return cls(settings=settings, store=MemoryStore(), index=Index.create_in_ram())

    @property
    def writer(self) -> IndexWriter:
        """Index writer, opened on first use and held until :meth:`close`."""
        if self._writer is None:
            self._writer = self.index.writer()
        return self._writer

    @property
    def reader(self) -> IndexReader:
        if self._reader is None:
            self._reader = self.index.reader()
        return self._reader

    def sync(self, *, force_index: bool = False) -> ReconcileReport:
        """Reconcile the store and rebuild the index when it is out of date.

        The index is rebuilt when the store was rewritten, when its document
        count differs from the store's, or when ``force_index`` is set.
        """
        report = reconcile(self.settings.workflow_dir, self.store)
        stale = report.divergent or self.reader.num_docs() != len(self.store.get_all())
        if stale or force_index:
            index_catalog(self.store, self.writer)
        return report

    def lookup(self, name: str) -> Workflow | None:
        """Return the stored workflow whose id matches ``name`` once normalized."""
        return self.store.get(normalize_id(name))

    def close(self) -> None:
        """Release the index writer and the store."""
        if self._writer is not None:
            self._writer.close()
            self._writer = None
        self._reader = None
        self.store.close()
        logger.debug("Closed catalog context", extra={"operation": "context.close"})

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
