"""Entry point to a workflow search index."""

from __future__ import annotations

from pathlib import Path

from workflow_common.logging import get_logger
from workflow_search.directory import IndexDirectory, MmapDirectory, RamDirectory
from workflow_search.reader import IndexReader, ReloadPolicy
from workflow_search.schema import WORKFLOW_SCHEMA, IndexSchema
from workflow_search.writer import IndexWriter

__all__ = ["Index"]

logger = get_logger(__name__)


class Index:
    """A searchable collection of workflow documents.

    Parameters
    ----------
    directory : IndexDirectory
        Storage backend.
    schema : IndexSchema, optional
        Field layout. Defaults to :data:`WORKFLOW_SCHEMA`.

    Examples
    --------
    >>> index = Index.create_in_ram()
    >>> with index.writer() as writer:
    ...     _ = writer.add("greet", {"name": "Greet", "command": "echo hi"})
    >>> [hit["id"] for _, hit in index.reader().query("greet", ["id"])]
    [['greet']]
    """

    def __init__(self, directory: IndexDirectory, schema: IndexSchema = WORKFLOW_SCHEMA) -> None:
        self.directory = directory
        self.schema = schema

    @classmethod
    def open_in_dir(cls, path: Path) -> Index:
        """Open (creating if needed) the index stored in ``path``.

        Raises
        ------
        WorkflowIOError
            If the directory cannot be created.
        """
        return cls(MmapDirectory(path))

    @classmethod
    def create_in_ram(cls) -> Index:
        """Create an empty in-memory index."""
        return cls(RamDirectory())

    def writer(self) -> IndexWriter:
        """Return the single writer of this index.

        Raises
        ------
        SchemaError
            If another writer is open on the same index.
        """
        return IndexWriter(self.directory, self.schema)

    def reader(self, reload_policy: ReloadPolicy = ReloadPolicy.ON_COMMIT) -> IndexReader:
        """Return a reader over the last committed state."""
        return IndexReader(self.directory, self.schema, reload_policy)

    def clear(self) -> None:
        """Remove every committed document and index file."""
        self.directory.clear()
        logger.info("Cleared search index", extra={"operation": "index.clear"})
