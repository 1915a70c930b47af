"""Full-text search over workflow documents.

Examples
--------
>>> from workflow_search import Index
>>> index = Index.create_in_ram()
>>> with index.writer() as writer:
...     _ = writer.add_many([("greet", {"name": "Greet", "command": "echo hello"})])
>>> [doc["id"] for _, doc in index.reader().query("hello")]
[['greet']]
"""

from __future__ import annotations

from workflow_search.directory import IndexSnapshot, MmapDirectory, RamDirectory
from workflow_search.index import Index
from workflow_search.reader import IndexReader, ReloadPolicy
from workflow_search.schema import DEFAULT_FIELDS, WORKFLOW_SCHEMA, SearchDocument
from workflow_search.writer import IndexWriter, make_document

__all__ = [
    "DEFAULT_FIELDS",
    "WORKFLOW_SCHEMA",
    "Index",
    "IndexReader",
    "IndexSnapshot",
    "IndexWriter",
    "MmapDirectory",
    "RamDirectory",
    "ReloadPolicy",
    "SearchDocument",
    "make_document",
]
