"""Single writer of a workflow search index.

Operations are staged in memory and become visible to readers only when
:meth:`IndexWriter.commit` publishes a new snapshot. Every staged operation
and every commit consumes one opstamp from a monotonically increasing
sequence, continuing from the last committed one.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Iterable, Mapping, Sequence
from typing import Self, cast

from pydantic import BaseModel

from workflow_common.errors import SchemaError
from workflow_common.logging import get_logger, with_fields
from workflow_search.directory import IndexDirectory, IndexSnapshot
from workflow_search.schema import WORKFLOW_SCHEMA, IndexSchema, SearchDocument

__all__ = ["IndexWriter", "make_document"]

logger = get_logger(__name__)

_CLEAR = object()


def make_document(doc_id: str, body: BaseModel | Mapping[str, object]) -> SearchDocument:
    """Build a :class:`SearchDocument` from an id and a JSON-object body.

    Parameters
    ----------
    doc_id : str
        Workflow id.
    body : BaseModel | Mapping[str, object]
        Pydantic model (dumped with its aliases) or JSON-compatible mapping.

    Returns
    -------
    SearchDocument
        Document holding a detached JSON copy of ``body``.

    Raises
    ------
    SchemaError
        If ``body`` does not serialize to a JSON object.
    """
    try:
        if isinstance(body, BaseModel):
            text = body.model_dump_json(by_alias=True, exclude_none=True)
        else:
            text = json.dumps(body)
        decoded: object = json.loads(text)
    except (TypeError, ValueError) as exc:
        msg = f"Error serializing document {doc_id!r}"
        raise SchemaError(msg, cause=exc, context={"id": doc_id}) from exc
    if not isinstance(decoded, dict):
        msg = f"Document {doc_id!r} body must be a JSON object, got {type(decoded).__name__}"
        raise SchemaError(msg, context={"id": doc_id})
    return SearchDocument(id=doc_id, body=cast("dict[str, object]", decoded))


class IndexWriter:
    """Stage and commit index operations.

    The writer holds the index's single-writer lock from construction until
    :meth:`close`. Staging and committing share one in-process lock, so
    concurrent callers never interleave inside a commit.

    Parameters
    ----------
    directory : IndexDirectory
        Storage backend.
    schema : IndexSchema, optional
        Field layout. Defaults to :data:`WORKFLOW_SCHEMA`.

    Raises
    ------
    SchemaError
        If another writer holds the index.
    """

    def __init__(self, directory: IndexDirectory, schema: IndexSchema = WORKFLOW_SCHEMA) -> None:
        self._directory = directory
        self.schema = schema
        self._lock = threading.Lock()
        directory.acquire_writer_lock()
        try:
            self._base = directory.load()
        except Exception:
            directory.release_writer_lock()
            raise
        self._opstamp = self._base.opstamp
        self._pending: list[SearchDocument | object] = []
        self._closed = False

    def _next_opstamp(self) -> int:
        self._opstamp += 1
        return self._opstamp

    def _ensure_open(self) -> None:
        if self._closed:
            msg = "The index writer is closed"
            raise SchemaError(msg)

    def add_document(self, document: SearchDocument) -> int:
        """Stage ``document``; return its opstamp."""
        with self._lock:
            self._ensure_open()
            self._pending.append(document)
            return self._next_opstamp()

    def add_many_documents(self, documents: Iterable[SearchDocument]) -> list[int]:
        """Stage ``documents``, commit once, and return their opstamps.

        The returned list holds one opstamp per document followed by the
        commit opstamp.
        """
        with self._lock:
            self._ensure_open()
            stamps = []
            for document in documents:
                self._pending.append(document)
                stamps.append(self._next_opstamp())
            stamps.append(self._commit_locked())
            return stamps

    def add(self, doc_id: str, body: BaseModel | Mapping[str, object]) -> int:
        """Build, stage and commit one document; return the commit opstamp."""
        document = make_document(doc_id, body)
        with self._lock:
            self._ensure_open()
            self._pending.append(document)
            self._next_opstamp()
            return self._commit_locked()

    def add_many(
        self, records: Sequence[tuple[str, BaseModel | Mapping[str, object]]]
    ) -> list[int]:
        """Build one document per ``(id, body)`` record and commit them together.

        Every body is serialized before anything is staged, so a bad record
        leaves the index untouched.

        Returns
        -------
        list[int]
            One opstamp per record followed by the commit opstamp.

        Raises
        ------
        SchemaError
            If a body is not a JSON object or the commit fails.
        """
        documents = [make_document(doc_id, body) for doc_id, body in records]
        return self.add_many_documents(documents)

    def delete_all_documents(self) -> int:
        """Stage removal of every document; applied by the next commit."""
        with self._lock:
            self._ensure_open()
            self._pending.append(_CLEAR)
            return self._next_opstamp()

    def commit(self) -> int:
        """Publish staged operations; return the commit opstamp."""
        with self._lock:
            self._ensure_open()
            return self._commit_locked()

    def rollback(self) -> None:
        """Drop staged operations and rewind the opstamp sequence."""
        with self._lock:
            self._pending.clear()
            self._opstamp = self._base.opstamp

    def _commit_locked(self) -> int:
        documents = list(self._base.documents)
        for operation in self._pending:
            if operation is _CLEAR:
                documents.clear()
            else:
                documents.append(cast("SearchDocument", operation))
        stamp = self._next_opstamp()
        snapshot = IndexSnapshot(opstamp=stamp, documents=tuple(documents))
        with with_fields(logger, operation="index.commit", opstamp=stamp) as log:
            try:
                self._directory.save(snapshot)
            except SchemaError:
                self._pending.clear()
                self._opstamp = self._base.opstamp
                log.error("Index commit failed", extra={"status": "error"})
                raise
            self._base = snapshot
            self._pending.clear()
            log.debug("Committed index", extra={"num_docs": len(documents)})
        return stamp

    def close(self) -> None:
        """Drop uncommitted operations and release the writer lock."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._pending.clear()
            self._directory.release_writer_lock()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
