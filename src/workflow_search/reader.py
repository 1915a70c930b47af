"""Exact-then-fuzzy search over a workflow index.

A query first runs through the query language with BM25 scoring. Only when
that finds nothing does the reader fall back to fuzzy term matching of the
raw, lowercased query text against each requested field.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum
from typing import Final

from pydantic import ValidationError

from workflow_common.errors import SchemaError
from workflow_common.logging import get_logger
from workflow_common.models import Workflow
from workflow_search.directory import IndexDirectory
from workflow_search.query import parse_query
from workflow_search.schema import DEFAULT_FIELDS, WORKFLOW_SCHEMA, IndexSchema
from workflow_search.searcher import Hit, Searcher

__all__ = ["DEFAULT_LIMIT", "IndexReader", "ReloadPolicy", "StoredDocument"]

logger = get_logger(__name__)

DEFAULT_LIMIT: Final[int] = 100

StoredDocument = dict[str, list[object]]


class ReloadPolicy(StrEnum):
    """When a reader picks up new commits."""

    ON_COMMIT = "on_commit"
    MANUAL = "manual"


class IndexReader:
    """Answer queries against the last committed index state.

    Parameters
    ----------
    directory : IndexDirectory
        Storage backend.
    schema : IndexSchema, optional
        Field layout. Defaults to :data:`WORKFLOW_SCHEMA`.
    reload_policy : ReloadPolicy, optional
        ``ON_COMMIT`` readers check for a newer commit before each search;
        ``MANUAL`` readers keep their snapshot until :meth:`reload`.
        Defaults to ``ON_COMMIT``.
    """

    def __init__(
        self,
        directory: IndexDirectory,
        schema: IndexSchema = WORKFLOW_SCHEMA,
        reload_policy: ReloadPolicy = ReloadPolicy.ON_COMMIT,
    ) -> None:
        self._directory = directory
        self.schema = schema
        self.reload_policy = reload_policy
        self._searcher = Searcher(directory.load(), schema)

    def reload(self) -> None:
        """Rebuild the searcher from the last committed snapshot."""
        self._searcher = Searcher(self._directory.load(), self.schema)
        logger.debug(
            "Reloaded index reader",
            extra={"operation": "index.reload", "opstamp": self._searcher.opstamp},
        )

    def searcher(self) -> Searcher:
        """Return the current searcher, refreshing it first under ``ON_COMMIT``."""
        if (
            self.reload_policy is ReloadPolicy.ON_COMMIT
            and self._directory.current_opstamp() != self._searcher.opstamp
        ):
            self.reload()
        return self._searcher

    def query(
        self,
        term: str,
        fields: Sequence[str] = DEFAULT_FIELDS,
        limit: int = DEFAULT_LIMIT,
    ) -> list[tuple[float, StoredDocument]]:
        """Search ``fields`` for ``term``.

        Parameters
        ----------
        term : str
            Query text in the query language.
        fields : Sequence[str], optional
            Fields searched by unqualified terms and by the fuzzy fallback.
            Defaults to ``("id", "body")``.
        limit : int, optional
            Maximum number of hits. Defaults to 100.

        Returns
        -------
        list[tuple[float, StoredDocument]]
            ``(score, {"id": [...], "body": [{...}]})`` pairs, best first.

        Raises
        ------
        SchemaError
            On unknown fields or malformed query syntax.
        """
        for name in fields:
            self.schema.get_field(name)
        searcher = self.searcher()
        parsed = parse_query(term, self.schema, fields)
        hits = searcher.search(parsed, limit)
        phase = "exact"
        if not hits and term.strip():
            hits = self._fuzzy(searcher, term.strip().lower(), fields, limit)
            phase = "fuzzy"
        logger.debug(
            "Searched index",
            extra={"operation": "index.query", "phase": phase, "hits": len(hits)},
        )
        return [(hit.score, searcher.document(hit.doc).to_stored()) for hit in hits]

    @staticmethod
    def _fuzzy(
        searcher: Searcher, term: str, fields: Sequence[str], limit: int
    ) -> list[Hit]:
        merged: list[Hit] = []
        seen: set[int] = set()
        for name in fields:
            for hit in searcher.fuzzy_search(name, term, limit):
                if hit.doc not in seen:
                    seen.add(hit.doc)
                    merged.append(hit)
        return merged[:limit]

    def query_as(
        self,
        term: str,
        fields: Sequence[str] = DEFAULT_FIELDS,
        limit: int = DEFAULT_LIMIT,
    ) -> list[tuple[float, Workflow]]:
        """Like :meth:`query`, decoding each stored body into a :class:`Workflow`.

        Raises
        ------
        SchemaError
            On query errors or when a stored body is not a valid workflow.
        """
        return [(score, _decode(doc)) for score, doc in self.query(term, fields, limit)]

    def get_all_raw(self) -> list[StoredDocument]:
        """Return every stored document in index order."""
        searcher = self.searcher()
        return [searcher.document(i).to_stored() for i in range(searcher.num_docs)]

    def num_docs(self) -> int:
        return self.searcher().num_docs


def _decode(document: StoredDocument) -> Workflow:
    bodies = document.get("body") or []
    try:
        return Workflow.model_validate(bodies[0] if bodies else {})
    except ValidationError as exc:
        msg = f"Error deserializing document {document.get('id')!r}"
        raise SchemaError(msg, cause=exc) from exc
