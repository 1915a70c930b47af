r"""Inverted index and BM25 scoring over one :class:`IndexSnapshot`.

A :class:`Searcher` is immutable: it is built from a committed snapshot and
answers queries against it until its reader reloads.

Notes
-----
Term scores use BM25 with per-field length statistics:
:math:`idf(t) \cdot \frac{tf (k1 + 1)}{tf + k1 (1 - b + b \cdot dl / avgdl)}`
with :math:`idf(t) = \ln(1 + \frac{N - df + 0.5}{df + 0.5})`.
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Final

from workflow_search.directory import IndexSnapshot
from workflow_search.fuzzy import DEFAULT_MAX_DISTANCE, Levenshtein
from workflow_search.query import (
    AllQuery,
    BooleanQuery,
    EmptyQuery,
    Occur,
    PhraseQuery,
    Query,
    TermQuery,
)
from workflow_search.schema import FieldType, IndexSchema, SearchDocument
from workflow_search.tokenizer import POSITION_GAP, flatten_json, tokenize

__all__ = ["DEFAULT_B", "DEFAULT_K1", "Hit", "Searcher"]

DEFAULT_K1: Final[float] = 1.2
DEFAULT_B: Final[float] = 0.75

# token -> doc -> path -> positions
_Postings = dict[str, dict[int, dict[str, list[int]]]]


@dataclass(frozen=True, slots=True)
class Hit:
    """A scored match: position of the document in the snapshot plus score."""

    doc: int
    score: float


def _in_scope(path: str, scope: str | None) -> bool:
    return scope is None or path == scope or path.startswith(f"{scope}.")


class Searcher:
    """Query executor over an immutable snapshot.

    Parameters
    ----------
    snapshot : IndexSnapshot
        Committed documents.
    schema : IndexSchema
        Field layout used to extract indexed text.
    k1 : float, optional
        BM25 term-frequency saturation. Defaults to 1.2.
    b : float, optional
        BM25 length normalization. Defaults to 0.75.
    """

    def __init__(
        self,
        snapshot: IndexSnapshot,
        schema: IndexSchema,
        *,
        k1: float = DEFAULT_K1,
        b: float = DEFAULT_B,
    ) -> None:
        self.snapshot = snapshot
        self.schema = schema
        self.k1 = k1
        self.b = b
        self._postings: dict[str, _Postings] = {}
        self._lengths: dict[str, list[int]] = {}
        self._avgdl: dict[str, float] = {}
        self._build()

    @property
    def opstamp(self) -> int:
        return self.snapshot.opstamp

    @property
    def num_docs(self) -> int:
        return len(self.snapshot.documents)

    def document(self, doc: int) -> SearchDocument:
        return self.snapshot.documents[doc]

    def _field_values(self, document: SearchDocument, name: str) -> Iterator[tuple[str, str]]:
        entry = self.schema.get_field(name)
        if name == "id":
            yield "", document.id
        elif entry.field_type is FieldType.JSON:
            yield from flatten_json(document.body)
        else:
            value = document.body.get(name)
            if isinstance(value, str):
                yield "", value

    def _build(self) -> None:
        for entry in self.schema.fields:
            if not entry.indexed:
                continue
            postings: _Postings = defaultdict(lambda: defaultdict(lambda: defaultdict(list)))
            lengths: list[int] = []
            for doc_idx, document in enumerate(self.snapshot.documents):
                position = 0
                length = 0
                for path, text in self._field_values(document, entry.name):
                    tokens = tokenize(text, start=position)
                    for token, pos in tokens:
                        postings[token][doc_idx][path].append(pos)
                    length += len(tokens)
                    position += len(tokens) + POSITION_GAP
                lengths.append(length)
            self._postings[entry.name] = postings
            self._lengths[entry.name] = lengths
            self._avgdl[entry.name] = (sum(lengths) / len(lengths)) if lengths else 0.0

    def _bm25(self, field: str, tf: float, df: int, doc: int) -> float:
        n = self.num_docs
        idf = math.log(1.0 + (n - df + 0.5) / (df + 0.5))
        dl = self._lengths[field][doc]
        avgdl = self._avgdl[field] or 1.0
        denom = tf + self.k1 * (1.0 - self.b + self.b * (dl / avgdl))
        return idf * ((tf * (self.k1 + 1.0)) / denom)

    def term_scores(self, field: str, path: str | None, token: str) -> dict[int, float]:
        """Return BM25 scores of every document containing ``token``."""
        per_doc = self._postings.get(field, {}).get(token, {})
        tfs = {
            doc: sum(len(positions) for p, positions in paths.items() if _in_scope(p, path))
            for doc, paths in per_doc.items()
        }
        tfs = {doc: tf for doc, tf in tfs.items() if tf > 0}
        df = len(tfs)
        return {doc: self._bm25(field, float(tf), df, doc) for doc, tf in tfs.items()}

    def _phrase_docs(self, query: PhraseQuery) -> set[int]:
        postings = self._postings.get(query.field, {})
        candidates: set[int] | None = None
        for token in query.tokens:
            docs = set(postings.get(token, {}))
            candidates = docs if candidates is None else candidates & docs
            if not candidates:
                return set()
        matched: set[int] = set()
        for doc in candidates or set():
            first = postings[query.tokens[0]][doc]
            for path, starts in first.items():
                if not _in_scope(path, query.path):
                    continue
                rest = [
                    set(postings[token][doc].get(path, ())) for token in query.tokens[1:]
                ]
                if any(
                    all(start + offset + 1 in positions for offset, positions in enumerate(rest))
                    for start in starts
                ):
                    matched.add(doc)
                    break
        return matched

    def _phrase_scores(self, query: PhraseQuery) -> dict[int, float]:
        docs = self._phrase_docs(query)
        if not docs:
            return {}
        scores: dict[int, float] = dict.fromkeys(docs, 0.0)
        for token in query.tokens:
            for doc, score in self.term_scores(query.field, query.path, token).items():
                if doc in scores:
                    scores[doc] += score
        return scores

    def _boolean_scores(self, query: BooleanQuery) -> dict[int, float]:
        must = [self.execute(sub) for occur, sub in query.clauses if occur is Occur.MUST]
        should = [self.execute(sub) for occur, sub in query.clauses if occur is Occur.SHOULD]
        must_not = [self.execute(sub) for occur, sub in query.clauses if occur is Occur.MUST_NOT]

        if must:
            candidates = set(must[0])
            for scores in must[1:]:
                candidates &= set(scores)
        elif should:
            candidates = set().union(*should)
        else:
            candidates = set(range(self.num_docs))
        for scores in must_not:
            candidates -= set(scores)

        result: dict[int, float] = {}
        for doc in candidates:
            total = sum(scores[doc] for scores in must)
            total += sum(scores.get(doc, 0.0) for scores in should)
            result[doc] = total if (must or should) else 1.0
        return result

    def execute(self, query: Query) -> dict[int, float]:
        """Return ``{doc: score}`` for every document matching ``query``."""
        if isinstance(query, TermQuery):
            return self.term_scores(query.field, query.path, query.token)
        if isinstance(query, PhraseQuery):
            return self._phrase_scores(query)
        if isinstance(query, BooleanQuery):
            return self._boolean_scores(query)
        if isinstance(query, AllQuery):
            return dict.fromkeys(range(self.num_docs), 1.0)
        if isinstance(query, EmptyQuery):
            return {}
        msg = f"Unsupported query node: {type(query).__name__}"
        raise TypeError(msg)

    def search(self, query: Query, limit: int) -> list[Hit]:
        """Execute ``query`` and keep the ``limit`` best hits."""
        return _top(self.execute(query), limit)

    def fuzzy_search(
        self,
        field: str,
        term: str,
        limit: int,
        *,
        max_distance: int = DEFAULT_MAX_DISTANCE,
        prefix: bool = True,
    ) -> list[Hit]:
        """Match indexed tokens of ``field`` within ``max_distance`` edits of ``term``.

        A document scores the best BM25 score among its matching tokens,
        divided by ``1 + distance``.
        """
        matcher = Levenshtein(term, max_distance=max_distance, prefix=prefix)
        scores: dict[int, float] = {}
        for token in self._postings.get(field, {}):
            distance = matcher.matches(token)
            if distance is None:
                continue
            for doc, score in self.term_scores(field, None, token).items():
                weighted = score / (1.0 + distance)
                if weighted > scores.get(doc, 0.0):
                    scores[doc] = weighted
        return _top(scores, limit)


def _top(scores: dict[int, float], limit: int) -> list[Hit]:
    ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
    return [Hit(doc=doc, score=score) for doc, score in ranked[:limit]]
