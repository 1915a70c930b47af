"""Query language for the workflow index.

Grammar (keywords are upper case)::

    query   := clause ( ["OR"] clause )*
    clause  := unary ( "AND" unary )*
    unary   := "NOT" unary | "+" atom | "-" atom | atom
    atom    := "(" query ")" | "*" | [field ":"] ( word | '"' phrase '"' )
    field   := name | name "." path     # paths only on JSON fields

Juxtaposed clauses are OR-combined. ``+`` makes a clause required and ``-``
or ``NOT`` excludes it. A bare word or phrase is searched in every default
field. Words are run through the index tokenizer, so ``say-hello`` becomes
the phrase ``"say hello"``.

Examples
--------
>>> from workflow_search.schema import WORKFLOW_SCHEMA
>>> parse_query("body.name:greet", WORKFLOW_SCHEMA, ("id", "body"))
TermQuery(field='body', path='name', token='greet')
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Final

from workflow_common.errors import SchemaError
from workflow_search.schema import FieldType, IndexSchema
from workflow_search.tokenizer import toks

__all__ = [
    "AllQuery",
    "BooleanQuery",
    "EmptyQuery",
    "Occur",
    "PhraseQuery",
    "Query",
    "TermQuery",
    "parse_query",
]


class Occur(StrEnum):
    """How a boolean clause contributes to matching."""

    SHOULD = "should"
    MUST = "must"
    MUST_NOT = "must_not"


@dataclass(frozen=True, slots=True)
class TermQuery:
    """Match one token in ``field`` (restricted to ``path`` when set)."""

    field: str
    path: str | None
    token: str


@dataclass(frozen=True, slots=True)
class PhraseQuery:
    """Match consecutive tokens inside one value of ``field``."""

    field: str
    path: str | None
    tokens: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class AllQuery:
    """Match every document."""


@dataclass(frozen=True, slots=True)
class EmptyQuery:
    """Match no document."""


@dataclass(frozen=True, slots=True)
class BooleanQuery:
    """Combine sub-queries with :class:`Occur` flags."""

    clauses: tuple[tuple[Occur, Query], ...]


Query = TermQuery | PhraseQuery | AllQuery | EmptyQuery | BooleanQuery

_KEYWORDS: Final[frozenset[str]] = frozenset({"AND", "OR", "NOT"})


@dataclass(frozen=True, slots=True)
class _Token:
    kind: str  # "word", "phrase", "lparen", "rparen", "plus", "minus"
    text: str
    offset: int
    field: str | None = None


def _lex(text: str) -> list[_Token]:
    """Split ``text`` into lexical tokens.

    Raises
    ------
    SchemaError
        On an unterminated phrase.
    """
    tokens: list[_Token] = []
    i = 0
    n = len(text)
    while i < n:
        char = text[i]
        if char.isspace():
            i += 1
        elif char == "(":
            tokens.append(_Token("lparen", char, i))
            i += 1
        elif char == ")":
            tokens.append(_Token("rparen", char, i))
            i += 1
        elif char in "+-" and i + 1 < n and not text[i + 1].isspace() and text[i + 1] != ")":
            tokens.append(_Token("plus" if char == "+" else "minus", char, i))
            i += 1
        elif char == '"':
            end = text.find('"', i + 1)
            if end < 0:
                msg = f"Unterminated phrase starting at offset {i}"
                raise SchemaError(msg, context={"query": text})
            tokens.append(_Token("phrase", text[i + 1 : end], i))
            i = end + 1
        else:
            start = i
            while i < n and not text[i].isspace() and text[i] not in '()"':
                i += 1
            word = text[start:i]
            if word.endswith(":") and i < n and text[i] == '"':
                end = text.find('"', i + 1)
                if end < 0:
                    msg = f"Unterminated phrase starting at offset {i}"
                    raise SchemaError(msg, context={"query": text})
                tokens.append(_Token("phrase", text[i + 1 : end], start, field=word[:-1]))
                i = end + 1
            else:
                tokens.append(_Token("word", word, start))
    return tokens


class _Parser:
    def __init__(
        self, text: str, schema: IndexSchema, default_fields: Sequence[str]
    ) -> None:
        self._text = text
        self._schema = schema
        self._default_fields = tuple(default_fields)
        self._tokens = _lex(text)
        self._pos = 0

    def _error(self, message: str) -> SchemaError:
        msg = f"Error parsing query {self._text!r}: {message}"
        return SchemaError(msg, context={"query": self._text})

    def _peek(self) -> _Token | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _is_keyword(self, token: _Token | None, keyword: str) -> bool:
        return token is not None and token.kind == "word" and token.text == keyword

    def _advance(self) -> _Token:
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def parse(self) -> Query:
        if not self._tokens:
            return EmptyQuery()
        query = self._query()
        leftover = self._peek()
        if leftover is not None:
            raise self._error(f"unexpected {leftover.text!r} at offset {leftover.offset}")
        return query

    def _query(self) -> Query:
        clauses = [self._clause()]
        while True:
            token = self._peek()
            if token is None or token.kind == "rparen":
                break
            if self._is_keyword(token, "OR"):
                self._advance()
                following = self._peek()
                if following is None or following.kind == "rparen":
                    raise self._error("dangling OR")
            clauses.append(self._clause())
        if len(clauses) == 1 and clauses[0][0] is Occur.SHOULD:
            return clauses[0][1]
        return BooleanQuery(tuple(clauses))

    def _clause(self) -> tuple[Occur, Query]:
        first = self._unary()
        if not self._is_keyword(self._peek(), "AND"):
            return first
        parts = [first if first[0] is not Occur.SHOULD else (Occur.MUST, first[1])]
        while self._is_keyword(self._peek(), "AND"):
            self._advance()
            if self._peek() is None:
                raise self._error("dangling AND")
            occur, sub = self._unary()
            parts.append((Occur.MUST_NOT if occur is Occur.MUST_NOT else Occur.MUST, sub))
        return Occur.SHOULD, BooleanQuery(tuple(parts))

    def _unary(self) -> tuple[Occur, Query]:
        token = self._peek()
        if token is None:
            raise self._error("unexpected end of query")
        if self._is_keyword(token, "NOT"):
            self._advance()
            _, sub = self._unary()
            return Occur.MUST_NOT, sub
        if token.kind == "plus":
            self._advance()
            return Occur.MUST, self._atom()
        if token.kind == "minus":
            self._advance()
            return Occur.MUST_NOT, self._atom()
        return Occur.SHOULD, self._atom()

    def _atom(self) -> Query:
        token = self._peek()
        if token is None:
            raise self._error("unexpected end of query")
        if token.kind == "lparen":
            self._advance()
            closing = self._peek()
            if closing is not None and closing.kind == "rparen":
                raise self._error(f"empty group at offset {token.offset}")
            inner = self._query()
            closing = self._peek()
            if closing is None or closing.kind != "rparen":
                raise self._error(f"unbalanced parenthesis at offset {token.offset}")
            self._advance()
            return inner
        if token.kind == "rparen":
            raise self._error(f"unexpected ')' at offset {token.offset}")
        if token.kind == "word" and token.text in _KEYWORDS:
            raise self._error(f"unexpected {token.text} at offset {token.offset}")
        self._advance()
        if token.kind == "phrase":
            return self._text_query(token.field, token.text)
        if token.text == "*":
            return AllQuery()
        field, sep, value = token.text.partition(":")
        if sep and field and value:
            return self._text_query(field, value)
        if sep and field and not value:
            raise self._error(f"missing value after {field!r}:")
        return self._text_query(None, token.text)

    def _resolve_field(self, spec: str) -> tuple[str, str | None]:
        name, _, path = spec.partition(".")
        entry = self._schema.get_field(name)
        if path and entry.field_type is not FieldType.JSON:
            raise self._error(f"field {name!r} has no sub-paths")
        return name, path or None

    def _text_query(self, field_spec: str | None, text: str) -> Query:
        tokens = tuple(toks(text))
        targets = (
            [self._resolve_field(field_spec)]
            if field_spec is not None
            else [(name, None) for name in self._default_fields]
        )
        if not tokens:
            return EmptyQuery()
        per_field: list[Query] = [
            TermQuery(name, path, tokens[0])
            if len(tokens) == 1
            else PhraseQuery(name, path, tokens)
            for name, path in targets
        ]
        if len(per_field) == 1:
            return per_field[0]
        return BooleanQuery(tuple((Occur.SHOULD, sub) for sub in per_field))


def parse_query(
    text: str,
    schema: IndexSchema,
    default_fields: Sequence[str],
) -> Query:
    """Parse ``text`` into a :data:`Query` tree.

    Parameters
    ----------
    text : str
        Query text.
    schema : IndexSchema
        Schema used to validate field names.
    default_fields : Sequence[str]
        Fields searched by terms without an explicit field.

    Returns
    -------
    Query
        Parsed query; blank text yields :class:`EmptyQuery`.

    Raises
    ------
    SchemaError
        On malformed syntax or unknown fields.
    """
    for name in default_fields:
        schema.get_field(name)
    return _Parser(text, schema, default_fields).parse()
