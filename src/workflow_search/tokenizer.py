"""Tokenization of text and JSON values for the search index."""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from typing import Final

__all__ = ["POSITION_GAP", "TOKEN_RE", "flatten_json", "tokenize", "toks"]

TOKEN_RE: Final[re.Pattern[str]] = re.compile(r"[A-Za-z0-9]+")

# Distance inserted between separate values so phrases never span them.
POSITION_GAP: Final[int] = 100


def toks(text: str) -> list[str]:
    """Extract lowercase alphanumeric tokens from ``text``.

    Examples
    --------
    >>> toks("Hello World 123")
    ['hello', 'world', '123']
    >>> toks("say_hello")
    ['say', 'hello']
    >>> toks("")
    []
    """
    matches: list[str] = TOKEN_RE.findall(text or "")
    return [token.lower() for token in matches]


def tokenize(text: str, start: int = 0) -> list[tuple[str, int]]:
    """Return ``(token, position)`` pairs, positions counted from ``start``."""
    return [(token, start + offset) for offset, token in enumerate(toks(text))]


def flatten_json(value: object, path: str = "") -> Iterator[tuple[str, str]]:
    """Yield ``(dotted_path, text)`` for every scalar leaf of a JSON value.

    Array elements share their parent's path. Numbers and booleans are
    rendered as text; nulls are skipped.

    Examples
    --------
    >>> list(flatten_json({"name": "Greet", "arguments": [{"name": "msg"}]}))
    [('name', 'Greet'), ('arguments.name', 'msg')]
    """
    if value is None:
        return
    if isinstance(value, Mapping):
        for key, child in value.items():
            child_path = f"{path}.{key}" if path else str(key)
            yield from flatten_json(child, child_path)
    elif isinstance(value, (list, tuple)):
        for child in value:
            yield from flatten_json(child, path)
    elif isinstance(value, bool):
        yield path, "true" if value else "false"
    else:
        yield path, str(value)
