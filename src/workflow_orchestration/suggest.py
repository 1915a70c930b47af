"""Rank candidate strings against partial user input.

Interactive prompts complete argument values and workflow names with a
:data:`Suggester`: a plain callable from the current input to ranked
candidates. Ranking uses trigram similarity; :func:`within_distance` offers a
bounded Levenshtein filter for callers that want a hard cutoff instead.

Notes
-----
Both strings are padded as ``"  " + s + " "`` before windows of three
characters are taken, so leading characters weigh more than trailing ones.
The score is the number of candidate trigrams also found in the query,
divided by ``len(candidate) + 1`` and clamped to ``[0, 1]``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING

from workflow_common.models import Argument
from workflow_search.fuzzy import DEFAULT_MAX_DISTANCE, Levenshtein

if TYPE_CHECKING:
    from workflow_search.reader import IndexReader

__all__ = [
    "Suggester",
    "argument_suggester",
    "compare",
    "name_suggester",
    "rank",
    "trigrams",
    "within_distance",
]

Suggester = Callable[[str], list[str]]


def trigrams(text: str) -> list[str]:
    """Return the padded three-character windows of ``text``.

    Examples
    --------
    >>> trigrams("ab")
    ['  a', ' ab', 'ab ']
    """
    padded = f"  {text} "
    return [padded[i : i + 3] for i in range(len(padded) - 2)]


def compare(query: str, candidate: str) -> float:
    """Return the trigram similarity of ``candidate`` to ``query``."""
    wanted = set(trigrams(query))
    common = sum(1 for gram in trigrams(candidate) if gram in wanted)
    return min(max(common / (len(candidate) + 1), 0.0), 1.0)


def rank(query: str, candidates: Iterable[str], *, above_mean: bool = False) -> list[str]:
    """Order ``candidates`` by decreasing similarity to ``query``.

    Ties keep their input order.

    Parameters
    ----------
    query : str
        Partial input.
    candidates : Iterable[str]
        Strings to rank.
    above_mean : bool, optional
        Keep only candidates scoring at least the mean score. Defaults to False.

    Returns
    -------
    list[str]
        Ranked candidates.

    Examples
    --------
    >>> rank("deg", ["d", "de", "def", "defg", "defgh"])
    ['de', 'd', 'def', 'defg', 'defgh']
    """
    scored = [(candidate, compare(query, candidate)) for candidate in candidates]
    if above_mean and scored:
        mean = sum(score for _, score in scored) / len(scored)
        scored = [item for item in scored if item[1] >= mean]
    scored.sort(key=lambda item: item[1], reverse=True)
    return [candidate for candidate, _ in scored]


def within_distance(
    query: str, candidates: Iterable[str], max_distance: int = DEFAULT_MAX_DISTANCE
) -> list[str]:
    """Keep candidates within ``max_distance`` plain Levenshtein edits of ``query``.

    Examples
    --------
    >>> within_distance("main", ["main", "mian", "master"], 1)
    ['main']
    """
    matcher = Levenshtein(query, max_distance=max_distance, transpositions=False)
    return matcher.filter(list(candidates))


def _suggester(candidates: Sequence[str]) -> Suggester:
    def suggest(text: str) -> list[str]:
        if not text.strip():
            return list(candidates)
        return rank(text, candidates)

    return suggest


def argument_suggester(argument: Argument) -> Suggester:
    """Return a suggester over the example values of ``argument``.

    Empty input yields the values in declaration order.
    """
    return _suggester(tuple(argument.values))


def name_suggester(reader: IndexReader) -> Suggester:
    """Return a suggester over the names of every indexed workflow.

    Names are read once, when the suggester is built.
    """
    names: list[str] = []
    for document in reader.get_all_raw():
        for body in document.get("body", []):
            if isinstance(body, dict) and isinstance(body.get("name"), str):
                names.append(body["name"])
    return _suggester(tuple(sorted(names)))
