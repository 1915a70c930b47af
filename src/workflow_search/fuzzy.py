"""Bounded edit distance used by fuzzy term queries.

Distances follow the optimal-string-alignment variant of Damerau-Levenshtein:
insertions, deletions, substitutions and adjacent transpositions each cost 1.
"""

from __future__ import annotations

from typing import Final

__all__ = ["DEFAULT_MAX_DISTANCE", "Levenshtein", "edit_distance"]

DEFAULT_MAX_DISTANCE: Final[int] = 2


def edit_distance(
    source: str,
    target: str,
    *,
    transpositions: bool = True,
    prefix: bool = False,
) -> int:
    """Return the edit distance from ``source`` to ``target``.

    Parameters
    ----------
    source : str
        Query text.
    target : str
        Candidate text.
    transpositions : bool, optional
        Count swapping two adjacent characters as one edit. Defaults to True.
    prefix : bool, optional
        Compare ``source`` against the closest prefix of ``target`` instead
        of the whole of it. Defaults to False.

    Returns
    -------
    int
        Number of edits.

    Examples
    --------
    >>> edit_distance("tets", "test")
    1
    >>> edit_distance("tets", "test", transpositions=False)
    2
    >>> edit_distance("doc", "docker", prefix=True)
    0
    """
    rows = len(source) + 1
    cols = len(target) + 1
    dist = [[0] * cols for _ in range(rows)]
    for i in range(rows):
        dist[i][0] = i
    for j in range(cols):
        dist[0][j] = j
    for i in range(1, rows):
        for j in range(1, cols):
            cost = 0 if source[i - 1] == target[j - 1] else 1
            best = min(
                dist[i - 1][j] + 1,
                dist[i][j - 1] + 1,
                dist[i - 1][j - 1] + cost,
            )
            if (
                transpositions
                and i > 1
                and j > 1
                and source[i - 1] == target[j - 2]
                and source[i - 2] == target[j - 1]
            ):
                best = min(best, dist[i - 2][j - 2] + 1)
            dist[i][j] = best
    if prefix:
        return min(dist[rows - 1])
    return dist[rows - 1][cols - 1]


class Levenshtein:
    """Matcher accepting candidates within ``max_distance`` edits of a query.

    Parameters
    ----------
    query : str
        Text to match against.
    max_distance : int, optional
        Largest accepted distance. Defaults to 2.
    transpositions : bool, optional
        Adjacent swaps cost one edit. Defaults to True.
    prefix : bool, optional
        Match against candidate prefixes. Defaults to False.

    Examples
    --------
    >>> Levenshtein("tets").filter(["test", "text", "best", "zzzz"])
    ['test', 'text', 'best']
    """

    def __init__(
        self,
        query: str,
        *,
        max_distance: int = DEFAULT_MAX_DISTANCE,
        transpositions: bool = True,
        prefix: bool = False,
    ) -> None:
        self.query = query
        self.max_distance = max_distance
        self.transpositions = transpositions
        self.prefix = prefix

    def distance(self, candidate: str) -> int:
        """Return the edit distance from the query to ``candidate``."""
        return edit_distance(
            self.query,
            candidate,
            transpositions=self.transpositions,
            prefix=self.prefix,
        )

    def matches(self, candidate: str) -> int | None:
        """Return the distance when within bounds, otherwise None."""
        if abs(len(candidate) - len(self.query)) > self.max_distance and not (
            self.prefix and len(candidate) > len(self.query)
        ):
            return None
        found = self.distance(candidate)
        return found if found <= self.max_distance else None

    def filter(self, candidates: list[str]) -> list[str]:
        """Return the candidates within bounds, preserving their order."""
        return [candidate for candidate in candidates if self.matches(candidate) is not None]
