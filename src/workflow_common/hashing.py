"""Deterministic 64-bit content hashing.

Checksums detect content changes between the workflow directory and the
store. They are stable across runs and platforms; they are not meant to resist
deliberate collisions.
"""

from __future__ import annotations

import json
from hashlib import blake2b
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from workflow_common.models import Workflow

__all__ = ["canonical_text", "checksum", "hash_text"]

_DIGEST_SIZE = 8


def hash_text(text: str) -> int:
    """Return the unsigned 64-bit hash of ``text``.

    Parameters
    ----------
    text : str
        Text to hash (UTF-8 encoded).

    Returns
    -------
    int
        Value in ``[0, 2**64)``.

    Examples
    --------
    >>> hash_text("echo hi") == hash_text("echo hi")
    True
    >>> 0 <= hash_text("") < 2**64
    True
    """
    digest = blake2b(text.encode("utf-8"), digest_size=_DIGEST_SIZE).digest()
    return int.from_bytes(digest, byteorder="little", signed=False)


def canonical_text(workflow: Workflow) -> str:
    """Render the canonical textual form of ``workflow``.

    The document form is dumped as JSON with sorted keys and compact
    separators, so equal records always produce equal text.
    """
    return json.dumps(
        workflow.to_document(),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def checksum(workflow: Workflow) -> int:
    """Return the 64-bit checksum of ``workflow``'s canonical form."""
    return hash_text(canonical_text(workflow))
