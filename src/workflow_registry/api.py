"""Protocol describing the workflow key-value store."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, Self, runtime_checkable

from workflow_common.models import Workflow

__all__ = ["Store"]


@runtime_checkable
class Store(Protocol):
    """Persistent mapping ``id -> Workflow``.

    Records are keyed by :attr:`Workflow.id` and always replaced whole.
    Implementations raise :class:`~workflow_common.errors.StoreError` for
    every I/O or (de)serialization failure.
    """

    def insert(self, workflow: Workflow) -> None:
        """Insert or replace a single record."""
        ...

    def insert_all(self, workflows: Iterable[Workflow]) -> None:
        """Insert or replace every record in one transaction.

        Either all records become visible or none do; a later record with the
        same id as an earlier one wins.
        """
        ...

    def get(self, workflow_id: str) -> Workflow | None:
        """Return the record stored under ``workflow_id``, if any."""
        ...

    def get_all(self) -> list[Workflow]:
        """Return every record in ascending id order."""
        ...

    def delete(self, workflow_id: str) -> None:
        """Remove the record stored under ``workflow_id`` (no-op when absent)."""
        ...

    def delete_all(self) -> None:
        """Remove every record (no-op on an empty store)."""
        ...

    def close(self) -> None:
        """Release the underlying resources."""
        ...

    def __enter__(self) -> Self: ...

    def __exit__(self, *exc_info: object) -> None: ...
