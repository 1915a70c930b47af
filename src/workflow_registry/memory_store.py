"""Dictionary-backed store for tests and throwaway catalogs."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Self

from pydantic import ValidationError

from workflow_common.errors import StoreError
from workflow_common.models import Workflow

__all__ = ["MemoryStore"]


class MemoryStore:
    """In-process :class:`~workflow_registry.api.Store` implementation.

    Records are kept as JSON text, so a record read back is a fresh copy that
    went through the same (de)serialization as the persistent store.
    """

    def __init__(self) -> None:
        self._records: dict[str, str] = {}

    def insert(self, workflow: Workflow) -> None:
        self.insert_all([workflow])

    def insert_all(self, workflows: Iterable[Workflow]) -> None:
        staged = {
            workflow.id: workflow.model_dump_json(by_alias=True, exclude_none=True)
            for workflow in workflows
        }
        self._records.update(staged)

    def get(self, workflow_id: str) -> Workflow | None:
        body = self._records.get(workflow_id)
        if body is None:
            return None
        try:
            return Workflow.model_validate_json(body)
        except ValidationError as exc:
            msg = f"Stored record {workflow_id!r} could not be deserialized"
            raise StoreError(msg, cause=exc, context={"id": workflow_id}) from exc

    def get_all(self) -> list[Workflow]:
        return [
            workflow
            for workflow_id in sorted(self._records)
            if (workflow := self.get(workflow_id)) is not None
        ]

    def delete(self, workflow_id: str) -> None:
        self._records.pop(workflow_id, None)

    def delete_all(self) -> None:
        self._records.clear()

    def close(self) -> None:
        """Nothing to release."""

    def __len__(self) -> int:
        return len(self._records)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
