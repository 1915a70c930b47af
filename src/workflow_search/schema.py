"""Search index schema and document shape.

The workflow index has exactly two fields: ``id`` (text, stored) and ``body``
(JSON, every string value indexed under its dotted path, stored).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Final

from workflow_common.errors import SchemaError

__all__ = [
    "DEFAULT_FIELDS",
    "WORKFLOW_SCHEMA",
    "FieldEntry",
    "FieldType",
    "IndexSchema",
    "SearchDocument",
]


class FieldType(StrEnum):
    """How a field's value is indexed."""

    TEXT = "text"
    JSON = "json"


@dataclass(frozen=True, slots=True)
class FieldEntry:
    """One schema field."""

    name: str
    field_type: FieldType
    indexed: bool = True
    stored: bool = True


@dataclass(frozen=True, slots=True)
class IndexSchema:
    """Ordered collection of :class:`FieldEntry` objects."""

    fields: tuple[FieldEntry, ...]

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(entry.name for entry in self.fields)

    def get_field(self, name: str) -> FieldEntry:
        """Return the field called ``name``.

        Raises
        ------
        SchemaError
            If the schema has no such field.
        """
        for entry in self.fields:
            if entry.name == name:
                return entry
        msg = f"Unknown search field {name!r}; expected one of {list(self.field_names)}"
        raise SchemaError(msg, context={"field": name})


WORKFLOW_SCHEMA: Final[IndexSchema] = IndexSchema(
    fields=(
        FieldEntry("id", FieldType.TEXT),
        FieldEntry("body", FieldType.JSON),
    )
)

DEFAULT_FIELDS: Final[tuple[str, ...]] = ("id", "body")


@dataclass(frozen=True, slots=True)
class SearchDocument:
    """A stored index document: workflow id plus its JSON body."""

    id: str
    body: Mapping[str, object] = field(default_factory=dict)

    def to_stored(self) -> dict[str, list[object]]:
        """Return the stored form ``{"id": [id], "body": [body]}``."""
        return {"id": [self.id], "body": [dict(self.body)]}

    def to_payload(self) -> dict[str, object]:
        """Return the segment-file form ``{"id": id, "body": body}``."""
        return {"id": self.id, "body": dict(self.body)}
