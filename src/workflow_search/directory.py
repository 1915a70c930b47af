"""Index storage backends: filesystem directory and in-memory.

A committed index is an :class:`IndexSnapshot`, the sequence of stored
documents plus the opstamp of the commit that produced it. On disk a snapshot
is one schema-validated segment file (``segment-<opstamp>.json`` with its
``.sha256``) referenced by ``meta.json``. A commit writes the new segment
first and then atomically replaces ``meta.json``, so readers observe either
the previous or the new commit, never a mix.

Only one writer may hold an index at a time; the directory backend enforces it
with an exclusive advisory lock on ``.writer.lock``.
"""

from __future__ import annotations

import fcntl
import shutil
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Final, Protocol, cast

from workflow_common.errors import SchemaError, WorkflowIOError
from workflow_common.fs import ensure_dir
from workflow_common.logging import get_logger
from workflow_common.serialization import deserialize_json, schema_path, serialize_json
from workflow_search.schema import SearchDocument

__all__ = [
    "FORMAT_VERSION",
    "IndexDirectory",
    "IndexSnapshot",
    "MmapDirectory",
    "RamDirectory",
]

logger = get_logger(__name__)

FORMAT_VERSION: Final[int] = 1
META_FILENAME: Final[str] = "meta.json"
LOCK_FILENAME: Final[str] = ".writer.lock"
_LOAD_ATTEMPTS: Final[int] = 3


@dataclass(frozen=True, slots=True)
class IndexSnapshot:
    """Documents visible after the commit stamped ``opstamp``."""

    opstamp: int = 0
    documents: tuple[SearchDocument, ...] = field(default_factory=tuple)


class IndexDirectory(Protocol):
    """Storage backend holding committed snapshots."""

    def load(self) -> IndexSnapshot:
        """Return the last committed snapshot."""
        ...

    def current_opstamp(self) -> int:
        """Return the opstamp of the last commit without loading documents."""
        ...

    def save(self, snapshot: IndexSnapshot) -> None:
        """Publish ``snapshot`` as the new committed state."""
        ...

    def acquire_writer_lock(self) -> None:
        """Take the single-writer lock or raise :class:`SchemaError`."""
        ...

    def release_writer_lock(self) -> None:
        """Release the single-writer lock."""
        ...

    def clear(self) -> None:
        """Remove every committed snapshot."""
        ...


class RamDirectory:
    """In-memory backend; snapshots vanish with the process."""

    def __init__(self) -> None:
        self._snapshot = IndexSnapshot()
        self._lock = threading.Lock()
        self._writer_held = False

    def load(self) -> IndexSnapshot:
        with self._lock:
            return self._snapshot

    def current_opstamp(self) -> int:
        with self._lock:
            return self._snapshot.opstamp

    def save(self, snapshot: IndexSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot

    def acquire_writer_lock(self) -> None:
        with self._lock:
            if self._writer_held:
                msg = "The in-memory index already has an open writer"
                raise SchemaError(msg)
            self._writer_held = True

    def release_writer_lock(self) -> None:
        with self._lock:
            self._writer_held = False

    def clear(self) -> None:
        with self._lock:
            self._snapshot = IndexSnapshot()


class MmapDirectory:
    """Filesystem backend rooted at ``path``.

    Parameters
    ----------
    path : Path
        Index directory; created when missing.

    Raises
    ------
    WorkflowIOError
        If the directory cannot be created.
    """

    def __init__(self, path: Path) -> None:
        try:
            self.path = ensure_dir(path)
        except OSError as exc:
            msg = f"Unable to create the index directory {path}"
            raise WorkflowIOError(msg, cause=exc, context={"path": str(path)}) from exc
        self._lock_file: IO[str] | None = None
        self._meta_schema = schema_path("index_meta.v1.json")
        self._segment_schema = schema_path("index_segment.v1.json")

    @property
    def meta_path(self) -> Path:
        return self.path / META_FILENAME

    def _read_meta(self) -> dict[str, object] | None:
        if not self.meta_path.exists():
            return None
        meta = deserialize_json(self.meta_path, self._meta_schema, verify_checksum_file=False)
        return cast("dict[str, object]", meta)

    def current_opstamp(self) -> int:
        meta = self._read_meta()
        return 0 if meta is None else cast("int", meta["opstamp"])

    def load(self) -> IndexSnapshot:
        """Load the committed snapshot.

        A concurrent commit may remove the segment named by the meta file
        between the two reads; the load is then retried against fresh meta.

        Raises
        ------
        SchemaError
            If the meta or segment file is corrupt or unreadable.
        """
        last_error: SchemaError | None = None
        for _ in range(_LOAD_ATTEMPTS):
            meta = self._read_meta()
            if meta is None or meta["segment"] is None:
                opstamp = 0 if meta is None else cast("int", meta["opstamp"])
                return IndexSnapshot(opstamp=opstamp)
            segment_path = self.path / cast("str", meta["segment"])
            if not segment_path.exists():
                last_error = SchemaError(
                    f"Segment {segment_path.name} referenced by the index meta is missing",
                    context={"path": str(segment_path)},
                )
                continue
            payload = cast(
                "dict[str, object]", deserialize_json(segment_path, self._segment_schema)
            )
            raw_docs = cast("list[dict[str, object]]", payload["documents"])
            documents = tuple(
                SearchDocument(
                    id=cast("str", doc["id"]),
                    body=cast("dict[str, object]", doc["body"]),
                )
                for doc in raw_docs
            )
            return IndexSnapshot(opstamp=cast("int", meta["opstamp"]), documents=documents)
        msg = f"Unable to load a consistent snapshot from {self.path}"
        raise SchemaError(msg, cause=last_error, context={"path": str(self.path)})

    def save(self, snapshot: IndexSnapshot) -> None:
        """Write a new segment, then point ``meta.json`` at it.

        Raises
        ------
        SchemaError
            If a file cannot be written.
        """
        segment_name = f"segment-{snapshot.opstamp:010d}.json"
        serialize_json(
            {
                "opstamp": snapshot.opstamp,
                "documents": [doc.to_payload() for doc in snapshot.documents],
            },
            self._segment_schema,
            self.path / segment_name,
        )
        serialize_json(
            {
                "format": FORMAT_VERSION,
                "opstamp": snapshot.opstamp,
                "segment": segment_name,
                "num_docs": len(snapshot.documents),
            },
            self._meta_schema,
            self.meta_path,
            include_checksum=False,
        )
        self._remove_stale_segments(keep=segment_name)

    def _remove_stale_segments(self, keep: str) -> None:
        for stale in self.path.glob("segment-*.json*"):
            if stale.name in {keep, f"{keep}.sha256"}:
                continue
            try:
                stale.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning(
                    "Unable to remove stale segment",
                    extra={"operation": "index.gc", "path": str(stale), "error": str(exc)},
                )

    def acquire_writer_lock(self) -> None:
        if self._lock_file is not None:
            msg = f"The index at {self.path} already has an open writer"
            raise SchemaError(msg, context={"path": str(self.path)})
        lock_path = self.path / LOCK_FILENAME
        try:
            handle = lock_path.open("a", encoding="utf-8")
        except OSError as exc:
            msg = f"Unable to open the index lock file {lock_path}"
            raise SchemaError(msg, cause=exc, context={"path": str(lock_path)}) from exc
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as exc:
            handle.close()
            msg = f"Another writer holds the index lock at {lock_path}"
            raise SchemaError(msg, cause=exc, context={"path": str(lock_path)}) from exc
        self._lock_file = handle

    def release_writer_lock(self) -> None:
        if self._lock_file is None:
            return
        try:
            fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_UN)
        finally:
            self._lock_file.close()
            self._lock_file = None

    def clear(self) -> None:
        """Delete every file in the index directory.

        Raises
        ------
        WorkflowIOError
            If an entry cannot be removed.
        """
        for entry in self.path.iterdir():
            try:
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
            except OSError as exc:
                msg = f"Unable to remove {entry} from the index directory"
                raise WorkflowIOError(msg, cause=exc, context={"path": str(entry)}) from exc
