"""Filesystem utilities using pathlib for safe, typed operations.

Examples
--------
>>> from pathlib import Path
>>> from workflow_common.fs import atomic_write, ensure_dir, read_text
>>> base = ensure_dir(Path("/tmp/workflow-fs-demo"))
>>> atomic_write(base / "file.txt", "content")
>>> read_text(base / "file.txt")
'content'
"""

from __future__ import annotations

import sys
import tempfile
from pathlib import Path
from typing import Literal

__all__ = ["atomic_write", "ensure_dir", "list_regular_files", "read_text"]


def ensure_dir(path: Path, *, exist_ok: bool = True) -> Path:
    """Create directory if it does not exist, including parent directories.

    Parameters
    ----------
    path : Path
        Directory path to create.
    exist_ok : bool, optional
        If True, do not raise if the directory already exists. Defaults to True.

    Returns
    -------
    Path
        The created or existing directory path (same as input).

    Raises
    ------
    PermissionError
        If the filesystem denies creation.
    FileExistsError
        If ``exist_ok=False`` and the path exists, or the path is a file.
    """
    path.mkdir(parents=True, exist_ok=exist_ok)
    return path


def read_text(path: Path, encoding: str = "utf-8") -> str:
    """Read text file contents with explicit encoding.

    Parameters
    ----------
    path : Path
        File path to read.
    encoding : str, optional
        Text encoding. Defaults to "utf-8".

    Returns
    -------
    str
        File contents as a decoded string.
    """
    return path.read_text(encoding=encoding)


def list_regular_files(directory: Path) -> list[Path]:
    """Return the visible regular files directly under ``directory``.

    Subdirectories, hidden entries (leading ``.``) and non-regular entries
    such as sockets or broken symlinks are skipped. The result is sorted by
    file name.

    Parameters
    ----------
    directory : Path
        Directory to list (not recursed).

    Returns
    -------
    list[Path]
        Regular files in name order.

    Raises
    ------
    OSError
        If the directory cannot be listed.
    """
    return sorted(
        (
            entry
            for entry in directory.iterdir()
            if not entry.name.startswith(".") and entry.is_file()
        ),
        key=lambda entry: entry.name,
    )


def atomic_write(
    path: Path,
    data: str | bytes,
    mode: Literal["text", "binary"] = "text",
) -> None:
    """Write data atomically using a temporary file and rename.

    The temporary file lives in the destination directory so the final
    ``replace`` stays on one filesystem; readers see either the old or the new
    content, never a partial write.

    Parameters
    ----------
    path : Path
        Final file path to write. Parent directories are created if needed.
    data : str | bytes
        Content to write. Must be str for text mode or bytes for binary mode.
    mode : Literal['text', 'binary'], optional
        Write mode. Defaults to "text".

    Raises
    ------
    ValueError
        If ``data`` does not match ``mode``.
    OSError
        If the temporary file cannot be written or renamed.
    """
    ensure_dir(path.parent, exist_ok=True)
    tmp_path: Path | None = None
    try:
        if mode == "text":
            if not isinstance(data, str):
                msg = "text mode requires str data"
                raise ValueError(msg)
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=str(path.parent),
                prefix=f".{path.name}.",
                delete=False,
                encoding="utf-8",
            ) as temp_file:
                tmp_path = Path(temp_file.name)
                temp_file.write(data)
                temp_file.flush()
        else:
            if not isinstance(data, bytes):
                msg = "binary mode requires bytes data"
                raise ValueError(msg)
            with tempfile.NamedTemporaryFile(
                mode="wb",
                dir=str(path.parent),
                prefix=f".{path.name}.",
                delete=False,
            ) as temp_file:
                tmp_path = Path(temp_file.name)
                temp_file.write(data)
                temp_file.flush()
        tmp_path.replace(path)
    finally:
        if tmp_path is not None and sys.exc_info()[0] is not None:
            tmp_path.unlink(missing_ok=True)
