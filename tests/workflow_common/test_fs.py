"""Tests for workflow_common.fs."""

from __future__ import annotations

from pathlib import Path

import pytest

from workflow_common.fs import atomic_write, ensure_dir, list_regular_files, read_text


class TestEnsureDir:
    def test_creates_parents(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b"
        assert ensure_dir(target) == target
        assert target.is_dir()

    def test_existing_directory_is_fine(self, tmp_path: Path) -> None:
        ensure_dir(tmp_path)

    def test_exist_ok_false_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileExistsError):
            ensure_dir(tmp_path, exist_ok=False)


class TestListRegularFiles:
    def test_skips_hidden_entries_and_directories(self, tmp_path: Path) -> None:
        (tmp_path / "b.yaml").write_text("b")
        (tmp_path / "a.yml").write_text("a")
        (tmp_path / ".hidden.yaml").write_text("h")
        (tmp_path / "index").mkdir()

        assert [path.name for path in list_regular_files(tmp_path)] == ["a.yml", "b.yaml"]

    def test_missing_directory_raises(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            list_regular_files(tmp_path / "absent")


class TestAtomicWrite:
    def test_text_round_trip(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "out.txt"
        atomic_write(target, "hello")
        assert read_text(target) == "hello"
        assert [path.name for path in target.parent.iterdir()] == ["out.txt"]

    def test_binary_mode(self, tmp_path: Path) -> None:
        target = tmp_path / "out.bin"
        atomic_write(target, b"\x00\x01", mode="binary")
        assert target.read_bytes() == b"\x00\x01"

    def test_mode_mismatch_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="text mode requires str data"):
            atomic_write(tmp_path / "out.txt", b"bytes")
