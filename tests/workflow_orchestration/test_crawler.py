"""Tests for workflow_orchestration.crawler."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path

import pytest

from workflow_common.errors import ParseError, ReadError, WorkflowIOError
from workflow_common.hashing import checksum
from workflow_common.models import Workflow
from workflow_registry.api import Store
from workflow_registry.memory_store import MemoryStore
from workflow_search.index import Index
from workflow_orchestration.crawler import (
    crawl,
    index_catalog,
    normalize_reference,
    reconcile,
)


class _CountingStore(MemoryStore):
    """Memory store recording every mutation."""

    def __init__(self) -> None:
        super().__init__()
        self.mutations: list[str] = []

    def insert_all(self, workflows: Iterable[Workflow]) -> None:
        self.mutations.append("insert_all")
        super().insert_all(workflows)

    def delete_all(self) -> None:
        self.mutations.append("delete_all")
        super().delete_all()


class TestNormalizeReference:
    @pytest.mark.parametrize(
        ("filename", "expected"),
        [
            ("echo.yml", "echo.yml"),
            ("echo.yaml", "echo.yaml"),
            ("echo", "echo.yaml"),
            ("notes.txt", "notes.txt.yaml"),
        ],
    )
    def test_references(self, filename: str, expected: str) -> None:
        assert normalize_reference(filename) == expected


class TestCrawl:
    def test_parses_documents_in_name_order(self, workflow_dir: Path) -> None:
        assert [wf.id for wf in crawl(workflow_dir)] == ["docker_prune", "echo", "git_branch"]

    def test_ignores_hidden_files_and_directories(
        self,
        write_documents: Callable[[dict[str, str]], Path],
        sample_documents: dict[str, str],
    ) -> None:
        directory = write_documents(
            {"echo.yml": sample_documents["echo.yml"], ".secret.yaml": "::"}
        )
        (directory / "index").mkdir()
        assert [wf.id for wf in crawl(directory)] == ["echo"]

    def test_missing_directory_raises_io_error(self, tmp_path: Path) -> None:
        with pytest.raises(WorkflowIOError) as exc_info:
            crawl(tmp_path / "absent")
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_file_without_yaml_suffix_is_looked_up_with_one(
        self, write_documents: Callable[[dict[str, str]], Path]
    ) -> None:
        directory = write_documents({"README": "not a workflow"})
        with pytest.raises(ReadError, match=r"README\.yaml"):
            crawl(directory)


class TestReconcile:
    def test_first_pass_fills_store(self, workflow_dir: Path) -> None:
        store = _CountingStore()
        report = reconcile(workflow_dir, store)
        assert report.divergent
        assert report.parsed == 3
        assert report.changed_ids == ("docker_prune", "echo", "git_branch")
        assert store.mutations == ["delete_all", "insert_all"]
        assert len(store) == 3

    def test_unchanged_sources_are_a_noop(self, workflow_dir: Path) -> None:
        store = _CountingStore()
        reconcile(workflow_dir, store)
        store.mutations.clear()

        report = reconcile(workflow_dir, store)

        assert not report.divergent
        assert report.changed_ids == ()
        assert store.mutations == []

    def test_modified_document_replaces_content(
        self,
        workflow_dir: Path,
        memory_store: MemoryStore,
        sample_documents: dict[str, str],
    ) -> None:
        reconcile(workflow_dir, memory_store)
        (workflow_dir / "echo.yml").write_text(
            sample_documents["echo.yml"].replace("echo {{msg}}", "printf {{msg}}")
        )

        report = reconcile(workflow_dir, memory_store)

        assert report.divergent
        assert report.changed_ids == ("echo",)
        echo = memory_store.get("echo")
        assert echo is not None
        assert echo.command == "printf {{msg}}"

    def test_stale_records_survive_when_nothing_changed(
        self, workflow_dir: Path, memory_store: MemoryStore
    ) -> None:
        reconcile(workflow_dir, memory_store)
        stale = Workflow(name="Stale", command="true")
        memory_store.insert(stale)

        report = reconcile(workflow_dir, memory_store)

        assert not report.divergent
        assert memory_store.get("stale") == stale

    def test_parse_failure_leaves_store_untouched(
        self, workflow_dir: Path, memory_store: MemoryStore
    ) -> None:
        reconcile(workflow_dir, memory_store)
        before = {wf.id: checksum(wf) for wf in memory_store.get_all()}
        (workflow_dir / "broken.yaml").write_text("name: [unclosed")

        with pytest.raises(ParseError):
            reconcile(workflow_dir, memory_store)

        assert {wf.id: checksum(wf) for wf in memory_store.get_all()} == before

    @pytest.mark.parametrize("backend", ["memory", "duckdb"])
    def test_colliding_names_keep_the_later_document(
        self,
        backend: str,
        write_documents: Callable[[dict[str, str]], Path],
        memory_store: MemoryStore,
        duckdb_store: Store,
    ) -> None:
        directory = write_documents(
            {
                "a_first.yaml": "name: My Flow\ncommand: ls\n",
                "b_second.yaml": "name: my-flow\ncommand: ls -la\n",
            }
        )
        store = memory_store if backend == "memory" else duckdb_store

        report = reconcile(directory, store)

        assert report.parsed == 2
        assert report.changed_ids == ("my_flow",)
        assert [(wf.name, wf.command) for wf in store.get_all()] == [("my-flow", "ls -la")]

    def test_works_with_persistent_store(self, workflow_dir: Path, duckdb_store: Store) -> None:
        assert reconcile(workflow_dir, duckdb_store).divergent
        assert not reconcile(workflow_dir, duckdb_store).divergent


class TestIndexCatalog:
    def test_rebuilds_index_from_store(
        self, workflow_dir: Path, memory_store: MemoryStore, ram_index: Index
    ) -> None:
        reconcile(workflow_dir, memory_store)
        with ram_index.writer() as writer:
            writer.add("old", {"name": "old"})
            stamp = index_catalog(memory_store, writer)

        reader = ram_index.reader()
        assert reader.searcher().opstamp == stamp
        assert sorted(str(doc["id"][0]) for doc in reader.get_all_raw()) == [
            "docker_prune",
            "echo",
            "git_branch",
        ]
        ((_, workflow),) = reader.query_as("id:echo")
        assert workflow == memory_store.get("echo")
