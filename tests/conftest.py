"""Shared pytest fixtures for the workflow catalog tests.

This module provides reusable fixtures for:
- Workflow directories populated with sample documents
- Memory, in-memory DuckDB and on-disk DuckDB stores
- In-memory search indexes
- Settings isolated from the user's environment and config file
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from workflow_common.models import Argument, Workflow
from workflow_common.settings import CONFIG_ENV_VAR, CatalogSettings
from workflow_registry.duckdb_store import DuckDBStore
from workflow_registry.memory_store import MemoryStore
from workflow_search.index import Index

ECHO_DOCUMENT = """\
name: Echo
description: Print a message
command: echo {{msg}}
arguments:
  - name: msg
    description: Message to print
    default_value: hello
    values:
      - hello
      - goodbye
"""

DOCKER_DOCUMENT = """\
name: Docker Prune
description: Remove dangling docker images
command: docker image prune --filter until={{age}}
arguments:
  - name: age
    values:
      - 24h
      - 168h
tags:
  - docker
  - cleanup
"""

GIT_DOCUMENT = """\
name: git-branch
description: Create a git branch
command: git checkout -b {{branch}}
arguments:
  - name: branch
"""


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests away from the user's ``WORKFLOW_*`` variables and config file."""
    for name in (
        "WORKFLOW_WORKFLOW_DIR",
        "WORKFLOW_STORE_DIR",
        "WORKFLOW_INDEX_DIR",
        "WORKFLOW_LOG_LEVEL",
        "WORKFLOW_SEARCH_LIMIT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "no-such-config"))


@pytest.fixture
def sample_documents() -> dict[str, str]:
    """File name to YAML text of the sample catalog."""
    return {
        "echo.yml": ECHO_DOCUMENT,
        "docker_prune.yaml": DOCKER_DOCUMENT,
        "git_branch.yaml": GIT_DOCUMENT,
    }


@pytest.fixture
def write_documents(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Return a helper writing documents into ``tmp_path / "workflows"``."""
    directory = tmp_path / "workflows"

    def _write(documents: dict[str, str]) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        for filename, text in documents.items():
            (directory / filename).write_text(text, encoding="utf-8")
        return directory

    return _write


@pytest.fixture
def workflow_dir(
    write_documents: Callable[[dict[str, str]], Path], sample_documents: dict[str, str]
) -> Path:
    """Workflow directory holding the sample catalog."""
    return write_documents(sample_documents)


@pytest.fixture
def echo_workflow() -> Workflow:
    return Workflow(
        name="Echo",
        description="Print a message",
        command="echo {{msg}}",
        arguments=[
            Argument(
                name="msg",
                description="Message to print",
                default="hello",
                values=["hello", "goodbye"],
            )
        ],
    )


@pytest.fixture
def memory_store() -> Iterator[MemoryStore]:
    with MemoryStore() as store:
        yield store


@pytest.fixture
def duckdb_store(tmp_path: Path) -> Iterator[DuckDBStore]:
    with DuckDBStore.open(tmp_path / "store") as store:
        yield store


@pytest.fixture
def ram_index() -> Index:
    return Index.create_in_ram()


@pytest.fixture
def settings(workflow_dir: Path) -> CatalogSettings:
    """Settings rooted at the sample workflow directory."""
    return CatalogSettings(workflow_dir=workflow_dir)
