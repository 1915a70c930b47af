"""Tests for workflow_orchestration.scaffold."""

from __future__ import annotations

from pathlib import Path

import pytest

from workflow_common.errors import InvalidCommandError, WriteError
from workflow_common.parser import load_workflow_file
from workflow_orchestration.scaffold import scaffold_workflow, write_workflow


class TestScaffoldWorkflow:
    def test_arguments_follow_placeholders(self) -> None:
        workflow = scaffold_workflow(
            "Copy Files",
            "cp {{src}} {{ dst }} && echo {{src}}",
            "Copy a file",
            defaults={"dst": "/tmp"},
            tags=["fs"],
        )
        assert workflow.id == "copy_files"
        assert [(arg.name, arg.default) for arg in workflow.arguments] == [
            ("src", None),
            ("dst", "/tmp"),
        ]
        assert workflow.tags == ["fs"]

    def test_blank_command_is_rejected(self) -> None:
        with pytest.raises(InvalidCommandError):
            scaffold_workflow("empty", "   ")


class TestWriteWorkflow:
    def test_writes_loadable_document(self, tmp_path: Path) -> None:
        workflow = scaffold_workflow("Say Hello", "echo {{msg}}", "Greets")
        path = write_workflow(workflow, tmp_path)
        assert path == tmp_path / "say_hello.yaml"
        assert load_workflow_file(path) == workflow

    def test_refuses_to_overwrite(self, tmp_path: Path) -> None:
        workflow = scaffold_workflow("ls", "ls")
        write_workflow(workflow, tmp_path)
        with pytest.raises(WriteError, match="already exists"):
            write_workflow(workflow, tmp_path)
