"""Tests for the ``workflow`` command-line interface."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from workflow_common.errors import InvalidArgumentsError
from workflow_orchestration.cli import app, parse_assignments
from workflow_orchestration.resolver import SENTINEL

runner = CliRunner()


def invoke(workflow_dir: Path, *args: str, stdin: str | None = None):  # noqa: ANN201
    return runner.invoke(app, ["--workflow-dir", str(workflow_dir), *args], input=stdin)


class TestParseAssignments:
    def test_value_may_contain_equals(self) -> None:
        assert parse_assignments(["query=a=b"]) == {"query": "a=b"}

    @pytest.mark.parametrize("pair", ["novalue", "=x"])
    def test_rejects_malformed_pairs(self, pair: str) -> None:
        with pytest.raises(InvalidArgumentsError):
            parse_assignments([pair])


class TestRun:
    def test_no_input_uses_defaults(self, workflow_dir: Path) -> None:
        result = invoke(workflow_dir, "run", "echo", "--no-input")
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "echo hello"

    def test_assignment_wins_over_default(self, workflow_dir: Path) -> None:
        result = invoke(workflow_dir, "run", "Echo", "--no-input", "--arg", "msg=hi")
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "echo hi"

    def test_missing_value_renders_sentinel(self, workflow_dir: Path) -> None:
        result = invoke(workflow_dir, "run", "git branch", "--no-input")
        assert result.exit_code == 0, result.output
        assert result.output.strip() == f"git checkout -b {SENTINEL}"

    def test_prompt_accepts_default(self, workflow_dir: Path) -> None:
        result = invoke(workflow_dir, "run", "echo", stdin="\n")
        assert result.exit_code == 0, result.output
        assert "msg suggestions: hello, goodbye" in result.output
        assert result.output.rstrip().endswith("echo hello")

    def test_prompt_reads_value(self, workflow_dir: Path) -> None:
        result = invoke(workflow_dir, "run", "echo", stdin="goodbye\n")
        assert result.exit_code == 0, result.output
        assert result.output.rstrip().endswith("echo goodbye")

    def test_aborted_prompt_exits_cleanly(self, workflow_dir: Path) -> None:
        result = invoke(workflow_dir, "run", "echo", stdin="")
        assert result.exit_code == 0
        assert "No selection made." in result.output

    def test_unknown_name_suggests_close_names(self, workflow_dir: Path) -> None:
        result = invoke(workflow_dir, "run", "dockr", "--no-input")
        assert result.exit_code == 1
        assert "InvalidNameError" in result.output
        assert "Did you mean: Docker Prune?" in result.output

    def test_malformed_assignment_fails(self, workflow_dir: Path) -> None:
        result = invoke(workflow_dir, "run", "echo", "--no-input", "--arg", "oops")
        assert result.exit_code == 1
        assert "InvalidArgumentsError" in result.output

    def test_executed_command_status_is_propagated(self, workflow_dir: Path) -> None:
        assert invoke(workflow_dir, "create", "fail", "exit {{code}}").exit_code == 0
        result = invoke(
            workflow_dir, "run", "fail", "--no-input", "--arg", "code=3", "--execute"
        )
        assert result.exit_code == 3

    def test_declined_confirmation_does_not_execute(self, workflow_dir: Path) -> None:
        result = invoke(
            workflow_dir, "run", "echo", "--arg", "msg=hi", "--execute", stdin="n\n"
        )
        assert result.exit_code == 0, result.output
        assert "echo hi" in result.output

    def test_broken_document_reports_cause(self, workflow_dir: Path) -> None:
        (workflow_dir / "broken.yaml").write_text("name: [unclosed", encoding="utf-8")
        result = invoke(workflow_dir, "run", "echo", "--no-input")
        assert result.exit_code == 1
        assert "ParseError" in result.output
        assert "Caused by:" in result.output


class TestList:
    def test_sorted_by_name(self, workflow_dir: Path) -> None:
        result = invoke(workflow_dir, "list")
        assert result.exit_code == 0, result.output
        names = [line for line in result.output.splitlines() if line.startswith("- ")]
        assert names == [
            "- Docker Prune: Remove dangling docker images",
            "- Echo: Print a message",
            "- git-branch: Create a git branch",
        ]
        assert "    echo {{msg}}" in result.output

    def test_empty_directory(self, tmp_path: Path) -> None:
        result = invoke(tmp_path / "empty", "list")
        assert result.exit_code == 0, result.output
        assert "No workflows in" in result.output


class TestSearch:
    def test_exact_match(self, workflow_dir: Path) -> None:
        result = invoke(workflow_dir, "search", "docker")
        assert result.exit_code == 0, result.output
        assert "Docker Prune" in result.output
        assert "Echo" not in result.output

    def test_typo_falls_back_to_fuzzy(self, workflow_dir: Path) -> None:
        result = invoke(workflow_dir, "search", "dcoker")
        assert result.exit_code == 0, result.output
        assert "Docker Prune" in result.output

    def test_no_hits(self, workflow_dir: Path) -> None:
        result = invoke(workflow_dir, "search", "kubernetes")
        assert result.exit_code == 0, result.output
        assert "No workflows match 'kubernetes'" in result.output

    def test_limit(self, workflow_dir: Path) -> None:
        result = invoke(workflow_dir, "search", "*", "--limit", "2")
        assert result.exit_code == 0, result.output
        assert len(result.output.strip().splitlines()) == 2


class TestMaintenance:
    def test_scan_reports_changes(self, workflow_dir: Path) -> None:
        first = invoke(workflow_dir, "scan")
        second = invoke(workflow_dir, "scan")
        assert first.exit_code == 0, first.output
        assert f"Scanned 3 workflows in {workflow_dir} (3 changed)" in first.output
        assert "(0 changed)" in second.output

    def test_clean_then_search_rebuilds(self, workflow_dir: Path) -> None:
        assert invoke(workflow_dir, "scan").exit_code == 0
        result = invoke(workflow_dir, "clean")
        assert result.exit_code == 0, result.output
        assert "Index cleared at" in result.output
        assert "Docker Prune" in invoke(workflow_dir, "search", "prune").output


class TestCreate:
    def test_creates_document(self, workflow_dir: Path) -> None:
        result = invoke(
            workflow_dir, "create", "Say Hi", "echo {{msg}}", "--description", "Greets"
        )
        assert result.exit_code == 0, result.output
        assert (workflow_dir / "say_hi.yaml").is_file()
        rendered = invoke(workflow_dir, "run", "say hi", "--no-input")
        assert rendered.output.strip() == f"echo {SENTINEL}"

    def test_duplicate_fails(self, workflow_dir: Path) -> None:
        result = invoke(workflow_dir, "create", "Docker Prune", "docker system prune")
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_malformed_template_is_rejected(self, workflow_dir: Path) -> None:
        result = invoke(workflow_dir, "create", "broken", "echo {{msg")
        assert result.exit_code == 1
        assert "Malformed command template" in result.output
        assert not (workflow_dir / "broken.yaml").exists()
