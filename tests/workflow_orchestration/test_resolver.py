"""Tests for workflow_orchestration.resolver."""

from __future__ import annotations

import pytest

from workflow_common.errors import ParseError
from workflow_common.models import Argument, Workflow
from workflow_orchestration.resolver import (
    SENTINEL,
    escape_value,
    placeholders,
    render_command,
    resolve_and_render,
    resolve_arguments,
)


@pytest.fixture
def copy_workflow() -> Workflow:
    return Workflow(
        name="copy",
        command="cp {{ src }} {{dst}}",
        arguments=[Argument(name="src", default="a.txt"), Argument(name="dst")],
    )


class TestResolveArguments:
    def test_default_and_sentinel(self, copy_workflow: Workflow) -> None:
        assert resolve_arguments(copy_workflow, {}) == {"src": "a.txt", "dst": SENTINEL}

    def test_precedence_overrides_default(self, copy_workflow: Workflow) -> None:
        values = resolve_arguments(copy_workflow, {"src": "b.txt", "dst": "c.txt", "x": "1"})
        assert values == {"src": "b.txt", "dst": "c.txt"}

    def test_keeps_declaration_order(self, copy_workflow: Workflow) -> None:
        assert list(resolve_arguments(copy_workflow, {"dst": "d"})) == ["src", "dst"]


class TestRenderCommand:
    def test_substitutes_value(self) -> None:
        assert render_command("echo {{msg}}", {"msg": "hi"}) == "echo hi"

    def test_whitespace_inside_braces(self) -> None:
        assert render_command("echo {{  msg }} {{msg}}", {"msg": "hi"}) == "echo hi hi"

    def test_unresolved_placeholder_raises(self) -> None:
        with pytest.raises(ParseError, match="dst"):
            render_command("cp {{src}} {{dst}}", {"src": "a"})

    def test_single_quotes_are_escaped(self) -> None:
        assert render_command("echo '{{msg}}'", {"msg": "it's"}) == "echo 'it'\\''s'"

    def test_text_without_placeholders_is_unchanged(self) -> None:
        assert render_command("ls -la { x }", {}) == "ls -la { x }"

    def test_shell_length_expansion_is_literal(self) -> None:
        assert render_command("echo ${#items[@]} {{n}}", {"n": "1"}) == "echo ${#items[@]} 1"

    @pytest.mark.parametrize("command", ["echo {{msg", "echo {{{msg}}}", "echo {{ }}"])
    def test_malformed_template_raises(self, command: str) -> None:
        with pytest.raises(ParseError, match="Malformed command template") as exc_info:
            render_command(command, {"msg": "hi"})
        assert exc_info.value.__cause__ is not None

    def test_trailing_newline_is_kept(self) -> None:
        assert render_command("echo {{msg}}\n", {"msg": "hi"}) == "echo hi\n"


def test_placeholders_in_first_appearance_order() -> None:
    assert placeholders("{{b}} {{a}} {{ b }}") == ["b", "a"]


def test_placeholders_rejects_unclosed_braces() -> None:
    with pytest.raises(ParseError):
        placeholders("cp {{src}} {{dst")


def test_escape_value_without_quotes() -> None:
    assert escape_value("plain") == "plain"


def test_resolve_and_render(copy_workflow: Workflow) -> None:
    assert resolve_and_render(copy_workflow, {"dst": "out/"}) == "cp a.txt out/"
    assert resolve_and_render(copy_workflow, {}) == f"cp a.txt {SENTINEL}"
