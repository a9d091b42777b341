"""Tests for the operator allow-list and the dangerous-character net."""

import pytest

from shellgate.utils.permissions.pipeline_safety import (
    contains_dangerous_characters,
    has_multiple_commands,
    is_pipeline_safe,
    pipe_operators,
)


@pytest.mark.parametrize(
    "command",
    [
        "ls",
        "ls && pwd",
        "make || echo failed",
        "cat file | grep foo | wc -l",
        "make 2>&1",
        "make >&2",
        "make > /dev/null",
        "ls *.py",
        "echo $HOME",
        "echo 'a;b' \"c|d\"",
        "a ;; b",
    ],
)
def test_pipeline_safe_commands(command):
    assert is_pipeline_safe(command) is True


@pytest.mark.parametrize(
    "command",
    [
        "echo hi; rm -rf /",
        "cat < secrets",
        "ls > out.txt",
        "ls >> out.txt",
        "make >&3",
        "sleep 10 &",
        "echo hi # trailing comment",
        "echo 'unterminated",
        "echo a\nrm -rf /",
        "diff <(ls a) <(ls b)",
        "(cd /tmp && ls)",
        "cat <<EOF",
    ],
)
def test_pipeline_unsafe_commands(command):
    assert is_pipeline_safe(command) is False


def test_sequence_operator_can_be_enabled():
    assert is_pipeline_safe("echo hi; ls") is False
    assert is_pipeline_safe("echo hi; ls", allow_sequence=True) is True


def test_variables_cannot_introduce_operators():
    # The value is never substituted, so "$CMD" stays one word.
    assert is_pipeline_safe("echo $CMD") is True


class TestHasMultipleCommands:
    def test_sequence_is_multiple(self):
        assert has_multiple_commands("echo hi; rm -rf /") is True

    def test_safe_composites_are_not_multiple(self):
        assert has_multiple_commands("ls && pwd") is False
        assert has_multiple_commands("cat f | grep x") is False

    def test_single_unsafe_command_is_not_multiple(self):
        # One segment, so the per-segment path handles it.
        assert has_multiple_commands("cat < f") is False

    def test_sequence_allowed_by_setting(self):
        assert has_multiple_commands("echo hi; ls", allow_sequence=True) is False


class TestDangerousCharacters:
    def test_plain_segments_are_clean(self):
        assert contains_dangerous_characters(["ls -la", "git status", "cd ./src"]) is False

    @pytest.mark.parametrize(
        "segment",
        ["echo 'x'", 'echo "x"', "echo `id`", "echo $HOME", "a\\b", "ls # c", "cat ~[x]"],
    )
    def test_markers_are_detected(self, segment):
        assert contains_dangerous_characters(["ls", segment]) is True

    def test_empty_input(self):
        assert contains_dangerous_characters([]) is False


def test_pipe_operators_ignore_or_and_quotes():
    command = "a || b | c 'd | e'"
    pipes = pipe_operators(command)
    assert len(pipes) == 1
    assert command[pipes[0].start] == "|"
    assert command[: pipes[0].start].strip() == "a || b"
