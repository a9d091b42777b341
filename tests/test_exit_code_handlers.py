"""Tests for exit code interpretation."""

import pytest

from shellgate.utils.exit_code_handlers import (
    ExitInterpretation,
    interpret_exit_code,
    normalize_command,
)


def test_grep_no_match_is_not_an_error():
    assert interpret_exit_code("grep foo file", 1) == ExitInterpretation(
        is_error=False, message="No matches found"
    )


def test_grep_failure_is_an_error():
    assert interpret_exit_code("grep foo file", 2).is_error is True


def test_default_policy_for_unknown_commands():
    result = interpret_exit_code("ls missing", 1)
    assert result.is_error is True
    assert result.message == "Command failed with exit code 1"


def test_success_has_no_message():
    assert interpret_exit_code("ls", 0) == ExitInterpretation(is_error=False)
    assert interpret_exit_code("grep foo file", 0) == ExitInterpretation(is_error=False)


@pytest.mark.parametrize(
    "command,message",
    [
        ("rg pattern", "No matches found"),
        ("find / -name x", "Some directories were inaccessible"),
        ("diff a b", "Files differ"),
        ("test -f missing", "Condition is false"),
        ("[ -d missing ]", "Condition is false"),
    ],
)
def test_override_table(command, message):
    assert interpret_exit_code(command, 1) == ExitInterpretation(is_error=False, message=message)
    assert interpret_exit_code(command, 2).is_error is True


def test_last_pipeline_stage_decides():
    assert interpret_exit_code("cat log | grep ERROR", 1).is_error is False
    assert interpret_exit_code("grep ERROR log | sort", 1).is_error is True


def test_normalize_command():
    assert normalize_command("git status") == "git"
    assert normalize_command("cat file | grep pattern") == "grep"
    assert normalize_command("") == ""
    assert normalize_command("ls |") == ""
