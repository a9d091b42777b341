"""Tests for the read-only command classifier."""

import pytest

from shellgate.utils.permissions.read_only import (
    READ_ONLY_COMMAND_PATTERNS,
    is_read_only,
    is_read_only_command,
    violates_flag_guard,
)


@pytest.mark.parametrize(
    "command",
    [
        "pwd",
        "ls -la",
        "cat README.md",
        "head -n 5 notes.txt",
        "wc -l src/app.py",
        "echo hello world",
        "echo 'quoted text'",
        "git status",
        "git log --oneline -n 5",
        "git diff HEAD~1",
        "git branch",
        "git remote -v",
        "grep -n foo src/app.py",
        "grep -A 3 'def main'",
        "rg TODO",
        "find . -name '*.py'",
        "sort -n data.txt",
        "uniq -c",
        "which python",
        "node --version",
        "python3 --version",
        "pip list",
        "docker ps -a",
        "date",
        "uname -a",
        "whoami",
        "env",
        "man ls",
        "jq '.name' package.json",
    ],
)
def test_read_only_commands(command):
    assert is_read_only_command(command) is True


@pytest.mark.parametrize(
    "command",
    [
        "",
        "rm -rf /tmp/x",
        "git push origin main",
        "git commit -m wip",
        "git reflog expire --all",
        "git branch -D main",
        "git diff --output=patch.txt",
        "find . -delete",
        "find . -name '*.tmp' -exec rm {} +",
        "sort -o out.txt in.txt",
        "date -s 2020-01-01",
        "hostname newname",
        "ls > listing.txt",
        "cat file | sh",
        "echo $(whoami)",
        "echo `whoami`",
        "cat $HOME/.ssh/id_rsa",
        "cat file\nrm -rf /",
        "headless-chrome --remote",
        "npm install",
        "python -c 'print(1)'",
    ],
)
def test_mutating_or_unknown_commands(command):
    assert is_read_only_command(command) is False


def test_surrounding_whitespace_is_ignored():
    assert is_read_only_command("  git status  ") is True


def test_signature_table_is_large_and_ordered():
    assert isinstance(READ_ONLY_COMMAND_PATTERNS, tuple)
    assert len(READ_ONLY_COMMAND_PATTERNS) >= 80
    assert all(pattern.pattern.startswith("^") for pattern in READ_ONLY_COMMAND_PATTERNS)


class TestIsReadOnly:
    def test_every_segment_must_be_read_only(self):
        assert is_read_only("ls && pwd") is True
        assert is_read_only("cat file | grep foo") is True
        assert is_read_only("ls && rm -rf build") is False

    def test_sandbox_short_circuits(self):
        assert is_read_only("rm -rf /", sandbox=True) is True

    def test_empty_command_is_not_read_only(self):
        assert is_read_only("") is False
        assert is_read_only(" ; ") is False


class TestFlagGuards:
    @pytest.mark.parametrize(
        "command",
        [
            "find . '-delete'",
            'find . -name x "-exec" rm {} +',
            "find . \\-delete",
            "find . -de''lete",
            "sort -ooutput.txt input.txt",
            "sort -uo output.txt input.txt",
            "sort --out=output.txt input.txt",
            "tree -oout.txt",
            "git diff '--output=/tmp/x'",
            "git diff --ext",
            "git log --outp=log.txt",
            "git reflog 'expire' --all",
            "git grep -iO pattern",
            "date -us 2020-01-01",
            "date --set=2020-01-01",
            "rg --pre=./run.sh foo",
            "jq -rf filter.jq data.json",
            "jq '--rawfile' a b '.'",
            "netstat -tulpn",
            "history -c",
        ],
    )
    def test_hidden_or_combined_flags_are_refused(self, command):
        assert violates_flag_guard(command) is True
        assert is_read_only_command(command) is False

    @pytest.mark.parametrize(
        "command",
        [
            "find . -name '*.py' -type f",
            "sort -u -k 2 data.txt",
            "tree -L 2",
            "git log --oneline --output-indicator-new=+",
            "git diff --stat",
            "rg --pre-glob '*.gz' foo",
            "date +%s",
        ],
    )
    def test_harmless_flags_pass(self, command):
        assert violates_flag_guard(command) is False
        assert is_read_only_command(command) is True

    def test_unguarded_commands_are_not_checked(self):
        assert violates_flag_guard("ls -o") is False
