"""Signature table for side-effect-free commands.

A command is read-only iff one of these anchored signatures matches it. The
table is a closed allow-list evaluated in order, first match wins; anything
unmatched is assumed to mutate state. A match is then vetoed by
:data:`FLAG_GUARDS` when the command carries a writing or executing option.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple

from shellgate.utils.shell_token_utils import parse_shell_tokens, split_command_list

# Argument text that cannot smuggle a second command, a redirect or a substitution.
_ARGS = r"[^<>()$`|;&\n\r]*"


def _simple(name: str) -> re.Pattern[str]:
    """Signature for ``name`` optionally followed by plain arguments."""
    return re.compile(rf"^{name}(?:\s{_ARGS})?$")


def _exact(text: str) -> re.Pattern[str]:
    return re.compile(rf"^{text}$")


_SEARCH_PATTERN = r"(?:'[^']*'|\"[^\"$`]*\"|[^\s<>()$`|;&'\"]+)"
_SEARCH_FLAGS = r"(?:-[a-zA-Z]+|--[a-zA-Z-]+(?:=\S+)?|-[ABCm]\s*\d+)"
_SEARCH_ARGS = (
    rf"\s+(?:{_SEARCH_FLAGS}\s+)*{_SEARCH_PATTERN}(?:\s+[^\s<>()$`|;&]+)*\s*"
)

READ_ONLY_COMMAND_PATTERNS: Tuple[re.Pattern[str], ...] = (
    # Date and time
    _simple("date"),
    _simple("cal"),
    _simple("uptime"),
    # Output of literal text
    re.compile(r"^echo(?:\s+(?:'[^']*'|\"[^\"$`\\<>]*\"|[^|;&`$(){}><#\\\s!'\"]+))*\s*$"),
    re.compile(
        r"^printf\s+(?:'[^']*'|\"[^\"$`\\<>]*\")"
        r"(?:\s+(?:'[^']*'|[^|;&`$(){}><#\\\s!'\"]+))*\s*$"
    ),
    _exact("true"),
    _exact("false"),
    # Our own help output
    _exact(r"shellgate (?:-h|--help|--version)"),
    # Git, read operations only
    _simple("git diff"),
    _simple("git log"),
    _simple("git show"),
    _simple("git status"),
    _simple("git blame"),
    _simple("git shortlog"),
    _simple("git describe"),
    _simple("git reflog"),
    _simple("git stash list"),
    _simple("git ls-files"),
    _simple("git ls-remote"),
    _simple("git ls-tree"),
    _simple("git rev-parse"),
    _simple("git cat-file"),
    _simple("git grep"),
    _simple("git config --get"),
    _simple("git config --list"),
    _exact(r"git remote(?: -v| --verbose)?"),
    _simple("git remote show"),
    _exact("git tag"),
    _simple("git tag -l"),
    _exact("git branch"),
    _exact(r"git branch (?:-v|-vv|--verbose)"),
    _exact(r"git branch (?:-a|--all)"),
    _exact(r"git branch (?:-r|--remotes)"),
    re.compile(r"^git branch (?:-l|--list)(?:\s+\"[^\"]*\"|\s+'[^']*')?$"),
    _exact(r"git branch (?:--color|--no-color|--column|--no-column)"),
    _exact(r"git branch --sort=\S+"),
    _exact("git branch --show-current"),
    _exact(r"git branch (?:--contains|--no-contains)\s+\S+"),
    _exact(r"git branch (?:--merged|--no-merged)(?:\s+\S+)?"),
    # File inspection
    _simple("ls"),
    _simple("cat"),
    _simple("head"),
    _simple("tail"),
    _simple("wc"),
    _simple("stat"),
    _simple("file"),
    _simple("strings"),
    _simple("hexdump"),
    _simple("od"),
    _simple("tree"),
    _simple("du"),
    _simple("df"),
    _simple("basename"),
    _simple("dirname"),
    _simple("realpath"),
    _simple("readlink"),
    _simple(r"(?:md5sum|sha1sum|sha256sum|sha512sum|cksum)"),
    _simple("cmp"),
    _simple("comm"),
    _simple("diff"),
    _simple("cut"),
    _simple("sort"),
    re.compile(r"^uniq(?:\s+(?:-[a-zA-Z]+|--[a-zA-Z-]+(?:=\S+)?|-[fsw]\s+\d+))*\s*$"),
    _simple("find"),
    # Filtered search
    re.compile(rf"^grep{_SEARCH_ARGS}$"),
    re.compile(rf"^rg{_SEARCH_ARGS}$"),
    # System and process introspection
    _exact("pwd"),
    _exact("whoami"),
    _simple("id"),
    _simple("groups"),
    _simple("uname"),
    _exact("arch"),
    _exact("nproc"),
    _exact(r"hostname(?: -[fisdI])?"),
    _simple("free"),
    _simple("ps"),
    _simple("locale"),
    _exact("env"),
    _simple("printenv"),
    _simple("which"),
    _simple("whereis"),
    _simple("type"),
    re.compile(r"^command -v\s+[\w.-]+$"),
    _exact("alias"),
    _simple("history"),
    _simple("sleep"),
    # Runtime and package versions
    _exact(r"(?:node|npm) (?:-v|--version)"),
    _exact(r"(?:python|python3|pip|pip3) (?:-V|--version)"),
    _exact(r"(?:git|cargo|rustc|ruby|make|gcc|docker|kubectl|uv|poetry) --version"),
    _exact(r"go version"),
    _simple(r"npm (?:list|ls)"),
    _simple(r"pip3? (?:list|show|freeze)"),
    # Containers and network state
    _simple("docker ps"),
    _simple("docker images"),
    _simple("netstat"),
    _simple("ip addr"),
    _exact(r"ifconfig(?: -a)?"),
    # Documentation
    _simple("man"),
    _simple("info"),
    _simple("help"),
    # JSON processing without file side channels
    re.compile(
        r"^jq(?:\s+(?:-[a-zA-Z]+|--[a-zA-Z-]+(?:=\S+)?))*"
        r"(?: +(?:'[^']*'|\"[^\"$`]*\"|[^-\s<>()$`|;&][^\s<>()$`|;&]*))*\s*$"
    ),
)


@dataclass(frozen=True)
class FlagGuard:
    """Arguments that turn an otherwise read-only command into a writer.

    ``short`` lists option letters refused anywhere in a short-option cluster
    (``-uo`` and ``-ofile`` both carry ``o``). ``long`` lists long options,
    refused with or without ``=value`` and in any abbreviated form.
    ``words`` are refused as whole arguments (find predicates, subcommands).
    """

    short: str = ""
    long: Tuple[str, ...] = ()
    words: Tuple[str, ...] = ()


# Keyed by leading argv words, checked after quote removal.
FLAG_GUARDS: Tuple[Tuple[Tuple[str, ...], FlagGuard], ...] = (
    (("date",), FlagGuard(short="s", long=("--set",))),
    (("git", "diff"), FlagGuard(long=("--ext-diff", "--extcmd", "--output"))),
    (("git", "log"), FlagGuard(long=("--output",))),
    (("git", "show"), FlagGuard(long=("--output",))),
    (("git", "reflog"), FlagGuard(words=("expire", "delete"))),
    (("git", "grep"), FlagGuard(short="O", long=("--open-files-in-pager",))),
    (("tree",), FlagGuard(short="o")),
    (("diff",), FlagGuard(long=("--to-file",))),
    (("sort",), FlagGuard(short="o", long=("--output",))),
    (
        ("find",),
        FlagGuard(
            words=(
                "-exec",
                "-execdir",
                "-ok",
                "-okdir",
                "-delete",
                "-fprint",
                "-fprint0",
                "-fprintf",
                "-fls",
            )
        ),
    ),
    (("rg",), FlagGuard(long=("--pre",))),
    (("ps",), FlagGuard(short="o")),
    (("history",), FlagGuard(short="cdwra")),
    (("netstat",), FlagGuard(short="p", long=("--program",))),
    (("man",), FlagGuard(short="PH", long=("--pager", "--html"))),
    (
        ("jq",),
        FlagGuard(short="f", long=("--from-file", "--rawfile", "--slurpfile", "--run-tests")),
    ),
)


def _refused_by(guard: FlagGuard, argument: str) -> bool:
    if argument in guard.words:
        return True
    if argument.startswith("--"):
        name = argument.split("=", 1)[0]
        return len(name) > 2 and any(option.startswith(name) for option in guard.long)
    if argument.startswith("-") and len(argument) > 1:
        return any(letter in guard.short for letter in argument[1:])
    return False


def violates_flag_guard(command: str) -> bool:
    """Return True if ``command`` passes an argument its guard refuses.

    Words are compared as the shell will see them, so quoting or escaping a
    flag (``'-delete'``, ``\\-delete``) does not hide it.
    """
    argv = parse_shell_tokens(command)
    for prefix, guard in FLAG_GUARDS:
        if tuple(argv[: len(prefix)]) == prefix:
            return any(_refused_by(guard, argument) for argument in argv[len(prefix) :])
    return False


def is_read_only_command(sub_command: str) -> bool:
    """Return True if a single sub-command matches a read-only signature."""
    command = sub_command.strip()
    if not command or "\n" in command or "\r" in command:
        return False
    for pattern in READ_ONLY_COMMAND_PATTERNS:
        if pattern.match(command):
            return not violates_flag_guard(command)
    return False


def is_read_only(command: str, *, sandbox: bool = False) -> bool:
    """Return True for sandboxed commands or when every sub-command is read-only."""
    if sandbox:
        return True
    segments = split_command_list(command)
    if not segments:
        return False
    return all(is_read_only_command(segment) for segment in segments)


__all__ = [
    "FLAG_GUARDS",
    "FlagGuard",
    "READ_ONLY_COMMAND_PATTERNS",
    "is_read_only",
    "is_read_only_command",
    "violates_flag_guard",
]
