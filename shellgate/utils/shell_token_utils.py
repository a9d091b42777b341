"""Coarse command-list splitting and word parsing helpers."""

from __future__ import annotations

import re
import shlex
from typing import List

# Runs of one or two separator characters; quotes are deliberately ignored.
_COMMAND_SEPARATOR_RE = re.compile(r"[;&|]{1,2}")

# Redirections with no side effects. They are removed before splitting so that
# "make 2>&1" stays one segment instead of fragmenting on the "&".
_SAFE_REDIRECTION_PATTERNS = (
    re.compile(r"\s*[012]?\s*>&\s*[012](?=\s|$|[;&|])"),
    re.compile(r"\s*[012]?\s*>\s*/dev/null(?=\s|$|[;&|])"),
)


def strip_safe_redirections(command: str) -> str:
    """Remove fd duplications (``2>&1``) and ``/dev/null`` redirections."""
    sanitized = command
    for pattern in _SAFE_REDIRECTION_PATTERNS:
        sanitized = pattern.sub("", sanitized)
    return sanitized


def split_command_list(command: str) -> List[str]:
    """Split a command string into trimmed, non-empty sub-commands.

    The split happens on runs of ``;``, ``&`` and ``|`` regardless of quoting.
    A separator inside quotes therefore over-splits, which can only make a
    decision stricter: each fragment must still be approved on its own.
    """
    if not command:
        return []
    parts = _COMMAND_SEPARATOR_RE.split(strip_safe_redirections(command))
    return [part.strip() for part in parts if part.strip()]


def parse_shell_tokens(shell_command: str) -> List[str]:
    """Parse a single command into shell words."""
    if not shell_command:
        return []

    lexer = shlex.shlex(shell_command, posix=True)
    lexer.whitespace_split = True
    lexer.commenters = ""

    try:
        return list(lexer)
    except ValueError:
        # Unbalanced quotes; fall back to a coarse split.
        return shell_command.split()


def first_word(command: str) -> str:
    """Return the leading word of a command, or an empty string."""
    parts = command.strip().split()
    return parts[0] if parts else ""


__all__ = [
    "first_word",
    "parse_shell_tokens",
    "split_command_list",
    "strip_safe_redirections",
]
