"""Working-directory guard for ``cd`` sub-commands."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List, Optional, Set, Union

from shellgate.utils.log import get_logger
from shellgate.utils.permissions.models import (
    AllowDecision,
    AskDecision,
    DEFAULT_TOOL_NAME,
    OtherReason,
    ReasonKind,
    ShellCommandInput,
)
from shellgate.utils.shell_token_utils import parse_shell_tokens

logger = get_logger()

_MAX_VISIBLE_ITEMS = 5
# bash accepts -L, -P, -e and -@, alone or combined.
_CD_OPTION_LETTERS = frozenset("LPe@")

CdDecision = Union[AllowDecision, AskDecision]


def is_cd_segment(segment: str) -> bool:
    text = segment.strip()
    return text == "cd" or text.startswith("cd ")


def _format_allowed_dirs_preview(allowed_dirs: Iterable[str]) -> str:
    dirs = list(allowed_dirs)
    if len(dirs) <= _MAX_VISIBLE_ITEMS:
        return ", ".join(f"'{item}'" for item in dirs)
    return (
        ", ".join(f"'{item}'" for item in dirs[:_MAX_VISIBLE_ITEMS])
        + f", and {len(dirs) - _MAX_VISIBLE_ITEMS} more"
    )


def _expand_tilde(path_str: str, cwd: str) -> Optional[str]:
    """Expand a leading ``~`` form the way the shell would.

    Returns None for forms whose target is unknown here: ``~-`` (the previous
    directory), directory-stack entries and unknown users.
    """
    if not path_str.startswith("~"):
        return path_str
    head, sep, rest = path_str.partition("/")
    if head == "~+":
        return cwd + sep + rest
    if head == "~-":
        return None
    expanded = os.path.expanduser(head)
    if expanded == head:
        return None
    return expanded + sep + rest


def _resolve_path(raw_path: str, cwd: str) -> Optional[Path]:
    expanded = _expand_tilde(raw_path, cwd)
    if expanded is None:
        return None
    candidate = Path(expanded)
    if not candidate.is_absolute():
        candidate = Path(cwd) / candidate
    try:
        return candidate.resolve()
    except (OSError, ValueError, RuntimeError) as exc:
        logger.warning(
            "[path_validation] Failed to resolve path: %s: %s",
            type(exc).__name__,
            exc,
            extra={"raw_path": raw_path, "cwd": cwd},
        )
        return Path(os.path.abspath(candidate))


def _normalize_root(directory: str) -> str:
    try:
        return str(Path(directory).resolve())
    except (OSError, ValueError, RuntimeError):
        return os.path.abspath(directory)


def is_path_allowed(resolved_path: Union[str, Path], allowed_dirs: Iterable[str]) -> bool:
    """Return True if ``resolved_path`` is an allowed directory or lies beneath one."""
    normalized = os.path.abspath(str(resolved_path))
    for allowed in allowed_dirs:
        normalized_allowed = _normalize_root(allowed)
        if normalized == normalized_allowed:
            return True
        if normalized.startswith(normalized_allowed.rstrip(os.sep) + os.sep):
            return True
    return False


def _cd_arguments(segment: str) -> Optional[List[str]]:
    """Return the words after ``cd``, or None when ``segment`` is not a cd."""
    tokens = parse_shell_tokens(segment.strip())
    if not tokens or tokens[0] != "cd":
        return None
    return tokens[1:]


def _cd_destination(args: List[str], cwd: str) -> Optional[Path]:
    """Resolve where ``cd <args>`` lands, or None if that cannot be known statically."""
    operands = list(args)
    while operands and len(operands[0]) > 1 and operands[0].startswith("-"):
        option = operands.pop(0)
        if option == "--":
            break
        if not set(option[1:]) <= _CD_OPTION_LETTERS:
            return None
    if not operands:
        operands = ["~"]
    # "-" is the previous directory; several operands make bash refuse the cd.
    if len(operands) != 1 or operands[0] == "-":
        return None
    return _resolve_path(operands[0], cwd)


def is_no_op_cd(segment: str, cwd: str) -> bool:
    """Return True for ``cd <cwd>``, which does not change anything."""
    text = segment.strip()
    if not cwd or not is_cd_segment(text):
        return False
    if text == f"cd {cwd}":
        return True
    args = _cd_arguments(text)
    if args is None:
        return False
    destination = _cd_destination(args, cwd)
    return destination is not None and os.path.abspath(destination) == _normalize_root(cwd)


def validate_cd_command(
    segment: str,
    cwd: str,
    allowed_dirs: Iterable[str],
    tool_name: str = DEFAULT_TOOL_NAME,
) -> Optional[CdDecision]:
    """Decide a ``cd`` segment against the allowed working directories.

    Returns ``None`` when ``segment`` is not a ``cd`` command. A destination
    that cannot be determined (``cd -``, ``cd ~-``, unknown users, unsupported
    options) is always blocked.
    """
    if not is_cd_segment(segment):
        return None
    args = _cd_arguments(segment)
    if args is None:
        return None

    allowed: Set[str] = set(allowed_dirs) or ({cwd} if cwd else set())
    preview = _format_allowed_dirs_preview(sorted(allowed))

    destination = _cd_destination(args, cwd)
    if destination is not None and is_path_allowed(destination, allowed):
        return AllowDecision(
            updated_input=ShellCommandInput(command=segment.strip()),
            reason=OtherReason(ReasonKind.WORKING_DIRECTORY),
        )

    shown = str(destination) if destination is not None else " ".join(args)
    logger.debug(
        "[path_validation] cd target outside allowed directories",
        extra={"target": shown, "cwd": cwd},
    )
    return AskDecision(
        message=(
            f"cd to '{shown}' was blocked. For security, {tool_name} may only change "
            "directories to child directories of the allowed working directories for "
            f"this session (including {preview})."
        ),
        reason=OtherReason(ReasonKind.DIRECTORY_BLOCKED),
        rule_suggestions=None,
    )


__all__ = ["is_cd_segment", "is_no_op_cd", "is_path_allowed", "validate_cd_command"]
