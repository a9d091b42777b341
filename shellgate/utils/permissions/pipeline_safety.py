"""Operator allow-list checks for composite shell commands."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from shellgate.utils.shell_token_utils import split_command_list
from shellgate.utils.shell_tokenizer import (
    Comment,
    Glob,
    Operator,
    OperatorKind,
    Token,
    Word,
    keep_variable_references,
    tokenize,
)

CONTROL_OPERATORS = frozenset(
    {OperatorKind.AND, OperatorKind.OR, OperatorKind.PIPE, OperatorKind.CASE_TERMINATOR}
)
VALID_FILE_DESCRIPTORS = frozenset({"0", "1", "2"})
NULL_DEVICE = "/dev/null"

# Substrings that keep an all-allowed composite away from auto-approval.
DANGEROUS_CHARACTERS: tuple[str, ...] = (
    '"',
    "'",
    "`",
    "$(",
    "${",
    "~[",
    "(e:",
    "\n",
    "\r",
    ";",
    "|",
    "&",
    "||",
    "&&",
    ">",
    "<",
    ">>",
    ">&",
    ">&2",
    "<(",
    ">(",
    "$",
    "\\",
    "#",
)


def _word_after(tokens: Sequence[Token], index: int) -> Optional[str]:
    if index + 1 >= len(tokens):
        return None
    following = tokens[index + 1]
    if isinstance(following, Word) and not following.unterminated:
        return following.text.strip()
    return None


def _is_safe_redirect(operator: Operator, target: Optional[str]) -> bool:
    if target is None:
        return False
    if operator.kind == OperatorKind.FD_DUPLICATE:
        return target in VALID_FILE_DESCRIPTORS
    if operator.kind == OperatorKind.REDIRECT_OUT:
        if target == NULL_DEVICE:
            return True
        return len(target) > 1 and target.startswith("&") and target[1:] in VALID_FILE_DESCRIPTORS
    return False


def is_pipeline_safe(command: str, *, allow_sequence: bool = False) -> bool:
    """Return True if every operator in ``command`` is on the allow-list.

    Variables are kept as literal references while tokenizing so that a value
    can never introduce or hide an operator.
    """
    allowed = set(CONTROL_OPERATORS)
    if allow_sequence:
        allowed.add(OperatorKind.SEQUENCE)

    tokens = tokenize(command, keep_variable_references)
    for index, token in enumerate(tokens):
        if isinstance(token, Comment):
            return False
        if isinstance(token, Word):
            if token.unterminated:
                return False
            continue
        if isinstance(token, Glob):
            continue
        if token.kind in allowed:
            continue
        if _is_safe_redirect(token, _word_after(tokens, index)):
            continue
        return False
    return True


def has_multiple_commands(command: str, *, allow_sequence: bool = False) -> bool:
    """Return True for composites that need the unsupported-operator path."""
    return len(split_command_list(command)) > 1 and not is_pipeline_safe(
        command, allow_sequence=allow_sequence
    )


def contains_dangerous_characters(segments: Iterable[str]) -> bool:
    return any(marker in segment for segment in segments for marker in DANGEROUS_CHARACTERS)


def pipe_operators(command: str) -> List[Operator]:
    """Return the top-level ``|`` operators of ``command`` in source order."""
    return [
        token
        for token in tokenize(command, keep_variable_references)
        if isinstance(token, Operator) and token.kind == OperatorKind.PIPE
    ]


__all__ = [
    "CONTROL_OPERATORS",
    "DANGEROUS_CHARACTERS",
    "contains_dangerous_characters",
    "has_multiple_commands",
    "is_pipeline_safe",
    "pipe_operators",
]
