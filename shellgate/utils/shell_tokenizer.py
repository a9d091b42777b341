"""Tokenizer for untrusted shell command text.

This is not a shell. It recognises just enough structure (quoting, escapes,
variable references, comments, globs and operators) to let the permission
engine reason about where one command ends and the next begins.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Mapping, Optional, Union


class OperatorKind(str, Enum):
    """Operators the engine distinguishes; everything else is UNSUPPORTED."""

    SEQUENCE = ";"
    CASE_TERMINATOR = ";;"
    AND = "&&"
    OR = "||"
    PIPE = "|"
    REDIRECT_OUT = ">"
    REDIRECT_APPEND = ">>"
    FD_DUPLICATE = ">&"
    UNSUPPORTED = "unsupported"


# Longest symbols first so that "||" is never read as two pipes.
_OPERATOR_SYMBOLS: tuple[str, ...] = (
    "<<<",
    "||",
    "&&",
    ";;",
    "|&",
    "<<",
    ">>",
    ">&",
    "<&",
    "<(",
    ";",
    "&",
    "|",
    "<",
    ">",
    "(",
    ")",
)

_OPERATOR_KINDS: dict[str, OperatorKind] = {
    ";": OperatorKind.SEQUENCE,
    ";;": OperatorKind.CASE_TERMINATOR,
    "&&": OperatorKind.AND,
    "||": OperatorKind.OR,
    "|": OperatorKind.PIPE,
    ">": OperatorKind.REDIRECT_OUT,
    ">>": OperatorKind.REDIRECT_APPEND,
    ">&": OperatorKind.FD_DUPLICATE,
}

OPERATOR_CHARS = frozenset("|&;()<>")
SPECIAL_VARIABLE_NAMES = frozenset("*@#?$!-0123456789")


@dataclass(frozen=True)
class Word:
    text: str
    start: int
    end: int
    unterminated: bool = False


@dataclass(frozen=True)
class Operator:
    kind: OperatorKind
    symbol: str
    start: int
    end: int


@dataclass(frozen=True)
class Comment:
    text: str
    start: int
    end: int


@dataclass(frozen=True)
class Glob:
    pattern: str
    start: int
    end: int


Token = Union[Word, Operator, Comment, Glob]
VariableResolver = Union[Mapping[str, str], Callable[[str], Optional[str]]]


def keep_variable_references(name: str) -> str:
    """Resolver that leaves ``$name`` in place instead of expanding it."""
    return f"${name}"


class ShellTokenizer:
    """Convert shell command text into a flat token stream."""

    def __init__(self, source: str, env: Optional[VariableResolver] = None) -> None:
        self.source = source
        self._env: VariableResolver = env if env is not None else {}
        self._tokens: List[Token] = []
        self._buffer: List[str] = []
        self._word_start: Optional[int] = None
        self._glob = False

    def tokenize(self) -> List[Token]:
        self._tokens = []
        self._buffer = []
        self._word_start = None
        self._glob = False
        source = self.source
        length = len(source)
        quote: Optional[str] = None
        i = 0

        while i < length:
            char = source[i]

            if quote == "'":
                if char == "'":
                    quote = None
                else:
                    self._buffer.append(char)
                i += 1
                continue

            if quote == '"':
                if char == '"':
                    quote = None
                    i += 1
                elif char == "\\" and i + 1 < length:
                    following = source[i + 1]
                    if following in '"\\$`':
                        self._buffer.append(following)
                    else:
                        self._buffer.append(char + following)
                    i += 2
                elif char == "$":
                    value, i = self._expand_variable(i)
                    self._buffer.append(value)
                else:
                    self._buffer.append(char)
                    i += 1
                continue

            if char == "\\":
                self._begin_word(i)
                if i + 1 < length:
                    self._buffer.append(source[i + 1])
                i += 2
                continue

            if char in ("'", '"'):
                self._begin_word(i)
                quote = char
                i += 1
                continue

            if char == "\n":
                self._flush_word(i)
                self._tokens.append(Operator(OperatorKind.UNSUPPORTED, char, i, i + 1))
                i += 1
                continue

            if char.isspace():
                self._flush_word(i)
                i += 1
                continue

            if char in OPERATOR_CHARS:
                self._flush_word(i)
                symbol = self._match_operator(i)
                kind = _OPERATOR_KINDS.get(symbol, OperatorKind.UNSUPPORTED)
                self._tokens.append(Operator(kind, symbol, i, i + len(symbol)))
                i += len(symbol)
                continue

            if char == "#" and self._word_start is None:
                newline = source.find("\n", i)
                end = length if newline == -1 else newline
                self._tokens.append(Comment(source[i + 1 : end], i, end))
                i = end
                continue

            self._begin_word(i)
            if char == "$":
                value, i = self._expand_variable(i)
                self._buffer.append(value)
                continue
            if char in ("*", "?"):
                self._glob = True
            self._buffer.append(char)
            i += 1

        self._flush_word(length, unterminated=quote is not None)
        return self._tokens

    def _begin_word(self, index: int) -> None:
        if self._word_start is None:
            self._word_start = index

    def _flush_word(self, end: int, *, unterminated: bool = False) -> None:
        if self._word_start is None:
            return
        text = "".join(self._buffer)
        if self._glob and not unterminated:
            self._tokens.append(Glob(text, self._word_start, end))
        else:
            self._tokens.append(Word(text, self._word_start, end, unterminated))
        self._buffer = []
        self._word_start = None
        self._glob = False

    def _match_operator(self, index: int) -> str:
        for symbol in _OPERATOR_SYMBOLS:
            if self.source.startswith(symbol, index):
                return symbol
        return self.source[index]

    def _resolve(self, name: str) -> Optional[str]:
        if callable(self._env):
            return self._env(name)
        return self._env.get(name)

    def _expand_variable(self, index: int) -> tuple[str, int]:
        """Expand the reference starting at ``source[index] == "$"``.

        Returns the replacement text and the index just past the reference.
        """
        source = self.source
        nxt = index + 1
        if nxt >= len(source):
            return "$", nxt

        char = source[nxt]
        if char == "{":
            close = source.find("}", nxt + 1)
            if close == -1:
                return "${", nxt + 1
            body = source[nxt + 1 : close]
            if not body:
                return "${}", close + 1
            name, separator, default = body.partition(":-")
            value = self._resolve(name)
            if value is None:
                value = default if separator else ""
            return value, close + 1

        if char in SPECIAL_VARIABLE_NAMES:
            value = self._resolve(char)
            return ("" if value is None else value), nxt + 1

        if char.isalpha() or char == "_":
            end = nxt
            while end < len(source) and (source[end].isalnum() or source[end] == "_"):
                end += 1
            value = self._resolve(source[nxt:end])
            return ("" if value is None else value), end

        return "$", nxt


def tokenize(command: str, env: Optional[VariableResolver] = None) -> List[Token]:
    """Split ``command`` into words, globs, comments and operators.

    ``env`` resolves variable references; names it does not know expand to
    empty text. Unclosed quotes never raise: the trailing word is returned
    with ``unterminated=True``.
    """
    return ShellTokenizer(command, env).tokenize()


def token_text(token: Token) -> str:
    """Return a display form of a token."""
    if isinstance(token, Word):
        return token.text
    if isinstance(token, Glob):
        return token.pattern
    if isinstance(token, Comment):
        return f"#{token.text}"
    return token.symbol


__all__ = [
    "Comment",
    "Glob",
    "OperatorKind",
    "Operator",
    "ShellTokenizer",
    "Token",
    "VariableResolver",
    "Word",
    "keep_variable_references",
    "token_text",
    "tokenize",
]
