"""Contract for the external command-prefix classifier.

The classifier itself (typically a model call) lives outside this package.
The engine only consumes its answers through :class:`PrefixOracle`.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Protocol


@dataclass(frozen=True)
class PrefixQueryResult:
    """What the classifier knows about a command.

    ``command_prefix`` is the stable leading part a rule could target (for
    ``git commit -m "x"`` that is ``git commit``). ``subcommand_prefixes``
    carries the same answer for each sub-command of a composite, keyed by the
    sub-command text.
    """

    command_injection_detected: bool = False
    command_prefix: Optional[str] = None
    subcommand_prefixes: Dict[str, "PrefixQueryResult"] = field(default_factory=dict)


class PrefixOracle(Protocol):
    async def __call__(
        self, command: str, abort_event: asyncio.Event, non_interactive: bool
    ) -> Optional[PrefixQueryResult]: ...


async def unavailable_oracle(
    command: str, abort_event: asyncio.Event, non_interactive: bool
) -> Optional[PrefixQueryResult]:
    """Oracle used when no classifier is configured; every query fails."""
    return None


class StaticPrefixOracle:
    """Oracle answering from a fixed table of command -> result.

    Useful for embedding known classifications and for tests. ``calls`` records
    each queried command in order.
    """

    def __init__(self, results: Optional[Mapping[str, PrefixQueryResult]] = None) -> None:
        self._results = dict(results or {})
        self.calls: list[str] = []

    async def __call__(
        self, command: str, abort_event: asyncio.Event, non_interactive: bool
    ) -> Optional[PrefixQueryResult]:
        self.calls.append(command)
        return self._results.get(command)


__all__ = ["PrefixOracle", "PrefixQueryResult", "StaticPrefixOracle", "unavailable_oracle"]
