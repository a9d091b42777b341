"""Match commands against configured allow/deny rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional

from shellgate.utils.permissions.models import (
    ExactPattern,
    MatchMode,
    PermissionContext,
    PermissionRule,
    PrefixPattern,
    RuleEffect,
    parse_rule_pattern,
)


@dataclass(frozen=True)
class RuleMatches:
    deny: List[PermissionRule]
    allow: List[PermissionRule]

    @property
    def first_deny(self) -> Optional[PermissionRule]:
        return self.deny[0] if self.deny else None

    @property
    def first_allow(self) -> Optional[PermissionRule]:
        return self.allow[0] if self.allow else None


def rule_matches_command(rule_content: str, command: str, mode: MatchMode) -> bool:
    """Return True if ``rule_content`` matches the trimmed ``command`` under ``mode``.

    Exact rules only ever match the identical command. Prefix rules match the
    bare prefix in EXACT mode and any command starting with it in PREFIX mode.
    """
    command_text = command.strip()
    if not command_text:
        return False
    pattern = parse_rule_pattern(rule_content)
    if isinstance(pattern, ExactPattern):
        return pattern.command == command_text
    if isinstance(pattern, PrefixPattern):
        if mode == MatchMode.PREFIX:
            return command_text.startswith(pattern.prefix)
        return pattern.prefix == command_text
    return False


def find_matching_rules(
    command: str, rules: Mapping[str, PermissionRule], mode: MatchMode
) -> List[PermissionRule]:
    """Return every rule in ``rules`` (keyed by content) that matches ``command``."""
    return [
        rule for content, rule in rules.items() if rule_matches_command(content, command, mode)
    ]


def get_rule_matches(command: str, context: PermissionContext, mode: MatchMode) -> RuleMatches:
    """Collect deny matches, then allow matches, for ``command``."""
    deny = find_matching_rules(command, context.rules_for(RuleEffect.DENY), mode)
    allow = find_matching_rules(command, context.rules_for(RuleEffect.ALLOW), mode)
    return RuleMatches(deny=deny, allow=allow)


def match_rule(
    command: str, context: PermissionContext, mode: MatchMode = MatchMode.EXACT
) -> Optional[PermissionRule]:
    """Return the deciding rule for ``command``: a deny match wins over any allow match."""
    matches = get_rule_matches(command, context, mode)
    return matches.first_deny or matches.first_allow


__all__ = [
    "RuleMatches",
    "find_matching_rules",
    "get_rule_matches",
    "match_rule",
    "rule_matches_command",
]
