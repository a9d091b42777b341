"""Data model for permission rules, contexts and decisions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field

DEFAULT_TOOL_NAME = "Bash"
WILDCARD_SUFFIX = ":*"
MAX_TIMEOUT_MS = 600000


class ShellCommandInput(BaseModel):
    """A shell command proposed for execution."""

    command: str = Field(description="The command to execute")
    sandbox: bool = Field(
        default=False,
        description="Run in sandboxed mode: no filesystem writes and no network access.",
    )
    timeout: Optional[int] = Field(
        default=None,
        gt=0,
        le=MAX_TIMEOUT_MS,
        description=f"Optional timeout in milliseconds (max {MAX_TIMEOUT_MS})",
    )
    description: Optional[str] = Field(
        default=None,
        description="Clear, concise description of what this command does in 5-10 words.",
    )


class RuleEffect(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


class MatchMode(str, Enum):
    EXACT = "exact"
    PREFIX = "prefix"


@dataclass(frozen=True)
class ExactPattern:
    command: str


@dataclass(frozen=True)
class PrefixPattern:
    prefix: str


RulePattern = Union[ExactPattern, PrefixPattern]


def parse_rule_pattern(rule_content: Any) -> Optional[RulePattern]:
    """Interpret stored rule content; ``None`` means the rule can never match.

    ``npm test:*`` is a prefix rule over ``npm test``; anything else is exact.
    """
    if not isinstance(rule_content, str):
        return None
    content = rule_content.strip()
    if not content or content == WILDCARD_SUFFIX:
        return None
    if content.endswith(WILDCARD_SUFFIX):
        return PrefixPattern(content[: -len(WILDCARD_SUFFIX)])
    return ExactPattern(content)


@dataclass(frozen=True)
class PermissionRule:
    tool_name: str
    rule_content: str
    effect: RuleEffect = RuleEffect.ALLOW

    @property
    def pattern(self) -> Optional[RulePattern]:
        return parse_rule_pattern(self.rule_content)


@dataclass(frozen=True)
class RuleSuggestion:
    """A rule a human could add to stop being asked about similar commands."""

    tool_name: str
    rule_content: str


def create_wildcard_rule(prefix: str) -> str:
    return f"{prefix}{WILDCARD_SUFFIX}"


def create_wildcard_suggestion(
    prefix: str, tool_name: str = DEFAULT_TOOL_NAME
) -> Tuple[RuleSuggestion, ...]:
    return (RuleSuggestion(tool_name=tool_name, rule_content=create_wildcard_rule(prefix)),)


@dataclass(frozen=True)
class PermissionContext:
    """Read-only view of the session's rules and directories."""

    allow_rules: Mapping[str, PermissionRule] = field(default_factory=dict)
    deny_rules: Mapping[str, PermissionRule] = field(default_factory=dict)
    allowed_directories: frozenset[str] = frozenset()
    cwd: str = ""
    tool_name: str = DEFAULT_TOOL_NAME

    def rules_for(self, effect: RuleEffect) -> Mapping[str, PermissionRule]:
        """Return the rules with ``effect`` that apply to this context's tool."""
        rules = self.deny_rules if effect == RuleEffect.DENY else self.allow_rules
        return {
            content: rule
            for content, rule in rules.items()
            if rule.tool_name == self.tool_name and rule.effect == effect
        }


class ReasonKind(str, Enum):
    SANDBOX_OR_READ_ONLY = "sandbox_or_read_only"
    PREFIX_QUERY_FAILED = "prefix_query_failed"
    INJECTION_SUSPECTED = "injection_suspected"
    UNSUPPORTED_OPERATOR = "unsupported_operator"
    MULTIPLE_CD_DETECTED = "multiple_cd_detected"
    WORKING_DIRECTORY = "working_directory"
    DIRECTORY_BLOCKED = "directory_blocked"
    PIPE_READ_ONLY = "pipe_read_only"
    PIPE_NOT_READ_ONLY = "pipe_not_read_only"
    PERMISSION_REQUIRED = "permission_required"
    EMPTY_COMMAND = "empty_command"
    RECURSION_LIMIT = "recursion_limit"


_REASON_DETAILS: dict[ReasonKind, str] = {
    ReasonKind.SANDBOX_OR_READ_ONLY: "Sandboxed or read-only command is allowed",
    ReasonKind.PREFIX_QUERY_FAILED: "Command prefix query failed",
    ReasonKind.INJECTION_SUSPECTED: "Potential command injection detected",
    ReasonKind.UNSUPPORTED_OPERATOR: "Unsupported shell control operator",
    ReasonKind.MULTIPLE_CD_DETECTED: "Multiple cd commands detected",
    ReasonKind.WORKING_DIRECTORY: "cd command is allowed",
    ReasonKind.DIRECTORY_BLOCKED: "cd target is outside the allowed working directories",
    ReasonKind.PIPE_READ_ONLY: "Pipe right-hand command is read-only",
    ReasonKind.PIPE_NOT_READ_ONLY: "Pipe right-hand command is not read-only",
    ReasonKind.PERMISSION_REQUIRED: "No rule or read-only signature matched",
    ReasonKind.EMPTY_COMMAND: "Command is empty",
    ReasonKind.RECURSION_LIMIT: "Command nesting exceeds the analysis depth",
}


@dataclass(frozen=True)
class RuleMatchReason:
    rule: PermissionRule
    type: Literal["rule"] = "rule"


@dataclass(frozen=True)
class SubcommandResultsReason:
    reasons: Dict[str, "Decision"]
    type: Literal["subcommand_results"] = "subcommand_results"


@dataclass(frozen=True)
class OtherReason:
    kind: ReasonKind
    type: Literal["other"] = "other"

    @property
    def detail(self) -> str:
        return _REASON_DETAILS[self.kind]


DecisionReason = Union[RuleMatchReason, SubcommandResultsReason, OtherReason]


@dataclass(frozen=True)
class AllowDecision:
    updated_input: Optional[ShellCommandInput] = None
    reason: Optional[DecisionReason] = None

    @property
    def behavior(self) -> Literal["allow"]:
        return "allow"


@dataclass(frozen=True)
class DenyDecision:
    message: str
    reason: Optional[DecisionReason] = None

    @property
    def behavior(self) -> Literal["deny"]:
        return "deny"


@dataclass(frozen=True)
class AskDecision:
    """Ask a human. ``rule_suggestions is None`` means no useful rule can be offered."""

    message: str
    reason: Optional[DecisionReason] = None
    rule_suggestions: Optional[Tuple[RuleSuggestion, ...]] = ()

    @property
    def behavior(self) -> Literal["ask"]:
        return "ask"


Decision = Union[AllowDecision, DenyDecision, AskDecision]


def reason_kind(decision: Decision) -> Optional[ReasonKind]:
    """Return the ReasonKind of a decision whose reason is an OtherReason."""
    reason = decision.reason
    if isinstance(reason, OtherReason):
        return reason.kind
    return None


def decision_to_dict(decision: Decision) -> dict[str, Any]:
    """Serialize a decision for JSON output."""
    payload: dict[str, Any] = {"behavior": decision.behavior}
    if isinstance(decision, (DenyDecision, AskDecision)):
        payload["message"] = decision.message
    payload["reason"] = _reason_to_dict(decision.reason)
    if isinstance(decision, AskDecision):
        payload["rule_suggestions"] = (
            None
            if decision.rule_suggestions is None
            else [
                {"tool_name": item.tool_name, "rule_content": item.rule_content}
                for item in decision.rule_suggestions
            ]
        )
    return payload


def _reason_to_dict(reason: Optional[DecisionReason]) -> Optional[dict[str, Any]]:
    if reason is None:
        return None
    if isinstance(reason, RuleMatchReason):
        return {
            "type": reason.type,
            "rule": {
                "tool_name": reason.rule.tool_name,
                "rule_content": reason.rule.rule_content,
                "effect": reason.rule.effect.value,
            },
        }
    if isinstance(reason, SubcommandResultsReason):
        return {
            "type": reason.type,
            "reasons": {
                command: decision_to_dict(item) for command, item in reason.reasons.items()
            },
        }
    return {"type": reason.type, "kind": reason.kind.value, "detail": reason.detail}


__all__ = [
    "AllowDecision",
    "AskDecision",
    "DEFAULT_TOOL_NAME",
    "Decision",
    "DecisionReason",
    "DenyDecision",
    "ExactPattern",
    "MatchMode",
    "OtherReason",
    "PermissionContext",
    "PermissionRule",
    "PrefixPattern",
    "ReasonKind",
    "RuleEffect",
    "RuleMatchReason",
    "RulePattern",
    "RuleSuggestion",
    "ShellCommandInput",
    "SubcommandResultsReason",
    "WILDCARD_SUFFIX",
    "create_wildcard_rule",
    "create_wildcard_suggestion",
    "decision_to_dict",
    "parse_rule_pattern",
    "reason_kind",
]
