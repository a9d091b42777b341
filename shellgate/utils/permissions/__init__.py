"""Permission utilities."""

from .models import (
    AllowDecision,
    AskDecision,
    Decision,
    DenyDecision,
    MatchMode,
    PermissionContext,
    PermissionRule,
    ReasonKind,
    RuleEffect,
    RuleSuggestion,
    ShellCommandInput,
)
from .path_validation_utils import is_no_op_cd, validate_cd_command
from .pipeline_safety import has_multiple_commands, is_pipeline_safe
from .read_only import is_read_only, is_read_only_command
from .rule_matching import find_matching_rules, get_rule_matches, match_rule

__all__ = [
    "AllowDecision",
    "AskDecision",
    "Decision",
    "DenyDecision",
    "MatchMode",
    "PermissionContext",
    "PermissionRule",
    "ReasonKind",
    "RuleEffect",
    "RuleSuggestion",
    "ShellCommandInput",
    "find_matching_rules",
    "get_rule_matches",
    "has_multiple_commands",
    "is_no_op_cd",
    "is_pipeline_safe",
    "is_read_only",
    "is_read_only_command",
    "match_rule",
    "validate_cd_command",
]
