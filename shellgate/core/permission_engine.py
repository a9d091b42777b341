"""Permission decisions for shell commands.

``decide`` layers the checks in a fixed order: deny rules, then allow rules,
then sandbox/read-only auto-approval, then the external prefix oracle. Every
outcome is a value (Allow, Deny or Ask); the only exception raised is
:class:`PermissionCheckAborted` when the caller cancels while the oracle is
being consulted.
"""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Tuple

from shellgate.core.config import EngineSettings
from shellgate.core.errors import PermissionCheckAborted
from shellgate.core.prefix_oracle import PrefixOracle, PrefixQueryResult, unavailable_oracle
from shellgate.utils.log import get_logger
from shellgate.utils.permissions.models import (
    AllowDecision,
    AskDecision,
    Decision,
    DenyDecision,
    MatchMode,
    OtherReason,
    PermissionContext,
    ReasonKind,
    RuleMatchReason,
    RuleSuggestion,
    ShellCommandInput,
    SubcommandResultsReason,
    create_wildcard_suggestion,
    reason_kind,
)
from shellgate.utils.permissions.path_validation_utils import (
    is_cd_segment,
    is_no_op_cd,
    validate_cd_command,
)
from shellgate.utils.permissions.pipeline_safety import (
    contains_dangerous_characters,
    has_multiple_commands,
    is_pipeline_safe,
    pipe_operators,
)
from shellgate.utils.permissions.read_only import is_read_only
from shellgate.utils.permissions.rule_matching import get_rule_matches
from shellgate.utils.shell_token_utils import split_command_list

logger = get_logger()


def _deny_message(tool_name: str, command: str) -> str:
    return f"Permission to use {tool_name} with command {command} has been denied."


def _ask_message(tool_name: str) -> str:
    return f"Permission to use {tool_name} has been requested, but you haven't granted it yet."


def _ask(
    tool_name: str,
    kind: ReasonKind,
    rule_suggestions: Optional[Tuple[RuleSuggestion, ...]] = None,
) -> AskDecision:
    return AskDecision(
        message=_ask_message(tool_name),
        reason=OtherReason(kind),
        rule_suggestions=rule_suggestions,
    )


def _exact_decision(command_input: ShellCommandInput, context: PermissionContext) -> Decision:
    """Decide the whole command by exact rules and the read-only table."""
    command = command_input.command.strip()
    tool_name = context.tool_name
    matches = get_rule_matches(command, context, MatchMode.EXACT)

    if matches.first_deny is not None:
        return DenyDecision(
            message=_deny_message(tool_name, command),
            reason=RuleMatchReason(matches.first_deny),
        )
    if matches.first_allow is not None:
        return AllowDecision(
            updated_input=command_input, reason=RuleMatchReason(matches.first_allow)
        )
    if is_read_only(command, sandbox=command_input.sandbox):
        return AllowDecision(
            updated_input=command_input,
            reason=OtherReason(ReasonKind.SANDBOX_OR_READ_ONLY),
        )
    return AskDecision(
        message=_ask_message(tool_name),
        reason=OtherReason(ReasonKind.PERMISSION_REQUIRED),
        rule_suggestions=create_wildcard_suggestion(command, tool_name),
    )


def _segment_decision(segment: str, context: PermissionContext) -> Decision:
    """Decide one sub-command: exact, then prefix rules, then the cd guard."""
    tool_name = context.tool_name
    segment_input = ShellCommandInput(command=segment)

    exact = _exact_decision(segment_input, context)
    if isinstance(exact, DenyDecision):
        return exact

    prefix_matches = get_rule_matches(segment, context, MatchMode.PREFIX)
    if prefix_matches.first_deny is not None:
        return DenyDecision(
            message=_deny_message(tool_name, segment),
            reason=RuleMatchReason(prefix_matches.first_deny),
        )
    if isinstance(exact, AllowDecision):
        return exact
    if prefix_matches.first_allow is not None:
        return AllowDecision(
            updated_input=segment_input, reason=RuleMatchReason(prefix_matches.first_allow)
        )

    cd_decision = validate_cd_command(
        segment, context.cwd, context.allowed_directories, tool_name
    )
    if cd_decision is not None:
        return cd_decision

    return exact


def _decide_with_prefix(
    segment: str, context: PermissionContext, result: Optional[PrefixQueryResult]
) -> Decision:
    """Decide a sub-command once the oracle has answered (or failed to)."""
    tool_name = context.tool_name
    segment_input = ShellCommandInput(command=segment)

    exact = _exact_decision(segment_input, context)
    if isinstance(exact, (DenyDecision, AllowDecision)):
        return exact

    decision = _segment_decision(segment, context)
    if isinstance(decision, DenyDecision):
        return decision
    # No classifier answer can widen the directory boundary.
    if reason_kind(decision) == ReasonKind.DIRECTORY_BLOCKED:
        return decision

    if result is None:
        return _ask(
            tool_name,
            ReasonKind.PREFIX_QUERY_FAILED,
            create_wildcard_suggestion(segment, tool_name),
        )
    if result.command_injection_detected:
        return _ask(tool_name, ReasonKind.INJECTION_SUSPECTED)
    if isinstance(decision, AllowDecision):
        return decision

    prefix = result.command_prefix or segment
    return AskDecision(
        message=decision.message,
        reason=decision.reason,
        rule_suggestions=create_wildcard_suggestion(prefix, tool_name),
    )


def _split_pipe(command: str) -> Optional[Tuple[str, List[str]]]:
    """Return the text left of the first ``|`` and each ``|``-separated part after it."""
    pipes = pipe_operators(command)
    if not pipes:
        return None
    left = command[: pipes[0].start].strip()
    bounds = [pipe.end for pipe in pipes]
    ends = [pipe.start for pipe in pipes[1:]] + [len(command)]
    right = [command[start:end].strip() for start, end in zip(bounds, ends)]
    return left, right


async def _decide_pipe(
    command_input: ShellCommandInput,
    context: PermissionContext,
    oracle: PrefixOracle,
    abort_event: asyncio.Event,
    settings: EngineSettings,
    depth: int,
) -> Optional[Decision]:
    """Decide ``A | B``: A on its own merits, B only if it is read-only."""
    command = command_input.command.strip()
    split = _split_pipe(command)
    if split is None:
        return None
    left, right_parts = split
    tool_name = context.tool_name

    left_decision = await decide(
        command_input.model_copy(update={"command": left}),
        context,
        oracle,
        abort_event=abort_event,
        settings=settings,
        _depth=depth + 1,
    )
    right_text = " | ".join(right_parts)
    right_read_only = bool(right_parts) and all(is_read_only(part) for part in right_parts)
    right_decision: Decision
    if right_read_only:
        right_decision = AllowDecision(
            updated_input=command_input, reason=OtherReason(ReasonKind.PIPE_READ_ONLY)
        )
    else:
        right_decision = _ask(tool_name, ReasonKind.PIPE_NOT_READ_ONLY)

    reasons: Dict[str, Decision] = {left: left_decision, right_text: right_decision}

    if isinstance(left_decision, DenyDecision):
        return DenyDecision(
            message=left_decision.message, reason=SubcommandResultsReason(reasons)
        )
    if isinstance(left_decision, AllowDecision) and right_read_only:
        return AllowDecision(updated_input=command_input, reason=SubcommandResultsReason(reasons))

    suggestions: Optional[Tuple[RuleSuggestion, ...]] = None
    if right_read_only and isinstance(left_decision, AskDecision):
        suggestions = left_decision.rule_suggestions
    return AskDecision(
        message=_ask_message(tool_name),
        reason=SubcommandResultsReason(reasons),
        rule_suggestions=suggestions,
    )


async def _query_oracle(
    command: str,
    oracle: PrefixOracle,
    abort_event: asyncio.Event,
    settings: EngineSettings,
) -> Optional[PrefixQueryResult]:
    """Ask the oracle once. Failures and timeouts come back as ``None``."""
    result: Optional[PrefixQueryResult]
    try:
        result = await asyncio.wait_for(
            oracle(command, abort_event, settings.non_interactive),
            timeout=settings.oracle_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning(
            "[permission_engine] Prefix oracle timed out",
            extra={"command": command, "timeout": settings.oracle_timeout_seconds},
        )
        result = None
    except asyncio.CancelledError:
        # An oracle may stop early by cancelling itself once the abort fires.
        if abort_event.is_set():
            raise PermissionCheckAborted(command) from None
        raise
    except Exception as exc:
        logger.warning(
            "[permission_engine] Prefix oracle failed: %s: %s",
            type(exc).__name__,
            exc,
            extra={"command": command},
        )
        result = None

    if abort_event.is_set():
        raise PermissionCheckAborted(command)
    return result


def _aggregate_suggestions(
    decisions: Dict[str, Decision],
) -> Optional[Tuple[RuleSuggestion, ...]]:
    """Merge the suggestions of non-allowed sub-commands, deduplicated by (tool, content).

    A sub-command that cannot offer any suggestion makes the whole set ``None``.
    """
    merged: Dict[Tuple[str, str], RuleSuggestion] = {}
    for decision in decisions.values():
        if isinstance(decision, AllowDecision):
            continue
        suggestions = decision.rule_suggestions if isinstance(decision, AskDecision) else None
        if suggestions is None:
            return None
        for suggestion in suggestions:
            merged[(suggestion.tool_name, suggestion.rule_content)] = suggestion
    return tuple(merged.values())


def _log_check_divergence(command: str, segments: List[str], settings: EngineSettings) -> bool:
    """Return whether ``segments`` contain dangerous characters, noting verifier disagreement."""
    dangerous = contains_dangerous_characters(segments)
    pipeline_safe = is_pipeline_safe(command, allow_sequence=settings.allow_sequence_operator)
    if pipeline_safe == dangerous:
        logger.debug(
            "[permission_engine] Operator allow-list and dangerous-character check disagree",
            extra={"command": command, "pipeline_safe": pipeline_safe, "dangerous": dangerous},
        )
    return dangerous


async def decide(
    command_input: ShellCommandInput,
    context: PermissionContext,
    oracle: PrefixOracle = unavailable_oracle,
    *,
    abort_event: Optional[asyncio.Event] = None,
    settings: Optional[EngineSettings] = None,
    _depth: int = 0,
) -> Decision:
    """Decide whether ``command_input`` may run, must be confirmed, or is refused.

    Args:
        command_input: The proposed command.
        context: Rules, allowed directories and cwd for the session (read only).
        oracle: Prefix classifier consulted when rules are inconclusive.
        abort_event: Set by the caller to abandon the check.
        settings: Engine tunables; defaults apply when omitted.

    Raises:
        PermissionCheckAborted: ``abort_event`` was set when the oracle returned.
    """
    settings = settings or EngineSettings()
    abort_event = abort_event if abort_event is not None else asyncio.Event()
    tool_name = context.tool_name
    command = command_input.command.strip()

    if command_input.sandbox:
        return AllowDecision(
            updated_input=command_input,
            reason=OtherReason(ReasonKind.SANDBOX_OR_READ_ONLY),
        )
    if not command:
        return _ask(tool_name, ReasonKind.EMPTY_COMMAND)
    if _depth > settings.max_recursion_depth:
        logger.debug(
            "[permission_engine] Recursion limit reached",
            extra={"command": command, "depth": _depth},
        )
        return _ask(tool_name, ReasonKind.RECURSION_LIMIT)

    exact = _exact_decision(command_input, context)
    if isinstance(exact, DenyDecision):
        return exact

    if has_multiple_commands(command, allow_sequence=settings.allow_sequence_operator):
        return _ask(tool_name, ReasonKind.UNSUPPORTED_OPERATOR)

    pipe_decision = await _decide_pipe(
        command_input, context, oracle, abort_event, settings, _depth
    )
    if pipe_decision is not None:
        if isinstance(pipe_decision, AskDecision) and isinstance(exact, AllowDecision):
            return exact
        return pipe_decision

    all_segments = split_command_list(command)
    segments = [segment for segment in all_segments if not is_no_op_cd(segment, context.cwd)]
    if not segments:
        if all_segments:
            return AllowDecision(
                updated_input=command_input, reason=OtherReason(ReasonKind.WORKING_DIRECTORY)
            )
        return _ask(tool_name, ReasonKind.EMPTY_COMMAND)

    if sum(1 for segment in segments if is_cd_segment(segment)) > 1:
        return _ask(tool_name, ReasonKind.MULTIPLE_CD_DETECTED)

    segment_decisions: Dict[str, Decision] = {
        segment: _segment_decision(segment, context) for segment in segments
    }
    if any(isinstance(item, DenyDecision) for item in segment_decisions.values()):
        return DenyDecision(
            message=_deny_message(tool_name, command),
            reason=SubcommandResultsReason(segment_decisions),
        )

    if isinstance(exact, AllowDecision):
        return exact

    dangerous = _log_check_divergence(command, segments, settings)
    if not dangerous and all(
        isinstance(item, AllowDecision) for item in segment_decisions.values()
    ):
        if len(segment_decisions) == 1:
            return next(iter(segment_decisions.values()))
        return AllowDecision(
            updated_input=command_input, reason=SubcommandResultsReason(segment_decisions)
        )

    result = await _query_oracle(command, oracle, abort_event, settings)
    if result is not None and result.command_injection_detected:
        return _ask(tool_name, ReasonKind.INJECTION_SUSPECTED)

    if len(segments) == 1:
        return _decide_with_prefix(segments[0], context, result)

    subcommand_prefixes = result.subcommand_prefixes if result is not None else {}
    merged: Dict[str, Decision] = {
        segment: _decide_with_prefix(segment, context, subcommand_prefixes.get(segment))
        for segment in segments
    }
    if all(isinstance(item, AllowDecision) for item in merged.values()):
        return AllowDecision(updated_input=command_input, reason=SubcommandResultsReason(merged))
    if any(isinstance(item, DenyDecision) for item in merged.values()):
        return DenyDecision(
            message=_deny_message(tool_name, command),
            reason=SubcommandResultsReason(merged),
        )
    return AskDecision(
        message=_ask_message(tool_name),
        reason=SubcommandResultsReason(merged),
        rule_suggestions=_aggregate_suggestions(merged),
    )


__all__ = ["decide"]
