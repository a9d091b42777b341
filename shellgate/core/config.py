"""Policy configuration for shellgate.

A policy file is JSON holding the rule lists, the extra working directories
and the engine settings:

    {
      "bash_allow_rules": ["npm test:*", "Bash(git commit:*)"],
      "bash_deny_rules": ["rm -rf /:*"],
      "working_directories": ["../shared"],
      "engine": {"max_recursion_depth": 8}
    }
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from shellgate.core.errors import ConfigError
from shellgate.utils.log import get_logger
from shellgate.utils.permissions.models import (
    DEFAULT_TOOL_NAME,
    PermissionContext,
    PermissionRule,
    RuleEffect,
)


logger = get_logger()

_TOOL_WITH_SPEC_RE = re.compile(r"^\s*([A-Za-z0-9_-]+)\s*\((.*)\)\s*$")
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class EngineSettings(BaseModel):
    """Tunables for the permission engine."""

    tool_name: str = DEFAULT_TOOL_NAME
    # Nested pipe analysis stops here and asks instead.
    max_recursion_depth: int = Field(default=8, ge=0)
    oracle_timeout_seconds: float = Field(default=30.0, gt=0)
    # Treat ";" like "&&" when checking operators.
    allow_sequence_operator: bool = False
    non_interactive: bool = False


def _looks_like_tool_name(token: str, tool_name: str) -> bool:
    return token == tool_name or (bool(token) and token[0].isupper())


def parse_rule_entry(entry: str, tool_name: str = DEFAULT_TOOL_NAME) -> Optional[str]:
    """Return the shell rule content of ``entry``, or None if it targets another tool.

    ``Bash(npm test:*)`` and ``npm test:*`` both yield ``npm test:*``.
    """
    text = str(entry).strip()
    if not text:
        return None
    match = _TOOL_WITH_SPEC_RE.match(text)
    if match and _looks_like_tool_name(match.group(1), tool_name):
        if match.group(1) != tool_name:
            return None
        inner = match.group(2).strip()
        return inner or None
    return text


def _string_list(value: Any) -> list[str]:
    if value is None:
        return []
    items = [value] if isinstance(value, str) else value
    if not isinstance(items, (list, tuple, set, frozenset)):
        raise ValueError("expected a string or a list of strings")
    return [str(item).strip() for item in items if item is not None and str(item).strip()]


def resolve_allowed_directories(cwd: str, extra: list[str]) -> list[str]:
    """Resolve ``cwd`` followed by ``extra`` into absolute roots, dropping repeats.

    Relative entries are taken relative to ``cwd`` and ``~`` is expanded.
    Entries that cannot be resolved are logged and skipped.
    """
    base_dir = Path(cwd)
    roots: Dict[str, None] = {}
    for raw in [cwd, *extra]:
        candidate = Path(raw).expanduser()
        if not candidate.is_absolute():
            candidate = base_dir / candidate
        try:
            roots.setdefault(str(candidate.resolve()), None)
        except (OSError, RuntimeError) as exc:
            logger.warning(
                "[config] Skipping working directory %s: %s: %s",
                raw,
                type(exc).__name__,
                exc,
            )
    return list(roots)


class PolicyConfig(BaseModel):
    """Rules and directories for one session."""

    bash_allow_rules: list[str] = Field(default_factory=list)
    bash_deny_rules: list[str] = Field(default_factory=list)
    working_directories: list[str] = Field(default_factory=list)
    engine: EngineSettings = Field(default_factory=EngineSettings)

    @field_validator("bash_allow_rules", "bash_deny_rules", "working_directories", mode="before")
    @classmethod
    def _coerce_string_list(cls, value: Any) -> list[str]:
        return _string_list(value)

    def _rules(self, entries: list[str], effect: RuleEffect) -> Dict[str, PermissionRule]:
        tool_name = self.engine.tool_name
        rules: Dict[str, PermissionRule] = {}
        for entry in entries:
            content = parse_rule_entry(entry, tool_name)
            if content is None:
                logger.debug(
                    "[config] Ignoring rule for another tool",
                    extra={"rule": entry, "effect": effect.value},
                )
                continue
            rules.setdefault(content, PermissionRule(tool_name, content, effect))
        return rules

    def to_permission_context(self, cwd: str) -> PermissionContext:
        """Build the read-only context the engine consumes.

        ``cwd`` is always an allowed directory; configured directories are
        resolved relative to it.
        """
        directories = resolve_allowed_directories(cwd, self.working_directories)
        return PermissionContext(
            allow_rules=self._rules(self.bash_allow_rules, RuleEffect.ALLOW),
            deny_rules=self._rules(self.bash_deny_rules, RuleEffect.DENY),
            allowed_directories=frozenset(directories),
            cwd=cwd,
            tool_name=self.engine.tool_name,
        )


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    depth = os.getenv("SHELLGATE_MAX_RECURSION_DEPTH")
    if depth:
        try:
            overrides["max_recursion_depth"] = int(depth)
        except ValueError as exc:
            raise ConfigError(
                f"SHELLGATE_MAX_RECURSION_DEPTH must be an integer, got {depth!r}"
            ) from exc
    timeout = os.getenv("SHELLGATE_ORACLE_TIMEOUT")
    if timeout:
        try:
            overrides["oracle_timeout_seconds"] = float(timeout)
        except ValueError as exc:
            raise ConfigError(
                f"SHELLGATE_ORACLE_TIMEOUT must be a number, got {timeout!r}"
            ) from exc
    sequence = os.getenv("SHELLGATE_ALLOW_SEQUENCE")
    if sequence:
        overrides["allow_sequence_operator"] = _parse_bool("SHELLGATE_ALLOW_SEQUENCE", sequence)
    return overrides


def load_policy_config(path: Optional[Path] = None) -> PolicyConfig:
    """Load a policy file, then apply environment overrides to its engine settings.

    Without ``path`` the defaults are used. Unreadable or invalid files raise
    :class:`ConfigError`.
    """
    data: Dict[str, Any] = {}
    if path is not None:
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ConfigError(f"cannot read policy file: {type(e).__name__}: {e}", str(path)) from e
        if not isinstance(data, dict):
            raise ConfigError("policy file must contain a JSON object", str(path))

    overrides = _env_overrides()
    if overrides:
        engine = data.get("engine") or {}
        if not isinstance(engine, dict):
            raise ConfigError("'engine' must be a JSON object", None if path is None else str(path))
        data = {**data, "engine": {**engine, **overrides}}

    try:
        config = PolicyConfig(**data)
    except (ValueError, TypeError) as e:
        raise ConfigError(f"invalid policy: {e}", None if path is None else str(path)) from e

    logger.debug(
        "[config] Loaded policy configuration",
        extra={
            "path": None if path is None else str(path),
            "allow_rules": len(config.bash_allow_rules),
            "deny_rules": len(config.bash_deny_rules),
            "working_directories": len(config.working_directories),
        },
    )
    return config


__all__ = [
    "EngineSettings",
    "PolicyConfig",
    "load_policy_config",
    "parse_rule_entry",
    "resolve_allowed_directories",
]
