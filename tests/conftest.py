"""Pytest configuration and fixtures for all tests."""

from typing import Iterable, Optional

import pytest

from shellgate.utils.permissions.models import PermissionContext, PermissionRule, RuleEffect


def build_context(
    allow: Iterable[str] = (),
    deny: Iterable[str] = (),
    cwd: str = "/workspace",
    directories: Optional[Iterable[str]] = None,
    tool_name: str = "Bash",
) -> PermissionContext:
    """Build a permission context from plain rule strings."""
    return PermissionContext(
        allow_rules={
            content: PermissionRule(tool_name, content, RuleEffect.ALLOW) for content in allow
        },
        deny_rules={
            content: PermissionRule(tool_name, content, RuleEffect.DENY) for content in deny
        },
        allowed_directories=frozenset(directories if directories is not None else [cwd]),
        cwd=cwd,
        tool_name=tool_name,
    )


@pytest.fixture
def make_context():
    """Factory fixture returning :func:`build_context`."""
    return build_context


@pytest.fixture(autouse=True)
def clear_shellgate_env(monkeypatch):
    """Keep engine overrides from the developer's shell out of the tests."""
    for name in (
        "SHELLGATE_MAX_RECURSION_DEPTH",
        "SHELLGATE_ORACLE_TIMEOUT",
        "SHELLGATE_ALLOW_SEQUENCE",
    ):
        monkeypatch.delenv(name, raising=False)
