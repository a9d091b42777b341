"""Error types for shellgate."""

from __future__ import annotations

from typing import Optional


class ShellgateError(Exception):
    """Base class for shellgate errors."""


class PermissionCheckAborted(ShellgateError):
    """Raised when a permission check is cancelled while awaiting the prefix oracle.

    Callers must neither run the command nor prompt for it.
    """

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"Permission check aborted for command: {command}")


class ConfigError(ShellgateError):
    """Raised when a policy configuration file cannot be loaded."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.message = message
        self.path = path
        super().__init__(message if path is None else f"{path}: {message}")


__all__ = ["ConfigError", "PermissionCheckAborted", "ShellgateError"]
