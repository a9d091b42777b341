"""Exit code interpretation for commands that use non-zero codes for normal outcomes.

grep, diff, test and friends exit with 1 for a negative answer rather than a
fault. Only codes of 2 and above are failures for them.
"""

from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class ExitInterpretation:
    """Result of exit code interpretation."""

    is_error: bool
    message: Optional[str] = None


ExitCodeHandler = Callable[[int, str, str], ExitInterpretation]


def default_handler(exit_code: int, stdout: str, stderr: str) -> ExitInterpretation:
    """Default exit code handler - non-zero is error."""
    return ExitInterpretation(
        is_error=exit_code != 0,
        message=f"Command failed with exit code {exit_code}" if exit_code != 0 else None,
    )


def _negative_result_handler(negative_message: str) -> ExitCodeHandler:
    """Build a handler where 1 means ``negative_message`` and 2+ means failure."""

    def handler(exit_code: int, stdout: str, stderr: str) -> ExitInterpretation:
        if exit_code == 0:
            return ExitInterpretation(is_error=False)
        if exit_code == 1:
            return ExitInterpretation(is_error=False, message=negative_message)
        return ExitInterpretation(
            is_error=True, message=f"Command failed with exit code {exit_code}"
        )

    return handler


grep_handler = _negative_result_handler("No matches found")
find_handler = _negative_result_handler("Some directories were inaccessible")
diff_handler = _negative_result_handler("Files differ")
test_handler = _negative_result_handler("Condition is false")


# Keyed by the leading word of the final pipeline stage.
COMMAND_HANDLERS: dict[str, ExitCodeHandler] = {
    "grep": grep_handler,
    "rg": grep_handler,
    "find": find_handler,
    "diff": diff_handler,
    "test": test_handler,
    "[": test_handler,
}


def normalize_command(command: str) -> str:
    """Extract the base command of the last pipeline stage.

    Examples:
        'git status' -> 'git'
        'cat file | grep pattern' -> 'grep'
    """
    last_stage = command.split("|")[-1].strip()
    return last_stage.split()[0] if last_stage else ""


def get_exit_code_handler(command: str) -> ExitCodeHandler:
    """Get the appropriate exit code handler for a command."""
    return COMMAND_HANDLERS.get(normalize_command(command), default_handler)


def interpret_exit_code(
    command: str, exit_code: int, stdout: str = "", stderr: str = ""
) -> ExitInterpretation:
    """Interpret an exit code in the context of the command that produced it."""
    handler = get_exit_code_handler(command)
    return handler(exit_code, stdout, stderr)


__all__ = [
    "COMMAND_HANDLERS",
    "ExitInterpretation",
    "default_handler",
    "get_exit_code_handler",
    "interpret_exit_code",
    "normalize_command",
]
