"""Main CLI entry point for shellgate.

This module provides a command-line front end for the permission engine:
checking a command against a policy, interpreting exit codes and showing how
a command is tokenized.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from shellgate import __version__
from shellgate.core.config import PolicyConfig, load_policy_config
from shellgate.core.errors import ConfigError
from shellgate.core.permission_engine import decide
from shellgate.core.prefix_oracle import unavailable_oracle
from shellgate.utils.exit_code_handlers import interpret_exit_code
from shellgate.utils.log import get_logger, init_logger
from shellgate.utils.permissions.models import (
    AskDecision,
    Decision,
    DenyDecision,
    OtherReason,
    RuleMatchReason,
    ShellCommandInput,
    SubcommandResultsReason,
    decision_to_dict,
)
from shellgate.utils.shell_tokenizer import (
    Comment,
    Glob,
    Operator,
    keep_variable_references,
    token_text,
    tokenize,
)

console = Console()
logger = get_logger()

EXIT_ALLOW = 0
EXIT_DENY = 1
EXIT_ASK = 2
EXIT_CONFIG_ERROR = 3

_BEHAVIOR_EXIT_CODES = {"allow": EXIT_ALLOW, "deny": EXIT_DENY, "ask": EXIT_ASK}
_BEHAVIOR_STYLES = {"allow": "green", "deny": "red", "ask": "yellow"}


def _describe_reason(decision: Decision) -> str:
    reason = decision.reason
    if reason is None:
        return "-"
    if isinstance(reason, RuleMatchReason):
        return f"rule {reason.rule.effect.value}: {reason.rule.rule_content}"
    if isinstance(reason, SubcommandResultsReason):
        parts = [f"{command} -> {item.behavior}" for command, item in reason.reasons.items()]
        return "sub-commands: " + "; ".join(parts)
    if isinstance(reason, OtherReason):
        return reason.detail
    return str(reason)


def _render_decision(command: str, decision: Decision) -> None:
    style = _BEHAVIOR_STYLES[decision.behavior]
    lines = [f"[bold]Command:[/bold] {escape(command)}"]
    if isinstance(decision, (DenyDecision, AskDecision)):
        lines.append(f"[bold]Message:[/bold] {escape(decision.message)}")
    lines.append(f"[bold]Reason:[/bold] {escape(_describe_reason(decision))}")
    if isinstance(decision, AskDecision) and decision.rule_suggestions:
        suggested = ", ".join(
            f"{item.tool_name}({item.rule_content})" for item in decision.rule_suggestions
        )
        lines.append(f"[bold]Suggested rules:[/bold] {escape(suggested)}")
    console.print(
        Panel(
            "\n".join(lines),
            title=f"[{style}]{decision.behavior.upper()}[/{style}]",
            border_style=style,
        )
    )


def _build_policy(
    config_path: Optional[str],
    allow: Tuple[str, ...],
    deny: Tuple[str, ...],
    directories: Tuple[str, ...],
) -> PolicyConfig:
    policy = load_policy_config(Path(config_path) if config_path else None)
    return policy.model_copy(
        update={
            "bash_allow_rules": [*policy.bash_allow_rules, *allow],
            "bash_deny_rules": [*policy.bash_deny_rules, *deny],
            "working_directories": [*policy.working_directories, *directories],
        }
    )


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Also write a debug log file into this directory",
)
def cli(log_dir: Optional[str]) -> None:
    """shellgate - permission checks for agent-proposed shell commands"""
    if log_dir:
        init_logger(Path(log_dir))
        logger.debug("[cli] File logging enabled", extra={"log_dir": log_dir})


@cli.command(name="check")
@click.argument("command")
@click.option("--allow", "allow", multiple=True, help="Allow rule, e.g. 'npm test:*'")
@click.option("--deny", "deny", multiple=True, help="Deny rule, e.g. 'rm -rf:*'")
@click.option("--dir", "directories", multiple=True, help="Additional allowed directory")
@click.option("--cwd", type=click.Path(file_okay=False), default=None, help="Working directory")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Policy file (JSON)",
)
@click.option("--sandbox", is_flag=True, help="Treat the command as sandboxed")
@click.option("--json", "as_json", is_flag=True, help="Print the decision as JSON")
@click.pass_context
def check_cmd(
    ctx: click.Context,
    command: str,
    allow: Tuple[str, ...],
    deny: Tuple[str, ...],
    directories: Tuple[str, ...],
    cwd: Optional[str],
    config_path: Optional[str],
    sandbox: bool,
    as_json: bool,
) -> None:
    """Decide whether COMMAND may run. Exit status: 0 allow, 1 deny, 2 ask."""
    try:
        policy = _build_policy(config_path, allow, deny, directories)
    except ConfigError as e:
        console.print(f"[red]Configuration error: {escape(str(e))}[/red]")
        ctx.exit(EXIT_CONFIG_ERROR)

    try:
        working_dir = str(Path(cwd or Path.cwd()).resolve())
    except OSError as e:
        # The shell's directory may have been removed underneath it.
        console.print(f"[red]Cannot determine working directory: {escape(str(e))}[/red]")
        ctx.exit(EXIT_CONFIG_ERROR)
    context = policy.to_permission_context(working_dir)
    logger.debug(
        "[cli] Checking command",
        extra={
            "command": command,
            "cwd": working_dir,
            "allow_rules": len(context.allow_rules),
            "deny_rules": len(context.deny_rules),
        },
    )

    decision = asyncio.run(
        decide(
            ShellCommandInput(command=command, sandbox=sandbox),
            context,
            unavailable_oracle,
            settings=policy.engine,
        )
    )

    if as_json:
        click.echo(json.dumps(decision_to_dict(decision), indent=2))
    else:
        _render_decision(command, decision)
    ctx.exit(_BEHAVIOR_EXIT_CODES[decision.behavior])


@cli.command(name="exit-code")
@click.argument("command")
@click.argument("code", type=int)
@click.option("--json", "as_json", is_flag=True, help="Print the interpretation as JSON")
def exit_code_cmd(command: str, code: int, as_json: bool) -> None:
    """Interpret exit status CODE of COMMAND."""
    result = interpret_exit_code(command, code)
    if as_json:
        click.echo(json.dumps({"is_error": result.is_error, "message": result.message}))
        return
    status = "[red]error[/red]" if result.is_error else "[green]ok[/green]"
    console.print(f"{status} {escape(result.message or '')}".rstrip())


@cli.command(name="tokens")
@click.argument("command")
def tokens_cmd(command: str) -> None:
    """Show how COMMAND is tokenized."""
    table = Table(title="Tokens")
    table.add_column("Kind")
    table.add_column("Text")
    table.add_column("Span", justify="right")
    for token in tokenize(command, keep_variable_references):
        if isinstance(token, Operator):
            kind = f"operator ({token.kind.name.lower()})"
        elif isinstance(token, Comment):
            kind = "comment"
        elif isinstance(token, Glob):
            kind = "glob"
        else:
            kind = "word (unterminated)" if token.unterminated else "word"
        table.add_row(kind, escape(token_text(token)), f"{token.start}-{token.end}")
    console.print(table)


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except SystemExit:
        raise
    except (RuntimeError, ValueError, TypeError, OSError, click.ClickException) as e:
        console.print(f"[red]Fatal error: {escape(str(e))}[/red]")
        logger.warning(
            "[cli] Fatal error in main CLI entrypoint: %s: %s",
            type(e).__name__,
            e,
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
