"""Tests for the shellgate command-line interface."""

import json

from click.testing import CliRunner

from shellgate import __version__
from shellgate.cli import cli as cli_module


def _invoke(*args):
    runner = CliRunner()
    return runner.invoke(cli_module.cli, list(args))


def test_version():
    result = _invoke("--version")
    assert result.exit_code == 0
    assert __version__ in result.output


def test_check_read_only_command_allows(tmp_path):
    result = _invoke("check", "pwd", "--cwd", str(tmp_path))
    assert result.exit_code == 0
    assert "ALLOW" in result.output


def test_check_deny_rule(tmp_path):
    result = _invoke("check", "rm -rf /", "--deny", "rm -rf /:*", "--cwd", str(tmp_path))
    assert result.exit_code == 1
    assert "DENY" in result.output


def test_check_unsupported_operator_asks(tmp_path):
    result = _invoke("check", "echo hi; rm -rf /", "--cwd", str(tmp_path), "--json")
    assert result.exit_code == 2
    payload = json.loads(result.output)
    assert payload["behavior"] == "ask"
    assert payload["reason"]["kind"] == "unsupported_operator"
    assert payload["rule_suggestions"] is None


def test_check_without_oracle_asks_with_suggestion(tmp_path):
    result = _invoke("check", "make build", "--cwd", str(tmp_path), "--json")
    assert result.exit_code == 2
    payload = json.loads(result.output)
    assert payload["reason"]["kind"] == "prefix_query_failed"
    assert payload["rule_suggestions"] == [{"tool_name": "Bash", "rule_content": "make build:*"}]


def test_check_tool_qualified_allow_rule(tmp_path):
    result = _invoke(
        "check", "npm test", "--allow", "Bash(npm test:*)", "--cwd", str(tmp_path), "--json"
    )
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["reason"]["type"] == "rule"
    assert payload["reason"]["rule"]["rule_content"] == "npm test:*"


def test_check_sandbox_flag(tmp_path):
    result = _invoke("check", "rm -rf /", "--sandbox", "--cwd", str(tmp_path))
    assert result.exit_code == 0


def test_check_extra_directory(tmp_path):
    project = tmp_path / "project"
    shared = tmp_path / "shared"
    project.mkdir()
    shared.mkdir()
    blocked = _invoke("check", f"cd {shared}", "--cwd", str(project))
    assert blocked.exit_code == 2
    allowed = _invoke("check", f"cd {shared}", "--cwd", str(project), "--dir", str(shared))
    assert allowed.exit_code == 0


def test_check_with_config_file(tmp_path):
    config = tmp_path / "policy.json"
    config.write_text(json.dumps({"bash_allow_rules": ["make:*"]}))
    result = _invoke("check", "make build", "--config", str(config), "--cwd", str(tmp_path))
    assert result.exit_code == 0


def test_check_with_broken_config_file(tmp_path):
    config = tmp_path / "policy.json"
    config.write_text("{broken")
    result = _invoke("check", "ls", "--config", str(config), "--cwd", str(tmp_path))
    assert result.exit_code == 3
    assert "Configuration error" in result.output


def test_exit_code_command():
    result = _invoke("exit-code", "grep foo file", "1", "--json")
    assert result.exit_code == 0
    assert json.loads(result.output) == {"is_error": False, "message": "No matches found"}

    result = _invoke("exit-code", "ls missing", "1")
    assert result.exit_code == 0
    assert "error" in result.output


def test_tokens_command():
    result = _invoke("tokens", "ls | wc -l")
    assert result.exit_code == 0
    assert "pipe" in result.output
    assert "wc" in result.output


def test_log_dir_option(tmp_path):
    log_dir = tmp_path / "logs"
    result = _invoke("--log-dir", str(log_dir), "check", "pwd", "--cwd", str(tmp_path))
    assert result.exit_code == 0
    assert any(log_dir.glob("shellgate_*.log"))
