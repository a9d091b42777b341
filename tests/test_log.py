"""Tests for shellgate logging."""

import json
import logging

from shellgate.utils.log import ShellgateLogger, StructuredFormatter


def test_structured_formatter_includes_extra_context():
    record = logging.LogRecord(
        "shellgate", logging.DEBUG, __file__, 1, "[engine] %s", ("checked",), None
    )
    record.command = "ls"
    payload = json.loads(StructuredFormatter().format(record))
    assert payload["level"] == "DEBUG"
    assert payload["message"] == "[engine] checked"
    assert payload["context"] == {"command": "ls"}
    assert payload["ts"].endswith("+00:00")


def test_file_logging_writes_json_lines(tmp_path):
    log = ShellgateLogger(name="shellgate.test_file_logging", log_dir=tmp_path)
    log.debug("[test] hello", extra={"answer": 42})
    for handler in log.logger.handlers:
        handler.flush()

    lines = log.log_file.read_text(encoding="utf-8").splitlines()
    entry = json.loads(lines[-1])
    assert log.log_file.name.startswith("shellgate_")
    assert entry["message"] == "[test] hello"
    assert entry["context"] == {"answer": 42}


def test_enable_file_logging_replaces_previous_file(tmp_path):
    log = ShellgateLogger(name="shellgate.test_replace", log_dir=tmp_path / "one")
    log.enable_file_logging(tmp_path / "two")
    file_handlers = [h for h in log.logger.handlers if isinstance(h, logging.FileHandler)]
    assert len(file_handlers) == 1
    assert log.log_file.parent == tmp_path / "two"
