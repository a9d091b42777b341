"""Logging for shellgate.

Everything goes through the ``shellgate`` stdlib logger. The console handler
writes short ``LEVEL: message`` lines to stderr at ``SHELLGATE_LOG_LEVEL``
(WARNING by default). When a log directory is configured, a file handler also
records every DEBUG-and-above event as one JSON object per line, including any
``extra=`` context passed by the caller.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


# Attributes every LogRecord carries; anything else came from ``extra=``.
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=True, default=str)


def _console_level() -> int:
    name = os.getenv("SHELLGATE_LOG_LEVEL", "WARNING").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


class ShellgateLogger:
    """Thin wrapper over the ``shellgate`` logger that owns its handlers."""

    def __init__(self, name: str = "shellgate", log_dir: Optional[Path] = None):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

        if not any(getattr(h, "_shellgate_console", False) for h in self.logger.handlers):
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(_console_level())
            console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
            console_handler._shellgate_console = True  # type: ignore[attr-defined]
            self.logger.addHandler(console_handler)

        self.log_file: Optional[Path] = None
        if log_dir is not None:
            self.enable_file_logging(log_dir)

    def enable_file_logging(self, log_dir: Path) -> Path:
        """Log to ``log_dir/shellgate_YYYYMMDD.log``, replacing any earlier log file."""
        log_file = Path(log_dir) / f"shellgate_{datetime.now():%Y%m%d}.log"
        if log_file == self.log_file:
            return log_file
        log_file.parent.mkdir(parents=True, exist_ok=True)

        for handler in list(self.logger.handlers):
            if isinstance(handler, logging.FileHandler):
                self.logger.removeHandler(handler)
                handler.close()

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter())
        self.logger.addHandler(file_handler)
        self.log_file = log_file
        return log_file

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.debug(message, *args, **kwargs)

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.warning(message, *args, **kwargs)


_logger: Optional[ShellgateLogger] = None


def get_logger() -> ShellgateLogger:
    """Return the shared logger, creating it on first use."""
    global _logger
    if _logger is None:
        _logger = ShellgateLogger()
    return _logger


def init_logger(log_dir: Optional[Path] = None) -> ShellgateLogger:
    """Configure the shared logger, optionally adding a daily file under ``log_dir``."""
    logger = get_logger()
    if log_dir is not None:
        logger.enable_file_logging(log_dir)
    return logger


__all__ = ["ShellgateLogger", "StructuredFormatter", "get_logger", "init_logger"]
