"""Logging setup for the AgentLink MCP server.

stdout carries MCP frames, so console output always goes to stderr. When a
log directory is configured, ``combined.log`` receives every record and
``error.log`` only errors. Repeated calls never stack duplicate handlers.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_HANDLER_MARK = "_agentlink_handler"


def configure_logging(level: str = "INFO", log_dir: str | Path | None = None) -> logging.Logger:
    """Configure the root logger and return it."""

    root = logging.getLogger()
    level_value = _to_logging_level(level)
    root.setLevel(level_value)

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level_value)
    console.setFormatter(formatter)
    _mark(console)
    root.addHandler(console)

    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)

        combined = logging.FileHandler(directory / "combined.log", encoding="utf-8")
        combined.setLevel(level_value)
        combined.setFormatter(formatter)
        _mark(combined)
        root.addHandler(combined)

        errors = logging.FileHandler(directory / "error.log", encoding="utf-8")
        errors.setLevel(logging.ERROR)
        errors.setFormatter(formatter)
        _mark(errors)
        root.addHandler(errors)

    return root


def _mark(handler: logging.Handler) -> None:
    setattr(handler, _HANDLER_MARK, True)


def _to_logging_level(value: str) -> int:
    mapping = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
    }
    return mapping.get(str(value).upper(), logging.INFO)


__all__ = ["LOG_FORMAT", "configure_logging"]
