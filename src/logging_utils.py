"""Logging setup shared by the CLI, services and MCP tools.

Everything logs under the ``sprintctl`` logger. The CLI calls
:func:`configure_logging` once per invocation; handlers are found again by
name, so repeated calls adjust the level and log file in place.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

NAMESPACE = "sprintctl"

CONSOLE_HANDLER = "sprintctl.console"
FILE_HANDLER = "sprintctl.file"

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

_FORMATTER = logging.Formatter(
    "%(asctime)s %(levelname)s [%(name)s] %(message)s", "%Y-%m-%d %H:%M:%S"
)


def parse_level(value: str | int | None) -> int:
    """Numeric level for a name or number; anything unrecognised is INFO."""
    if isinstance(value, int):
        return value
    text = (value or "").strip().lower()
    if text.isdigit():
        return int(text)
    return LEVELS.get(text, logging.INFO)


def configure_logging(level: str | int | None = None, *, log_file: str | None = None) -> None:
    """Set the namespace level and attach the console and optional file sinks.

    ``level`` falls back to ``SPRINTCTL_LOG_LEVEL``; ``log_file`` falls back
    to ``SPRINTCTL_LOG_FILE``.
    """
    root = logging.getLogger(NAMESPACE)
    root.setLevel(parse_level(level if level is not None else os.getenv("SPRINTCTL_LOG_LEVEL")))

    if _handler(root, CONSOLE_HANDLER) is None:
        root.addHandler(_named(logging.StreamHandler(), CONSOLE_HANDLER))

    target = log_file or os.getenv("SPRINTCTL_LOG_FILE")
    if target:
        _attach_file(root, Path(target))


def _attach_file(root: logging.Logger, path: Path) -> None:
    current = _handler(root, FILE_HANDLER)
    if isinstance(current, logging.FileHandler) and Path(current.baseFilename) == path.resolve():
        return

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        sink = logging.FileHandler(path, encoding="utf-8")
    except OSError as exc:
        root.warning("Cannot open log file %s: %s", path, exc)
        return

    if current is not None:
        root.removeHandler(current)
        current.close()
    root.addHandler(_named(sink, FILE_HANDLER))


def _named(handler: logging.Handler, name: str) -> logging.Handler:
    handler.set_name(name)
    handler.setFormatter(_FORMATTER)
    return handler


def _handler(logger: logging.Logger, name: str) -> logging.Handler | None:
    return next((h for h in logger.handlers if h.get_name() == name), None)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``sprintctl`` namespace.

    ``src.services.doctor`` becomes ``sprintctl.services.doctor``; names
    already in the namespace are used as given.
    """
    if name == NAMESPACE or name.startswith(NAMESPACE + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{NAMESPACE}.{name.removeprefix('src.')}")
