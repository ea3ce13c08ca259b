"""Logging setup for the RepoLens command-line tools.

The rotating log file always records DEBUG detail so a failed render can be
diagnosed after the fact; the console only shows the requested level with
package-relative logger names.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["setup_logging", "get_log_path", "LOG_DIR_ENV"]

LOG_DIR_ENV = "REPOLENS_LOG_DIR"
_DEFAULT_LOG_DIR = Path.home() / ".repolens" / "logs"
_LOG_FILENAME = "repolens.log"
_PACKAGE_PREFIX = "repolens."
_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_CONSOLE_FORMAT = "%(levelname)s %(short_name)s: %(message)s"
# Third-party loggers that stay at WARNING even in debug runs.
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "httpcore", "openai", "markdown_it")

_installed: list[logging.Handler] = []
_log_path: Path | None = None


class _ConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        name = record.name
        record.short_name = name[len(_PACKAGE_PREFIX):] if name.startswith(_PACKAGE_PREFIX) else name
        return super().format(record)


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Install the RepoLens file handler (and optionally a stderr handler).

    Only handlers installed here are replaced on a forced reconfiguration;
    handlers attached by a host application or test runner are left alone.
    """

    global _log_path
    if _installed and not force and _log_path is not None:
        return _log_path

    target_dir = _resolve_log_dir(log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / _LOG_FILENAME

    root = logging.getLogger()
    _remove_installed(root)

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    _installed.append(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(_ConsoleFormatter(_CONSOLE_FORMAT))
        _installed.append(console_handler)

    for handler in _installed:
        root.addHandler(handler)
    root.setLevel(logging.DEBUG)
    logging.captureWarnings(True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _log_path = log_path
    return log_path


def get_log_path() -> Path | None:
    return _log_path


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    return Path(log_dir or os.environ.get(LOG_DIR_ENV) or _DEFAULT_LOG_DIR).expanduser()


def _remove_installed(root: logging.Logger) -> None:
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()
