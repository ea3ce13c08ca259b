"""Tests for :mod:`repolens.utils.logging`."""

from __future__ import annotations

import io
import logging
import logging.handlers
from pathlib import Path

import pytest

from repolens.utils import logging as logging_utils
from repolens.utils.logging import get_log_path, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _flush() -> None:
    for handler in logging.getLogger().handlers:
        handler.flush()


def test_log_file_keeps_debug_detail_at_info_level(tmp_path: Path) -> None:
    log_path = setup_logging(logging.INFO, log_dir=tmp_path, console=False, force=True)

    logging.getLogger("repolens.test").debug("render detail")
    _flush()

    assert log_path == tmp_path / "repolens.log"
    assert get_log_path() == log_path
    assert "render detail" in log_path.read_text(encoding="utf-8")


def test_setup_logging_is_idempotent_without_force(tmp_path: Path) -> None:
    first = setup_logging(log_dir=tmp_path / "a", console=False, force=True)
    second = setup_logging(log_dir=tmp_path / "b", console=False)

    assert second == first
    assert not (tmp_path / "b").exists()


def test_forced_setup_keeps_foreign_handlers(tmp_path: Path) -> None:
    foreign = logging.StreamHandler(io.StringIO())
    logging.getLogger().addHandler(foreign)

    setup_logging(log_dir=tmp_path / "a", console=False, force=True)
    setup_logging(log_dir=tmp_path / "b", console=False, force=True)

    handlers = logging.getLogger().handlers
    assert foreign in handlers
    file_handlers = [h for h in handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
    assert [Path(h.baseFilename).parent for h in file_handlers] == [tmp_path / "b"]


def test_console_uses_requested_level_and_short_names(tmp_path: Path) -> None:
    stream = io.StringIO()
    setup_logging(logging.INFO, log_dir=tmp_path, console=True, force=True)
    console = next(h for h in logging.getLogger().handlers if isinstance(h.formatter, logging_utils._ConsoleFormatter))
    console.setStream(stream)

    logging.getLogger("repolens.diagrams.pipeline").debug("hidden")
    logging.getLogger("repolens.diagrams.pipeline").warning("Diagram failed")

    assert stream.getvalue() == "WARNING diagrams.pipeline: Diagram failed\n"


def test_log_dir_falls_back_to_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPOLENS_LOG_DIR", str(tmp_path / "env-logs"))

    log_path = setup_logging(console=False, force=True)

    assert log_path.parent == tmp_path / "env-logs"


def test_noisy_loggers_are_quieted(tmp_path: Path) -> None:
    setup_logging(logging.DEBUG, log_dir=tmp_path, console=False, force=True)

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("openai").level == logging.WARNING
