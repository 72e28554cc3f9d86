"""Tests for logging setup."""
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

import pytest

from conjbot.config import settings
from conjbot.logging_config import setup_logging


@pytest.fixture
def root_handlers():
    """Restore the root logger after a test reconfigures it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_console_logging(root_handlers):
    root = setup_logging("Starting", level="debug")

    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0], logging.StreamHandler)
    assert logging.getLogger("httpx").level == logging.WARNING


def test_file_logging(root_handlers, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings.logging, "dir", str(tmp_path))

    root = setup_logging(level=logging.INFO)

    file_handlers = [h for h in root.handlers if isinstance(h, TimedRotatingFileHandler)]
    assert len(file_handlers) == 1
    assert (tmp_path / "conjbot.log").exists()
