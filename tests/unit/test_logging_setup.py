"""Unit tests for logging configuration."""

from __future__ import annotations

import logging

import pytest

import starcore.logging_setup as logging_setup


def test_setup_logging_writes_log_file(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """The root logger gets a file handler under the given path, once."""
    root = logging.getLogger()
    monkeypatch.setattr(logging_setup, "_configured", False)
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)
    monkeypatch.setenv("STARCORE_LOG_LEVEL", "debug")
    log_path = tmp_path / "logs" / "starcore.log"

    logging_setup.setup_logging(str(log_path))
    logging_setup.setup_logging(str(tmp_path / "other.log"))
    logging.getLogger("starcore.test").debug("hello")
    for handler in root.handlers:
        handler.flush()

    assert root.level == logging.DEBUG
    assert "starcore.test - DEBUG - hello" in log_path.read_text()
    assert not (tmp_path / "other.log").exists()
    for handler in root.handlers:
        handler.close()
