"""
Tests for delivery_kpi/utils/logging.py.

What we test
------------
JsonLineFormatter:
  - ts / level / logger / msg keys; extra= keys added, standard keys not.

configure_logging():
  - Root level and a single stderr handler.
  - log_file adds a file handler and creates its parent directory.
  - A second call replaces the handlers of the first.
"""

from __future__ import annotations

import json
import logging
import sys

import pytest

from delivery_kpi.config import LoggingConfig
from delivery_kpi.utils.logging import JsonLineFormatter, configure_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "delivery_kpi.rules.loader", logging.INFO, __file__, 1, "Loaded %d rule(s)", (3,), None
    )
    record.__dict__.update(extra)
    return record


# ── JsonLineFormatter ─────────────────────────────────────────────────────────

def test_json_line_keys() -> None:
    line = json.loads(JsonLineFormatter().format(_record()))
    assert line["level"] == "INFO"
    assert line["logger"] == "delivery_kpi.rules.loader"
    assert line["msg"] == "Loaded 3 rule(s)"
    assert line["ts"].endswith("Z")
    assert "lineno" not in line
    assert "exc" not in line


def test_json_line_extra_keys() -> None:
    line = json.loads(JsonLineFormatter().format(_record(depot="Rungis", _private=1)))
    assert line["depot"] == "Rungis"
    assert "_private" not in line


# ── configure_logging ─────────────────────────────────────────────────────────

def test_console_handler_on_stderr() -> None:
    configure_logging(LoggingConfig(level="warning"))
    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert root.handlers[0].stream is sys.stderr


def test_log_file_handler(tmp_path) -> None:
    log_file = tmp_path / "logs" / "kpi.log"
    configure_logging(LoggingConfig(level="DEBUG", log_file=str(log_file), json_format=True))
    logging.getLogger("delivery_kpi.test").debug("hello")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert log_file.parent.is_dir()
    assert json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])["msg"] == "hello"


def test_reconfigure_replaces_handlers() -> None:
    configure_logging(LoggingConfig())
    configure_logging(LoggingConfig())
    assert len(logging.getLogger().handlers) == 1
