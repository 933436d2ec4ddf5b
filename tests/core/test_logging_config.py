"""
Tests for logging configuration.

Tests cover:
- Formatter selection by environment
- Log level handling
- JSONFormatter output, including structured solver-step fields
"""
import json
import logging
import sys

import pytest

from shadowtest.core import logging_config
from shadowtest.core.config import Settings
from shadowtest.core.logging_config import (
    JSONFormatter,
    build_logging_config,
    setup_logging,
)


def _record(level=logging.INFO, msg="Step 0: selected 2 item(s)", **extra):
    record = logging.LogRecord(
        name="shadowtest.core.assembly.solver",
        level=level,
        pathname="solver.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestBuildLoggingConfig:
    """Tests for build_logging_config."""

    def test_development_uses_plain_formatter(self):
        config = build_logging_config(Settings(_env_file=None, ENV="development"))
        assert config["handlers"]["console"]["formatter"] == "default"

    def test_production_uses_json_formatter(self):
        config = build_logging_config(Settings(_env_file=None, ENV="production"))
        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["formatters"]["json"]["()"] is JSONFormatter

    def test_log_level(self):
        config = build_logging_config(Settings(_env_file=None, LOG_LEVEL="debug"))
        assert config["root"]["level"] == logging.DEBUG
        assert config["loggers"]["shadowtest"]["level"] == logging.DEBUG

    def test_unknown_log_level_falls_back_to_info(self):
        config = build_logging_config(Settings(_env_file=None, LOG_LEVEL="chatty"))
        assert config["handlers"]["console"]["level"] == logging.INFO

    def test_console_writes_to_stdout(self):
        config = build_logging_config(Settings(_env_file=None))
        assert config["handlers"]["console"]["stream"] is sys.stdout

    def test_setup_logging_applies_config(self, monkeypatch):
        applied = []
        monkeypatch.setattr(logging_config.logging.config, "dictConfig", applied.append)

        setup_logging(Settings(_env_file=None, ENV="production"))

        assert len(applied) == 1
        assert applied[0]["handlers"]["console"]["formatter"] == "json"


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "shadowtest.core.assembly.solver"
        assert entry["message"] == "Step 0: selected 2 item(s)"
        assert "timestamp" in entry
        assert "source" not in entry

    def test_structured_fields(self):
        record = _record(
            step_index=3, solver_status="OPTIMAL", objective=1.25, duration_ms=8.5
        )
        entry = json.loads(JSONFormatter().format(record))
        assert entry["step_index"] == 3
        assert entry["solver_status"] == "OPTIMAL"
        assert entry["objective"] == pytest.approx(1.25)
        assert entry["duration_ms"] == pytest.approx(8.5)

    def test_error_records_include_source(self):
        entry = json.loads(JSONFormatter().format(_record(level=logging.ERROR)))
        assert entry["source"] == "solver.py:42"

    def test_exception_is_formatted(self):
        try:
            raise RuntimeError("solver crashed")
        except RuntimeError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()
        entry = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: solver crashed" in entry["exception"]
