"""Tests for process-wide logging setup."""

import logging

import pytest

from gatherkids import config
from gatherkids.core import logging as gk_logging
from gatherkids.core.diagnostics import LoggingDiagnosticSink


@pytest.fixture(autouse=True)
def restore_loggers(monkeypatch):
    names = ["", "httpx", "httpcore", "aiohttp", "sqlalchemy.engine", gk_logging.DIAGNOSTICS_LOGGER]
    saved = {name: logging.getLogger(name).level for name in names}
    monkeypatch.setattr(gk_logging, "_configured", False)
    monkeypatch.setattr(config, "LOG_SQL", False)
    monkeypatch.setattr(config, "DIAGNOSTICS_LOG_LEVEL", "WARNING")
    yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


def test_transport_loggers_quieted():
    levels = gk_logging.package_levels(logging.DEBUG)
    assert levels["httpx"] == logging.WARNING
    assert levels["aiohttp"] == logging.WARNING
    assert levels["sqlalchemy.engine"] == logging.WARNING


def test_log_sql_turns_on_engine_echo(monkeypatch):
    monkeypatch.setattr(config, "LOG_SQL", True)
    assert gk_logging.package_levels(logging.INFO)["sqlalchemy.engine"] == logging.INFO


def test_diagnostics_level_is_capped_at_warning(monkeypatch):
    monkeypatch.setattr(config, "DIAGNOSTICS_LOG_LEVEL", "CRITICAL")
    assert gk_logging.package_levels(logging.ERROR)[gk_logging.DIAGNOSTICS_LOGGER] == logging.WARNING
    monkeypatch.setattr(config, "DIAGNOSTICS_LOG_LEVEL", "debug")
    assert gk_logging.package_levels(logging.ERROR)[gk_logging.DIAGNOSTICS_LOGGER] == logging.DEBUG


def test_configure_logging_applies_levels_once():
    gk_logging.configure_logging("ERROR")
    assert logging.getLogger().level == logging.ERROR
    assert logging.getLogger(gk_logging.DIAGNOSTICS_LOGGER).level == logging.WARNING

    gk_logging.configure_logging("DEBUG")
    assert logging.getLogger().level == logging.ERROR

    gk_logging.configure_logging("DEBUG", force=True)
    assert logging.getLogger().level == logging.DEBUG


def test_unknown_level_falls_back_to_info():
    gk_logging.configure_logging("LOUD")
    assert logging.getLogger().level == logging.INFO


def test_diagnostics_survive_a_quiet_root(caplog):
    gk_logging.configure_logging("ERROR")
    LoggingDiagnosticSink().emit("legacy_field_mapping", entity="household")
    assert "legacy_field_mapping" in caplog.text
