"""Tests for logging configuration."""

import logging

import pytest

from cardrecon.logger import configure_logging, get_logger


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    configure_logging(level="WARNING", json_output=False)


def test_configure_sets_root_level():
    configure_logging(level="debug", json_output=False)

    assert logging.getLogger().level == logging.DEBUG


def test_level_from_environment(monkeypatch):
    monkeypatch.setenv("CARDRECON_LOG_LEVEL", "ERROR")

    configure_logging(json_output=False)

    assert logging.getLogger().level == logging.ERROR


def test_unknown_level():
    with pytest.raises(ValueError, match="Unknown log level"):
        configure_logging(level="chatty")


def test_json_output(capsys):
    configure_logging(level="INFO", json_output=True)

    get_logger("cardrecon.tests").info("bill_recorded", bill_id=7)

    err = capsys.readouterr().err
    assert '"event": "bill_recorded"' in err
    assert '"bill_id": 7' in err
