"""Tests for logging setup."""

import logging

import pytest

from utils import logger as log_setup


@pytest.fixture(autouse=True)
def restore_root_level():
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)


def test_configure_sets_level() -> None:
    log_setup.configure("debug")

    assert logging.getLogger().level == logging.DEBUG


def test_handler_installed_once() -> None:
    log_setup.configure("INFO")
    log_setup.configure("WARNING")
    log_setup.get_logger("db.session")

    root = logging.getLogger()
    assert root.handlers.count(log_setup._handler) == 1
    assert root.level == logging.WARNING


def test_unknown_level_falls_back_to_info(caplog) -> None:
    with caplog.at_level(logging.INFO):
        log_setup.configure("chatty")
        assert logging.getLogger().level == logging.INFO

    assert "Unknown log level 'chatty'" in caplog.text
