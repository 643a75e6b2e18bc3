"""Tests for console logging setup."""

import logging

import pytest

from ekubo_arbitrage import logging_config


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    named = {name: logging.getLogger(name).level for name in ("ekubo_arbitrage", "aiohttp.access", "asyncio")}
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, named_level in named.items():
        logging.getLogger(name).setLevel(named_level)


def test_setup_installs_single_console_handler():
    logging_config.setup()
    logging_config.setup()

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert root.level == logging.INFO
    assert root.handlers[0].formatter.datefmt == "%H:%M:%S"


def test_setup_accepts_level_names():
    logging_config.setup("warning")
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("ekubo_arbitrage").level == logging.WARNING


def test_noisy_loggers_quieted():
    logging_config.setup(logging.DEBUG)
    assert logging.getLogger("aiohttp.access").level == logging.WARNING
    assert logging.getLogger("asyncio").level == logging.WARNING


def test_debug_shows_access_log():
    logging_config.setup_debug()
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("aiohttp.access").level == logging.INFO


def test_minimal():
    logging_config.setup_minimal()
    assert logging.getLogger().level == logging.WARNING
