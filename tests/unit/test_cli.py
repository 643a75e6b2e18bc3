"""Tests for the command line entry point."""

import logging
from unittest.mock import AsyncMock

import pytest
from prometheus_client import CollectorRegistry

from ekubo_arbitrage import __version__, cli
from ekubo_arbitrage.exceptions import ConfigurationError

from conftest import make_config


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_parse_args_defaults():
    args = cli.parse_args([])
    assert args.config is None
    assert args.mode is None
    assert args.once is False
    assert args.log_level is None
    assert args.debug is False


def test_parse_args_flags():
    args = cli.parse_args(["--config", "bot.yaml", "--mode", "estimate", "--once", "--log-level", "debug"])
    assert args.config == "bot.yaml"
    assert args.mode == "estimate"
    assert args.once is True
    assert args.log_level == "DEBUG"


def test_parse_args_rejects_unknown_mode():
    with pytest.raises(SystemExit):
        cli.parse_args(["--mode", "yolo"])


def test_build_overrides_passes_flags_through():
    args = cli.parse_args(["--mode", "scan"])
    assert cli.build_overrides(args) == {"execution_mode": "scan", "log_level": None}


def test_main_returns_one_on_configuration_error(tmp_path):
    assert cli.main(["--config", str(tmp_path / "missing.yaml")]) == 1


def test_main_runs_loop_with_loaded_config(monkeypatch):
    config = make_config()
    fake_run = AsyncMock(return_value=1)
    monkeypatch.setattr(cli, "load_config", lambda path, overrides=None: config)
    monkeypatch.setattr(cli, "run", fake_run)

    assert cli.main(["--mode", "scan", "--once"]) == 0

    fake_run.assert_awaited_once_with(config, once=True)


def test_main_reports_configuration_error_from_run(monkeypatch):
    monkeypatch.setattr(cli, "load_config", lambda path, overrides=None: make_config())
    monkeypatch.setattr(cli, "run", AsyncMock(side_effect=ConfigurationError("no executor")))

    assert cli.main([]) == 1


def test_unknown_log_level_is_a_usage_error():
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--log-level", "verbose"])
    assert exc_info.value.code == 2


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["--version"])
    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


class StubQuoteClient:
    """Quote client that never touches the network."""

    def __init__(self, config, metrics=None):
        self.metrics = metrics

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        pass

    async def sweep(self, amounts):
        self.metrics.record_quote("unavailable")
        return [(amount, None) for amount in amounts]


@pytest.mark.asyncio
async def test_run_can_be_called_repeatedly_in_one_process(monkeypatch):
    monkeypatch.setattr(cli, "QuoteClient", StubQuoteClient)

    assert await cli.run(make_config(), once=True) == 1
    assert await cli.run(make_config(), once=True) == 1


@pytest.mark.asyncio
async def test_run_records_into_given_registry(monkeypatch):
    monkeypatch.setattr(cli, "QuoteClient", StubQuoteClient)
    registry = CollectorRegistry()

    await cli.run(make_config(), once=True, registry=registry)

    assert registry.get_sample_value("ekubo_arbitrage_iterations_total", {"outcome": "no_opportunity"}) == 1
    assert registry.get_sample_value("ekubo_arbitrage_quotes_total", {"status": "unavailable"}) == 33
