"""
Command line entry point for the arbitrage bot.

MODES:
  live      Estimate, submit (2x fee margin) and confirm the best cycle [DEFAULT]
  estimate  Estimate the fee of the best cycle without submitting
  scan      Rank and compile only, no network client needed

Usage:
  ekubo-arbitrage                       # settings from environment / .env
  ekubo-arbitrage --config bot.yaml --mode scan --once

Environment Variables:
  EKUBO_API_QUOTE_URL, TOKEN_TO_ARBITRAGE, ROUTER_ADDRESS (required)
  JSON_RPC_URL, ACCOUNT_ADDRESS, ACCOUNT_PRIVATE_KEY (required unless scan)
  MAX_HOPS, MAX_SPLITS, CHECK_INTERVAL_MS, MIN_POWER_OF_2, MAX_POWER_OF_2,
  MIN_PROFIT, NUM_TOP_QUOTES_TO_ESTIMATE, EXPLORER_TX_PREFIX, METRICS_PORT
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Any, Dict, List, Optional

from prometheus_client import CollectorRegistry

from . import logging_config
from .config_schema import LOG_LEVELS, ArbitrageConfig, load_config
from .exceptions import ConfigurationError
from .executor import ArbitrageExecutor
from .metrics import ArbitrageMetrics
from .quote_client import QuoteClient
from .route_compiler import RouteCompiler
from .scheduler import PollScheduler
from .version import get_version

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Ekubo cyclic arbitrage bot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Optional YAML file; environment variables take priority",
    )
    parser.add_argument(
        "--mode",
        choices=["live", "estimate", "scan"],
        default=None,
        help="Execution mode (default: EXECUTION_MODE or live)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single iteration and exit",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Log level (default: LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Verbose logging including HTTP access logs",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {get_version()}",
    )
    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {"execution_mode": args.mode, "log_level": args.log_level}


def build_network_client(config: ArbitrageConfig):
    # starknet-py is only loaded when a mode actually talks to the chain
    from .network import StarknetNetworkClient

    return StarknetNetworkClient.from_config(config)


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops; Ctrl-C surfaces as KeyboardInterrupt instead
            pass


async def run(
    config: ArbitrageConfig,
    once: bool = False,
    registry: Optional[CollectorRegistry] = None,
) -> int:
    """
    Wire the components together and run the poll loop.

    Each run gets its own metrics registry unless one is passed in.
    """
    metrics = ArbitrageMetrics(registry if registry is not None else CollectorRegistry())
    metrics_started = False
    if config.metrics_port:
        metrics_started = await metrics.start_server(port=config.metrics_port)

    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    try:
        async with QuoteClient(config, metrics=metrics) as quote_client:
            executor = None
            if config.execution_mode != "scan":
                executor = ArbitrageExecutor(build_network_client(config), config, metrics)

            scheduler = PollScheduler(
                config,
                quote_client,
                RouteCompiler.from_config(config),
                executor=executor,
                metrics=metrics,
            )
            return await scheduler.run(stop_event, max_iterations=1 if once else None)
    finally:
        if metrics_started:
            await metrics.stop_server()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.debug:
        logging_config.setup_debug()
    else:
        logging_config.setup(args.log_level or logging.INFO)

    try:
        config = load_config(args.config, overrides=build_overrides(args))
    except ConfigurationError as e:
        logger.error(f"{e}")
        return 1

    if not args.debug:
        logging_config.setup(config.log_level)

    logger.info(f"Starting with config {config.masked()}")

    try:
        asyncio.run(run(config, once=args.once))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    except ConfigurationError as e:
        logger.error(f"{e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
