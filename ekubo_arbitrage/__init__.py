"""
Ekubo cyclic arbitrage bot.

Sweeps a ladder of input amounts against the Ekubo quote API, ranks round-trip
quotes of the base token by gross profit, compiles the best one into Ekubo
router calldata and optionally executes it on Starknet.
"""

from ekubo_arbitrage.version import __version__

PROJECT_NAME = "ekubo-arbitrage"
VERSION = __version__

from ekubo_arbitrage.config_schema import ArbitrageConfig, load_config
from ekubo_arbitrage.exceptions import (
    ConfigurationError,
    ConfirmationFailure,
    ConfirmationTimeout,
    EkuboArbitrageError,
    ExecutionError,
    FeeEstimationFailure,
    InvalidRouteShape,
    MalformedQuoteResponse,
    QuoteUnavailable,
    SubmissionFailure,
)
from ekubo_arbitrage.executor import ArbitrageExecutor
from ekubo_arbitrage.ladder import generate_amount_ladder
from ekubo_arbitrage.quote_client import QuoteClient
from ekubo_arbitrage.ranker import rank_candidates
from ekubo_arbitrage.route_compiler import RouteCompiler
from ekubo_arbitrage.scheduler import PollScheduler

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "ArbitrageConfig",
    "load_config",
    "EkuboArbitrageError",
    "ConfigurationError",
    "QuoteUnavailable",
    "MalformedQuoteResponse",
    "InvalidRouteShape",
    "ExecutionError",
    "FeeEstimationFailure",
    "SubmissionFailure",
    "ConfirmationFailure",
    "ConfirmationTimeout",
    "ArbitrageExecutor",
    "generate_amount_ladder",
    "QuoteClient",
    "rank_candidates",
    "RouteCompiler",
    "PollScheduler",
]
