"""
Exception hierarchy for the Ekubo arbitrage engine.

Provides specific exception types for each failure category so the poll
scheduler can tell absorbed per-amount failures apart from errors that abort
an iteration.
"""

from typing import Any, Dict, Optional


class EkuboArbitrageError(Exception):
    """Base exception for all arbitrage engine errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(EkuboArbitrageError):
    """Raised when configuration is missing or invalid."""

    pass


class QuoteUnavailable(EkuboArbitrageError):
    """The quote API had no usable answer for an amount.

    Never escapes the quote client: callers see ``None`` for that amount.
    """

    def __init__(
        self,
        message: str,
        amount: Optional[int] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.amount = amount
        self.status_code = status_code


class MalformedQuoteResponse(EkuboArbitrageError):
    """Raised when a successful quote response cannot be decoded."""

    def __init__(
        self,
        message: str,
        amount: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.amount = amount


class InvalidRouteShape(EkuboArbitrageError):
    """Raised when a quote's split/route structure cannot be compiled."""

    pass


class ExecutionError(EkuboArbitrageError):
    """Raised when a stage of on-chain execution fails."""

    stage = "execution"

    def __init__(
        self,
        message: str,
        tx_hash: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.tx_hash = tx_hash


class FeeEstimationFailure(ExecutionError):
    """The network client could not estimate the bundle's fee."""

    stage = "fee_estimation"


class SubmissionFailure(ExecutionError):
    """The signed transaction was rejected or could not be sent."""

    stage = "submission"


class ConfirmationFailure(ExecutionError):
    """Waiting for the submitted transaction failed."""

    stage = "confirmation"


class ConfirmationTimeout(ConfirmationFailure):
    """The transaction was sent but finality was not observed in time.

    The outcome is unknown: funds may already have moved.
    """

    stage = "confirmation_timeout"
