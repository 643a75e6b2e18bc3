"""
Execution of compiled arbitrage bundles.

Handles:
- Fee estimation for the call bundle
- Submission authorising twice the estimated fee
- Waiting for the transaction to become final

Nothing here retries: a failure propagates to the poll scheduler, which logs
it and moves on to the next iteration.
"""

import asyncio
import logging
import time
from typing import Optional

from .config_schema import ArbitrageConfig
from .exceptions import (
    ConfirmationFailure,
    ConfirmationTimeout,
    FeeEstimationFailure,
    SubmissionFailure,
)
from .interfaces import NetworkClient
from .types import CompiledCandidate, ExecutionResult, FeeEstimate
from .utils import to_hex

logger = logging.getLogger(__name__)

FEE_SAFETY_MULTIPLIER = 2


class ArbitrageExecutor:
    """Estimates, submits and confirms arbitrage transactions."""

    def __init__(self, network: NetworkClient, config: ArbitrageConfig, metrics=None):
        self.network = network
        self.config = config
        self.metrics = metrics

    def explorer_link(self, tx_hash: int) -> str:
        return f"{self.config.explorer_tx_prefix}{to_hex(tx_hash)}"

    async def estimate_fee(self, compiled: CompiledCandidate) -> FeeEstimate:
        """
        Raises:
            FeeEstimationFailure: If the network client cannot estimate the bundle
        """
        try:
            return await self.network.estimate_fee(compiled.calls)
        except Exception as e:
            raise FeeEstimationFailure(
                f"Fee estimation failed: {e}",
                details={"amount": compiled.candidate.amount},
            ) from e

    async def estimate_only(self, compiled: CompiledCandidate) -> ExecutionResult:
        """Estimate the bundle's fee without submitting anything."""
        start_time = time.time()
        fee = (await self.estimate_fee(compiled)).overall_fee
        result = ExecutionResult(
            mode="estimate",
            estimated_fee=fee,
            execution_time_ms=(time.time() - start_time) * 1000,
        )
        logger.info(
            f"ESTIMATE_RESULT: {{'amount': {compiled.candidate.amount}, "
            f"'profit': {compiled.candidate.profit}, 'minimum_out': {compiled.minimum_out}, "
            f"'estimated_fee': {fee}}}"
        )
        self._record("estimated", result.execution_time_ms / 1000)
        return result

    async def execute(self, compiled: CompiledCandidate) -> ExecutionResult:
        """
        Estimate, submit with a 2x fee margin and wait for finality.

        Raises:
            FeeEstimationFailure, SubmissionFailure, ConfirmationFailure,
            ConfirmationTimeout
        """
        start_time = time.time()
        candidate = compiled.candidate
        execution_log = {
            "action": "EXECUTE_OPPORTUNITY",
            "amount": candidate.amount,
            "total": candidate.quote.total,
            "profit": candidate.profit,
            "splits": len(candidate.quote.splits),
            "calls": [call.entrypoint for call in compiled.calls],
            "minimum_out": compiled.minimum_out,
        }
        logger.info(f"EXECUTION_START: {execution_log}")

        try:
            estimate = await self.estimate_fee(compiled)
            fee = estimate.overall_fee
            max_fee = fee * FEE_SAFETY_MULTIPLIER

            try:
                tx_hash = await self.network.execute(
                    compiled.calls, estimate, FEE_SAFETY_MULTIPLIER
                )
            except Exception as e:
                raise SubmissionFailure(
                    f"Transaction submission failed: {e}",
                    details={"max_fee": max_fee},
                ) from e

            logger.info(
                f"Sent transaction, waiting for receipt {self.explorer_link(tx_hash)}"
            )
            receipt = await self._wait_for_finality(tx_hash)
        except Exception as e:
            self._record(getattr(e, "stage", "failed"), (time.time() - start_time))
            raise

        result = ExecutionResult(
            mode="live",
            estimated_fee=fee,
            max_fee=max_fee,
            tx_hash=tx_hash,
            receipt=receipt,
            execution_time_ms=(time.time() - start_time) * 1000,
        )
        result_log = {
            "action": "EXECUTION_COMPLETE",
            "tx_hash": to_hex(tx_hash),
            "estimated_fee": fee,
            "max_fee": max_fee,
            "execution_time_ms": round(result.execution_time_ms),
        }
        logger.info(f"EXECUTION_RESULT: {result_log}")
        logger.debug(f"Arbitrage receipt: {receipt}")
        self._record("confirmed", result.execution_time_ms / 1000)
        return result

    async def _wait_for_finality(self, tx_hash: int):
        retry_interval = self.config.confirmation_poll_ms / 1000
        timeout_ms = self.config.confirmation_timeout_ms
        wait = self.network.wait_for_transaction(tx_hash, retry_interval=retry_interval)

        try:
            if timeout_ms:
                return await asyncio.wait_for(wait, timeout=timeout_ms / 1000)
            return await wait
        except asyncio.TimeoutError as e:
            raise ConfirmationTimeout(
                f"Transaction {to_hex(tx_hash)} not final after {timeout_ms}ms; outcome unknown",
                tx_hash=tx_hash,
            ) from e
        except Exception as e:
            raise ConfirmationFailure(
                f"Waiting for transaction {to_hex(tx_hash)} failed: {e}",
                tx_hash=tx_hash,
            ) from e

    def _record(self, status: str, duration_seconds: Optional[float] = None) -> None:
        if self.metrics is not None:
            self.metrics.record_execution(status, duration_seconds)
