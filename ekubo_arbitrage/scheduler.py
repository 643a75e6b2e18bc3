"""
Poll loop driving sweep -> rank -> compile -> execute.

Iterations run strictly one after another on a fixed interval. Any error
raised inside an iteration is logged at the iteration boundary and the loop
carries on with the next one.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from .config_schema import ArbitrageConfig
from .exceptions import ConfigurationError, EkuboArbitrageError
from .executor import ArbitrageExecutor
from .ladder import generate_amount_ladder
from .quote_client import QuoteClient
from .ranker import rank_candidates
from .route_compiler import RouteCompiler, decode_swap_calldata, route_token_path
from .types import CompiledCandidate, ExecutionResult
from .utils import format_duration, to_hex

logger = logging.getLogger(__name__)


@dataclass
class IterationReport:
    """What a single iteration found and did."""

    outcome: str
    candidates: List[CompiledCandidate] = field(default_factory=list)
    result: Optional[ExecutionResult] = None


class PollScheduler:
    """Runs the arbitrage pipeline on a fixed cadence until stopped."""

    def __init__(
        self,
        config: ArbitrageConfig,
        quote_client: QuoteClient,
        compiler: RouteCompiler,
        executor: Optional[ArbitrageExecutor] = None,
        metrics=None,
    ):
        if config.execution_mode != "scan" and executor is None:
            raise ConfigurationError(
                f"execution_mode={config.execution_mode} requires an executor"
            )
        self.config = config
        self.quote_client = quote_client
        self.compiler = compiler
        self.executor = executor
        self.metrics = metrics
        self.amounts = generate_amount_ladder(config.min_power_of_2, config.max_power_of_2)

    async def run_iteration(self) -> IterationReport:
        """Run the pipeline once. Errors propagate to the caller."""
        results = await self.quote_client.sweep(self.amounts)
        candidates = rank_candidates(
            results,
            min_profit=self.config.min_profit,
            top_n=self.config.num_top_quotes_to_estimate,
        )

        if self.metrics is not None:
            self.metrics.record_candidates(
                len(candidates), candidates[0].profit if candidates else None
            )

        if not candidates:
            quoted = sum(1 for _, quote in results if quote is not None)
            logger.debug(f"No profitable cycle ({quoted}/{len(results)} amounts quoted)")
            return IterationReport(outcome="no_opportunity")

        mode = self.config.execution_mode
        compiled = self.compiler.compile_all(candidates, for_execution=mode == "live")
        for rank, item in enumerate(compiled, start=1):
            self._log_opportunity(rank, item)

        best = compiled[0]
        if mode == "scan":
            return IterationReport(outcome="scanned", candidates=compiled)

        if mode == "estimate":
            result = await self.executor.estimate_only(best)
            return IterationReport(outcome="estimated", candidates=compiled, result=result)

        logger.info(f"Executing top arbitrage: amount={best.candidate.amount} profit={best.candidate.profit}")
        result = await self.executor.execute(best)
        return IterationReport(outcome="executed", candidates=compiled, result=result)

    async def run(
        self,
        stop_event: Optional[asyncio.Event] = None,
        max_iterations: Optional[int] = None,
    ) -> int:
        """
        Main loop: iterate, sleep, repeat.

        Args:
            stop_event: Checked between iterations; setting it also cuts the sleep short
            max_iterations: Stop after this many iterations (None runs forever)

        Returns:
            Number of iterations run
        """
        if stop_event is None:
            stop_event = asyncio.Event()

        logger.info(
            f"Polling every {format_duration(self.config.check_interval_seconds)} "
            f"over {len(self.amounts)} amounts (2^{self.config.min_power_of_2}"
            f"..2^{self.config.max_power_of_2 - 1}), mode={self.config.execution_mode}"
        )

        iteration = 0
        while not stop_event.is_set():
            iteration += 1
            start_time = time.time()

            try:
                report = await self.run_iteration()
                outcome = report.outcome
            except EkuboArbitrageError as e:
                outcome = "failed"
                logger.error(
                    f"Iteration {iteration} failed: {type(e).__name__}: {e} {e.details or ''}"
                )
            except Exception as e:
                outcome = "failed"
                logger.error(f"Iteration {iteration} failed: {e}", exc_info=True)

            duration = time.time() - start_time
            if self.metrics is not None:
                self.metrics.record_iteration(outcome, duration)
            logger.debug(f"Iteration {iteration}: {outcome} in {format_duration(duration)}")

            if max_iterations is not None and iteration >= max_iterations:
                break

            try:
                await asyncio.wait_for(
                    stop_event.wait(), timeout=self.config.check_interval_seconds
                )
            except asyncio.TimeoutError:
                pass

        logger.info(f"Poll loop stopped after {iteration} iteration(s)")
        return iteration

    def _log_opportunity(self, rank: int, item: CompiledCandidate) -> None:
        candidate = item.candidate
        swap = item.calls[-2]
        log_data = {
            "rank": rank,
            "amount": candidate.amount,
            "total": candidate.quote.total,
            "profit": candidate.profit,
            "splits": [
                {
                    "specified_amount": split.specified_amount,
                    "path": " -> ".join(
                        to_hex(token)
                        for token in route_token_path(self.compiler.base_token, split.route)
                    ),
                }
                for split in candidate.quote.splits
            ],
            "entrypoint": swap.entrypoint,
            "calldata_len": len(swap.calldata),
            "minimum_out": item.minimum_out,
        }
        logger.info(f"OPPORTUNITY_FOUND: {log_data}")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Swap layout: {decode_swap_calldata(swap.entrypoint, swap.calldata)}")
