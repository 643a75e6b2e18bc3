"""
Prometheus metrics for the arbitrage loop.

Exposes sweep, ranking and execution statistics, optionally served over HTTP
by a small aiohttp app (/metrics and /health).
"""

import logging
import time
from typing import Optional

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)


class ArbitrageMetrics:
    """
    Metrics collection for the poll loop.

    Provides Prometheus-compatible metrics for:
    - Iteration outcomes and durations
    - Quote request statuses
    - Profitable candidates per sweep
    - Execution attempts by stage
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY
        self._initialize_metrics()

        self._app = None
        self._runner = None
        self._site = None

    def _initialize_metrics(self):
        # === ITERATION METRICS ===
        self.iterations_total = Counter(
            "ekubo_arbitrage_iterations_total",
            "Poll iterations by outcome",
            ["outcome"],
            registry=self.registry,
        )

        self.iteration_duration_seconds = Histogram(
            "ekubo_arbitrage_iteration_duration_seconds",
            "Wall time of one sweep/rank/compile/execute iteration",
            buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 120.0],
            registry=self.registry,
        )

        # === QUOTE METRICS ===
        self.quotes_total = Counter(
            "ekubo_arbitrage_quotes_total",
            "Quote requests by status",
            ["status"],
            registry=self.registry,
        )

        # === OPPORTUNITY METRICS ===
        self.profitable_candidates = Gauge(
            "ekubo_arbitrage_profitable_candidates",
            "Candidates above the minimum profit in the last sweep",
            registry=self.registry,
        )

        self.best_profit = Gauge(
            "ekubo_arbitrage_best_profit",
            "Best gross profit in base token units in the last sweep",
            registry=self.registry,
        )

        # === EXECUTION METRICS ===
        self.executions_total = Counter(
            "ekubo_arbitrage_executions_total",
            "Execution attempts by final status",
            ["status"],
            registry=self.registry,
        )

        self.execution_duration_seconds = Histogram(
            "ekubo_arbitrage_execution_duration_seconds",
            "Time from fee estimation to finality",
            buckets=[1, 5, 10, 30, 60, 120, 300, 600],
            registry=self.registry,
        )

        self.last_iteration_timestamp = Gauge(
            "ekubo_arbitrage_last_iteration_timestamp",
            "Unix timestamp of the last completed iteration",
            registry=self.registry,
        )

    # === METRIC RECORDING METHODS ===

    def record_quote(self, status: str):
        self.quotes_total.labels(status=status).inc()

    def record_candidates(self, count: int, best_profit: Optional[int] = None):
        self.profitable_candidates.set(count)
        self.best_profit.set(best_profit if best_profit is not None else 0)

    def record_execution(self, status: str, duration_seconds: Optional[float] = None):
        self.executions_total.labels(status=status).inc()
        if duration_seconds is not None and duration_seconds > 0:
            self.execution_duration_seconds.observe(duration_seconds)

    def record_iteration(self, outcome: str, duration_seconds: float = 0.0):
        self.iterations_total.labels(outcome=outcome).inc()
        if duration_seconds > 0:
            self.iteration_duration_seconds.observe(duration_seconds)
        self.last_iteration_timestamp.set(time.time())

    # === SERVER MANAGEMENT ===

    async def start_server(
        self, port: int = 8000, host: str = "0.0.0.0", path: str = "/metrics"
    ) -> bool:
        """Start Prometheus metrics HTTP server"""
        try:
            self._app = web.Application()
            self._app.router.add_get(path, self._metrics_handler)
            self._app.router.add_get("/health", self._health_handler)

            self._runner = web.AppRunner(self._app)
            await self._runner.setup()

            self._site = web.TCPSite(self._runner, host, port)
            await self._site.start()

            logger.info(f"Prometheus metrics server started on http://{host}:{port}{path}")
            return True

        except OSError as e:
            logger.error(f"Failed to start metrics server: {e}")
            return False

    async def stop_server(self):
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        logger.info("Metrics server stopped")

    async def _metrics_handler(self, request):
        metrics_output = generate_latest(self.registry)
        # aiohttp rejects a charset inside content_type
        content_type = CONTENT_TYPE_LATEST.split(";")[0]
        return web.Response(text=metrics_output.decode("utf-8"), content_type=content_type)

    async def _health_handler(self, request):
        return web.json_response({"status": "healthy", "service": "ekubo_arbitrage"})
