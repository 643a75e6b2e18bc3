"""
Dependency injection interfaces for the execution path.

The orchestrator only talks to the chain through this protocol, so tests can
substitute a fake and the starknet-py wiring stays in one module.
"""

from typing import Any, Protocol, Sequence, runtime_checkable

from .types import Call, FeeEstimate


@runtime_checkable
class NetworkClient(Protocol):
    """Protocol for fee estimation, submission and finality tracking."""

    async def estimate_fee(self, calls: Sequence[Call]) -> FeeEstimate:
        """Estimate the fee of an invoke of the calls without broadcasting anything."""
        ...

    async def execute(
        self, calls: Sequence[Call], estimate: FeeEstimate, fee_multiplier: int
    ) -> int:
        """
        Sign and submit the calls as a v3 invoke whose resource bounds allow
        fee_multiplier times the estimated gas. Returns the tx hash.
        """
        ...

    async def wait_for_transaction(self, tx_hash: int, retry_interval: float) -> Any:
        """Block until the transaction is final and return its receipt."""
        ...
