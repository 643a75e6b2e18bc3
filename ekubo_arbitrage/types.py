"""
Core data types for the arbitrage engine.
"""

from dataclasses import dataclass, field
from typing import Literal, Optional, Tuple

ExecutionMode = Literal["live", "estimate", "scan"]


@dataclass(frozen=True)
class PoolKey:
    """
    Identifies an Ekubo pool.

    Attributes:
        token0: Lower token address of the pair (sorted by the AMM)
        token1: Higher token address of the pair
        fee: Pool fee as a 0.128 fixed point value
        tick_spacing: Tick spacing of the pool
        extension: Address of the pool extension (0 for none)
    """

    token0: int
    token1: int
    fee: int
    tick_spacing: int
    extension: int


@dataclass(frozen=True)
class RouteHop:
    """
    One pool traversal within a split.

    Attributes:
        pool_key: Pool being swapped through
        sqrt_ratio_limit: u256 price bound for the hop
        skip_ahead: Opaque value passed through to the router
    """

    pool_key: PoolKey
    sqrt_ratio_limit: int
    skip_ahead: int


@dataclass(frozen=True)
class Split:
    """
    One parallel execution path of a quote.

    Attributes:
        specified_amount: Exact input sent down this path
        amount: Quoted output of this path
        route: Ordered hops, never empty
    """

    specified_amount: int
    amount: int
    route: Tuple[RouteHop, ...]


@dataclass(frozen=True)
class Quote:
    """Round-trip quote for one input amount."""

    total: int
    splits: Tuple[Split, ...]


@dataclass(frozen=True)
class Candidate:
    """
    An input amount paired with its quote.

    Attributes:
        amount: Input amount in base token units
        quote: Quote returned for the amount
        profit: quote.total - amount, may be negative
    """

    amount: int
    quote: Quote
    profit: int

    @classmethod
    def from_quote(cls, amount: int, quote: Quote) -> "Candidate":
        return cls(amount=amount, quote=quote, profit=quote.total - amount)


@dataclass(frozen=True)
class Call:
    """A single contract call inside a transaction."""

    contract_address: int
    entrypoint: str
    calldata: Tuple[int, ...] = field(default_factory=tuple)


CallBundle = Tuple[Call, ...]


@dataclass(frozen=True)
class FeeEstimate:
    """
    Fee estimate for a call bundle.

    Attributes:
        overall_fee: Total estimated fee in fee token units
        details: Network-specific estimate (per-resource gas amounts and prices)
            the network client turns into transaction resource bounds
    """

    overall_fee: int
    details: Optional[object] = None


@dataclass(frozen=True)
class CompiledCandidate:
    """A ranked candidate with the call bundle that realises it."""

    candidate: Candidate
    calls: CallBundle
    minimum_out: int


@dataclass
class ExecutionResult:
    """
    Result of an execution attempt.

    Attributes:
        mode: Execution mode the attempt ran in
        estimated_fee: Fee reported by the network client
        max_fee: Fee authorised on submission (2x estimate)
        tx_hash: Transaction hash (if submitted)
        receipt: Receipt returned once the transaction is final
        execution_time_ms: Time from estimation start to finality
    """

    mode: ExecutionMode
    estimated_fee: int
    max_fee: Optional[int] = None
    tx_hash: Optional[int] = None
    receipt: Optional[object] = None
    execution_time_ms: Optional[float] = None
