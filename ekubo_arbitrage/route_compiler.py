"""
Compiles ranked quotes into Ekubo router call bundles.

The router parses swap calldata as a flat felt stream using the embedded
counts, so the position of every value matters:

    split   := hop_count, hop * hop_count, token, specified_amount, 0
    hop     := token_a, token_b, fee, tick_spacing, extension,
               sqrt_ratio_limit.low, sqrt_ratio_limit.high, skip_ahead

``multihop_swap`` takes a single split, ``multi_multihop_swap`` takes
``split_count`` followed by the splits back to back.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .config_schema import ArbitrageConfig
from .exceptions import InvalidRouteShape
from .types import Call, Candidate, CompiledCandidate, Quote, RouteHop, Split
from .utils import join_u256, split_u256

logger = logging.getLogger(__name__)

MULTIHOP_SWAP = "multihop_swap"
MULTI_MULTIHOP_SWAP = "multi_multihop_swap"
CLEAR_MINIMUM = "clear_minimum"
TRANSFER = "transfer"

HOP_WIDTH = 8

# Estimate-only bundles accept receiving 99.99% of the quoted total
SLIPPAGE_NUMERATOR = 99_990
SLIPPAGE_DENOMINATOR = 100_000


def slippage_adjusted_minimum(total: int, amount: int) -> int:
    """Minimum output for estimate-only bundles, never below the input amount."""
    return max(amount, total * SLIPPAGE_NUMERATOR // SLIPPAGE_DENOMINATOR)


def route_token_path(base_token: int, route: Sequence[RouteHop]) -> List[int]:
    """Tokens held before the first hop and after each hop of a route."""
    path = [base_token]
    current = base_token
    for hop in route:
        key = hop.pool_key
        current = key.token0 if current == key.token1 else key.token1
        path.append(current)
    return path


@dataclass(frozen=True)
class DecodedHop:
    tokens: Tuple[int, int]
    fee: int
    tick_spacing: int
    extension: int
    sqrt_ratio_limit: int
    skip_ahead: int


@dataclass(frozen=True)
class DecodedSplit:
    hops: Tuple[DecodedHop, ...]
    token: int
    specified_amount: int


def decode_swap_calldata(entrypoint: str, calldata: Sequence[int]) -> List[DecodedSplit]:
    """
    Parse swap calldata back into splits, the way the router reads it.

    Raises:
        ValueError: If the calldata is truncated, has trailing values or a
            non-zero trailer after a split's amount
    """
    position = 0

    def take(count: int) -> List[int]:
        nonlocal position
        if position + count > len(calldata):
            raise ValueError(f"Calldata truncated at position {position}")
        values = list(calldata[position : position + count])
        position += count
        return values

    def read_split() -> DecodedSplit:
        (hop_count,) = take(1)
        hops = []
        for _ in range(hop_count):
            a, b, fee, tick_spacing, extension, low, high, skip_ahead = take(HOP_WIDTH)
            hops.append(
                DecodedHop(
                    tokens=(a, b),
                    fee=fee,
                    tick_spacing=tick_spacing,
                    extension=extension,
                    sqrt_ratio_limit=join_u256(low, high),
                    skip_ahead=skip_ahead,
                )
            )
        token, specified_amount, trailer = take(3)
        if trailer != 0:
            raise ValueError(f"Expected 0 after specified amount, got {trailer}")
        return DecodedSplit(tuple(hops), token, specified_amount)

    if entrypoint == MULTIHOP_SWAP:
        splits = [read_split()]
    elif entrypoint == MULTI_MULTIHOP_SWAP:
        (split_count,) = take(1)
        splits = [read_split() for _ in range(split_count)]
    else:
        raise ValueError(f"Not a swap entrypoint: {entrypoint}")

    if position != len(calldata):
        raise ValueError(f"{len(calldata) - position} trailing calldata values")
    return splits


class RouteCompiler:
    """Builds the router call bundle for a candidate."""

    def __init__(self, base_token: int, router_address: int):
        self.base_token = base_token
        self.router_address = router_address

    @classmethod
    def from_config(cls, config: ArbitrageConfig) -> "RouteCompiler":
        return cls(config.token_to_arbitrage, config.router_address)

    def encode_route(self, route: Sequence[RouteHop]) -> List[int]:
        """
        Encode the hops of one route.

        The pool key tokens are ordered by the token currently held: starting
        from the base token, a hop whose token1 is held is written as
        (token1, token0) and leaves token0 held; otherwise it is written as
        (token0, token1) and leaves token1 held.
        """
        encoded: List[int] = []
        current = self.base_token
        for hop in route:
            key = hop.pool_key
            if current == key.token1:
                first, second = key.token1, key.token0
                current = key.token0
            else:
                first, second = key.token0, key.token1
                current = key.token1

            low, high = split_u256(hop.sqrt_ratio_limit)
            encoded.extend(
                [
                    first,
                    second,
                    key.fee,
                    key.tick_spacing,
                    key.extension,
                    low,
                    high,
                    hop.skip_ahead,
                ]
            )
        return encoded

    def encode_split(self, split: Split) -> List[int]:
        if not split.route:
            raise InvalidRouteShape("Split has an empty route")
        return [
            len(split.route),
            *self.encode_route(split.route),
            self.base_token,
            split.specified_amount,
            0,
        ]

    def swap_call(self, quote: Quote) -> Call:
        """
        Raises:
            InvalidRouteShape: No splits, or a single split with a single hop
        """
        splits = quote.splits
        if len(splits) == 0:
            raise InvalidRouteShape("Quote has no splits")

        if len(splits) == 1:
            split = splits[0]
            if len(split.route) == 1:
                raise InvalidRouteShape(
                    "Single split quote with a single hop route",
                    details={"specified_amount": split.specified_amount},
                )
            return Call(
                contract_address=self.router_address,
                entrypoint=MULTIHOP_SWAP,
                calldata=tuple(self.encode_split(split)),
            )

        calldata = [len(splits)]
        for split in splits:
            calldata.extend(self.encode_split(split))
        return Call(
            contract_address=self.router_address,
            entrypoint=MULTI_MULTIHOP_SWAP,
            calldata=tuple(calldata),
        )

    def transfer_call(self, amount: int) -> Call:
        """Fund the router with the input amount from the caller."""
        low, high = split_u256(amount)
        return Call(
            contract_address=self.base_token,
            entrypoint=TRANSFER,
            calldata=(self.router_address, low, high),
        )

    def clear_minimum_call(self, minimum: int) -> Call:
        """Sweep at least ``minimum`` of the base token back to the caller."""
        low, high = split_u256(minimum)
        return Call(
            contract_address=self.router_address,
            entrypoint=CLEAR_MINIMUM,
            calldata=(self.base_token, low, high),
        )

    def compile(self, candidate: Candidate, for_execution: bool = True) -> CompiledCandidate:
        """
        Build the call bundle for a candidate.

        Execution bundles are [transfer, swap, clear_minimum(total)].
        Estimate-only bundles are [swap, clear_minimum(adjusted)] where the
        minimum allows a 0.01% shortfall but never drops below the input.
        """
        quote = candidate.quote
        swap = self.swap_call(quote)

        if for_execution:
            minimum = quote.total
            calls = (self.transfer_call(candidate.amount), swap, self.clear_minimum_call(minimum))
        else:
            minimum = slippage_adjusted_minimum(quote.total, candidate.amount)
            calls = (swap, self.clear_minimum_call(minimum))

        logger.debug(
            f"Compiled {swap.entrypoint} for amount {candidate.amount}: "
            f"{len(quote.splits)} split(s), {len(swap.calldata)} felts, minimum {minimum}"
        )
        return CompiledCandidate(candidate=candidate, calls=calls, minimum_out=minimum)

    def compile_all(
        self, candidates: Sequence[Candidate], for_execution: bool = True
    ) -> List[CompiledCandidate]:
        return [self.compile(c, for_execution=for_execution) for c in candidates]
