"""
Client for the Ekubo quote API.

Requests a round-trip quote (base token -> base token) per candidate amount
and decodes the JSON body into the typed Quote model. The sweep fans the
requests out concurrently and keeps results aligned with the amount ladder.
"""

import asyncio
import logging
from typing import Annotated, Any, List, Optional, Sequence, Tuple

import aiohttp
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .config_schema import ArbitrageConfig
from .exceptions import MalformedQuoteResponse, QuoteUnavailable
from .types import PoolKey, Quote, RouteHop, Split
from .utils import U256_LIMIT, parse_felt, to_hex

logger = logging.getLogger(__name__)

Felt = Annotated[int, BeforeValidator(parse_felt)]

SweepResult = List[Tuple[int, Optional[Quote]]]


# Wire models, shaped like the API's JSON
class PoolKeyPayload(BaseModel):
    token0: Felt
    token1: Felt
    fee: Felt
    tick_spacing: Felt
    extension: Felt


class RouteNodePayload(BaseModel):
    pool_key: PoolKeyPayload
    sqrt_ratio_limit: Felt
    skip_ahead: Felt

    @field_validator("sqrt_ratio_limit")
    @classmethod
    def check_u256(cls, v: int) -> int:
        if v >= U256_LIMIT:
            raise ValueError("sqrt_ratio_limit exceeds 256 bits")
        return v


class SplitPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    specified_amount: Felt = Field(alias="specifiedAmount")
    amount: Felt = 0
    route: List[RouteNodePayload] = Field(min_length=1)


class QuotePayload(BaseModel):
    total: Felt
    splits: List[SplitPayload]

    def to_quote(self) -> Quote:
        return Quote(
            total=self.total,
            splits=tuple(
                Split(
                    specified_amount=split.specified_amount,
                    amount=split.amount,
                    route=tuple(
                        RouteHop(
                            pool_key=PoolKey(
                                token0=node.pool_key.token0,
                                token1=node.pool_key.token1,
                                fee=node.pool_key.fee,
                                tick_spacing=node.pool_key.tick_spacing,
                                extension=node.pool_key.extension,
                            ),
                            sqrt_ratio_limit=node.sqrt_ratio_limit,
                            skip_ahead=node.skip_ahead,
                        )
                        for node in split.route
                    ),
                )
                for split in self.splits
            ),
        )


def decode_quote(payload: Any, amount: Optional[int] = None) -> Quote:
    """
    Validate a decoded JSON body and convert it into a Quote.

    Raises:
        MalformedQuoteResponse: If the body does not match the quote shape
    """
    try:
        return QuotePayload.model_validate(payload).to_quote()
    except ValidationError as e:
        raise MalformedQuoteResponse(
            f"Quote response for amount {amount} does not match expected shape",
            amount=amount,
            details={"errors": e.errors(include_url=False)},
        )


class QuoteClient:
    """Fetches round-trip quotes for the configured base token."""

    def __init__(
        self,
        config: ArbitrageConfig,
        session: Optional[aiohttp.ClientSession] = None,
        metrics=None,
    ):
        self.config = config
        self.metrics = metrics
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=config.quote_timeout_ms / 1000)

    async def __aenter__(self) -> "QuoteClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    def quote_url(self, amount: int) -> str:
        token = to_hex(self.config.token_to_arbitrage)
        return f"{self.config.quote_api_url}/{amount}/{token}/{token}"

    def quote_params(self) -> dict:
        return {
            "maxHops": str(self.config.max_hops),
            "maxSplits": str(self.config.max_splits),
        }

    async def request_quote(self, amount: int) -> Quote:
        """
        Fetch a quote, raising QuoteUnavailable on a non-success status.

        Raises:
            QuoteUnavailable: Non-2xx response
            MalformedQuoteResponse: Body is not valid quote JSON
            aiohttp.ClientError, asyncio.TimeoutError: Transport failures
        """
        session = await self._get_session()
        async with session.get(
            self.quote_url(amount), params=self.quote_params(), timeout=self._timeout
        ) as response:
            if not 200 <= response.status < 300:
                body = await response.text()
                raise QuoteUnavailable(
                    f"Quote API returned {response.status} for amount {amount}",
                    amount=amount,
                    status_code=response.status,
                    details={"body": body[:200]},
                )
            try:
                payload = await response.json(content_type=None)
            except ValueError as e:
                raise MalformedQuoteResponse(
                    f"Quote response for amount {amount} is not valid JSON: {e}",
                    amount=amount,
                )

        return decode_quote(payload, amount)

    async def fetch_quote(self, amount: int) -> Optional[Quote]:
        """Fetch a quote; None when the API has no usable answer."""
        try:
            quote = await self.request_quote(amount)
        except QuoteUnavailable as e:
            logger.debug(f"No quote for {amount}: {e}")
            self._record("unavailable")
            return None
        self._record("ok")
        return quote

    async def sweep(self, amounts: Sequence[int]) -> SweepResult:
        """
        Quote every amount concurrently.

        Transport errors and timeouts degrade the affected amount to None.
        Every request is awaited before a MalformedQuoteResponse (or any other
        unexpected error) is re-raised.
        """
        semaphore = asyncio.Semaphore(self.config.max_concurrent_quotes)

        async def quote_one(amount: int) -> Optional[Quote]:
            async with semaphore:
                try:
                    return await self.fetch_quote(amount)
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    logger.warning(
                        f"Quote request for {amount} failed: {type(e).__name__}: {e}"
                    )
                    self._record("error")
                    return None

        results = await asyncio.gather(
            *[quote_one(amount) for amount in amounts], return_exceptions=True
        )

        for result in results:
            if isinstance(result, BaseException):
                if isinstance(result, MalformedQuoteResponse):
                    self._record("malformed")
                raise result

        return list(zip(amounts, results))

    def _record(self, status: str) -> None:
        if self.metrics is not None:
            self.metrics.record_quote(status)
