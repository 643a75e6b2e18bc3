"""
Tests for the Ekubo quote API client.

A real aiohttp server runs locally so requests go through the actual
session, URL building and JSON decoding.
"""

import asyncio
import json
from unittest.mock import Mock

import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from ekubo_arbitrage.exceptions import MalformedQuoteResponse
from ekubo_arbitrage.quote_client import QuoteClient, decode_quote

from conftest import ETH, FEE_005, STRK, USDC, make_config


def hop_json(token0, token1, sqrt_ratio_limit="0x1000003f7f1380b75", skip_ahead="0"):
    return {
        "pool_key": {
            "token0": hex(token0),
            "token1": hex(token1),
            "fee": hex(FEE_005),
            "tick_spacing": 1000,
            "extension": "0x0",
        },
        "sqrt_ratio_limit": sqrt_ratio_limit,
        "skip_ahead": skip_ahead,
    }


def quote_json(total, specified_amount=None):
    return {
        "total": str(total),
        "splits": [
            {
                "specifiedAmount": str(specified_amount if specified_amount is not None else total),
                "amount": str(total),
                "route": [hop_json(STRK, ETH), hop_json(STRK, USDC), hop_json(ETH, USDC)],
            }
        ],
    }


class FakeQuoteApi:
    """Serves per-amount responses and records incoming requests."""

    def __init__(self):
        self.responses = {}
        self.requests = []

    async def handle(self, request):
        amount = int(request.match_info["amount"])
        self.requests.append(
            {
                "amount": amount,
                "sell": request.match_info["sell"],
                "buy": request.match_info["buy"],
                "query": dict(request.query),
            }
        )
        responder = self.responses.get(amount)
        if responder is None:
            return web.json_response({"error": "no route"}, status=404)
        return await responder()

    def json(self, amount, body, status=200):
        async def respond():
            return web.json_response(body, status=status)

        self.responses[amount] = respond

    def text(self, amount, text, status=200):
        async def respond():
            return web.Response(text=text, status=status)

        self.responses[amount] = respond

    def slow(self, amount, delay):
        async def respond():
            await asyncio.sleep(delay)
            return web.json_response(quote_json(amount + 1))

        self.responses[amount] = respond


@pytest_asyncio.fixture
async def api():
    fake = FakeQuoteApi()
    app = web.Application()
    app.router.add_get("/quote/{amount}/{sell}/{buy}", fake.handle)
    server = test_utils.TestServer(app)
    await server.start_server()
    fake.base_url = str(server.make_url("/quote"))
    yield fake
    await server.close()


@pytest_asyncio.fixture
async def client(api):
    metrics = Mock()
    config = make_config(
        quote_api_url=api.base_url, max_hops=3, max_splits=2, quote_timeout_ms=300
    )
    quote_client = QuoteClient(config, metrics=metrics)
    yield quote_client
    await quote_client.close()


class TestFetchQuote:
    @pytest.mark.asyncio
    async def test_parses_successful_quote(self, api, client):
        api.json(2**32, quote_json(2**32 + 10))

        quote = await client.fetch_quote(2**32)

        assert quote.total == 2**32 + 10
        assert len(quote.splits) == 1
        split = quote.splits[0]
        assert split.specified_amount == 2**32 + 10
        assert len(split.route) == 3
        assert split.route[0].pool_key.token0 == STRK
        assert split.route[0].pool_key.token1 == ETH
        assert split.route[0].pool_key.fee == FEE_005
        assert split.route[0].pool_key.tick_spacing == 1000
        assert split.route[0].sqrt_ratio_limit == 0x1000003F7F1380B75
        client.metrics.record_quote.assert_called_with("ok")

    @pytest.mark.asyncio
    async def test_requests_round_trip_with_routing_hints(self, api, client):
        api.json(2**33, quote_json(2**33))

        await client.fetch_quote(2**33)

        request = api.requests[0]
        assert request["amount"] == 2**33
        assert request["sell"] == hex(ETH)
        assert request["buy"] == hex(ETH)
        assert request["query"] == {"maxHops": "3", "maxSplits": "2"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 404, 500, 503])
    async def test_non_success_status_is_absent(self, api, client, status):
        api.json(2**32, {"error": "nope"}, status=status)

        assert await client.fetch_quote(2**32) is None
        client.metrics.record_quote.assert_called_with("unavailable")

    @pytest.mark.asyncio
    async def test_invalid_json_is_malformed(self, api, client):
        api.text(2**32, "<html>not json</html>")

        with pytest.raises(MalformedQuoteResponse) as exc_info:
            await client.fetch_quote(2**32)
        assert exc_info.value.amount == 2**32

    @pytest.mark.asyncio
    async def test_wrong_shape_is_malformed(self, api, client):
        api.json(2**32, {"splits": []})

        with pytest.raises(MalformedQuoteResponse):
            await client.fetch_quote(2**32)


class TestSweep:
    @pytest.mark.asyncio
    async def test_results_stay_aligned_with_amounts(self, api, client):
        amounts = [2**32, 2**33, 2**34]
        api.json(2**32, quote_json(2**32 + 10))
        api.json(2**34, quote_json(2**34 - 1))

        results = await client.sweep(amounts)

        assert [amount for amount, _ in results] == amounts
        assert results[0][1].total == 2**32 + 10
        assert results[1][1] is None
        assert results[2][1].total == 2**34 - 1
        assert len(api.requests) == 3

    @pytest.mark.asyncio
    async def test_timeout_degrades_only_that_amount(self, api, client):
        api.slow(2**32, delay=1)
        api.json(2**33, quote_json(2**33 + 3))

        results = await client.sweep([2**32, 2**33])

        assert results[0] == (2**32, None)
        assert results[1][1].total == 2**33 + 3
        client.metrics.record_quote.assert_any_call("error")

    @pytest.mark.asyncio
    async def test_connection_error_degrades_to_absent(self):
        config = make_config(quote_api_url="http://127.0.0.1:9/quote", quote_timeout_ms=500)
        async with QuoteClient(config) as quote_client:
            results = await quote_client.sweep([2**32])
        assert results == [(2**32, None)]

    @pytest.mark.asyncio
    async def test_malformed_response_aborts_sweep(self, api, client):
        api.json(2**32, quote_json(2**32 + 1))
        api.text(2**33, "garbage")

        with pytest.raises(MalformedQuoteResponse):
            await client.sweep([2**32, 2**33])
        assert len(api.requests) == 2


class TestDecodeQuote:
    def test_accepts_decimal_and_hex(self):
        body = quote_json(1000)
        body["total"] = "0x3e8"
        quote = decode_quote(body)
        assert quote.total == 1000
        assert quote.splits[0].specified_amount == 1000

    def test_empty_splits_decode(self):
        quote = decode_quote({"total": "0", "splits": []})
        assert quote.splits == ()

    def test_empty_route_rejected(self):
        body = quote_json(1000)
        body["splits"][0]["route"] = []
        with pytest.raises(MalformedQuoteResponse):
            decode_quote(body)

    def test_sqrt_ratio_limit_over_256_bits_rejected(self):
        body = quote_json(1000)
        body["splits"][0]["route"][0]["sqrt_ratio_limit"] = hex(2**256)
        with pytest.raises(MalformedQuoteResponse):
            decode_quote(body)

    def test_non_numeric_total_rejected(self):
        body = quote_json(1000)
        body["total"] = "lots"
        with pytest.raises(MalformedQuoteResponse) as exc_info:
            decode_quote(body, amount=5)
        assert exc_info.value.amount == 5
        assert exc_info.value.details["errors"]

    def test_roundtrips_through_json_text(self):
        quote = decode_quote(json.loads(json.dumps(quote_json(2**40))))
        assert quote.total == 2**40
