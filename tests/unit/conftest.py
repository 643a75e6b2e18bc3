"""Shared fixtures for the arbitrage engine tests."""

import pytest

from ekubo_arbitrage.config_schema import ArbitrageConfig
from ekubo_arbitrage.types import Candidate, PoolKey, Quote, RouteHop, Split

ETH = 0x049D36570D4E46F48E99674BD3FCC84644DDD6B96F7C741B1562B82F9E004DC7
USDC = 0x053C91253BC9682C04929CA02ED00B3E423F6710D2EE7E0D5EBB06F3ECF368A8
STRK = 0x04718F5A0FC34CC1AF16A1CDEE98FFB20C31F5CD61D6AB07201858F4287C938D
USDT = 0x068F5C6A61780768455DE69077E07E89787839BF8166DECFBF92B645209C0FB8
ROUTER = 0x0199741822C2DC722F6F605204F35E56DBC23BCEED54818168C4C49E4FB8737E

FEE_005 = 0x20C49BA5E353F80000000000000000
TICK_SPACING = 1000


def make_config(**overrides) -> ArbitrageConfig:
    values = dict(
        quote_api_url="https://quoter.example/quote",
        token_to_arbitrage=ETH,
        router_address=ROUTER,
        execution_mode="scan",
    )
    values.update(overrides)
    return ArbitrageConfig(**values)


def make_live_config(**overrides) -> ArbitrageConfig:
    values = dict(
        execution_mode="live",
        json_rpc_url="https://rpc.example",
        account_address="0x1234",
        account_private_key="0xabcdef0123456789",
        explorer_tx_prefix="https://voyager.online/tx/",
    )
    values.update(overrides)
    return make_config(**values)


def make_hop(token0, token1, sqrt_ratio_limit=0, fee=FEE_005, extension=0, skip_ahead=0):
    return RouteHop(
        pool_key=PoolKey(
            token0=token0,
            token1=token1,
            fee=fee,
            tick_spacing=TICK_SPACING,
            extension=extension,
        ),
        sqrt_ratio_limit=sqrt_ratio_limit,
        skip_ahead=skip_ahead,
    )


def make_candidate(amount, total, splits):
    return Candidate.from_quote(amount, Quote(total=total, splits=tuple(splits)))


def two_hop_split(specified_amount):
    return Split(
        specified_amount=specified_amount,
        amount=specified_amount,
        route=(make_hop(ETH, USDC), make_hop(ETH, USDC)),
    )


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def live_config():
    return make_live_config()
