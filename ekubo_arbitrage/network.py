"""
Starknet network client built on starknet-py.

Implements the NetworkClient protocol used by the executor: invoke fee
estimation on query-signed v3 invokes, v3 submission within resource bounds
scaled from the estimate, and waiting for finality.
"""

import logging
from typing import Any, List, Sequence

from starknet_py.hash.selector import get_selector_from_name
from starknet_py.net.account.account import Account
from starknet_py.net.client_models import Call as StarknetCall, ResourceBoundsMapping
from starknet_py.net.full_node_client import FullNodeClient
from starknet_py.net.models import StarknetChainId
from starknet_py.net.signer.stark_curve_signer import KeyPair

from .config_schema import ArbitrageConfig
from .exceptions import ConfigurationError
from .types import Call, FeeEstimate
from .utils import parse_felt, to_hex

logger = logging.getLogger(__name__)

CHAIN_IDS = {
    "mainnet": StarknetChainId.MAINNET,
    "sepolia": StarknetChainId.SEPOLIA,
}


def to_starknet_calls(calls: Sequence[Call]) -> List[StarknetCall]:
    """Convert engine calls into starknet-py calls (entrypoint -> selector)."""
    return [
        StarknetCall(
            to_addr=call.contract_address,
            selector=get_selector_from_name(call.entrypoint),
            calldata=list(call.calldata),
        )
        for call in calls
    ]


class StarknetNetworkClient:
    """Signs and sends invoke transactions from the configured account."""

    def __init__(self, client: FullNodeClient, account: Account):
        self.client = client
        self.account = account

    @classmethod
    def from_config(cls, config: ArbitrageConfig) -> "StarknetNetworkClient":
        if not (config.json_rpc_url and config.account_address and config.account_private_key):
            raise ConfigurationError(
                "JSON_RPC_URL, ACCOUNT_ADDRESS and ACCOUNT_PRIVATE_KEY are required "
                "to build the network client"
            )
        client = FullNodeClient(node_url=config.json_rpc_url)
        key_pair = KeyPair.from_private_key(
            parse_felt(config.account_private_key.get_secret_value())
        )
        account = Account(
            address=config.account_address,
            client=client,
            key_pair=key_pair,
            chain=CHAIN_IDS[config.chain],
        )
        logger.info(
            f"Loaded account {to_hex(config.account_address)} on {config.chain} "
            f"via {config.json_rpc_url}"
        )
        return cls(client, account)

    async def estimate_fee(self, calls: Sequence[Call]) -> FeeEstimate:
        """
        Estimate a v3 invoke of the calls.

        The invoke is re-signed with the query version before it reaches the
        node, so the estimated payload can never be broadcast.
        """
        invoke = await self.account.sign_invoke_v3(
            calls=to_starknet_calls(calls),
            resource_bounds=ResourceBoundsMapping.init_with_zeros(),
        )
        query = await self.account.sign_for_fee_estimate(invoke)
        estimated = await self.client.estimate_fee(query)
        logger.debug(f"Estimated fee: {estimated}")
        return FeeEstimate(overall_fee=estimated.overall_fee, details=estimated)

    async def execute(
        self, calls: Sequence[Call], estimate: FeeEstimate, fee_multiplier: int
    ) -> int:
        # Gas amounts are scaled, unit prices are capped at the estimate, so the
        # bounds allow fee_multiplier times the estimated fee
        resource_bounds = estimate.details.to_resource_bounds(
            amount_multiplier=fee_multiplier, unit_price_multiplier=1
        )
        response = await self.account.execute_v3(
            calls=to_starknet_calls(calls), resource_bounds=resource_bounds
        )
        return response.transaction_hash

    async def wait_for_transaction(self, tx_hash: int, retry_interval: float) -> Any:
        return await self.client.wait_for_tx(tx_hash, check_interval=retry_interval)
