"""Suilend lending tools: rates, lend and borrow."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict

from sui_agent.protocols import AdapterCache, ProtocolConfig, SuilendProtocol
from sui_agent.protocols.suilend import BorrowParams, LendingParams
from sui_agent.results import StructuredResult, dumps
from sui_agent.tools import BIGINT, STRING, ToolParameter, ToolRegistry

logger = logging.getLogger(__name__)

NETWORK_PARAM = ToolParameter("network", STRING, "Network to use (mainnet/testnet)")
ACCOUNT_KEY_PARAM = ToolParameter("accountKey", STRING, "Account private key")


def register_tools(registry: ToolRegistry, adapters: AdapterCache) -> None:
    """Register the Suilend tools; handlers borrow connectors from ``adapters``."""

    async def _protocol(network: str, account_key: str) -> SuilendProtocol:
        return await adapters.get(SuilendProtocol, ProtocolConfig.from_network(network, account_key))

    async def get_lending_rates(network: str, account_key: str) -> str:
        protocol = await _protocol(network, account_key)
        rates = (await protocol.get_lending_rates()).unwrap()
        return dumps(
            [
                StructuredResult.success(
                    reasoning="Successfully retrieved lending rates",
                    response=json.dumps([asdict(rate) for rate in rates], indent=2),
                    query="Get lending rates",
                )
            ]
        )

    async def lend_tokens(network: str, account_key: str, wallet_address: str, asset: str, amount: int) -> str:
        protocol = await _protocol(network, account_key)
        digest = (
            await protocol.lend_tokens(LendingParams(asset=asset, amount=amount, wallet_address=wallet_address))
        ).unwrap()
        logger.info("Lend transaction submitted: %s", digest)
        return dumps(
            [
                StructuredResult.success(
                    reasoning="Successfully executed lending transaction",
                    response=json.dumps(digest),
                    query=f"Lend {amount} of {asset} from {wallet_address}",
                )
            ]
        )

    async def borrow_tokens(
        network: str,
        account_key: str,
        wallet_address: str,
        obligation_owner_cap_id: str,
        obligation_id: str,
        asset: str,
        amount: int,
    ) -> str:
        protocol = await _protocol(network, account_key)
        params = BorrowParams(
            asset=asset,
            amount=amount,
            wallet_address=wallet_address,
            obligation_owner_cap_id=obligation_owner_cap_id,
            obligation_id=obligation_id,
        )
        digest = (await protocol.borrow_tokens(params)).unwrap()
        logger.info("Borrow transaction submitted: %s", digest)
        return dumps(
            [
                StructuredResult.success(
                    reasoning="Successfully executed borrowing transaction",
                    response=json.dumps(digest),
                    query=f"Borrow {amount} of {asset} to {wallet_address}",
                )
            ]
        )

    registry.register(
        "get_lending_rates",
        "Tool to get current lending rates from Suilend",
        [NETWORK_PARAM, ACCOUNT_KEY_PARAM],
        get_lending_rates,
    )
    registry.register(
        "lend_tokens",
        "Tool to lend tokens on Suilend",
        [
            NETWORK_PARAM,
            ACCOUNT_KEY_PARAM,
            ToolParameter("walletAddress", STRING, "Wallet address to lend from"),
            ToolParameter("asset", STRING, "Asset to lend"),
            ToolParameter("amount", BIGINT, "Amount to lend"),
        ],
        lend_tokens,
    )
    registry.register(
        "borrow_tokens",
        "Tool to borrow tokens from Suilend",
        [
            NETWORK_PARAM,
            ACCOUNT_KEY_PARAM,
            ToolParameter("walletAddress", STRING, "Wallet address to receive borrowed tokens"),
            ToolParameter("obligationOwnerCapId", STRING, "ID of the obligation owner capability"),
            ToolParameter("obligationId", STRING, "ID of the obligation"),
            ToolParameter("asset", STRING, "Asset to borrow"),
            ToolParameter("amount", BIGINT, "Amount to borrow"),
        ],
        borrow_tokens,
    )
