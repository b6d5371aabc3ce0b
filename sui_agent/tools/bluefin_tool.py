"""Bluefin exchange tools: market data, trades and order status."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Any

from sui_agent.protocols import AdapterCache, BluefinProtocol, ProtocolConfig
from sui_agent.protocols.bluefin import TradeParams
from sui_agent.results import StructuredResult, dumps
from sui_agent.tools import NUMBER, STRING, ToolParameter, ToolRegistry
from sui_agent.tools.suilend_tool import ACCOUNT_KEY_PARAM, NETWORK_PARAM

logger = logging.getLogger(__name__)


def _success(reasoning: str, data: Any, query: str) -> str:
    return dumps([StructuredResult.success(reasoning=reasoning, response=json.dumps(data, indent=2, default=str), query=query)])


def register_tools(registry: ToolRegistry, adapters: AdapterCache) -> None:
    """Register the Bluefin tools; handlers borrow connectors from ``adapters``."""

    async def _protocol(network: str, account_key: str) -> BluefinProtocol:
        return await adapters.get(BluefinProtocol, ProtocolConfig.from_network(network, account_key))

    async def get_exchange_info(network: str, account_key: str) -> str:
        protocol = await _protocol(network, account_key)
        markets = (await protocol.get_exchange_info()).unwrap()
        return _success(
            "Successfully retrieved exchange information",
            [asdict(market) for market in markets],
            "Get exchange information",
        )

    async def execute_trade(
        network: str,
        account_key: str,
        symbol: str,
        quantity: float,
        price: float,
        side: str,
    ) -> str:
        protocol = await _protocol(network, account_key)
        order_id = (
            await protocol.execute_trade(TradeParams(symbol=symbol, quantity=quantity, price=price, side=side))
        ).unwrap()
        logger.info("Order placed on Bluefin: %s", order_id)
        return _success(
            "Successfully executed trade",
            order_id,
            f"Execute {side} trade for {quantity} {symbol} at {price}",
        )

    async def get_order_status(network: str, account_key: str, order_id: str) -> str:
        protocol = await _protocol(network, account_key)
        status = (await protocol.get_order_status(order_id)).unwrap()
        return _success("Successfully retrieved order status", status, f"Get status for order {order_id}")

    registry.register(
        "get_exchange_info",
        "Get market data from Bluefin exchange",
        [NETWORK_PARAM, ACCOUNT_KEY_PARAM],
        get_exchange_info,
    )
    registry.register(
        "execute_trade",
        "Execute a trade on Bluefin exchange",
        [
            NETWORK_PARAM,
            ACCOUNT_KEY_PARAM,
            ToolParameter("symbol", STRING, "Trading pair symbol (e.g., BTC-PERP)"),
            ToolParameter("quantity", NUMBER, "Trade quantity"),
            ToolParameter("price", NUMBER, "Trade price"),
            ToolParameter("side", STRING, "Trade side (BUY/SELL)"),
        ],
        execute_trade,
    )
    registry.register(
        "get_order_status",
        "Get status of an order on Bluefin exchange",
        [
            NETWORK_PARAM,
            ACCOUNT_KEY_PARAM,
            ToolParameter("orderId", STRING, "Order ID to check"),
        ],
        get_order_status,
    )
