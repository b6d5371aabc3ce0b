"""Bluefin perpetuals exchange connector."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Protocol, Sequence

from sui_agent.protocols.base import ProtocolConnector
from sui_agent.results import ProtocolResponse

BUY = "BUY"
SELL = "SELL"
LIMIT = "LIMIT"


class ExchangeClient(Protocol):
    """Calls this connector needs from a Bluefin SDK client."""

    async def init(self) -> None: ...

    async def get_exchange_info(self) -> Sequence[Mapping[str, Any]]: ...

    async def create_order(
        self,
        symbol: str,
        price: str,
        quantity: str,
        side: str,
        order_type: str,
    ) -> Mapping[str, Any]: ...

    async def get_order(self, order_id: str) -> Any: ...


@dataclass(slots=True)
class TradeParams:
    symbol: str
    quantity: float
    price: float
    side: str


@dataclass(slots=True)
class MarketData:
    symbol: str
    price: float
    volume: float
    timestamp: int


class BluefinProtocol(ProtocolConnector):
    """Market data and limit orders on the Bluefin exchange."""

    protocol_name = "Bluefin"

    async def _connect(self, client: ExchangeClient) -> None:
        await client.init()

    async def get_exchange_info(self) -> ProtocolResponse[List[MarketData]]:
        client: ExchangeClient = self._require_client()

        async def fetch() -> List[MarketData]:
            items = await client.get_exchange_info()
            now_ms = int(time.time() * 1000)
            return [
                MarketData(
                    symbol=item["symbol"],
                    price=_to_float(item.get("last_price")),
                    volume=_to_float(item.get("volume_24h")),
                    timestamp=now_ms,
                )
                for item in items
            ]

        return await self._call("fetch exchange info", fetch)

    async def execute_trade(self, params: TradeParams) -> ProtocolResponse[str]:
        client: ExchangeClient = self._require_client()

        async def place() -> str:
            order = await client.create_order(
                symbol=params.symbol,
                price=str(params.price),
                quantity=str(params.quantity),
                side=params.side.upper(),
                order_type=LIMIT,
            )
            return str(order["order_id"])

        return await self._call("execute trade", place)

    async def get_order_status(self, order_id: str) -> ProtocolResponse[Any]:
        client: ExchangeClient = self._require_client()
        return await self._call("get order status", lambda: client.get_order(order_id))


def _to_float(value: Optional[Any]) -> float:
    if value is None or value == "":
        return 0.0
    return float(value)
