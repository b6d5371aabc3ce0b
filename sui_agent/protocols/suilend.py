"""Suilend lending market connector."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Protocol, Sequence

from sui_agent.protocols.base import ProtocolConnector
from sui_agent.results import ProtocolResponse

LENDING_MARKET_ID = "0x84030d26d85eaa7035084a057f2f11f701b7e2e4eda87551becbc7c97505ece1"
LENDING_MARKET_TYPE = (
    "0xf95b06141ed4a174f239417323bde3f209b972f5930d8521ea38a52aff3a6ddf::suilend::MAIN_POOL"
)


class LendingMarketClient(Protocol):
    """Calls this connector needs from a Suilend SDK client."""

    async def initialize(self, lending_market_id: str, lending_market_type: str) -> None: ...

    async def get_reserves(self) -> Mapping[str, Mapping[str, Any]]: ...

    async def get_coins(self, owner: str, coin_type: str) -> Sequence[Any]: ...

    async def deposit_liquidity(self, owner: str, coin_type: str, amount: str) -> str: ...

    async def borrow_and_send(
        self,
        owner: str,
        obligation_owner_cap_id: str,
        obligation_id: str,
        coin_type: str,
        amount: str,
    ) -> str: ...


@dataclass(slots=True)
class LendingParams:
    asset: str
    amount: int
    wallet_address: str


@dataclass(slots=True)
class BorrowParams(LendingParams):
    obligation_owner_cap_id: str
    obligation_id: str


@dataclass(slots=True)
class LendingRate:
    asset: str
    supply_rate: float
    borrow_rate: float
    utilization: float


class SuilendProtocol(ProtocolConnector):
    """Reads reserve rates and submits deposit/borrow transactions on Suilend."""

    protocol_name = "Suilend"

    async def _connect(self, client: LendingMarketClient) -> None:
        await client.initialize(LENDING_MARKET_ID, LENDING_MARKET_TYPE)

    async def get_lending_rates(self) -> ProtocolResponse[List[LendingRate]]:
        client: LendingMarketClient = self._require_client()

        async def fetch() -> List[LendingRate]:
            reserves = await client.get_reserves()
            return [
                LendingRate(
                    asset=reserve.get("symbol") or coin_type,
                    supply_rate=float(reserve.get("supply_apy", 0)),
                    borrow_rate=float(reserve.get("borrow_apy", 0)),
                    utilization=float(reserve.get("utilization_rate", 0)),
                )
                for coin_type, reserve in reserves.items()
            ]

        return await self._call("fetch lending rates", fetch)

    async def lend_tokens(self, params: LendingParams) -> ProtocolResponse[str]:
        client: LendingMarketClient = self._require_client()

        async def deposit() -> str:
            coins = await client.get_coins(params.wallet_address, params.asset)
            if not coins:
                raise ValueError(f"No coins found for type {params.asset}")
            return await client.deposit_liquidity(params.wallet_address, params.asset, str(params.amount))

        return await self._call("lend tokens", deposit)

    async def borrow_tokens(self, params: BorrowParams) -> ProtocolResponse[str]:
        client: LendingMarketClient = self._require_client()

        async def borrow() -> str:
            return await client.borrow_and_send(
                params.wallet_address,
                params.obligation_owner_cap_id,
                params.obligation_id,
                params.asset,
                str(params.amount),
            )

        return await self._call("borrow tokens", borrow)
