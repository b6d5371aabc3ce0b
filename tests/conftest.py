import json
import types
from typing import Any, Dict, List

import pytest
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sui_agent.llm import LLMClient
from sui_agent.protocols import BluefinProtocol, SuilendProtocol


class DummyChoice:
    def __init__(self, content: str):
        self.message = types.SimpleNamespace(content=content)


class DummyCompletion:
    def __init__(self, content: str):
        self.choices = [DummyChoice(content)]


class DummyGroq:
    """
    Minimal mock for groq.AsyncGroq that supports:
    await client.chat.completions.create(...)

    Replies are served in order; the last one repeats. An exception instance
    as a reply is raised instead.
    """
    def __init__(self, *contents: Any):
        self._contents = list(contents)
        self.calls: List[Dict[str, Any]] = []
        self.chat = types.SimpleNamespace(
            completions=types.SimpleNamespace(create=self._create)
        )

    async def _create(self, **kwargs):
        self.calls.append(kwargs)
        content = self._contents.pop(0) if len(self._contents) > 1 else self._contents[0]
        if isinstance(content, Exception):
            raise content
        return DummyCompletion(content)


def make_llm(*contents: Any) -> LLMClient:
    return LLMClient(client=DummyGroq(*contents), model="dummy-model")


def tool_output(llm: LLMClient, call: int = 0) -> Any:
    """Decode the raw tool output that was substituted into a final-answer prompt."""
    prompt = llm.client.calls[call]["messages"][0]["content"]
    for line in prompt.splitlines():
        if line.startswith("Tool response: "):
            return json.loads(line[len("Tool response: "):])
    raise AssertionError("prompt carries no tool response")


def envelope(**overrides: Any) -> str:
    """JSON reply in the shape the final-answer prompt asks for."""
    payload = {"reasoning": "ok", "response": "done", "status": "success", "query": "", "errors": []}
    payload.update(overrides)
    return json.dumps(payload)


class FakeLendingClient:
    """Deterministic Suilend SDK stand-in."""

    def __init__(self, reserves=None, coins=None, fail_init: bool = False, fail_with: str = ""):
        self.reserves = reserves if reserves is not None else {
            "0x2::sui::SUI": {"symbol": "SUI", "supply_apy": 3.5, "borrow_apy": 7.25, "utilization_rate": 0.61},
            "0xusdc::usdc::USDC": {"symbol": "", "supply_apy": "5.1", "borrow_apy": "8", "utilization_rate": "0.8"},
        }
        self.coins = coins if coins is not None else [{"coinObjectId": "0xcoin"}]
        self.fail_init = fail_init
        self.fail_with = fail_with
        self.initialized_with = None
        self.deposits: List[tuple] = []
        self.borrows: List[tuple] = []

    async def initialize(self, lending_market_id, lending_market_type):
        if self.fail_init:
            raise RuntimeError("rpc unavailable")
        self.initialized_with = (lending_market_id, lending_market_type)

    async def get_reserves(self):
        if self.fail_with:
            raise RuntimeError(self.fail_with)
        return self.reserves

    async def get_coins(self, owner, coin_type):
        return self.coins

    async def deposit_liquidity(self, owner, coin_type, amount):
        self.deposits.append((owner, coin_type, amount))
        return "0xlenddigest"

    async def borrow_and_send(self, owner, obligation_owner_cap_id, obligation_id, coin_type, amount):
        self.borrows.append((owner, obligation_owner_cap_id, obligation_id, coin_type, amount))
        return "0xborrowdigest"


class FakeExchangeClient:
    """Deterministic Bluefin SDK stand-in."""

    def __init__(self):
        self.init_calls = 0
        self.orders: List[Dict[str, Any]] = []

    async def init(self):
        self.init_calls += 1

    async def get_exchange_info(self):
        return [
            {"symbol": "BTC-PERP", "last_price": "64000.5", "volume_24h": "1200"},
            {"symbol": "ETH-PERP", "last_price": "3100", "volume_24h": None},
        ]

    async def create_order(self, symbol, price, quantity, side, order_type):
        self.orders.append(
            {"symbol": symbol, "price": price, "quantity": quantity, "side": side, "order_type": order_type}
        )
        return {"order_id": f"ord-{len(self.orders)}"}

    async def get_order(self, order_id):
        if order_id == "missing":
            raise LookupError("order not found")
        return {"order_id": order_id, "status": "FILLED"}


@pytest.fixture(autouse=True)
def set_env(monkeypatch):
    """
    Automatically set the required model env var for all tests.
    """
    monkeypatch.setenv("GROQ_MODEL", "dummy-model")
    yield


@pytest.fixture(autouse=True)
def reset_connectors():
    """Process-wide connectors must not leak between tests."""
    SuilendProtocol.reset_instance()
    BluefinProtocol.reset_instance()
    yield
    SuilendProtocol.reset_instance()
    BluefinProtocol.reset_instance()
