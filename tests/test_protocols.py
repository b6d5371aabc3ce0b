import asyncio
import json

import pytest

from sui_agent.agent import Agent
from sui_agent.errors import ConfigurationError, NotInitializedError, ProtocolError
from sui_agent.protocols import AdapterCache, BluefinProtocol, ProtocolConfig, SuilendProtocol
from sui_agent.protocols.bluefin import TradeParams
from sui_agent.protocols.suilend import LENDING_MARKET_ID, BorrowParams, LendingParams
from tests.conftest import FakeExchangeClient, FakeLendingClient, envelope, make_llm, tool_output

MAINNET_A = ProtocolConfig(is_testnet=False, account_key="aa" * 32)
TESTNET_B = ProtocolConfig(is_testnet=True, account_key="bb" * 32)


def test_protocol_config_from_network():
    config = ProtocolConfig.from_network("Testnet", "key")
    assert config.is_testnet
    assert config.network == "testnet"
    assert config.fullnode_url == "https://fullnode.testnet.sui.io:443"
    assert "key" not in repr(config)
    with pytest.raises(ConfigurationError):
        ProtocolConfig.from_network("devnet", "key")


def test_get_instance_reuses_first_connector():
    first = SuilendProtocol.get_instance(MAINNET_A)
    second = SuilendProtocol.get_instance(TESTNET_B)
    assert first is second
    assert second.config == MAINNET_A
    # Singletons are per protocol.
    assert BluefinProtocol.get_instance(TESTNET_B) is not first


@pytest.mark.asyncio
async def test_operations_before_initialize_raise():
    protocol = SuilendProtocol(MAINNET_A, client_factory=lambda config: FakeLendingClient())
    with pytest.raises(NotInitializedError, match="Suilend client not initialized"):
        await protocol.get_lending_rates()


@pytest.mark.asyncio
async def test_initialize_runs_handshake_once():
    client = FakeExchangeClient()
    protocol = BluefinProtocol(MAINNET_A, client_factory=lambda config: client)
    await protocol.initialize()
    await protocol.initialize()
    assert protocol.initialized
    assert client.init_calls == 1


@pytest.mark.asyncio
async def test_initialize_failure_is_wrapped():
    protocol = SuilendProtocol(MAINNET_A, client_factory=lambda config: FakeLendingClient(fail_init=True))
    with pytest.raises(ProtocolError, match="Failed to initialize Suilend client: rpc unavailable"):
        await protocol.initialize()
    assert not protocol.initialized


@pytest.mark.asyncio
async def test_initialize_without_factory():
    with pytest.raises(ConfigurationError, match="No SDK client factory configured for Bluefin"):
        await BluefinProtocol(MAINNET_A).initialize()


@pytest.mark.asyncio
async def test_async_client_factory_is_awaited():
    client = FakeLendingClient()

    async def factory(config):
        return client

    protocol = SuilendProtocol(MAINNET_A, client_factory=factory)
    await protocol.initialize()
    assert client.initialized_with[0] == LENDING_MARKET_ID


@pytest.mark.asyncio
async def test_adapter_cache_keys_by_credentials():
    built = []

    def factory(config):
        built.append(config.network)
        return FakeLendingClient()

    cache = AdapterCache({"Suilend": factory})
    a1 = await cache.get(SuilendProtocol, MAINNET_A)
    a2 = await cache.get(SuilendProtocol, ProtocolConfig(is_testnet=False, account_key="aa" * 32))
    b = await cache.get(SuilendProtocol, TESTNET_B)
    c = await cache.get(SuilendProtocol, ProtocolConfig(is_testnet=False, account_key="cc" * 32))

    assert a1 is a2
    assert len({id(a1), id(b), id(c)}) == 3
    assert built == ["mainnet", "testnet", "mainnet"]
    assert len(cache) == 3
    assert all("aa" * 32 not in "".join(key) for key in cache.keys())


@pytest.mark.asyncio
async def test_adapter_cache_shares_concurrent_first_requests():
    built = []

    async def slow_factory(config):
        built.append(config)
        await asyncio.sleep(0)
        return FakeExchangeClient()

    cache = AdapterCache({"Bluefin": slow_factory})
    first, second = await asyncio.gather(
        cache.get(BluefinProtocol, MAINNET_A),
        cache.get(BluefinProtocol, MAINNET_A),
    )
    assert first is second
    assert len(built) == 1
    assert cache.pending() == 0


@pytest.mark.asyncio
async def test_adapter_cache_does_not_keep_failed_connectors():
    clients = [FakeLendingClient(fail_init=True), FakeLendingClient()]
    cache = AdapterCache({"Suilend": lambda config: clients.pop(0)})

    with pytest.raises(ProtocolError):
        await cache.get(SuilendProtocol, MAINNET_A)
    assert len(cache) == 0
    assert cache.pending() == 0
    connector = await cache.get(SuilendProtocol, MAINNET_A)
    assert connector.initialized


@pytest.mark.asyncio
async def test_suilend_operations():
    client = FakeLendingClient()
    protocol = SuilendProtocol(MAINNET_A, client_factory=lambda config: client)
    await protocol.initialize()

    rates = await protocol.get_lending_rates()
    assert rates.success
    assert [(r.asset, r.supply_rate, r.borrow_rate, r.utilization) for r in rates.data] == [
        ("SUI", 3.5, 7.25, 0.61),
        ("0xusdc::usdc::USDC", 5.1, 8.0, 0.8),
    ]

    lent = await protocol.lend_tokens(LendingParams(asset="0x2::sui::SUI", amount=10**12, wallet_address="0xme"))
    assert lent.data == "0xlenddigest"
    assert client.deposits == [("0xme", "0x2::sui::SUI", "1000000000000")]

    borrowed = await protocol.borrow_tokens(
        BorrowParams(
            asset="0x2::sui::SUI",
            amount=5,
            wallet_address="0xme",
            obligation_owner_cap_id="0xcap",
            obligation_id="0xob",
        )
    )
    assert borrowed.data == "0xborrowdigest"
    assert client.borrows == [("0xme", "0xcap", "0xob", "0x2::sui::SUI", "5")]


@pytest.mark.asyncio
async def test_suilend_failures_are_folded_into_responses():
    client = FakeLendingClient(coins=[], fail_with="node timeout")
    protocol = SuilendProtocol(MAINNET_A, client_factory=lambda config: client)
    await protocol.initialize()

    rates = await protocol.get_lending_rates()
    assert not rates.success
    assert rates.error == "Failed to fetch lending rates: node timeout"

    lent = await protocol.lend_tokens(LendingParams(asset="0xdead::x::X", amount=1, wallet_address="0xme"))
    assert lent.error == "Failed to lend tokens: No coins found for type 0xdead::x::X"


@pytest.mark.asyncio
async def test_bluefin_operations():
    client = FakeExchangeClient()
    protocol = BluefinProtocol(TESTNET_B, client_factory=lambda config: client)
    await protocol.initialize()

    info = await protocol.get_exchange_info()
    assert [(m.symbol, m.price, m.volume) for m in info.data] == [("BTC-PERP", 64000.5, 1200.0), ("ETH-PERP", 3100.0, 0.0)]

    trade = await protocol.execute_trade(TradeParams(symbol="BTC-PERP", quantity=0.5, price=64000, side="buy"))
    assert trade.data == "ord-1"
    assert client.orders[0]["side"] == "BUY"
    assert client.orders[0]["order_type"] == "LIMIT"

    status = await protocol.get_order_status("ord-1")
    assert status.data == {"order_id": "ord-1", "status": "FILLED"}

    missing = await protocol.get_order_status("missing")
    assert missing.error == "Failed to get order status: order not found"


@pytest.mark.asyncio
async def test_protocol_tools_end_to_end():
    lending = FakeLendingClient()
    agent = Agent.build(
        llm=make_llm(envelope(response="SUI supply APY is 3.5%")),
        factories={"Suilend": lambda config: lending, "Bluefin": lambda config: FakeExchangeClient()},
    )

    result = (await agent.process_query("What are the lending rates?", "get_lending_rates", ["mainnet", "k1"]))[0]

    assert result.status == "success"
    assert result.response == "SUI supply APY is 3.5%"
    [raw] = tool_output(agent.composer.llm)
    assert raw["reasoning"] == "Successfully retrieved lending rates"
    assert [rate["asset"] for rate in json.loads(raw["response"])] == ["SUI", "0xusdc::usdc::USDC"]
    assert len(agent.adapters) == 1


@pytest.mark.asyncio
async def test_lend_tool_end_to_end():
    lending = FakeLendingClient()
    agent = Agent.build(llm=make_llm(envelope(response="Lent")), factories={"Suilend": lambda config: lending})

    args = ["mainnet", "k1", "0xme", "0x2::sui::SUI", "1000000000000"]
    result = (await agent.process_query("lend 1000 SUI", "lend_tokens", args))[0]

    assert result.status == "success"
    assert lending.deposits == [("0xme", "0x2::sui::SUI", "1000000000000")]
    [raw] = tool_output(agent.composer.llm)
    assert raw["reasoning"] == "Successfully executed lending transaction"
    assert json.loads(raw["response"]) == "0xlenddigest"
    assert raw["query"] == "Lend 1000000000000 of 0x2::sui::SUI from 0xme"


@pytest.mark.asyncio
async def test_lend_tool_rejects_fractional_amount():
    lending = FakeLendingClient()
    agent = Agent.build(llm=make_llm(envelope()), factories={"Suilend": lambda config: lending})

    args = ["mainnet", "secret", "0xme", "0x2::sui::SUI", "1.5"]
    result = (await agent.process_query("lend", "lend_tokens", args))[0]

    assert result.status == "failure"
    assert "argument 'amount' expects bigint" in result.errors[0]
    assert "secret" not in result.query
    assert lending.deposits == []
    assert agent.composer.llm.client.calls == []


@pytest.mark.asyncio
async def test_borrow_tool_end_to_end():
    lending = FakeLendingClient()
    agent = Agent.build(llm=make_llm(envelope(response="Borrowed")), factories={"Suilend": lambda config: lending})

    args = ["testnet", "k1", "0xme", "0xcap", "0xob", "0x2::sui::SUI", 5.0]
    result = (await agent.process_query("borrow 5 SUI", "borrow_tokens", args))[0]

    assert result.status == "success"
    assert lending.borrows == [("0xme", "0xcap", "0xob", "0x2::sui::SUI", "5")]
    [raw] = tool_output(agent.composer.llm)
    assert raw["reasoning"] == "Successfully executed borrowing transaction"
    assert json.loads(raw["response"]) == "0xborrowdigest"
    assert raw["query"] == "Borrow 5 of 0x2::sui::SUI to 0xme"
    assert agent.adapters.keys()[0][:2] == ("Suilend", "testnet")


@pytest.mark.asyncio
async def test_exchange_info_tool_end_to_end():
    agent = Agent.build(llm=make_llm(envelope(response="BTC at 64000.5")), factories={"Bluefin": lambda config: FakeExchangeClient()})

    result = (await agent.process_query("market data", "get_exchange_info", ["mainnet", "k1"]))[0]

    assert result.response == "BTC at 64000.5"
    [raw] = tool_output(agent.composer.llm)
    assert raw["query"] == "Get exchange information"
    markets = json.loads(raw["response"])
    assert [(m["symbol"], m["price"], m["volume"]) for m in markets] == [
        ("BTC-PERP", 64000.5, 1200.0),
        ("ETH-PERP", 3100.0, 0.0),
    ]


@pytest.mark.asyncio
async def test_protocol_tool_failure_end_to_end():
    agent = Agent.build(
        llm=make_llm(envelope()),
        factories={"Bluefin": lambda config: FakeExchangeClient()},
    )

    result = (await agent.process_query("status?", "get_order_status", ["testnet", "secret", "missing"]))[0]

    assert result.status == "failure"
    assert result.errors == ["Failed to get order status: order not found"]
    assert "secret" not in result.query
    assert agent.composer.llm.client.calls == []


@pytest.mark.asyncio
async def test_trade_tool_coerces_llm_arguments():
    exchange = FakeExchangeClient()
    agent = Agent.build(llm=make_llm(envelope()), factories={"Bluefin": lambda config: exchange})

    result = (await agent.process_query("buy", "execute_trade", ["mainnet", "k", "ETH-PERP", "2", "3100.5", "SELL"]))[0]

    assert result.status == "success"
    assert exchange.orders == [
        {"symbol": "ETH-PERP", "price": "3100.5", "quantity": "2", "side": "SELL", "order_type": "LIMIT"}
    ]
    [raw] = tool_output(agent.composer.llm)
    # The order id is JSON text inside the envelope's response field.
    assert json.loads(raw["response"]) == "ord-1"
    assert raw["query"] == "Execute SELL trade for 2 ETH-PERP at 3100.5"
