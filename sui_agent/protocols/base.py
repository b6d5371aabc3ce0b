"""
Protocol connector base class and the per-configuration adapter cache.

Design
- A connector wraps one SDK client for one protocol and network.
- ``ProtocolConnector.get_instance`` keeps one connector per protocol for the
  whole process, whatever config later callers pass.
- ``AdapterCache`` keys connectors by protocol, network and account, and is
  owned by whoever builds the agent.
"""
from __future__ import annotations

import asyncio
import hashlib
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, ClassVar, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

from sui_agent.config import MAINNET, NETWORK_CONFIG, TESTNET, fullnode_url
from sui_agent.errors import ConfigurationError, NotInitializedError, ProtocolError
from sui_agent.results import UNKNOWN_ERROR_MESSAGE, ProtocolResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")
C = TypeVar("C", bound="ProtocolConnector")

ClientFactory = Callable[["ProtocolConfig"], Any]
CacheKey = Tuple[str, str, str]


@dataclass(frozen=True, slots=True)
class ProtocolConfig:
    """Network selection and credential material for one connector."""

    is_testnet: bool
    account_key: str = field(repr=False)

    @classmethod
    def from_network(cls, network: str, account_key: str) -> "ProtocolConfig":
        """Build a config from a ``mainnet``/``testnet`` name as passed by the LLM."""
        normalized = str(network).strip().lower()
        if normalized not in NETWORK_CONFIG:
            raise ConfigurationError(f"Unsupported network '{network}'. Use '{MAINNET}' or '{TESTNET}'.")
        return cls(is_testnet=normalized == TESTNET, account_key=account_key)

    @property
    def network(self) -> str:
        return TESTNET if self.is_testnet else MAINNET

    @property
    def fullnode_url(self) -> str:
        return fullnode_url(self.network)

    @property
    def account_fingerprint(self) -> str:
        """Short digest of the account key, safe to use as a cache key or in logs."""
        return hashlib.sha256(self.account_key.encode("utf-8")).hexdigest()[:16]


class ProtocolConnector:
    """
    Base class for a cached client mediating calls to one external protocol.

    Subclasses set ``protocol_name`` and implement ``_connect`` to build and
    hand-shake their SDK client. Every other operation must call
    ``_require_client`` first.
    """

    protocol_name: ClassVar[str] = "Protocol"
    _instance: ClassVar[Optional["ProtocolConnector"]] = None

    def __init__(self, config: ProtocolConfig, client_factory: Optional[ClientFactory] = None) -> None:
        self.config = config
        self._client_factory = client_factory
        self._client: Any = None

    # ------------------------------------------------------------ singleton
    @classmethod
    def get_instance(cls: Type[C], config: ProtocolConfig, client_factory: Optional[ClientFactory] = None) -> C:
        """
        Return the process-wide connector for this protocol.

        The first call decides the config; later calls get the same object
        even when they pass different credentials or network.
        """
        instance = cls.__dict__.get("_instance")
        if instance is None:
            instance = cls(config, client_factory=client_factory)
            cls._instance = instance
            logger.info("Created %s connector on %s", cls.protocol_name, config.network)
        elif instance.config != config:
            logger.warning(
                "%s connector already exists for %s; ignoring config for %s",
                cls.protocol_name,
                instance.config.network,
                config.network,
            )
        return instance

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the process-wide connector (mainly for testing)."""
        cls._instance = None

    # ------------------------------------------------------------ lifecycle
    @property
    def initialized(self) -> bool:
        return self._client is not None

    async def initialize(self) -> None:
        """Build the SDK client and run its handshake. A second call is a no-op."""
        if self._client is not None:
            return
        if self._client_factory is None:
            raise ConfigurationError(f"No SDK client factory configured for {self.protocol_name}.")
        try:
            client = await _maybe_await(self._client_factory(self.config))
            await self._connect(client)
        except Exception as exc:
            raise ProtocolError(
                f"Failed to initialize {self.protocol_name} client: {_message(exc)}"
            ) from exc
        self._client = client
        logger.info("%s client initialized on %s", self.protocol_name, self.config.network)

    async def _connect(self, client: Any) -> None:
        """Run the SDK handshake on a freshly built client."""

    def _require_client(self) -> Any:
        if self._client is None:
            raise NotInitializedError(self.protocol_name)
        return self._client

    async def _call(self, action: str, operation: Callable[[], Awaitable[T]]) -> ProtocolResponse[T]:
        """Run an SDK call and fold any failure into a ``ProtocolResponse``."""
        self._require_client()
        try:
            data = await operation()
        except Exception as exc:
            logger.error("%s failed to %s: %s", self.protocol_name, action, _message(exc))
            return ProtocolResponse.fail(f"Failed to {action}: {_message(exc)}")
        return ProtocolResponse.ok(data)


class AdapterCache:
    """
    Connectors keyed by ``(protocol, network, account fingerprint)``.

    Two callers with different credentials never share a connector. The
    first request for a key builds and initializes the connector; concurrent
    requests for the same key wait for that one construction.
    """

    def __init__(self, factories: Optional[Mapping[str, ClientFactory]] = None) -> None:
        self._factories: Dict[str, ClientFactory] = dict(factories or {})
        self._connectors: Dict[CacheKey, ProtocolConnector] = {}
        self._locks: Dict[CacheKey, asyncio.Lock] = {}

    def register_factory(self, protocol_name: str, factory: ClientFactory) -> None:
        self._factories[protocol_name] = factory

    @staticmethod
    def key_for(connector_cls: Type[ProtocolConnector], config: ProtocolConfig) -> CacheKey:
        return (connector_cls.protocol_name, config.network, config.account_fingerprint)

    async def get(self, connector_cls: Type[C], config: ProtocolConfig) -> C:
        """Return an initialized connector for this protocol and configuration."""
        key = self.key_for(connector_cls, config)
        connector = self._connectors.get(key)
        if connector is not None:
            return connector  # type: ignore[return-value]

        lock = self._locks.setdefault(key, asyncio.Lock())
        try:
            async with lock:
                connector = self._connectors.get(key)
                if connector is None:
                    connector = connector_cls(config, client_factory=self._factories.get(connector_cls.protocol_name))
                    await connector.initialize()
                    connector = self._connectors.setdefault(key, connector)
                    logger.info(
                        "Cached %s connector for %s (account %s)",
                        connector_cls.protocol_name,
                        config.network,
                        config.account_fingerprint,
                    )
        finally:
            # Locks only live while a key is being built.
            if self._locks.get(key) is lock and not lock.locked():
                del self._locks[key]
        return connector  # type: ignore[return-value]

    def pending(self) -> int:
        """Number of keys whose connector is being built right now."""
        return len(self._locks)

    def keys(self) -> List[CacheKey]:
        return list(self._connectors)

    def __len__(self) -> int:
        return len(self._connectors)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _message(exc: BaseException) -> str:
    return str(exc) or UNKNOWN_ERROR_MESSAGE
