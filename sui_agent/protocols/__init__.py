"""Protocol connectors and the adapter cache shared by tool modules."""

from sui_agent.protocols.base import AdapterCache, ClientFactory, ProtocolConfig, ProtocolConnector
from sui_agent.protocols.bluefin import BluefinProtocol
from sui_agent.protocols.suilend import SuilendProtocol

__all__ = [
    "AdapterCache",
    "BluefinProtocol",
    "ClientFactory",
    "ProtocolConfig",
    "ProtocolConnector",
    "SuilendProtocol",
]
