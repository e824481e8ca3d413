"""Port interfaces (Hexagonal Architecture)."""

from channel_digest.ports.inbound import GatewayFrame, IncomingMessage
from channel_digest.ports.outbound import DeliveryPort, GatewayTransport, EventStore, TransportFactory

__all__ = [
    "GatewayFrame",
    "IncomingMessage",
    "DeliveryPort",
    "GatewayTransport",
    "EventStore",
    "TransportFactory",
]
