"""Gateway adapters — websocket session, heartbeat and reconnection."""

from channel_digest.adapters.gateway.heartbeat import HeartbeatMonitor
from channel_digest.adapters.gateway.reconnect import (
    BackoffReconnect,
    KeepAliveReconnect,
    ReconnectPolicy,
    backoff_delay,
    build_policy,
)
from channel_digest.adapters.gateway.session import GATEWAY_INTENTS, GatewaySession
from channel_digest.adapters.gateway.transport import AiohttpTransport

__all__ = [
    "HeartbeatMonitor",
    "BackoffReconnect",
    "KeepAliveReconnect",
    "ReconnectPolicy",
    "backoff_delay",
    "build_policy",
    "GATEWAY_INTENTS",
    "GatewaySession",
    "AiohttpTransport",
]
