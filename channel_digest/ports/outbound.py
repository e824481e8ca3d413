"""Outbound ports — interfaces for external system adapters."""

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from channel_digest.domain.models import Event


@runtime_checkable
class EventStore(Protocol):
    """Persists the retention buffer. load() returns whatever still parses."""

    def load(self) -> List["Event"]: ...
    def save(self, events: List["Event"]) -> None: ...


@runtime_checkable
class DeliveryPort(Protocol):
    """Interface for delivering digest chunks to the recipient, in order.

    Raises DeliveryError on the first failed chunk. Returns chunks sent.
    """

    async def deliver(self, chunks: List[str]) -> int: ...


@runtime_checkable
class GatewayTransport(Protocol):
    """A message-oriented, text-framed socket carrying JSON frames."""

    @property
    def closed(self) -> bool: ...

    @property
    def close_code(self) -> Optional[int]: ...

    async def send_json(self, payload: Dict[str, Any]) -> None: ...

    async def receive(self) -> Optional[Dict[str, Any]]:
        """Next frame, or None once the socket is closed."""
        ...

    async def close(self, code: int = 1000) -> None: ...


TransportFactory = Callable[[str], Awaitable[GatewayTransport]]
