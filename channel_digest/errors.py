"""Error taxonomy for the digest bot."""


class DigestBotError(Exception):
    """Base class for all errors raised by channel_digest."""
    pass


class ConfigurationError(DigestBotError, ValueError):
    """Raised when a required setting is missing or malformed."""
    pass


class TransportError(DigestBotError):
    """Raised when the gateway socket cannot be opened, read or written.

    Recovered inside the gateway session by reconnecting.
    """
    pass


class ProtocolError(DigestBotError):
    """Raised for a malformed or unexpected gateway frame. Logged and ignored."""
    pass


class DeliveryError(DigestBotError):
    """Raised when a digest could not be delivered to the recipient."""

    def __init__(self, message: str, status: int = 0):
        super().__init__(message)
        self.status = status
