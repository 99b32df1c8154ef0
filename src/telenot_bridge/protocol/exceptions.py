"""Exception hierarchy for the Telenot bridge.

Classification misses are not errors (they produce ``MessageType.INVALID``);
everything here is either a contract violation raised at call time or a
transport failure surfaced to the immediate caller.
"""

from __future__ import annotations


class TelenotProtocolError(Exception):
    """Base class for all bridge errors."""


class InvalidAddressError(TelenotProtocolError, ValueError):
    """Security-area address outside the supported range.

    Attributes:
        address: The rejected address
        minimum: Lowest valid address
        maximum: Highest valid address

    """

    def __init__(self, address: int, minimum: int = 1, maximum: int = 8) -> None:
        self.address: int = address
        self.minimum: int = minimum
        self.maximum: int = maximum
        super().__init__(f"Invalid security area address {address} (expected {minimum}..{maximum})")


class TransportError(TelenotProtocolError):
    """A write, publish or subscribe on one of the transports failed."""

    def __init__(self, transport: str, reason: str) -> None:
        self.transport: str = transport
        self.reason: str = reason
        super().__init__(f"{transport}: {reason}")


class NotConnectedError(TransportError):
    """Raised when sending while the transport is disconnected (nothing is queued)."""

    def __init__(self, transport: str = "tcp") -> None:
        super().__init__(transport, "not connected")


class TransportWriteError(TransportError):
    """The socket write itself failed."""


class CatalogError(TelenotProtocolError):
    """The sensor catalog could not be loaded or is malformed."""
