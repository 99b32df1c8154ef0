"""Telenot GMS wire protocol: classification, framing, checksums.

- classifier.py: ordered frame rules and ``classify``
- codec.py: checksum and bit helpers
- framer.py: TCP stream splitting
- message_types.py: ``MessageType`` tags
- exceptions.py: error hierarchy
"""

from .classifier import FRAME_RULES, FrameRule, classify
from .codec import calculate_checksum, map_bit_to_state, reverse_bits
from .exceptions import (
    CatalogError,
    InvalidAddressError,
    NotConnectedError,
    TelenotProtocolError,
    TransportError,
    TransportWriteError,
)
from .framer import FrameSplitter
from .message_types import MessageType

__all__ = [
    "FRAME_RULES",
    "CatalogError",
    "FrameRule",
    "FrameSplitter",
    "InvalidAddressError",
    "MessageType",
    "NotConnectedError",
    "TelenotProtocolError",
    "TransportError",
    "TransportWriteError",
    "calculate_checksum",
    "classify",
    "map_bit_to_state",
    "reverse_bits",
]
