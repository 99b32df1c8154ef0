"""Sensor state tracking and MQTT synchronization."""

from .bitfield_store import BitChange, BitfieldStateStore, ByteChange
from .synchronizer import StateSynchronizer
from .virtual_state import VirtualStateMapper

__all__ = [
    "BitChange",
    "BitfieldStateStore",
    "ByteChange",
    "StateSynchronizer",
    "VirtualStateMapper",
]
