"""Outbound command frames for security areas.

A command frame is the fixed prefix, the 4 hex digit block address
``base + 8 * address``, ``02``, the command code, the checksum and ``16``::

    >>> CommandEncoder.encode(1, *DISARM)
    '680909687301050200053002e19316'
"""

from __future__ import annotations

from typing import Final

from telenot_bridge.const import COMMAND_FRAME_PREFIX
from telenot_bridge.protocol.classifier import TELEGRAM_END
from telenot_bridge.protocol.codec import calculate_checksum, hex_to_bytes
from telenot_bridge.protocol.exceptions import InvalidAddressError

MIN_AREA_ADDRESS: Final = 1
MAX_AREA_ADDRESS: Final = 8

# (base, command code)
DISARM: Final = (1320, "e1")
INT_ARM: Final = (1321, "62")
EXT_ARM: Final = (1322, "61")
RESET: Final = (1323, "52")


class CommandEncoder:
    @staticmethod
    def encode(address: int, base: int, code: str) -> str:
        """Build the hex command frame for one security area.

        Raises:
            InvalidAddressError: address outside 1..8

        """
        if not MIN_AREA_ADDRESS <= address <= MAX_AREA_ADDRESS:
            raise InvalidAddressError(address, MIN_AREA_ADDRESS, MAX_AREA_ADDRESS)
        msg = f"{COMMAND_FRAME_PREFIX}{base + 8 * address:04x}02{code.lower()}"
        return f"{msg}{calculate_checksum(msg)}{TELEGRAM_END:02x}"

    @classmethod
    def encode_bytes(cls, address: int, base: int, code: str) -> bytes:
        return hex_to_bytes(cls.encode(address, base, code))

    @classmethod
    def disarm(cls, address: int) -> bytes:
        return cls.encode_bytes(address, *DISARM)

    @classmethod
    def arm_home(cls, address: int) -> bytes:
        return cls.encode_bytes(address, *INT_ARM)

    @classmethod
    def arm_away(cls, address: int) -> bytes:
        return cls.encode_bytes(address, *EXT_ARM)

    @classmethod
    def reset(cls, address: int) -> bytes:
        return cls.encode_bytes(address, *RESET)
