"""Checksum and hex/bit helpers for Telenot GMS frames."""

from __future__ import annotations

# Checksum covers everything after "68 LL LL 68"
CHECKSUM_HEADER_HEX_CHARS = 8
STATE_ON = "ON"
STATE_OFF = "OFF"


def calculate_checksum(message: str) -> str:
    """Checksum of a hex message as two lowercase hex digits.

    The sum of all bytes after the first 8 hex characters, modulo 256.
    An empty remainder yields ``"00"``.

    >>> calculate_checksum("680909687301050200053002e1")
    '93'
    """
    payload = message[CHECKSUM_HEADER_HEX_CHARS:]
    if not payload:
        return "00"
    return f"{sum(hex_to_bytes(payload)) % 256:02x}"


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert a hex string (any case, optional spaces) to bytes.

    Raises:
        ValueError: on non-hex characters or an odd number of digits

    """
    return bytes.fromhex(hex_str)


def bytes_to_hex(data: bytes | bytearray) -> str:
    return bytes(data).hex()


def reverse_bits(value: int) -> str:
    """8-bit binary string of ``value`` with the characters reversed.

    Index 0 of the result is the wire byte's least significant bit, which is
    how sensor bit addresses count within a byte.
    """
    return f"{value & 0xFF:08b}"[::-1]


def reverse_bits_int(value: int) -> int:
    return int(reverse_bits(value), 2)


def map_bit_to_state(bit: str, inverted: bool) -> str:
    """``ON`` for ('1' and not inverted) or ('0' and inverted), else ``OFF``."""
    return STATE_ON if (bit == "0" if inverted else bit == "1") else STATE_OFF
