"""Frame classification for Telenot GMS frames.

Every known frame layout is written once as a hex template and compiled at
import time into ``(offset, value, mask)`` byte predicates. ``.`` in a template
is a wildcard nibble, so ``"68....68"`` fixes bytes 0 and 3 and ignores 1-2,
and an odd trailing digit (``"68..68730"``) fixes only the high nibble of the
last byte. Rules are tried in priority order and the first match wins.
"""

from __future__ import annotations

from typing import TypeAlias

from dataclasses import dataclass

from telenot_bridge.protocol.message_types import MessageType

TELEGRAM_START = 0x68
TELEGRAM_END = 0x16

BytePredicate: TypeAlias = tuple[int, int, int]


def _compile_template(template: str) -> tuple[BytePredicate, ...]:
    """Turn a hex template into (offset, expected, mask) tuples, skipping full wildcards."""
    predicates: list[BytePredicate] = []
    for offset, start in enumerate(range(0, len(template), 2)):
        pair = template[start : start + 2]
        high = pair[0]
        low = pair[1] if len(pair) > 1 else "."
        mask = (0xF0 if high != "." else 0) | (0x0F if low != "." else 0)
        if not mask:
            continue
        value = (int(high, 16) << 4 if high != "." else 0) | (int(low, 16) if low != "." else 0)
        predicates.append((offset, value, mask))
    return tuple(predicates)


@dataclass(frozen=True, slots=True)
class FrameRule:
    """One known frame layout."""

    message_type: MessageType
    template: str
    terminated: bool = False
    predicates: tuple[BytePredicate, ...] = ()
    min_length: int = 0

    @classmethod
    def build(cls, message_type: MessageType, template: str, terminated: bool = False) -> FrameRule:
        predicates = _compile_template(template)
        # Terminated frames carry at least one byte after the template (the 0x16)
        min_length = (len(template) + 1) // 2 + (1 if terminated else 0)
        return cls(message_type, template, terminated, predicates, min_length)

    def matches(self, frame: bytes) -> bool:
        if len(frame) < self.min_length:
            return False
        for offset, value, mask in self.predicates:
            if frame[offset] & mask != value:
                return False
        return not self.terminated or frame[-1] == TELEGRAM_END


# Order matters: earlier rules win on ambiguity
FRAME_RULES: tuple[FrameRule, ...] = (
    # system operation
    FrameRule.build(MessageType.SEND_NORM, "6802026840024216"),
    FrameRule.build(MessageType.CONF_ACK, "6802026800020216"),
    # content blocks: 0001 = reporting groups, 0002 = reporting areas
    FrameRule.build(MessageType.MP, "68....687302..2400000001", terminated=True),
    FrameRule.build(MessageType.SB, "68....687302..2400050002", terminated=True),
    # arming state
    FrameRule.build(MessageType.SYS_INT_ARMED, "682c2c68730205020005310162"),
    FrameRule.build(MessageType.SYS_EXT_ARMED, "682c2c68730205020005320161"),
    FrameRule.build(MessageType.SYS_DISARMED, "682c2c687302050200053001e1"),
    FrameRule.build(MessageType.ALARM, "682c2c6873020502000540"),
    FrameRule.build(MessageType.ALARM, "68....687302050201002b"),
    # malfunctions
    FrameRule.build(MessageType.INTRUSION, "682c2c687302050201001001"),
    FrameRule.build(MessageType.BATTERY_MALFUNCTION, "681a1a687302050200001401"),
    FrameRule.build(MessageType.POWER_OUTAGE, "681a1a687302050200001501"),
    FrameRule.build(MessageType.OPTICAL_FLASHER_MALFUNCTION, "681a1a687302050200001301"),
    FrameRule.build(MessageType.HORN_1_MALFUNCTION, "681a1a687302050200001101"),
    FrameRule.build(MessageType.HORN_2_MALFUNCTION, "681a1a687302050200001201"),
    FrameRule.build(MessageType.COM_FAULT, "681a1a687302050200001701"),
    # restart: FFFF filler then 01 53
    FrameRule.build(MessageType.RESTART, "68....687302......ffff0153", terminated=True),
)

START_TO_MSG_TYPE: dict[bytes, MessageType] = {
    bytes.fromhex("68020268"): MessageType.SEND_NORM,
    bytes.fromhex("682c2c68"): MessageType.MP,
}

SEND_NDAT_RULE: FrameRule = FrameRule.build(MessageType.SEND_NDAT, "68..68730")


def _as_bytes(frame: bytes | bytearray | str) -> bytes | None:
    if isinstance(frame, str):
        try:
            return bytes.fromhex(frame)
        except ValueError:
            return None
    return bytes(frame)


def classify(frame: bytes | bytearray | str) -> MessageType:
    """Classify a raw frame (bytes or hex string). Never raises.

    Unknown, empty, truncated or non-hex input classifies as ``INVALID``.
    """
    data = _as_bytes(frame)
    if not data:
        return MessageType.INVALID

    for rule in FRAME_RULES:
        if rule.matches(data):
            return rule.message_type

    coarse = START_TO_MSG_TYPE.get(data[:4])
    if coarse is not None:
        return coarse
    if SEND_NDAT_RULE.matches(data):
        return MessageType.SEND_NDAT
    return MessageType.INVALID
