"""Telenot GMS message type tags."""

from __future__ import annotations

from enum import IntEnum


class MessageType(IntEnum):
    """Closed set of frame classifications.

    Numbering follows the panel's historical message table so log output
    lines up with older captures.
    """

    SEND_NORM = 0
    MP = 2
    SB = 3
    CONF_ACK = 4
    SYS_INT_ARMED = 5
    SYS_EXT_ARMED = 6
    SYS_DISARMED = 7
    ALARM = 8
    INTRUSION = 9
    BATTERY_MALFUNCTION = 10
    POWER_OUTAGE = 11
    OPTICAL_FLASHER_MALFUNCTION = 12
    HORN_1_MALFUNCTION = 13
    HORN_2_MALFUNCTION = 14
    COM_FAULT = 15
    RESTART = 16
    # Discovery only, never produced by the classifier
    USED_INPUTS = 17
    USED_OUTPUTS = 18
    USED_CONTACTS_INFO = 19
    USED_OUTPUT_CONTACTS_INFO = 20
    USED_SB_CONTACTS_INFO = 21
    USED_MB_CONTACTS_INFO = 22
    INVALID = 23
    SEND_NDAT = 25
    NOT_USED_CONTACT = 26


DISCOVERY_ONLY_TYPES: frozenset[MessageType] = frozenset(
    {
        MessageType.USED_INPUTS,
        MessageType.USED_OUTPUTS,
        MessageType.USED_CONTACTS_INFO,
        MessageType.USED_OUTPUT_CONTACTS_INFO,
        MessageType.USED_SB_CONTACTS_INFO,
        MessageType.USED_MB_CONTACTS_INFO,
        MessageType.NOT_USED_CONTACT,
    }
)
