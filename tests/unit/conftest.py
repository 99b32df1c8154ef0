"""
Shared fixtures for unit tests.

This module provides frame builders and reusable collaborators for testing the
Telenot bridge components.
"""

from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from telenot_bridge.state.virtual_state import VirtualStateMapper
from telenot_bridge.structs import (
    BridgeEnv,
    ContentArea,
    ContentAreaName,
    ReadinessGate,
    SensorCatalog,
    SensorPosition,
)

# Block headers; payload data follows directly
SB_HEADER = "7302052400050002"
MP_HEADER = "7302052400000001"


def build_frame(body_hex: str) -> bytes:
    """Wrap a body as ``68 LL LL 68 <body> CS 16`` with a valid checksum."""
    body = bytes.fromhex(body_hex)
    length = len(body)
    return bytes([0x68, length, length, 0x68]) + body + bytes([sum(body) & 0xFF, 0x16])


@pytest.fixture
def make_frame() -> Callable[[str], bytes]:
    return build_frame


@pytest.fixture
def sb_frame() -> Callable[[str], bytes]:
    """
    Security area (SB) block builder.

    The decoded payload starts at frame offset 10, so payload bytes 0-1 are the
    ``00 02`` block id and the given data starts at payload byte 2 (bit address 0x10).
    """

    def _build(data_hex: str) -> bytes:
        return build_frame(SB_HEADER + data_hex)

    return _build


@pytest.fixture
def mp_frame() -> Callable[[str], bytes]:
    """Reporting group (MP) block builder; the data starts at payload byte 0."""

    def _build(data_hex: str) -> bytes:
        return build_frame(MP_HEADER + data_hex)

    return _build


@pytest.fixture
def env() -> BridgeEnv:
    return BridgeEnv(discover=False, hass_discovery=False)


@pytest.fixture
def discover_env() -> BridgeEnv:
    return BridgeEnv(discover=True, hass_discovery=False)


@pytest.fixture
def catalog(env: BridgeEnv) -> SensorCatalog:
    """
    Catalog with an inverted SB contact at 0x10, the two arming state bits and
    an unnamed SB position, plus one MP motion detector at 0x00.
    """
    sb_positions = (
        SensorPosition(
            hex="0x10",
            name="MK Terrassentuer",
            name_ha="Terrassentuer",
            type="magnetkontakt",
            topic="telenot/alarm/eg/wohnzimmer/terrassentuer",
            location="Wohnzimmer",
            inverted=True,
        ),
        SensorPosition(
            hex="0x11",
            name="Extern scharf",
            name_ha="Extern scharf",
            type="systemstatus",
            topic=env.armed_away_topic,
            location="Zentrale",
        ),
        SensorPosition(
            hex="0x12",
            name="Intern scharf",
            name_ha="Intern scharf",
            type="systemstatus",
            topic=env.armed_home_topic,
            location="Zentrale",
        ),
        SensorPosition(hex="0x13", topic="telenot/alarm/unknown/0x13"),
    )
    mp_positions = (
        SensorPosition(
            hex="0x00",
            name="BM Flur",
            name_ha="Bewegungsmelder Flur",
            type="bewegungsmelder",
            topic="telenot/alarm/eg/flur/bewegung",
            location="Flur",
        ),
    )
    return SensorCatalog(
        areas={
            ContentAreaName.MELDEBEREICHE: ContentArea(
                name=ContentAreaName.MELDEBEREICHE,
                offset=10,
                positions=sb_positions,
            ),
            ContentAreaName.MELDEGRUPPEN: ContentArea(
                name=ContentAreaName.MELDEGRUPPEN,
                offset=12,
                positions=mp_positions,
            ),
        },
    )


@pytest.fixture
def mock_sink():
    """
    Publish sink standing in for the MQTT client.

    Returns an AsyncMock whose publish() reports success.
    """
    sink = MagicMock()
    sink.publish = AsyncMock(return_value=True)
    sink.is_connected = True
    return sink


@pytest.fixture
def virtual_state() -> VirtualStateMapper:
    return VirtualStateMapper()


@pytest.fixture
def readiness() -> ReadinessGate:
    return ReadinessGate()


@pytest.fixture
def mock_controller():
    """AreaController double recording the arming calls."""
    controller = MagicMock()
    controller.disarm_area = AsyncMock()
    controller.int_arm_area = AsyncMock()
    controller.ext_arm_area = AsyncMock()
    controller.reset_arm_area = AsyncMock()
    return controller
