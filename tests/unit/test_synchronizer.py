"""
Unit tests for StateSynchronizer frame handling and MQTT publishing.
"""

import json
from unittest.mock import AsyncMock

import pytest

from telenot_bridge.const import ACK_FRAME
from telenot_bridge.logging_abstraction import DISCOVER
from telenot_bridge.state.synchronizer import StateSynchronizer

SYNC_LOGGER = "telenot_bridge.state.synchronizer"
CONTACT_TOPIC = "telenot/alarm/eg/wohnzimmer/terrassentuer"


def _frame(hex_frame: str) -> bytes:
    return bytes.fromhex(hex_frame)


SYS_INT_ARMED = _frame("682c2c68730205020005310162000016")
SYS_EXT_ARMED = _frame("682c2c68730205020005320161000016")
SYS_DISARMED = _frame("682c2c687302050200053001e1000016")
ALARM = _frame("682c2c6873020502000540000016")
CONF_ACK = _frame("6802026800020216")
SEND_NORM = _frame("6802026840024216")


@pytest.fixture
def sync(catalog, mock_sink, virtual_state, readiness, env):
    return StateSynchronizer(catalog, mock_sink, virtual_state, readiness, env=env)


def _published(mock_sink) -> list[tuple[str, str]]:
    return [(c.args[0], c.args[1]) for c in mock_sink.publish.await_args_list]


def _published_to(mock_sink, topic: str) -> list[str]:
    return [payload for t, payload in _published(mock_sink) if t == topic]


class TestSensorBlocks:
    """Tests for MP / SB decoding and per-sensor publishing"""

    @pytest.mark.asyncio
    async def test_inverted_contact_scenario(self, sync, mock_sink, sb_frame):
        """Initial OFF, flip to ON, then an identical frame publishes nothing"""
        # byte 2 bit 0 set -> inverted contact reads OFF
        assert await sync.handle_frame(sb_frame("01")) == ACK_FRAME
        first = _published_to(mock_sink, CONTACT_TOPIC)
        assert len(first) == 1
        record = json.loads(first[0])
        assert record["state"] == "OFF"
        assert record["id"] == "mk_terrassentuer_0x10"
        assert record["name"] == "Terrassentuer"
        assert record["type"] == "magnetkontakt"
        assert record["location"] == "Wohnzimmer"
        assert record["last_triggered"].endswith("Z")

        mock_sink.publish.reset_mock()
        assert await sync.handle_frame(sb_frame("00")) == ACK_FRAME
        second = _published_to(mock_sink, CONTACT_TOPIC)
        assert [json.loads(p)["state"] for p in second] == ["ON"]

        mock_sink.publish.reset_mock()
        assert await sync.handle_frame(sb_frame("00")) == ACK_FRAME
        mock_sink.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_is_retained(self, sync, mock_sink, sb_frame):
        _ = await sync.handle_frame(sb_frame("01"))
        for call in mock_sink.publish.await_args_list:
            assert call.kwargs["retain"] is True

    @pytest.mark.asyncio
    async def test_same_state_not_republished(self, sync, mock_sink, env, sb_frame):
        """A bit flip in another position does not republish an unchanged topic"""
        _ = await sync.handle_frame(sb_frame("00"))
        mock_sink.publish.reset_mock()
        # 0x11 (armed away) flips, 0x10 stays
        _ = await sync.handle_frame(sb_frame("02"))
        topics = [t for t, _ in _published(mock_sink)]
        assert topics == [env.armed_away_topic]

    @pytest.mark.asyncio
    async def test_mp_block_uses_reporting_groups(self, sync, mock_sink, mp_frame):
        _ = await sync.handle_frame(mp_frame("01"))
        payloads = _published_to(mock_sink, "telenot/alarm/eg/flur/bewegung")
        assert json.loads(payloads[0])["state"] == "ON"

    @pytest.mark.asyncio
    async def test_unnamed_position_never_published(self, sync, mock_sink, sb_frame):
        _ = await sync.handle_frame(sb_frame("08"))
        assert _published_to(mock_sink, "telenot/alarm/unknown/0x13") == []

    @pytest.mark.asyncio
    async def test_unnamed_position_logged_in_discover_mode(
        self, catalog, mock_sink, virtual_state, readiness, discover_env, sb_frame, caplog
    ):
        caplog.set_level(DISCOVER, logger=SYNC_LOGGER)
        sync = StateSynchronizer(catalog, mock_sink, virtual_state, readiness, env=discover_env)
        _ = await sync.handle_frame(sb_frame("08"))
        discover_lines = [r.getMessage() for r in caplog.records if r.levelno == DISCOVER]
        assert any("Position:0x13" in line and "New: 1" in line for line in discover_lines)

    @pytest.mark.asyncio
    async def test_failed_publish_is_not_recorded(self, sync, mock_sink, sb_frame):
        """The dedup map only holds states the broker accepted"""
        mock_sink.publish.return_value = False
        _ = await sync.handle_frame(sb_frame("01"))
        assert CONTACT_TOPIC not in sync.last_published

        mock_sink.publish.return_value = True
        _ = await sync.handle_frame(sb_frame("00"))
        assert sync.last_published[CONTACT_TOPIC] == "ON"


class TestReadinessGate:
    """Tests for the SB / CONF_ACK readiness handshake"""

    @pytest.mark.asyncio
    async def test_sb_sets_and_ack_clears(self, sync, readiness, sb_frame):
        _ = await sync.handle_frame(sb_frame("00"))
        assert readiness.ready is True
        assert await sync.handle_frame(CONF_ACK) == ACK_FRAME
        assert readiness.ready is False

    @pytest.mark.asyncio
    async def test_send_norm_only_acknowledged(self, sync, mock_sink, readiness):
        assert await sync.handle_frame(SEND_NORM) == ACK_FRAME
        mock_sink.publish.assert_not_awaited()
        assert readiness.ready is False


class TestSystemState:
    """Tests for arming state and alarm frames"""

    @pytest.mark.asyncio
    async def test_internal_armed(self, sync, mock_sink, env):
        assert await sync.handle_frame(SYS_INT_ARMED) == ACK_FRAME
        assert _published_to(mock_sink, env.state_topic) == ["armed_home"]
        diag = json.loads(_published_to(mock_sink, f"{env.diagnostics_topic}/state")[0])
        assert diag["state"] == "armed_home"
        assert diag["internalState"] == "armed_home"
        assert diag["isVirtualMode"] is False
        assert diag["virtualType"] is None

    @pytest.mark.asyncio
    async def test_internal_armed_in_night_mode(self, sync, mock_sink, virtual_state, env):
        _ = virtual_state.map_to_internal("ARM_NIGHT")
        _ = await sync.handle_frame(SYS_INT_ARMED)
        assert _published_to(mock_sink, env.state_topic) == ["armed_night"]
        diag = json.loads(_published_to(mock_sink, f"{env.diagnostics_topic}/state")[0])
        assert diag["isVirtualMode"] is True
        assert diag["virtualType"] == "night_mode"
        assert diag["internalState"] == "armed_home"

    @pytest.mark.asyncio
    async def test_external_armed(self, sync, mock_sink, env):
        _ = await sync.handle_frame(SYS_EXT_ARMED)
        assert _published_to(mock_sink, env.state_topic) == ["armed_away"]
        diag = json.loads(_published_to(mock_sink, f"{env.diagnostics_topic}/state")[0])
        assert diag["type"] == "external"

    @pytest.mark.asyncio
    async def test_disarmed_resets_virtual_mode(self, sync, mock_sink, virtual_state, env):
        _ = virtual_state.map_to_internal("ARM_NIGHT")
        _ = await sync.handle_frame(SYS_DISARMED)
        assert virtual_state.is_virtual_night_mode() is False
        assert _published_to(mock_sink, env.state_topic) == ["disarmed"]
        diag = json.loads(_published_to(mock_sink, f"{env.diagnostics_topic}/state")[0])
        assert set(diag) == {"state", "timestamp"}

    @pytest.mark.asyncio
    async def test_alarm(self, sync, mock_sink, env):
        _ = await sync.handle_frame(ALARM)
        assert _published_to(mock_sink, env.state_topic) == ["triggered"]
        diag = json.loads(_published_to(mock_sink, f"{env.diagnostics_topic}/alarm")[0])
        assert diag["state"] == "triggered"
        assert diag["type"] == "alarm"


class TestDiagnostics:
    """Tests for fault and malfunction frames"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("hex_frame", "subtopic", "state"),
        [
            ("682c2c687302050201001001000016", "intrusion", "triggered"),
            ("681a1a687302050200001401000016", "battery", "malfunction"),
            ("681a1a687302050200001501000016", "power", "outage"),
            ("681a1a687302050200001301000016", "flasher", "malfunction"),
            ("681a1a687302050200001101000016", "horn1", "malfunction"),
            ("681a1a687302050200001201000016", "horn2", "malfunction"),
            ("681a1a687302050200001701000016", "communication", "fault"),
            ("6809096873020502" + "00ffff0153" + "0016", "restart", "restart"),
        ],
    )
    async def test_fault_topics(self, sync, mock_sink, env, hex_frame, subtopic, state):
        assert await sync.handle_frame(bytes.fromhex(hex_frame)) == ACK_FRAME
        published = _published(mock_sink)
        assert len(published) == 1
        topic, payload = published[0]
        assert topic == f"{env.diagnostics_topic}/{subtopic}"
        assert json.loads(payload)["state"] == state

    @pytest.mark.asyncio
    async def test_intrusion_has_type(self, sync, mock_sink, env):
        _ = await sync.handle_frame(bytes.fromhex("682c2c687302050201001001000016"))
        payload = _published_to(mock_sink, f"{env.diagnostics_topic}/intrusion")[0]
        assert json.loads(payload)["type"] == "intrusion"


class TestUnknownFrames:
    """Tests for INVALID / SEND_NDAT handling"""

    @pytest.mark.asyncio
    async def test_unknown_frame_warns_and_acks(self, sync, mock_sink, caplog):
        assert await sync.handle_frame(b"\x01\x02\x03") == ACK_FRAME
        mock_sink.publish.assert_not_awaited()
        assert "Unknown Message Type: 010203" in caplog.text

    @pytest.mark.asyncio
    async def test_unknown_frame_in_discover_mode(
        self, catalog, mock_sink, virtual_state, readiness, discover_env, caplog
    ):
        caplog.set_level(DISCOVER, logger=SYNC_LOGGER)
        sync = StateSynchronizer(catalog, mock_sink, virtual_state, readiness, env=discover_env)
        _ = await sync.handle_frame(bytes.fromhex("680968730112"))
        assert any(r.levelno == DISCOVER and "680968730112" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_handler_exception_returns_none(self, sync, mock_sink, caplog):
        mock_sink.publish = AsyncMock(side_effect=RuntimeError("boom"))
        assert await sync.handle_frame(SYS_EXT_ARMED) is None
        assert "Error handling frame" in caplog.text


class TestAlarmStateRepublish:
    """Tests for determine_alarm_state() / publish_alarm_state()"""

    def test_disarmed_by_default(self, sync):
        assert sync.determine_alarm_state() == "disarmed"

    def test_armed_away_wins(self, sync, env):
        sync.last_published[env.armed_away_topic] = "ON"
        sync.last_published[env.armed_home_topic] = "ON"
        assert sync.determine_alarm_state() == "armed_away"

    def test_armed_home(self, sync, env):
        sync.last_published[env.armed_home_topic] = "ON"
        assert sync.determine_alarm_state() == "armed_home"

    @pytest.mark.asyncio
    async def test_publish_uses_sensor_history(self, sync, mock_sink, env, sb_frame):
        # 0x12 (armed home) set
        _ = await sync.handle_frame(sb_frame("04"))
        mock_sink.publish.reset_mock()
        assert await sync.publish_alarm_state() is True
        mock_sink.publish.assert_awaited_once_with(env.state_topic, "armed_home", retain=True)

    @pytest.mark.asyncio
    async def test_publish_maps_night_mode(self, sync, mock_sink, virtual_state, env):
        sync.last_published[env.armed_home_topic] = "ON"
        _ = virtual_state.map_to_internal("ARM_NIGHT")
        _ = await sync.publish_alarm_state()
        mock_sink.publish.assert_awaited_once_with(env.state_topic, "armed_night", retain=True)
