"""Turns classified panel frames into MQTT publishes.

One ``handle_frame`` call per inbound frame, awaited by the socket reader before
the next frame is read. Every handled frame is answered with the confirmation
ACK; a frame whose handling raised is answered with nothing.
"""

from __future__ import annotations

import json

from telenot_bridge.const import ACK_FRAME
from telenot_bridge.correlation import correlation_context
from telenot_bridge.logging_abstraction import get_logger
from telenot_bridge.metrics import record_frame_error, record_frame_received, record_sensor_publish
from telenot_bridge.protocol.classifier import classify
from telenot_bridge.protocol.codec import bytes_to_hex
from telenot_bridge.protocol.message_types import MessageType
from telenot_bridge.state.bitfield_store import BitChange, BitfieldStateStore
from telenot_bridge.state.virtual_state import VirtualStateMapper
from telenot_bridge.structs import (
    AlarmState,
    BridgeEnv,
    ContentAreaName,
    PublishSink,
    ReadinessGate,
    SensorCatalog,
    SensorStateRecord,
)
from telenot_bridge.utils import iso_timestamp

logger = get_logger(__name__)

# Diagnostics subtopic and fixed body fields for fault style frames
FAULT_DIAGNOSTICS: dict[MessageType, tuple[str, dict[str, str]]] = {
    MessageType.INTRUSION: ("intrusion", {"state": "triggered", "type": "intrusion"}),
    MessageType.BATTERY_MALFUNCTION: ("battery", {"state": "malfunction"}),
    MessageType.POWER_OUTAGE: ("power", {"state": "outage"}),
    MessageType.OPTICAL_FLASHER_MALFUNCTION: ("flasher", {"state": "malfunction"}),
    MessageType.HORN_1_MALFUNCTION: ("horn1", {"state": "malfunction"}),
    MessageType.HORN_2_MALFUNCTION: ("horn2", {"state": "malfunction"}),
    MessageType.COM_FAULT: ("communication", {"state": "fault"}),
    MessageType.RESTART: ("restart", {"state": "restart"}),
}


class StateSynchronizer:
    lp: str = "sync:"

    def __init__(
        self,
        catalog: SensorCatalog,
        sink: PublishSink,
        virtual_state: VirtualStateMapper,
        readiness: ReadinessGate,
        env: BridgeEnv | None = None,
        store: BitfieldStateStore | None = None,
    ) -> None:
        self.catalog: SensorCatalog = catalog
        self.sink: PublishSink = sink
        self.virtual_state: VirtualStateMapper = virtual_state
        self.readiness: ReadinessGate = readiness
        self.env: BridgeEnv = env or BridgeEnv()
        self.store: BitfieldStateStore = store or BitfieldStateStore()
        self.last_published: dict[str, str] = {}

    async def handle_frame(self, frame: bytes) -> bytes | None:
        """Process one frame and return the bytes to send back to the panel."""
        lp = f"{self.lp}handle_frame:"
        with correlation_context(kind="frame"):
            hex_str = bytes_to_hex(frame)
            try:
                msg_type = classify(frame)
                record_frame_received(msg_type.name)
                logger.debug("%s %s <- %s", lp, msg_type.name, hex_str)
                await self._dispatch(msg_type, frame, hex_str)
            except Exception:
                logger.exception("%s Error handling frame", lp, extra={"frame": hex_str})
                record_frame_error()
                return None
            return ACK_FRAME

    async def _dispatch(self, msg_type: MessageType, frame: bytes, hex_str: str) -> None:
        lp = f"{self.lp}dispatch:"
        match msg_type:
            case MessageType.SEND_NORM:
                pass
            case MessageType.CONF_ACK:
                logger.debug("%s Confirmation ACK received", lp)
                self.readiness.clear()
            case MessageType.MP:
                await self.decode_content(frame, ContentAreaName.MELDEGRUPPEN)
            case MessageType.SB:
                await self.decode_content(frame, ContentAreaName.MELDEBEREICHE)
                self.readiness.set()
            case MessageType.SYS_INT_ARMED:
                await self._publish_internal_armed()
            case MessageType.SYS_EXT_ARMED:
                await self._publish_system_state(AlarmState.ARMED_AWAY, {"type": "external"})
            case MessageType.SYS_DISARMED:
                self.virtual_state.reset_virtual_modes()
                await self._publish_system_state(AlarmState.DISARMED, {})
            case MessageType.ALARM:
                _ = await self._publish(self.env.state_topic, AlarmState.TRIGGERED.value)
                _ = await self._publish(
                    f"{self.env.diagnostics_topic}/alarm",
                    self._diagnostics_body(AlarmState.TRIGGERED.value, {"type": "alarm"}),
                )
            case _ if msg_type in FAULT_DIAGNOSTICS:
                if msg_type is MessageType.RESTART:
                    logger.info("%s System restart detected", lp)
                subtopic, fields = FAULT_DIAGNOSTICS[msg_type]
                body = dict(fields)
                state = body.pop("state")
                _ = await self._publish(
                    f"{self.env.diagnostics_topic}/{subtopic}",
                    self._diagnostics_body(state, body),
                )
            case _:
                if self.env.discover:
                    logger.discover("--- Discovery Detection ---")
                    logger.discover("Unknown Message Type: %s", hex_str, extra={"msg_type": msg_type.name})
                else:
                    logger.warning("%s Unknown Message Type: %s", lp, hex_str)

    async def decode_content(self, frame: bytes, area_name: ContentAreaName) -> None:
        """Diff the payload of an MP/SB block against the stored snapshot and publish changed sensors."""
        area = self.catalog.area(area_name)
        payload = frame[area.offset :]
        changes = self.store.apply_frame(area.name.value, payload)
        for change in self.store.changed_bits(area, changes):
            await self.publish_position(area.name.value, change)

    async def publish_position(self, area_name: str, change: BitChange) -> bool:
        lp = f"{self.lp}publish_position:"
        position = change.position
        state = change.state
        if position.topic is not None and self.last_published.get(position.topic) == state:
            record_sensor_publish("duplicate")
            return False

        if not position.name:
            if self.env.discover:
                logger.discover("--- Discovery Detection ---")
                logger.discover(
                    "%s - Byte:%s Bit:%s Position:%s Old: %s - New: %s",
                    area_name,
                    change.byte_index,
                    change.bit_index,
                    position.hex,
                    change.previous_bit,
                    change.bit,
                )
            return False

        if not position.topic:
            logger.warning("%s Position %s (%s) has no topic, skipping", lp, position.hex, position.name)
            return False

        record = SensorStateRecord(
            id=position.sensor_id,
            name=position.name_ha,
            type=position.sensor_type,
            state=state,
            location=position.location,
            last_triggered=iso_timestamp(),
        )
        payload = json.dumps(record.model_dump())
        if await self.sink.publish(position.topic, payload, retain=True):
            self.last_published[position.topic] = state
            record_sensor_publish("published")
            logger.info(
                "%s Published state change",
                lp,
                extra={"topic": position.topic, "payload": record.model_dump()},
            )
            return True

        record_sensor_publish("failed")
        logger.error("%s Failed to publish %s", lp, position.topic)
        return False

    def determine_alarm_state(self) -> str:
        """Alarm state derived from the last published arming sensor states."""
        if self.last_published.get(self.env.armed_away_topic) == "ON":
            return AlarmState.ARMED_AWAY.value
        if self.last_published.get(self.env.armed_home_topic) == "ON":
            return AlarmState.ARMED_HOME.value
        return AlarmState.DISARMED.value

    async def publish_alarm_state(self) -> bool:
        """Republish the current alarm state (triggered by a message on the publish topic)."""
        lp = f"{self.lp}publish_alarm_state:"
        state = self.virtual_state.map_to_external(self.determine_alarm_state())
        logger.info("%s Publishing state: %s to %s", lp, state, self.env.state_topic)
        return await self._publish(self.env.state_topic, state)

    async def _publish_internal_armed(self) -> None:
        internal = AlarmState.ARMED_HOME.value
        state = self.virtual_state.map_to_external(internal)
        is_virtual = state == AlarmState.ARMED_NIGHT
        _ = await self._publish(self.env.state_topic, state)
        _ = await self._publish(
            f"{self.env.diagnostics_topic}/state",
            json.dumps(
                {
                    "state": state,
                    "internalState": internal,
                    "timestamp": iso_timestamp(),
                    "isVirtualMode": is_virtual,
                    "virtualType": "night_mode" if is_virtual else None,
                },
            ),
        )

    async def _publish_system_state(self, state: AlarmState, extra_fields: dict[str, str]) -> None:
        _ = await self._publish(self.env.state_topic, state.value)
        _ = await self._publish(
            f"{self.env.diagnostics_topic}/state",
            self._diagnostics_body(state.value, extra_fields),
        )

    @staticmethod
    def _diagnostics_body(state: str, extra_fields: dict[str, str]) -> str:
        return json.dumps({"state": state, "timestamp": iso_timestamp(), **extra_fields})

    async def _publish(self, topic: str, message: str) -> bool:
        lp = f"{self.lp}publish:"
        if await self.sink.publish(topic, message, retain=True):
            logger.info("%s Published '%s' to %s", lp, message, topic)
            return True
        logger.error("%s Failed to publish to %s", lp, topic)
        return False
