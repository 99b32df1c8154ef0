"""Core data structures and collaborator protocols for the Telenot bridge."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from telenot_bridge.const import (
    CONTENT_AREA_OFFSETS,
    TELENOT_ARMED_AWAY_TOPIC,
    TELENOT_ARMED_HOME_TOPIC,
    TELENOT_COMMAND_TOPIC,
    TELENOT_DIAGNOSTICS_TOPIC,
    TELENOT_DISCOVER,
    TELENOT_HASS_DISCOVERY,
    TELENOT_HASS_TOPIC,
    TELENOT_HOST,
    TELENOT_IDLE_TIMEOUT,
    TELENOT_METRICS_PORT,
    TELENOT_MQTT_CLIENT_ID,
    TELENOT_MQTT_HOST,
    TELENOT_MQTT_PASS,
    TELENOT_MQTT_PORT,
    TELENOT_MQTT_RECONNECT_ATTEMPTS,
    TELENOT_MQTT_RECONNECT_DELAY,
    TELENOT_MQTT_USER,
    TELENOT_PORT,
    TELENOT_PUBLISH_TOPIC,
    TELENOT_RECONNECT_ATTEMPTS,
    TELENOT_RECONNECT_DELAY,
    TELENOT_STATE_TOPIC,
    TELENOT_STATUS_TOPIC,
    YES_ANSWER,
)


class ContentAreaName(StrEnum):
    SICHERUNGSBEREICH = "SICHERUNGSBEREICH"
    SICHERUNGSBEREICH2 = "SICHERUNGSBEREICH2"
    MELDEBEREICHE = "MELDEBEREICHE"
    MELDEGRUPPEN = "MELDEGRUPPEN"


class AlarmState(StrEnum):
    """States published to the alarm state topic."""

    DISARMED = "disarmed"
    ARMED_HOME = "armed_home"
    ARMED_AWAY = "armed_away"
    ARMED_NIGHT = "armed_night"
    TRIGGERED = "triggered"


class SensorPosition(BaseModel):
    """One cataloged sensor bit. Read-only for the bridge.

    ``hex`` is the bit address inside its content area, written the way the
    panel programming software shows it (``"0x075"``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    hex: str
    name: str | None = None
    name_ha: str | None = None
    sensor_type: str | None = Field(default=None, alias="type")
    topic: str | None = None
    location: str | None = None
    inverted: bool = False

    @property
    def bit_address(self) -> int:
        return int(self.hex, 16)

    @property
    def byte_index(self) -> int:
        return self.bit_address // 8

    @property
    def bit_index(self) -> int:
        return self.bit_address % 8

    @property
    def sensor_id(self) -> str:
        """Stable id used in published records: ``<name_with_underscores>_<hex>``."""
        base = "_".join((self.name or "").lower().split())
        return f"{base}_{self.hex}"


class ContentArea(BaseModel):
    """A named group of sensor bits sharing one payload offset."""

    model_config = ConfigDict(frozen=True)

    name: ContentAreaName
    offset: int
    positions: tuple[SensorPosition, ...] = ()

    def positions_in_byte(self, byte_index: int) -> list[SensorPosition]:
        """Positions whose bit address lies in ``[8 * byte_index, 8 * byte_index + 8)``."""
        low = byte_index * 8
        high = low + 8
        return [pos for pos in self.positions if low <= pos.bit_address < high]


class SensorCatalog(BaseModel):
    """All content areas known to the bridge."""

    model_config = ConfigDict(frozen=True)

    areas: dict[ContentAreaName, ContentArea] = Field(default_factory=dict)

    def area(self, name: ContentAreaName | str) -> ContentArea:
        """Return the configured area, or an empty one at its default offset."""
        key = ContentAreaName(name)
        if key in self.areas:
            return self.areas[key]
        return ContentArea(name=key, offset=CONTENT_AREA_OFFSETS[key.value])

    def all_positions(self) -> list[SensorPosition]:
        return [pos for area in self.areas.values() for pos in area.positions]


class SensorStateRecord(BaseModel):
    """JSON body published to a sensor's topic."""

    id: str
    name: str | None
    type: str | None
    state: str
    location: str | None
    last_triggered: str


class BridgeEnv(BaseModel):
    """Runtime configuration, collected from environment variables."""

    telenot_host: str = TELENOT_HOST
    telenot_port: int = TELENOT_PORT
    idle_timeout: float = TELENOT_IDLE_TIMEOUT
    reconnect_attempts: int = TELENOT_RECONNECT_ATTEMPTS
    reconnect_delay: float = TELENOT_RECONNECT_DELAY
    mqtt_host: str = TELENOT_MQTT_HOST
    mqtt_port: int = TELENOT_MQTT_PORT
    mqtt_user: str | None = TELENOT_MQTT_USER
    mqtt_pass: str | None = TELENOT_MQTT_PASS
    mqtt_client_id: str = TELENOT_MQTT_CLIENT_ID
    mqtt_reconnect_attempts: int = TELENOT_MQTT_RECONNECT_ATTEMPTS
    mqtt_reconnect_delay: float = TELENOT_MQTT_RECONNECT_DELAY
    publish_topic: str = TELENOT_PUBLISH_TOPIC
    command_topic: str = TELENOT_COMMAND_TOPIC
    state_topic: str = TELENOT_STATE_TOPIC
    status_topic: str = TELENOT_STATUS_TOPIC
    diagnostics_topic: str = TELENOT_DIAGNOSTICS_TOPIC
    armed_away_topic: str = TELENOT_ARMED_AWAY_TOPIC
    armed_home_topic: str = TELENOT_ARMED_HOME_TOPIC
    hass_discovery: bool = TELENOT_HASS_DISCOVERY
    hass_topic: str = TELENOT_HASS_TOPIC
    discover: bool = TELENOT_DISCOVER
    metrics_port: int = TELENOT_METRICS_PORT

    @classmethod
    def from_environ(cls) -> BridgeEnv:
        """Re-read the environment (after a dotenv file was loaded)."""
        env = os.environ
        values: dict[str, object] = {
            "telenot_host": env.get("TELENOT_HOST"),
            "telenot_port": env.get("TELENOT_PORT"),
            "idle_timeout": env.get("TELENOT_IDLE_TIMEOUT"),
            "reconnect_attempts": env.get("TELENOT_RECONNECT_ATTEMPTS"),
            "reconnect_delay": env.get("TELENOT_RECONNECT_DELAY"),
            "mqtt_host": env.get("TELENOT_MQTT_HOST"),
            "mqtt_port": env.get("TELENOT_MQTT_PORT"),
            "mqtt_user": env.get("TELENOT_MQTT_USER"),
            "mqtt_pass": env.get("TELENOT_MQTT_PASS"),
            "mqtt_client_id": env.get("TELENOT_MQTT_CLIENT_ID"),
            "mqtt_reconnect_attempts": env.get("TELENOT_MQTT_RECONNECT_ATTEMPTS"),
            "mqtt_reconnect_delay": env.get("TELENOT_MQTT_RECONNECT_DELAY"),
            "publish_topic": env.get("TELENOT_PUBLISH_TOPIC"),
            "command_topic": env.get("TELENOT_COMMAND_TOPIC"),
            "state_topic": env.get("TELENOT_STATE_TOPIC"),
            "status_topic": env.get("TELENOT_STATUS_TOPIC"),
            "diagnostics_topic": env.get("TELENOT_DIAGNOSTICS_TOPIC"),
            "armed_away_topic": env.get("TELENOT_ARMED_AWAY_TOPIC"),
            "armed_home_topic": env.get("TELENOT_ARMED_HOME_TOPIC"),
            "hass_topic": env.get("TELENOT_HASS_TOPIC"),
            "metrics_port": env.get("TELENOT_METRICS_PORT"),
        }
        if "TELENOT_HASS_DISCOVERY" in env:
            values["hass_discovery"] = env["TELENOT_HASS_DISCOVERY"].casefold() in YES_ANSWER
        if "TELENOT_DISCOVER" in env:
            values["discover"] = env["TELENOT_DISCOVER"].casefold() in YES_ANSWER
        return cls.model_validate({k: v for k, v in values.items() if v not in (None, "")})


@dataclass
class ReadinessGate:
    """Tracks whether the panel acknowledged the last outbound frame.

    Set when a security-area block arrives, cleared on a confirmation ACK.
    Owned by the bridge and shared by reference with the synchronizer and the
    command path.
    """

    ready: bool = False

    def set(self) -> None:
        self.ready = True

    def clear(self) -> None:
        self.ready = False


class PublishSink(Protocol):
    """Where the synchronizer sends its facts (the MQTT client in production)."""

    async def publish(self, topic: str, payload: str | bytes | dict[str, object], retain: bool = True) -> bool:
        """Publish, returning False when the broker rejected or was unreachable."""
        ...


class AreaController(Protocol):
    """Arming operations for one security area, addressed 1..8."""

    async def disarm_area(self, address: int) -> None: ...

    async def int_arm_area(self, address: int) -> None: ...

    async def ext_arm_area(self, address: int) -> None: ...

    async def reset_arm_area(self, address: int) -> None: ...
