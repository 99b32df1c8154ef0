import logging
import os

from telenot_bridge import __version__

__all__ = [
    "ACK_FRAME",
    "COMMAND_FRAME_PREFIX",
    "CONTENT_AREA_OFFSETS",
    "DEVICE_LWT_MSG",
    "FOREIGN_LOG_FORMATTER",
    "MQTT_CLIENT_START_TASK_NAME",
    "SOCKET_START_TASK_NAME",
    "TELENOT_ARMED_AWAY_TOPIC",
    "TELENOT_ARMED_HOME_TOPIC",
    "TELENOT_BIRTH_MSG",
    "TELENOT_COMMAND_TOPIC",
    "TELENOT_CONFIG_FILE_PATH",
    "TELENOT_DEBUG",
    "TELENOT_DIAGNOSTICS_TOPIC",
    "TELENOT_DISCOVER",
    "TELENOT_DISCOVER_LOG_FILE",
    "TELENOT_HASS_DISCOVERY",
    "TELENOT_HASS_TOPIC",
    "TELENOT_HOST",
    "TELENOT_IDLE_TIMEOUT",
    "TELENOT_LOG_FORMAT",
    "TELENOT_LOG_HUMAN_OUTPUT",
    "TELENOT_LOG_JSON_FILE",
    "TELENOT_METRICS_PORT",
    "TELENOT_MQTT_CLIENT_ID",
    "TELENOT_MQTT_HOST",
    "TELENOT_MQTT_PASS",
    "TELENOT_MQTT_PORT",
    "TELENOT_MQTT_RECONNECT_ATTEMPTS",
    "TELENOT_MQTT_RECONNECT_DELAY",
    "TELENOT_MQTT_USER",
    "TELENOT_PORT",
    "TELENOT_PUBLISH_TOPIC",
    "TELENOT_RECONNECT_ATTEMPTS",
    "TELENOT_RECONNECT_DELAY",
    "TELENOT_STATE_TOPIC",
    "TELENOT_STATUS_TOPIC",
    "TELENOT_VERSION",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
TELENOT_VERSION: str = __version__

FOREIGN_LOG_FORMATTER = logging.Formatter(
    "%(asctime)s.%(msecs)d %(levelname)s <%(name)s> [%(module)s:%(lineno)d] > %(message)s",
    "%m/%d/%y %H:%M:%S",
)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).casefold() in YES_ANSWER


# Wire constants
ACK_FRAME: bytes = bytes.fromhex("6802026800020216")
COMMAND_FRAME_PREFIX: str = "680909687301050200"
CONTENT_AREA_OFFSETS: dict[str, int] = {
    "SICHERUNGSBEREICH": 10,
    "SICHERUNGSBEREICH2": 10,
    "MELDEBEREICHE": 10,
    "MELDEGRUPPEN": 12,
}

# TCP converter
TELENOT_HOST: str = os.environ.get("TELENOT_HOST", "localhost")
TELENOT_PORT: int = _env_int("TELENOT_PORT", 1234)
TELENOT_IDLE_TIMEOUT: float = _env_float("TELENOT_IDLE_TIMEOUT", 15.0)
TELENOT_RECONNECT_ATTEMPTS: int = _env_int("TELENOT_RECONNECT_ATTEMPTS", 5)
TELENOT_RECONNECT_DELAY: float = _env_float("TELENOT_RECONNECT_DELAY", 5.0)

# MQTT broker
TELENOT_MQTT_HOST: str = os.environ.get("TELENOT_MQTT_HOST", "localhost")
TELENOT_MQTT_PORT: int = _env_int("TELENOT_MQTT_PORT", 1883)
TELENOT_MQTT_USER: str | None = os.environ.get("TELENOT_MQTT_USER") or None
TELENOT_MQTT_PASS: str | None = os.environ.get("TELENOT_MQTT_PASS") or None
TELENOT_MQTT_CLIENT_ID: str = os.environ.get("TELENOT_MQTT_CLIENT_ID", "telenot_bridge")
TELENOT_MQTT_RECONNECT_ATTEMPTS: int = _env_int("TELENOT_MQTT_RECONNECT_ATTEMPTS", 10)
TELENOT_MQTT_RECONNECT_DELAY: float = _env_float("TELENOT_MQTT_RECONNECT_DELAY", 5.0)

# Topics
TELENOT_PUBLISH_TOPIC: str = os.environ.get("TELENOT_PUBLISH_TOPIC", "telenot/alarm")
TELENOT_COMMAND_TOPIC: str = os.environ.get("TELENOT_COMMAND_TOPIC", "telenot/alarm/command")
TELENOT_STATE_TOPIC: str = os.environ.get("TELENOT_STATE_TOPIC", "telenot/alarm/state")
TELENOT_STATUS_TOPIC: str = os.environ.get("TELENOT_STATUS_TOPIC", "telenot/alarm/status")
TELENOT_DIAGNOSTICS_TOPIC: str = os.environ.get("TELENOT_DIAGNOSTICS_TOPIC", "telenot/alarm/diagnostics")
TELENOT_ARMED_AWAY_TOPIC: str = os.environ.get(
    "TELENOT_ARMED_AWAY_TOPIC",
    "telenot/alarm/kg/ema_zentrale/extern_scharf",
)
TELENOT_ARMED_HOME_TOPIC: str = os.environ.get(
    "TELENOT_ARMED_HOME_TOPIC",
    "telenot/alarm/kg/ema_zentrale/intern_scharf",
)
TELENOT_BIRTH_MSG: str = "online"
DEVICE_LWT_MSG: bytes = b"offline"

# Home Assistant
TELENOT_HASS_DISCOVERY: bool = _env_flag("TELENOT_HASS_DISCOVERY")
TELENOT_HASS_TOPIC: str = os.environ.get("TELENOT_HASS_TOPIC", "homeassistant")

# Behaviour / logging
TELENOT_DISCOVER: bool = _env_flag("TELENOT_DISCOVER")
TELENOT_DEBUG: bool = _env_flag("TELENOT_DEBUG")
TELENOT_CONFIG_FILE_PATH: str = os.environ.get("TELENOT_CONFIG_FILE", "/config/telenot.yaml")
TELENOT_LOG_FORMAT: str = os.environ.get("TELENOT_LOG_FORMAT", "human")
TELENOT_LOG_JSON_FILE: str | None = os.environ.get("TELENOT_LOG_JSON_FILE") or None
TELENOT_LOG_HUMAN_OUTPUT: str = os.environ.get("TELENOT_LOG_HUMAN_OUTPUT", "stdout")
TELENOT_DISCOVER_LOG_FILE: str | None = os.environ.get("TELENOT_DISCOVER_LOG_FILE") or None
# 0 disables the Prometheus endpoint
TELENOT_METRICS_PORT: int = _env_int("TELENOT_METRICS_PORT", 0)

SOCKET_START_TASK_NAME = "telenot_socket_START"
MQTT_CLIENT_START_TASK_NAME = "mqtt_client_START"
