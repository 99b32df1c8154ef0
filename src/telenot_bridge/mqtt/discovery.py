"""MQTT discovery helpers for Home Assistant sensor registration.

One retained ``binary_sensor`` config per cataloged position, grouped into one
Home Assistant device per location.
"""

from __future__ import annotations

import re
import unicodedata
from collections import defaultdict
from typing import Protocol

from telenot_bridge.logging_abstraction import get_logger
from telenot_bridge.structs import SensorCatalog, SensorPosition

logger = get_logger(__name__)

DEVICE_VENDOR = "Telenot"
DEVICE_MODEL = "Telenot Alarm System"
VIA_DEVICE = "telenot_zentrale"

DEVICE_CLASSES: dict[str, str] = {
    "bewegungsmelder": "motion",
    "magnetkontakt": "window",
    "schliesskontakt": "door",
    "rauchmelder": "smoke",
    "wassermelder": "moisture",
    "ueberfallmelder": "safety",
    "gehaeuse": "tamper",
    "signalgeber": "sound",
    "sabotage": "tamper",
    "systemstatus": "problem",
    "sicherung": "safety",
}

ICONS: dict[str, str] = {
    "bewegungsmelder": "mdi:motion-sensor",
    "magnetkontakt": "mdi:window-open",
    "schliesskontakt": "mdi:door",
    "rauchmelder": "mdi:smoke-detector",
    "wassermelder": "mdi:water",
    "ueberfallmelder": "mdi:alert",
    "gehaeuse": "mdi:shield-home",
    "signalgeber": "mdi:bullhorn",
    "sabotage": "mdi:shield-alert",
    "systemstatus": "mdi:home-alert",
    "sicherung": "mdi:shield-check",
}
DEFAULT_ICON = "mdi:help-circle"


class DiscoveryPublisher(Protocol):
    @property
    def is_connected(self) -> bool: ...

    async def publish(self, topic: str, payload: str | bytes | dict[str, object], retain: bool = True) -> bool: ...


def slugify(text: str) -> str:
    """
    Convert text to a slug suitable for entity IDs.
    E.g., 'Erdgeschoss Flur' -> 'erdgeschoss_flur'
    """
    # Normalize unicode characters
    text = unicodedata.normalize("NFKD", text)
    # Remove non-ASCII characters
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    # Collapse everything that is not a letter or digit into single underscores
    text = re.sub(r"[^a-z0-9]+", "_", text)
    return text.strip("_")


def device_id(location: str) -> str:
    return f"telenot_{slugify(location)}"


def entity_id(position: SensorPosition) -> str:
    """``<location>_<type>_<name>``, with a leading "Telenot " dropped from the name."""
    location = slugify(position.location or "unknown")
    name = re.sub(r"^telenot\s+", "", (position.name_ha or "unknown"), flags=re.IGNORECASE)
    sensor_type = (position.sensor_type or "unknown").lower()
    return f"{location}_{sensor_type}_{slugify(name)}"


def is_discoverable(position: SensorPosition) -> bool:
    return all(
        value is not None
        for value in (position.name_ha, position.sensor_type, position.topic, position.location, position.hex)
    )


class DiscoveryHelper:
    """Helper class for Home Assistant MQTT discovery."""

    lp: str = "hass:"

    def __init__(self, publisher: DiscoveryPublisher, catalog: SensorCatalog, discovery_prefix: str = "homeassistant"):
        self.publisher: DiscoveryPublisher = publisher
        self.catalog: SensorCatalog = catalog
        self.discovery_prefix: str = discovery_prefix

    def config_topic(self, position: SensorPosition) -> str:
        return f"{self.discovery_prefix}/binary_sensor/telenot/{entity_id(position)}/config"

    @staticmethod
    def device_info(location: str) -> dict[str, object]:
        return {
            "identifiers": [device_id(location)],
            "name": location,
            "model": DEVICE_MODEL,
            "manufacturer": DEVICE_VENDOR,
            "suggested_area": location,
            "via_device": VIA_DEVICE,
        }

    def sensor_config(self, position: SensorPosition) -> dict[str, object]:
        sensor_type = (position.sensor_type or "").lower()
        return {
            "name": position.name_ha,
            "unique_id": entity_id(position),
            "device_class": DEVICE_CLASSES.get(sensor_type),
            "state_topic": position.topic,
            "value_template": "{{ value_json.state }}",
            "payload_on": "ON",
            "payload_off": "OFF",
            "icon": ICONS.get(sensor_type, DEFAULT_ICON),
            "json_attributes_topic": position.topic,
            "json_attributes_template": "{{ value_json | tojson }}",
            "device": self.device_info(position.location or "unknown"),
            "enabled_by_default": True,
        }

    async def publish_all(self) -> int:
        """Publish configs for every discoverable position; returns how many were published."""
        lp = f"{self.lp}publish_all:"
        if not self.publisher.is_connected:
            logger.warning("%s MQTT not connected, skipping discovery", lp)
            return 0

        positions = self.catalog.all_positions()
        valid = [pos for pos in positions if is_discoverable(pos)]
        if len(valid) != len(positions):
            logger.warning("%s Skipped %d invalid sensors", lp, len(positions) - len(valid))

        by_location: dict[str, list[SensorPosition]] = defaultdict(list)
        for position in valid:
            by_location[position.location or "unknown"].append(position)

        published = 0
        for location, location_positions in by_location.items():
            logger.info(
                "%s Processing location: %s (%d sensors) [Device ID: %s]",
                lp,
                location,
                len(location_positions),
                device_id(location),
            )
            for position in location_positions:
                topic = self.config_topic(position)
                if await self.publisher.publish(topic, self.sensor_config(position), retain=True):
                    published += 1
                    logger.debug("%s Published %s -> %s", lp, position.name_ha, topic)
                else:
                    logger.error("%s Failed to publish sensor %s", lp, position.name_ha)

        logger.info(
            "%s Discovery completed: %d locations, %d of %d sensors published",
            lp,
            len(by_location),
            published,
            len(valid),
        )
        return published
