"""MQTT transport and Home Assistant discovery."""

from .client import MQTTClient
from .discovery import DiscoveryHelper, slugify

__all__ = ["DiscoveryHelper", "MQTTClient", "slugify"]
