"""Outbound arming commands: frame encoding and MQTT command dispatch."""

from .encoder import DISARM, EXT_ARM, INT_ARM, RESET, CommandEncoder
from .handler import CommandHandler

__all__ = ["DISARM", "EXT_ARM", "INT_ARM", "RESET", "CommandEncoder", "CommandHandler"]
