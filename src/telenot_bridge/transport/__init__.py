"""TCP transport and the reconnection state machine shared with MQTT."""

from .reconnect import ConnectionState, ReconnectionStateMachine, TransportState
from .socket_client import TelenotSocket

__all__ = ["ConnectionState", "ReconnectionStateMachine", "TelenotSocket", "TransportState"]
