"""Metrics module."""

from .registry import (
    record_command,
    record_connection_state,
    record_frame_error,
    record_frame_received,
    record_reconnection,
    record_sensor_publish,
    start_metrics_server,
)

__all__ = [
    "record_command",
    "record_connection_state",
    "record_frame_error",
    "record_frame_received",
    "record_reconnection",
    "record_sensor_publish",
    "start_metrics_server",
]
