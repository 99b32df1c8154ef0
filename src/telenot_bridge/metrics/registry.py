"""Prometheus metrics registry for the Telenot bridge."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Gauge,
    start_http_server,
)

telenot_frames_received_total: Final = Counter(  # type: ignore[assignment]
    "telenot_frames_received_total",
    "Total frames received from the panel",
    ["msg_type"],
)

telenot_frame_errors_total: Final = Counter(  # type: ignore[assignment]
    "telenot_frame_errors_total",
    "Total frames whose handling raised",
)

telenot_sensor_publish_total: Final = Counter(  # type: ignore[assignment]
    "telenot_sensor_publish_total",
    "Total sensor state publishes",
    ["outcome"],
)

telenot_commands_total: Final = Counter(  # type: ignore[assignment]
    "telenot_commands_total",
    "Total commands received over MQTT",
    ["command", "outcome"],
)

telenot_reconnection_total: Final = Counter(  # type: ignore[assignment]
    "telenot_reconnection_total",
    "Total reconnection attempts",
    ["transport", "outcome"],
)

telenot_connection_state: Final = Gauge(  # type: ignore[assignment]
    "telenot_connection_state",
    "Current connection state",
    ["transport", "state"],
)

CONNECTION_STATES: Final = ("disconnected", "connecting", "connected", "failed")

_server_state = {"started": False}
_server_lock = threading.Lock()


def start_metrics_server(port: int = 9400) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_frame_received(msg_type: str) -> None:
    telenot_frames_received_total.labels(msg_type=msg_type).inc()  # type: ignore[no-untyped-call]


def record_frame_error() -> None:
    telenot_frame_errors_total.inc()  # type: ignore[no-untyped-call]


def record_sensor_publish(outcome: str) -> None:
    """Record a sensor publish ("published", "failed" or "duplicate")."""
    telenot_sensor_publish_total.labels(outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_command(command: str, outcome: str) -> None:
    telenot_commands_total.labels(command=command, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_reconnection(transport: str, outcome: str) -> None:
    telenot_reconnection_total.labels(transport=transport, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_connection_state(transport: str, state: str) -> None:
    """Record connection state change."""
    # Set gauge to 1 for current state, 0 for all others
    for s in CONNECTION_STATES:
        value = 1 if s == state else 0
        telenot_connection_state.labels(transport=transport, state=s).set(value)  # type: ignore[no-untyped-call]
