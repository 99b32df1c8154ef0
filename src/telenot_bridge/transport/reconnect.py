"""Bounded reconnection state machine shared by the TCP and MQTT transports.

Each transport owns one machine. A lost connection starts a single
reconnection task that retries ``max_attempts`` times with a fixed delay.
Loss events reported while that task is running are ignored. Once the cap is
reached the machine logs one CRITICAL message and stays in ``FAILED``; only
an explicit ``reset()`` re-arms it.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from telenot_bridge.logging_abstraction import get_logger
from telenot_bridge.metrics import record_connection_state, record_reconnection

logger = get_logger(__name__)


class ConnectionState(Enum):
    """Connection state enumeration."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


@dataclass
class TransportState:
    name: str
    max_attempts: int
    state: ConnectionState = ConnectionState.DISCONNECTED
    attempt: int = 0
    in_flight_reconnect: bool = False
    exhausted: bool = False


class ReconnectionStateMachine:
    def __init__(
        self,
        name: str,
        connect: Callable[[], Awaitable[bool]],
        max_attempts: int,
        delay: float,
        on_exhausted: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the machine.

        Args:
            name: Transport name used in logs ("tcp", "mqtt")
            connect: Coroutine factory returning True on a successful connect
            max_attempts: Attempts per loss before giving up
            delay: Seconds to wait before every attempt
            on_exhausted: Called once when the cap is reached

        """
        self.lp: str = f"reconnect[{name}]:"
        self.status: TransportState = TransportState(name=name, max_attempts=max_attempts)
        self.delay: float = delay
        self._connect: Callable[[], Awaitable[bool]] = connect
        self._on_exhausted: Callable[[], None] | None = on_exhausted
        self.reconnect_task: asyncio.Task[bool] | None = None

    @property
    def state(self) -> ConnectionState:
        return self.status.state

    @property
    def exhausted(self) -> bool:
        return self.status.exhausted

    @property
    def in_flight(self) -> bool:
        return self.status.in_flight_reconnect

    def _set_state(self, state: ConnectionState) -> None:
        self.status.state = state
        record_connection_state(self.status.name, state.value)

    def mark_connected(self) -> None:
        self._set_state(ConnectionState.CONNECTED)
        self.status.attempt = 0

    def connection_lost(self, reason: str = "unknown") -> bool:
        """Start a reconnection sequence.

        Returns:
            True when a new sequence was started, False when the event was ignored

        """
        lp = f"{self.lp}connection_lost:"
        if self.status.exhausted:
            logger.debug("%s Reconnection attempts exhausted, ignoring loss", lp, extra={"reason": reason})
            return False
        if self.status.in_flight_reconnect:
            logger.debug("%s Reconnection already in progress", lp, extra={"reason": reason})
            return False

        logger.info("%s Triggering reconnection", lp, extra={"reason": reason})
        self._set_state(ConnectionState.DISCONNECTED)
        self.status.in_flight_reconnect = True
        self.reconnect_task = asyncio.create_task(self._reconnect(), name=f"{self.status.name}_reconnect")
        return True

    async def _reconnect(self) -> bool:
        lp = f"{self.lp}reconnect:"
        status = self.status
        try:
            while status.attempt < status.max_attempts:
                status.attempt += 1
                self._set_state(ConnectionState.CONNECTING)
                logger.info("%s Attempting to reconnect (%d/%d)...", lp, status.attempt, status.max_attempts)
                await asyncio.sleep(self.delay)
                # connect() may already mark the transport connected and zero the counter
                attempt = status.attempt
                try:
                    connected = await self._connect()
                except Exception:
                    logger.exception("%s Reconnect attempt %d raised", lp, attempt)
                    connected = False
                record_reconnection(status.name, "success" if connected else "failed")

                if connected:
                    logger.info("%s Reconnection successful after %d attempt(s)", lp, attempt)
                    self.mark_connected()
                    return True
                self._set_state(ConnectionState.DISCONNECTED)

            status.exhausted = True
            self._set_state(ConnectionState.FAILED)
            logger.critical(
                "%s Max reconnection attempts reached. Please check the connection manually.",
                lp,
                extra={"transport": status.name, "attempts": status.attempt},
            )
            if self._on_exhausted is not None:
                self._on_exhausted()
            return False
        finally:
            status.in_flight_reconnect = False

    def reset(self) -> None:
        """Re-arm a machine that gave up (manual intervention)."""
        self.status.exhausted = False
        self.status.attempt = 0
        if self.status.state is ConnectionState.FAILED:
            self._set_state(ConnectionState.DISCONNECTED)

    async def cancel(self) -> None:
        if self.reconnect_task and not self.reconnect_task.done():
            _ = self.reconnect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.reconnect_task
        self.reconnect_task = None
        self.status.in_flight_reconnect = False
