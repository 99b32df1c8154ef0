"""Asyncio TCP client for the panel's serial-to-Ethernet converter."""

from __future__ import annotations

from typing import TypeAlias

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

from telenot_bridge.const import (
    SOCKET_START_TASK_NAME,
    TELENOT_IDLE_TIMEOUT,
    TELENOT_RECONNECT_ATTEMPTS,
    TELENOT_RECONNECT_DELAY,
)
from telenot_bridge.logging_abstraction import get_logger
from telenot_bridge.protocol.codec import bytes_to_hex
from telenot_bridge.protocol.exceptions import NotConnectedError, TransportError, TransportWriteError
from telenot_bridge.protocol.framer import FrameSplitter
from telenot_bridge.transport.reconnect import ReconnectionStateMachine

logger = get_logger(__name__)

FrameCallback: TypeAlias = Callable[[bytes], Awaitable[bytes | None]]


class TelenotSocket:
    """TCP link to the converter with idle timeout and bounded reconnection.

    Each complete frame is handed to ``on_frame`` and awaited before the next
    read, so frames are processed strictly in arrival order. A non-empty
    return value is written back to the panel.
    """

    lp: str = "tcp:"

    def __init__(
        self,
        host: str,
        port: int,
        on_frame: FrameCallback,
        idle_timeout: float = TELENOT_IDLE_TIMEOUT,
        reconnect_attempts: int = TELENOT_RECONNECT_ATTEMPTS,
        reconnect_delay: float = TELENOT_RECONNECT_DELAY,
        connect_timeout: float = 10.0,
        io_timeout: float = 5.0,
        max_read_size: int = 4096,
    ) -> None:
        self.host: str = host
        self.port: int = port
        self.on_frame: FrameCallback = on_frame
        self.idle_timeout: float = idle_timeout
        self.connect_timeout: float = connect_timeout
        self.io_timeout: float = io_timeout
        self.max_read_size: int = max_read_size
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self.read_task: asyncio.Task[None] | None = None
        self.framer: FrameSplitter = FrameSplitter()
        self.reconnect: ReconnectionStateMachine = ReconnectionStateMachine(
            "tcp",
            self.connect,
            max_attempts=reconnect_attempts,
            delay=reconnect_delay,
        )
        self._connected: bool = False
        self._closing: bool = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def start(self) -> bool:
        """Initial connect; a failure hands over to the reconnection machine."""
        if await self.connect():
            return True
        _ = self.reconnect.connection_lost("initial connect failed")
        return False

    async def connect(self) -> bool:
        lp = f"{self.lp}connect:"
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout,
            )
        except TimeoutError:
            logger.warning(
                "%s Connection to %s:%d timed out",
                lp,
                self.host,
                self.port,
                extra={"host": self.host, "port": self.port, "error": "timeout"},
            )
            return False
        except OSError as e:
            logger.warning(
                "%s Connection to %s:%d failed: %s",
                lp,
                self.host,
                self.port,
                e,
                extra={"host": self.host, "port": self.port, "error": str(e)},
            )
            return False

        self._connected = True
        self._closing = False
        self.framer.reset()
        self.reconnect.mark_connected()
        logger.info("%s Connected to TCP converter at %s:%d", lp, self.host, self.port)
        self.read_task = asyncio.create_task(self._read_loop(), name=SOCKET_START_TASK_NAME)
        return True

    async def _read_loop(self) -> None:
        lp = f"{self.lp}read:"
        assert self.reader is not None, "reader must be initialized"
        reason = "closed"
        try:
            while True:
                try:
                    data = await asyncio.wait_for(self.reader.read(self.max_read_size), timeout=self.idle_timeout)
                except TimeoutError:
                    logger.warning("%s Socket connection timed out. Ending connection...", lp)
                    reason = "idle timeout"
                    break
                if not data:
                    logger.info("%s Socket connection closed", lp)
                    break

                logger.debug("%s Processing hex string: %s", lp, bytes_to_hex(data))
                for frame in self.framer.feed(data):
                    response = await self.on_frame(frame)
                    if response:
                        logger.debug("%s Sending response: %s", lp, bytes_to_hex(response))
                        await self.send(response)
        except TransportError as e:
            logger.error("%s Could not answer the panel: %s", lp, e)
            reason = e.reason
        except OSError as e:
            logger.error("%s Socket error: %s", lp, e)
            reason = str(e)

        await self._drop_connection()
        if not self._closing:
            _ = self.reconnect.connection_lost(reason)

    async def send(self, data: bytes) -> None:
        """Write a frame to the panel.

        Raises:
            NotConnectedError: the link is down (nothing is queued)
            TransportWriteError: the write or drain failed

        """
        lp = f"{self.lp}send:"
        if not self._connected or self.writer is None:
            raise NotConnectedError("tcp")
        try:
            self.writer.write(data)
            await asyncio.wait_for(self.writer.drain(), timeout=self.io_timeout)
        except (OSError, TimeoutError) as e:
            logger.error("%s Error writing data to socket: %s", lp, e)
            raise TransportWriteError("tcp", str(e) or type(e).__name__) from e
        logger.debug("%s Data successfully written to socket: %s", lp, bytes_to_hex(data))

    async def _drop_connection(self) -> None:
        self._connected = False
        writer, self.writer, self.reader = self.writer, None, None
        if writer is None:
            return
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()

    async def close(self) -> None:
        lp = f"{self.lp}close:"
        self._closing = True
        await self.reconnect.cancel()
        if self.read_task and not self.read_task.done() and self.read_task is not asyncio.current_task():
            _ = self.read_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.read_task
        self.read_task = None
        was_connected = self._connected
        await self._drop_connection()
        if was_connected:
            logger.info("%s Socket connection closed", lp)
