"""Wires the TCP link, the synchronizer, the command path and MQTT together."""

from __future__ import annotations

import asyncio

from telenot_bridge.commands.encoder import CommandEncoder
from telenot_bridge.commands.handler import CommandHandler
from telenot_bridge.logging_abstraction import get_logger
from telenot_bridge.mqtt.client import MQTTClient
from telenot_bridge.mqtt.discovery import DiscoveryHelper
from telenot_bridge.protocol.codec import bytes_to_hex
from telenot_bridge.protocol.exceptions import NotConnectedError
from telenot_bridge.state.synchronizer import StateSynchronizer
from telenot_bridge.state.virtual_state import VirtualStateMapper
from telenot_bridge.structs import BridgeEnv, ReadinessGate, SensorCatalog
from telenot_bridge.transport.socket_client import TelenotSocket

logger = get_logger(__name__)


class TelenotBridge:
    """Runs both flows of the bridge.

    Telemetry: TCP frame -> StateSynchronizer -> MQTT. Control: MQTT command ->
    CommandHandler -> this object's ``*_area`` methods -> TCP write. The two
    flows share only the virtual mode mapper and the readiness gate.
    """

    lp: str = "bridge:"

    def __init__(
        self,
        catalog: SensorCatalog,
        env: BridgeEnv | None = None,
        mqtt_client: MQTTClient | None = None,
        socket: TelenotSocket | None = None,
    ) -> None:
        self.env: BridgeEnv = env or BridgeEnv()
        self.catalog: SensorCatalog = catalog
        self.readiness: ReadinessGate = ReadinessGate()
        self.virtual_state: VirtualStateMapper = VirtualStateMapper()
        self.mqtt: MQTTClient = mqtt_client or MQTTClient(self.env)
        self.synchronizer: StateSynchronizer = StateSynchronizer(
            catalog,
            self.mqtt,
            self.virtual_state,
            self.readiness,
            env=self.env,
        )
        self.socket: TelenotSocket = socket or TelenotSocket(
            self.env.telenot_host,
            self.env.telenot_port,
            self.synchronizer.handle_frame,
            idle_timeout=self.env.idle_timeout,
            reconnect_attempts=self.env.reconnect_attempts,
            reconnect_delay=self.env.reconnect_delay,
        )
        self.commands: CommandHandler = CommandHandler(self, self.virtual_state)
        self.discovery: DiscoveryHelper = DiscoveryHelper(self.mqtt, catalog, self.env.hass_topic)
        self._stop_event: asyncio.Event = asyncio.Event()

    async def send_command(self, frame: bytes, action: str = "Command") -> None:
        """Write a command frame to the panel.

        Raises:
            NotConnectedError: the TCP link is down
            TransportWriteError: the write failed

        """
        lp = f"{self.lp}send_command:"
        hex_frame = bytes_to_hex(frame)
        if not self.socket.is_connected:
            logger.error("%s Cannot send %s: Socket is not connected", lp, action)
            raise NotConnectedError("tcp")

        logger.info("%s Sending %s: %s", lp, action, hex_frame, extra={"panel_ready": self.readiness.ready})
        await self.socket.send(frame)
        logger.info("%s %s sent successfully: %s", lp, action, hex_frame)

    async def disarm_area(self, address: int) -> None:
        await self.send_command(CommandEncoder.disarm(address), "disarmArea")

    async def int_arm_area(self, address: int) -> None:
        await self.send_command(CommandEncoder.arm_home(address), "intArmArea")

    async def ext_arm_area(self, address: int) -> None:
        await self.send_command(CommandEncoder.arm_away(address), "extArmArea")

    async def reset_arm_area(self, address: int) -> None:
        await self.send_command(CommandEncoder.reset(address), "resetArmArea")

    async def _on_publish_request(self, _topic: str, _payload: bytes) -> None:
        logger.verbose("%s Publishing current states...", self.lp)
        _ = await self.synchronizer.publish_alarm_state()

    async def _on_command(self, _topic: str, payload: bytes) -> None:
        _ = await self.commands.handle_command(payload)

    async def _publish_discovery(self) -> None:
        _ = await self.discovery.publish_all()

    async def start(self) -> None:
        lp = f"{self.lp}start:"
        self.mqtt.subscribe_handler(self.env.publish_topic, self._on_publish_request)
        self.mqtt.subscribe_handler(self.env.command_topic, self._on_command)
        if self.env.hass_discovery:
            self.mqtt.add_connect_callback(self._publish_discovery)

        logger.info("%s Starting MQTT client and TCP link...", lp)
        _ = await self.mqtt.start()
        _ = await self.socket.start()
        _ = await self.synchronizer.publish_alarm_state()
        logger.info("%s Telenot bridge initialized", lp)

    async def run(self) -> None:
        """Start and block until ``stop()`` is called."""
        await self.start()
        _ = await self._stop_event.wait()

    async def stop(self) -> None:
        lp = f"{self.lp}stop:"
        logger.info("%s Shutting down Telenot bridge...", lp)
        await self.socket.close()
        await self.mqtt.stop()
        self._stop_event.set()
