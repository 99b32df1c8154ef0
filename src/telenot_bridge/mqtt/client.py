"""MQTT client core for the Telenot bridge.

Owns the aiomqtt connection, the retained online/offline status, topic
subscriptions with per-topic handlers, and bounded reconnection.
"""

from __future__ import annotations

from typing import TypeAlias

import asyncio
import contextlib
import json
from collections.abc import Awaitable, Callable

import aiomqtt

from telenot_bridge.const import DEVICE_LWT_MSG, MQTT_CLIENT_START_TASK_NAME, TELENOT_BIRTH_MSG
from telenot_bridge.logging_abstraction import get_logger
from telenot_bridge.structs import BridgeEnv
from telenot_bridge.transport.reconnect import ReconnectionStateMachine

logger = get_logger(__name__)

MessageHandler: TypeAlias = Callable[[str, bytes], Awaitable[None]]
ConnectCallback: TypeAlias = Callable[[], Awaitable[None]]

# MQTT v3.1.1 CONNACK 4 / MQTT v5 reason 134
_BAD_CREDENTIALS_MARKERS = ("code:4", "code:134", "code:135")


class MQTTClient:
    """MQTT transport with bool-returning publishes and serialized per-topic ordering."""

    lp: str = "mqtt:"

    def __init__(self, env: BridgeEnv | None = None) -> None:
        self.env: BridgeEnv = env or BridgeEnv()
        self.client: aiomqtt.Client | None = None
        self.receiver_task: asyncio.Task[None] | None = None
        self._connected: bool = False
        self._stopping: bool = False
        self._handlers: dict[str, MessageHandler] = {}
        self._connect_callbacks: list[ConnectCallback] = []
        self._topic_locks: dict[str, asyncio.Lock] = {}
        self.reconnect: ReconnectionStateMachine = ReconnectionStateMachine(
            "mqtt",
            self.connect,
            max_attempts=self.env.mqtt_reconnect_attempts,
            delay=self.env.mqtt_reconnect_delay,
        )

    @property
    def is_connected(self) -> bool:
        """Check if MQTT client is connected to the broker."""
        return self._connected

    def subscribe_handler(self, topic: str, handler: MessageHandler) -> None:
        """Route messages on ``topic`` to ``handler`` (subscribed on every connect)."""
        self._handlers[topic] = handler

    def add_connect_callback(self, callback: ConnectCallback) -> None:
        """Run ``callback`` after every successful (re)connect, e.g. Home Assistant discovery."""
        self._connect_callbacks.append(callback)

    def _build_client(self) -> aiomqtt.Client:
        lwt = aiomqtt.Will(topic=self.env.status_topic, payload=DEVICE_LWT_MSG, qos=1, retain=True)
        return aiomqtt.Client(
            hostname=self.env.mqtt_host,
            port=self.env.mqtt_port,
            username=self.env.mqtt_user,
            password=self.env.mqtt_pass,
            identifier=self.env.mqtt_client_id,
            will=lwt,
        )

    async def start(self) -> bool:
        """Initial connect; a failure hands over to the reconnection machine."""
        self._stopping = False
        if await self.connect():
            return True
        _ = self.reconnect.connection_lost("initial connect failed")
        return False

    async def connect(self) -> bool:
        lp = f"{self.lp}connect:"
        self._connected = False
        await self._discard_client()
        logger.debug("%s Connecting to MQTT broker %s:%s...", lp, self.env.mqtt_host, self.env.mqtt_port)
        self.client = self._build_client()
        try:
            _ = await self.client.__aenter__()
        except aiomqtt.MqttError as mqtt_err_exc:
            if any(marker in str(mqtt_err_exc) for marker in _BAD_CREDENTIALS_MARKERS):
                logger.error(
                    "%s Bad username or password, check your MQTT credentials (username: %s)",
                    lp,
                    self.env.mqtt_user,
                )
            else:
                logger.warning("%s Connection to MQTT broker failed: %s", lp, mqtt_err_exc)
            self.client = None
            return False

        self._connected = True
        logger.info("%s Connected to MQTT broker: %s port: %s", lp, self.env.mqtt_host, self.env.mqtt_port)
        if not await self.send_birth_msg():
            return False

        try:
            for topic in self._handlers:
                await self.client.subscribe(topic, qos=1)
        except aiomqtt.MqttError as e:
            logger.warning("%s Subscribe failed: %s", lp, e)
            self._connected = False
            return False
        logger.debug("%s Subscribed to MQTT topics: %s", lp, list(self._handlers))

        # the attempt counter is only cleared once the session is fully usable
        self.reconnect.mark_connected()
        self.receiver_task = asyncio.create_task(self._receiver(), name=MQTT_CLIENT_START_TASK_NAME)
        for callback in self._connect_callbacks:
            try:
                await callback()
            except Exception:
                logger.exception("%s Connect callback failed", lp)
        return True

    async def _receiver(self) -> None:
        lp = f"{self.lp}rcv:"
        assert self.client is not None, "client must be initialized"
        reason = "message stream ended"
        try:
            async for message in self.client.messages:
                topic = message.topic.value
                payload = message.payload
                if isinstance(payload, str):
                    payload = payload.encode()
                elif not isinstance(payload, bytes | bytearray):
                    payload = b"" if payload is None else str(payload).encode()
                handler = self._handlers.get(topic)
                if handler is None:
                    logger.debug("%s No handler for topic %s", lp, topic)
                    continue
                logger.debug("%s %s <- %r", lp, topic, payload)
                try:
                    await handler(topic, bytes(payload))
                except Exception:
                    logger.exception("%s Handler for %s failed", lp, topic)
        except aiomqtt.MqttError as msg_err:
            logger.warning("%s MQTT error: %s", lp, msg_err)
            reason = str(msg_err)

        self._connected = False
        if not self._stopping:
            logger.info("%s MQTT connection closed", lp)
            _ = self.reconnect.connection_lost(reason)

    def _topic_lock(self, topic: str) -> asyncio.Lock:
        lock = self._topic_locks.get(topic)
        if lock is None:
            lock = self._topic_locks[topic] = asyncio.Lock()
        return lock

    async def publish(
        self,
        topic: str,
        payload: str | bytes | dict[str, object],
        retain: bool = True,
        qos: int = 1,
    ) -> bool:
        """Publish a message to the MQTT broker.

        Dicts are serialized to JSON. Returns False when disconnected or when
        the broker rejected the publish; publishes to the same topic never
        overtake each other.
        """
        lp = f"{self.lp}publish:"
        if not self._connected or self.client is None:
            logger.debug("%s Not connected, dropping publish to %s", lp, topic)
            return False

        if isinstance(payload, dict):
            data = json.dumps(payload).encode()
        elif isinstance(payload, str):
            data = payload.encode()
        else:
            data = payload

        async with self._topic_lock(topic):
            try:
                await self.client.publish(topic, data, qos=qos, retain=retain)
            except aiomqtt.MqttCodeError as mqtt_code_exc:
                logger.warning("%s [MqttCodeError] -> %s", lp, mqtt_code_exc)
                self._connected = False
            except aiomqtt.MqttError as mqtt_err:
                logger.warning("%s [MqttError] -> %s", lp, mqtt_err)
                self._connected = False
            else:
                return True
        if not self._stopping:
            _ = self.reconnect.connection_lost("publish failed")
        return False

    async def send_birth_msg(self) -> bool:
        lp = f"{self.lp}send_birth_msg:"
        logger.debug("%s Sending birth message (%s) to %s", lp, TELENOT_BIRTH_MSG, self.env.status_topic)
        return await self.publish(self.env.status_topic, TELENOT_BIRTH_MSG, retain=True)

    async def send_will_msg(self) -> bool:
        lp = f"{self.lp}send_will_msg:"
        logger.debug("%s Sending will message (%s) to %s", lp, DEVICE_LWT_MSG, self.env.status_topic)
        return await self.publish(self.env.status_topic, DEVICE_LWT_MSG, retain=True)

    async def _discard_client(self) -> None:
        if self.receiver_task and not self.receiver_task.done() and self.receiver_task is not asyncio.current_task():
            _ = self.receiver_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.receiver_task
        self.receiver_task = None
        if self.client is None:
            return
        client, self.client = self.client, None
        try:
            await client.__aexit__(None, None, None)
        except aiomqtt.MqttError as e:
            logger.debug("%s Discarding previous client: %s", self.lp, e)

    async def stop(self) -> None:
        lp = f"{self.lp}stop:"
        self._stopping = True
        await self.reconnect.cancel()
        if self._connected:
            _ = await self.send_will_msg()
        self._connected = False
        logger.debug("%s Disconnecting from broker...", lp)
        await self._discard_client()
        logger.info("%s Disconnected from MQTT broker", lp)
