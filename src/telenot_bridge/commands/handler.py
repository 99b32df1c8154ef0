"""MQTT command dispatch (DISARM, ARM_HOME, ARM_AWAY, ARM_NIGHT, RESET)."""

from __future__ import annotations

from typing import TypeAlias

from collections.abc import Awaitable, Callable

from telenot_bridge.correlation import correlation_context
from telenot_bridge.logging_abstraction import get_logger
from telenot_bridge.metrics import record_command
from telenot_bridge.protocol.exceptions import TransportError
from telenot_bridge.state.virtual_state import ARM_NIGHT, VirtualStateMapper
from telenot_bridge.structs import AreaController

logger = get_logger(__name__)

CommandAction: TypeAlias = Callable[[], Awaitable[None]]

# Commands always target the first security area
DEFAULT_AREA = 1


class CommandHandler:
    lp: str = "cmd:"

    def __init__(self, controller: AreaController, virtual_state: VirtualStateMapper) -> None:
        self.controller: AreaController = controller
        self.virtual_state: VirtualStateMapper = virtual_state
        self._commands: dict[str, CommandAction] = {
            "DISARM": self._disarm,
            "ARM_HOME": lambda: self.controller.int_arm_area(DEFAULT_AREA),
            "ARM_AWAY": lambda: self.controller.ext_arm_area(DEFAULT_AREA),
            "RESET": lambda: self.controller.reset_arm_area(DEFAULT_AREA),
        }

    async def _disarm(self) -> None:
        self.virtual_state.reset_virtual_modes()
        await self.controller.disarm_area(DEFAULT_AREA)

    @property
    def commands(self) -> list[str]:
        return list(self._commands)

    async def handle_command(self, command: str | bytes) -> bool:
        """Run a command received over MQTT.

        Returns:
            True when the command was known and its frame was written to the panel

        """
        lp = f"{self.lp}handle_command:"
        if isinstance(command, bytes):
            command = command.decode(errors="replace")
        requested = command.strip().upper()

        with correlation_context(kind="cmd"):
            internal = self.virtual_state.map_to_internal(requested)
            action = self._commands.get(internal)
            if action is None:
                logger.verbose("%s Unknown command: %s", lp, requested)
                record_command("UNKNOWN", "rejected")
                return False

            logger.verbose(
                "%s Executing command: %s (internal: %s)%s",
                lp,
                requested,
                internal,
                " [Virtual Night Mode]" if requested == ARM_NIGHT else "",
            )
            try:
                await action()
            except TransportError as e:
                logger.error("%s Failed to send %s: %s", lp, internal, e, extra={"reason": e.reason})
                record_command(requested, "failed")
                return False
            record_command(requested, "sent")
            return True

    def add_command(self, name: str, action: CommandAction) -> None:
        """Register an extra command.

        Raises:
            ValueError: a command with that name already exists

        """
        key = name.strip().upper()
        if key in self._commands:
            msg = f"Command {key} already exists"
            raise ValueError(msg)
        self._commands[key] = action
