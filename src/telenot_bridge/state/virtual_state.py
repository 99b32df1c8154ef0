"""Virtual ``armed_night`` mode layered on top of the panel's internal arming.

The panel only knows internal (home) and external (away) arming. Home
Assistant's night mode is emulated by arming internally and remembering that
the request was ARM_NIGHT, so the next internal-armed report can be shown as
``armed_night``.
"""

from __future__ import annotations

from telenot_bridge.logging_abstraction import get_logger
from telenot_bridge.structs import AlarmState

logger = get_logger(__name__)

ARM_NIGHT = "ARM_NIGHT"
ARM_HOME = "ARM_HOME"


class VirtualStateMapper:
    lp: str = "virtual_state:"

    def __init__(self) -> None:
        self._virtual_night_mode: bool = False

    def map_to_internal(self, command: str) -> str:
        """Translate an inbound command for the panel.

        ``ARM_NIGHT`` turns night mode on and becomes ``ARM_HOME``; any other
        command, including unknown ones, turns night mode off and is returned
        unchanged.
        """
        if command == ARM_NIGHT:
            if not self._virtual_night_mode:
                logger.verbose("%s virtual night mode enabled", self.lp)
            self._virtual_night_mode = True
            return ARM_HOME

        if self._virtual_night_mode:
            logger.verbose("%s virtual night mode cleared by command %s", self.lp, command)
        self._virtual_night_mode = False
        return command

    def map_to_external(self, state: str) -> str:
        if state == AlarmState.ARMED_HOME and self._virtual_night_mode:
            return AlarmState.ARMED_NIGHT.value
        return state

    def is_virtual_night_mode(self) -> bool:
        return self._virtual_night_mode

    def reset_virtual_modes(self) -> None:
        self._virtual_night_mode = False
