"""Per content area byte snapshots and bit-level change detection."""

from __future__ import annotations

from dataclasses import dataclass

from telenot_bridge.protocol.codec import map_bit_to_state, reverse_bits
from telenot_bridge.structs import ContentArea, SensorPosition

NOT_AVAILABLE = "N/A"


@dataclass(frozen=True, slots=True)
class ByteChange:
    byte_index: int
    old: int
    new: int
    initial: bool = False


@dataclass(frozen=True, slots=True)
class BitChange:
    """One sensor bit that has to be (re)published."""

    position: SensorPosition
    byte_index: int
    bit_index: int
    bit: str
    previous_bit: str
    initial: bool

    @property
    def state(self) -> str:
        return map_bit_to_state(self.bit, self.position.inverted)


class BitfieldStateStore:
    """Remembers the last payload per content area and reports what changed.

    The first frame for an area reports every byte as an initial change so all
    cataloged positions get published once. Later frames report only bytes that
    differ; a byte missing from the previous snapshot counts as 0. Each frame
    replaces the area's snapshot wholesale.
    """

    def __init__(self) -> None:
        self._snapshots: dict[str, dict[int, int]] = {}

    def snapshot(self, area_name: str) -> dict[int, int]:
        return dict(self._snapshots.get(area_name, {}))

    def apply_frame(self, area_name: str, payload: bytes) -> list[ByteChange]:
        byte_map = dict(enumerate(payload))
        previous = self._snapshots.get(area_name)
        self._snapshots[area_name] = byte_map

        if previous is None:
            return [ByteChange(index, 0, value, initial=True) for index, value in byte_map.items()]

        return [
            ByteChange(index, previous.get(index, 0), value)
            for index, value in byte_map.items()
            if previous.get(index) != value
        ]

    def changed_bits(self, area: ContentArea, changes: list[ByteChange]) -> list[BitChange]:
        bit_changes: list[BitChange] = []
        for change in changes:
            new_bits = reverse_bits(change.new)
            old_bits = reverse_bits(change.old)
            for position in area.positions_in_byte(change.byte_index):
                bit_index = position.bit_index
                if not change.initial and new_bits[bit_index] == old_bits[bit_index]:
                    continue
                bit_changes.append(
                    BitChange(
                        position=position,
                        byte_index=change.byte_index,
                        bit_index=bit_index,
                        bit=new_bits[bit_index],
                        previous_bit=NOT_AVAILABLE if change.initial else old_bits[bit_index],
                        initial=change.initial,
                    ),
                )
        return bit_changes

    def previous_bit(self, area_name: str, byte_index: int, bit_index: int) -> str:
        """Stored bit for logging, ``"N/A"`` when the area or byte was never seen."""
        value = self._snapshots.get(area_name, {}).get(byte_index)
        if value is None or not 0 <= bit_index < 8:
            return NOT_AVAILABLE
        return reverse_bits(value)[bit_index]
