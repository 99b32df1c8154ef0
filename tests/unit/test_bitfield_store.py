"""
Unit tests for BitfieldStateStore change detection.
"""

from telenot_bridge.state.bitfield_store import BitfieldStateStore, ByteChange
from telenot_bridge.structs import ContentArea, ContentAreaName, SensorPosition

AREA = "MELDEBEREICHE"


def _area(*positions: SensorPosition) -> ContentArea:
    return ContentArea(name=ContentAreaName.MELDEBEREICHE, offset=10, positions=positions)


class TestApplyFrame:
    """Tests for apply_frame()"""

    def test_first_frame_reports_every_byte_as_initial(self):
        store = BitfieldStateStore()
        changes = store.apply_frame(AREA, bytes([0x00, 0x02, 0x01]))
        assert changes == [
            ByteChange(0, 0, 0x00, initial=True),
            ByteChange(1, 0, 0x02, initial=True),
            ByteChange(2, 0, 0x01, initial=True),
        ]

    def test_only_changed_bytes_after_first_frame(self):
        store = BitfieldStateStore()
        _ = store.apply_frame(AREA, bytes([0x00, 0x02, 0x01]))
        changes = store.apply_frame(AREA, bytes([0x00, 0x02, 0x03]))
        assert changes == [ByteChange(2, 0x01, 0x03)]

    def test_identical_frame_reports_nothing(self):
        store = BitfieldStateStore()
        _ = store.apply_frame(AREA, b"\x01\x02")
        assert store.apply_frame(AREA, b"\x01\x02") == []

    def test_missing_previous_byte_compares_against_zero(self):
        """A longer frame reports the new bytes with old value 0"""
        store = BitfieldStateStore()
        _ = store.apply_frame(AREA, b"\x01")
        changes = store.apply_frame(AREA, b"\x01\x05")
        assert changes == [ByteChange(1, 0, 0x05)]

    def test_snapshot_replaced_wholesale(self):
        store = BitfieldStateStore()
        _ = store.apply_frame(AREA, b"\x01\x02\x03")
        _ = store.apply_frame(AREA, b"\x09")
        assert store.snapshot(AREA) == {0: 0x09}

    def test_areas_are_independent(self):
        store = BitfieldStateStore()
        _ = store.apply_frame(AREA, b"\x01")
        changes = store.apply_frame("MELDEGRUPPEN", b"\x01")
        assert changes == [ByteChange(0, 0, 0x01, initial=True)]


class TestChangedBits:
    """Tests for changed_bits()"""

    def test_initial_change_reports_every_position_in_byte(self):
        area = _area(SensorPosition(hex="0x10", name="a"), SensorPosition(hex="0x17", name="b"))
        store = BitfieldStateStore()
        changes = store.apply_frame(AREA, bytes([0x00, 0x00, 0x01]))
        bits = store.changed_bits(area, changes)
        assert [(b.position.hex, b.bit, b.previous_bit) for b in bits] == [
            ("0x10", "1", "N/A"),
            ("0x17", "0", "N/A"),
        ]

    def test_only_flipped_bits_are_reported(self):
        area = _area(SensorPosition(hex="0x10", name="a"), SensorPosition(hex="0x11", name="b"))
        store = BitfieldStateStore()
        _ = store.apply_frame(AREA, bytes([0x00, 0x00, 0x01]))
        changes = store.apply_frame(AREA, bytes([0x00, 0x00, 0x03]))
        bits = store.changed_bits(area, changes)
        assert len(bits) == 1
        assert bits[0].position.hex == "0x11"
        assert (bits[0].previous_bit, bits[0].bit) == ("0", "1")

    def test_positions_outside_changed_byte_are_ignored(self):
        area = _area(SensorPosition(hex="0x08", name="a"))
        store = BitfieldStateStore()
        _ = store.apply_frame(AREA, bytes([0x00, 0x00, 0x00]))
        changes = store.apply_frame(AREA, bytes([0x00, 0x00, 0xFF]))
        assert store.changed_bits(area, changes) == []

    def test_inverted_state(self):
        area = _area(SensorPosition(hex="0x10", name="a", inverted=True))
        store = BitfieldStateStore()
        bits = store.changed_bits(area, store.apply_frame(AREA, bytes([0, 0, 0x00])))
        assert bits[0].state == "ON"


class TestPreviousBit:
    """Tests for previous_bit()"""

    def test_unknown_area(self):
        assert BitfieldStateStore().previous_bit(AREA, 0, 0) == "N/A"

    def test_unknown_byte(self):
        store = BitfieldStateStore()
        _ = store.apply_frame(AREA, b"\x01")
        assert store.previous_bit(AREA, 5, 0) == "N/A"

    def test_stored_bit(self):
        store = BitfieldStateStore()
        _ = store.apply_frame(AREA, b"\x80")
        assert store.previous_bit(AREA, 0, 7) == "1"
        assert store.previous_bit(AREA, 0, 0) == "0"
