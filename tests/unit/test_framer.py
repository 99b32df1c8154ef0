"""
Unit tests for FrameSplitter stream reassembly.
"""

from telenot_bridge.protocol.framer import FrameSplitter

SEND_NORM = bytes.fromhex("6802026840024216")
CONF_ACK = bytes.fromhex("6802026800020216")


class TestFrameSplitter:
    """Tests for FrameSplitter.feed()"""

    def test_single_frame(self):
        splitter = FrameSplitter()
        assert splitter.feed(SEND_NORM) == [SEND_NORM]
        assert splitter.buffer == bytearray()

    def test_coalesced_frames(self, sb_frame):
        """ACK and data block delivered in one read"""
        block = sb_frame("0102")
        splitter = FrameSplitter()
        assert splitter.feed(CONF_ACK + block) == [CONF_ACK, block]

    def test_split_frame(self, sb_frame):
        """A block split across two reads is emitted once complete"""
        block = sb_frame("01020304")
        splitter = FrameSplitter()
        assert splitter.feed(block[:5]) == []
        assert splitter.feed(block[5:]) == [block]

    def test_partial_header_waits(self):
        splitter = FrameSplitter()
        assert splitter.feed(b"\x68\x02") == []
        assert splitter.feed(SEND_NORM[2:]) == [SEND_NORM]

    def test_leading_garbage_is_passed_through(self):
        """Bytes before a start marker become their own chunk"""
        splitter = FrameSplitter()
        assert splitter.feed(b"\x01\x02" + SEND_NORM) == [b"\x01\x02", SEND_NORM]

    def test_invalid_header_passed_through(self):
        """Lengths that disagree are not a long frame; nothing is dropped"""
        splitter = FrameSplitter()
        assert splitter.feed(bytes.fromhex("6803040105")) == [bytes.fromhex("6803040105")]
        assert splitter.buffer == bytearray()

    def test_invalid_header_resyncs_on_next_frame(self):
        """A valid frame behind a bad header in the same read is still emitted"""
        splitter = FrameSplitter()
        frames = splitter.feed(bytes.fromhex("6805000173") + SEND_NORM)
        assert frames == [bytes.fromhex("6805000173"), SEND_NORM]
        assert splitter.buffer == bytearray()

    def test_reset_drops_partial_frame(self, sb_frame):
        splitter = FrameSplitter()
        _ = splitter.feed(sb_frame("01")[:6])
        splitter.reset()
        assert splitter.feed(SEND_NORM) == [SEND_NORM]

    def test_overflow_clears_buffer(self, caplog):
        """A header announcing more than the buffer bound is discarded"""
        splitter = FrameSplitter()
        splitter.MAX_BUFFER_SIZE = 16
        frames = splitter.feed(bytes.fromhex("68ffff68") + bytes(20))
        assert frames == []
        assert splitter.buffer == bytearray()
        assert "Frame buffer exceeded" in caplog.text
