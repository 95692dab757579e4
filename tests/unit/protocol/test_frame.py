"""Tests for SolarMan V5 envelope building and parsing."""

from __future__ import annotations

import struct

import pytest
from conftest import LOGGER_SERIAL, build_response_frame

from pysolarlink.exceptions import (
    ChecksumMismatchError,
    FrameFormatError,
    ProtocolMismatchError,
    TrailingDataError,
    TruncatedFrameError,
)
from pysolarlink.protocol.checksum import checksum8
from pysolarlink.protocol.frame import (
    DEFAULT_META,
    HEADER_SIZE,
    FrameMeta,
    decode_frame,
    encode_frame,
    expected_frame_length,
)
from pysolarlink.protocol.payload import build_read_request

# Request for registers 0x6D..0x6F from logger 2912345678, sequence 1
READ_0X6D_FRAME = bytes.fromhex(
    "a5 17 00 10 45 01 00 4e de 96 ad"
    "02 00 00 00 00 00 00 00 00 00 00 00 00 00 00"
    "01 03 00 6d 00 03 94 16"
    "fc 15"
)

# Meta whose request and response control codes agree, so encoded frames decode
LOOPBACK_META = FrameMeta(request_control=0x1510, response_control=0x1510)


class TestFrameMeta:
    """Tests for envelope metadata."""

    def test_defaults(self) -> None:
        assert DEFAULT_META.start_marker == 0xA5
        assert DEFAULT_META.end_marker == 0x15
        assert DEFAULT_META.request_control == 0x4510
        assert DEFAULT_META.response_control == 0x1510

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"start_marker": 0x100},
            {"end_marker": -1},
            {"request_control": 0x10000},
            {"response_control": -5},
        ],
    )
    def test_rejects_out_of_range(self, kwargs: dict[str, int]) -> None:
        with pytest.raises(ValueError):
            FrameMeta(**kwargs)


class TestEncodeFrame:
    """Tests for request envelope building."""

    def test_golden_read_request(self) -> None:
        """Byte-exact frame for a three register read."""
        frame = encode_frame(1, LOGGER_SERIAL, build_read_request(0x6D, 3))
        assert frame == READ_0X6D_FRAME

    def test_layout(self) -> None:
        payload = bytes(range(10))
        frame = encode_frame(0x0102, 0x0A0B0C0D, payload)

        assert frame[0] == 0xA5
        assert struct.unpack("<H", frame[1:3])[0] == len(payload)
        assert struct.unpack("<H", frame[3:5])[0] == 0x4510
        # Sequence is little-endian on send
        assert frame[5:7] == bytes([0x02, 0x01])
        assert struct.unpack("<I", frame[7:11])[0] == 0x0A0B0C0D
        assert frame[11:-2] == payload
        assert frame[-2] == checksum8(frame[1:-2])
        assert frame[-1] == 0x15

    def test_custom_meta(self) -> None:
        meta = FrameMeta(start_marker=0xAA, end_marker=0x55, request_control=0x4710)
        frame = encode_frame(1, LOGGER_SERIAL, b"\x01", meta)

        assert frame[0] == 0xAA
        assert frame[-1] == 0x55
        assert struct.unpack("<H", frame[3:5])[0] == 0x4710

    def test_empty_payload(self) -> None:
        frame = encode_frame(1, LOGGER_SERIAL, b"")
        assert len(frame) == HEADER_SIZE + 2

    def test_payload_too_large(self) -> None:
        with pytest.raises(ValueError, match="too large"):
            encode_frame(1, LOGGER_SERIAL, bytes(0x10000))

    @pytest.mark.parametrize("sequence", [-1, 0x10000])
    def test_invalid_sequence(self, sequence: int) -> None:
        with pytest.raises(ValueError):
            encode_frame(sequence, LOGGER_SERIAL, b"")

    def test_invalid_serial(self) -> None:
        with pytest.raises(ValueError):
            encode_frame(1, 0x1_0000_0000, b"")


class TestDecodeFrame:
    """Tests for response envelope parsing."""

    def test_valid_response(self) -> None:
        frame = decode_frame(build_response_frame(b"\x01\x02\x03", sequence=7))

        assert frame.control == 0x1510
        assert frame.sequence == 7
        assert frame.device_serial == LOGGER_SERIAL
        assert frame.payload == b"\x01\x02\x03"

    def test_sequence_read_big_endian(self) -> None:
        """Echoed sequence bytes are interpreted big-endian."""
        data = bytearray(build_response_frame(b""))
        data[5:7] = bytes([0x12, 0x34])
        data[-2] = checksum8(data[1:-2])

        assert decode_frame(bytes(data)).sequence == 0x1234

    @pytest.mark.parametrize(
        ("sequence", "device_serial", "payload"),
        [
            (1, LOGGER_SERIAL, b""),
            (0x0100, 0, b"\x00"),
            (0xFFFF, 0xFFFFFFFF, bytes(range(256))),
            (42, 1234567890, bytes(600)),
        ],
    )
    def test_round_trip(self, sequence: int, device_serial: int, payload: bytes) -> None:
        """Payload and device serial survive encode then decode."""
        encoded = encode_frame(sequence, device_serial, payload, LOOPBACK_META)
        decoded = decode_frame(encoded, LOOPBACK_META)

        assert decoded.payload == payload
        assert decoded.device_serial == device_serial
        assert encoded[-2] == checksum8(encoded[1 : HEADER_SIZE + len(payload)])

    def test_request_control_is_rejected(self) -> None:
        """A request frame echoed back is not a response."""
        with pytest.raises(ProtocolMismatchError, match="control code"):
            decode_frame(READ_0X6D_FRAME)

    def test_empty(self) -> None:
        with pytest.raises(TruncatedFrameError):
            decode_frame(b"")

    def test_wrong_start_marker(self) -> None:
        data = bytearray(build_response_frame(b"\x01\x02"))
        data[0] = 0xA4

        with pytest.raises(FrameFormatError, match="start marker"):
            decode_frame(bytes(data))

    def test_wrong_end_marker(self) -> None:
        data = bytearray(build_response_frame(b"\x01\x02"))
        data[-1] = 0x16

        with pytest.raises(FrameFormatError, match="end marker"):
            decode_frame(bytes(data))

    def test_custom_markers(self) -> None:
        meta = FrameMeta(start_marker=0xAA, end_marker=0x55)
        data = build_response_frame(b"\x09", meta=meta)

        assert decode_frame(data, meta).payload == b"\x09"
        with pytest.raises(FrameFormatError):
            decode_frame(data)

    def test_corrupted_bytes_fail_checksum(self) -> None:
        """Flipping any sequence, serial, payload or checksum byte is detected."""
        original = build_response_frame(bytes(range(1, 21)), sequence=3)

        for index in range(5, len(original) - 1):
            data = bytearray(original)
            data[index] ^= 0xFF
            with pytest.raises(ChecksumMismatchError):
                decode_frame(bytes(data))

    def test_truncated_payload(self) -> None:
        data = build_response_frame(bytes(10))

        with pytest.raises(TruncatedFrameError, match="payload bytes"):
            decode_frame(data[:15])

    def test_truncated_header(self) -> None:
        data = build_response_frame(bytes(10))

        with pytest.raises(TruncatedFrameError):
            decode_frame(data[:8])

    def test_missing_end_marker(self) -> None:
        data = build_response_frame(bytes(4))

        with pytest.raises(TruncatedFrameError, match="end marker"):
            decode_frame(data[:-1])

    def test_trailing_data(self) -> None:
        data = build_response_frame(bytes(4)) + b"\x00\x00"

        with pytest.raises(TrailingDataError, match="2 bytes left"):
            decode_frame(data)


class TestExpectedFrameLength:
    """Tests for the declared-length helper used to finish fragmented replies."""

    def test_needs_length_field(self) -> None:
        assert expected_frame_length(b"") is None
        assert expected_frame_length(b"\xa5\x10") is None

    def test_declared_length(self) -> None:
        data = build_response_frame(bytes(20))
        assert expected_frame_length(data[:3]) == len(data)
        assert expected_frame_length(data) == len(data)
