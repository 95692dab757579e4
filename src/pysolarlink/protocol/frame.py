"""SolarMan V5 envelope builder and parser.

Frame layout::

    +-------+---------+---------+----------+-----------+----------+----------+-----+
    | Start | Length  | Control | Sequence | Device SN | Payload  | Checksum | End |
    | 1 B   | 2 B LE  | 2 B LE  | 2 B      | 4 B LE    | Length B | 1 B      | 1 B |
    +-------+---------+---------+----------+-----------+----------+----------+-----+

- Start / End: configurable markers (0xA5 / 0x15 by default)
- Control: 0x4510 on requests, 0x1510 on responses
- Sequence: little-endian when sent, big-endian when received. Logger
  firmware echoes it byte-swapped; the asymmetry must be kept.
- Checksum: ``checksum8`` over Length..Payload inclusive
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from pysolarlink.exceptions import (
    ChecksumMismatchError,
    FrameFormatError,
    ProtocolMismatchError,
    TrailingDataError,
    TruncatedFrameError,
)

from .checksum import checksum8

HEADER_SIZE = 11  # start(1) + length(2) + control(2) + sequence(2) + serial(4)
TRAILER_SIZE = 2  # checksum(1) + end(1)
MAX_PAYLOAD_SIZE = 0xFFFF


@dataclass(frozen=True)
class FrameMeta:
    """Envelope constants negotiated with a particular data logger model.

    Attributes:
        start_marker: First byte of every frame
        end_marker: Last byte of every frame
        request_control: Control code sent on requests
        response_control: Control code expected on responses
    """

    start_marker: int = 0xA5
    end_marker: int = 0x15
    request_control: int = 0x4510
    response_control: int = 0x1510

    def __post_init__(self) -> None:
        for name in ("start_marker", "end_marker"):
            value = getattr(self, name)
            if not 0 <= value <= 0xFF:
                raise ValueError(f"{name} must be a single byte, got {value!r}")
        for name in ("request_control", "response_control"):
            value = getattr(self, name)
            if not 0 <= value <= 0xFFFF:
                raise ValueError(f"{name} must be 16-bit, got {value!r}")


DEFAULT_META = FrameMeta()


@dataclass
class Frame:
    """A parsed SolarMan V5 envelope."""

    control: int
    sequence: int
    device_serial: int
    payload: bytes

    def __repr__(self) -> str:
        return (
            f"Frame(control=0x{self.control:04X}, sequence={self.sequence}, "
            f"device_serial={self.device_serial}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def encode_frame(
    sequence: int,
    device_serial: int,
    payload: bytes,
    meta: FrameMeta = DEFAULT_META,
) -> bytes:
    """Wrap a payload in a request envelope.

    Args:
        sequence: 16-bit request sequence number
        device_serial: 32-bit data logger serial number
        payload: Opaque payload bytes (at most 65535)
        meta: Envelope markers and control codes

    Returns:
        Complete frame bytes ready to send

    Raises:
        ValueError: If a field does not fit its wire width
    """
    if len(payload) > MAX_PAYLOAD_SIZE:
        raise ValueError(f"payload too large: {len(payload)} bytes (max {MAX_PAYLOAD_SIZE})")
    if not 0 <= sequence <= 0xFFFF:
        raise ValueError(f"sequence must be 16-bit, got {sequence}")
    if not 0 <= device_serial <= 0xFFFFFFFF:
        raise ValueError(f"device serial must be 32-bit, got {device_serial}")

    body = struct.pack(
        "<HHHI",
        len(payload),
        meta.request_control,
        sequence,
        device_serial,
    )
    body += payload
    return bytes([meta.start_marker]) + body + bytes([checksum8(body), meta.end_marker])


def expected_frame_length(data: bytes) -> int | None:
    """Return the total frame size declared by a (possibly partial) reply.

    Args:
        data: Bytes received so far

    Returns:
        Total frame length in bytes, or ``None`` if the length field has
        not arrived yet
    """
    if len(data) < 3:
        return None
    (payload_length,) = struct.unpack_from("<H", data, 1)
    return HEADER_SIZE + payload_length + TRAILER_SIZE


def decode_frame(data: bytes, meta: FrameMeta = DEFAULT_META) -> Frame:
    """Parse and validate a response envelope.

    Validation runs in wire order: start marker, length, control code,
    sequence, device serial, payload, checksum, end marker, leftovers.

    Args:
        data: Raw bytes received from the data logger
        meta: Envelope markers and control codes

    Returns:
        The decoded :class:`Frame`

    Raises:
        FrameFormatError: Start or end marker is wrong
        ProtocolMismatchError: Control code is not the response control code
        TruncatedFrameError: The frame ends before a declared field
        ChecksumMismatchError: Checksum byte does not match
        TrailingDataError: Bytes remain after the end marker
    """
    if not data:
        raise TruncatedFrameError("empty frame")
    if data[0] != meta.start_marker:
        raise FrameFormatError(
            f"expected 0x{meta.start_marker:02X} as start marker, got 0x{data[0]:02X}"
        )

    if len(data) < 3:
        raise TruncatedFrameError("frame too short to hold payload length")
    (payload_length,) = struct.unpack_from("<H", data, 1)

    if len(data) < 5:
        raise TruncatedFrameError("frame too short to hold control code")
    (control,) = struct.unpack_from("<H", data, 3)
    if control != meta.response_control:
        raise ProtocolMismatchError(
            f"expected 0x{meta.response_control:04X} as control code, got 0x{control:04X}"
        )

    if len(data) < HEADER_SIZE:
        raise TruncatedFrameError(f"frame header truncated: {len(data)} of {HEADER_SIZE} bytes")
    (sequence,) = struct.unpack_from(">H", data, 5)
    (device_serial,) = struct.unpack_from("<I", data, 7)

    payload_end = HEADER_SIZE + payload_length
    if len(data) < payload_end:
        raise TruncatedFrameError(
            f"only {len(data) - HEADER_SIZE} payload bytes instead of {payload_length}"
        )
    payload = bytes(data[HEADER_SIZE:payload_end])

    if len(data) < payload_end + 1:
        raise TruncatedFrameError("frame ends before checksum")
    expected_checksum = checksum8(data[1:payload_end])
    actual_checksum = data[payload_end]
    if actual_checksum != expected_checksum:
        raise ChecksumMismatchError(
            f"checksum mismatch: expected 0x{expected_checksum:02X}, got 0x{actual_checksum:02X}"
        )

    if len(data) < payload_end + TRAILER_SIZE:
        raise TruncatedFrameError("frame ends before end marker")
    end_marker = data[payload_end + 1]
    if end_marker != meta.end_marker:
        raise FrameFormatError(
            f"expected 0x{meta.end_marker:02X} as end marker, got 0x{end_marker:02X}"
        )

    leftover = len(data) - (payload_end + TRAILER_SIZE)
    if leftover:
        raise TrailingDataError(f"frame not fully consumed, {leftover} bytes left")

    return Frame(
        control=control,
        sequence=sequence,
        device_serial=device_serial,
        payload=payload,
    )


__all__ = [
    "DEFAULT_META",
    "Frame",
    "FrameMeta",
    "decode_frame",
    "encode_frame",
    "expected_frame_length",
]
