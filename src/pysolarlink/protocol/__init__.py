"""SolarMan V5 wire codecs.

Pure, I/O-free building blocks used by :mod:`pysolarlink.transports`:
checksums, the outer envelope, the register command payloads and the
request sequence counter.
"""

from __future__ import annotations

from .checksum import checksum8, crc16_modbus
from .frame import (
    DEFAULT_META,
    Frame,
    FrameMeta,
    decode_frame,
    encode_frame,
    expected_frame_length,
)
from .payload import (
    build_read_request,
    build_write_request,
    parse_read_response,
    parse_write_response,
)
from .sequence import SequenceCounter

__all__ = [
    "checksum8",
    "crc16_modbus",
    "DEFAULT_META",
    "Frame",
    "FrameMeta",
    "decode_frame",
    "encode_frame",
    "expected_frame_length",
    "build_read_request",
    "build_write_request",
    "parse_read_response",
    "parse_write_response",
    "SequenceCounter",
]
