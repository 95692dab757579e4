"""Pytest configuration and fixtures for pysolarlink tests."""

from __future__ import annotations

import struct
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from pysolarlink.protocol.checksum import checksum8, crc16_modbus
from pysolarlink.protocol.frame import DEFAULT_META, FrameMeta

LOGGER_SERIAL = 2912345678
LOGGER_HOST = "192.168.1.18"


# ---------------------------------------------------------------------------
# Wire builders for logger replies
# ---------------------------------------------------------------------------

RESPONSE_HEADER = bytes([0x02, 0x01]) + bytes(12)  # frame type, status, 3 x time


def build_response_frame(
    payload: bytes,
    *,
    sequence: int = 1,
    device_serial: int = LOGGER_SERIAL,
    meta: FrameMeta = DEFAULT_META,
) -> bytes:
    """Build a response envelope the way logger firmware sends it.

    The sequence number is written big-endian, mirroring how the session
    reads it back.
    """
    body = struct.pack("<HH", len(payload), meta.response_control)
    body += struct.pack(">H", sequence)
    body += struct.pack("<I", device_serial)
    body += payload
    return bytes([meta.start_marker]) + body + bytes([checksum8(body), meta.end_marker])


def build_read_response_payload(values: list[int], *, filler: bytes = b"\x00\x00") -> bytes:
    """Build a read holding registers response payload."""
    data = struct.pack(f">{len(values)}H", *values)
    body = bytes([0x01, 0x03, len(data)]) + data
    return RESPONSE_HEADER + body + struct.pack("<H", crc16_modbus(body)) + filler


def build_write_response_payload(start: int, quantity: int, *, noise: bytes = b"") -> bytes:
    """Build a write multiple registers confirmation payload."""
    body = struct.pack(">BBHH", 0x01, 0x10, start, quantity)
    return noise + body + struct.pack("<H", crc16_modbus(body))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_writer() -> MagicMock:
    """StreamWriter double with no underlying socket."""
    writer = MagicMock()
    writer.write = MagicMock()
    writer.drain = AsyncMock()
    writer.close = MagicMock()
    writer.wait_closed = AsyncMock()
    writer.get_extra_info = MagicMock(return_value=None)
    return writer


@pytest.fixture
def mock_reader() -> AsyncMock:
    """StreamReader double; set ``read.return_value`` or ``read.side_effect``."""
    reader = AsyncMock()
    reader.read = AsyncMock(return_value=b"")
    return reader


@pytest.fixture
def streams(mock_reader: AsyncMock, mock_writer: MagicMock) -> tuple[Any, Any]:
    """Reader/writer pair as returned by ``asyncio.open_connection``."""
    return mock_reader, mock_writer
