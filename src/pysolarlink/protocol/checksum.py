"""Checksums used by the SolarMan V5 protocol.

Two independent checks protect every exchange:

- ``checksum8`` guards the outer envelope (every byte after the start
  marker up to the end of the payload).
- ``crc16_modbus`` guards the Modbus command body embedded in the payload
  and is appended little-endian.

Data loggers silently drop frames on mismatch, so both must be bit-exact.
"""

from __future__ import annotations


def checksum8(data: bytes) -> int:
    """Compute the 8-bit additive checksum of ``data``.

    Args:
        data: Bytes to sum

    Returns:
        Sum of all bytes truncated to 8 bits
    """
    return sum(data) & 0xFF


def crc16_modbus(data: bytes) -> int:
    """Compute CRC-16/Modbus checksum.

    Args:
        data: Bytes to compute CRC for

    Returns:
        16-bit CRC value
    """
    crc = 0xFFFF
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ 0xA001
            else:
                crc >>= 1
    return crc & 0xFFFF


__all__ = ["checksum8", "crc16_modbus"]
