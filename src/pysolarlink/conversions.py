"""Stateless conversions between register values and Python types.

Date-time layout used by Deye/SolarMan inverters (three consecutive
registers, starting at 0x16 on most models):

- register N: high byte = year - 2000, low byte = month
- register N+1: high byte = day, low byte = hour
- register N+2: high byte = minute, low byte = second
"""

from __future__ import annotations

from datetime import datetime

YEAR_OFFSET = 2000
DATETIME_REGISTER_COUNT = 3


def to_signed(value: int) -> int:
    """Reinterpret an unsigned 16-bit register value as two's complement."""
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"register value must be 0..65535, got {value}")
    return value - 0x10000 if value & 0x8000 else value


def signed_to_float(value: int) -> float:
    """Reinterpret a register value as signed and return it as float.

    Example:
        >>> signed_to_float(0xFFFF)
        -1.0
    """
    return float(to_signed(value))


def datetime_to_registers(when: datetime) -> list[int]:
    """Pack a timestamp into three date-time register values.

    Args:
        when: Local wall-clock time; tzinfo and microseconds are ignored

    Returns:
        ``[year_month, day_hour, minute_second]``

    Raises:
        ValueError: If the year is outside 2000..2255
    """
    year_offset = when.year - YEAR_OFFSET
    if not 0 <= year_offset <= 0xFF:
        raise ValueError(f"year must be {YEAR_OFFSET}..{YEAR_OFFSET + 0xFF}, got {when.year}")

    return [
        (year_offset << 8) | when.month,
        (when.day << 8) | when.hour,
        (when.minute << 8) | when.second,
    ]


def registers_to_datetime(registers: list[int]) -> datetime:
    """Unpack three date-time register values into a naive local datetime.

    Raises:
        ValueError: If not exactly three registers are given or they do not
            form a valid date
    """
    if len(registers) != DATETIME_REGISTER_COUNT:
        raise ValueError(
            f"expected {DATETIME_REGISTER_COUNT} registers, got {len(registers)}"
        )

    year_month, day_hour, minute_second = registers
    return datetime(
        YEAR_OFFSET + (year_month >> 8),
        year_month & 0xFF,
        day_hour >> 8,
        day_hour & 0xFF,
        minute_second >> 8,
        minute_second & 0xFF,
    )


__all__ = [
    "DATETIME_REGISTER_COUNT",
    "datetime_to_registers",
    "registers_to_datetime",
    "signed_to_float",
    "to_signed",
]
