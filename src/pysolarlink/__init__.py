"""Python client library for SolarMan V5 inverter data loggers.

Usage:
    Register access:
        from pysolarlink import LoggerSession

        async with LoggerSession("192.168.1.18", 2912345678) as session:
            registers = await session.read(0x6D, 3)
            written, start = await session.write(0x16, [0x1805, 0x060C, 0x2238])

    Inverter clock:
        async with LoggerSession("192.168.1.18", 2912345678) as session:
            now = await session.get_date_time(0x16)
            await session.set_date_time(0x16)
"""

from __future__ import annotations

from .conversions import (
    datetime_to_registers,
    registers_to_datetime,
    signed_to_float,
    to_signed,
)
from .exceptions import (
    ChecksumMismatchError,
    FrameFormatError,
    InvalidRegisterValueError,
    ModbusResponseNotFoundError,
    ProtocolError,
    ProtocolMismatchError,
    QuantityMismatchError,
    SolarmanError,
    TrailingDataError,
    TransportConnectionError,
    TransportError,
    TransportIOError,
    TransportTimeoutError,
    TruncatedFrameError,
    UnexpectedFunctionError,
)
from .protocol import DEFAULT_META, FrameMeta
from .transports import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    LoggerConfig,
    LoggerSession,
    create_logger_session,
    create_session_from_config,
)

__version__ = "0.1.0"
__all__ = [
    "LoggerSession",
    "LoggerConfig",
    "create_logger_session",
    "create_session_from_config",
    "FrameMeta",
    "DEFAULT_META",
    "DEFAULT_PORT",
    "DEFAULT_TIMEOUT",
    # Conversions
    "signed_to_float",
    "to_signed",
    "datetime_to_registers",
    "registers_to_datetime",
    # Exceptions
    "SolarmanError",
    "TransportError",
    "TransportConnectionError",
    "TransportIOError",
    "TransportTimeoutError",
    "ProtocolError",
    "FrameFormatError",
    "ChecksumMismatchError",
    "TrailingDataError",
    "TruncatedFrameError",
    "ProtocolMismatchError",
    "ModbusResponseNotFoundError",
    "UnexpectedFunctionError",
    "QuantityMismatchError",
    "InvalidRegisterValueError",
]
