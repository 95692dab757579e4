"""Session layer for SolarMan V5 data loggers.

Usage:
    from pysolarlink.transports import create_logger_session

    session = create_logger_session(host="192.168.1.18", logger_serial=2912345678)
    async with session:
        registers = await session.read(0x6D, 3)
        written, start = await session.write(0x16, [0x1805, 0x060C, 0x2238])
        clock = await session.get_date_time(0x16)
"""

from __future__ import annotations

from ._datetime_registers import DEFAULT_DATETIME_REGISTER, DateTimeRegisterMixin
from .config import LoggerConfig
from .factory import create_logger_session, create_session_from_config
from .session import DEFAULT_PORT, DEFAULT_TIMEOUT, LoggerSession

__all__ = [
    # Factory functions (recommended)
    "create_logger_session",
    "create_session_from_config",
    # Session
    "LoggerSession",
    "DateTimeRegisterMixin",
    # Configuration
    "LoggerConfig",
    "DEFAULT_PORT",
    "DEFAULT_TIMEOUT",
    "DEFAULT_DATETIME_REGISTER",
]
