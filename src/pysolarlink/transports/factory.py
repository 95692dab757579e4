"""Factory functions for creating data logger sessions.

Example:
    session = create_logger_session(
        host="192.168.1.18",
        logger_serial=2912345678,
    )
    async with session:
        registers = await session.read(0x6D, 3)

    # From a stored or environment configuration
    session = create_session_from_config(LoggerConfig.from_env())
"""

from __future__ import annotations

from pysolarlink.protocol.frame import DEFAULT_META, FrameMeta

from .config import LoggerConfig
from .session import DEFAULT_PORT, DEFAULT_TIMEOUT, LoggerSession


def create_logger_session(
    host: str,
    logger_serial: int,
    *,
    port: int = DEFAULT_PORT,
    timeout: float = DEFAULT_TIMEOUT,
    meta: FrameMeta = DEFAULT_META,
    debug: bool = False,
) -> LoggerSession:
    """Create a session for a SolarMan V5 data logger.

    Args:
        host: IP address or hostname of the data logger
        logger_serial: Data logger serial number
        port: TCP port (default 8899)
        timeout: Per-operation deadline in seconds (default 10.0)
        meta: Envelope markers and control codes
        debug: Log frame hex dumps

    Returns:
        LoggerSession instance; the connection opens on first use
    """
    return LoggerSession(
        host=host,
        logger_serial=logger_serial,
        port=port,
        timeout=timeout,
        meta=meta,
        debug=debug,
    )


def create_session_from_config(config: LoggerConfig) -> LoggerSession:
    """Create a session from a validated configuration.

    Args:
        config: Session configuration

    Returns:
        LoggerSession instance

    Raises:
        ValueError: If the configuration is invalid
    """
    config.validate()
    return create_logger_session(
        host=config.host,
        logger_serial=config.logger_serial,
        port=config.port,
        timeout=config.timeout,
        meta=config.meta,
        debug=config.debug,
    )


__all__ = ["create_logger_session", "create_session_from_config"]
