"""Session configuration for SolarMan V5 data loggers.

This module provides the LoggerConfig dataclass for configuring sessions
in a uniform way, supporting serialization to/from dictionaries (e.g. for
Home Assistant config entries) and loading from environment variables.

Example:
    config = LoggerConfig(host="192.168.1.18", logger_serial=2912345678)
    config.validate()

    # Serialize to dict for storage
    data = config.to_dict()

    # Restore from dict
    restored = LoggerConfig.from_dict(data)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pysolarlink.protocol.frame import DEFAULT_META, FrameMeta

from .session import DEFAULT_PORT, DEFAULT_TIMEOUT

ENV_PREFIX = "SOLARMAN_"


def _parse_int(value: Any) -> int:
    """Parse ints given as numbers or decimal/``0x`` hex strings."""
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


@dataclass
class LoggerConfig:
    """Configuration for a single data logger session.

    Attributes:
        host: IP address or hostname of the data logger
        logger_serial: Data logger serial number (32-bit)
        port: TCP port (default 8899)
        timeout: Per-operation deadline in seconds (default 10.0)
        meta: Envelope markers and control codes
        debug: Log frame hex dumps
    """

    host: str
    logger_serial: int
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT
    meta: FrameMeta = field(default_factory=lambda: DEFAULT_META)
    debug: bool = False

    def validate(self) -> None:
        """Validate configuration completeness.

        Raises:
            ValueError: If configuration is invalid
        """
        if not self.host:
            raise ValueError("host is required")
        if not 0 < self.logger_serial <= 0xFFFFFFFF:
            raise ValueError("logger_serial must be a non-zero 32-bit number")
        if not 0 < self.port <= 0xFFFF:
            raise ValueError("port must be 1..65535")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary for serialization.

        Returns:
            Dictionary with all configuration values, suitable for
            JSON serialization.
        """
        return {
            "host": self.host,
            "logger_serial": self.logger_serial,
            "port": self.port,
            "timeout": self.timeout,
            "start_marker": self.meta.start_marker,
            "end_marker": self.meta.end_marker,
            "request_control": self.meta.request_control,
            "response_control": self.meta.response_control,
            "debug": self.debug,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LoggerConfig:
        """Create configuration from dictionary.

        Args:
            data: Dictionary with configuration values (from ``to_dict()``).
                Missing metadata keys fall back to the defaults.

        Returns:
            LoggerConfig instance with values from dictionary
        """
        meta = FrameMeta(
            start_marker=_parse_int(data.get("start_marker", DEFAULT_META.start_marker)),
            end_marker=_parse_int(data.get("end_marker", DEFAULT_META.end_marker)),
            request_control=_parse_int(
                data.get("request_control", DEFAULT_META.request_control)
            ),
            response_control=_parse_int(
                data.get("response_control", DEFAULT_META.response_control)
            ),
        )
        return cls(
            host=data.get("host", ""),
            logger_serial=_parse_int(data.get("logger_serial", 0)),
            port=_parse_int(data.get("port", DEFAULT_PORT)),
            timeout=float(data.get("timeout", DEFAULT_TIMEOUT)),
            meta=meta,
            debug=bool(data.get("debug", False)),
        )

    @classmethod
    def from_env(
        cls,
        prefix: str = ENV_PREFIX,
        environ: Mapping[str, str] | None = None,
    ) -> LoggerConfig:
        """Create configuration from environment variables.

        Reads ``<prefix>HOST``, ``<prefix>SERIAL``, ``<prefix>PORT``,
        ``<prefix>TIMEOUT`` and ``<prefix>DEBUG``. Load a ``.env`` file with
        python-dotenv before calling this to pick up local settings.

        Args:
            prefix: Variable name prefix (default ``SOLARMAN_``)
            environ: Mapping to read instead of ``os.environ``

        Returns:
            LoggerConfig instance (not validated)
        """
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {
            "host": env.get(f"{prefix}HOST", ""),
            "logger_serial": env.get(f"{prefix}SERIAL", "0"),
            "port": env.get(f"{prefix}PORT", str(DEFAULT_PORT)),
            "timeout": env.get(f"{prefix}TIMEOUT", str(DEFAULT_TIMEOUT)),
            "debug": env.get(f"{prefix}DEBUG", "").lower() in ("1", "true", "yes"),
        }
        return cls.from_dict(data)


__all__ = [
    "ENV_PREFIX",
    "LoggerConfig",
]
