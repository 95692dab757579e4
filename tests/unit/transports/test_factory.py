"""Tests for session factory functions."""

from __future__ import annotations

import pytest

from pysolarlink.protocol.frame import DEFAULT_META, FrameMeta
from pysolarlink.transports import (
    LoggerConfig,
    LoggerSession,
    create_logger_session,
    create_session_from_config,
)


class TestCreateLoggerSession:
    """Tests for create_logger_session factory function."""

    def test_creates_session_defaults(self) -> None:
        session = create_logger_session(host="192.168.1.18", logger_serial=2912345678)

        assert isinstance(session, LoggerSession)
        assert session.host == "192.168.1.18"
        assert session.port == 8899
        assert session.timeout == 10.0
        assert session.meta == DEFAULT_META
        assert session.is_connected is False

    def test_creates_session_custom(self) -> None:
        meta = FrameMeta(start_marker=0xAA)
        session = create_logger_session(
            host="logger.local",
            logger_serial=1,
            port=9000,
            timeout=3.0,
            meta=meta,
            debug=True,
        )

        assert session.port == 9000
        assert session.timeout == 3.0
        assert session.meta is meta
        assert session.debug is True


class TestCreateSessionFromConfig:
    """Tests for create_session_from_config factory function."""

    def test_from_config(self) -> None:
        config = LoggerConfig(host="192.168.1.18", logger_serial=2912345678, timeout=4.0)
        session = create_session_from_config(config)

        assert session.host == config.host
        assert session.logger_serial == config.logger_serial
        assert session.timeout == 4.0

    def test_invalid_config_raises(self) -> None:
        with pytest.raises(ValueError, match="host is required"):
            create_session_from_config(LoggerConfig(host="", logger_serial=2912345678))
