"""Exceptions raised by pysolarlink.

All errors inherit from :class:`SolarmanError` so callers can use a single
``except SolarmanError`` to catch both transport failures (the connection
is torn down and the next call reconnects) and protocol failures (bytes
arrived but could not be interpreted; the connection stays open).
"""

from __future__ import annotations

import copy
from typing import TypeVar

_E = TypeVar("_E", bound="SolarmanError")


class SolarmanError(Exception):
    """Base exception for all pysolarlink errors.

    Attributes:
        message: Human readable description of the failure
        operation: Stage that raised or re-raised the error (e.g. ``read.exchange``)
        logger_serial: Serial number of the data logger involved, if known
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        logger_serial: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.logger_serial = logger_serial

    def __str__(self) -> str:
        if self.operation is None:
            return self.message
        return f"{self.operation} [{self.logger_serial}] {self.message}"

    def with_context(self: _E, operation: str, logger_serial: int | None) -> _E:
        """Return a copy of this error tagged with the stage that surfaced it.

        The copy keeps the concrete exception class so callers can still
        match on it, and records the original error as ``__cause__``.
        """
        wrapped = copy.copy(self)
        wrapped.operation = operation
        wrapped.logger_serial = logger_serial
        wrapped.__cause__ = self
        return wrapped


# ---------------------------------------------------------------------------
# Transport failures
# ---------------------------------------------------------------------------


class TransportError(SolarmanError):
    """Base exception for connection level failures.

    Attributes:
        reason: ``timeout``, ``eof`` or ``error``
    """

    def __init__(
        self,
        message: str,
        *,
        reason: str = "error",
        operation: str | None = None,
        logger_serial: int | None = None,
    ) -> None:
        super().__init__(message, operation=operation, logger_serial=logger_serial)
        self.reason = reason


class TransportConnectionError(TransportError):
    """Failed to connect to the data logger."""

    pass


class TransportIOError(TransportError):
    """Writing the request or reading the reply failed."""

    pass


class TransportTimeoutError(TransportIOError):
    """A write or read did not complete before its deadline."""

    def __init__(
        self,
        message: str,
        *,
        reason: str = "timeout",
        operation: str | None = None,
        logger_serial: int | None = None,
    ) -> None:
        super().__init__(
            message, reason=reason, operation=operation, logger_serial=logger_serial
        )


# ---------------------------------------------------------------------------
# Protocol failures
# ---------------------------------------------------------------------------


class ProtocolError(SolarmanError):
    """Base exception for replies that arrived but could not be interpreted."""

    pass


class FrameFormatError(ProtocolError):
    """Start or end marker does not match the configured frame metadata."""

    pass


class ChecksumMismatchError(ProtocolError):
    """Envelope checksum or payload CRC16 does not match the received bytes."""

    pass


class TrailingDataError(ProtocolError):
    """Bytes were left over after a complete frame or payload."""

    pass


class TruncatedFrameError(ProtocolError):
    """The frame or payload ended before a declared field was complete."""

    pass


class ProtocolMismatchError(ProtocolError):
    """Response control code does not match the configured frame metadata."""

    pass


class ModbusResponseNotFoundError(ProtocolError):
    """No ``01 10`` write confirmation was found in the response payload."""

    pass


class UnexpectedFunctionError(ProtocolError):
    """Response carries an unexpected device address or function code."""

    pass


class QuantityMismatchError(ProtocolError):
    """Echoed register quantity differs from the number of values written."""

    pass


class InvalidRegisterValueError(ProtocolError):
    """Register values could not be converted (e.g. an impossible date)."""

    pass


__all__ = [
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
