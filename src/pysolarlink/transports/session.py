"""SolarMan V5 data logger session.

This module provides the LoggerSession class for local communication with
solar inverters through a SolarMan V5 WiFi/LAN data logging stick
(typically TCP port 8899).

The logger wraps Modbus register commands in a proprietary envelope. This
is NOT Modbus TCP: the RTU-style command body (with CRC16) travels inside
a SolarMan V5 frame addressed by the logger's serial number.

IMPORTANT: Single-Client Limitation
------------------------------------
Data loggers serve one TCP client reliably. Make sure no other script or
integration keeps a connection to port 8899 open while using a session.

IMPORTANT: Single Segment Replies
---------------------------------
Replies are read with one 512-byte read. When the envelope header declares
a longer frame than what arrived, the rest is read within the same
deadline; bytes beyond the declared frame are treated as trailing data.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
from collections.abc import Iterator
from typing import Any

from pysolarlink.exceptions import (
    SolarmanError,
    TransportConnectionError,
    TransportIOError,
    TransportTimeoutError,
)
from pysolarlink.protocol.frame import (
    DEFAULT_META,
    Frame,
    FrameMeta,
    decode_frame,
    encode_frame,
    expected_frame_length,
)
from pysolarlink.protocol.payload import (
    build_read_request,
    build_write_request,
    parse_read_response,
    parse_write_response,
)
from pysolarlink.protocol.sequence import SequenceCounter

from ._datetime_registers import DateTimeRegisterMixin

_LOGGER = logging.getLogger(__name__)

# Default connection settings
DEFAULT_PORT = 8899
DEFAULT_TIMEOUT = 10.0
RECV_BUFFER_SIZE = 512
KEEPALIVE_PERIOD = 30  # seconds
CLOSE_TIMEOUT = 5.0


def _failure_reason(err: BaseException) -> str:
    """Classify a transport failure as ``timeout``, ``eof`` or ``error``."""
    if isinstance(err, TimeoutError):
        return "timeout"
    if isinstance(err, (EOFError, asyncio.IncompleteReadError)):
        return "eof"
    return "error"


class LoggerSession(DateTimeRegisterMixin):
    """Session with a single SolarMan V5 data logger.

    All register operations on a session are serialized behind one lock,
    so at most one request/response exchange is in flight. The connection
    is opened lazily by the first call, dropped on any transport failure
    or cancellation mid-exchange, and re-opened transparently by the next
    call. There is no retry: a failed exchange fails that call.

    Example:
        session = LoggerSession(host="192.168.1.18", logger_serial=2912345678)
        async with session:
            registers = await session.read(0x6D, 3)
            print(registers)  # {109: 385, 110: 0, 111: 392}

            written, start = await session.write(0x16, [0x1805, 0x060C, 0x2238])
    """

    transport_type: str = "solarman_v5"

    def __init__(
        self,
        host: str,
        logger_serial: int,
        *,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
        meta: FrameMeta = DEFAULT_META,
        debug: bool = False,
    ) -> None:
        """Initialize a data logger session.

        Args:
            host: IP address or hostname of the data logger
            logger_serial: Data logger serial number (32-bit, printed on the stick)
            port: TCP port (default 8899)
            timeout: Deadline in seconds for connect, each write and each read
            meta: Envelope markers and control codes
            debug: Log every sent/received frame as a hex dump

        Raises:
            ValueError: If the serial number or timeout is out of range
        """
        if not 0 <= logger_serial <= 0xFFFFFFFF:
            raise ValueError(f"logger serial must be 32-bit, got {logger_serial}")
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        self._host = host
        self._port = port
        self._logger_serial = logger_serial
        self._timeout = timeout
        self._meta = meta
        self._debug = debug
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._lock = asyncio.Lock()
        self._sequence = SequenceCounter()
        self._connection_id = 0
        self._connections_opened = 0

    def __repr__(self) -> str:
        return (
            f"LoggerSession(host={self._host!r}, port={self._port}, "
            f"logger_serial={self._logger_serial}, connected={self.is_connected})"
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def host(self) -> str:
        """Get the data logger host address."""
        return self._host

    @property
    def port(self) -> int:
        """Get the data logger TCP port."""
        return self._port

    @property
    def logger_serial(self) -> int:
        """Get the data logger serial number."""
        return self._logger_serial

    @property
    def timeout(self) -> float:
        """Get the per-operation deadline in seconds."""
        return self._timeout

    @property
    def meta(self) -> FrameMeta:
        """Get the envelope metadata used for new requests."""
        return self._meta

    @property
    def debug(self) -> bool:
        """Whether frame hex dumps are logged."""
        return self._debug

    @property
    def is_connected(self) -> bool:
        """Whether a TCP connection is currently open."""
        return self._writer is not None

    @property
    def connection_id(self) -> int:
        """Diagnostic id of the open connection (0 when disconnected)."""
        return self._connection_id

    @property
    def sequence(self) -> int:
        """Get the last sequence number sent (0 before the first request)."""
        return self._sequence.value

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_meta(
        self,
        start_marker: int,
        end_marker: int,
        request_control: int,
        response_control: int,
    ) -> None:
        """Override the envelope markers and control codes.

        Takes effect from the next request; an exchange already in flight
        keeps the metadata it started with.
        """
        self._meta = FrameMeta(
            start_marker=start_marker,
            end_marker=end_marker,
            request_control=request_control,
            response_control=response_control,
        )

    def set_debug(self, enabled: bool) -> None:
        """Enable or disable frame hex dumps."""
        self._debug = enabled

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LoggerSession:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def connect(self) -> None:
        """Open the TCP connection now instead of on the first request.

        Raises:
            TransportConnectionError: If the logger cannot be reached
        """
        async with self._lock:
            await self._connect()

    async def close(self) -> None:
        """Close the TCP connection. Safe to call when already closed."""
        async with self._lock:
            if self._writer is None:
                _LOGGER.debug("[%s] Close requested, no open connection", self._logger_serial)
                return
            await self._close_connection("manual")

    async def _connect(self) -> None:
        if self._writer is not None:
            return

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port),
                timeout=self._timeout,
            )
        except TimeoutError as err:
            raise TransportConnectionError(
                f"Timeout connecting to {self._host}:{self._port}. "
                "Verify the address and that no other client holds the logger.",
                reason="timeout",
                operation="connect",
                logger_serial=self._logger_serial,
            ) from err
        except OSError as err:
            raise TransportConnectionError(
                f"Failed to connect to {self._host}:{self._port}: {err}",
                reason="error",
                operation="connect",
                logger_serial=self._logger_serial,
            ) from err

        self._configure_socket(writer)
        self._reader = reader
        self._writer = writer
        self._connections_opened += 1
        self._connection_id = self._connections_opened
        _LOGGER.info(
            "[%s] Connected to %s:%s (id=%d)",
            self._logger_serial,
            self._host,
            self._port,
            self._connection_id,
        )

    def _configure_socket(self, writer: asyncio.StreamWriter) -> None:
        """Enable TCP keep-alive and disable Nagle on the underlying socket."""
        sock = writer.get_extra_info("socket")
        if sock is None:
            return

        options = [
            (socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1),
            (socket.IPPROTO_TCP, socket.TCP_NODELAY, 1),
        ]
        # Keep-alive timing knobs are platform specific
        for name in ("TCP_KEEPIDLE", "TCP_KEEPINTVL"):
            if hasattr(socket, name):
                options.append((socket.IPPROTO_TCP, getattr(socket, name), KEEPALIVE_PERIOD))

        for level, option, value in options:
            try:
                sock.setsockopt(level, option, value)
            except OSError as err:
                _LOGGER.debug("[%s] setsockopt(%s) failed: %s", self._logger_serial, option, err)

    def _detach_connection(self, reason: str) -> asyncio.StreamWriter | None:
        """Forget the open connection and start closing its writer.

        Does not await, so it is safe to call from a cancelled task.
        """
        writer = self._writer
        if writer is None:
            return None

        _LOGGER.debug(
            "[%s] Closing connection id=%d to %s:%s (reason=%s)",
            self._logger_serial,
            self._connection_id,
            self._host,
            self._port,
            reason,
        )
        self._reader = None
        self._writer = None
        self._connection_id = 0
        writer.close()
        return writer

    async def _close_connection(self, reason: str) -> None:
        writer = self._detach_connection(reason)
        if writer is None:
            return

        try:
            await asyncio.wait_for(writer.wait_closed(), timeout=CLOSE_TIMEOUT)
        except TimeoutError:
            _LOGGER.warning(
                "[%s] Timeout waiting for connection close to %s:%s",
                self._logger_serial,
                self._host,
                self._port,
            )
        except OSError as err:
            # Peer already gone; the socket is closed either way
            _LOGGER.debug("[%s] Error while closing connection: %s", self._logger_serial, err)

    # ------------------------------------------------------------------
    # Exchange
    # ------------------------------------------------------------------

    def _dump(self, direction: str, data: bytes) -> None:
        if self._debug:
            _LOGGER.debug("[%s] %s %s", self._logger_serial, direction, data.hex(" "))

    @contextlib.contextmanager
    def _stage(self, operation: str) -> Iterator[None]:
        """Tag any pysolarlink error raised inside the block with ``operation``."""
        try:
            yield
        except SolarmanError as err:
            raise err.with_context(operation, self._logger_serial) from err

    async def _exchange(self, request: bytes, meta: FrameMeta) -> bytes:
        """Send one request frame and return the raw reply.

        The write and the read each get a fresh deadline of ``timeout``
        seconds. Any failure closes the connection before raising.

        Raises:
            TransportConnectionError: If (re)connecting fails
            TransportTimeoutError: If the write or read deadline elapses
            TransportIOError: If the socket fails or the logger hangs up
        """
        await self._connect()
        reader = self._reader
        writer = self._writer
        if reader is None or writer is None:
            raise TransportConnectionError(
                "Socket not initialized",
                operation="exchange",
                logger_serial=self._logger_serial,
            )

        self._dump("SENT", request)
        try:
            try:
                writer.write(request)
                await asyncio.wait_for(writer.drain(), timeout=self._timeout)
            except (TimeoutError, OSError) as err:
                raise await self._transport_failure("write", err) from err

            try:
                reply = await self._read_reply(reader, meta)
            except (TimeoutError, EOFError, asyncio.IncompleteReadError, OSError) as err:
                raise await self._transport_failure("read", err) from err
        except asyncio.CancelledError:
            # A late reply must never be read as the answer to the next request
            self._detach_connection("cancelled")
            _LOGGER.warning(
                "[%s] Exchange with %s:%s cancelled, connection dropped",
                self._logger_serial,
                self._host,
                self._port,
            )
            raise

        self._dump("RECD", reply)
        return reply

    async def _read_reply(self, reader: asyncio.StreamReader, meta: FrameMeta) -> bytes:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout

        reply = await asyncio.wait_for(reader.read(RECV_BUFFER_SIZE), timeout=self._timeout)
        if not reply:
            raise EOFError("connection closed by data logger")

        if reply[0] != meta.start_marker:
            return reply
        expected = expected_frame_length(reply)
        while expected is not None and len(reply) < expected:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise TimeoutError(f"frame incomplete: {len(reply)} of {expected} bytes")
            chunk = await asyncio.wait_for(reader.read(expected - len(reply)), timeout=remaining)
            if not chunk:
                raise EOFError(f"connection closed after {len(reply)} of {expected} bytes")
            reply += chunk
            expected = expected_frame_length(reply)

        return reply

    async def _transport_failure(self, direction: str, err: BaseException) -> TransportIOError:
        reason = _failure_reason(err)
        await self._close_connection(f"{direction}_{reason}")
        _LOGGER.warning(
            "[%s] %s failed on %s:%s (%s): %s",
            self._logger_serial,
            direction.capitalize(),
            self._host,
            self._port,
            reason,
            str(err) or type(err).__name__,
        )
        error_cls = TransportTimeoutError if reason == "timeout" else TransportIOError
        return error_cls(
            f"{direction} failed ({reason}): {str(err) or type(err).__name__}",
            reason=reason,
            operation=f"exchange.{direction}",
            logger_serial=self._logger_serial,
        )

    def _request_frame(self, payload: bytes, meta: FrameMeta) -> bytes:
        return encode_frame(self._sequence.next(), self._logger_serial, payload, meta)

    def _decode_reply(self, operation: str, reply: bytes, meta: FrameMeta) -> Frame:
        with self._stage(f"{operation}.decode_frame"):
            return decode_frame(reply, meta)

    # ------------------------------------------------------------------
    # Register operations
    # ------------------------------------------------------------------

    async def read(self, start_register: int, count: int) -> dict[int, int]:
        """Read consecutive holding registers (Modbus function 0x03).

        Args:
            start_register: Address of the first register
            count: Number of registers to read (1..125)

        Returns:
            Mapping of register address to unsigned 16-bit value

        Raises:
            ValueError: If the address or count is out of range
            TransportError: If the exchange fails (connection is closed)
            ProtocolError: If the reply cannot be interpreted (connection stays open)
        """
        payload = build_read_request(start_register, count)

        async with self._lock:
            meta = self._meta
            request = self._request_frame(payload, meta)
            with self._stage("read.exchange"):
                reply = await self._exchange(request, meta)
            frame = self._decode_reply("read", reply, meta)
            with self._stage("read.parse_payload"):
                registers = parse_read_response(frame.payload, start_register, count)

        _LOGGER.debug(
            "[%s] Read %d registers from 0x%04X",
            self._logger_serial,
            count,
            start_register,
        )
        return registers

    async def write(self, start_register: int, values: list[int]) -> tuple[int, int]:
        """Write consecutive holding registers (Modbus function 0x10).

        Args:
            start_register: Address of the first register
            values: Unsigned 16-bit values (1..123)

        Returns:
            Tuple of (bytes written, start register) as confirmed by the logger

        Raises:
            ValueError: If the address, count or a value is out of range
            TransportError: If the exchange fails (connection is closed)
            ProtocolError: If the confirmation cannot be interpreted
        """
        values = list(values)
        payload = build_write_request(start_register, values)

        async with self._lock:
            meta = self._meta
            request = self._request_frame(payload, meta)
            with self._stage("write.exchange"):
                reply = await self._exchange(request, meta)
            frame = self._decode_reply("write", reply, meta)
            with self._stage("write.parse_confirmation"):
                written, start = parse_write_response(frame.payload, values)

        _LOGGER.debug(
            "[%s] Wrote %d bytes at 0x%04X",
            self._logger_serial,
            written,
            start,
        )
        return written, start


__all__ = [
    "DEFAULT_PORT",
    "DEFAULT_TIMEOUT",
    "RECV_BUFFER_SIZE",
    "LoggerSession",
]
