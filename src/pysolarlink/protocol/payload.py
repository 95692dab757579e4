"""Register command payloads carried inside SolarMan V5 envelopes.

Request payload layout::

    +-----------+-------------+---------------+---------------+-------------+--------------+
    | FrameType | SensorType  | DeliveryTime  | PowerOnTime   | OffsetTime  | Command body |
    | 1 B       | 2 B LE      | 4 B LE        | 4 B LE        | 4 B LE      | variable     |
    +-----------+-------------+---------------+---------------+-------------+--------------+

The command body is a Modbus RTU style PDU: device address (0x01),
function code, big-endian fields, then a little-endian CRC16 over the body.
Only function 0x03 (read holding registers) and 0x10 (write multiple
registers) are supported.

Response payloads mirror the header with a status byte in place of the
sensor type. Read responses carry ``addr func len data crc`` followed by two
filler bytes. Write confirmations are located by scanning for ``01 10``
because the header length varies between logger firmware versions.
"""

from __future__ import annotations

import logging
import struct

from pysolarlink.exceptions import (
    ChecksumMismatchError,
    ModbusResponseNotFoundError,
    QuantityMismatchError,
    TrailingDataError,
    TruncatedFrameError,
    UnexpectedFunctionError,
)

from .checksum import crc16_modbus

_LOGGER = logging.getLogger(__name__)

# Payload header constants
FRAME_TYPE_INVERTER = 0x02
SENSOR_TYPE = 0x0000
PAYLOAD_HEADER_SIZE = 15  # frame_type(1) + sensor_type(2) + 3 x time(4)
RESPONSE_HEADER_SIZE = 14  # frame_type(1) + status(1) + 3 x time(4)

# Modbus command body
DEVICE_ADDRESS = 0x01
MODBUS_READ_HOLDING = 0x03
MODBUS_WRITE_MULTI = 0x10
MODBUS_EXCEPTION_FLAG = 0x80
WRITE_CONFIRMATION_MARKER = bytes([DEVICE_ADDRESS, MODBUS_WRITE_MULTI])
WRITE_CONFIRMATION_SIZE = 8  # addr(1) + func(1) + start(2) + quantity(2) + crc(2)
READ_RESPONSE_FILLER_SIZE = 2

# Modbus PDU limits for FC 0x03 / 0x10
MAX_READ_COUNT = 125
MAX_WRITE_COUNT = 123


def _payload_header() -> bytes:
    return struct.pack("<BHIII", FRAME_TYPE_INVERTER, SENSOR_TYPE, 0, 0, 0)


def _with_crc(body: bytes) -> bytes:
    return body + struct.pack("<H", crc16_modbus(body))


def _check_register(start_register: int) -> None:
    if not 0 <= start_register <= 0xFFFF:
        raise ValueError(f"register address must be 0..65535, got {start_register}")


def build_read_request(start_register: int, count: int) -> bytes:
    """Build a read holding registers (0x03) request payload.

    Args:
        start_register: Address of the first register
        count: Number of registers to read (1..125)

    Returns:
        Payload bytes to wrap in an envelope

    Raises:
        ValueError: If the address or count is out of range
    """
    _check_register(start_register)
    if not 1 <= count <= MAX_READ_COUNT:
        raise ValueError(f"register count must be 1..{MAX_READ_COUNT}, got {count}")

    body = struct.pack(">BBHH", DEVICE_ADDRESS, MODBUS_READ_HOLDING, start_register, count)
    return _payload_header() + _with_crc(body)


def build_write_request(start_register: int, values: list[int]) -> bytes:
    """Build a write multiple registers (0x10) request payload.

    Args:
        start_register: Address of the first register
        values: Unsigned 16-bit values, one per register (1..123 values)

    Returns:
        Payload bytes to wrap in an envelope

    Raises:
        ValueError: If the address, value count or a value is out of range
    """
    _check_register(start_register)
    if not 1 <= len(values) <= MAX_WRITE_COUNT:
        raise ValueError(f"value count must be 1..{MAX_WRITE_COUNT}, got {len(values)}")
    for value in values:
        if not 0 <= value <= 0xFFFF:
            raise ValueError(f"register value must be 0..65535, got {value}")

    quantity = len(values)
    body = struct.pack(
        ">BBHHB",
        DEVICE_ADDRESS,
        MODBUS_WRITE_MULTI,
        start_register,
        quantity,
        quantity * 2,
    )
    body += struct.pack(f">{quantity}H", *values)
    return _payload_header() + _with_crc(body)


def parse_read_response(payload: bytes, start_register: int, count: int) -> dict[int, int]:
    """Parse a read holding registers response payload.

    Args:
        payload: Envelope payload of the response
        start_register: Address of the first register requested
        count: Number of registers requested

    Returns:
        Mapping of register address to unsigned 16-bit value

    Raises:
        TruncatedFrameError: A field or the filler bytes are missing
        UnexpectedFunctionError: Wrong device address or function code, or a
            Modbus exception reply
        ChecksumMismatchError: CRC16 does not match the command body
        TrailingDataError: Bytes remain after the filler
    """
    # header(14) + addr(1) + func(1) + value_length(1)
    if len(payload) < RESPONSE_HEADER_SIZE + 3:
        raise TruncatedFrameError(f"read response too short: {len(payload)} bytes")

    body = payload[RESPONSE_HEADER_SIZE:]
    device_address, function_code = body[0], body[1]
    if function_code & MODBUS_EXCEPTION_FLAG:
        raise UnexpectedFunctionError(
            f"Modbus exception: function=0x{function_code:02X}, code=0x{body[2]:02X}"
        )
    if device_address != DEVICE_ADDRESS or function_code != MODBUS_READ_HOLDING:
        raise UnexpectedFunctionError(
            f"unexpected response: device address 0x{device_address:02X}, "
            f"function code 0x{function_code:02X}"
        )

    value_length = body[2]
    data_end = 3 + value_length
    if len(body) < data_end:
        raise TruncatedFrameError(
            f"{len(body) - 3} value bytes read of expected {value_length} bytes"
        )
    if len(body) < data_end + 2:
        raise TruncatedFrameError("read response ends before CRC")

    (received_crc,) = struct.unpack_from("<H", body, data_end)
    expected_crc = crc16_modbus(body[:data_end])
    if received_crc != expected_crc:
        raise ChecksumMismatchError(
            f"CRC mismatch: expected 0x{expected_crc:04X}, got 0x{received_crc:04X}"
        )

    consumed = data_end + 2 + READ_RESPONSE_FILLER_SIZE
    if len(body) < consumed:
        raise TruncatedFrameError("read response ends before filler bytes")
    if len(body) > consumed:
        raise TrailingDataError(f"{len(body) - consumed} bytes left in read response")

    if value_length < count * 2:
        raise TruncatedFrameError(
            f"response holds {value_length // 2} registers, requested {count}"
        )

    values = struct.unpack_from(f">{count}H", body, 3)
    return {start_register + offset: value for offset, value in enumerate(values)}


def parse_write_response(payload: bytes, expected_values: list[int]) -> tuple[int, int]:
    """Parse a write multiple registers confirmation.

    The confirmation ``01 10 start quantity`` is located by scanning the
    payload for its first two bytes. The CRC that follows is not checked.

    Args:
        payload: Envelope payload of the response
        expected_values: Values sent in the request

    Returns:
        Tuple of (bytes written, start register)

    Raises:
        ModbusResponseNotFoundError: No ``01 10`` marker in the payload
        TruncatedFrameError: Fewer than 8 bytes follow the marker
        UnexpectedFunctionError: Address or function code is wrong
        QuantityMismatchError: Echoed quantity differs from ``len(expected_values)``
    """
    start_index = -1
    for index in range(len(payload) - 1):
        if payload[index : index + 2] == WRITE_CONFIRMATION_MARKER:
            start_index = index
            break

    if start_index < 0:
        raise ModbusResponseNotFoundError(
            f"Modbus response not found in payload ({len(payload)} bytes)"
        )
    if start_index > 0:
        _LOGGER.debug(
            "Write confirmation found at offset %d, skipping %s",
            start_index,
            payload[:start_index].hex(),
        )

    remaining = len(payload) - start_index
    if remaining < WRITE_CONFIRMATION_SIZE:
        raise TruncatedFrameError(
            f"unexpected response length: {remaining} bytes, "
            f"expected at least {WRITE_CONFIRMATION_SIZE}"
        )

    device_address, function_code, start_address, quantity = struct.unpack_from(
        ">BBHH", payload, start_index
    )
    if device_address != DEVICE_ADDRESS or function_code != MODBUS_WRITE_MULTI:
        raise UnexpectedFunctionError(
            f"unexpected response: device address 0x{device_address:02X}, "
            f"function code 0x{function_code:02X}"
        )
    if quantity != len(expected_values):
        raise QuantityMismatchError(
            f"unexpected quantity: expected {len(expected_values)}, got {quantity}"
        )

    return quantity * 2, start_address


__all__ = [
    "DEVICE_ADDRESS",
    "MAX_READ_COUNT",
    "MAX_WRITE_COUNT",
    "MODBUS_READ_HOLDING",
    "MODBUS_WRITE_MULTI",
    "build_read_request",
    "build_write_request",
    "parse_read_response",
    "parse_write_response",
]
