"""Inverter clock operations built on register read/write.

Provides ``DateTimeRegisterMixin`` which reads and sets the inverter's
wall clock through three consecutive holding registers. The mixin assumes
the host class exposes:

- ``read(start, count) -> dict[int, int]``
- ``write(start, values) -> tuple[int, int]``
- ``_logger_serial: int``

At *runtime* ``_DateTimeMixinBase`` resolves to ``object`` so the MRO is
unchanged.  Under ``TYPE_CHECKING`` it supplies typed stubs for mypy.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from pysolarlink.conversions import (
    DATETIME_REGISTER_COUNT,
    datetime_to_registers,
    registers_to_datetime,
)
from pysolarlink.exceptions import InvalidRegisterValueError, QuantityMismatchError

_LOGGER = logging.getLogger(__name__)

# Clock registers on Deye inverters behind "29xxxxxxxx" loggers
DEFAULT_DATETIME_REGISTER = 0x16

if TYPE_CHECKING:

    class _DateTimeMixinBase:
        """Typed stubs so mypy sees attributes provided by the host class."""

        _logger_serial: int

        async def read(self, start_register: int, count: int) -> dict[int, int]: ...

        async def write(self, start_register: int, values: list[int]) -> tuple[int, int]: ...

else:
    _DateTimeMixinBase = object


class DateTimeRegisterMixin(_DateTimeMixinBase):
    """Read and set the inverter clock stored in three registers."""

    async def get_date_time(
        self,
        start_register: int = DEFAULT_DATETIME_REGISTER,
    ) -> datetime:
        """Read the inverter clock.

        Args:
            start_register: Address of the year/month register

        Returns:
            Naive local datetime reported by the inverter

        Raises:
            InvalidRegisterValueError: If the registers do not hold a valid date
            SolarmanError: If the underlying read fails
        """
        registers = await self.read(start_register, DATETIME_REGISTER_COUNT)
        values = [registers[start_register + offset] for offset in range(DATETIME_REGISTER_COUNT)]

        try:
            return registers_to_datetime(values)
        except ValueError as err:
            raise InvalidRegisterValueError(
                f"registers {[hex(v) for v in values]} are not a valid date: {err}",
                operation="get_date_time",
                logger_serial=self._logger_serial,
            ) from err

    async def set_date_time(
        self,
        start_register: int = DEFAULT_DATETIME_REGISTER,
        when: datetime | None = None,
    ) -> tuple[int, int, datetime]:
        """Set the inverter clock.

        Args:
            start_register: Address of the year/month register
            when: Time to set; defaults to the current local time

        Returns:
            Tuple of (bytes written, start register, time that was set).
            The time is truncated to whole seconds.

        Raises:
            QuantityMismatchError: If the logger confirms a different write size
            SolarmanError: If the underlying write fails
        """
        if when is None:
            when = datetime.now()
        values = datetime_to_registers(when)

        written, start = await self.write(start_register, values)
        if written != len(values) * 2:
            raise QuantityMismatchError(
                f"expected to write {len(values) * 2} bytes, wrote {written}",
                operation="set_date_time",
                logger_serial=self._logger_serial,
            )

        time_set = registers_to_datetime(values)
        _LOGGER.info("[%s] Inverter clock set to %s", self._logger_serial, time_set.isoformat())
        return written, start, time_set


__all__ = ["DEFAULT_DATETIME_REGISTER", "DateTimeRegisterMixin"]
