#!/usr/bin/env python3
"""Data logger diagnostic tool for pysolarlink.

This CLI tool talks to a SolarMan V5 data logger directly to read and
write inverter registers and to inspect or set the inverter clock.

Connection defaults are taken from the environment (``SOLARMAN_HOST``,
``SOLARMAN_SERIAL``, ``SOLARMAN_PORT``, ``SOLARMAN_TIMEOUT``), and a
``.env`` file in the working directory is loaded first.

Usage:
    pysolarlink-diag --host 192.168.1.18 --serial 2912345678 read 0x6D 3
    pysolarlink-diag read 0x6D 3 --signed
    pysolarlink-diag write 0x16 0x1805 0x060C 0x2238
    pysolarlink-diag get-time
    pysolarlink-diag set-time --time 2024-05-06T12:34:56
    pysolarlink-diag --help
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime

from dotenv import load_dotenv

from pysolarlink import __version__
from pysolarlink.conversions import signed_to_float
from pysolarlink.exceptions import SolarmanError
from pysolarlink.transports import (
    DEFAULT_DATETIME_REGISTER,
    LoggerConfig,
    LoggerSession,
    create_session_from_config,
)


def register_number(value: str) -> int:
    """Parse a register address or value given in decimal or ``0x`` hex."""
    try:
        number = int(value, 0)
    except ValueError as err:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from err
    if not 0 <= number <= 0xFFFF:
        raise argparse.ArgumentTypeError(f"{value!r} is outside 0..65535")
    return number


def logger_serial_number(value: str) -> int:
    """Parse a 32-bit data logger serial given in decimal or ``0x`` hex."""
    try:
        number = int(value, 0)
    except ValueError as err:
        raise argparse.ArgumentTypeError(f"invalid serial number: {value!r}") from err
    if not 0 <= number <= 0xFFFFFFFF:
        raise argparse.ArgumentTypeError(f"serial number {value!r} is not 32-bit")
    return number


def create_parser(defaults: LoggerConfig | None = None) -> argparse.ArgumentParser:
    """Create argument parser.

    Args:
        defaults: Connection defaults, usually from the environment
    """
    defaults = defaults or LoggerConfig(host="", logger_serial=0)

    parser = argparse.ArgumentParser(
        prog="pysolarlink-diag",
        description="Read and write inverter registers through a SolarMan V5 data logger.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pysolarlink-diag --host 192.168.1.18 --serial 2912345678 read 0x6D 3
      Read three registers starting at 0x6D

  pysolarlink-diag read 0x6D 3 --signed
      Same, printing values as signed numbers

  pysolarlink-diag write 0x16 0x1805 0x060C 0x2238
      Write three registers starting at 0x16

  pysolarlink-diag set-time
      Set the inverter clock to the local time

Make sure no other client is connected to the logger on port 8899.
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    conn_group = parser.add_argument_group("Connection Options")
    conn_group.add_argument(
        "--host",
        "-H",
        default=defaults.host or None,
        help="Data logger IP address (env: SOLARMAN_HOST)",
    )
    conn_group.add_argument(
        "--port",
        "-p",
        type=int,
        default=defaults.port,
        help="TCP port (default: %(default)s)",
    )
    conn_group.add_argument(
        "--serial",
        "-s",
        type=logger_serial_number,
        default=defaults.logger_serial or None,
        help="Data logger serial number (env: SOLARMAN_SERIAL)",
    )
    conn_group.add_argument(
        "--timeout",
        "-t",
        type=float,
        default=defaults.timeout,
        help="Per-operation timeout in seconds (default: %(default)s)",
    )
    conn_group.add_argument(
        "--debug",
        "-d",
        action="store_true",
        default=defaults.debug,
        help="Log every frame sent and received",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    read_cmd = commands.add_parser("read", help="Read holding registers")
    read_cmd.add_argument("start", type=register_number, help="First register address")
    read_cmd.add_argument("count", type=int, help="Number of registers (1-125)")
    read_cmd.add_argument(
        "--signed",
        action="store_true",
        help="Print values as signed 16-bit numbers",
    )

    write_cmd = commands.add_parser("write", help="Write holding registers")
    write_cmd.add_argument("start", type=register_number, help="First register address")
    write_cmd.add_argument(
        "values",
        type=register_number,
        nargs="+",
        help="Register values (decimal or 0x hex)",
    )

    for name, help_text in (
        ("get-time", "Read the inverter clock"),
        ("set-time", "Set the inverter clock"),
    ):
        time_cmd = commands.add_parser(name, help=help_text)
        time_cmd.add_argument(
            "--register",
            "-r",
            type=register_number,
            default=DEFAULT_DATETIME_REGISTER,
            help="First clock register (default: 0x16)",
        )
        if name == "set-time":
            time_cmd.add_argument(
                "--time",
                type=datetime.fromisoformat,
                default=None,
                help="ISO timestamp to set (default: now)",
            )

    return parser


def _config_from_args(args: argparse.Namespace, defaults: LoggerConfig) -> LoggerConfig:
    return LoggerConfig(
        host=args.host,
        logger_serial=args.serial,
        port=args.port,
        timeout=args.timeout,
        meta=defaults.meta,
        debug=args.debug,
    )


async def run_command(session: LoggerSession, args: argparse.Namespace) -> int:
    """Run the selected sub-command against an open session."""
    if args.command == "read":
        registers = await session.read(args.start, args.count)
        for address, value in registers.items():
            shown = signed_to_float(value) if args.signed else value
            print(f"  0x{address:04X} ({address:5d}): {shown}")
    elif args.command == "write":
        written, start = await session.write(args.start, args.values)
        print(f"Wrote {written} bytes at register 0x{start:04X}")
    elif args.command == "get-time":
        clock = await session.get_date_time(args.register)
        print(f"Inverter time: {clock.isoformat(sep=' ')}")
    elif args.command == "set-time":
        written, start, time_set = await session.set_date_time(args.register, args.time)
        print(
            f"Inverter time set: {time_set.isoformat(sep=' ')}, "
            f"written {written} bytes at register 0x{start:04X}"
        )
    return 0


async def run(args: argparse.Namespace, config: LoggerConfig) -> int:
    """Open a session, run the command and always close the connection."""
    session = create_session_from_config(config)
    try:
        return await run_command(session, args)
    except (SolarmanError, ValueError) as err:
        print(f"✗ {err}", file=sys.stderr)
        return 1
    finally:
        await session.close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    load_dotenv()
    try:
        defaults = LoggerConfig.from_env()
    except ValueError as err:
        print(f"✗ Invalid SOLARMAN_* environment setting: {err}", file=sys.stderr)
        return 2

    parser = create_parser(defaults)
    args = parser.parse_args(argv)

    if args.host is None:
        parser.error("--host is required (or set SOLARMAN_HOST)")
    if args.serial is None:
        parser.error("--serial is required (or set SOLARMAN_SERIAL)")

    config = _config_from_args(args, defaults)
    try:
        config.validate()
    except ValueError as err:
        parser.error(str(err))

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args, config))


if __name__ == "__main__":
    sys.exit(main())
