"""
firmhex - Record File Command-Line Interface
============================================

This module implements the ``firmhex`` command-line tool for encoding
binary images as Intel HEX or S-record text, and for inspecting,
validating and coalescing existing record files.

Commands
--------
- **encode**: Encode a binary file as record text
- **list**: List the records of a file
- **info**: Show a summary of a file
- **coalesce**: Merge contiguous data records and write a new file
- **validate**: Check that every record decodes

The record format is never guessed; ``-f ihex`` or ``-f srec`` is
always required.

Usage Examples
--------------
    $ firmhex encode -f ihex -o image.hex image.bin
    $ firmhex encode -f srec -m 32 -a 0x8000 --start 0x8000 --count -o image.s19 image.bin
    $ firmhex list -f srec --coalesce image.s19
    $ firmhex coalesce -f ihex -w 32 -o merged.hex image.hex
"""

import io
import logging
from pathlib import Path
from typing import Optional

import click

from firmhex import __version__
from firmhex.cli.errors import handle_cli_exception
from firmhex.codec import (
    AddressMode,
    HexFileParser,
    RecordFormat,
    coalesce,
    create_writer,
    get_format,
    read_file,
    write_records,
)
from firmhex.config import WriterConfig

logger = logging.getLogger(__name__)


# =============================================================================
# Parameter Types
# =============================================================================

class FormatChoice(click.ParamType):
    """
    Click parameter type for record format selection.

    Accepts: ihex, srec (case-insensitive)
    """
    name = "format"

    def convert(self, value, param: Optional[click.Parameter],
                ctx: Optional[click.Context]) -> RecordFormat:
        """Convert string to RecordFormat."""
        if isinstance(value, RecordFormat):
            return value
        try:
            return get_format(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


class AddressParam(click.ParamType):
    """Integer accepting decimal, 0x hex, 0o octal or 0b binary."""
    name = "address"

    def convert(self, value, param: Optional[click.Parameter],
                ctx: Optional[click.Context]) -> int:
        if isinstance(value, int):
            return value
        try:
            address = int(value, 0)
        except ValueError:
            self.fail(f"Invalid address '{value}'", param, ctx)
        if address < 0:
            self.fail(f"Address cannot be negative: {value}", param, ctx)
        return address


FORMAT = FormatChoice()
ADDRESS = AddressParam()


# =============================================================================
# CLI Context
# =============================================================================

class Context:
    """Shared context for CLI commands."""

    def __init__(self) -> None:
        self.verbose: bool = False

    def setup_logging(self) -> None:
        """Configure logging based on verbosity."""
        level = logging.DEBUG if self.verbose else logging.WARNING
        logging.basicConfig(
            level=level,
            format="%(levelname)s: %(message)s" if self.verbose else "%(message)s",
        )


pass_context = click.make_pass_decorator(Context, ensure=True)


def format_option(func):
    return click.option(
        "-f", "--format",
        "record_format",
        type=FORMAT,
        required=True,
        help="Record format: ihex or srec",
    )(func)


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.version_option(__version__, "--version", "-V", prog_name="firmhex")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
@pass_context
def main(ctx: Context, verbose: bool) -> None:
    """
    Intel HEX and Motorola S-record tool.

    \b
    Commands:
      encode    Encode a binary file as record text
      list      List records
      info      Show file summary
      coalesce  Merge contiguous data records
      validate  Check that every record decodes
    """
    ctx.verbose = verbose
    ctx.setup_logging()


# =============================================================================
# Encode Command
# =============================================================================

@main.command("encode")
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Output record file path (required)",
)
@format_option
@click.option(
    "-w", "--width",
    type=click.IntRange(1, 255),
    default=None,
    help="Payload bytes per data record (default: 16 ihex, 10 srec)",
)
@click.option(
    "-a", "--address",
    type=ADDRESS,
    default=None,
    help="Address of the first byte (default: 0)",
)
@click.option(
    "-m", "--address-mode",
    type=click.Choice(["16", "24", "32"]),
    default=None,
    help="S-record address width in bits (default: 16)",
)
@click.option("--header", default=None, help="S-record S0 header text")
@click.option("--count", "emit_count", is_flag=True, help="Emit an S5/S6 count record")
@click.option("--start", "start_address", type=ADDRESS, default=None,
              help="Emit a start-address record")
@pass_context
def cmd_encode(
    ctx: Context,
    input_file: Path,
    output: Path,
    record_format: RecordFormat,
    width: Optional[int],
    address: Optional[int],
    address_mode: Optional[str],
    header: Optional[str],
    emit_count: bool,
    start_address: Optional[int],
) -> None:
    """
    Encode a binary file as Intel HEX or S-record text.

    Settings not given on the command line fall back to the FIRMHEX_*
    environment variables, then to the format defaults.

    \b
    Examples:
      firmhex encode -f ihex -o image.hex image.bin
      firmhex encode -f srec -m 24 -a 0x10000 --count -o image.s28 image.bin
    """
    try:
        data = input_file.read_bytes()

        config = WriterConfig.from_env()
        if width is not None:
            config.width = width
        if address is not None:
            config.address = address
        if address_mode is not None:
            config.address_mode = AddressMode.from_bits(int(address_mode))
        if header is not None:
            config.header = header.encode("ascii")
        if emit_count:
            config.emit_count = True
        if start_address is not None:
            config.start_address = start_address
        logger.debug(f"Encoding {input_file} as {record_format.name}: {config}")

        # Render in memory; the output file is only written on success
        buffer = io.StringIO()
        writer = create_writer(buffer, record_format, config)
        writer.write(data)
        writer.close()
        _write_text(output, buffer.getvalue())

        if ctx.verbose:
            click.echo(f"Created {output}")
            click.echo(f"  Format:       {record_format.name}")
            click.echo(f"  Width:        {writer.width} bytes/record")
            click.echo(f"  Data records: {writer.record_count}")
            click.echo(f"  Bytes:        {len(data)}")
        else:
            click.echo(f"Created {output} ({writer.record_count} data records, {len(data)} bytes)")

    except Exception as e:
        handle_cli_exception(e, ctx.verbose, "Encode")


# =============================================================================
# List Command
# =============================================================================

@main.command("list")
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@format_option
@click.option("-c", "--coalesce", "merge", is_flag=True,
              help="Merge contiguous data records before listing")
@pass_context
def cmd_list(ctx: Context, input_file: Path, record_format: RecordFormat, merge: bool) -> None:
    """
    List the records of a file, one per line.

    \b
    Example:
      firmhex list -f ihex image.hex
    """
    try:
        records = read_file(input_file, record_format)
        if merge:
            records = coalesce(records)

        for number, record in enumerate(records, start=1):
            click.echo(f"{number}: {record}")

        if ctx.verbose:
            click.echo("-" * 40)
            click.echo(f"Total: {len(records)} records")

    except Exception as e:
        handle_cli_exception(e, ctx.verbose)


# =============================================================================
# Info Command
# =============================================================================

@main.command("info")
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@format_option
@pass_context
def cmd_info(ctx: Context, input_file: Path, record_format: RecordFormat) -> None:
    """
    Show a summary of a record file.

    \b
    Output includes:
      - Record and data record counts
      - Number of contiguous data runs
      - Data size and address span
      - Header text and start address, when present
    """
    try:
        info = HexFileParser.from_file(input_file, record_format).get_info()

        click.echo(f"File Information: {input_file}")
        click.echo("=" * 40)
        click.echo(f"Format:        {info['format']}")
        click.echo(f"Records:       {info['total_records']}")
        click.echo(f"Data Records:  {info['data_records']}")
        click.echo(f"Data Runs:     {info['data_runs']}")
        click.echo(f"Data Bytes:    {info['data_bytes']}")
        if info["min_address"] is not None:
            click.echo(f"Address Range: 0x{info['min_address']:X} - 0x{info['max_address'] or 0:X}")
        if info["header"] is not None:
            click.echo(f"Header:        {info['header']}")
        if info["start_address"] is not None:
            click.echo(f"Start Address: 0x{info['start_address']:X}")

    except Exception as e:
        handle_cli_exception(e, ctx.verbose)


# =============================================================================
# Coalesce Command
# =============================================================================

@main.command("coalesce")
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Output record file path (required)",
)
@format_option
@click.option(
    "-w", "--width",
    type=click.IntRange(1, 255),
    default=None,
    help="Payload bytes per re-emitted data record",
)
@pass_context
def cmd_coalesce(
    ctx: Context,
    input_file: Path,
    output: Path,
    record_format: RecordFormat,
    width: Optional[int],
) -> None:
    """
    Merge contiguous data records and write the result.

    Merged runs are re-emitted at WIDTH bytes per record; other
    records keep their order.

    \b
    Example:
      firmhex coalesce -f srec -w 32 -o merged.s19 image.s19
    """
    try:
        records = read_file(input_file, record_format)
        merged = coalesce(records)

        buffer = io.StringIO()
        lines = write_records(buffer, merged, width=width)
        _write_text(output, buffer.getvalue())

        click.echo(f"Created {output} ({len(records)} records in, {lines} records out)")

    except Exception as e:
        handle_cli_exception(e, ctx.verbose, "Coalesce")


def _write_text(path: Path, text: str) -> None:
    """Write a complete record file in one call."""
    path.write_text(text, encoding="ascii", newline="\n")


# =============================================================================
# Validate Command
# =============================================================================

@main.command("validate")
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@format_option
@pass_context
def cmd_validate(ctx: Context, input_file: Path, record_format: RecordFormat) -> None:
    """
    Check that every record in a file decodes.

    Exits with status 0 when the file is valid and 1 on the first bad
    record, which is reported with its line number.
    """
    try:
        records = read_file(input_file, record_format)
        click.echo(f"Valid: {input_file} ({len(records)} records)")
    except Exception as e:
        handle_cli_exception(e, ctx.verbose, "Validation")


if __name__ == "__main__":
    main()
