"""
Record File Parsers
===================

This module reads Intel HEX and S-record text into Record sequences.

Reading is all-or-nothing: the first line that fails to decode aborts
the read and its error is raised with the 1-indexed line number
attached. No partial result is returned. Blank lines are skipped.

Usage Examples
--------------
Reading a file:
    >>> from firmhex.codec import read_file, INTEL_HEX
    >>> records = read_file("firmware.hex", INTEL_HEX)
    >>> print(f"{len(records)} records")

Inspecting a file:
    >>> parser = HexFileParser.from_file("firmware.s19", SRECORD)
    >>> for record in parser.coalesced():
    ...     print(record)
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, TextIO, Union
import logging

from firmhex.errors import RecordError, SourceError
from firmhex.codec.records import (
    Record,
    RecordFormat,
    SRecordType,
    IntelRecordType,
    decode_line,
)
from firmhex.codec.coalesce import coalesce

# Logger for this module
logger = logging.getLogger(__name__)


# =============================================================================
# Reading
# =============================================================================

def read_lines(lines: Iterable[str], record_format: RecordFormat) -> list[Record]:
    """
    Decode every non-empty line, in order.

    Args:
        lines: Record lines (trailing newlines allowed)
        record_format: INTEL_HEX or SRECORD

    Returns:
        The full record sequence

    Raises:
        RecordError: For the first line that fails to decode
        SourceError: If iterating ``lines`` raises OSError
    """
    records: list[Record] = []
    line_number = 0
    try:
        for line_number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                records.append(decode_line(line, record_format))
            except RecordError as e:
                e.at_line(line_number, line.rstrip("\r\n"))
                logger.error(f"Failed to decode {record_format.name} record: {e}")
                raise
    except OSError as e:
        raise SourceError(f"Failed reading line {line_number + 1}: {e}") from e

    logger.debug(f"Decoded {len(records)} {record_format.name} records")
    return records


def read_text(text: str, record_format: RecordFormat) -> list[Record]:
    """Decode records from a string holding a whole file."""
    return read_lines(text.splitlines(), record_format)


def read_stream(stream: TextIO, record_format: RecordFormat) -> list[Record]:
    """Decode records line by line from an open text stream."""
    return read_lines(stream, record_format)


def _read_source(filepath: Union[str, Path]) -> str:
    filepath = Path(filepath)
    try:
        return filepath.read_text(encoding="ascii")
    except (OSError, UnicodeDecodeError) as e:
        raise SourceError(f"Cannot read {filepath}: {e}") from e


def read_file(filepath: Union[str, Path], record_format: RecordFormat) -> list[Record]:
    """
    Read and decode a record file from disk.

    Raises:
        SourceError: If the file cannot be read
        RecordError: For the first line that fails to decode
    """
    return read_text(_read_source(filepath), record_format)


# =============================================================================
# File Parser
# =============================================================================

@dataclass
class HexFileParser:
    """
    Parsed contents of one record file.

    Parsing happens on construction; a decode error propagates from
    the constructor.

    Attributes:
        text: The raw file text
        record_format: The format the text was decoded as
        records: The decoded record sequence

    Example:
        >>> parser = HexFileParser.from_file("firmware.hex", INTEL_HEX)
        >>> parser.get_info()["data_bytes"]
        4096
    """
    # Raw file text (not exposed in repr)
    text: str = field(repr=False)

    record_format: RecordFormat = field(repr=False, default=None)

    records: list[Record] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        if self.record_format is None:
            raise ValueError("record_format is required")
        self.records = read_text(self.text, self.record_format)

    @classmethod
    def from_file(cls, filepath: Union[str, Path], record_format: RecordFormat) -> "HexFileParser":
        return cls(text=_read_source(filepath), record_format=record_format)

    @classmethod
    def from_text(cls, text: str, record_format: RecordFormat) -> "HexFileParser":
        return cls(text=text, record_format=record_format)

    # =========================================================================
    # Queries
    # =========================================================================

    def data_records(self) -> list[Record]:
        return [record for record in self.records if record.is_data]

    def coalesced(self) -> list[Record]:
        """Return the record sequence with contiguous data runs merged."""
        return coalesce(self.records)

    def get_data_bytes(self) -> int:
        return sum(len(record.payload) for record in self.data_records())

    def get_header(self) -> Optional[bytes]:
        """Payload of the first S0 header record, if any."""
        for record in self.records:
            if record.record_type is SRecordType.HEADER:
                return record.payload
        return None

    def get_start_address(self) -> Optional[int]:
        """Execution start address from a start record, if any."""
        for record in self.records:
            record_type = record.record_type
            if record_type in (SRecordType.START16, SRecordType.START24, SRecordType.START32):
                return record.address
            if record_type is IntelRecordType.START_LINEAR_ADDRESS and len(record.payload) == 4:
                return int.from_bytes(record.payload, "big")
            if record_type is IntelRecordType.START_SEGMENT_ADDRESS and len(record.payload) == 4:
                cs = int.from_bytes(record.payload[:2], "big")
                ip = int.from_bytes(record.payload[2:], "big")
                return (cs << 4) + ip
        return None

    def get_info(self) -> dict:
        """
        Summary information about the file.

        Returns:
            Dictionary with record counts, data size and address span
        """
        data = self.data_records()
        runs = [record for record in self.coalesced() if record.is_data]
        header = self.get_header()

        return {
            "format": self.record_format.name,
            "total_records": len(self.records),
            "data_records": len(data),
            "data_runs": len(runs),
            "data_bytes": self.get_data_bytes(),
            "min_address": min((r.address for r in data), default=None),
            "max_address": max((r.end_address - 1 for r in data if r.payload), default=None),
            "header": header.decode("ascii", errors="replace") if header is not None else None,
            "start_address": self.get_start_address(),
        }
