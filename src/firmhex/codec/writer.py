"""
Record Writers
==============

This module provides streaming writers that turn arbitrary byte
payloads into Intel HEX or S-record text.

Bytes handed to write() are held in an internal buffer and emitted as
full-width data records as soon as enough are available; the residue
stays buffered until the next write(), flush() or close(). flush()
emits the residue as one short ("runt") record, and close() flushes
and then emits the format's trailer records.

The sink is never closed by the writer; its lifetime belongs to the
caller.

Usage
-----
Intel HEX to a text file:

    >>> with open("image.hex", "w") as f:
    ...     writer = IntelHexWriter(f)
    ...     writer.write(firmware)
    ...     writer.close()

S-record with header, count and start records:

    >>> config = WriterConfig(address_mode=AddressMode.ADDR32, header=b"boot",
    ...                       emit_count=True, start_address=0x8000)
    >>> writer = SRecordWriter(sys.stdout, config)
    >>> writer.set_address(0x8000)
    >>> writer.write(firmware)
    >>> writer.close()
"""

from dataclasses import replace
from enum import IntEnum
from typing import Iterable, Optional, Union
import io
import logging

from firmhex.config import WriterConfig
from firmhex.errors import SinkError, WriterClosedError
from firmhex.codec.records import (
    INTEL_HEX,
    MAX_LENGTH_FIELD,
    SRECORD,
    AddressMode,
    IntelRecordType,
    Record,
    RecordFormat,
    SRecordType,
    encode_record,
    get_format,
)

# Logger for this module
logger = logging.getLogger(__name__)

# Data record counts above this need the 24-bit S6 count record
MAX_COUNT16 = 0xFFFF


# =============================================================================
# Writer Engine
# =============================================================================

class RecordWriter:
    """
    Streaming record writer shared by both formats.

    Subclasses pick the record format and emit the trailer records;
    buffering, the address cursor and record framing live here.

    Attributes:
        sink: Text or binary stream the lines are written to
        config: The active WriterConfig
        address: Address the next data record will carry
        record_count: Data records emitted so far
        closed: True once close() has succeeded
    """

    record_format: RecordFormat = INTEL_HEX

    def __init__(self, sink, config: Optional[WriterConfig] = None, **options):
        self.sink = sink
        self._binary_sink = isinstance(sink, (io.RawIOBase, io.BufferedIOBase))
        self._buffer = bytearray()
        self.record_count = 0
        self.closed = False
        self._header_emitted = False
        self.configure(config, **options)

    # =========================================================================
    # Configuration
    # =========================================================================

    def configure(self, config: Optional[WriterConfig] = None, **options) -> None:
        """
        Apply a configuration, optionally overriding individual fields.

        The address cursor is reset to ``config.address``.

        Raises:
            ValueError: If the configuration does not suit the format
        """
        config = replace(config or WriterConfig(), **options)
        self.width = config.validate(self.record_format)
        config.address_mode = AddressMode.from_bits(config.address_mode)
        self.config = config
        self.address = config.address

    @property
    def data_type(self) -> IntEnum:
        return self.record_format.data_types[self.config.address_mode]

    def set_width(self, width: int) -> None:
        """Set payload bytes per full data record."""
        self._check_open()
        self.configure(self.config, width=width, address=self.address)

    def set_address(self, address: int) -> None:
        """
        Move the address cursor.

        Buffered bytes are flushed first at the old address, so no
        record straddles the jump. An out-of-range address raises
        before anything is flushed.
        """
        self._check_open()
        if not 0 <= address <= self.record_format.max_address:
            raise ValueError(f"Address out of range: 0x{address:X}")
        self.flush()
        self.address = address

    def set_header(self, header: bytes) -> None:
        self._check_open()
        self.configure(self.config, header=bytes(header), address=self.address)

    def set_start_address(self, address: int) -> None:
        """Emit a start-address record at close."""
        self._check_open()
        self.configure(self.config, start_address=address, address=self.address)

    def enable_count_record(self) -> None:
        self._check_open()
        self.configure(self.config, emit_count=True, address=self.address)

    # =========================================================================
    # Streaming
    # =========================================================================

    def write(self, data: Union[bytes, bytearray, memoryview]) -> int:
        """
        Buffer ``data`` and emit every full-width data record available.

        Returns:
            len(data); records for the residue are emitted later

        Raises:
            WriterClosedError: If the writer has been closed
            SinkError: If the sink rejects a record
        """
        self._check_open()
        self._buffer.extend(data)

        width = self.width
        offset = 0
        try:
            while len(self._buffer) - offset >= width:
                self._emit_data(bytes(self._buffer[offset:offset + width]))
                offset += width
        finally:
            del self._buffer[:offset]

        return len(data)

    def flush(self) -> None:
        """
        Emit buffered bytes as one runt data record.

        Does nothing when the buffer is empty.
        """
        self._check_open()
        if self._buffer:
            self._emit_data(bytes(self._buffer))
            self._buffer.clear()

    def close(self) -> None:
        """
        Flush and emit the trailer records. The sink stays open.

        Raises:
            WriterClosedError: If close() already succeeded
        """
        if self.closed:
            raise WriterClosedError()

        self.flush()
        self._ensure_header()
        self._emit_trailer()
        self.closed = True

        logger.debug(
            f"Closed {self.record_format.name} writer: {self.record_count} data records, "
            f"next address 0x{self.address:X}"
        )

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet emitted."""
        return len(self._buffer)

    # =========================================================================
    # Emission
    # =========================================================================

    def _check_open(self) -> None:
        if self.closed:
            raise WriterClosedError()

    def _ensure_header(self) -> None:
        header = self.config.header
        if header is not None and not self._header_emitted:
            self._emit(Record(0, SRecordType.HEADER, header))
            self._header_emitted = True

    def _emit_data(self, payload: bytes) -> None:
        self._ensure_header()
        self._emit(Record(self.address, self.data_type, payload))
        self.address = (self.address + len(payload)) & self.record_format.max_address
        self.record_count += 1

    def _emit(self, record: Record) -> None:
        _write_record(self.sink, record, self._binary_sink)

    def _emit_trailer(self) -> None:
        raise NotImplementedError


# =============================================================================
# Intel HEX
# =============================================================================

class IntelHexWriter(RecordWriter):
    """
    Intel HEX writer.

    The address cursor is 16 bits wide and wraps at 0x10000. Use
    write_extended_linear_address() or write_extended_segment_address()
    to reach higher memory.

    Example:
        >>> writer = IntelHexWriter(sink)
        >>> writer.write(bytes(40))
        40
        >>> writer.close()   # 16 + 16 + 8 byte data records, then :00000001FF
    """

    record_format = INTEL_HEX

    def _emit_trailer(self) -> None:
        if self.config.start_address is not None:
            payload = _word(self.config.start_address, 4)
            self._emit(Record(0, IntelRecordType.START_LINEAR_ADDRESS, payload))
        self._emit(Record(0, IntelRecordType.END_OF_FILE))

    def _write_metadata(self, record_type: IntelRecordType, payload: bytes) -> None:
        # Pending data belongs to the address space before this record
        self.flush()
        self._emit(Record(0, record_type, payload))

    def write_extended_segment_address(self, segment: int) -> None:
        """Emit a type 02 record; data addresses become segment * 16 + offset."""
        self._write_metadata(IntelRecordType.EXTENDED_SEGMENT_ADDRESS, _word(segment, 2))

    def write_start_segment_address(self, cs: int, ip: int) -> None:
        """Emit a type 03 record holding the 80x86 CS:IP start address."""
        self._write_metadata(
            IntelRecordType.START_SEGMENT_ADDRESS, _word(cs, 2) + _word(ip, 2)
        )

    def write_extended_linear_address(self, upper: int) -> None:
        """Emit a type 04 record setting the upper 16 address bits."""
        self._write_metadata(IntelRecordType.EXTENDED_LINEAR_ADDRESS, _word(upper, 2))

    def write_start_linear_address(self, eip: int) -> None:
        """Emit a type 05 record holding the 32-bit EIP start address."""
        self._write_metadata(IntelRecordType.START_LINEAR_ADDRESS, _word(eip, 4))


def _word(value: int, size: int) -> bytes:
    try:
        return value.to_bytes(size, "big")
    except OverflowError:
        raise ValueError(f"Value 0x{value:X} does not fit in {size} bytes")


# =============================================================================
# Motorola S-record
# =============================================================================

class SRecordWriter(RecordWriter):
    """
    Motorola S-record writer.

    Data records use S1, S2 or S3 according to the configured address
    mode; addresses are truncated to that field width. An optional S0
    header is emitted once before any other record. close() emits the
    optional S5/S6 count record and then the optional S9/S8/S7 start
    record.
    """

    record_format = SRECORD

    def set_address_mode(self, address_mode: AddressMode) -> None:
        self._check_open()
        address_mode = AddressMode.from_bits(address_mode)
        self.flush()
        self.configure(self.config, address_mode=address_mode, address=self.address)

    def _emit_trailer(self) -> None:
        config = self.config
        if config.emit_count:
            count_type = SRecordType.COUNT24 if self.record_count > MAX_COUNT16 else SRecordType.COUNT16
            self._emit(Record(self.record_count, count_type))
        if config.start_address is not None:
            start_type = self.record_format.start_types[config.address_mode]
            self._emit(Record(config.start_address, start_type))


# =============================================================================
# Factory
# =============================================================================

_WRITERS = {
    INTEL_HEX.name: IntelHexWriter,
    SRECORD.name: SRecordWriter,
}


def create_writer(
    sink,
    record_format: Union[str, RecordFormat],
    config: Optional[WriterConfig] = None,
    **options,
) -> RecordWriter:
    """
    Create the writer for a record format.

    Args:
        sink: Output stream
        record_format: INTEL_HEX, SRECORD, "ihex" or "srec"
        config: Writer configuration
        **options: WriterConfig field overrides

    Example:
        >>> writer = create_writer(sink, "srec", width=32)
    """
    if isinstance(record_format, str):
        record_format = get_format(record_format)
    return _WRITERS[record_format.name](sink, config, **options)


# =============================================================================
# Record Sequence Output
# =============================================================================

def _write_record(sink, record: Record, binary: bool) -> None:
    line = encode_record(record) + "\n"
    try:
        if binary:
            sink.write(line.encode("ascii"))
        else:
            sink.write(line)
    except OSError as e:
        raise SinkError(f"Failed writing {record.layout.label} record: {e}") from e


def write_records(sink, records: Iterable[Record], width: Optional[int] = None) -> int:
    """
    Emit an existing record sequence, e.g. the output of coalesce().

    Data records longer than ``width`` are split into consecutive
    records of at most ``width`` bytes; all other records are emitted
    unchanged and in order, except that S5/S6 count records are
    rewritten to the number of data records actually emitted.

    Args:
        sink: Output stream
        records: Records of a single format
        width: Payload bytes per data record (None = format default)

    Returns:
        Number of lines written

    Raises:
        ValueError: If width does not fit a record's length field
        SinkError: If the sink rejects a record
    """
    binary = isinstance(sink, (io.RawIOBase, io.BufferedIOBase))
    lines = 0
    data_count = 0

    for record in records:
        layout = record.layout
        if record.record_type is SRecordType.COUNT16 or record.record_type is SRecordType.COUNT24:
            count_type = SRecordType.COUNT24 if data_count > MAX_COUNT16 else SRecordType.COUNT16
            record = Record(data_count, count_type)
        elif layout.is_data and record.payload:
            chunk = record.format.default_width if width is None else width
            max_chunk = MAX_LENGTH_FIELD - layout.overhead
            if not 1 <= chunk <= max_chunk:
                raise ValueError(f"Invalid record width: {chunk} (must be 1-{max_chunk})")
            payload = record.payload
            for offset in range(0, len(payload), chunk):
                piece = Record(record.address + offset, record.record_type, payload[offset:offset + chunk])
                _write_record(sink, piece, binary)
                lines += 1
                data_count += 1
            continue
        elif layout.is_data:
            data_count += 1

        _write_record(sink, record, binary)
        lines += 1

    logger.debug(f"Wrote {lines} records ({data_count} data)")
    return lines
