"""
firmhex - Intel HEX and Motorola S-record Toolkit
=================================================

This package reads and writes the two text formats used to ship
firmware images to programmers, bootloaders and emulators:

- **Intel HEX**: ``:``-prefixed records with 16-bit addresses
- **Motorola S-record**: ``S``-prefixed records with 16, 24 or 32-bit
  addresses

Main Components
---------------
- **codec**: Record framing, streaming writers, line decoders and the
  data record coalescer
- **config**: Writer configuration (record width, address mode, header
  and trailer records)
- **cli**: The ``firmhex`` command-line tool

Quick Start
-----------
Encode a binary image:
    >>> from firmhex import IntelHexWriter
    >>> with open("image.hex", "w") as f:
    ...     writer = IntelHexWriter(f)
    ...     writer.write(Path("image.bin").read_bytes())
    ...     writer.close()

Decode and merge:
    >>> from firmhex import read_file, coalesce, INTEL_HEX
    >>> records = coalesce(read_file("image.hex", INTEL_HEX))

Or use the command-line tool:
    $ firmhex encode -f srec -o image.s19 image.bin
    $ firmhex list -f srec --coalesce image.s19
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================
# The codec package must be imported before config: the writers import
# WriterConfig, and config imports the record tables from the codec.
# =============================================================================

from firmhex.codec import (
    IntelRecordType,
    SRecordType,
    AddressMode,
    RecordFormat,
    Record,
    INTEL_HEX,
    SRECORD,
    get_format,
    encode_record,
    decode_line,
    twos_complement_checksum,
    ones_complement_checksum,
    coalesce,
    HexFileParser,
    read_lines,
    read_text,
    read_stream,
    read_file,
    RecordWriter,
    IntelHexWriter,
    SRecordWriter,
    create_writer,
    write_records,
)
from firmhex.config import WriterConfig
from firmhex.errors import (
    FirmhexError,
    RecordError,
    EmptyRecordError,
    MalformedHexError,
    ChecksumMismatchError,
    TruncatedRecordError,
    UnknownRecordTypeError,
    WriterError,
    WriterClosedError,
    SinkError,
    SourceError,
)

__all__ = [
    # Version info
    "__version__",
    # Records and formats
    "IntelRecordType",
    "SRecordType",
    "AddressMode",
    "RecordFormat",
    "Record",
    "INTEL_HEX",
    "SRECORD",
    "get_format",
    "encode_record",
    "decode_line",
    # Checksums
    "twos_complement_checksum",
    "ones_complement_checksum",
    # Reading and coalescing
    "coalesce",
    "HexFileParser",
    "read_lines",
    "read_text",
    "read_stream",
    "read_file",
    # Writing
    "RecordWriter",
    "IntelHexWriter",
    "SRecordWriter",
    "create_writer",
    "write_records",
    "WriterConfig",
    # Exception hierarchy
    "FirmhexError",
    "RecordError",
    "EmptyRecordError",
    "MalformedHexError",
    "ChecksumMismatchError",
    "TruncatedRecordError",
    "UnknownRecordTypeError",
    "WriterError",
    "WriterClosedError",
    "SinkError",
    "SourceError",
]
