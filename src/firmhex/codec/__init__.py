"""
Intel HEX and S-record Codec
============================

This package encodes and decodes the two common firmware-image text
formats and reduces decoded record streams by merging contiguous data.

This package provides:
- **IntelHexWriter / SRecordWriter**: Streaming writers
- **read_file / read_lines**: Decoders producing Record sequences
- **HexFileParser**: Parse a file and query its contents
- **coalesce**: Merge address-contiguous data records
- **Checksum utilities**: The per-format checksum functions

Quick Start
-----------
Writing:

    >>> from firmhex.codec import IntelHexWriter
    >>> writer = IntelHexWriter(sink, width=16)
    >>> writer.write(firmware)
    >>> writer.close()

Reading and merging:

    >>> from firmhex.codec import read_file, coalesce, SRECORD
    >>> for record in coalesce(read_file("firmware.s19", SRECORD)):
    ...     print(record)

Formats are never detected automatically; the caller always names one.
"""

# =============================================================================
# Public API Exports
# =============================================================================

# Record types, layout tables and framing
from firmhex.codec.records import (
    IntelRecordType,
    SRecordType,
    AddressMode,
    RecordLayout,
    RecordFormat,
    Record,
    INTEL_LAYOUTS,
    SRECORD_LAYOUTS,
    INTEL_HEX,
    SRECORD,
    FORMATS,
    get_format,
    encode_record,
    decode_line,
)

# Checksum utilities
from firmhex.codec.checksum import (
    twos_complement_checksum,
    ones_complement_checksum,
    checksum_hex_ascii,
    verify_checksum,
)

# Coalescer
from firmhex.codec.coalesce import (
    coalesce,
    preferred_data_type,
)

# Parser
from firmhex.codec.parser import (
    HexFileParser,
    read_lines,
    read_text,
    read_stream,
    read_file,
)

# Writers
from firmhex.codec.writer import (
    RecordWriter,
    IntelHexWriter,
    SRecordWriter,
    create_writer,
    write_records,
)

__all__ = [
    # Records
    "IntelRecordType",
    "SRecordType",
    "AddressMode",
    "RecordLayout",
    "RecordFormat",
    "Record",
    "INTEL_LAYOUTS",
    "SRECORD_LAYOUTS",
    "INTEL_HEX",
    "SRECORD",
    "FORMATS",
    "get_format",
    "encode_record",
    "decode_line",
    # Checksum
    "twos_complement_checksum",
    "ones_complement_checksum",
    "checksum_hex_ascii",
    "verify_checksum",
    # Coalescer
    "coalesce",
    "preferred_data_type",
    # Parser
    "HexFileParser",
    "read_lines",
    "read_text",
    "read_stream",
    "read_file",
    # Writers
    "RecordWriter",
    "IntelHexWriter",
    "SRecordWriter",
    "create_writer",
    "write_records",
]
