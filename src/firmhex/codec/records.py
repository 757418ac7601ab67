"""
Record Type Definitions and Framing
===================================

This module defines the record data structures for the two supported
firmware-image text formats, the read-only tables that describe their
field layouts, and the framing functions shared by the reader and the
writer.

Line Structure
--------------
Every record is one text line:

    <marker> <hex digits ...> <checksum pair>

**Intel HEX** (marker ``:``):

    Byte 0:     Payload length
    Byte 1-2:   16-bit address (big-endian)
    Byte 3:     Record type
    Byte 4+:    Payload
    Last:       Checksum (two's complement)

**Motorola S-record** (marker ``S`` plus a type digit):

    Byte 0:     Count = address bytes + payload bytes + 1 (checksum)
    Byte 1-n:   16, 24 or 32-bit address (big-endian, width set by type)
    Byte n+1:   Payload
    Last:       Checksum (one's complement)

Layout Tables
-------------
Each record type maps to a RecordLayout that fixes its address field
width and the number of bytes the length field counts on top of the
payload. The tables are built once at import time and exposed through
MappingProxyType, so adding a record type means adding one table row.

Reference
---------
- Intel Hexadecimal Object File Format Specification, Rev. A
- Motorola M68000 Family Programmer's Reference Manual, Appendix C
"""

from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Mapping, Optional
import re

from firmhex.errors import (
    ChecksumMismatchError,
    EmptyRecordError,
    MalformedHexError,
    TruncatedRecordError,
    UnknownRecordTypeError,
)
from firmhex.codec.checksum import (
    ChecksumFunction,
    ones_complement_checksum,
    twos_complement_checksum,
)


# Largest value the one-byte length field can hold
MAX_LENGTH_FIELD = 0xFF

_HEX_DIGITS = re.compile(r"[0-9A-Fa-f]*")


# =============================================================================
# Enumeration Types
# =============================================================================

class IntelRecordType(IntEnum):
    """Intel HEX record type byte."""
    DATA = 0x00
    END_OF_FILE = 0x01
    EXTENDED_SEGMENT_ADDRESS = 0x02
    START_SEGMENT_ADDRESS = 0x03
    EXTENDED_LINEAR_ADDRESS = 0x04
    START_LINEAR_ADDRESS = 0x05


class SRecordType(IntEnum):
    """
    S-record type digit (the character following ``S``).

    S4 is not defined by the standard.
    """
    HEADER = 0
    DATA16 = 1
    DATA24 = 2
    DATA32 = 3
    COUNT16 = 5
    COUNT24 = 6
    START32 = 7
    START24 = 8
    START16 = 9


class AddressMode(IntEnum):
    """Address width used for emitted S-record data and start records."""
    ADDR16 = 16
    ADDR24 = 24
    ADDR32 = 32

    @property
    def byte_width(self) -> int:
        """Address field width in bytes."""
        return self.value // 8

    @classmethod
    def from_bits(cls, bits: int) -> "AddressMode":
        """Convert 16/24/32 to an AddressMode."""
        try:
            return cls(int(bits))
        except ValueError:
            raise ValueError(f"Invalid address mode: {bits} (use 16, 24 or 32)")


# =============================================================================
# Layout Tables
# =============================================================================

@dataclass(frozen=True)
class RecordLayout:
    """
    Field layout of one record type.

    Attributes:
        record_type: The enum member this row describes
        label: Display name
        address_width: Address field width in bytes
        overhead: Bytes counted by the length field in addition to the payload
        is_data: True for records that carry program bytes
    """
    record_type: IntEnum
    label: str
    address_width: int
    overhead: int = 0
    is_data: bool = False

    @property
    def address_mask(self) -> int:
        return (1 << (8 * self.address_width)) - 1


def _intel_row(record_type: IntelRecordType, label: str, is_data: bool = False) -> RecordLayout:
    return RecordLayout(record_type, label, address_width=2, overhead=0, is_data=is_data)


def _srec_row(record_type: SRecordType, address_width: int, is_data: bool = False) -> RecordLayout:
    # Count covers address bytes, payload and the checksum byte
    return RecordLayout(
        record_type,
        f"S{int(record_type)}",
        address_width=address_width,
        overhead=address_width + 1,
        is_data=is_data,
    )


INTEL_LAYOUTS: Mapping[int, RecordLayout] = MappingProxyType({
    row.record_type: row
    for row in (
        _intel_row(IntelRecordType.DATA, "Data", is_data=True),
        _intel_row(IntelRecordType.END_OF_FILE, "EOF"),
        _intel_row(IntelRecordType.EXTENDED_SEGMENT_ADDRESS, "Extended Segment Address"),
        _intel_row(IntelRecordType.START_SEGMENT_ADDRESS, "Start Segment Address"),
        _intel_row(IntelRecordType.EXTENDED_LINEAR_ADDRESS, "Extended Linear Address"),
        _intel_row(IntelRecordType.START_LINEAR_ADDRESS, "Start Linear Address"),
    )
})

SRECORD_LAYOUTS: Mapping[int, RecordLayout] = MappingProxyType({
    row.record_type: row
    for row in (
        _srec_row(SRecordType.HEADER, 2),
        _srec_row(SRecordType.DATA16, 2, is_data=True),
        _srec_row(SRecordType.DATA24, 3, is_data=True),
        _srec_row(SRecordType.DATA32, 4, is_data=True),
        _srec_row(SRecordType.COUNT16, 2),
        _srec_row(SRecordType.COUNT24, 3),
        _srec_row(SRecordType.START32, 4),
        _srec_row(SRecordType.START24, 3),
        _srec_row(SRecordType.START16, 2),
    )
})


@dataclass(frozen=True, eq=False)
class RecordFormat:
    """
    Everything that distinguishes one record format from the other.

    Attributes:
        name: Short name used on the command line
        marker: Line-start character
        layouts: Record type to RecordLayout table
        checksum: Checksum function over the record body
        default_width: Default payload bytes per data record
        type_offset: Byte offset of the type field in the body, or None
            when the type is carried as a digit after the marker
        max_address: Largest address the format can express
        data_types: Data record type for each address mode
        start_types: Start-address record type for each address mode
    """
    name: str
    marker: str
    layouts: Mapping[int, RecordLayout] = field(repr=False)
    checksum: ChecksumFunction = field(repr=False)
    default_width: int
    type_offset: Optional[int]
    max_address: int
    data_types: Mapping[AddressMode, IntEnum] = field(repr=False)
    start_types: Mapping[AddressMode, IntEnum] = field(repr=False)

    @property
    def type_in_marker(self) -> bool:
        return self.type_offset is None

    def layout(self, record_type) -> RecordLayout:
        """
        Look up the layout for a record type.

        Raises:
            UnknownRecordTypeError: If the type is not in this format's table
        """
        row = self.layouts.get(record_type)
        # IntEnum members compare equal to plain ints, so an S-record type
        # would otherwise match the Intel row with the same number
        if row is None or (
            isinstance(record_type, IntEnum)
            and type(record_type) is not type(row.record_type)
        ):
            raise UnknownRecordTypeError(record_type)
        return row

    def has_type(self, record_type: IntEnum) -> bool:
        try:
            self.layout(record_type)
        except UnknownRecordTypeError:
            return False
        return True

    def supports(self, address_mode: AddressMode) -> bool:
        return address_mode in self.data_types


INTEL_HEX = RecordFormat(
    name="ihex",
    marker=":",
    layouts=INTEL_LAYOUTS,
    checksum=twos_complement_checksum,
    default_width=16,
    type_offset=3,
    max_address=0xFFFF,
    data_types=MappingProxyType({AddressMode.ADDR16: IntelRecordType.DATA}),
    start_types=MappingProxyType({AddressMode.ADDR16: IntelRecordType.START_LINEAR_ADDRESS}),
)

SRECORD = RecordFormat(
    name="srec",
    marker="S",
    layouts=SRECORD_LAYOUTS,
    checksum=ones_complement_checksum,
    default_width=10,
    type_offset=None,
    max_address=0xFFFFFFFF,
    data_types=MappingProxyType({
        AddressMode.ADDR16: SRecordType.DATA16,
        AddressMode.ADDR24: SRecordType.DATA24,
        AddressMode.ADDR32: SRecordType.DATA32,
    }),
    start_types=MappingProxyType({
        AddressMode.ADDR16: SRecordType.START16,
        AddressMode.ADDR24: SRecordType.START24,
        AddressMode.ADDR32: SRecordType.START32,
    }),
)

FORMATS: Mapping[str, RecordFormat] = MappingProxyType({
    INTEL_HEX.name: INTEL_HEX,
    SRECORD.name: SRECORD,
})

_FORMAT_BY_TYPE: Mapping[type, RecordFormat] = MappingProxyType({
    IntelRecordType: INTEL_HEX,
    SRecordType: SRECORD,
})


def get_format(name: str) -> RecordFormat:
    """
    Look up a format by name ("ihex" or "srec").

    Raises:
        ValueError: If the name is unknown
    """
    try:
        return FORMATS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown record format '{name}'. Choose from: {', '.join(FORMATS)}"
        )


# =============================================================================
# Record
# =============================================================================

@dataclass(frozen=True, eq=False)
class Record:
    """
    One decoded record line.

    Records compare equal only when their record types belong to the
    same format.

    Attributes:
        address: Address field value
        record_type: IntelRecordType or SRecordType member
        payload: Payload bytes (0-255 on the wire; coalesced data
            records may be longer)
    """
    address: int
    record_type: IntEnum
    payload: bytes = b""

    def __post_init__(self) -> None:
        if type(self.record_type) not in _FORMAT_BY_TYPE:
            raise TypeError(
                f"record_type must be IntelRecordType or SRecordType, "
                f"got {self.record_type!r}"
            )
        object.__setattr__(self, "payload", bytes(self.payload))

    def _key(self) -> tuple:
        return (type(self.record_type), self.address, int(self.record_type), self.payload)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    @property
    def format(self) -> RecordFormat:
        return _FORMAT_BY_TYPE[type(self.record_type)]

    @property
    def layout(self) -> RecordLayout:
        return self.format.layout(self.record_type)

    @property
    def is_data(self) -> bool:
        return self.layout.is_data

    @property
    def end_address(self) -> int:
        """Address one past the last payload byte."""
        return self.address + len(self.payload)

    def __str__(self) -> str:
        layout = self.layout
        digits = layout.address_width * 2
        text = (
            f"Address: 0x{self.address:0{digits}X}, Type: {layout.label}, "
            f"Length: {len(self.payload)}"
        )
        if not layout.is_data and self.payload:
            text += f", Data: {self.payload.hex().upper()}"
        return text


# =============================================================================
# Framing
# =============================================================================

def encode_record(record: Record) -> str:
    """
    Frame a record as one line of text (without the newline).

    The body is length + address (truncated to the field width) +
    type byte (Intel HEX only) + payload; the checksum is computed over
    exactly that body and appended before hex encoding.

    Raises:
        ValueError: If the payload does not fit the one-byte length field

    Example:
        >>> encode_record(Record(0, IntelRecordType.END_OF_FILE))
        ':00000001FF'
    """
    record_format = record.format
    layout = record_format.layout(record.record_type)

    length = len(record.payload) + layout.overhead
    if length > MAX_LENGTH_FIELD:
        raise ValueError(
            f"{layout.label} record payload too long: {len(record.payload)} bytes "
            f"(length field would be {length})"
        )

    address = record.address & layout.address_mask

    body = bytearray()
    body.append(length)
    body.extend(address.to_bytes(layout.address_width, "big"))
    if not record_format.type_in_marker:
        body.append(int(record.record_type))
    body.extend(record.payload)
    body.append(record_format.checksum(bytes(body)))

    prefix = record_format.marker
    if record_format.type_in_marker:
        prefix += str(int(record.record_type))
    return prefix + body.hex().upper()


def decode_line(line: str, record_format: RecordFormat) -> Record:
    """
    Decode one record line.

    Steps, in order: empty check, marker strip, hex decode, checksum
    verification, field parsing and length check.

    Args:
        line: One line of text; surrounding whitespace is ignored
        record_format: INTEL_HEX or SRECORD

    Returns:
        The decoded Record

    Raises:
        EmptyRecordError: Line is empty
        MalformedHexError: Wrong marker, non-hex digits or odd digit count
        ChecksumMismatchError: Stored checksum is wrong
        UnknownRecordTypeError: Type not in the format's table
        TruncatedRecordError: Length field disagrees with the payload size
    """
    text = line.strip()
    if not text:
        raise EmptyRecordError()

    marker = record_format.marker
    if not text.startswith(marker):
        raise MalformedHexError(f"record does not start with '{marker}'")
    text = text[len(marker):]

    tag = None
    if record_format.type_in_marker:
        if not text:
            raise TruncatedRecordError("record type digit missing")
        tag, text = text[0], text[1:]

    if not _HEX_DIGITS.fullmatch(text):
        raise MalformedHexError("record contains non-hexadecimal characters")
    if len(text) % 2:
        raise MalformedHexError(f"odd number of hex digits ({len(text)})")

    raw = bytes.fromhex(text)
    if not raw:
        raise TruncatedRecordError("record has no checksum byte")

    body, stored = raw[:-1], raw[-1]
    expected = record_format.checksum(body)
    if stored != expected:
        raise ChecksumMismatchError(expected=expected, actual=stored)

    if record_format.type_in_marker:
        code = int(tag) if tag in "0123456789" else tag
        layout = record_format.layout(code)
        fixed = 1 + layout.address_width
    else:
        if len(body) <= record_format.type_offset:
            raise TruncatedRecordError(f"record too short ({len(body)} bytes)")
        layout = record_format.layout(body[record_format.type_offset])
        fixed = record_format.type_offset + 1

    if len(body) < fixed:
        raise TruncatedRecordError(
            f"{layout.label} record too short ({len(body)} bytes, need {fixed})"
        )

    length = body[0]
    address = int.from_bytes(body[1:1 + layout.address_width], "big")
    payload = body[fixed:]

    if length != len(payload) + layout.overhead:
        raise TruncatedRecordError(
            f"length field 0x{length:02X} does not match "
            f"{len(payload)} payload bytes"
        )

    return Record(address=address, record_type=layout.record_type, payload=payload)
