"""
Firmhex Error Hierarchy
=======================

This module defines the exception hierarchy for the firmhex package.
All exceptions inherit from FirmhexError, allowing callers to catch all
codec-related errors with a single except clause if desired.

Exception Hierarchy
-------------------
FirmhexError (base)
├── RecordError (decoding a record line)
│   ├── EmptyRecordError - blank record line
│   ├── MalformedHexError - missing marker, non-hex or odd-length text
│   ├── ChecksumMismatchError - stored checksum disagrees with computed one
│   ├── TruncatedRecordError - length field disagrees with payload size
│   └── UnknownRecordTypeError - record type not in the format's table
├── WriterError (encoding)
│   ├── WriterClosedError - write/flush/close after close()
│   └── SinkError - the output sink rejected a write
└── SourceError - the input source could not be read

Decode errors carry the offending line number (1-indexed) and text when
they are raised from a multi-line read, formatted as:
    line 12: checksum mismatch: expected 0x26, got 0x27
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class FirmhexError(Exception):
    """
    Base exception for all firmhex errors.

        try:
            records = read_file("firmware.hex", INTEL_HEX)
        except FirmhexError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Decode Exceptions
# =============================================================================

class RecordError(FirmhexError):
    """
    Base exception for errors found while decoding a record line.

    Attributes:
        message: The error description
        line_number: 1-indexed line in the source (optional)
        line: The raw record text (optional)
    """

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        line: Optional[str] = None,
    ):
        self.message = message
        self.line_number = line_number
        self.line = line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.line_number is not None:
            return f"line {self.line_number}: {self.message}"
        return self.message

    def at_line(self, line_number: int, line: str) -> "RecordError":
        """Attach source position and refresh the formatted message."""
        self.line_number = line_number
        self.line = line
        self.args = (self._format_message(),)
        return self


class EmptyRecordError(RecordError):
    """Raised when an empty string is handed to the line decoder."""

    def __init__(self, message: str = "empty record", **kwargs):
        super().__init__(message, **kwargs)


class MalformedHexError(RecordError):
    """
    The record text is not valid ASCII-hex.

    Raised when:
    - The line does not start with the format's marker character
    - The text contains characters other than hexadecimal digits
    - The number of hex digits is odd
    """
    pass


class ChecksumMismatchError(RecordError):
    """
    Record checksum verification failed.

    Attributes:
        expected: The checksum computed over the record body
        actual: The checksum byte stored in the record
    """

    def __init__(self, expected: int, actual: int, **kwargs):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"checksum mismatch: expected 0x{expected:02X}, got 0x{actual:02X}",
            **kwargs,
        )


class TruncatedRecordError(RecordError):
    """
    The declared length field does not match the bytes present.

    Also raised when a record is too short to hold its fixed fields
    (length, address, type and checksum).
    """
    pass


class UnknownRecordTypeError(RecordError):
    """
    Record type is not defined for the active format.

    Attributes:
        type_code: The offending type byte or S-record type digit
    """

    def __init__(self, type_code, **kwargs):
        self.type_code = type_code
        if isinstance(type_code, int):
            label = f"0x{type_code:02X}"
        else:
            label = repr(type_code)
        super().__init__(f"unknown record type {label}", **kwargs)


# =============================================================================
# Encode Exceptions
# =============================================================================

class WriterError(FirmhexError):
    """Base exception for record writer errors."""
    pass


class WriterClosedError(WriterError):
    """Raised by write(), flush() or close() once the writer is closed."""

    def __init__(self, message: str = "writer already closed"):
        super().__init__(message)


class SinkError(WriterError):
    """
    The output sink rejected a write.

    The underlying OSError is chained as __cause__. Records emitted
    before the failure remain in the sink.
    """
    pass


# =============================================================================
# Source Exceptions
# =============================================================================

class SourceError(FirmhexError):
    """
    The input source could not be read.

    The underlying OSError is chained as __cause__.
    """
    pass
