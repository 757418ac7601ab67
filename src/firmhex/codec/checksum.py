"""
Record Checksum Calculations
============================

Both record formats protect each line with a single checksum byte
computed over the binary record body (everything between the line
marker and the checksum itself).

Intel HEX
---------
Two's complement of the low byte of the sum:

    checksum = (-sum(body)) & 0xFF

so that ``sum(body) + checksum == 0 (mod 256)``.

Motorola S-record
-----------------
One's complement of the low byte of the sum:

    checksum = ~sum(body) & 0xFF

so that ``sum(body) + checksum == 0xFF (mod 256)``.

Example
-------
    >>> twos_complement_checksum(bytes([0x00, 0x00, 0x00, 0x01]))
    255
    >>> checksum_hex_ascii("137AF00A0A0D00000000000000000000000000",
    ...                    ones_complement_checksum)
    97
"""

from typing import Callable, Final


ChecksumFunction = Callable[[bytes], int]

BYTE_MASK: Final[int] = 0xFF


def twos_complement_checksum(body: bytes) -> int:
    """
    Intel HEX checksum: negated byte sum, modulo 256.

    Args:
        body: Length, address, type and payload bytes of a record

    Returns:
        Checksum byte (0x00 - 0xFF)
    """
    return -sum(body) & BYTE_MASK


def ones_complement_checksum(body: bytes) -> int:
    """
    S-record checksum: bitwise complement of the byte sum, modulo 256.

    Args:
        body: Count, address and payload bytes of a record

    Returns:
        Checksum byte (0x00 - 0xFF)
    """
    return ~sum(body) & BYTE_MASK


def checksum_hex_ascii(text: str, checksum: ChecksumFunction) -> int:
    """
    Calculate a checksum over an ASCII-hex string (two digits per byte).

    Args:
        text: Hexadecimal digits, no marker and no checksum pair
        checksum: One of the checksum functions above

    Raises:
        ValueError: If text is not valid hexadecimal
    """
    return checksum(bytes.fromhex(text))


def verify_checksum(body: bytes, stored: int, checksum: ChecksumFunction) -> bool:
    """Return True if ``stored`` is the checksum of ``body``."""
    return checksum(body) == stored
