"""
Writer Configuration
====================

Settings for record writers. Configuration can come from:
- Default values (defined here)
- Keyword arguments
- Environment variables (``WriterConfig.from_env()``)

Defaults:
- Payload width: format default (Intel HEX 16 bytes, S-record 10 bytes)
- Address mode: 16-bit
- Start address: 0x0000
- No header, count or start-address records
"""

from dataclasses import dataclass
from typing import Optional
import os

from firmhex.codec.records import (
    AddressMode,
    MAX_LENGTH_FIELD,
    RecordFormat,
    SRecordType,
)


@dataclass
class WriterConfig:
    """
    Configuration for a record writer.

    Attributes:
        width: Payload bytes per full data record (None = format default)
        address_mode: Address width of S-record data/start records
        address: Initial address cursor
        header: S0 header payload, emitted once before any other record
        emit_count: Emit an S5/S6 data record count at close
        start_address: Emit a start-address record at close
    """

    width: Optional[int] = None
    address_mode: AddressMode = AddressMode.ADDR16
    address: int = 0
    header: Optional[bytes] = None
    emit_count: bool = False
    start_address: Optional[int] = None

    # ═══════════════════════════════════════════════════════════════════════════
    # FACTORY METHODS
    # ═══════════════════════════════════════════════════════════════════════════

    @classmethod
    def from_env(cls) -> "WriterConfig":
        """
        Create WriterConfig from environment variables.

        Environment variables (all optional):
            FIRMHEX_WIDTH: Payload bytes per record
            FIRMHEX_ADDRESS_MODE: 16, 24 or 32
            FIRMHEX_ADDRESS: Initial address (0x prefix allowed)
            FIRMHEX_HEADER: Header text (ASCII)
            FIRMHEX_EMIT_COUNT: "1", "true" or "yes" to enable
            FIRMHEX_START_ADDRESS: Start address (0x prefix allowed)
        """
        config = cls()

        if "FIRMHEX_WIDTH" in os.environ:
            config.width = int(os.environ["FIRMHEX_WIDTH"], 0)
        if "FIRMHEX_ADDRESS_MODE" in os.environ:
            config.address_mode = AddressMode.from_bits(os.environ["FIRMHEX_ADDRESS_MODE"])
        if "FIRMHEX_ADDRESS" in os.environ:
            config.address = int(os.environ["FIRMHEX_ADDRESS"], 0)
        if "FIRMHEX_HEADER" in os.environ:
            config.header = os.environ["FIRMHEX_HEADER"].encode("ascii")
        if "FIRMHEX_EMIT_COUNT" in os.environ:
            config.emit_count = os.environ["FIRMHEX_EMIT_COUNT"].lower() in ("1", "true", "yes")
        if "FIRMHEX_START_ADDRESS" in os.environ:
            config.start_address = int(os.environ["FIRMHEX_START_ADDRESS"], 0)

        return config

    # ═══════════════════════════════════════════════════════════════════════════
    # VALIDATION
    # ═══════════════════════════════════════════════════════════════════════════

    def validate(self, record_format: RecordFormat) -> int:
        """
        Check this configuration against a record format.

        Returns:
            The resolved payload width

        Raises:
            ValueError: If any setting is out of range for the format
        """
        address_mode = AddressMode.from_bits(self.address_mode)
        if not record_format.supports(address_mode):
            raise ValueError(
                f"{record_format.name} does not support {int(address_mode)}-bit addresses"
            )

        data_layout = record_format.layout(record_format.data_types[address_mode])
        max_width = MAX_LENGTH_FIELD - data_layout.overhead
        width = record_format.default_width if self.width is None else self.width
        if not 1 <= width <= max_width:
            raise ValueError(f"Invalid record width: {width} (must be 1-{max_width})")

        if not 0 <= self.address <= record_format.max_address:
            raise ValueError(f"Address out of range: 0x{self.address:X}")
        if self.start_address is not None and not 0 <= self.start_address <= 0xFFFFFFFF:
            raise ValueError(f"Start address out of range: 0x{self.start_address:X}")

        if self.header is not None:
            if not record_format.has_type(SRecordType.HEADER):
                raise ValueError(f"{record_format.name} has no header record")
            header_layout = record_format.layout(SRecordType.HEADER)
            if len(self.header) > MAX_LENGTH_FIELD - header_layout.overhead:
                raise ValueError(f"Header too long: {len(self.header)} bytes")
        if self.emit_count and not record_format.has_type(SRecordType.COUNT16):
            raise ValueError(f"{record_format.name} has no count record")

        return width

