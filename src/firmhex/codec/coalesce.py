"""
Data Record Coalescing
======================

Merges runs of address-contiguous data records into single "jumbo"
data records. A record continues the open run when

    record.address == run_base + len(run_bytes)

Any non-data record closes the open run and passes through unchanged,
so metadata records keep their position relative to the data around
them.

Mixed-Width S-records
---------------------
S-record files may mix S1, S2 and S3 data records. Every merged run is
re-emitted with the widest data type seen anywhere in the input
(S3 over S2 over S1), chosen by a scan before the merge pass.

Example
-------
    >>> merged = coalesce(read_file("firmware.s19", SRECORD))
    >>> [str(r) for r in merged if r.is_data]
    ['Address: 0x0000, Type: S1, Length: 70']

The merged payload may exceed 255 bytes; re-emit such records through
a writer rather than encode_record().
"""

from typing import Iterable, Optional
from enum import IntEnum
import logging

from firmhex.codec.records import Record

# Logger for this module
logger = logging.getLogger(__name__)


def preferred_data_type(records: list[Record]) -> Optional[IntEnum]:
    """
    Data record type with the widest address field in ``records``.

    Returns:
        The record type, or None when there are no data records
    """
    widest = None
    for record in records:
        if not record.is_data:
            continue
        if widest is None or record.layout.address_width > widest.layout.address_width:
            widest = record
    return widest.record_type if widest is not None else None


def coalesce(records: Iterable[Record]) -> list[Record]:
    """
    Merge address-contiguous data records.

    Args:
        records: A decoded record sequence

    Returns:
        A new record sequence; the input is not modified
    """
    records = list(records)
    data_type = preferred_data_type(records)

    output: list[Record] = []
    run_open = False
    run_base = 0
    run_next = 0
    run_bytes = bytearray()

    def close_run() -> None:
        nonlocal run_open
        if run_open:
            output.append(Record(run_base, data_type, bytes(run_bytes)))
            run_bytes.clear()
            run_open = False

    for record in records:
        if not record.is_data:
            close_run()
            output.append(record)
            continue

        # A non-contiguous record closes the run and is then taken again
        # as the first record of a new one.
        retry = True
        while retry:
            retry = False
            if not run_open:
                run_open = True
                run_base = record.address
                run_next = record.end_address
                run_bytes.extend(record.payload)
            elif record.address == run_next:
                run_bytes.extend(record.payload)
                run_next += len(record.payload)
            else:
                close_run()
                retry = True

    close_run()

    logger.debug(f"Coalesced {len(records)} records into {len(output)}")
    return output
