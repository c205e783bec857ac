"""
Time-ordered UUID (version 7, RFC 9562) generator.

Books and exchange requests are listed newest first everywhere, so ids
whose leading 48 bits are a millisecond timestamp keep inserts clustered
in the SQLite primary-key index and make ids sort in creation order.

Layout (128 bits):
    48  unix_ts_ms
     4  version (0b0111)
    12  rand_a
     2  variant (0b10)
    62  rand_b
"""

import os
import time
from uuid import UUID


def uuid7() -> UUID:
    """
    Generate a UUIDv7.

    Returns:
        A uuid.UUID instance with version 7.

    Example:
        >>> uuid7().version
        7
    """
    timestamp_ms = int(time.time() * 1000) & ((1 << 48) - 1)
    rand = int.from_bytes(os.urandom(10), byteorder="big")

    rand_a = rand & 0xFFF
    rand_b = (rand >> 12) & ((1 << 62) - 1)

    value = (timestamp_ms << 80) | (0x7 << 76) | (rand_a << 64) | (0b10 << 62) | rand_b
    return UUID(int=value)


def uuid7_timestamp_ms(value: UUID) -> int:
    """Extract the millisecond timestamp encoded in a UUIDv7."""
    if value.version != 7:
        raise ValueError(f"expected a version 7 UUID, got version {value.version}")
    return value.int >> 80
