"""
Time-ordered identifiers for operations and events

Event ids sort by creation time, so the observability log reads back in
order without an extra sequence column.
"""

import secrets
import time
import uuid


def generate_id() -> str:
    """
    Generate a UUIDv7-style identifier

    Layout: 48-bit Unix time in milliseconds, version nibble 7, 12 random
    bits, RFC 4122 variant, 62 random bits.

    Returns:
        Sortable UUID string (e.g., "01908e9a-3b87-7000-8000-123456789abc")
    """
    timestamp_ms = int(time.time() * 1000) & 0xFFFFFFFFFFFF
    value = (
        (timestamp_ms << 80)
        | (0x7 << 76)
        | (secrets.randbits(12) << 64)
        | (0b10 << 62)
        | secrets.randbits(62)
    )
    return str(uuid.UUID(int=value))
