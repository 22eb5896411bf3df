"""
Time-ordered identifiers for events and commands

Ids follow the UUIDv7 layout: a millisecond timestamp in the top 48 bits,
then random bits. Ids minted later sort later, so the event table's
primary key roughly follows commit order and a command id doubles as the
correlation id of every log line its operation writes.
"""

import secrets
import time
import uuid
from datetime import datetime, timezone

_VERSION_7 = 0x7 << 76
_VARIANT_RFC4122 = 0x2 << 62


def generate_id() -> str:
    """
    Generate a UUIDv7 string

    Returns:
        Canonical 36-character UUID (e.g. "01908e9a-3b87-7000-8000-123456789abc")
    """
    millis = time.time_ns() // 1_000_000 & 0xFFFF_FFFF_FFFF
    rand_a = secrets.randbits(12)
    rand_b = secrets.randbits(62)
    value = (millis << 80) | _VERSION_7 | (rand_a << 64) | _VARIANT_RFC4122 | rand_b
    return str(uuid.UUID(int=value))


def id_timestamp(identifier: str) -> datetime:
    """Millisecond creation time embedded in an id from generate_id()"""
    millis = uuid.UUID(identifier).int >> 80
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
