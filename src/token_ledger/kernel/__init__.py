"""
Kernel - Core event sourcing infrastructure

The kernel provides the machinery the ledger modules build upon: the event
envelope, the append-only store, time and id providers, and the error
taxonomy. Every balance, role and proposal is derived from the event log.

Fun fact: Double-entry bookkeepers never erase a ledger line, they post a
correcting entry. An append-only event log is the same habit in code.
"""

from token_ledger.kernel.errors import (
    CommandIdempotencyViolation,
    EventStoreError,
    InvariantViolation,
    LedgerError,
    StreamVersionConflict,
)
from token_ledger.kernel.events import Event
from token_ledger.kernel.ids import generate_id
from token_ledger.kernel.time import RealTimeProvider, TestTimeProvider, TimeProvider

__all__ = [
    # IDs
    "generate_id",
    # Time
    "TimeProvider",
    "RealTimeProvider",
    "TestTimeProvider",
    # Events
    "Event",
    # Errors
    "LedgerError",
    "EventStoreError",
    "CommandIdempotencyViolation",
    "StreamVersionConflict",
    "InvariantViolation",
]
