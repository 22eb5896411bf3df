"""
Tests for SQLite Event Store

Verifies core event sourcing properties:
- Append-only semantics
- Idempotency via command_id
- Optimistic locking via stream versioning
- All-or-nothing batches
- Query capabilities
"""

from datetime import datetime, timedelta, timezone

import pytest

from token_ledger.kernel.errors import StreamVersionConflict
from token_ledger.kernel.event_store import SQLiteEventStore
from token_ledger.kernel.events import Event
from token_ledger.kernel.ids import generate_id

T0 = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def _event(
    version: int,
    *,
    stream_id: str = "ledger",
    event_type: str = "Minted",
    command_id: str | None = None,
    actor_id: str | None = None,
    payload: dict | None = None,
    occurred_at: datetime = T0,
) -> Event:
    return Event(
        event_id=generate_id(),
        stream_id=stream_id,
        stream_type="token",
        event_type=event_type,
        occurred_at=occurred_at,
        actor_id=actor_id,
        command_id=command_id or generate_id(),
        payload=payload or {"account": "0x" + "c" * 40, "amount": 1},
        version=version,
    )


def test_append_and_load_single_event(event_store: SQLiteEventStore) -> None:
    """Test appending and loading a single event"""
    event = _event(1)

    appended = event_store.append("ledger", 0, [event])
    assert len(appended) == 1

    loaded = event_store.load_stream("ledger")
    assert len(loaded) == 1
    assert loaded[0].event_id == event.event_id
    assert loaded[0].payload == event.payload
    assert loaded[0].occurred_at == T0


def test_large_amounts_survive_round_trip(event_store: SQLiteEventStore) -> None:
    """Amounts above 2**64 are stored without precision loss"""
    amount = 10**30 + 7
    event_store.append("ledger", 0, [_event(1, payload={"amount": amount})])

    assert event_store.load_stream("ledger")[0].payload["amount"] == amount


def test_stream_versioning(event_store: SQLiteEventStore) -> None:
    """Test that stream versioning works correctly"""
    event_store.append("ledger", 0, [_event(1)])
    assert event_store.get_stream_version("ledger") == 1

    event_store.append("ledger", 1, [_event(2)])
    assert event_store.get_stream_version("ledger") == 2
    assert [e.version for e in event_store.load_stream("ledger")] == [1, 2]


def test_version_conflict_rejects_whole_batch(event_store: SQLiteEventStore) -> None:
    """A stale expected_version appends nothing"""
    event_store.append("ledger", 0, [_event(1)])

    with pytest.raises(StreamVersionConflict) as exc_info:
        event_store.append("ledger", 0, [_event(1), _event(2)])

    assert exc_info.value.expected_version == 0
    assert exc_info.value.actual_version == 1
    assert event_store.count_events() == 1


def test_batch_is_atomic_on_duplicate_version(event_store: SQLiteEventStore) -> None:
    """If one row of a batch collides, none of the batch lands"""
    event_store.append("ledger", 0, [_event(1)])

    # Expected version matches, but the batch itself reuses version 2
    with pytest.raises(StreamVersionConflict):
        event_store.append("ledger", 1, [_event(2), _event(2)])

    assert event_store.get_stream_version("ledger") == 1


def test_idempotent_append(event_store: SQLiteEventStore) -> None:
    """Same command_id returns the stored events instead of appending again"""
    command_id = generate_id()
    first = event_store.append("ledger", 0, [_event(1, command_id=command_id)])

    again = event_store.append("ledger", 0, [_event(1, command_id=command_id)])

    assert [e.event_id for e in again] == [e.event_id for e in first]
    assert event_store.count_events() == 1


def test_empty_append_is_noop(event_store: SQLiteEventStore) -> None:
    assert event_store.append("ledger", 0, []) == []
    assert event_store.get_stream_version("ledger") == 0


def test_load_empty_stream(event_store: SQLiteEventStore) -> None:
    assert event_store.load_stream("missing") == []
    assert event_store.get_stream_version("missing") == 0


def test_query_events_by_type_actor_and_time(event_store: SQLiteEventStore) -> None:
    """Audit trail lookups filter on type, actor and time"""
    alice = "0x" + "a" * 40
    event_store.append(
        "ledger",
        0,
        [
            _event(1, event_type="Minted", actor_id=alice),
            _event(2, event_type="Burned", occurred_at=T0 + timedelta(hours=1)),
            _event(3, event_type="Minted", occurred_at=T0 + timedelta(hours=2)),
        ],
    )

    assert len(event_store.query_events(event_type="Minted")) == 2
    assert len(event_store.query_events(actor_id=alice)) == 1
    assert len(event_store.query_events(from_time=T0 + timedelta(minutes=30))) == 2
    assert len(event_store.query_events(to_time=T0)) == 1
    assert len(event_store.query_events(limit=2)) == 2


def test_reopen_store_keeps_events(temp_db) -> None:
    """A second store on the same file sees everything the first wrote"""
    SQLiteEventStore(temp_db).append("ledger", 0, [_event(1), _event(2)])

    reopened = SQLiteEventStore(temp_db)
    assert reopened.get_stream_version("ledger") == 2
    assert reopened.count_events() == 2
