"""
Tests for the in-process notification bus and event batches
"""

from datetime import datetime, timezone

from pydantic import BaseModel

from token_ledger.kernel.bus import ALL_EVENTS, InProcessBus
from token_ledger.kernel.events import LEDGER_STREAM_ID, Event, EventBatch

T0 = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class _Payload(BaseModel):
    account: str
    amount: int
    at: datetime


def _batch(base_version: int = 0) -> EventBatch:
    return EventBatch(
        stream_type="token",
        command_id="cmd-1",
        actor_id="0x" + "b" * 40,
        occurred_at=T0,
        base_version=base_version,
    )


def test_batch_assigns_consecutive_versions() -> None:
    batch = _batch(base_version=7)
    batch.add("Minted", _Payload(account="a", amount=1, at=T0))
    batch.add("Minted", _Payload(account="b", amount=2, at=T0))

    assert [e.version for e in batch.events] == [8, 9]
    assert {e.stream_id for e in batch.events} == {LEDGER_STREAM_ID}
    assert {e.command_id for e in batch.events} == {"cmd-1"}


def test_batch_payload_is_json_ready() -> None:
    """Datetimes are serialized so stored and live payloads look the same"""
    event = _batch().add("Minted", _Payload(account="a", amount=10**30, at=T0))

    assert event.payload["at"] == T0.isoformat().replace("+00:00", "Z")
    assert event.payload["amount"] == 10**30


def test_publish_calls_subscribers_in_order() -> None:
    bus = InProcessBus()
    seen: list[str] = []
    bus.subscribe("Minted", lambda e: seen.append("first"))
    bus.subscribe("Minted", lambda e: seen.append("second"))
    bus.subscribe("Burned", lambda e: seen.append("burned"))

    bus.publish_events(_minted())

    assert seen == ["first", "second"]


def test_wildcard_subscriber_sees_everything() -> None:
    bus = InProcessBus()
    seen: list[Event] = []
    bus.subscribe(ALL_EVENTS, seen.append)

    bus.publish_events(_minted())

    assert len(seen) == 1


def test_failing_handler_does_not_block_others() -> None:
    bus = InProcessBus()
    seen: list[Event] = []

    def broken(event: Event) -> None:
        raise RuntimeError("subscriber bug")

    bus.subscribe("Minted", broken)
    bus.subscribe("Minted", seen.append)

    bus.publish_events(_minted())

    assert len(seen) == 1


def test_unsubscribe_and_clear() -> None:
    bus = InProcessBus()
    seen: list[Event] = []
    bus.subscribe("Minted", seen.append)
    bus.unsubscribe("Minted", seen.append)
    bus.publish_events(_minted())
    assert seen == []

    bus.subscribe("Minted", seen.append)
    assert bus.get_event_types() == ["Minted"]
    bus.clear()
    assert bus.get_event_types() == []


def _minted() -> list[Event]:
    batch = _batch()
    batch.add("Minted", _Payload(account="a", amount=1, at=T0))
    return batch.events
