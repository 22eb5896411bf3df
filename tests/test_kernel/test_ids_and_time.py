"""
Tests for id generation and the clock abstraction
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from tests.helpers import MINTER, USER
from token_ledger.kernel.ids import generate_id, id_timestamp
from token_ledger.kernel.logging import get_correlation_id
from token_ledger.kernel.time import TestTimeProvider
from token_ledger.ledger import TokenLedger


def test_generated_ids_are_uuid7() -> None:
    parsed = uuid.UUID(generate_id())

    assert parsed.version == 7
    assert parsed.variant == uuid.RFC_4122


def test_ids_embed_creation_time() -> None:
    before = datetime.now(timezone.utc) - timedelta(seconds=1)

    created = id_timestamp(generate_id())

    assert before <= created <= datetime.now(timezone.utc) + timedelta(seconds=1)


def test_ids_are_unique() -> None:
    assert len({generate_id() for _ in range(1000)}) == 1000


def test_operation_binds_command_id_as_correlation_id(ledger: TokenLedger) -> None:
    events = ledger.mint(USER, 1, caller=MINTER)

    assert get_correlation_id() == events[0].command_id


def test_clock_only_moves_forward() -> None:
    clock = TestTimeProvider(datetime(2025, 1, 15, tzinfo=timezone.utc))

    clock.advance_hours(24)
    assert clock.now() == datetime(2025, 1, 16, tzinfo=timezone.utc)

    with pytest.raises(ValueError):
        clock.advance(timedelta(seconds=-1))


def test_clock_rejects_naive_times() -> None:
    with pytest.raises(ValueError):
        TestTimeProvider(datetime(2025, 1, 15))

    clock = TestTimeProvider()
    with pytest.raises(ValueError):
        clock.set_time(datetime(2025, 1, 15))
