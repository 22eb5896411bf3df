"""
Pytest configuration and shared fixtures

Fun fact: Files named conftest.py are discovered automatically, and their
fixtures are available to every test in the same directory and below.
"""

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

import pytest

from tests.helpers import (
    ADMIN,
    BURNER,
    MINTER,
    PAUSER,
    TREASURY,
    WITHDRAWER,
    tokens,
)
from token_ledger.access.models import Role
from token_ledger.kernel.event_store import SQLiteEventStore
from token_ledger.kernel.ledger_policy import LedgerPolicy
from token_ledger.kernel.time import TestTimeProvider
from token_ledger.ledger import TokenLedger


@pytest.fixture
def temp_db() -> Iterator[Path]:
    """Provide a temporary database file that's cleaned up after test"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "ledger.db"


@pytest.fixture
def event_store(temp_db: Path) -> SQLiteEventStore:
    """Provide a fresh event store for each test"""
    return SQLiteEventStore(temp_db)


@pytest.fixture
def test_time() -> TestTimeProvider:
    """
    Provide a controllable time provider for deterministic tests

    Default time: 2025-01-15 12:00:00 UTC
    """
    return TestTimeProvider(datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def policy() -> LedgerPolicy:
    """
    Small limits keep the numbers readable: 1000 tokens per window, and
    a per-call ceiling equal to the daily limit.
    """
    return LedgerPolicy(
        default_daily_withdrawal_limit=tokens(1000),
        default_max_withdrawal_amount=tokens(1000),
    )


@pytest.fixture
def fresh_ledger(
    temp_db: Path, policy: LedgerPolicy, test_time: TestTimeProvider
) -> TokenLedger:
    """A ledger whose initializer has not run yet"""
    return TokenLedger(temp_db, policy=policy, time_provider=test_time)


@pytest.fixture
def ledger(fresh_ledger: TokenLedger) -> TokenLedger:
    """
    Initialized ledger with one holder per privileged role

    ADMIN also holds UPGRADER from initialization.
    """
    fresh_ledger.initialize(admin=ADMIN, treasury=TREASURY)
    fresh_ledger.grant_role(Role.MINTER, MINTER, caller=ADMIN)
    fresh_ledger.grant_role(Role.WITHDRAWER, WITHDRAWER, caller=ADMIN)
    fresh_ledger.grant_role(Role.BURNER, BURNER, caller=ADMIN)
    fresh_ledger.grant_role(Role.PAUSER, PAUSER, caller=ADMIN)
    return fresh_ledger
