"""
Test Helper Functions - Accounts, builders and assertions

Accounts are fixed so failures print readable addresses: each test role
gets an address made of one repeated hex digit.
"""

from datetime import datetime
from typing import Any

from token_ledger.access.models import NULL_ACCOUNT
from token_ledger.kernel.events import Event
from token_ledger.kernel.ledger_policy import UNIT
from token_ledger.ledger import TokenLedger

ADMIN = "0x" + "a" * 40
MINTER = "0x" + "b" * 40
USER = "0x" + "c" * 40
WITHDRAWER = "0x" + "d" * 40
BURNER = "0x" + "e" * 40
PAUSER = "0x" + "f" * 40
OTHER = "0x" + "1" * 40
TREASURY = "0x" + "2" * 40
STRANGER = "0x" + "3" * 40
NULL = NULL_ACCOUNT


def tokens(amount: int) -> int:
    """Whole tokens to base units"""
    return amount * UNIT


def make_events(
    *specs: tuple[str, dict[str, Any]],
    occurred_at: datetime,
    stream_type: str = "test",
    base_version: int = 0,
) -> list[Event]:
    """
    Build a batch of raw events for projection tests

    Example:
        >>> make_events(("Minted", {"account": USER, "amount": 5, "minted_by": MINTER}),
        ...             occurred_at=now)
    """
    events: list[Event] = []
    for event_type, payload in specs:
        events.append(
            Event(
                event_id=f"evt-{base_version + len(events) + 1}",
                stream_id="ledger",
                stream_type=stream_type,
                event_type=event_type,
                occurred_at=occurred_at,
                command_id="cmd-test",
                payload=payload,
                version=base_version + len(events) + 1,
            )
        )
    return events


def assert_supply_conserved(ledger: TokenLedger) -> None:
    """total_supply equals the sum of every balance"""
    assert ledger.total_supply() == ledger.balances.sum_of_balances()
    report = ledger.audit()
    assert report.supply_consistent
