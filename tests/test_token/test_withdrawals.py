"""
Tests for the rate-limited withdrawal path

The rolling window opens at the first withdrawal after the previous one
lapsed and lasts 24 hours from that moment.
"""

from datetime import timedelta

import pytest

from tests.helpers import ADMIN, MINTER, NULL, TREASURY, USER, WITHDRAWER, tokens
from token_ledger.access.models import Role
from token_ledger.kernel.errors import (
    ExceedsDailyWithdrawalLimit,
    ExceedsMaxWithdrawalAmount,
    InvalidAccount,
    InvalidAmount,
    Unauthorized,
)
from token_ledger.kernel.ledger_policy import LedgerPolicy
from token_ledger.ledger import TokenLedger


@pytest.fixture
def capped_ledger(temp_db, test_time) -> TokenLedger:
    """Daily limit 1000 tokens, single withdrawals capped at 400"""
    ledger = TokenLedger(
        temp_db,
        policy=LedgerPolicy(
            default_daily_withdrawal_limit=tokens(1000),
            default_max_withdrawal_amount=tokens(400),
        ),
        time_provider=test_time,
    )
    ledger.initialize(admin=ADMIN, treasury=TREASURY)
    ledger.grant_role(Role.WITHDRAWER, WITHDRAWER, caller=ADMIN)
    return ledger


def test_withdraw_issues_units(ledger: TokenLedger) -> None:
    events = ledger.withdraw(USER, tokens(100), caller=WITHDRAWER)

    assert [e.event_type for e in events] == ["WithdrawalWindowReset", "Withdrawn"]
    assert ledger.balance_of(USER) == tokens(100)
    assert ledger.total_supply() == tokens(100)
    assert ledger.withdrawal_window().withdrawn_in_window == tokens(100)


def test_withdraw_requires_withdrawer(ledger: TokenLedger) -> None:
    with pytest.raises(Unauthorized):
        ledger.withdraw(USER, tokens(1), caller=MINTER)


def test_withdraw_to_null_account_rejected(ledger: TokenLedger) -> None:
    with pytest.raises(InvalidAccount):
        ledger.withdraw(NULL, tokens(1), caller=WITHDRAWER)


def test_withdraw_zero_rejected(ledger: TokenLedger) -> None:
    with pytest.raises(InvalidAmount):
        ledger.withdraw(USER, 0, caller=WITHDRAWER)


@pytest.mark.parametrize("amount", [2.0, "7", True, 1.5])
def test_withdraw_amount_must_be_an_int(ledger: TokenLedger, amount: object) -> None:
    with pytest.raises(InvalidAmount):
        ledger.withdraw(USER, amount, caller=WITHDRAWER)

    assert ledger.balance_of(USER) == 0
    assert ledger.withdrawal_window().withdrawn_in_window == 0
    assert ledger.history(event_type="WithdrawalWindowReset") == []


def test_withdraw_role_checked_before_amount_type(ledger: TokenLedger) -> None:
    with pytest.raises(Unauthorized):
        ledger.withdraw(USER, 1.5, caller=MINTER)


def test_limit_can_be_reached_exactly(ledger: TokenLedger) -> None:
    ledger.withdraw(USER, tokens(600), caller=WITHDRAWER)
    ledger.withdraw(USER, tokens(400), caller=WITHDRAWER)

    window = ledger.withdrawal_window()
    assert window.withdrawn_in_window == tokens(1000)
    assert window.remaining == 0
    assert window.utilization == 1.0


def test_one_unit_past_limit_fails_and_changes_nothing(ledger: TokenLedger) -> None:
    ledger.withdraw(USER, tokens(1000), caller=WITHDRAWER)
    snapshot = ledger.snapshot()

    with pytest.raises(ExceedsDailyWithdrawalLimit) as exc_info:
        ledger.withdraw(USER, 1, caller=WITHDRAWER)

    assert exc_info.value.withdrawn == tokens(1000)
    assert exc_info.value.limit == tokens(1000)
    assert ledger.snapshot() == snapshot


def test_window_resets_after_24_hours(ledger: TokenLedger) -> None:
    ledger.withdraw(USER, tokens(1000), caller=WITHDRAWER)

    ledger.time_provider.advance_hours(23)
    with pytest.raises(ExceedsDailyWithdrawalLimit):
        ledger.withdraw(USER, tokens(1), caller=WITHDRAWER)

    ledger.time_provider.advance_hours(1)
    events = ledger.withdraw(USER, tokens(1000), caller=WITHDRAWER)

    assert events[0].event_type == "WithdrawalWindowReset"
    assert events[0].payload["previous_withdrawn"] == tokens(1000)
    assert ledger.balance_of(USER) == tokens(2000)


def test_window_is_anchored_at_first_withdrawal(ledger: TokenLedger) -> None:
    """Withdrawals inside an open window do not move its start"""
    start = ledger.time_provider.now()
    ledger.withdraw(USER, tokens(100), caller=WITHDRAWER)
    ledger.time_provider.advance_hours(20)

    events = ledger.withdraw(USER, tokens(100), caller=WITHDRAWER)

    assert [e.event_type for e in events] == ["Withdrawn"]
    window = ledger.withdrawal_window()
    assert window.window_start == start
    assert window.window_end == start + timedelta(hours=24)
    assert window.withdrawn_in_window == tokens(200)


def test_lapsed_window_reads_as_empty(ledger: TokenLedger) -> None:
    """Queries see the fresh window before the reset is recorded"""
    ledger.withdraw(USER, tokens(700), caller=WITHDRAWER)
    ledger.time_provider.advance_days(2)
    version = ledger.version

    window = ledger.withdrawal_window()

    assert window.withdrawn_in_window == 0
    assert window.remaining == tokens(1000)
    assert window.window_start is None
    assert ledger.version == version


def test_failed_withdraw_after_lapse_records_no_reset(ledger: TokenLedger) -> None:
    ledger.withdraw(USER, tokens(700), caller=WITHDRAWER)
    ledger.time_provider.advance_days(1)
    version = ledger.version

    with pytest.raises(ExceedsMaxWithdrawalAmount):
        ledger.withdraw(USER, tokens(1001), caller=WITHDRAWER)

    assert ledger.version == version
    assert ledger.limiter.withdrawn_in_window == tokens(700)


def test_max_amount_checked_before_daily_limit(capped_ledger: TokenLedger) -> None:
    """A withdrawal over both caps reports the per-call ceiling"""
    capped_ledger.withdraw(USER, tokens(400), caller=WITHDRAWER)
    capped_ledger.withdraw(USER, tokens(400), caller=WITHDRAWER)

    with pytest.raises(ExceedsMaxWithdrawalAmount) as exc_info:
        capped_ledger.withdraw(USER, tokens(401), caller=WITHDRAWER)

    assert exc_info.value.maximum == tokens(400)


def test_max_amount_applies_to_fresh_window(capped_ledger: TokenLedger) -> None:
    with pytest.raises(ExceedsMaxWithdrawalAmount):
        capped_ledger.withdraw(USER, tokens(401), caller=WITHDRAWER)

    assert capped_ledger.total_supply() == 0


def test_daily_limit_with_max_amount(capped_ledger: TokenLedger) -> None:
    for _ in range(2):
        capped_ledger.withdraw(USER, tokens(400), caller=WITHDRAWER)

    with pytest.raises(ExceedsDailyWithdrawalLimit):
        capped_ledger.withdraw(USER, tokens(201), caller=WITHDRAWER)

    capped_ledger.withdraw(USER, tokens(200), caller=WITHDRAWER)
    assert capped_ledger.balance_of(USER) == tokens(1000)


def test_mint_does_not_count_against_window(ledger: TokenLedger) -> None:
    ledger.mint(USER, tokens(5000), caller=MINTER)

    ledger.withdraw(USER, tokens(1000), caller=WITHDRAWER)

    assert ledger.withdrawal_window().withdrawn_in_window == tokens(1000)


def test_window_survives_restart(ledger: TokenLedger, temp_db, policy, test_time) -> None:
    ledger.withdraw(USER, tokens(900), caller=WITHDRAWER)

    reopened = TokenLedger(temp_db, policy=policy, time_provider=test_time)

    with pytest.raises(ExceedsDailyWithdrawalLimit):
        reopened.withdraw(USER, tokens(101), caller=WITHDRAWER)
    reopened.withdraw(USER, tokens(100), caller=WITHDRAWER)
