"""
Tests for the timelock governor

Every proposal waits the full delay (one day by default) before anyone
may execute it. Execution is re-checked against the clock on each call.
"""

from datetime import timedelta

import pytest

from tests.helpers import ADMIN, OTHER, PAUSER, STRANGER, TREASURY, USER, WITHDRAWER, tokens
from token_ledger.governance.models import ParameterKind, ProposalStatus
from token_ledger.kernel.errors import (
    AlreadyExecuted,
    ExceedsDailyWithdrawalLimit,
    InvalidParameterValue,
    ProposalAlreadyCancelled,
    TimelockNotElapsed,
    Unauthorized,
    UnknownProposal,
)
from token_ledger.ledger import TokenLedger


def test_propose_records_pending_proposal(ledger: TokenLedger) -> None:
    now = ledger.time_provider.now()

    proposal_id = ledger.propose_parameter_change(
        ParameterKind.DAILY_WITHDRAWAL_LIMIT, tokens(5000), caller=ADMIN
    )

    proposal = ledger.get_proposal(proposal_id)
    assert proposal_id == 1
    assert proposal.status == ProposalStatus.PENDING
    assert proposal.value == tokens(5000)
    assert proposal.proposed_by == ADMIN
    assert proposal.executable_at == now + timedelta(days=1)
    assert ledger.daily_withdrawal_limit() == tokens(1000)


def test_proposal_ids_are_sequential(ledger: TokenLedger) -> None:
    first = ledger.propose_parameter_change("MAX_WITHDRAWAL_AMOUNT", tokens(1), caller=ADMIN)
    second = ledger.propose_parameter_change("MAX_WITHDRAWAL_AMOUNT", tokens(2), caller=ADMIN)

    assert (first, second) == (1, 2)


def test_propose_requires_admin(ledger: TokenLedger) -> None:
    with pytest.raises(Unauthorized):
        ledger.propose_parameter_change("DAILY_WITHDRAWAL_LIMIT", tokens(1), caller=USER)

    assert ledger.list_proposals() == []


@pytest.mark.parametrize(
    "kind,value",
    [
        ("DAILY_WITHDRAWAL_LIMIT", 0),
        ("MAX_WITHDRAWAL_AMOUNT", -1),
        ("DAILY_WITHDRAWAL_LIMIT", "lots"),
        ("DAILY_WITHDRAWAL_LIMIT", True),
        ("MAX_WITHDRAWAL_AMOUNT", 2.0),
        ("DAILY_WITHDRAWAL_LIMIT", "7"),
        ("TREASURY", "0x" + "0" * 40),
        ("TREASURY", "not-an-account"),
    ],
)
def test_invalid_values_rejected(ledger: TokenLedger, kind: str, value: object) -> None:
    with pytest.raises(InvalidParameterValue):
        ledger.propose_parameter_change(kind, value, caller=ADMIN)


def test_execute_before_delay_fails(ledger: TokenLedger) -> None:
    proposal_id = ledger.propose_parameter_change(
        "DAILY_WITHDRAWAL_LIMIT", tokens(5000), caller=ADMIN
    )
    ledger.time_provider.advance_hours(23)

    with pytest.raises(TimelockNotElapsed) as exc_info:
        ledger.execute_parameter_change(proposal_id, caller=ADMIN)

    assert exc_info.value.proposal_id == proposal_id
    assert ledger.daily_withdrawal_limit() == tokens(1000)


def test_execute_exactly_at_executable_time(ledger: TokenLedger) -> None:
    proposal_id = ledger.propose_parameter_change(
        "DAILY_WITHDRAWAL_LIMIT", tokens(5000), caller=ADMIN
    )
    ledger.time_provider.advance_days(1)

    events = ledger.execute_parameter_change(proposal_id, caller=ADMIN)

    assert events[0].payload["old_value"] == tokens(1000)
    assert events[0].payload["new_value"] == tokens(5000)
    assert ledger.daily_withdrawal_limit() == tokens(5000)
    assert ledger.get_proposal(proposal_id).status == ProposalStatus.EXECUTED


def test_execute_is_open_to_any_caller(ledger: TokenLedger) -> None:
    proposal_id = ledger.propose_parameter_change(
        "MAX_WITHDRAWAL_AMOUNT", tokens(10), caller=ADMIN
    )
    ledger.time_provider.advance_days(3)

    ledger.execute_parameter_change(proposal_id, caller=STRANGER)

    assert ledger.get_proposal(proposal_id).executed_by == STRANGER


def test_execute_twice_fails(ledger: TokenLedger) -> None:
    proposal_id = ledger.propose_parameter_change(
        "MAX_WITHDRAWAL_AMOUNT", tokens(10), caller=ADMIN
    )
    ledger.time_provider.advance_days(1)
    ledger.execute_parameter_change(proposal_id, caller=ADMIN)

    with pytest.raises(AlreadyExecuted):
        ledger.execute_parameter_change(proposal_id, caller=ADMIN)


def test_execute_unknown_proposal(ledger: TokenLedger) -> None:
    with pytest.raises(UnknownProposal):
        ledger.execute_parameter_change(42, caller=ADMIN)


def test_cancel_blocks_execution(ledger: TokenLedger) -> None:
    proposal_id = ledger.propose_parameter_change(
        "DAILY_WITHDRAWAL_LIMIT", tokens(1), caller=ADMIN
    )
    ledger.cancel_proposal(proposal_id, caller=ADMIN)
    ledger.time_provider.advance_days(2)

    with pytest.raises(ProposalAlreadyCancelled):
        ledger.execute_parameter_change(proposal_id, caller=ADMIN)

    assert ledger.daily_withdrawal_limit() == tokens(1000)
    assert ledger.list_proposals(ProposalStatus.CANCELLED)[0].proposal_id == proposal_id


def test_cancel_requires_admin(ledger: TokenLedger) -> None:
    proposal_id = ledger.propose_parameter_change(
        "DAILY_WITHDRAWAL_LIMIT", tokens(1), caller=ADMIN
    )

    with pytest.raises(Unauthorized):
        ledger.cancel_proposal(proposal_id, caller=PAUSER)


def test_cancel_executed_proposal_fails(ledger: TokenLedger) -> None:
    proposal_id = ledger.propose_parameter_change(
        "DAILY_WITHDRAWAL_LIMIT", tokens(1), caller=ADMIN
    )
    ledger.time_provider.advance_days(1)
    ledger.execute_parameter_change(proposal_id, caller=ADMIN)

    with pytest.raises(AlreadyExecuted):
        ledger.cancel_proposal(proposal_id, caller=ADMIN)


def test_treasury_change(ledger: TokenLedger) -> None:
    mixed_case = OTHER.upper().replace("0X", "0x")
    proposal_id = ledger.propose_parameter_change("TREASURY", mixed_case, caller=ADMIN)
    ledger.time_provider.advance_days(1)

    events = ledger.execute_parameter_change(proposal_id, caller=USER)

    assert events[0].payload["old_value"] == TREASURY
    assert ledger.treasury() == OTHER


def test_lowered_limit_applies_to_open_window(ledger: TokenLedger) -> None:
    """A new limit takes effect immediately, counting what was already withdrawn"""
    proposal_id = ledger.propose_parameter_change(
        "DAILY_WITHDRAWAL_LIMIT", tokens(500), caller=ADMIN
    )
    ledger.time_provider.advance_days(1)
    ledger.withdraw(USER, tokens(400), caller=WITHDRAWER)
    ledger.execute_parameter_change(proposal_id, caller=ADMIN)

    with pytest.raises(ExceedsDailyWithdrawalLimit):
        ledger.withdraw(USER, tokens(101), caller=WITHDRAWER)
    ledger.withdraw(USER, tokens(100), caller=WITHDRAWER)


def test_executable_listing_follows_clock(ledger: TokenLedger) -> None:
    proposal_id = ledger.propose_parameter_change(
        "DAILY_WITHDRAWAL_LIMIT", tokens(5), caller=ADMIN
    )
    assert ledger.audit().executable_proposals == []

    ledger.time_provider.advance_days(1)

    assert ledger.audit().executable_proposals == [proposal_id]
    assert ledger.audit().pending_proposals == [proposal_id]


def test_proposals_survive_restart(ledger: TokenLedger, temp_db, policy, test_time) -> None:
    proposal_id = ledger.propose_parameter_change(
        "DAILY_WITHDRAWAL_LIMIT", tokens(5), caller=ADMIN
    )

    reopened = TokenLedger(temp_db, policy=policy, time_provider=test_time)
    test_time.advance_days(1)
    reopened.execute_parameter_change(proposal_id, caller=ADMIN)

    assert reopened.daily_withdrawal_limit() == tokens(5)
