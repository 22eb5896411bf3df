#!/usr/bin/env python3
"""
Ledger Replay Demonstration - Deterministic State Reconstruction

Walks a treasury through a day of withdrawals, a rejected withdrawal,
a timelocked limit increase, then reopens the database and checks that
the rebuilt state is identical to the live one.

Scenario:
- Initialize the ledger and hand out MINTER and WITHDRAWER
- Withdraw up to the daily limit, then watch the next withdrawal fail
- Propose a higher limit, wait out the timelock, execute it
- Drop the in-memory ledger and rebuild it from the event log
- Verify the snapshots match

Run:
    python examples/replay_demo.py
"""

import json
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from token_ledger import UNIT, LedgerPolicy, ParameterKind, Role, TokenLedger
from token_ledger.kernel.errors import ExceedsDailyWithdrawalLimit
from token_ledger.kernel.time import TestTimeProvider

ADMIN = "0x" + "a1" * 20
TREASURY = "0x" + "7e" * 20
WITHDRAWER = "0x" + "d0" * 20
ALICE = "0x" + "a" * 40


def print_section(title: str) -> None:
    """Print section header"""
    print(f"\n{'='*70}")
    print(f"  {title}")
    print(f"{'='*70}\n")


def tokens(units: int) -> str:
    return f"{units / UNIT:,.0f}"


def states_equal(state1: dict, state2: dict) -> bool:
    # JSON handles datetimes and nested models uniformly
    json1 = json.dumps(state1, sort_keys=True, default=str)
    json2 = json.dumps(state2, sort_keys=True, default=str)
    return json1 == json2


def main() -> None:
    """Run replay demonstration"""

    print_section("Ledger Replay Demonstration")

    db_path = Path(tempfile.mkdtemp()) / "ledger.db"
    time_provider = TestTimeProvider(datetime(2025, 1, 15, 9, 0, 0, tzinfo=timezone.utc))
    policy = LedgerPolicy(
        default_daily_withdrawal_limit=100_000 * UNIT,
        default_max_withdrawal_amount=40_000 * UNIT,
    )

    print(f"Database: {db_path}")
    print(f"Start time: {time_provider.now().isoformat()}")

    # Phase 1: Setup
    print_section("Phase 1: Initialize and Grant Roles")

    ledger = TokenLedger(db_path, policy=policy, time_provider=time_provider)
    ledger.initialize(admin=ADMIN, treasury=TREASURY)
    ledger.grant_role(Role.MINTER, ADMIN, caller=ADMIN)
    ledger.grant_role(Role.WITHDRAWER, WITHDRAWER, caller=ADMIN)
    print(f"✓ Initialized {ledger.name()} ({ledger.symbol()})")
    print(f"✓ Daily limit {tokens(ledger.daily_withdrawal_limit())}, "
          f"max per call {tokens(ledger.max_withdrawal_amount())}")

    ledger.mint(ALICE, 2_500 * UNIT, caller=ADMIN)
    print(f"✓ Minted {tokens(ledger.balance_of(ALICE))} to alice")

    # Phase 2: Withdrawals
    print_section("Phase 2: Withdraw Up to the Daily Limit")

    for amount in (40_000, 40_000, 20_000):
        ledger.withdraw(TREASURY, amount * UNIT, caller=WITHDRAWER)
        time_provider.advance_hours(2)
        window = ledger.withdrawal_window()
        print(f"✓ Withdrew {amount:,}; remaining in window {tokens(window.remaining)}")

    try:
        ledger.withdraw(TREASURY, 1, caller=WITHDRAWER)
    except ExceedsDailyWithdrawalLimit as e:
        print(f"✗ Next withdrawal rejected: {e}")

    # Phase 3: Governance
    print_section("Phase 3: Timelocked Limit Increase")

    proposal_id = ledger.propose_parameter_change(
        ParameterKind.DAILY_WITHDRAWAL_LIMIT, 150_000 * UNIT, caller=ADMIN
    )
    proposal = ledger.get_proposal(proposal_id)
    print(f"✓ Proposal #{proposal_id} executable at {proposal.executable_at.isoformat()}")

    time_provider.advance_days(1)
    ledger.execute_parameter_change(proposal_id, caller=ALICE)
    print(f"✓ Executed by alice; daily limit now {tokens(ledger.daily_withdrawal_limit())}")

    # Phase 4: Replay
    print_section("Phase 4: Rebuild State from Events")

    live_state = ledger.snapshot()
    events = ledger.history()

    event_types: dict[str, int] = {}
    for event in events:
        event_types[event.event_type] = event_types.get(event.event_type, 0) + 1
    print(f"Total events in store: {len(events)}")
    for event_type, count in sorted(event_types.items()):
        print(f"    {event_type}: {count}")

    rebuilt = TokenLedger(db_path, policy=LedgerPolicy(), time_provider=time_provider)
    rebuilt_state = rebuilt.snapshot()

    if states_equal(live_state, rebuilt_state):
        print("\n✓✓✓ SUCCESS: States are IDENTICAL")
        print(f"Daily limit survived the restart: {tokens(rebuilt.daily_withdrawal_limit())}")
    else:
        print("\n✗✗✗ FAILURE: States differ!")
        for key in live_state:
            status = "identical" if live_state[key] == rebuilt_state[key] else "DIFFERENT"
            print(f"  {key}: {status}")

    report = rebuilt.audit()
    print(f"\nAudit: {report.summary()}")


if __name__ == "__main__":
    main()
