"""
CLI Integration Tests

Drives the token-ledger commands end-to-end against a temporary database.
"""

import json
import tempfile
from pathlib import Path
from typing import Iterator

import pytest
import typer
from typer.testing import CliRunner

from tests.helpers import ADMIN, MINTER, OTHER, PAUSER, TREASURY, USER, WITHDRAWER
from token_ledger.cli.main import app, format_amount, parse_amount

runner = CliRunner()


@pytest.fixture
def db_path() -> Iterator[Path]:
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "cli.db"


def invoke(db_path: Path, *args: str):
    return runner.invoke(app, [*args, "--db", str(db_path)])


@pytest.fixture
def initialized(db_path: Path) -> Path:
    result = invoke(db_path, "init", "--admin", ADMIN, "--treasury", TREASURY)
    assert result.exit_code == 0, result.output
    for role, account in (("MINTER", MINTER), ("WITHDRAWER", WITHDRAWER), ("PAUSER", PAUSER)):
        result = invoke(db_path, "role", "grant", "--role", role, "--account", account, "--as", ADMIN)
        assert result.exit_code == 0, result.output
    return db_path


def test_init_creates_ledger(db_path: Path) -> None:
    result = invoke(db_path, "init", "--admin", ADMIN)

    assert result.exit_code == 0
    assert "Initialized ledger" in result.output
    assert db_path.exists()


def test_init_twice_fails(initialized: Path) -> None:
    result = invoke(initialized, "init", "--admin", OTHER)

    assert result.exit_code == 1
    assert "AlreadyInitialized" in result.output


def test_missing_database(db_path: Path) -> None:
    result = invoke(db_path, "info")

    assert result.exit_code == 1
    assert "Database not found" in result.output


def test_mint_transfer_and_balance(initialized: Path) -> None:
    result = invoke(initialized, "mint", "--to", USER, "--amount", "100", "--as", MINTER)
    assert result.exit_code == 0
    assert "Minted 100" in result.output

    result = invoke(initialized, "transfer", "--to", OTHER, "--amount", "2.5", "--as", USER)
    assert result.exit_code == 0

    result = invoke(initialized, "balance", OTHER)
    assert result.exit_code == 0
    assert "2.5 (2500000000000000000 units)" in result.output


def test_raw_units(initialized: Path) -> None:
    result = invoke(initialized, "mint", "--to", USER, "--amount", "7", "--units", "--as", MINTER)
    assert result.exit_code == 0

    result = invoke(initialized, "info", "--json")
    assert json.loads(result.output)["total_supply"] == "7"


def test_unauthorized_mint_reports_error(initialized: Path) -> None:
    result = invoke(initialized, "mint", "--to", USER, "--amount", "1", "--as", USER)

    assert result.exit_code == 1
    assert "Unauthorized" in result.output


def test_invalid_amount_is_usage_error(initialized: Path) -> None:
    result = invoke(initialized, "mint", "--to", USER, "--amount", "lots", "--as", MINTER)

    assert result.exit_code == 2


@pytest.mark.parametrize("amount", ["inf", "Infinity", "NaN"])
def test_non_finite_amount_is_usage_error(initialized: Path, amount: str) -> None:
    result = invoke(initialized, "mint", "--to", USER, "--amount", amount, "--as", MINTER)

    assert result.exit_code == 2
    assert not isinstance(result.exception, OverflowError)


def test_unknown_role_is_usage_error(initialized: Path) -> None:
    result = invoke(initialized, "role", "grant", "--role", "OWNER", "--account", USER, "--as", ADMIN)

    assert result.exit_code == 2


def test_role_list_json(initialized: Path) -> None:
    result = invoke(initialized, "role", "list", "--json")

    assert result.exit_code == 0
    members = json.loads(result.output)
    assert members["ADMIN"] == [ADMIN]
    assert members["MINTER"] == [MINTER]


def test_role_check(initialized: Path) -> None:
    result = invoke(initialized, "role", "check", "--role", "pauser", "--account", PAUSER)

    assert "holds PAUSER" in result.output


def test_withdraw_reports_remaining_window(initialized: Path) -> None:
    result = invoke(initialized, "withdraw", "--to", USER, "--amount", "60000", "--as", WITHDRAWER)

    assert result.exit_code == 0
    assert "Remaining in window: 40000" in result.output


def test_withdraw_over_limit(initialized: Path) -> None:
    result = invoke(initialized, "withdraw", "--to", USER, "--amount", "100001", "--as", WITHDRAWER)

    assert result.exit_code == 1
    assert "ExceedsMaxWithdrawalAmount" in result.output


def test_pause_blocks_transfer(initialized: Path) -> None:
    invoke(initialized, "mint", "--to", USER, "--amount", "1", "--as", MINTER)
    assert invoke(initialized, "pause", "--as", PAUSER).exit_code == 0

    result = invoke(initialized, "transfer", "--to", OTHER, "--amount", "1", "--as", USER)

    assert result.exit_code == 1
    assert "Paused" in result.output
    assert invoke(initialized, "unpause", "--as", PAUSER).exit_code == 0


def test_allowance_flow(initialized: Path) -> None:
    invoke(initialized, "mint", "--to", USER, "--amount", "10", "--as", MINTER)
    invoke(initialized, "approve", "--spender", OTHER, "--amount", "4", "--as", USER)

    result = invoke(
        initialized, "transfer-from", "--owner", USER, "--to", OTHER, "--amount", "3", "--as", OTHER
    )
    assert result.exit_code == 0

    result = invoke(initialized, "allowance", "--owner", USER, "--spender", OTHER)
    assert result.output.startswith("1 ")


def test_proposal_waits_for_timelock(initialized: Path) -> None:
    result = invoke(
        initialized,
        "proposal",
        "propose",
        "--kind",
        "daily_withdrawal_limit",
        "--value",
        "500",
        "--as",
        ADMIN,
    )
    assert result.exit_code == 0
    assert "Proposal #1 created" in result.output

    result = invoke(initialized, "proposal", "execute", "--id", "1", "--as", USER)
    assert result.exit_code == 1
    assert "TimelockNotElapsed" in result.output

    result = invoke(initialized, "proposal", "list", "--json")
    proposals = json.loads(result.output)
    assert proposals[0]["status"] == "PENDING"
    assert proposals[0]["value"] == 500 * 10**18


def test_proposal_cancel(initialized: Path) -> None:
    invoke(initialized, "proposal", "propose", "--kind", "TREASURY", "--value", OTHER, "--as", ADMIN)

    result = invoke(initialized, "proposal", "cancel", "--id", "1", "--as", ADMIN)
    assert result.exit_code == 0

    result = invoke(initialized, "proposal", "list", "--status", "cancelled")
    assert "[CANCELLED]" in result.output


def test_upgrade_to_unknown_logic(initialized: Path) -> None:
    result = invoke(initialized, "upgrade", "--to", "v9", "--as", ADMIN)

    assert result.exit_code == 1
    assert "UnknownLogicVersion" in result.output


def test_audit_and_history(initialized: Path) -> None:
    invoke(initialized, "mint", "--to", USER, "--amount", "5", "--as", MINTER)

    result = invoke(initialized, "audit", "--json")
    assert result.exit_code == 0
    report = json.loads(result.output)
    assert report["supply_consistent"] is True
    assert report["total_supply"] == 5 * 10**18

    result = invoke(initialized, "history", "--type", "Minted", "--json")
    events = json.loads(result.output)
    assert [e["event_type"] for e in events] == ["Minted"]


def test_amount_helpers() -> None:
    assert parse_amount("1.5") == 15 * 10**17
    assert parse_amount("12", raw_units=True) == 12
    assert format_amount(10**18) == "1 (1000000000000000000 units)"

    with pytest.raises(typer.BadParameter):
        parse_amount("inf")
