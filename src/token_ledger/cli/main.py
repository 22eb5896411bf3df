"""
Token Ledger CLI

Command-line interface acting as an external caller of the ledger. Every
mutating command names its caller with --as.

Usage:
    token-ledger init --admin 0xaaaa... --db ledger.db
    token-ledger role grant --role MINTER --account 0xbbbb... --as 0xaaaa...
    token-ledger mint --to 0xcccc... --amount 100 --as 0xbbbb...
    token-ledger withdraw --to 0xcccc... --amount 5000 --as 0xdddd...
    token-ledger proposal propose --kind MAX_WITHDRAWAL_AMOUNT --value 500 --as 0xaaaa...
    token-ledger audit
"""

import json
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterator, Optional

import typer
from typing_extensions import Annotated

from token_ledger.access.models import Role, parse_role as role_from_name
from token_ledger.governance.models import ParameterKind, Proposal
from token_ledger.kernel.errors import LedgerError
from token_ledger.kernel.ledger_policy import UNIT
from token_ledger.kernel.logging import configure_logging
from token_ledger.ledger import TokenLedger

app = typer.Typer(
    name="token-ledger",
    help="Token Ledger - access-controlled, rate-limited value ledger",
    add_completion=False,
)

# Sub-apps
role_app = typer.Typer(help="Role administration commands")
proposal_app = typer.Typer(help="Timelocked parameter change commands")

app.add_typer(role_app, name="role")
app.add_typer(proposal_app, name="proposal")

DEFAULT_DB = Path(".token-ledger.db")

DbOption = Annotated[
    Optional[Path],
    typer.Option("--db", envvar="TOKEN_LEDGER_DB", help="Database path"),
]
CallerOption = Annotated[str, typer.Option("--as", help="Calling account")]
AmountOption = Annotated[str, typer.Option("--amount", help="Amount in tokens (e.g. 1.5)")]
UnitsOption = Annotated[
    bool,
    typer.Option("--units", help="Treat amounts as raw base units instead of tokens"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]


@app.callback()
def main_callback(
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)"),
    ] = "WARNING",
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Emit JSON logs on stderr"),
    ] = False,
) -> None:
    """Configure logging; logs go to stderr so stdout stays parseable"""
    configure_logging(json_output=json_logs, log_level=log_level)


def get_ledger(db_path: Optional[Path] = None) -> TokenLedger:
    """Get TokenLedger instance for an existing database"""
    db = db_path or DEFAULT_DB
    if not db.exists():
        typer.echo(f"Error: Database not found: {db}", err=True)
        typer.echo(f"Run 'token-ledger init --db {db}' to initialize", err=True)
        raise typer.Exit(1)
    return TokenLedger(db)


@contextmanager
def ledger_errors() -> Iterator[None]:
    """Report a rejected operation and exit non-zero"""
    try:
        yield
    except LedgerError as e:
        typer.echo(f"Error: {type(e).__name__}: {e}", err=True)
        raise typer.Exit(1) from e


def parse_amount(text: str, raw_units: bool = False) -> int:
    """
    Convert a CLI amount to base units

    Tokens are converted with 18 decimals; anything finer than one base
    unit is rejected rather than rounded.
    """
    try:
        value = Decimal(text)
    except InvalidOperation as e:
        raise typer.BadParameter(f"not a number: {text}") from e
    if not value.is_finite():
        raise typer.BadParameter(f"not a finite amount: {text}")
    units = value if raw_units else value * UNIT
    if units != units.to_integral_value():
        raise typer.BadParameter(f"{text} is finer than one base unit")
    return int(units)


def format_amount(units: int) -> str:
    tokens = Decimal(units) / UNIT
    return f"{tokens.normalize():f} ({units} units)"


def parse_role(name: str) -> Role:
    try:
        return role_from_name(name)
    except ValueError as e:
        choices = ", ".join(r.value for r in Role)
        raise typer.BadParameter(f"unknown role {name!r}, expected one of: {choices}") from e


def parse_kind(name: str) -> ParameterKind:
    try:
        return ParameterKind(name.upper())
    except ValueError as e:
        choices = ", ".join(k.value for k in ParameterKind)
        raise typer.BadParameter(f"unknown parameter {name!r}, expected one of: {choices}") from e


def _proposal_line(proposal: Proposal) -> str:
    value = proposal.value
    if isinstance(value, int):
        value = format_amount(value)
    return (
        f"  #{proposal.proposal_id} {proposal.kind.value} -> {value} "
        f"[{proposal.status.value}] executable at {proposal.executable_at.isoformat()}"
    )


# Initialization


@app.command()
def init(
    admin: Annotated[str, typer.Option("--admin", help="Bootstrap admin account")],
    treasury: Annotated[
        Optional[str],
        typer.Option("--treasury", help="Treasury account"),
    ] = None,
    db: DbOption = None,
) -> None:
    """Create the database and initialize the ledger"""
    ledger = TokenLedger(db or DEFAULT_DB)
    with ledger_errors():
        ledger.initialize(admin=admin, treasury=treasury)
    typer.echo(f"✓ Initialized ledger: {db or DEFAULT_DB}")
    typer.echo(f"  Admin: {admin.lower()}")
    if treasury:
        typer.echo(f"  Treasury: {treasury.lower()}")


@app.command("init-v2")
def init_v2(
    treasury: Annotated[str, typer.Option("--treasury", help="Treasury account")],
    caller: CallerOption,
    db: DbOption = None,
) -> None:
    """Run the one-time secondary initializer"""
    ledger = get_ledger(db)
    with ledger_errors():
        ledger.initialize_v2(treasury=treasury, caller=caller)
    typer.echo(f"✓ Secondary initialization complete, treasury {treasury.lower()}")


# Role commands


@role_app.command("grant")
def role_grant(
    role: Annotated[str, typer.Option("--role", help="Role name")],
    account: Annotated[str, typer.Option("--account", help="Account receiving the role")],
    caller: CallerOption,
    db: DbOption = None,
) -> None:
    """Grant a role (ADMIN only)"""
    ledger = get_ledger(db)
    with ledger_errors():
        events = ledger.grant_role(parse_role(role), account, caller=caller)
    if events:
        typer.echo(f"✓ Granted {role.upper()} to {account.lower()}")
    else:
        typer.echo(f"✓ {account.lower()} already holds {role.upper()}")


@role_app.command("revoke")
def role_revoke(
    role: Annotated[str, typer.Option("--role", help="Role name")],
    account: Annotated[str, typer.Option("--account", help="Account losing the role")],
    caller: CallerOption,
    db: DbOption = None,
) -> None:
    """Revoke a role (ADMIN only)"""
    ledger = get_ledger(db)
    with ledger_errors():
        events = ledger.revoke_role(parse_role(role), account, caller=caller)
    if events:
        typer.echo(f"✓ Revoked {role.upper()} from {account.lower()}")
    else:
        typer.echo(f"✓ {account.lower()} does not hold {role.upper()}")


@role_app.command("renounce")
def role_renounce(
    role: Annotated[str, typer.Option("--role", help="Role name")],
    caller: CallerOption,
    db: DbOption = None,
) -> None:
    """Give up one of the caller's own roles"""
    ledger = get_ledger(db)
    with ledger_errors():
        ledger.renounce_role(parse_role(role), caller=caller)
    typer.echo(f"✓ {caller.lower()} renounced {role.upper()}")


@role_app.command("list")
def role_list(
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """List role holders"""
    ledger = get_ledger(db)
    members = {role.value: ledger.role_members(role) for role in Role}

    if json_output:
        typer.echo(json.dumps(members, indent=2))
        return

    for role, holders in members.items():
        typer.echo(f"{role} ({len(holders)}):")
        for holder in holders:
            typer.echo(f"  {holder}")


@role_app.command("check")
def role_check(
    role: Annotated[str, typer.Option("--role", help="Role name")],
    account: Annotated[str, typer.Option("--account", help="Account to check")],
    db: DbOption = None,
) -> None:
    """Show whether an account holds a role"""
    ledger = get_ledger(db)
    held = ledger.has_role(role.upper(), account)
    typer.echo(f"{account.lower()} {'holds' if held else 'does not hold'} {role.upper()}")


# Balance-moving commands


@app.command()
def mint(
    to: Annotated[str, typer.Option("--to", help="Receiving account")],
    amount: AmountOption,
    caller: CallerOption,
    units: UnitsOption = False,
    db: DbOption = None,
) -> None:
    """Issue new units (MINTER only)"""
    ledger = get_ledger(db)
    value = parse_amount(amount, units)
    with ledger_errors():
        ledger.mint(to, value, caller=caller)
    typer.echo(f"✓ Minted {format_amount(value)} to {to.lower()}")


@app.command()
def burn(
    amount: AmountOption,
    caller: CallerOption,
    units: UnitsOption = False,
    db: DbOption = None,
) -> None:
    """Burn units from the caller's own balance"""
    ledger = get_ledger(db)
    value = parse_amount(amount, units)
    with ledger_errors():
        ledger.burn(value, caller=caller)
    typer.echo(f"✓ Burned {format_amount(value)} from {caller.lower()}")


@app.command("burn-from")
def burn_from(
    owner: Annotated[str, typer.Option("--owner", help="Account whose units are burned")],
    amount: AmountOption,
    caller: CallerOption,
    units: UnitsOption = False,
    db: DbOption = None,
) -> None:
    """Burn units from an owner against an allowance (BURNER only)"""
    ledger = get_ledger(db)
    value = parse_amount(amount, units)
    with ledger_errors():
        ledger.burn_from(owner, value, caller=caller)
    typer.echo(f"✓ Burned {format_amount(value)} from {owner.lower()}")


@app.command()
def transfer(
    to: Annotated[str, typer.Option("--to", help="Receiving account")],
    amount: AmountOption,
    caller: CallerOption,
    units: UnitsOption = False,
    db: DbOption = None,
) -> None:
    """Move units from the caller to another account"""
    ledger = get_ledger(db)
    value = parse_amount(amount, units)
    with ledger_errors():
        ledger.transfer(to, value, caller=caller)
    typer.echo(f"✓ Transferred {format_amount(value)} to {to.lower()}")


@app.command()
def approve(
    spender: Annotated[str, typer.Option("--spender", help="Account allowed to spend")],
    amount: AmountOption,
    caller: CallerOption,
    units: UnitsOption = False,
    db: DbOption = None,
) -> None:
    """Set a spender's allowance over the caller's balance"""
    ledger = get_ledger(db)
    value = parse_amount(amount, units)
    with ledger_errors():
        ledger.approve(spender, value, caller=caller)
    typer.echo(f"✓ Allowance of {spender.lower()} set to {format_amount(value)}")


@app.command("transfer-from")
def transfer_from(
    owner: Annotated[str, typer.Option("--owner", help="Account whose units move")],
    to: Annotated[str, typer.Option("--to", help="Receiving account")],
    amount: AmountOption,
    caller: CallerOption,
    units: UnitsOption = False,
    db: DbOption = None,
) -> None:
    """Move an owner's units using an allowance"""
    ledger = get_ledger(db)
    value = parse_amount(amount, units)
    with ledger_errors():
        ledger.transfer_from(owner, to, value, caller=caller)
    typer.echo(f"✓ Transferred {format_amount(value)} from {owner.lower()} to {to.lower()}")


@app.command()
def withdraw(
    to: Annotated[str, typer.Option("--to", help="Receiving account")],
    amount: AmountOption,
    caller: CallerOption,
    units: UnitsOption = False,
    db: DbOption = None,
) -> None:
    """Rate-limited issuance (WITHDRAWER only)"""
    ledger = get_ledger(db)
    value = parse_amount(amount, units)
    with ledger_errors():
        ledger.withdraw(to, value, caller=caller)
    window = ledger.withdrawal_window()
    typer.echo(f"✓ Withdrew {format_amount(value)} to {to.lower()}")
    typer.echo(f"  Remaining in window: {format_amount(window.remaining)}")


# Pause switch


@app.command()
def pause(caller: CallerOption, db: DbOption = None) -> None:
    """Pause balance-moving operations (PAUSER only)"""
    ledger = get_ledger(db)
    with ledger_errors():
        ledger.pause(caller=caller)
    typer.echo("✓ Ledger paused")


@app.command()
def unpause(caller: CallerOption, db: DbOption = None) -> None:
    """Resume balance-moving operations (PAUSER only)"""
    ledger = get_ledger(db)
    with ledger_errors():
        ledger.unpause(caller=caller)
    typer.echo("✓ Ledger unpaused")


# Queries


@app.command()
def balance(
    account: Annotated[str, typer.Argument(help="Account to query")],
    db: DbOption = None,
) -> None:
    """Show an account balance"""
    ledger = get_ledger(db)
    typer.echo(f"{account.lower()}: {format_amount(ledger.balance_of(account))}")


@app.command()
def allowance(
    owner: Annotated[str, typer.Option("--owner", help="Owner account")],
    spender: Annotated[str, typer.Option("--spender", help="Spender account")],
    db: DbOption = None,
) -> None:
    """Show a spender's remaining allowance"""
    ledger = get_ledger(db)
    typer.echo(format_amount(ledger.allowance(owner, spender)))


@app.command()
def info(
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show token metadata, supply, limits and control state"""
    ledger = get_ledger(db)
    window = ledger.withdrawal_window()
    data = {
        "name": ledger.name(),
        "symbol": ledger.symbol(),
        "decimals": ledger.decimals(),
        "total_supply": str(ledger.total_supply()),
        "treasury": ledger.treasury(),
        "daily_withdrawal_limit": str(ledger.daily_withdrawal_limit()),
        "max_withdrawal_amount": str(ledger.max_withdrawal_amount()),
        "withdrawn_in_window": str(window.withdrawn_in_window),
        "paused": ledger.paused(),
        "logic_version": ledger.logic_version(),
    }

    if json_output:
        typer.echo(json.dumps(data, indent=2))
        return

    typer.echo(f"{data['name']} ({data['symbol']}), {data['decimals']} decimals")
    typer.echo(f"  Total supply: {format_amount(ledger.total_supply())}")
    typer.echo(f"  Treasury: {data['treasury'] or '-'}")
    typer.echo(f"  Daily withdrawal limit: {format_amount(ledger.daily_withdrawal_limit())}")
    typer.echo(f"  Max withdrawal amount: {format_amount(ledger.max_withdrawal_amount())}")
    typer.echo(f"  Withdrawn in window: {format_amount(window.withdrawn_in_window)}")
    typer.echo(f"  Paused: {data['paused']}")
    typer.echo(f"  Logic version: {data['logic_version']}")


# Governance


def _parse_parameter_value(kind: ParameterKind, value: str, raw_units: bool) -> int | str:
    if kind == ParameterKind.TREASURY:
        return value
    return parse_amount(value, raw_units)


@proposal_app.command("propose")
def proposal_propose(
    kind: Annotated[str, typer.Option("--kind", help="Parameter to change")],
    value: Annotated[str, typer.Option("--value", help="New value (tokens or account)")],
    caller: CallerOption,
    units: UnitsOption = False,
    db: DbOption = None,
) -> None:
    """Propose a timelocked parameter change (ADMIN only)"""
    ledger = get_ledger(db)
    parameter = parse_kind(kind)
    with ledger_errors():
        proposal_id = ledger.propose_parameter_change(
            parameter, _parse_parameter_value(parameter, value, units), caller=caller
        )
    proposal = ledger.get_proposal(proposal_id)
    typer.echo(f"✓ Proposal #{proposal_id} created")
    typer.echo(f"  Executable at: {proposal.executable_at.isoformat()}")


@proposal_app.command("execute")
def proposal_execute(
    proposal_id: Annotated[int, typer.Option("--id", help="Proposal id")],
    caller: CallerOption,
    db: DbOption = None,
) -> None:
    """Execute a proposal whose delay has elapsed"""
    ledger = get_ledger(db)
    with ledger_errors():
        ledger.execute_parameter_change(proposal_id, caller=caller)
    typer.echo(f"✓ Proposal #{proposal_id} executed")


@proposal_app.command("cancel")
def proposal_cancel(
    proposal_id: Annotated[int, typer.Option("--id", help="Proposal id")],
    caller: CallerOption,
    db: DbOption = None,
) -> None:
    """Cancel a pending proposal (ADMIN only)"""
    ledger = get_ledger(db)
    with ledger_errors():
        ledger.cancel_proposal(proposal_id, caller=caller)
    typer.echo(f"✓ Proposal #{proposal_id} cancelled")


@proposal_app.command("list")
def proposal_list(
    status: Annotated[
        Optional[str],
        typer.Option("--status", help="PENDING, EXECUTED or CANCELLED"),
    ] = None,
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """List proposals"""
    ledger = get_ledger(db)
    proposals = ledger.list_proposals(status.upper() if status else None)

    if json_output:
        typer.echo(json.dumps([p.model_dump(mode="json") for p in proposals], indent=2))
        return

    if not proposals:
        typer.echo("No proposals")
        return

    typer.echo(f"Proposals ({len(proposals)}):")
    for proposal in proposals:
        typer.echo(_proposal_line(proposal))


# Upgrade gate


@app.command()
def upgrade(
    to: Annotated[str, typer.Option("--to", help="Registered logic version")],
    caller: CallerOption,
    db: DbOption = None,
) -> None:
    """Swap the executable logic (UPGRADER only)"""
    ledger = get_ledger(db)
    with ledger_errors():
        ledger.authorize_upgrade(to, caller=caller)
    typer.echo(f"✓ Logic upgraded to {ledger.logic_version()}")


# Monitoring


@app.command()
def audit(
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """Check the ledger invariants"""
    ledger = get_ledger(db)
    report = ledger.audit()

    if json_output:
        typer.echo(json.dumps(report.model_dump(mode="json"), indent=2, default=str))
    else:
        typer.echo(f"Ledger audit: {'✓ OK' if report.is_healthy else '✗ VIOLATION'}")
        typer.echo(f"  Total supply: {format_amount(report.total_supply)}")
        typer.echo(f"  Sum of balances: {format_amount(report.sum_of_balances)}")
        typer.echo(f"  Holders: {report.holder_count}")
        typer.echo(f"  Admins: {report.admin_count}")
        typer.echo(f"  Pending proposals: {report.pending_proposals}")
        typer.echo(f"  Executable proposals: {report.executable_proposals}")
        typer.echo(f"  Window utilization: {report.window_utilization:.2%}")
        typer.echo(f"  Paused: {report.paused}")

    if not report.is_healthy:
        raise typer.Exit(2)


@app.command()
def history(
    event_type: Annotated[
        Optional[str],
        typer.Option("--type", help="Only this event type"),
    ] = None,
    limit: Annotated[int, typer.Option("--limit", help="Maximum events")] = 50,
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show committed events"""
    ledger = get_ledger(db)
    events = ledger.history(event_type=event_type, limit=limit)

    if json_output:
        typer.echo(json.dumps([e.model_dump(mode="json") for e in events], indent=2))
        return

    if not events:
        typer.echo("No events")
        return

    for event in events:
        typer.echo(f"  {event.version:>5} {event.occurred_at.isoformat()} {event.event_type}")


def main() -> None:
    """Main entry point"""
    app()


if __name__ == "__main__":
    main()
