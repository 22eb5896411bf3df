"""
TokenLedger - Main façade class

This is the primary interface for interacting with the ledger. It hides
the event sourcing machinery behind plain method calls: every mutating
method validates against the projected state, appends its events in one
batch, applies them and notifies subscribers, or raises and changes
nothing.

Example:
    >>> from token_ledger import TokenLedger, Role
    >>> ledger = TokenLedger("ledger.db")
    >>> ledger.initialize(admin="0x" + "a" * 40)
    >>> ledger.grant_role(Role.MINTER, "0x" + "b" * 40, caller="0x" + "a" * 40)
    >>> ledger.mint("0x" + "c" * 40, 100 * 10**18, caller="0x" + "b" * 40)
    >>> ledger.total_supply()
    100000000000000000000
"""

import time
from pathlib import Path
from typing import Callable

from token_ledger.access.commands import (
    AuthorizeUpgrade,
    GrantRole,
    InitializeLedger,
    InitializeLedgerV2,
    PauseLedger,
    RenounceRole,
    RevokeRole,
    UnpauseLedger,
)
from token_ledger.access.models import ControlState, Role, normalize_account, parse_role
from token_ledger.access.projections import LedgerControl, RoleRegistry
from token_ledger.audit import AuditReport, run_audit
from token_ledger.governance.commands import (
    CancelProposal,
    ExecuteParameterChange,
    ProposeParameterChange,
)
from token_ledger.governance.models import ParameterKind, Proposal, ProposalStatus
from token_ledger.governance.projections import ProposalRegistry
from token_ledger.kernel.bus import EventHandler, InProcessBus
from token_ledger.kernel.errors import LedgerError, StreamVersionConflict, UnknownLogicVersion
from token_ledger.kernel.event_store import SQLiteEventStore
from token_ledger.kernel.events import LEDGER_STREAM_ID, Event
from token_ledger.kernel.ids import generate_id
from token_ledger.kernel.ledger_policy import LedgerPolicy
from token_ledger.kernel.logging import LogOperation, get_logger, set_correlation_id
from token_ledger.kernel.metrics import (
    command_duration_seconds,
    commands_processed_total,
    update_ledger_metrics,
)
from token_ledger.kernel.time import RealTimeProvider, TimeProvider
from token_ledger.logic import DEFAULT_LOGIC_VERSIONS, LedgerLogic
from token_ledger.token.commands import (
    Approve,
    Burn,
    BurnFrom,
    Mint,
    Transfer,
    TransferFrom,
    Withdraw,
)
from token_ledger.token.models import WithdrawalWindow
from token_ledger.token.projections import BalanceSheet, WithdrawalLimiter

logger = get_logger(__name__)


class TokenLedger:
    """
    Access-controlled token ledger façade

    Provides a unified API for:
    - Initialization and the one-time secondary initializer
    - Role administration and the pause switch
    - Mint, burn, transfer, allowances and rate-limited withdrawal
    - Timelocked parameter changes
    - Logic upgrades that leave stored state untouched
    """

    def __init__(
        self,
        sqlite_path: str | Path,
        policy: LedgerPolicy | None = None,
        time_provider: TimeProvider | None = None,
        logic_versions: dict[str, type[LedgerLogic]] | None = None,
    ) -> None:
        """
        Initialize the ledger from its event store

        Args:
            sqlite_path: Path to SQLite database
            policy: Token metadata and default limits (uses defaults if None)
            time_provider: Time provider (uses real time if None)
            logic_versions: Logic versions an upgrade may switch to, keyed by
                version name; the first entry is used for a fresh ledger
        """
        self.sqlite_path = Path(sqlite_path)
        self.policy = policy or LedgerPolicy()
        self.time_provider = time_provider or RealTimeProvider()
        self.logic_versions = dict(logic_versions or DEFAULT_LOGIC_VERSIONS)
        if not self.logic_versions:
            raise ValueError("At least one logic version must be registered")

        self.event_store = SQLiteEventStore(self.sqlite_path)
        self.bus = InProcessBus()

        self.logic: LedgerLogic = self._bind_logic(next(iter(self.logic_versions)))
        self._rebuild_projections()

    # Internals

    def _bind_logic(self, version: str) -> LedgerLogic:
        logic_class = self.logic_versions.get(version)
        if logic_class is None:
            raise UnknownLogicVersion(version, sorted(self.logic_versions))
        return logic_class(self.time_provider, self.policy)

    def _sync_logic(self) -> None:
        """Follow the logic version recorded in the event log"""
        recorded = self.control.logic_version
        if recorded and recorded != self.logic.version:
            self.logic = self._bind_logic(recorded)
            logger.info("Ledger logic bound", logic_version=recorded)

    def _rebuild_projections(self) -> None:
        """Rebuild all projections from the event store"""
        self.roles = RoleRegistry()
        self.control = LedgerControl()
        self.balances = BalanceSheet()
        self.limiter = WithdrawalLimiter()
        self.proposals = ProposalRegistry()
        self.version = 0

        events = self.event_store.load_stream(LEDGER_STREAM_ID)
        for event in events:
            self._apply(event)
        self._sync_logic()
        logger.debug("Projections rebuilt", events=len(events), version=self.version)

    def _apply(self, event: Event) -> None:
        for projection in (
            self.roles,
            self.control,
            self.balances,
            self.limiter,
            self.proposals,
        ):
            projection.apply_event(event)
        self.version = event.version

    def _commit(self, decide: Callable[[str], list[Event]], command_id: str) -> list[Event]:
        """
        Run a handler and append its events as one batch

        If another process moved the stream since our last rebuild, the
        projections are reloaded and the handler re-run once against the
        fresh state.
        """
        for attempt in range(2):
            events = decide(command_id)
            if not events:
                return []
            try:
                appended = self.event_store.append(LEDGER_STREAM_ID, self.version, events)
            except StreamVersionConflict:
                if attempt:
                    raise
                logger.info("Ledger stream moved, reloading projections")
                self._rebuild_projections()
                continue
            for event in appended:
                self._apply(event)
            self._sync_logic()
            return appended
        return []

    def _execute(
        self,
        operation: str,
        caller: str | None,
        decide: Callable[[str], list[Event]],
        **context: object,
    ) -> list[Event]:
        """Run one operation with logging, metrics and notification"""
        command_id = generate_id()
        set_correlation_id(command_id)
        start = time.perf_counter()
        with LogOperation(logger, operation, caller=caller, **context):
            try:
                events = self._commit(decide, command_id)
            except LedgerError:
                commands_processed_total.labels(command_type=operation, status="rejected").inc()
                raise
            except Exception:
                commands_processed_total.labels(command_type=operation, status="failure").inc()
                raise
            finally:
                command_duration_seconds.labels(command_type=operation).observe(
                    time.perf_counter() - start
                )
            commands_processed_total.labels(command_type=operation, status="success").inc()

        self._refresh_gauges()
        self.bus.publish_events(events)
        return events

    def _refresh_gauges(self) -> None:
        window = self.limiter.window_at(self.time_provider.now())
        update_ledger_metrics(
            total_supply=self.balances.total_supply,
            window_utilization=window.utilization,
            pending_proposals=len(self.proposals.list_proposals(ProposalStatus.PENDING)),
            paused=self.control.paused,
        )

    @staticmethod
    def _caller(caller: str) -> str:
        return normalize_account(caller)

    # Initialization

    def initialize(
        self,
        admin: str,
        treasury: str | None = None,
        caller: str | None = None,
    ) -> list[Event]:
        """
        One-time setup

        Args:
            admin: Bootstrap account receiving ADMIN and UPGRADER
            treasury: Optional treasury account
            caller: Account running the setup (defaults to admin)

        Returns:
            Events committed
        """
        actor = self._caller(caller) if caller is not None else None
        command = InitializeLedger(admin=admin, treasury=treasury)
        events = self._execute(
            "initialize",
            actor,
            lambda cid: self.logic.access.handle_initialize(
                command, cid, actor, self.control, self.version
            ),
        )
        return events

    def initialize_v2(self, treasury: str, caller: str) -> list[Event]:
        """Secondary initializer, guarded so it runs at most once"""
        actor = self._caller(caller)
        command = InitializeLedgerV2(treasury=treasury)
        return self._execute(
            "initialize_v2",
            actor,
            lambda cid: self.logic.access.handle_initialize_v2(
                command, cid, actor, self.roles, self.control, self.version
            ),
        )

    # Role registry

    def grant_role(self, role: Role | str, account: str, caller: str) -> list[Event]:
        """
        Grant a role (ADMIN only). Granting a held role is a no-op.

        Returns:
            Events committed (empty when nothing changed)
        """
        actor = self._caller(caller)
        command = GrantRole(role=parse_role(role), account=account)
        return self._execute(
            "grant_role",
            actor,
            lambda cid: self.logic.access.handle_grant_role(
                command, cid, actor, self.roles, self.control, self.version
            ),
            role=command.role.value,
            account=account,
        )

    def revoke_role(self, role: Role | str, account: str, caller: str) -> list[Event]:
        """Revoke a role (ADMIN only). Revoking an unheld role is a no-op."""
        actor = self._caller(caller)
        command = RevokeRole(role=parse_role(role), account=account)
        return self._execute(
            "revoke_role",
            actor,
            lambda cid: self.logic.access.handle_revoke_role(
                command, cid, actor, self.roles, self.control, self.version
            ),
            role=command.role.value,
            account=account,
        )

    def renounce_role(self, role: Role | str, caller: str) -> list[Event]:
        actor = self._caller(caller)
        command = RenounceRole(role=parse_role(role))
        return self._execute(
            "renounce_role",
            actor,
            lambda cid: self.logic.access.handle_renounce_role(
                command, cid, actor, self.roles, self.control, self.version
            ),
            role=command.role.value,
        )

    def has_role(self, role: Role | str, account: str) -> bool:
        """Pure query, never fails"""
        return self.roles.has_role(role, account)

    def role_members(self, role: Role | str) -> list[str]:
        return self.roles.members_of(role)

    def roles_of(self, account: str) -> list[str]:
        return self.roles.roles_of(account)

    # Pause switch

    def pause(self, caller: str) -> list[Event]:
        actor = self._caller(caller)
        return self._execute(
            "pause",
            actor,
            lambda cid: self.logic.access.handle_pause(
                PauseLedger(), cid, actor, self.roles, self.control, self.version
            ),
        )

    def unpause(self, caller: str) -> list[Event]:
        actor = self._caller(caller)
        return self._execute(
            "unpause",
            actor,
            lambda cid: self.logic.access.handle_unpause(
                UnpauseLedger(), cid, actor, self.roles, self.control, self.version
            ),
        )

    def paused(self) -> bool:
        return self.control.paused

    # Ledger

    def mint(self, to: str, amount: int, caller: str) -> list[Event]:
        actor = self._caller(caller)
        command = Mint(to=to, amount=amount)
        return self._execute(
            "mint",
            actor,
            lambda cid: self.logic.token.handle_mint(
                command, cid, actor, self.roles, self.control, self.version
            ),
            to=to,
            amount=amount,
        )

    def burn(self, amount: int, caller: str) -> list[Event]:
        actor = self._caller(caller)
        command = Burn(amount=amount)
        return self._execute(
            "burn",
            actor,
            lambda cid: self.logic.token.handle_burn(
                command, cid, actor, self.control, self.balances, self.version
            ),
            amount=amount,
        )

    def burn_from(self, owner: str, amount: int, caller: str) -> list[Event]:
        actor = self._caller(caller)
        command = BurnFrom(owner=owner, amount=amount)
        return self._execute(
            "burn_from",
            actor,
            lambda cid: self.logic.token.handle_burn_from(
                command, cid, actor, self.roles, self.control, self.balances, self.version
            ),
            owner=owner,
            amount=amount,
        )

    def transfer(self, to: str, amount: int, caller: str) -> list[Event]:
        actor = self._caller(caller)
        command = Transfer(to=to, amount=amount)
        return self._execute(
            "transfer",
            actor,
            lambda cid: self.logic.token.handle_transfer(
                command, cid, actor, self.control, self.balances, self.version
            ),
            to=to,
            amount=amount,
        )

    def approve(self, spender: str, amount: int, caller: str) -> list[Event]:
        actor = self._caller(caller)
        command = Approve(spender=spender, amount=amount)
        return self._execute(
            "approve",
            actor,
            lambda cid: self.logic.token.handle_approve(
                command, cid, actor, self.control, self.version
            ),
            spender=spender,
            amount=amount,
        )

    def transfer_from(self, owner: str, to: str, amount: int, caller: str) -> list[Event]:
        actor = self._caller(caller)
        command = TransferFrom(owner=owner, to=to, amount=amount)
        return self._execute(
            "transfer_from",
            actor,
            lambda cid: self.logic.token.handle_transfer_from(
                command, cid, actor, self.control, self.balances, self.version
            ),
            owner=owner,
            to=to,
            amount=amount,
        )

    def name(self) -> str | None:
        return self.control.token_name

    def symbol(self) -> str | None:
        return self.control.token_symbol

    def decimals(self) -> int:
        return self.control.decimals

    def total_supply(self) -> int:
        return self.balances.total_supply

    def balance_of(self, account: str) -> int:
        return self.balances.balance_of(account)

    def allowance(self, owner: str, spender: str) -> int:
        return self.balances.allowance(owner, spender)

    def treasury(self) -> str | None:
        return self.control.treasury

    # Withdrawal

    def withdraw(self, to: str, amount: int, caller: str) -> list[Event]:
        """
        Rate-limited issuance (WITHDRAWER only)

        Raises:
            ExceedsMaxWithdrawalAmount: Above the per-call ceiling
            ExceedsDailyWithdrawalLimit: Rolling window would overflow
        """
        actor = self._caller(caller)
        command = Withdraw(to=to, amount=amount)
        return self._execute(
            "withdraw",
            actor,
            lambda cid: self.logic.token.handle_withdraw(
                command, cid, actor, self.roles, self.control, self.limiter, self.version
            ),
            to=to,
            amount=amount,
        )

    def daily_withdrawal_limit(self) -> int:
        return self.limiter.daily_withdrawal_limit

    def max_withdrawal_amount(self) -> int:
        return self.limiter.max_withdrawal_amount

    def withdrawal_window(self) -> WithdrawalWindow:
        """Effective window at the current time"""
        return self.limiter.window_at(self.time_provider.now())

    # Timelock governance

    def propose_parameter_change(
        self, kind: ParameterKind | str, value: int | str, caller: str
    ) -> int:
        """
        Propose a parameter change (ADMIN only)

        Returns:
            The new proposal id
        """
        actor = self._caller(caller)
        command = ProposeParameterChange(kind=ParameterKind(kind), value=value)
        events = self._execute(
            "propose_parameter_change",
            actor,
            lambda cid: self.logic.governance.handle_propose_parameter_change(
                command, cid, actor, self.roles, self.control, self.proposals, self.version
            ),
            kind=command.kind.value,
        )
        return events[0].payload["proposal_id"]

    def execute_parameter_change(self, proposal_id: int, caller: str) -> list[Event]:
        """Execute a proposal whose delay has elapsed (any caller)"""
        actor = self._caller(caller)
        command = ExecuteParameterChange(proposal_id=proposal_id)
        return self._execute(
            "execute_parameter_change",
            actor,
            lambda cid: self.logic.governance.handle_execute_parameter_change(
                command, cid, actor, self.control, self.proposals, self.limiter, self.version
            ),
            proposal_id=proposal_id,
        )

    def cancel_proposal(self, proposal_id: int, caller: str) -> list[Event]:
        actor = self._caller(caller)
        command = CancelProposal(proposal_id=proposal_id)
        return self._execute(
            "cancel_proposal",
            actor,
            lambda cid: self.logic.governance.handle_cancel_proposal(
                command, cid, actor, self.roles, self.control, self.proposals, self.version
            ),
            proposal_id=proposal_id,
        )

    def get_proposal(self, proposal_id: int) -> Proposal | None:
        return self.proposals.get(proposal_id)

    def list_proposals(self, status: ProposalStatus | str | None = None) -> list[Proposal]:
        return self.proposals.list_proposals(ProposalStatus(status) if status else None)

    # Upgrade gate

    def authorize_upgrade(self, new_logic: str, caller: str) -> list[Event]:
        """
        Swap the executable logic (UPGRADER only)

        Roles, balances, the withdrawal window and proposals are untouched.
        """
        actor = self._caller(caller)
        command = AuthorizeUpgrade(new_logic=new_logic)
        return self._execute(
            "authorize_upgrade",
            actor,
            lambda cid: self.logic.access.handle_authorize_upgrade(
                command,
                cid,
                actor,
                self.roles,
                self.control,
                list(self.logic_versions),
                self.version,
            ),
            new_logic=new_logic,
        )

    def logic_version(self) -> str:
        return self.logic.version

    def control_state(self) -> ControlState:
        return self.control.state()

    # Observation

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Receive committed events of a type (or "*" for all)"""
        self.bus.subscribe(event_type, handler)

    def snapshot(self) -> dict[str, object]:
        """Complete projected state, for comparisons across upgrades"""
        return {
            "roles": self.roles.to_dict(),
            "control": self.control.to_dict(),
            "balances": self.balances.to_dict(),
            "limiter": self.limiter.to_dict(),
            "proposals": self.proposals.to_dict(),
        }

    def history(
        self,
        event_type: str | None = None,
        actor_id: str | None = None,
        limit: int | None = None,
    ) -> list[Event]:
        """Committed events from the store, oldest first"""
        return self.event_store.query_events(
            stream_id=LEDGER_STREAM_ID,
            event_type=event_type,
            actor_id=actor_id.lower() if actor_id else None,
            limit=limit,
        )

    def audit(self) -> AuditReport:
        """Recompute the ledger invariants; never emits events"""
        return run_audit(
            roles=self.roles,
            control=self.control,
            balances=self.balances,
            limiter=self.limiter,
            proposals=self.proposals,
            now=self.time_provider.now(),
        )
