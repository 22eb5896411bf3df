"""
Token Module Handlers - Command→Event transformation for balances

Each handler runs the gates in a fixed order (initialized, role, pause
switch, accounts, amount, funds) and only then builds events. Nothing is
emitted for a rejected command, so the ledger is never half-updated.
"""

from token_ledger.access.invariants import (
    require_initialized,
    require_not_paused,
    require_role,
    validate_target_account,
)
from token_ledger.access.models import Role, normalize_account
from token_ledger.access.projections import LedgerControl, RoleRegistry
from token_ledger.kernel.events import Event, EventBatch
from token_ledger.kernel.time import TimeProvider
from token_ledger.token.commands import (
    Approve,
    Burn,
    BurnFrom,
    Mint,
    Transfer,
    TransferFrom,
    Withdraw,
)
from token_ledger.token.events import (
    Approval,
    Burned,
    Minted,
    Transferred,
    WithdrawalWindowReset,
    Withdrawn,
)
from token_ledger.token.invariants import (
    validate_daily_withdrawal,
    validate_max_withdrawal,
    validate_non_negative_amount,
    validate_positive_amount,
    validate_sufficient_allowance,
    validate_sufficient_balance,
)
from token_ledger.token.projections import BalanceSheet, WithdrawalLimiter

STREAM_TYPE = "token"


class TokenCommandHandlers:
    """
    Command handlers for mint, burn, transfer, allowances and withdrawal

    They depend on projections to get current state.
    """

    def __init__(self, time_provider: TimeProvider) -> None:
        self.time_provider = time_provider

    def _batch(self, command_id: str, actor_id: str | None, version: int) -> EventBatch:
        return EventBatch(
            stream_type=STREAM_TYPE,
            command_id=command_id,
            actor_id=actor_id,
            occurred_at=self.time_provider.now(),
            base_version=version,
        )

    def handle_mint(
        self,
        command: Mint,
        command_id: str,
        actor_id: str | None,
        roles: RoleRegistry,
        control: LedgerControl,
        version: int,
    ) -> list[Event]:
        """
        Handle Mint command

        Raises:
            Unauthorized: If caller lacks MINTER
            Paused: If the ledger is paused
            InvalidAccount: If `to` is null or malformed
            InvalidAmount: If amount is not positive
        """
        require_initialized(control)
        require_role(roles, Role.MINTER, actor_id)
        require_not_paused(control, "mint")
        to = validate_target_account(command.to)
        validate_positive_amount(command.amount)

        batch = self._batch(command_id, actor_id, version)
        batch.add("Minted", Minted(account=to, amount=command.amount, minted_by=actor_id))
        return batch.events

    def handle_burn(
        self,
        command: Burn,
        command_id: str,
        actor_id: str | None,
        control: LedgerControl,
        balances: BalanceSheet,
        version: int,
    ) -> list[Event]:
        """
        Handle Burn command - any holder may burn its own units

        Raises:
            Paused: If the ledger is paused
            InvalidAmount: If amount is not positive
            InsufficientBalance: If caller holds less than amount
        """
        require_initialized(control)
        require_not_paused(control, "burn")
        holder = normalize_account(actor_id or "")
        validate_positive_amount(command.amount)
        validate_sufficient_balance(balances, holder, command.amount)

        batch = self._batch(command_id, actor_id, version)
        batch.add("Burned", Burned(account=holder, amount=command.amount))
        return batch.events

    def handle_burn_from(
        self,
        command: BurnFrom,
        command_id: str,
        actor_id: str | None,
        roles: RoleRegistry,
        control: LedgerControl,
        balances: BalanceSheet,
        version: int,
    ) -> list[Event]:
        """
        Handle BurnFrom command

        The caller needs BURNER and an allowance from the owner; both are
        spent together.

        Raises:
            Unauthorized: If caller lacks BURNER
            Paused: If the ledger is paused
            InvalidAccount: If owner is null or malformed
            InvalidAmount: If amount is not positive
            InsufficientAllowance: If the owner's allowance is too small
            InsufficientBalance: If the owner holds less than amount
        """
        require_initialized(control)
        require_role(roles, Role.BURNER, actor_id)
        require_not_paused(control, "burn_from")
        owner = validate_target_account(command.owner)
        validate_positive_amount(command.amount)
        validate_sufficient_allowance(balances, owner, actor_id, command.amount)
        validate_sufficient_balance(balances, owner, command.amount)

        remaining = balances.allowance(owner, actor_id) - command.amount
        batch = self._batch(command_id, actor_id, version)
        batch.add("Approval", Approval(owner=owner, spender=actor_id, amount=remaining))
        batch.add("Burned", Burned(account=owner, amount=command.amount, spender=actor_id))
        return batch.events

    def handle_transfer(
        self,
        command: Transfer,
        command_id: str,
        actor_id: str | None,
        control: LedgerControl,
        balances: BalanceSheet,
        version: int,
    ) -> list[Event]:
        """
        Handle Transfer command

        Zero-amount transfers are accepted.

        Raises:
            Paused: If the ledger is paused
            InvalidAccount: If `to` is null or malformed
            InvalidAmount: If amount is negative
            InsufficientBalance: If caller holds less than amount
        """
        require_initialized(control)
        require_not_paused(control, "transfer")
        sender = normalize_account(actor_id or "")
        to = validate_target_account(command.to)
        validate_non_negative_amount(command.amount)
        validate_sufficient_balance(balances, sender, command.amount)

        batch = self._batch(command_id, actor_id, version)
        batch.add(
            "Transferred",
            Transferred(from_account=sender, to_account=to, amount=command.amount),
        )
        return batch.events

    def handle_approve(
        self,
        command: Approve,
        command_id: str,
        actor_id: str | None,
        control: LedgerControl,
        version: int,
    ) -> list[Event]:
        """
        Handle Approve command

        Approvals move no units, so they stay available while paused.

        Raises:
            InvalidAccount: If spender is null or malformed
            InvalidAmount: If amount is negative
        """
        require_initialized(control)
        owner = normalize_account(actor_id or "")
        spender = validate_target_account(command.spender)
        validate_non_negative_amount(command.amount)

        batch = self._batch(command_id, actor_id, version)
        batch.add("Approval", Approval(owner=owner, spender=spender, amount=command.amount))
        return batch.events

    def handle_transfer_from(
        self,
        command: TransferFrom,
        command_id: str,
        actor_id: str | None,
        control: LedgerControl,
        balances: BalanceSheet,
        version: int,
    ) -> list[Event]:
        """
        Handle TransferFrom command - move owner's units using an allowance

        Raises:
            Paused: If the ledger is paused
            InvalidAccount: If owner or `to` is null or malformed
            InvalidAmount: If amount is not positive
            InsufficientAllowance: If the allowance is too small
            InsufficientBalance: If the owner holds less than amount
        """
        require_initialized(control)
        require_not_paused(control, "transfer_from")
        spender = normalize_account(actor_id or "")
        owner = validate_target_account(command.owner)
        to = validate_target_account(command.to)
        validate_positive_amount(command.amount)
        validate_sufficient_allowance(balances, owner, spender, command.amount)
        validate_sufficient_balance(balances, owner, command.amount)

        remaining = balances.allowance(owner, spender) - command.amount
        batch = self._batch(command_id, actor_id, version)
        batch.add("Approval", Approval(owner=owner, spender=spender, amount=remaining))
        batch.add(
            "Transferred",
            Transferred(
                from_account=owner, to_account=to, amount=command.amount, spender=spender
            ),
        )
        return batch.events

    def handle_withdraw(
        self,
        command: Withdraw,
        command_id: str,
        actor_id: str | None,
        roles: RoleRegistry,
        control: LedgerControl,
        limiter: WithdrawalLimiter,
        version: int,
    ) -> list[Event]:
        """
        Handle Withdraw command

        The per-call ceiling is checked first. The window-reset check is
        recomputed from `now` on every call; a reset is only recorded
        together with a successful withdrawal.

        Raises:
            Unauthorized: If caller lacks WITHDRAWER
            Paused: If the ledger is paused
            InvalidAccount: If `to` is null or malformed
            InvalidAmount: If amount is not positive
            ExceedsMaxWithdrawalAmount: If amount is above the per-call ceiling
            ExceedsDailyWithdrawalLimit: If the rolling window would overflow
        """
        require_initialized(control)
        require_role(roles, Role.WITHDRAWER, actor_id)
        require_not_paused(control, "withdraw")
        to = validate_target_account(command.to)
        validate_positive_amount(command.amount)
        validate_max_withdrawal(limiter, command.amount)

        batch = self._batch(command_id, actor_id, version)
        now = batch.occurred_at
        withdrawn_after = validate_daily_withdrawal(limiter, command.amount, now)

        window_start = limiter.window_start
        if limiter.window_expired(now):
            window_start = now
            batch.add(
                "WithdrawalWindowReset",
                WithdrawalWindowReset(
                    window_start=now,
                    previous_window_start=limiter.window_start,
                    previous_withdrawn=limiter.withdrawn_in_window,
                ),
            )

        batch.add(
            "Withdrawn",
            Withdrawn(
                account=to,
                amount=command.amount,
                withdrawn_by=actor_id,
                window_start=window_start,
                withdrawn_in_window=withdrawn_after,
            ),
        )
        return batch.events
