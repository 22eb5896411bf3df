"""
Token Module Invariants - Amount, balance and rate-limit checks

Pure functions: they read projections and raise, nothing else. A handler
that gets past all of them can emit events knowing the commit keeps
total_supply equal to the sum of balances.
"""

from datetime import datetime

from token_ledger.kernel.errors import (
    ExceedsDailyWithdrawalLimit,
    ExceedsMaxWithdrawalAmount,
    InsufficientAllowance,
    InsufficientBalance,
    InvalidAmount,
)
from token_ledger.token.projections import BalanceSheet, WithdrawalLimiter


def _require_whole_units(amount: object) -> None:
    # bool is an int subclass; True must not move one unit
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(amount, "must be an integer number of base units")


def validate_positive_amount(amount: object) -> None:
    """
    Raises:
        InvalidAmount: If amount is not an int, or is zero or negative
    """
    _require_whole_units(amount)
    if amount <= 0:
        raise InvalidAmount(amount)


def validate_non_negative_amount(amount: object) -> None:
    """
    Transfers and approvals accept zero

    Raises:
        InvalidAmount: If amount is not an int, or is negative
    """
    _require_whole_units(amount)
    if amount < 0:
        raise InvalidAmount(amount, "must not be negative")


def validate_sufficient_balance(balances: BalanceSheet, account: str, amount: int) -> None:
    """
    Raises:
        InsufficientBalance: If account holds less than amount
    """
    balance = balances.balance_of(account)
    if amount > balance:
        raise InsufficientBalance(account, balance, amount)


def validate_sufficient_allowance(
    balances: BalanceSheet, owner: str, spender: str, amount: int
) -> None:
    """
    Raises:
        InsufficientAllowance: If spender may not move amount of owner's units
    """
    allowance = balances.allowance(owner, spender)
    if amount > allowance:
        raise InsufficientAllowance(owner, spender, allowance, amount)


def validate_max_withdrawal(limiter: WithdrawalLimiter, amount: int) -> None:
    """
    Per-call ceiling, independent of the rolling window

    Raises:
        ExceedsMaxWithdrawalAmount: If amount is above the ceiling
    """
    if amount > limiter.max_withdrawal_amount:
        raise ExceedsMaxWithdrawalAmount(amount, limiter.max_withdrawal_amount)


def validate_daily_withdrawal(
    limiter: WithdrawalLimiter, amount: int, now: datetime
) -> int:
    """
    Check the rolling window, evaluated fresh against now

    A lapsed window counts as empty.

    Returns:
        Cumulative withdrawn in the window after this withdrawal

    Raises:
        ExceedsDailyWithdrawalLimit: If the window total would exceed the limit
    """
    withdrawn = 0 if limiter.window_expired(now) else limiter.withdrawn_in_window
    if withdrawn + amount > limiter.daily_withdrawal_limit:
        raise ExceedsDailyWithdrawalLimit(amount, withdrawn, limiter.daily_withdrawal_limit)
    return withdrawn + amount
