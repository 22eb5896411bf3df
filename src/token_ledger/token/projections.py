"""
Token Module Projections - Balances, allowances and the withdrawal limiter

Fun fact: The supply check total_supply == sum(balances) is the same
trial balance an accountant runs at month end. audit() runs it on demand.
"""

from datetime import datetime, timedelta
from typing import Any

from token_ledger.kernel.events import Event
from token_ledger.token.models import WithdrawalWindow


def _parse_time(value: str | datetime | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class BalanceSheet:
    """
    Projection: per-account balances, allowances and total supply

    Every event that changes total_supply changes exactly one balance by
    the same amount; transfers move units without touching total_supply.
    """

    def __init__(self) -> None:
        self.balances: dict[str, int] = {}
        self.allowances: dict[str, dict[str, int]] = {}
        self.total_supply = 0

    def apply_event(self, event: Event) -> None:
        """Apply an event to update projection state"""
        payload = event.payload

        if event.event_type in ("Minted", "Withdrawn"):
            self._credit(payload["account"], payload["amount"])
            self.total_supply += payload["amount"]

        elif event.event_type == "Burned":
            self._debit(payload["account"], payload["amount"])
            self.total_supply -= payload["amount"]

        elif event.event_type == "Transferred":
            self._debit(payload["from_account"], payload["amount"])
            self._credit(payload["to_account"], payload["amount"])

        elif event.event_type == "Approval":
            self.allowances.setdefault(payload["owner"], {})[payload["spender"]] = payload[
                "amount"
            ]

    def _credit(self, account: str, amount: int) -> None:
        self.balances[account] = self.balances.get(account, 0) + amount

    def _debit(self, account: str, amount: int) -> None:
        self.balances[account] = self.balances.get(account, 0) - amount

    def balance_of(self, account: str) -> int:
        return self.balances.get(account.lower(), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get(owner.lower(), {}).get(spender.lower(), 0)

    def sum_of_balances(self) -> int:
        return sum(self.balances.values())

    def holders(self) -> dict[str, int]:
        """Accounts with a non-zero balance"""
        return {account: bal for account, bal in sorted(self.balances.items()) if bal}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a comparable snapshot"""
        return {
            "balances": self.holders(),
            "allowances": {
                owner: dict(sorted(spenders.items()))
                for owner, spenders in sorted(self.allowances.items())
            },
            "total_supply": self.total_supply,
        }


class WithdrawalLimiter:
    """
    Projection: withdrawal limits and the rolling window

    The window only moves when a WithdrawalWindowReset is recorded; use
    window_at(now) for the effective view at a given time.
    """

    def __init__(self) -> None:
        self.daily_withdrawal_limit = 0
        self.max_withdrawal_amount = 0
        self.window_seconds = 0
        self.window_start: datetime | None = None
        self.withdrawn_in_window = 0

    def apply_event(self, event: Event) -> None:
        """Apply an event to update projection state"""
        payload = event.payload

        if event.event_type == "LedgerInitialized":
            self.daily_withdrawal_limit = payload["daily_withdrawal_limit"]
            self.max_withdrawal_amount = payload["max_withdrawal_amount"]
            self.window_seconds = payload["withdrawal_window_seconds"]

        elif event.event_type == "WithdrawalWindowReset":
            self.window_start = _parse_time(payload["window_start"])
            self.withdrawn_in_window = 0

        elif event.event_type == "Withdrawn":
            self.withdrawn_in_window = payload["withdrawn_in_window"]

        elif event.event_type == "ParameterChangeExecuted":
            if payload["kind"] == "DAILY_WITHDRAWAL_LIMIT":
                self.daily_withdrawal_limit = payload["new_value"]
            elif payload["kind"] == "MAX_WITHDRAWAL_AMOUNT":
                self.max_withdrawal_amount = payload["new_value"]

    def window_expired(self, now: datetime) -> bool:
        """True when no window is open or the open one has lapsed"""
        if self.window_start is None:
            return True
        return now >= self.window_start + timedelta(seconds=self.window_seconds)

    def window_at(self, now: datetime) -> WithdrawalWindow:
        if self.window_expired(now):
            start = None
            withdrawn = 0
        else:
            start = self.window_start
            withdrawn = self.withdrawn_in_window
        return WithdrawalWindow(
            window_start=start,
            window_end=start + timedelta(seconds=self.window_seconds) if start else None,
            withdrawn_in_window=withdrawn,
            daily_withdrawal_limit=self.daily_withdrawal_limit,
            max_withdrawal_amount=self.max_withdrawal_amount,
            remaining=max(self.daily_withdrawal_limit - withdrawn, 0),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a comparable snapshot"""
        return {
            "daily_withdrawal_limit": self.daily_withdrawal_limit,
            "max_withdrawal_amount": self.max_withdrawal_amount,
            "window_seconds": self.window_seconds,
            "window_start": self.window_start.isoformat() if self.window_start else None,
            "withdrawn_in_window": self.withdrawn_in_window,
        }
