"""
Token Domain Models - Read-side shapes for balances and withdrawals

Amounts are Python ints in base units (18 decimals), so there is never a
rounding question: 1 token is 10**18 units.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class WithdrawalWindow(BaseModel):
    """
    Effective state of the rolling withdrawal window at a point in time

    If the stored window has lapsed, this reports a fresh window even
    though no reset event has been written yet; the reset is only
    recorded by the next successful withdrawal.
    """

    window_start: datetime | None
    window_end: datetime | None
    withdrawn_in_window: int = Field(ge=0)
    daily_withdrawal_limit: int
    max_withdrawal_amount: int
    remaining: int = Field(ge=0)

    @property
    def utilization(self) -> float:
        if self.daily_withdrawal_limit <= 0:
            return 0.0
        return self.withdrawn_in_window / self.daily_withdrawal_limit
