"""
Token Module Events - Facts about balances, allowances and withdrawals
"""

from datetime import datetime

from pydantic import BaseModel


class Minted(BaseModel):
    account: str
    amount: int
    minted_by: str


class Burned(BaseModel):
    """Units left circulation; spender is set when burned via burn_from"""

    account: str
    amount: int
    spender: str | None = None


class Transferred(BaseModel):
    from_account: str
    to_account: str
    amount: int
    spender: str | None = None


class Approval(BaseModel):
    """The allowance of spender over owner's balance is now amount"""

    owner: str
    spender: str
    amount: int


class Withdrawn(BaseModel):
    """
    Units were issued through the rate-limited withdrawal path

    withdrawn_in_window is the cumulative total after this withdrawal.
    """

    account: str
    amount: int
    withdrawn_by: str
    window_start: datetime
    withdrawn_in_window: int


class WithdrawalWindowReset(BaseModel):
    """A new rolling window opened; cumulative withdrawals restart at zero"""

    window_start: datetime
    previous_window_start: datetime | None
    previous_withdrawn: int
