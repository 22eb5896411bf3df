"""
Token Module Commands - Intentions to move units

Amounts are kept exactly as the caller passed them (no coercion of "7",
2.0 or True) and checked by the invariants after the role gate, so that
a caller without the right role sees Unauthorized before it ever sees
InvalidAmount.
"""

from typing import Any

from pydantic import BaseModel


class Mint(BaseModel):
    """MINTER issues new units to an account"""

    to: str
    amount: Any


class Burn(BaseModel):
    """Any holder destroys units from its own balance"""

    amount: Any


class BurnFrom(BaseModel):
    """BURNER destroys units from owner's balance against an allowance"""

    owner: str
    amount: Any


class Transfer(BaseModel):
    to: str
    amount: Any


class Approve(BaseModel):
    """Set (not add to) the spender's allowance over the caller's balance"""

    spender: str
    amount: Any


class TransferFrom(BaseModel):
    owner: str
    to: str
    amount: Any


class Withdraw(BaseModel):
    """
    WITHDRAWER issues units subject to the per-call ceiling and the
    rolling daily limit
    """

    to: str
    amount: Any
