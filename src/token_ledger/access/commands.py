"""
Access Module Commands - Intentions to change roles and control state

Commands carry what the caller asked for. Account strings are validated
by the handlers so that authorization is always checked first.
"""

from pydantic import BaseModel, Field

from token_ledger.access.models import Role


class InitializeLedger(BaseModel):
    """
    One-time setup: seed ADMIN and UPGRADER, store treasury and default limits
    """

    admin: str
    treasury: str | None = None


class InitializeLedgerV2(BaseModel):
    """Secondary initializer run once after an upgrade"""

    treasury: str


class GrantRole(BaseModel):
    role: Role
    account: str


class RevokeRole(BaseModel):
    role: Role
    account: str


class RenounceRole(BaseModel):
    """The caller drops one of its own roles"""

    role: Role


class PauseLedger(BaseModel):
    pass


class UnpauseLedger(BaseModel):
    pass


class AuthorizeUpgrade(BaseModel):
    """Swap the executable logic to a registered version"""

    new_logic: str = Field(..., min_length=1)
