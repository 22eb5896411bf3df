"""
Access Module Events - Facts about roles, pausing and upgrades

Fun fact: Events are named in past tense because they record what
already happened. RoleGranted can never fail; GrantRole can.
"""

from datetime import datetime

from pydantic import BaseModel

from token_ledger.access.models import Role


class LedgerInitialized(BaseModel):
    """
    The ledger was set up

    Carries every default the rest of the ledger reads, so a restart with a
    different LedgerPolicy never changes an already-initialized ledger.
    """

    admin: str
    treasury: str | None
    token_name: str
    token_symbol: str
    decimals: int
    daily_withdrawal_limit: int
    max_withdrawal_amount: int
    withdrawal_window_seconds: int
    timelock_delay_seconds: int
    logic_version: str
    policy_version: str
    initialized_at: datetime


class LedgerReinitialized(BaseModel):
    """The secondary initializer ran"""

    initialized_version: int
    treasury: str
    reinitialized_at: datetime


class RoleGranted(BaseModel):
    role: Role
    account: str
    granted_by: str | None
    granted_at: datetime


class RoleRevoked(BaseModel):
    role: Role
    account: str
    revoked_by: str
    revoked_at: datetime
    renounced: bool = False


class LedgerPaused(BaseModel):
    paused_by: str
    paused_at: datetime


class LedgerUnpaused(BaseModel):
    unpaused_by: str
    unpaused_at: datetime


class UpgradeAuthorized(BaseModel):
    """The executable logic was swapped; stored state is untouched"""

    previous_logic: str
    new_logic: str
    authorized_by: str
    authorized_at: datetime
