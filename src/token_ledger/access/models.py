"""
Access Domain Models - Roles, accounts and ledger control state

Accounts are 20-byte identifiers written as 0x-prefixed hex. They are not
created or destroyed; an account exists as soon as a balance or role entry
mentions it.
"""

import re
from enum import Enum

from pydantic import BaseModel, Field

from token_ledger.kernel.errors import InvalidAccount

NULL_ACCOUNT = "0x" + "0" * 40

_ACCOUNT_PATTERN = re.compile(r"^0x[0-9a-f]{40}$")


class Role(str, Enum):
    """
    Capability tags checked before privileged operations

    ADMIN is distinguished: it is the only role allowed to grant or revoke
    roles, including ADMIN itself.
    """

    ADMIN = "ADMIN"
    MINTER = "MINTER"  # mint
    BURNER = "BURNER"  # burn_from with an allowance
    WITHDRAWER = "WITHDRAWER"  # rate-limited withdraw
    UPGRADER = "UPGRADER"  # authorize_upgrade
    PAUSER = "PAUSER"  # pause / unpause


def parse_role(role: Role | str) -> Role:
    """
    Role from an enum member or a name in any case ("minter" -> MINTER)

    Raises:
        ValueError: If the name is not a role
    """
    if isinstance(role, Role):
        return role
    return Role(str(role).strip().upper())


def normalize_account(account: str) -> str:
    """
    Canonical lower-case form of an account

    Raises:
        InvalidAccount: If the value is not 0x followed by 40 hex digits
    """
    if not isinstance(account, str):
        raise InvalidAccount(repr(account), "account must be a string")
    candidate = account.strip().lower()
    if not _ACCOUNT_PATTERN.match(candidate):
        raise InvalidAccount(account, "expected 0x followed by 40 hex digits")
    return candidate


def is_null_account(account: str) -> bool:
    return account.lower() == NULL_ACCOUNT


class ControlState(BaseModel):
    """Snapshot of the ledger control flags returned by status queries"""

    initialized_version: int = Field(default=0, ge=0)
    paused: bool = False
    logic_version: str | None = None
    treasury: str | None = None
    token_name: str | None = None
    token_symbol: str | None = None
    decimals: int = 18
