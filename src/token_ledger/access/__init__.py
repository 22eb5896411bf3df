"""
Access Module - Roles, pause switch and upgrade gate

This module implements who may do what:
- Role registry (ADMIN grants and revokes every role)
- Pause switch (blocks balance-mutating operations, never role administration)
- One-time initializers and the upgrade gate
"""

from token_ledger.access.models import NULL_ACCOUNT, ControlState, Role, normalize_account

__all__ = [
    "NULL_ACCOUNT",
    "ControlState",
    "Role",
    "normalize_account",
]
