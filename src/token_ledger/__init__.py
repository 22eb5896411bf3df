"""
Token Ledger - Event-sourced, access-controlled value ledger

Tracks fungible balances per account behind role-based authorization,
caps privileged withdrawals with a rolling daily window, changes limits
only through timelocked proposals, and swaps its logic without touching
stored state.
"""

from token_ledger.access.models import Role
from token_ledger.governance.models import ParameterKind, ProposalStatus
from token_ledger.kernel.ledger_policy import UNIT, LedgerPolicy
from token_ledger.ledger import TokenLedger
from token_ledger.logic import LedgerLogic

__version__ = "0.1.0"
__all__ = [
    "TokenLedger",
    "LedgerLogic",
    "LedgerPolicy",
    "Role",
    "ParameterKind",
    "ProposalStatus",
    "UNIT",
    "__version__",
]
