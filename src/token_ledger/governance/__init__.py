"""
Governance Module - Timelocked parameter changes

Withdrawal limits and the treasury change only through a proposal that
waits out a fixed delay before anyone can execute it.
"""

from token_ledger.governance.models import ParameterKind, Proposal, ProposalStatus

__all__ = [
    "ParameterKind",
    "Proposal",
    "ProposalStatus",
]
