"""
Governance Module Invariants - Proposal state machine checks

Waiting for the timelock is never a suspended task: it is a precondition
on executable_at, re-evaluated each time someone calls execute.
"""

from datetime import datetime

from token_ledger.access.invariants import validate_target_account
from token_ledger.governance.models import ParameterKind, Proposal, ProposalStatus
from token_ledger.governance.projections import ProposalRegistry
from token_ledger.kernel.errors import (
    AlreadyExecuted,
    InvalidAccount,
    InvalidParameterValue,
    ProposalAlreadyCancelled,
    TimelockNotElapsed,
    UnknownProposal,
)


def validate_parameter_value(kind: ParameterKind, value: object) -> int | str:
    """
    Check that a proposed value makes sense for its parameter

    Returns:
        The value in canonical form (normalized account for TREASURY)

    Raises:
        InvalidParameterValue: If the value is unusable for the kind
    """
    if kind == ParameterKind.TREASURY:
        if not isinstance(value, str):
            raise InvalidParameterValue(kind.value, value, "treasury must be an account")
        try:
            return validate_target_account(value)
        except InvalidAccount as e:
            raise InvalidParameterValue(kind.value, value, e.reason) from e

    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameterValue(kind.value, value, "limit must be an integer amount")
    if value <= 0:
        raise InvalidParameterValue(kind.value, value, "limit must be positive")
    return value


def get_proposal_or_raise(proposals: ProposalRegistry, proposal_id: int) -> Proposal:
    """
    Raises:
        UnknownProposal: If no proposal has this id
    """
    proposal = proposals.get(proposal_id)
    if proposal is None:
        raise UnknownProposal(proposal_id)
    return proposal


def validate_pending(proposal: Proposal) -> None:
    """
    Raises:
        AlreadyExecuted: If the proposal already executed
        ProposalAlreadyCancelled: If the proposal was cancelled
    """
    if proposal.status == ProposalStatus.EXECUTED:
        raise AlreadyExecuted(proposal.proposal_id)
    if proposal.status == ProposalStatus.CANCELLED:
        raise ProposalAlreadyCancelled(proposal.proposal_id)


def validate_timelock_elapsed(proposal: Proposal, now: datetime) -> None:
    """
    Execution is allowed at exactly executable_at or later

    Raises:
        TimelockNotElapsed: If now < executable_at
    """
    if now < proposal.executable_at:
        raise TimelockNotElapsed(proposal.proposal_id, proposal.executable_at, now)
