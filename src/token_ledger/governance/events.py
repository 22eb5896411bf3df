"""
Governance Module Events - Facts about parameter change proposals
"""

from datetime import datetime

from pydantic import BaseModel

from token_ledger.governance.models import ParameterKind


class ParameterChangeProposed(BaseModel):
    proposal_id: int
    kind: ParameterKind
    value: int | str
    proposed_by: str
    proposed_at: datetime
    executable_at: datetime


class ParameterChangeExecuted(BaseModel):
    """
    The proposed value was written into the targeted parameter

    old_value is kept so the audit trail shows what changed.
    """

    proposal_id: int
    kind: ParameterKind
    old_value: int | str | None
    new_value: int | str
    executed_by: str | None
    executed_at: datetime


class ProposalCancelled(BaseModel):
    proposal_id: int
    cancelled_by: str
    cancelled_at: datetime
