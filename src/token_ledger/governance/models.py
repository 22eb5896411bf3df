"""
Governance Domain Models - Timelocked parameter change proposals

Lifecycle:
PENDING → (executable_at passes) → EXECUTED
PENDING → CANCELLED

Proposals never expire. A pending proposal stays executable until it is
executed or an ADMIN cancels it.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class ParameterKind(str, Enum):
    """Parameters that can only change through a timelocked proposal"""

    DAILY_WITHDRAWAL_LIMIT = "DAILY_WITHDRAWAL_LIMIT"
    MAX_WITHDRAWAL_AMOUNT = "MAX_WITHDRAWAL_AMOUNT"
    TREASURY = "TREASURY"


class ProposalStatus(str, Enum):
    PENDING = "PENDING"
    EXECUTED = "EXECUTED"
    CANCELLED = "CANCELLED"


class Proposal(BaseModel):
    """
    A pending or settled parameter change

    value is an int for the withdrawal limits and an account for TREASURY.
    """

    proposal_id: int = Field(..., ge=1)
    kind: ParameterKind
    value: int | str
    proposed_by: str
    proposed_at: datetime
    executable_at: datetime
    status: ProposalStatus = ProposalStatus.PENDING
    executed_at: datetime | None = None
    executed_by: str | None = None
    cancelled_at: datetime | None = None

    def is_executable(self, now: datetime) -> bool:
        return self.status == ProposalStatus.PENDING and now >= self.executable_at
