"""
Governance Module Commands
"""

from typing import Any

from pydantic import BaseModel

from token_ledger.governance.models import ParameterKind


class ProposeParameterChange(BaseModel):
    kind: ParameterKind
    # Checked per kind by validate_parameter_value, uncoerced
    value: Any


class ExecuteParameterChange(BaseModel):
    proposal_id: int


class CancelProposal(BaseModel):
    proposal_id: int
