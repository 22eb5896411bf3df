"""
Governance Module Projections - Proposal table and timelock delay
"""

from datetime import datetime
from typing import Any

from token_ledger.governance.models import Proposal, ProposalStatus
from token_ledger.kernel.events import Event


class ProposalRegistry:
    """
    Projection: every proposal ever made, keyed by its id

    Ids are assigned sequentially from 1, so next_id is derived from the
    table itself and replays to the same value.
    """

    def __init__(self) -> None:
        self.proposals: dict[int, Proposal] = {}
        self.timelock_delay_seconds = 0

    def apply_event(self, event: Event) -> None:
        """Apply an event to update projection state"""
        payload = event.payload

        if event.event_type == "LedgerInitialized":
            self.timelock_delay_seconds = payload["timelock_delay_seconds"]

        elif event.event_type == "ParameterChangeProposed":
            proposal = Proposal(
                proposal_id=payload["proposal_id"],
                kind=payload["kind"],
                value=payload["value"],
                proposed_by=payload["proposed_by"],
                proposed_at=payload["proposed_at"],
                executable_at=payload["executable_at"],
            )
            self.proposals[proposal.proposal_id] = proposal

        elif event.event_type == "ParameterChangeExecuted":
            proposal = self.proposals.get(payload["proposal_id"])
            if proposal:
                self.proposals[proposal.proposal_id] = proposal.model_copy(
                    update={
                        "status": ProposalStatus.EXECUTED,
                        "executed_at": datetime.fromisoformat(payload["executed_at"]),
                        "executed_by": payload.get("executed_by"),
                    }
                )

        elif event.event_type == "ProposalCancelled":
            proposal = self.proposals.get(payload["proposal_id"])
            if proposal:
                self.proposals[proposal.proposal_id] = proposal.model_copy(
                    update={
                        "status": ProposalStatus.CANCELLED,
                        "cancelled_at": datetime.fromisoformat(payload["cancelled_at"]),
                    }
                )

    @property
    def next_id(self) -> int:
        return len(self.proposals) + 1

    def get(self, proposal_id: int) -> Proposal | None:
        return self.proposals.get(proposal_id)

    def list_proposals(self, status: ProposalStatus | None = None) -> list[Proposal]:
        return [
            p
            for _, p in sorted(self.proposals.items())
            if status is None or p.status == status
        ]

    def executable(self, now: datetime) -> list[Proposal]:
        return [p for p in self.list_proposals(ProposalStatus.PENDING) if p.is_executable(now)]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a comparable snapshot"""
        return {
            "timelock_delay_seconds": self.timelock_delay_seconds,
            "proposals": {
                str(pid): p.model_dump(mode="json") for pid, p in sorted(self.proposals.items())
            },
        }
