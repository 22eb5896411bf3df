"""
Governance Module Handlers - Command→Event transformation for proposals

Fun fact: Timelocks give everyone watching the event log a full delay
period to react before a limit change takes effect. The delay is the
whole safety property; everything else here is bookkeeping.
"""

from datetime import timedelta

from token_ledger.access.invariants import require_initialized, require_role
from token_ledger.access.models import Role
from token_ledger.access.projections import LedgerControl, RoleRegistry
from token_ledger.governance.commands import (
    CancelProposal,
    ExecuteParameterChange,
    ProposeParameterChange,
)
from token_ledger.governance.events import (
    ParameterChangeExecuted,
    ParameterChangeProposed,
    ProposalCancelled,
)
from token_ledger.governance.invariants import (
    get_proposal_or_raise,
    validate_parameter_value,
    validate_pending,
    validate_timelock_elapsed,
)
from token_ledger.governance.models import ParameterKind
from token_ledger.governance.projections import ProposalRegistry
from token_ledger.kernel.events import Event, EventBatch
from token_ledger.kernel.time import TimeProvider
from token_ledger.token.projections import WithdrawalLimiter

STREAM_TYPE = "governance"


class GovernanceCommandHandlers:
    """
    Command handlers for the timelock governor

    Proposing and cancelling need ADMIN; executing is open to any caller
    once the delay has elapsed. None of them is blocked by the pause
    switch, so limits can still be repaired while the ledger is paused.
    """

    def __init__(self, time_provider: TimeProvider) -> None:
        self.time_provider = time_provider

    def _batch(self, command_id: str, actor_id: str | None, version: int) -> EventBatch:
        return EventBatch(
            stream_type=STREAM_TYPE,
            command_id=command_id,
            actor_id=actor_id,
            occurred_at=self.time_provider.now(),
            base_version=version,
        )

    def handle_propose_parameter_change(
        self,
        command: ProposeParameterChange,
        command_id: str,
        actor_id: str | None,
        roles: RoleRegistry,
        control: LedgerControl,
        proposals: ProposalRegistry,
        version: int,
    ) -> list[Event]:
        """
        Handle ProposeParameterChange command

        Raises:
            Unauthorized: If caller lacks ADMIN
            InvalidParameterValue: If the value is unusable for its kind
        """
        require_initialized(control)
        require_role(roles, Role.ADMIN, actor_id)
        value = validate_parameter_value(command.kind, command.value)

        batch = self._batch(command_id, actor_id, version)
        now = batch.occurred_at
        batch.add(
            "ParameterChangeProposed",
            ParameterChangeProposed(
                proposal_id=proposals.next_id,
                kind=command.kind,
                value=value,
                proposed_by=actor_id,
                proposed_at=now,
                executable_at=now + timedelta(seconds=proposals.timelock_delay_seconds),
            ),
        )
        return batch.events

    def handle_execute_parameter_change(
        self,
        command: ExecuteParameterChange,
        command_id: str,
        actor_id: str | None,
        control: LedgerControl,
        proposals: ProposalRegistry,
        limiter: WithdrawalLimiter,
        version: int,
    ) -> list[Event]:
        """
        Handle ExecuteParameterChange command

        Raises:
            UnknownProposal: If the id does not exist
            AlreadyExecuted: If the proposal already executed
            ProposalAlreadyCancelled: If the proposal was cancelled
            TimelockNotElapsed: If now < executable_at
        """
        require_initialized(control)
        proposal = get_proposal_or_raise(proposals, command.proposal_id)
        validate_pending(proposal)

        batch = self._batch(command_id, actor_id, version)
        validate_timelock_elapsed(proposal, batch.occurred_at)

        if proposal.kind == ParameterKind.DAILY_WITHDRAWAL_LIMIT:
            old_value = limiter.daily_withdrawal_limit
        elif proposal.kind == ParameterKind.MAX_WITHDRAWAL_AMOUNT:
            old_value = limiter.max_withdrawal_amount
        else:
            old_value = control.treasury

        batch.add(
            "ParameterChangeExecuted",
            ParameterChangeExecuted(
                proposal_id=proposal.proposal_id,
                kind=proposal.kind,
                old_value=old_value,
                new_value=proposal.value,
                executed_by=actor_id,
                executed_at=batch.occurred_at,
            ),
        )
        return batch.events

    def handle_cancel_proposal(
        self,
        command: CancelProposal,
        command_id: str,
        actor_id: str | None,
        roles: RoleRegistry,
        control: LedgerControl,
        proposals: ProposalRegistry,
        version: int,
    ) -> list[Event]:
        """
        Handle CancelProposal command - PENDING → CANCELLED

        Raises:
            Unauthorized: If caller lacks ADMIN
            UnknownProposal: If the id does not exist
            AlreadyExecuted: If the proposal already executed
            ProposalAlreadyCancelled: If the proposal was cancelled
        """
        require_initialized(control)
        require_role(roles, Role.ADMIN, actor_id)
        proposal = get_proposal_or_raise(proposals, command.proposal_id)
        validate_pending(proposal)

        batch = self._batch(command_id, actor_id, version)
        batch.add(
            "ProposalCancelled",
            ProposalCancelled(
                proposal_id=proposal.proposal_id,
                cancelled_by=actor_id,
                cancelled_at=batch.occurred_at,
            ),
        )
        return batch.events
