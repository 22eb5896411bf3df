"""
Ledger Audit - Read-only invariant report

The audit recomputes the properties the ledger must hold at every
observation point and reports them in one scorecard. It never emits
events; it only reads projections and refreshes the Prometheus gauges.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from token_ledger.access.projections import LedgerControl, RoleRegistry
from token_ledger.governance.models import ProposalStatus
from token_ledger.governance.projections import ProposalRegistry
from token_ledger.kernel.logging import get_logger
from token_ledger.kernel.metrics import (
    supply_invariant_violations_total,
    update_ledger_metrics,
)
from token_ledger.token.projections import BalanceSheet, WithdrawalLimiter

logger = get_logger(__name__)


class AuditReport(BaseModel):
    """
    Ledger health scorecard

    supply_consistent and has_admin are the structural invariants; the
    rest is operational context for whoever reads the report.
    """

    checked_at: datetime
    total_supply: int
    sum_of_balances: int
    supply_consistent: bool
    holder_count: int = Field(ge=0)
    admin_count: int = Field(ge=0)
    has_admin: bool
    pending_proposals: list[int] = Field(default_factory=list)
    executable_proposals: list[int] = Field(default_factory=list)
    withdrawn_in_window: int = Field(ge=0)
    daily_withdrawal_limit: int
    window_utilization: float = Field(ge=0.0)
    paused: bool
    logic_version: str | None
    initialized_version: int

    @property
    def is_healthy(self) -> bool:
        """Healthy when every structural invariant holds"""
        if self.initialized_version == 0:
            return self.supply_consistent
        return self.supply_consistent and self.has_admin

    def summary(self) -> str:
        status = "OK" if self.is_healthy else "VIOLATION"
        return (
            f"{status}: supply={self.total_supply} "
            f"balances={self.sum_of_balances} admins={self.admin_count} "
            f"pending={len(self.pending_proposals)} paused={self.paused}"
        )


def run_audit(
    *,
    roles: RoleRegistry,
    control: LedgerControl,
    balances: BalanceSheet,
    limiter: WithdrawalLimiter,
    proposals: ProposalRegistry,
    now: datetime,
) -> AuditReport:
    """
    Build the audit report for the current projected state

    Args:
        roles: Role registry projection
        control: Control flags projection
        balances: Balance sheet projection
        limiter: Withdrawal limiter projection
        proposals: Proposal registry projection
        now: Time used to evaluate the window and the timelocks

    Returns:
        AuditReport
    """
    sum_of_balances = balances.sum_of_balances()
    supply_consistent = sum_of_balances == balances.total_supply
    window = limiter.window_at(now)
    pending = proposals.list_proposals(ProposalStatus.PENDING)

    report = AuditReport(
        checked_at=now,
        total_supply=balances.total_supply,
        sum_of_balances=sum_of_balances,
        supply_consistent=supply_consistent,
        holder_count=len(balances.holders()),
        admin_count=roles.admin_count(),
        has_admin=roles.admin_count() > 0,
        pending_proposals=[p.proposal_id for p in pending],
        executable_proposals=[p.proposal_id for p in proposals.executable(now)],
        withdrawn_in_window=window.withdrawn_in_window,
        daily_withdrawal_limit=window.daily_withdrawal_limit,
        window_utilization=window.utilization,
        paused=control.paused,
        logic_version=control.logic_version,
        initialized_version=control.initialized_version,
    )

    if not supply_consistent:
        supply_invariant_violations_total.inc()
        logger.error(
            "Supply invariant violated",
            total_supply=balances.total_supply,
            sum_of_balances=sum_of_balances,
        )

    update_ledger_metrics(
        total_supply=report.total_supply,
        window_utilization=report.window_utilization,
        pending_proposals=len(report.pending_proposals),
        paused=report.paused,
    )
    return report
