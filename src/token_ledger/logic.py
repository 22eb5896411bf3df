"""
Ledger Logic - The swappable executable behavior of the ledger

The persisted data model is the event log and the projections rebuilt
from it. LedgerLogic is everything else: the handlers that decide which
events an operation produces. An upgrade rebinds the façade to another
LedgerLogic subclass; it never rewrites stored events.

Subclasses override `version` and whichever handler classes they change.
"""

from token_ledger.access.handlers import AccessCommandHandlers
from token_ledger.governance.handlers import GovernanceCommandHandlers
from token_ledger.kernel.ledger_policy import LedgerPolicy
from token_ledger.kernel.time import TimeProvider
from token_ledger.token.handlers import TokenCommandHandlers


class LedgerLogic:
    """Version 1 of the ledger behavior"""

    version = "v1"

    access_handlers_class: type[AccessCommandHandlers] = AccessCommandHandlers
    token_handlers_class: type[TokenCommandHandlers] = TokenCommandHandlers
    governance_handlers_class: type[GovernanceCommandHandlers] = GovernanceCommandHandlers

    def __init__(self, time_provider: TimeProvider, policy: LedgerPolicy) -> None:
        self.access = self.access_handlers_class(time_provider, policy, self.version)
        self.token = self.token_handlers_class(time_provider)
        self.governance = self.governance_handlers_class(time_provider)


DEFAULT_LOGIC_VERSIONS: dict[str, type[LedgerLogic]] = {LedgerLogic.version: LedgerLogic}
