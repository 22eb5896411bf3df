"""
Access Module Projections - Role registry and control flags

Projections are rebuilt from the event log on startup, which is why an
upgrade can replace the handlers without migrating any of this state.
"""

from typing import Any

from token_ledger.access.models import ControlState, Role
from token_ledger.kernel.events import Event


class RoleRegistry:
    """
    Projection: which accounts hold which roles

    Many accounts per role, many roles per account.
    """

    def __init__(self) -> None:
        self.members: dict[str, set[str]] = {role.value: set() for role in Role}

    def apply_event(self, event: Event) -> None:
        """Apply an event to update projection state"""
        if event.event_type == "RoleGranted":
            self.members[event.payload["role"]].add(event.payload["account"])

        elif event.event_type == "RoleRevoked":
            self.members[event.payload["role"]].discard(event.payload["account"])

    def has_role(self, role: Role | str, account: str) -> bool:
        """Pure lookup, never fails: unknown roles and non-string accounts hold nothing"""
        if not isinstance(account, str):
            return False
        key = role.value if isinstance(role, Role) else str(role).upper()
        return account.lower() in self.members.get(key, set())

    def members_of(self, role: Role | str) -> list[str]:
        key = role.value if isinstance(role, Role) else str(role).upper()
        return sorted(self.members.get(key, set()))

    def roles_of(self, account: str) -> list[str]:
        account = account.lower()
        return [role for role, holders in self.members.items() if account in holders]

    def admin_count(self) -> int:
        return len(self.members[Role.ADMIN.value])

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a comparable snapshot"""
        return {role: sorted(holders) for role, holders in self.members.items()}


class LedgerControl:
    """
    Projection: initialization, pause switch, logic version and metadata

    Treasury is set at initialization, by the secondary initializer, or by
    an executed TREASURY proposal.
    """

    def __init__(self) -> None:
        self.initialized_version = 0
        self.paused = False
        self.logic_version: str | None = None
        self.treasury: str | None = None
        self.token_name: str | None = None
        self.token_symbol: str | None = None
        self.decimals = 18

    def apply_event(self, event: Event) -> None:
        """Apply an event to update projection state"""
        if event.event_type == "LedgerInitialized":
            self.initialized_version = 1
            self.treasury = event.payload.get("treasury")
            self.token_name = event.payload["token_name"]
            self.token_symbol = event.payload["token_symbol"]
            self.decimals = event.payload["decimals"]
            self.logic_version = event.payload["logic_version"]

        elif event.event_type == "LedgerReinitialized":
            self.initialized_version = event.payload["initialized_version"]
            self.treasury = event.payload["treasury"]

        elif event.event_type == "LedgerPaused":
            self.paused = True

        elif event.event_type == "LedgerUnpaused":
            self.paused = False

        elif event.event_type == "UpgradeAuthorized":
            self.logic_version = event.payload["new_logic"]

        elif event.event_type == "ParameterChangeExecuted":
            if event.payload["kind"] == "TREASURY":
                self.treasury = event.payload["new_value"]

    @property
    def is_initialized(self) -> bool:
        return self.initialized_version >= 1

    def state(self) -> ControlState:
        return ControlState(
            initialized_version=self.initialized_version,
            paused=self.paused,
            logic_version=self.logic_version,
            treasury=self.treasury,
            token_name=self.token_name,
            token_symbol=self.token_symbol,
            decimals=self.decimals,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a comparable snapshot"""
        return self.state().model_dump()
