"""
Access Module Handlers - Command→Event transformation

Handlers are the decision-making layer. They:
1. Read current state (from projections)
2. Validate invariants
3. Generate events if valid
4. Return events for append to event store

Fun fact: Handlers should be "almost boring" - all the interesting
logic is in invariants (testable) and projections (rebuildable).
"""

from token_ledger.access.commands import (
    AuthorizeUpgrade,
    GrantRole,
    InitializeLedger,
    InitializeLedgerV2,
    PauseLedger,
    RenounceRole,
    RevokeRole,
    UnpauseLedger,
)
from token_ledger.access.events import (
    LedgerInitialized,
    LedgerPaused,
    LedgerReinitialized,
    LedgerUnpaused,
    RoleGranted,
    RoleRevoked,
    UpgradeAuthorized,
)
from token_ledger.access.invariants import (
    require_initialized,
    require_role,
    validate_admin_removal,
    validate_first_initialization,
    validate_pause_toggle,
    validate_secondary_initialization,
    validate_target_account,
)
from token_ledger.access.models import Role
from token_ledger.access.projections import LedgerControl, RoleRegistry
from token_ledger.kernel.errors import NotInitialized, UnknownLogicVersion
from token_ledger.kernel.events import Event, EventBatch
from token_ledger.kernel.ledger_policy import LedgerPolicy
from token_ledger.kernel.time import TimeProvider

STREAM_TYPE = "access"


class AccessCommandHandlers:
    """
    Command handlers for roles, the pause switch, initializers and upgrades
    """

    def __init__(
        self,
        time_provider: TimeProvider,
        policy: LedgerPolicy,
        logic_version: str,
    ) -> None:
        """
        Args:
            time_provider: For timestamps (injectable for testing)
            policy: Token metadata and default limits
            logic_version: Version recorded by initialize
        """
        self.time_provider = time_provider
        self.policy = policy
        self.logic_version = logic_version

    def _batch(self, command_id: str, actor_id: str | None, version: int) -> EventBatch:
        return EventBatch(
            stream_type=STREAM_TYPE,
            command_id=command_id,
            actor_id=actor_id,
            occurred_at=self.time_provider.now(),
            base_version=version,
        )

    def handle_initialize(
        self,
        command: InitializeLedger,
        command_id: str,
        actor_id: str | None,
        control: LedgerControl,
        version: int,
    ) -> list[Event]:
        """
        Handle InitializeLedger command

        Seeds ADMIN and UPGRADER to the bootstrap account and writes the
        default withdrawal limits from the policy.

        Raises:
            AlreadyInitialized: If the ledger was initialized before
            InvalidAccount: If admin or treasury is null or malformed
        """
        validate_first_initialization(control)
        admin = validate_target_account(command.admin)
        treasury = (
            validate_target_account(command.treasury)
            if command.treasury is not None
            else None
        )

        batch = self._batch(command_id, actor_id, version)
        now = batch.occurred_at
        batch.add(
            "LedgerInitialized",
            LedgerInitialized(
                admin=admin,
                treasury=treasury,
                token_name=self.policy.token_name,
                token_symbol=self.policy.token_symbol,
                decimals=self.policy.decimals,
                daily_withdrawal_limit=self.policy.default_daily_withdrawal_limit,
                max_withdrawal_amount=self.policy.default_max_withdrawal_amount,
                withdrawal_window_seconds=self.policy.withdrawal_window_seconds,
                timelock_delay_seconds=self.policy.timelock_delay_seconds,
                logic_version=self.logic_version,
                policy_version=self.policy.policy_version,
                initialized_at=now,
            ),
        )
        for role in (Role.ADMIN, Role.UPGRADER):
            batch.add(
                "RoleGranted",
                RoleGranted(role=role, account=admin, granted_by=actor_id, granted_at=now),
            )
        return batch.events

    def handle_initialize_v2(
        self,
        command: InitializeLedgerV2,
        command_id: str,
        actor_id: str | None,
        roles: RoleRegistry,
        control: LedgerControl,
        version: int,
    ) -> list[Event]:
        """
        Handle InitializeLedgerV2 command (guarded, runs at most once)

        Raises:
            NotInitialized: If initialize has not run
            Unauthorized: If caller lacks ADMIN
            AlreadyInitialized: If the secondary initializer already ran
            InvalidAccount: If treasury is null or malformed
        """
        if not control.is_initialized:
            raise NotInitialized("initialize_v2 requires the primary initializer to run first")
        require_role(roles, Role.ADMIN, actor_id)
        validate_secondary_initialization(control)
        treasury = validate_target_account(command.treasury)

        batch = self._batch(command_id, actor_id, version)
        batch.add(
            "LedgerReinitialized",
            LedgerReinitialized(
                initialized_version=2,
                treasury=treasury,
                reinitialized_at=batch.occurred_at,
            ),
        )
        return batch.events

    def handle_grant_role(
        self,
        command: GrantRole,
        command_id: str,
        actor_id: str | None,
        roles: RoleRegistry,
        control: LedgerControl,
        version: int,
    ) -> list[Event]:
        """
        Handle GrantRole command

        Granting a role the account already holds succeeds without an event.

        Raises:
            Unauthorized: If caller lacks ADMIN
            InvalidAccount: If account is null or malformed
        """
        require_initialized(control)
        require_role(roles, Role.ADMIN, actor_id)
        account = validate_target_account(command.account)

        if roles.has_role(command.role, account):
            return []

        batch = self._batch(command_id, actor_id, version)
        batch.add(
            "RoleGranted",
            RoleGranted(
                role=command.role,
                account=account,
                granted_by=actor_id,
                granted_at=batch.occurred_at,
            ),
        )
        return batch.events

    def handle_revoke_role(
        self,
        command: RevokeRole,
        command_id: str,
        actor_id: str | None,
        roles: RoleRegistry,
        control: LedgerControl,
        version: int,
    ) -> list[Event]:
        """
        Handle RevokeRole command

        Revoking a role the account does not hold succeeds without an event.

        Raises:
            Unauthorized: If caller lacks ADMIN
            InvalidAccount: If account is null or malformed
            LastAdminRemoval: If this would leave no ADMIN
        """
        require_initialized(control)
        require_role(roles, Role.ADMIN, actor_id)
        account = validate_target_account(command.account)

        if not roles.has_role(command.role, account):
            return []
        validate_admin_removal(roles, command.role, account)

        batch = self._batch(command_id, actor_id, version)
        batch.add(
            "RoleRevoked",
            RoleRevoked(
                role=command.role,
                account=account,
                revoked_by=actor_id,
                revoked_at=batch.occurred_at,
            ),
        )
        return batch.events

    def handle_renounce_role(
        self,
        command: RenounceRole,
        command_id: str,
        actor_id: str | None,
        roles: RoleRegistry,
        control: LedgerControl,
        version: int,
    ) -> list[Event]:
        """
        Handle RenounceRole command - the caller gives up its own role

        Raises:
            LastAdminRemoval: If the caller is the last ADMIN
        """
        require_initialized(control)
        if actor_id is None or not roles.has_role(command.role, actor_id):
            return []
        validate_admin_removal(roles, command.role, actor_id)

        batch = self._batch(command_id, actor_id, version)
        batch.add(
            "RoleRevoked",
            RoleRevoked(
                role=command.role,
                account=actor_id,
                revoked_by=actor_id,
                revoked_at=batch.occurred_at,
                renounced=True,
            ),
        )
        return batch.events

    def handle_pause(
        self,
        command: PauseLedger,
        command_id: str,
        actor_id: str | None,
        roles: RoleRegistry,
        control: LedgerControl,
        version: int,
    ) -> list[Event]:
        """
        Raises:
            Unauthorized: If caller lacks PAUSER
            AlreadyInState: If already paused
        """
        require_initialized(control)
        require_role(roles, Role.PAUSER, actor_id)
        validate_pause_toggle(control, target_paused=True)

        batch = self._batch(command_id, actor_id, version)
        batch.add("LedgerPaused", LedgerPaused(paused_by=actor_id, paused_at=batch.occurred_at))
        return batch.events

    def handle_unpause(
        self,
        command: UnpauseLedger,
        command_id: str,
        actor_id: str | None,
        roles: RoleRegistry,
        control: LedgerControl,
        version: int,
    ) -> list[Event]:
        """
        Raises:
            Unauthorized: If caller lacks PAUSER
            AlreadyInState: If not paused
        """
        require_initialized(control)
        require_role(roles, Role.PAUSER, actor_id)
        validate_pause_toggle(control, target_paused=False)

        batch = self._batch(command_id, actor_id, version)
        batch.add(
            "LedgerUnpaused",
            LedgerUnpaused(unpaused_by=actor_id, unpaused_at=batch.occurred_at),
        )
        return batch.events

    def handle_authorize_upgrade(
        self,
        command: AuthorizeUpgrade,
        command_id: str,
        actor_id: str | None,
        roles: RoleRegistry,
        control: LedgerControl,
        available_logic: list[str],
        version: int,
    ) -> list[Event]:
        """
        Handle AuthorizeUpgrade command

        Records the swap only; no role, balance, window or proposal entry
        is touched, and no data migration runs.

        Raises:
            Unauthorized: If caller lacks UPGRADER
            UnknownLogicVersion: If new_logic is not registered
        """
        require_initialized(control)
        require_role(roles, Role.UPGRADER, actor_id)
        if command.new_logic not in available_logic:
            raise UnknownLogicVersion(command.new_logic, sorted(available_logic))

        batch = self._batch(command_id, actor_id, version)
        batch.add(
            "UpgradeAuthorized",
            UpgradeAuthorized(
                previous_logic=control.logic_version or self.logic_version,
                new_logic=command.new_logic,
                authorized_by=actor_id,
                authorized_at=batch.occurred_at,
            ),
        )
        return batch.events
