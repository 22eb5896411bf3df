"""
Access Module Invariants - Authorization and liveness checks

Every operation starts with the same gates, in the same order:
initialized, then role, then pause switch, then target accounts. Keeping
them as plain functions puts the authorization policy of each operation
in one readable place.
"""

from token_ledger.access.models import Role, is_null_account, normalize_account
from token_ledger.access.projections import LedgerControl, RoleRegistry
from token_ledger.kernel.errors import (
    AlreadyInState,
    AlreadyInitialized,
    InvalidAccount,
    LastAdminRemoval,
    NotInitialized,
    Paused,
    Unauthorized,
)


def require_initialized(control: LedgerControl) -> None:
    """
    Raises:
        NotInitialized: If initialize has not run yet
    """
    if not control.is_initialized:
        raise NotInitialized()


def require_role(roles: RoleRegistry, role: Role, caller: str | None) -> None:
    """
    Raises:
        Unauthorized: If the caller does not hold the role
    """
    if caller is None or not roles.has_role(role, caller):
        raise Unauthorized(caller or "<anonymous>", role.value)


def require_not_paused(control: LedgerControl, operation: str) -> None:
    """
    Raises:
        Paused: If the pause switch is set
    """
    if control.paused:
        raise Paused(operation)


def validate_target_account(account: str) -> str:
    """
    Validate an account that receives units or roles

    Returns:
        The normalized account

    Raises:
        InvalidAccount: If malformed or the null account
    """
    normalized = normalize_account(account)
    if is_null_account(normalized):
        raise InvalidAccount(normalized)
    return normalized


def validate_admin_removal(roles: RoleRegistry, role: Role, account: str) -> None:
    """
    The registry must never be left without an ADMIN

    A registry with zero admins could never grant a role again.

    Raises:
        LastAdminRemoval: If account is the only ADMIN holder
    """
    if role != Role.ADMIN:
        return
    if roles.has_role(Role.ADMIN, account) and roles.admin_count() <= 1:
        raise LastAdminRemoval(account)


def validate_first_initialization(control: LedgerControl) -> None:
    """
    Raises:
        AlreadyInitialized: If initialize already ran
    """
    if control.is_initialized:
        raise AlreadyInitialized(control.initialized_version)


def validate_secondary_initialization(control: LedgerControl) -> None:
    """
    The secondary initializer needs the primary one and runs at most once

    Raises:
        NotInitialized: If initialize has not run
        AlreadyInitialized: If initialize_v2 already ran
    """
    if not control.is_initialized:
        raise NotInitialized("initialize_v2 requires the primary initializer to run first")
    if control.initialized_version >= 2:
        raise AlreadyInitialized(control.initialized_version)


def validate_pause_toggle(control: LedgerControl, target_paused: bool) -> None:
    """
    Raises:
        AlreadyInState: If the switch is already in the requested state
    """
    if control.paused == target_paused:
        raise AlreadyInState(control.paused)
