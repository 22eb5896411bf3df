"""
Custom exceptions for the token ledger

Every failed operation raises one of these before any event is produced,
so a failure never leaves a partial commit behind. Each error carries the
context (role, amount, limit) a caller needs to diagnose it without retrying.

Fun fact: ERC-20 reverts carry their reason in the revert data - we carry
ours as attributes on the exception instead.
"""

from datetime import datetime


class LedgerError(Exception):
    """Base exception for all token ledger errors"""

    pass


class EventStoreError(LedgerError):
    """Base class for event store errors"""

    pass


class CommandIdempotencyViolation(EventStoreError):
    """
    Raised when attempting to execute a command with duplicate command_id

    This is actually SUCCESS - idempotency means the command was already
    processed, so we return the original events without re-executing.
    """

    def __init__(self, command_id: str, message: str = "") -> None:
        self.command_id = command_id
        super().__init__(
            message or f"Command {command_id} already processed (idempotency preserved)"
        )


class StreamVersionConflict(EventStoreError):
    """
    Raised when stream version doesn't match expected (optimistic locking)

    Indicates another operation committed first - caller should reload and retry.
    """

    def __init__(
        self, stream_id: str, expected_version: int, actual_version: int
    ) -> None:
        self.stream_id = stream_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Stream {stream_id} version mismatch: "
            f"expected {expected_version}, got {actual_version}"
        )


# Authorization and input errors


class Unauthorized(LedgerError):
    """Raised when the caller lacks the role an operation requires"""

    def __init__(self, account: str, role: str) -> None:
        self.account = account
        self.role = role
        super().__init__(f"Account {account} is missing role {role}")


class InvalidAccount(LedgerError):
    """Raised when a target account is the null account or malformed"""

    def __init__(self, account: str, reason: str = "null account not allowed") -> None:
        self.account = account
        self.reason = reason
        super().__init__(f"Invalid account {account!r}: {reason}")


class InvalidAmount(LedgerError):
    """Raised when an amount is not a whole number of base units, or is out of range"""

    def __init__(self, amount: object, reason: str = "must be positive") -> None:
        self.amount = amount
        self.reason = reason
        super().__init__(f"Amount {reason}, got {amount!r}")


class InsufficientBalance(LedgerError):
    """Raised when an account cannot cover the requested amount"""

    def __init__(self, account: str, balance: int, amount: int) -> None:
        self.account = account
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Account {account} balance {balance} is below requested amount {amount}"
        )


class InsufficientAllowance(LedgerError):
    """Raised when a spender's allowance cannot cover the requested amount"""

    def __init__(self, owner: str, spender: str, allowance: int, amount: int) -> None:
        self.owner = owner
        self.spender = spender
        self.allowance = allowance
        self.amount = amount
        super().__init__(
            f"Allowance {allowance} granted by {owner} to {spender} "
            f"is below requested amount {amount}"
        )


# Pause switch errors


class Paused(LedgerError):
    """Raised when a balance-mutating operation is attempted while paused"""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Ledger is paused - {operation} is not available")


class AlreadyInState(LedgerError):
    """Raised when pausing a paused ledger or unpausing a running one"""

    def __init__(self, paused: bool) -> None:
        self.paused = paused
        state = "paused" if paused else "unpaused"
        super().__init__(f"Ledger is already {state}")


# Withdrawal rate limiter errors


class ExceedsDailyWithdrawalLimit(LedgerError):
    """Raised when a withdrawal would push the rolling window past its limit"""

    def __init__(self, amount: int, withdrawn: int, limit: int) -> None:
        self.amount = amount
        self.withdrawn = withdrawn
        self.limit = limit
        super().__init__(
            f"Withdrawal of {amount} exceeds daily limit {limit} "
            f"({withdrawn} already withdrawn in current window)"
        )


class ExceedsMaxWithdrawalAmount(LedgerError):
    """Raised when a single withdrawal is above the per-call ceiling"""

    def __init__(self, amount: int, maximum: int) -> None:
        self.amount = amount
        self.maximum = maximum
        super().__init__(
            f"Withdrawal of {amount} exceeds max withdrawal amount {maximum}"
        )


# Timelock governance errors


class UnknownProposal(LedgerError):
    """Raised when a proposal id does not exist"""

    def __init__(self, proposal_id: int) -> None:
        self.proposal_id = proposal_id
        super().__init__(f"Proposal {proposal_id} not found")


class AlreadyExecuted(LedgerError):
    """Raised when executing or cancelling a proposal that already executed"""

    def __init__(self, proposal_id: int) -> None:
        self.proposal_id = proposal_id
        super().__init__(f"Proposal {proposal_id} was already executed")


class ProposalAlreadyCancelled(LedgerError):
    """Raised when acting on a proposal that was cancelled"""

    def __init__(self, proposal_id: int) -> None:
        self.proposal_id = proposal_id
        super().__init__(f"Proposal {proposal_id} was cancelled")


class TimelockNotElapsed(LedgerError):
    """Raised when a proposal is executed before its delay has passed"""

    def __init__(self, proposal_id: int, executable_at: datetime, now: datetime) -> None:
        self.proposal_id = proposal_id
        self.executable_at = executable_at
        self.now = now
        remaining = executable_at - now
        super().__init__(
            f"Proposal {proposal_id} is executable at {executable_at.isoformat()} "
            f"({int(remaining.total_seconds())}s remaining)"
        )


class InvalidParameterValue(LedgerError):
    """Raised when a proposed parameter value is unusable for its kind"""

    def __init__(self, kind: str, value: object, reason: str) -> None:
        self.kind = kind
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value {value!r} for {kind}: {reason}")


# Initialization and upgrade errors


class AlreadyInitialized(LedgerError):
    """Raised when an initializer runs a second time"""

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"Ledger already initialized (version {version})")


class NotInitialized(LedgerError):
    """Raised when an operation requires an initialized ledger"""

    def __init__(self, message: str = "Ledger has not been initialized") -> None:
        super().__init__(message)


class UnknownLogicVersion(LedgerError):
    """Raised when an upgrade targets a logic version nobody registered"""

    def __init__(self, logic_ref: str, available: list[str]) -> None:
        self.logic_ref = logic_ref
        self.available = available
        super().__init__(
            f"Logic version {logic_ref!r} is not registered. Available: {available}"
        )


class InvariantViolation(LedgerError):
    """
    Raised when a structural invariant would be violated

    Examples: leaving the role registry with no admin.
    """

    pass


class LastAdminRemoval(InvariantViolation):
    """Raised when the final ADMIN holder would lose the role"""

    def __init__(self, account: str) -> None:
        self.account = account
        super().__init__(
            f"Cannot remove ADMIN from {account}: it is the last admin - "
            "the registry would become permanently un-administrable"
        )
