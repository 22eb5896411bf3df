"""
Base Event model for event sourcing

Events are immutable facts about what happened to the ledger. The ordered
event log is the persisted state: balances, roles, limits and proposals are
all projections rebuilt from it, which is what lets the handler logic be
swapped without touching stored data.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from token_ledger.kernel.ids import generate_id


class Event(BaseModel):
    """
    Base event class - all ledger notifications are stored in this envelope

    Events are:
    - Immutable (never modified after creation)
    - Append-only (never deleted)
    - Timestamped (preserve temporal ordering)
    - Versioned (track stream evolution)
    - Replayable (deterministic state reconstruction)

    The combination of stream_id + version provides optimistic locking,
    while command_id ensures idempotency.
    """

    event_id: str = Field(
        ...,
        description="Unique event identifier (UUIDv7 for time-ordering)",
    )

    stream_id: str = Field(
        ...,
        description="Aggregate root identifier - the ledger uses a single stream",
    )

    stream_type: str = Field(
        ...,
        description="Module that produced the event: 'access', 'token', 'governance'",
    )

    event_type: str = Field(
        ...,
        description="Specific event type: 'Minted', 'RoleGranted', etc.",
    )

    occurred_at: datetime = Field(
        ...,
        description="UTC timestamp when event occurred",
    )

    actor_id: str | None = Field(
        default=None,
        description="Account that called the operation (None for system events)",
    )

    command_id: str = Field(
        ...,
        description="ID of command that caused this event (idempotency key)",
    )

    payload: dict = Field(
        default_factory=dict,
        description="Event-specific data (must be JSON-serializable)",
    )

    version: int = Field(
        ...,
        description="Stream version after this event (monotonically increasing)",
        ge=1,
    )

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "event_id": "01908e9a-3b87-7000-8000-123456789abc",
                    "stream_id": "ledger",
                    "stream_type": "token",
                    "event_type": "Minted",
                    "occurred_at": "2025-01-15T10:30:00Z",
                    "actor_id": "0x1111111111111111111111111111111111111111",
                    "command_id": "cmd-123",
                    "payload": {
                        "account": "0x2222222222222222222222222222222222222222",
                        "amount": 100000000000000000000,
                    },
                    "version": 7,
                }
            ]
        },
    }


def create_event(
    *,
    event_id: str,
    stream_id: str,
    stream_type: str,
    event_type: str,
    occurred_at: datetime,
    command_id: str,
    version: int,
    actor_id: str | None = None,
    payload: dict | None = None,
) -> Event:
    """
    Factory function for creating events with all required fields
    """
    return Event(
        event_id=event_id,
        stream_id=stream_id,
        stream_type=stream_type,
        event_type=event_type,
        occurred_at=occurred_at,
        actor_id=actor_id,
        command_id=command_id,
        payload=payload or {},
        version=version,
    )


# Every operation appends to this single stream, so each commit is
# validated against the complete ledger state.
LEDGER_STREAM_ID = "ledger"


class EventBatch:
    """
    Collects the events one operation produces

    Versions are assigned consecutively from the stream version the
    handler validated against, so the store's optimistic lock rejects the
    whole batch if anything was committed in between.
    """

    def __init__(
        self,
        *,
        stream_type: str,
        command_id: str,
        actor_id: str | None,
        occurred_at: datetime,
        base_version: int,
    ) -> None:
        self.stream_type = stream_type
        self.command_id = command_id
        self.actor_id = actor_id
        self.occurred_at = occurred_at
        self.base_version = base_version
        self.events: list[Event] = []

    def add(self, event_type: str, payload: BaseModel) -> Event:
        event = create_event(
            event_id=generate_id(),
            stream_id=LEDGER_STREAM_ID,
            stream_type=self.stream_type,
            event_type=event_type,
            occurred_at=self.occurred_at,
            command_id=self.command_id,
            actor_id=self.actor_id,
            payload=payload.model_dump(mode="json"),
            version=self.base_version + len(self.events) + 1,
        )
        self.events.append(event)
        return event
