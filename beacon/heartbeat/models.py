"""
Heartbeat Models

Data models for monitored entities, transition decisions and status reports.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EntityState(str, Enum):
    """Believed liveness of an entity."""

    UP = "up"
    DOWN = "down"


class Transition(str, Enum):
    """Outcome of a single engine decision."""

    CREATED = "created"  # First accepted ping
    RECOVERED = "recovered"  # DOWN -> UP on ping
    REFRESHED = "refreshed"  # UP stays UP, last_seen_at moves
    ONBOARDED_DOWN = "onboarded_down"  # Configured but never seen, found by sweep
    DECLARED_DOWN = "declared_down"  # UP -> DOWN on sweep
    NO_OP = "no_op"


class DisplayState(str, Enum):
    """State shown by the status query."""

    UP = "up"
    DOWN = "down"
    STALE = "stale"  # UP, silent past threshold, not yet swept
    UNKNOWN = "unknown"  # No record in the store


class EntityStatus(BaseModel):
    """
    One row per monitored entity.

    Transitions never mutate a record in place; the engine returns a new
    instance built with model_copy().
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    last_seen_at: int = Field(default=0, ge=0)  # 0 if never pinged
    state: EntityState = EntityState.DOWN
    state_changed_at: int = Field(default=0, ge=0)


class Decision(BaseModel):
    """Result of evaluating one event against one record."""

    transition: Transition
    record: EntityStatus | None = None  # None: nothing to persist
    notification: str | None = None
    downtime_seconds: int | None = None  # Set on RECOVERED

    @property
    def changes_record(self) -> bool:
        """Whether this decision must be written to the store."""
        return self.record is not None


class EntityReport(BaseModel):
    """Status query result for a single entity."""

    name: str
    display_state: DisplayState
    record: EntityStatus | None = None
    seen_ago: int | None = None  # Seconds since last_seen_at
    changed_ago: int | None = None  # Seconds since state_changed_at
