"""
Transition Engine

Pure decision tables for pings and sweep ticks.

Every combination of {absent, UP, DOWN} x {ping, tick} maps to exactly one
Transition. The engine never reads the clock or touches the store: callers
pass `now` in and persist the returned record themselves.
"""

from beacon.heartbeat.formatting import format_duration
from beacon.heartbeat.models import Decision, EntityState, EntityStatus, Transition


def first_contact_message(name: str) -> str:
    return f"👋 Server *{name}* sent its first ping and is now marked UP."


def recovered_message(name: str, downtime_seconds: int) -> str:
    return (
        f"✅ Server *{name}* is back UP.\n"
        f"It was down for approximately {format_duration(downtime_seconds)}."
    )


def declared_down_message(name: str, threshold: int) -> str:
    return f"❗ Server *{name}* is DOWN. No ping received for over {threshold} seconds."


def onboarded_down_message(name: str) -> str:
    return f"❓ Server *{name}* is configured but has not reported any status. Marking as DOWN."


def is_silent(record: EntityStatus, now: int, threshold: int) -> bool:
    """
    Check whether an entity has been quiet for longer than the threshold.

    Strictly greater: an entity pinged exactly `threshold` seconds ago is
    still fresh. The status query uses this same predicate for STALE.
    """
    return now - record.last_seen_at > threshold


def on_ping(name: str, existing: EntityStatus | None, now: int) -> Decision:
    """
    Decide the next record after an accepted ping.

    Args:
        name: Entity that reported in
        existing: Current record, or None if the entity was never stored
        now: Wall-clock time in seconds, captured by the caller

    Returns:
        CREATED, RECOVERED or REFRESHED decision
    """
    if existing is None:
        return Decision(
            transition=Transition.CREATED,
            record=EntityStatus(
                name=name,
                last_seen_at=now,
                state=EntityState.UP,
                state_changed_at=now,
            ),
            notification=first_contact_message(name),
        )

    if existing.state == EntityState.DOWN:
        # Downtime is the gap since the last confirmed sighting, not since
        # the sweep declared the entity down.
        downtime = max(0, now - existing.last_seen_at)
        return Decision(
            transition=Transition.RECOVERED,
            record=existing.model_copy(update={
                "state": EntityState.UP,
                "last_seen_at": now,
                "state_changed_at": now,
            }),
            notification=recovered_message(name, downtime),
            downtime_seconds=downtime,
        )

    return Decision(
        transition=Transition.REFRESHED,
        record=existing.model_copy(update={"last_seen_at": max(now, existing.last_seen_at)}),
    )


def on_sweep_tick(
    name: str,
    existing: EntityStatus | None,
    now: int,
    threshold: int,
) -> Decision:
    """
    Decide the next record for one entity during a sweep pass.

    Args:
        name: Configured entity name
        existing: Current record, or None if the entity was never stored
        now: Time captured once at the start of the sweep pass
        threshold: Silence threshold in seconds

    Returns:
        ONBOARDED_DOWN, DECLARED_DOWN or NO_OP decision
    """
    if existing is None:
        return Decision(
            transition=Transition.ONBOARDED_DOWN,
            record=EntityStatus(
                name=name,
                last_seen_at=0,
                state=EntityState.DOWN,
                state_changed_at=now,
            ),
            notification=onboarded_down_message(name),
        )

    if existing.state == EntityState.UP and is_silent(existing, now, threshold):
        return Decision(
            transition=Transition.DECLARED_DOWN,
            record=existing.model_copy(update={
                "state": EntityState.DOWN,
                "state_changed_at": now,
            }),
            notification=declared_down_message(name, threshold),
        )

    return Decision(transition=Transition.NO_OP)
