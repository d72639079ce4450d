"""Test doubles shared across the suite."""

import asyncio

from beacon.heartbeat import EntityState, EntityStatus, Notifier
from beacon.heartbeat.store import MemoryStatusStore


class FakeClock:
    """Settable wall clock for deterministic tests."""

    def __init__(self, now: float = 1000) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier(Notifier):
    """Notifier that keeps every message it is asked to send."""

    name = "recording"

    def __init__(self, ok: bool = True) -> None:
        self.sent: list[str] = []
        self.ok = ok
        self.closed = False

    async def send(self, text: str) -> bool:
        self.sent.append(text)
        return self.ok

    async def close(self) -> None:
        self.closed = True


class SlowAckStore(MemoryStatusStore):
    """
    Store whose conditional write commits at once but acknowledges late,
    like a database round trip that outlives its caller.
    """

    def __init__(self, ack_delay: float) -> None:
        super().__init__()
        self.ack_delay = ack_delay
        self.committed = asyncio.Event()

    async def compare_and_set(self, record: EntityStatus, expected: EntityStatus | None) -> bool:
        written = await super().compare_and_set(record, expected)
        self.committed.set()
        await asyncio.sleep(self.ack_delay)
        return written


def make_record(
    name: str = "db1",
    last_seen_at: int = 1000,
    state: EntityState = EntityState.UP,
    state_changed_at: int = 1000,
) -> EntityStatus:
    """Build a status record with sensible defaults."""
    return EntityStatus(
        name=name,
        last_seen_at=last_seen_at,
        state=state,
        state_changed_at=state_changed_at,
    )
