"""
Transition Coordinator

Runs the read-decide-write sequence for one entity at a time.

Within a process, a lock keyed by entity name serialises pings and sweep
ticks for the same entity. Across processes, the write is a conditional
update on the record the decision was based on; losing that race means
re-reading and deciding again.
"""

from __future__ import annotations

import asyncio
from typing import Callable

import structlog

from beacon.heartbeat.errors import ConcurrentUpdateError
from beacon.heartbeat.models import Decision, EntityStatus, Transition
from beacon.heartbeat.store import StatusStore

logger = structlog.get_logger(__name__)

# Pure decision function: current record -> decision
DecideFn = Callable[[EntityStatus | None], Decision]

# Called once a decision has been written
CommitFn = Callable[[Decision], None]


class EntityLocks:
    """Lazily created asyncio locks, one per entity name."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, name: str) -> asyncio.Lock:
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        return lock

    def __len__(self) -> int:
        return len(self._locks)


class TransitionCoordinator:
    """
    Applies engine decisions to the store under per-entity exclusion.

    Ping handler and sweep driver share one coordinator so that they also
    share the same locks.
    """

    def __init__(
        self,
        store: StatusStore,
        locks: EntityLocks | None = None,
        max_attempts: int = 3,
    ) -> None:
        """
        Initialize the coordinator.

        Args:
            store: Record store to read from and write to
            locks: Lock registry (shared between coordinators if given)
            max_attempts: Conditional-write attempts before giving up
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._store = store
        self._locks = locks or EntityLocks()
        self._max_attempts = max_attempts
        self._commits: set[asyncio.Task[bool]] = set()

    @property
    def store(self) -> StatusStore:
        return self._store

    @property
    def pending_commits(self) -> int:
        """Number of writes still in flight."""
        return len(self._commits)

    async def apply(
        self,
        name: str,
        decide: DecideFn,
        on_commit: CommitFn | None = None,
    ) -> Decision:
        """
        Read the record for `name`, decide, and persist the result.

        The conditional write runs in its own task and is shielded from the
        caller. If the caller times out or is cancelled after the write was
        issued, the write still completes and `on_commit` still runs.

        Args:
            name: Entity to evaluate
            decide: Pure function producing a decision from the current record
            on_commit: Called with the decision right after it was written

        Returns:
            The decision that was persisted (or the NO_OP that needed no write)

        Raises:
            StoreError: If the store fails or the write keeps losing races
        """
        async with self._locks.get(name):
            for attempt in range(1, self._max_attempts + 1):
                existing = await self._store.get(name)
                decision = decide(existing)

                if not decision.changes_record:
                    return decision

                commit = asyncio.get_running_loop().create_task(
                    self._commit(name, decision, existing, on_commit)
                )
                self._commits.add(commit)
                commit.add_done_callback(self._commits.discard)

                if await asyncio.shield(commit):
                    return decision

                logger.warning(
                    "Record changed concurrently, retrying",
                    entity=name,
                    attempt=attempt,
                )

        raise ConcurrentUpdateError(name, self._max_attempts)

    async def _commit(
        self,
        name: str,
        decision: Decision,
        expected: EntityStatus | None,
        on_commit: CommitFn | None,
    ) -> bool:
        if not await self._store.compare_and_set(decision.record, expected):
            return False

        if decision.transition != Transition.REFRESHED:
            logger.info(
                "State transition",
                entity=name,
                transition=decision.transition.value,
                state=decision.record.state.value,
            )
        if on_commit is not None:
            on_commit(decision)
        return True

    async def drain(self, timeout: float | None = None) -> int:
        """
        Wait for writes whose callers have stopped waiting.

        Args:
            timeout: Maximum seconds to wait; None waits indefinitely

        Returns:
            Number of writes still unfinished when the timeout expired
        """
        if not self._commits:
            return 0

        logger.info("Waiting for in-flight writes", pending=len(self._commits))
        _, still_pending = await asyncio.wait(set(self._commits), timeout=timeout)

        if still_pending:
            logger.warning("Writes still in flight at shutdown", count=len(still_pending))
        return len(still_pending)
