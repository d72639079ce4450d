"""
Sweep Driver

Periodic pass over every configured entity: onboards the never-seen ones
and declares the silent ones down.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable
from typing import Callable

import structlog
from pydantic import BaseModel, Field

from beacon.heartbeat.coordinator import TransitionCoordinator
from beacon.heartbeat.engine import on_sweep_tick
from beacon.heartbeat.models import Decision, Transition
from beacon.heartbeat.notifier import NotificationDispatcher

logger = structlog.get_logger(__name__)


class SweepEntityOutcome(BaseModel):
    """What happened to one entity during a sweep pass."""

    name: str
    transition: Transition | None = None  # None if the entity failed
    error: str | None = None


class SweepReport(BaseModel):
    """Result of one sweep pass."""

    started_at: int
    threshold_seconds: int
    outcomes: list[SweepEntityOutcome] = Field(default_factory=list)

    @property
    def failed(self) -> list[SweepEntityOutcome]:
        """Entities whose evaluation raised or timed out."""
        return [o for o in self.outcomes if o.error is not None]

    @property
    def transitions(self) -> list[SweepEntityOutcome]:
        """Entities whose record changed in this pass."""
        return [
            o for o in self.outcomes
            if o.transition is not None and o.transition != Transition.NO_OP
        ]


class SweepDriver:
    """
    Evaluates on_sweep_tick for every configured entity.

    One `now` is captured per pass and shared by all entities. Entities are
    evaluated concurrently; each one is bounded by a timeout, and a failure
    of one never aborts the pass for the others.
    """

    def __init__(
        self,
        names: Iterable[str],
        threshold_seconds: int,
        coordinator: TransitionCoordinator,
        dispatcher: NotificationDispatcher,
        entity_timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the driver.

        Args:
            names: Configured entity names
            threshold_seconds: Silence threshold before declaring DOWN
            coordinator: Shared read-decide-write coordinator
            dispatcher: Background notification dispatcher
            entity_timeout: Seconds allowed per entity before giving up on it
            clock: Wall-clock source in seconds
        """
        self._names = list(dict.fromkeys(n for n in names if n))
        self._threshold = int(threshold_seconds)
        self._coordinator = coordinator
        self._dispatcher = dispatcher
        self._entity_timeout = entity_timeout
        self._clock = clock

    @property
    def names(self) -> list[str]:
        return list(self._names)

    @property
    def threshold_seconds(self) -> int:
        return self._threshold

    async def run_once(self, now: int | None = None) -> SweepReport:
        """
        Run one sweep pass.

        Args:
            now: Time to evaluate against; read from the clock if omitted

        Returns:
            Per-entity outcomes of the pass
        """
        if now is None:
            now = int(self._clock())

        logger.info("Sweep started", entities=len(self._names), now=now)

        outcomes = await asyncio.gather(*(self._sweep_entity(name, now) for name in self._names))
        report = SweepReport(
            started_at=now,
            threshold_seconds=self._threshold,
            outcomes=list(outcomes),
        )

        logger.info(
            "Sweep finished",
            entities=len(report.outcomes),
            transitions=len(report.transitions),
            failed=len(report.failed),
        )
        return report

    async def _sweep_entity(self, name: str, now: int) -> SweepEntityOutcome:
        """Evaluate one entity, isolating its failures from the rest of the pass."""
        try:
            decision = await asyncio.wait_for(
                self._coordinator.apply(
                    name,
                    lambda existing: on_sweep_tick(name, existing, now, self._threshold),
                    on_commit=lambda committed: self._notify(name, committed),
                ),
                timeout=self._entity_timeout,
            )
        except asyncio.TimeoutError:
            # A write already issued still completes and notifies on its own
            logger.error("Sweep timed out for entity", entity=name, timeout=self._entity_timeout)
            return SweepEntityOutcome(name=name, error=f"timed out after {self._entity_timeout}s")
        except Exception as e:
            logger.error("Sweep failed for entity", entity=name, error=str(e))
            return SweepEntityOutcome(name=name, error=str(e))

        if decision.transition == Transition.NO_OP:
            logger.debug("No change", entity=name)

        return SweepEntityOutcome(name=name, transition=decision.transition)

    def _notify(self, name: str, decision: Decision) -> None:
        if decision.notification:
            self._dispatcher.dispatch(
                decision.notification,
                entity=name,
                transition=decision.transition.value,
            )
