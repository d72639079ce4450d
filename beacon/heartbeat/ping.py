"""
Ping Handler

Records a liveness report for one entity.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Callable

import structlog

from beacon.heartbeat.coordinator import TransitionCoordinator
from beacon.heartbeat.engine import on_ping
from beacon.heartbeat.errors import UnknownEntityError
from beacon.heartbeat.formatting import format_duration
from beacon.heartbeat.models import Decision, Transition
from beacon.heartbeat.notifier import NotificationDispatcher

logger = structlog.get_logger(__name__)


@dataclass
class PingOutcome:
    """Result of handling one ping."""

    name: str
    decision: Decision
    status_code: int
    message: str

    @property
    def created(self) -> bool:
        return self.decision.transition == Transition.CREATED


def _response_message(name: str, decision: Decision) -> str:
    if decision.transition == Transition.CREATED:
        return f"Hello received for new server {name}. Marked as UP."
    if decision.transition == Transition.RECOVERED:
        downtime = format_duration(decision.downtime_seconds or 0)
        return f"Hello received for {name}. Server is now UP. Downtime was {downtime}."
    return f"Hello received for {name}. Status remains UP."


class PingHandler:
    """
    Validates a ping, applies it through the coordinator and hands any
    notification to the dispatcher.

    The caller is expected to have authenticated the request already.
    """

    def __init__(
        self,
        allowed_names: Iterable[str],
        coordinator: TransitionCoordinator,
        dispatcher: NotificationDispatcher,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the handler.

        Args:
            allowed_names: Entity names that may report in
            coordinator: Shared read-decide-write coordinator
            dispatcher: Background notification dispatcher
            clock: Wall-clock source in seconds
        """
        self._allowed = list(dict.fromkeys(allowed_names))
        self._allowed_set = set(self._allowed)
        self._coordinator = coordinator
        self._dispatcher = dispatcher
        self._clock = clock

    @property
    def allowed_names(self) -> list[str]:
        return list(self._allowed)

    def validate(self, name: str | None) -> str:
        """
        Check a name against the allow-list.

        Raises:
            UnknownEntityError: If the name is missing or not allowed
        """
        if not name or name not in self._allowed_set:
            raise UnknownEntityError(name, self._allowed)
        return name

    async def handle(self, name: str | None) -> PingOutcome:
        """
        Handle a ping from `name`.

        Raises:
            UnknownEntityError: Before touching the store, for a bad name
            StoreError: If the record cannot be read or written
        """
        name = self.validate(name)
        now = int(self._clock())

        decision = await self._coordinator.apply(
            name,
            lambda existing: on_ping(name, existing, now),
            on_commit=lambda committed: self._notify(name, committed),
        )

        logger.debug("Ping handled", entity=name, transition=decision.transition.value, now=now)

        return PingOutcome(
            name=name,
            decision=decision,
            status_code=201 if decision.transition == Transition.CREATED else 200,
            message=_response_message(name, decision),
        )

    def _notify(self, name: str, decision: Decision) -> None:
        if decision.notification:
            self._dispatcher.dispatch(
                decision.notification,
                entity=name,
                transition=decision.transition.value,
            )
