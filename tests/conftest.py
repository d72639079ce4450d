"""
Pytest configuration and shared fixtures.
"""

import pytest

from beacon.config import BeaconSettings
from beacon.heartbeat import (
    MemoryStatusStore,
    NotificationDispatcher,
    TransitionCoordinator,
)
from tests.helpers import FakeClock, RecordingNotifier


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at t=1000."""
    return FakeClock(1000)


@pytest.fixture
def store() -> MemoryStatusStore:
    """Fresh memory-only store."""
    return MemoryStatusStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Notifier that records messages."""
    return RecordingNotifier()


@pytest.fixture
def dispatcher(notifier: RecordingNotifier) -> NotificationDispatcher:
    """Dispatcher delivering to the recording notifier."""
    return NotificationDispatcher(notifier, timeout=1.0)


@pytest.fixture
def coordinator(store: MemoryStatusStore) -> TransitionCoordinator:
    """Coordinator over the memory store."""
    return TransitionCoordinator(store)


@pytest.fixture
def settings() -> BeaconSettings:
    """Settings for an in-memory deployment without a scheduler."""
    return BeaconSettings(
        _env_file=None,
        access_token="secret-token",
        servers="db1, web1,new1",
        alert_threshold_seconds=90,
        sweep_interval_seconds=60,
        store_backend="memory",
        run_scheduler=False,
    )
