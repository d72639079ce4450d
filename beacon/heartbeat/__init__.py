"""
Heartbeat Engine

Liveness tracking for Beacon.

Provides:
- Pure transition engine for pings and sweep ticks
- Record stores (memory, SQLite)
- Per-entity read-decide-write coordination
- Ping handler and sweep driver
- Notification dispatch and sweep scheduling
- Status query
"""

from beacon.heartbeat.models import (
    Decision,
    DisplayState,
    EntityReport,
    EntityState,
    EntityStatus,
    Transition,
)
from beacon.heartbeat.engine import (
    is_silent,
    on_ping,
    on_sweep_tick,
)
from beacon.heartbeat.errors import (
    AuthenticationError,
    BeaconError,
    ConcurrentUpdateError,
    InputError,
    NotificationError,
    StoreError,
    UnknownEntityError,
)
from beacon.heartbeat.formatting import format_duration
from beacon.heartbeat.store import (
    MemoryStatusStore,
    SQLiteStatusStore,
    StatusStore,
    build_store,
)
from beacon.heartbeat.coordinator import (
    EntityLocks,
    TransitionCoordinator,
)
from beacon.heartbeat.notifier import (
    ConsoleNotifier,
    NotificationDispatcher,
    Notifier,
    NullNotifier,
    TelegramNotifier,
    build_notifier,
)
from beacon.heartbeat.ping import (
    PingHandler,
    PingOutcome,
)
from beacon.heartbeat.sweep import (
    SweepDriver,
    SweepEntityOutcome,
    SweepReport,
)
from beacon.heartbeat.scheduler import SweepScheduler
from beacon.heartbeat.status import (
    classify,
    collect_status,
    render_status_markdown,
)

__all__ = [
    # Models
    "Decision",
    "DisplayState",
    "EntityReport",
    "EntityState",
    "EntityStatus",
    "Transition",
    # Engine
    "is_silent",
    "on_ping",
    "on_sweep_tick",
    "format_duration",
    # Errors
    "AuthenticationError",
    "BeaconError",
    "ConcurrentUpdateError",
    "InputError",
    "NotificationError",
    "StoreError",
    "UnknownEntityError",
    # Store
    "MemoryStatusStore",
    "SQLiteStatusStore",
    "StatusStore",
    "build_store",
    # Coordination
    "EntityLocks",
    "TransitionCoordinator",
    # Notifications
    "ConsoleNotifier",
    "NotificationDispatcher",
    "Notifier",
    "NullNotifier",
    "TelegramNotifier",
    "build_notifier",
    # Entry points
    "PingHandler",
    "PingOutcome",
    "SweepDriver",
    "SweepEntityOutcome",
    "SweepReport",
    "SweepScheduler",
    # Status
    "classify",
    "collect_status",
    "render_status_markdown",
]
