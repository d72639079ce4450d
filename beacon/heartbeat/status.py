"""
Status Query

Read-only view of every configured entity, for chat commands, the CLI and
the HTTP status endpoint.
"""

from __future__ import annotations

from collections.abc import Iterable

from beacon.heartbeat.engine import is_silent
from beacon.heartbeat.formatting import format_duration
from beacon.heartbeat.models import DisplayState, EntityReport, EntityState, EntityStatus
from beacon.heartbeat.store import StatusStore

# UP entities whose last change is older than this get a one-line summary
QUIET_AFTER_SECONDS = 7 * 24 * 60 * 60

_EMOJI = {
    DisplayState.UP: "✅",
    DisplayState.DOWN: "❗",
    DisplayState.STALE: "⚠️",
    DisplayState.UNKNOWN: "❓",
}


def classify(record: EntityStatus | None, now: int, threshold: int) -> DisplayState:
    """
    Classify a record for display.

    STALE uses the sweep's own silence predicate, so an entity shows as
    stale exactly when the next sweep would declare it down.
    """
    if record is None:
        return DisplayState.UNKNOWN
    if record.state == EntityState.DOWN:
        return DisplayState.DOWN
    if is_silent(record, now, threshold):
        return DisplayState.STALE
    return DisplayState.UP


def build_report(name: str, record: EntityStatus | None, now: int, threshold: int) -> EntityReport:
    """Build the status report for one entity."""
    if record is None:
        return EntityReport(name=name, display_state=DisplayState.UNKNOWN)

    return EntityReport(
        name=name,
        display_state=classify(record, now, threshold),
        record=record,
        seen_ago=max(0, now - record.last_seen_at) if record.last_seen_at else None,
        changed_ago=max(0, now - record.state_changed_at),
    )


async def collect_status(
    names: Iterable[str],
    store: StatusStore,
    now: int,
    threshold: int,
) -> list[EntityReport]:
    """
    Fetch and classify the record of every configured entity.

    Args:
        names: Configured entity names, in display order
        store: Record store
        now: Current time in seconds
        threshold: Silence threshold in seconds

    Returns:
        One report per name
    """
    reports = []
    for name in names:
        record = await store.get(name)
        reports.append(build_report(name, record, now, threshold))
    return reports


def _render_entity(report: EntityReport, threshold: int) -> str:
    state = report.display_state
    emoji = _EMOJI[state]

    if state == DisplayState.UNKNOWN:
        return f"\n*{report.name}*\n{emoji} Status: *UNKNOWN* (Not found in database)"

    if state == DisplayState.STALE:
        detail = f"UP (Stale, last ping > {threshold}s ago)"
    else:
        detail = state.value.upper()

    seen = format_duration(report.seen_ago) + " ago" if report.seen_ago is not None else "never"
    changed = format_duration(report.changed_ago or 0) + " ago"

    lines = [f"\n*{report.name}*", f"{emoji} Status: *{detail}*"]
    if state in (DisplayState.DOWN, DisplayState.STALE):
        lines.append(f"  Last Seen: {seen}")
        lines.append(f"  Last State Change: {changed}")
    elif (report.changed_ago or 0) <= QUIET_AFTER_SECONDS:
        lines.append(f"  Last State Change: {changed}")

    return "\n".join(lines)


def render_status_markdown(reports: list[EntityReport], threshold: int) -> str:
    """Render a Telegram-flavoured Markdown status report."""
    if not reports:
        return "No servers configured to monitor."

    parts = ["*Server Status Report:*"]
    parts.extend(_render_entity(report, threshold) for report in reports)
    return "\n".join(parts)
