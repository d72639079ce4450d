"""System router - health checks and system info."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from beacon import __version__
from beacon.api.dependencies import Runtime, get_runtime


router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str


class SystemInfo(BaseModel):
    """System information response."""

    name: str
    version: str
    monitored_entities: int
    alert_threshold_seconds: int
    sweep_interval_seconds: int
    scheduler_running: bool
    next_sweep: str | None
    pending_notifications: int
    uptime_started: str


# Track when the API started
_startup_time = datetime.now(timezone.utc)


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="operational",
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/system", response_model=SystemInfo)
async def system_info(runtime: Runtime = Depends(get_runtime)) -> SystemInfo:
    """Get system information."""
    settings = runtime.settings
    scheduler = runtime.scheduler
    next_sweep = scheduler.next_run_time() if scheduler else None

    return SystemInfo(
        name=settings.title,
        version=__version__,
        monitored_entities=len(settings.server_names),
        alert_threshold_seconds=settings.alert_threshold_seconds,
        sweep_interval_seconds=settings.sweep_interval_seconds,
        scheduler_running=bool(scheduler and scheduler.is_running),
        next_sweep=next_sweep.isoformat() if next_sweep else None,
        pending_notifications=runtime.dispatcher.pending,
        uptime_started=_startup_time.isoformat(),
    )
