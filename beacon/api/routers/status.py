"""Status router - current state of every monitored entity."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from beacon.api.dependencies import Runtime, get_runtime, require_token
from beacon.heartbeat import EntityReport, SweepReport, collect_status

router = APIRouter(dependencies=[Depends(require_token)])


class StatusResponse(BaseModel):
    """Status of all configured entities."""

    now: int
    alert_threshold_seconds: int
    entities: list[EntityReport]
    total: int


@router.get("/status", response_model=StatusResponse)
async def get_status(runtime: Runtime = Depends(get_runtime)) -> StatusResponse:
    """Get the current state of every configured entity."""
    now = int(runtime.clock())
    threshold = runtime.settings.alert_threshold_seconds
    reports = await collect_status(runtime.settings.server_names, runtime.store, now, threshold)

    return StatusResponse(
        now=now,
        alert_threshold_seconds=threshold,
        entities=reports,
        total=len(reports),
    )


@router.post("/sweep", response_model=SweepReport)
async def trigger_sweep(runtime: Runtime = Depends(get_runtime)) -> SweepReport:
    """Run one sweep pass immediately."""
    if runtime.scheduler is not None:
        return await runtime.scheduler.run_now()
    return await runtime.sweep_driver.run_once()
