"""Hello router - liveness reports from monitored hosts."""

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from beacon.api.dependencies import Runtime, get_runtime, require_token
from beacon.heartbeat.errors import StoreError

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/hello",
    response_class=PlainTextResponse,
    dependencies=[Depends(require_token)],
    responses={
        201: {"description": "First ping from this entity"},
        400: {"description": "Missing or unknown entity name"},
        401: {"description": "Missing or invalid bearer token"},
        500: {"description": "Record store failure"},
    },
)
async def hello(
    name: str | None = Query(None, description="Name of the reporting entity"),
    server_name: str | None = Query(None, include_in_schema=False),
    runtime: Runtime = Depends(get_runtime),
) -> PlainTextResponse:
    """
    Record a liveness report.

    Returns 201 the first time an entity reports in and 200 afterwards.
    """
    entity = name or server_name

    try:
        outcome = await runtime.ping_handler.handle(entity)
    except StoreError as e:
        logger.error("Store error handling ping", entity=entity, error=str(e))
        return PlainTextResponse(f"Database error processing {entity}: {e}", status_code=500)

    return PlainTextResponse(outcome.message, status_code=outcome.status_code)
