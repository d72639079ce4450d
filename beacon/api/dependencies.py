"""Shared FastAPI dependencies."""

from __future__ import annotations

import hmac
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Header, Request

from beacon.config import BeaconSettings
from beacon.heartbeat import (
    NotificationDispatcher,
    PingHandler,
    StatusStore,
    SweepDriver,
    SweepScheduler,
    TransitionCoordinator,
)
from beacon.heartbeat.errors import AuthenticationError


@dataclass
class Runtime:
    """Components wired together for one running application."""

    settings: BeaconSettings
    store: StatusStore
    dispatcher: NotificationDispatcher
    coordinator: TransitionCoordinator
    ping_handler: PingHandler
    sweep_driver: SweepDriver
    scheduler: SweepScheduler | None = None
    clock: Callable[[], float] = time.time


def get_runtime(request: Request) -> Runtime:
    """Get the runtime created by the application lifespan."""
    return request.app.state.runtime


async def require_token(
    request: Request,
    authorization: str | None = Header(default=None),
) -> None:
    """
    Check the bearer token against the configured access token.

    Raises:
        AuthenticationError: If the header is missing, malformed or wrong
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Unauthorized: Missing or invalid Authorization header")

    expected = get_runtime(request).settings.access_token
    token = authorization[len("Bearer "):]
    if not expected or not hmac.compare_digest(token.encode(), expected.encode()):
        raise AuthenticationError("Unauthorized: Invalid token")
