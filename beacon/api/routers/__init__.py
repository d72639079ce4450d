"""API Routers."""

from .system import router as system_router
from .hello import router as hello_router
from .status import router as status_router

__all__ = [
    "system_router",
    "hello_router",
    "status_router",
]
