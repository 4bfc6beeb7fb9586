"""API Routers package

Routers are organized by feature domain.
"""

from . import events_router, recovery_router

__all__ = [
    "events_router",
    "recovery_router",
]
