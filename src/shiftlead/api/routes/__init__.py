"""API routes."""

from shiftlead.api.routes.attributions import router as attributions_router
from shiftlead.api.routes.health import router as health_router
from shiftlead.api.routes.roster import router as roster_router

__all__ = ["attributions_router", "health_router", "roster_router"]
