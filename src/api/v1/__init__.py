"""
API v1 package.

Contains the standard (web) routes and the lightweight (OTT) routes.
"""

from src.api.v1.ott import router as ott_router
from src.api.v1.routes import router

__all__ = ["ott_router", "router"]
