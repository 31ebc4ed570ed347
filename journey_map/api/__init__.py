"""
FastAPI integration for journey maps.

    register(app, options)   compile the journey, bind step routes and the
                             diagnostic endpoint
    JourneyRoute             route class that redirects to the next step
                             after a step handler runs
"""

from .plugin import (
    JourneyOptions,
    RouteDefinition,
    bind_route,
    register,
    register_routes,
    resolve_handlers,
)
from .route_class import JOURNEY_ROUTE_TAG, JourneyRoute, apply_outcome, response_outcome
from .routes import create_inquiry_router

__all__ = [
    "JOURNEY_ROUTE_TAG",
    "JourneyOptions",
    "JourneyRoute",
    "RouteDefinition",
    "apply_outcome",
    "bind_route",
    "create_inquiry_router",
    "register",
    "register_routes",
    "resolve_handlers",
    "response_outcome",
]
