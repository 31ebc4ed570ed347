"""
journey_map - Declarative multi-step journeys for FastAPI applications.

A journey is declared as YAML descriptors (map.yml plus nested module
descriptors). The descriptors are compiled once into a flat graph of steps;
after each step handler runs, the navigator redirects the client to the next
step, optionally choosing a branch from the caller's session data.

Usage:
    from journey_map import (
        JourneyOptions,
        RouteDefinition,
        register,
        get_current_step,
        get_map,
    )
"""

from .errors import (
    DescriptorError,
    DescriptorNotFoundError,
    DescriptorParseError,
    JourneyMapError,
    RouteRegistrationError,
)
from .map.types import CompiledStep, JourneyGraph
from .map.compiler import build_graph
from .runtime.navigator import (
    NavigationConfigError,
    NavigationDecision,
    NavigationOutcome,
    Navigator,
    ResponseOutcome,
)
from .map.registry import (
    JourneyRegistry,
    clear_map,
    get_current_step,
    get_map,
    get_session_data,
    get_step,
    set_session_data,
)
from .api.plugin import JourneyOptions, RouteDefinition, register

__all__ = [
    # Errors
    "DescriptorError",
    "DescriptorNotFoundError",
    "DescriptorParseError",
    "JourneyMapError",
    "RouteRegistrationError",
    # Graph
    "CompiledStep",
    "JourneyGraph",
    "build_graph",
    # Navigation
    "NavigationConfigError",
    "NavigationDecision",
    "NavigationOutcome",
    "Navigator",
    "ResponseOutcome",
    # Registry
    "JourneyRegistry",
    "clear_map",
    "get_current_step",
    "get_map",
    "get_session_data",
    "get_step",
    "set_session_data",
    # FastAPI integration
    "JourneyOptions",
    "RouteDefinition",
    "register",
]
