"""
plugin.py - Attach a journey to a FastAPI application.

register() compiles the journey, binds a JourneyRoute for every step that
declares a `route`, and adds the diagnostic journey map endpoint.

Handlers are looked up by the step's qualified route reference (for example
"questions/question-1.route") in a table or function supplied by the
application. A reference may map to one RouteDefinition, or to a list of
them to serve several HTTP methods on the same step path.

Usage:
    from fastapi import FastAPI
    from journey_map import JourneyOptions, RouteDefinition, register

    app = FastAPI()
    register(app, JourneyOptions(
        base_path="app/journey",
        get_session_data=lambda request: sessions[request.cookies["sid"]],
        set_session_data=lambda request, patch: sessions[request.cookies["sid"]].update(patch),
        handlers={
            "home.route": RouteDefinition(home_page, method="GET"),
            "complete.route": [
                RouteDefinition(show_complete, method="GET"),
                RouteDefinition(submit_complete, method="POST"),
            ],
        },
    ))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from fastapi import APIRouter, FastAPI

from journey_map.config.settings import load_settings
from journey_map.errors import JourneyMapError, RouteRegistrationError
from journey_map.map.registry import JourneyRegistry, SessionGetter, SessionSetter
from journey_map.map.types import CompiledStep

from .route_class import JOURNEY_ROUTE_TAG, JourneyRoute
from .routes.inquiry import create_inquiry_router

logger = logging.getLogger(__name__)


@dataclass
class RouteDefinition:
    """A step handler and how to bind it.

    Attributes:
        endpoint: FastAPI endpoint function.
        method: HTTP method, or several for the same endpoint.
        options: Extra keyword arguments for the route (name, summary,
            dependencies, response_class, tags, ...). `path` is always
            replaced by the step's compiled path.
    """

    endpoint: Callable[..., Any]
    method: Union[str, Sequence[str]] = "GET"
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def methods(self) -> List[str]:
        if isinstance(self.method, str):
            return [self.method.upper()]
        return [m.upper() for m in self.method]


HandlerSpec = Union[RouteDefinition, Sequence[Any]]
HandlerLookup = Union[Mapping[str, HandlerSpec], Callable[[str], HandlerSpec]]


@dataclass
class JourneyOptions:
    """Options for register().

    base_path and inquiry_path fall back to JOURNEY_MAP_BASE_PATH and
    JOURNEY_MAP_INQUIRY_PATH, then to the built-in defaults.
    """

    get_session_data: SessionGetter
    set_session_data: SessionSetter
    handlers: HandlerLookup = field(default_factory=dict)
    base_path: Optional[Union[str, Path]] = None
    inquiry_path: Optional[str] = None
    registry: Optional[JourneyRegistry] = None


def _flatten(spec: Any) -> List[RouteDefinition]:
    if isinstance(spec, RouteDefinition):
        return [spec]
    if isinstance(spec, (list, tuple)):
        definitions: List[RouteDefinition] = []
        for item in spec:
            definitions.extend(_flatten(item))
        return definitions
    raise TypeError(f"expected RouteDefinition or a list of them, got {type(spec).__name__}")


def resolve_handlers(handlers: HandlerLookup, step: CompiledStep) -> List[RouteDefinition]:
    """Look up the route definitions for a step.

    Raises:
        RouteRegistrationError: If the reference is unknown or malformed.
    """
    route = step.route or ""
    try:
        if callable(handlers):
            spec = handlers(route)
        else:
            spec = handlers[route]
        definitions = _flatten(spec)
    except KeyError:
        raise RouteRegistrationError(step.id, step.path, "no handler registered", route)
    except (TypeError, ValueError) as e:
        raise RouteRegistrationError(step.id, step.path, str(e), route) from e
    if not definitions:
        raise RouteRegistrationError(step.id, step.path, "handler has no route definitions", route)
    return definitions


def bind_route(
    router: APIRouter,
    step: CompiledStep,
    definition: RouteDefinition,
    registry: JourneyRegistry,
) -> JourneyRoute:
    """Add one JourneyRoute for `step` to `router`.

    Handler-declared options are kept, except that the compiled path always
    applies and the journey tag is always present.
    """
    kwargs = dict(definition.options)
    kwargs.pop("path", None)
    tags = list(kwargs.pop("tags", None) or [])
    if JOURNEY_ROUTE_TAG not in tags:
        tags.append(JOURNEY_ROUTE_TAG)
    kwargs.setdefault("dependency_overrides_provider", router.dependency_overrides_provider)

    route = JourneyRoute(
        step.path,
        definition.endpoint,
        step_id=step.id,
        registry=registry,
        methods=definition.methods,
        tags=tags,
        **kwargs,
    )
    router.routes.append(route)
    return route


def register_routes(
    router: APIRouter,
    registry: JourneyRegistry,
    handlers: HandlerLookup,
) -> Dict[str, List[str]]:
    """Bind every journey step that declares a route.

    A step whose handler cannot be found or bound is logged and skipped;
    the remaining steps are still registered.

    Returns:
        Step id -> HTTP methods recorded for it.
    """
    bound: Dict[str, List[str]] = {}

    for step in registry.graph.steps():
        if not step.route:
            logger.debug("Step '%s' declares no route; not binding", step.id)
            continue

        try:
            definitions = resolve_handlers(handlers, step)
        except RouteRegistrationError as e:
            logger.error("%s", e)
            continue

        methods: List[str] = []
        for definition in definitions:
            try:
                bind_route(router, step, definition, registry)
            except Exception as e:
                logger.error(
                    "%s",
                    RouteRegistrationError(step.id, step.path, str(e), step.route),
                )
                continue
            methods.extend(definition.methods)

        if not methods:
            continue
        registry.record_methods(step.id, methods)
        bound[step.id] = methods

    logger.info("Bound %d journey step route(s)", len(bound))
    return bound


def register(app: FastAPI, options: JourneyOptions) -> JourneyRegistry:
    """Compile the journey and attach its routes to `app`.

    Returns:
        The registry holding the compiled graph.

    Raises:
        DescriptorError: If the journey descriptors cannot be loaded.
        JourneyMapError: If no base path is configured.
    """
    settings = load_settings(base_path=options.base_path, inquiry_path=options.inquiry_path)
    if settings.base_path is None:
        raise JourneyMapError("No journey base path configured (set base_path or JOURNEY_MAP_BASE_PATH)")

    registry = options.registry or JourneyRegistry.get_instance()
    registry.register(options.get_session_data, options.set_session_data, settings.base_path)

    register_routes(app.router, registry, options.handlers)
    app.include_router(create_inquiry_router(registry, settings.inquiry_path))

    logger.info(
        "Journey map registered from %s (%d step(s), inquiry at %s)",
        settings.base_path,
        len(registry.graph),
        settings.inquiry_path,
    )
    return registry
