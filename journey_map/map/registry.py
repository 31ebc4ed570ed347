"""
registry.py - Process-wide home of the compiled journey graph.

The registry compiles the journey once, on registration or on first lookup,
and serves read-only views of it afterwards. It also holds the pair of
functions that read and write the caller's per-session answer data; the
journey never stores that data itself.

Usage:
    from journey_map.map.registry import get_map, get_step

    get_map("app/journey")          # JSON-ready copy of the whole graph
    get_step("quiz:question-1")     # CompiledStep (copy)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

from journey_map.errors import JourneyMapError
from journey_map.runtime.navigator import Navigator

from .compiler import DescriptorSource, build_graph
from .loader import load_step_options
from .types import CompiledStep, JourneyGraph

logger = logging.getLogger(__name__)

# Attribute of request.state holding the id of the journey step being handled
STEP_ID_STATE_ATTR = "journey_step_id"

SessionGetter = Callable[[Any], Optional[Mapping[str, Any]]]
SessionSetter = Callable[[Any, Mapping[str, Any]], None]


def current_step_id(request: Any) -> Optional[str]:
    """Return the journey step id attached to an in-flight request, if any."""
    state = getattr(request, "state", None)
    return getattr(state, STEP_ID_STATE_ATTR, None) if state is not None else None


class JourneyRegistry:
    """Owns one compiled JourneyGraph and the session accessor pair."""

    _instance: Optional["JourneyRegistry"] = None

    def __init__(
        self,
        base_path: Optional[Union[str, Path]] = None,
        source: DescriptorSource = load_step_options,
    ):
        self.base_path: Optional[Path] = Path(base_path) if base_path is not None else None
        self._source = source
        self._graph = JourneyGraph()
        self._get_session: Optional[SessionGetter] = None
        self._set_session: Optional[SessionSetter] = None

    @classmethod
    def get_instance(cls) -> "JourneyRegistry":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton for testing."""
        cls._instance = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def register(
        self,
        get_session_data: SessionGetter,
        set_session_data: SessionSetter,
        base_path: Optional[Union[str, Path]] = None,
    ) -> JourneyGraph:
        """Install the session accessors and build the graph if not built yet.

        Raises:
            DescriptorError: If the journey descriptors cannot be loaded.
        """
        self._get_session = get_session_data
        self._set_session = set_session_data
        return self.ensure_built(base_path)

    def ensure_built(self, base_path: Optional[Union[str, Path]] = None) -> JourneyGraph:
        """Compile the journey unless a graph is already held."""
        if self._graph.is_empty:
            if base_path is not None:
                self.base_path = Path(base_path)
            if self.base_path is None:
                raise JourneyMapError("No journey base path configured")
            self._graph = JourneyGraph(build_graph(self.base_path, self._source))
        return self._graph

    def reset(self) -> None:
        """Discard the compiled graph; the next lookup rebuilds it."""
        self._graph = JourneyGraph()

    clear = reset

    @property
    def graph(self) -> JourneyGraph:
        return self._graph

    def navigator(self) -> Navigator:
        return Navigator(self._graph)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_map(self, base_path: Optional[Union[str, Path]] = None) -> Dict[str, Dict[str, Any]]:
        """Deep, JSON-ready copy of the whole graph, building it if needed."""
        return self.ensure_built(base_path).to_dict()

    def get_step(self, step_id: str) -> CompiledStep:
        """Copy of a compiled step; unknown ids give a record holding only the id."""
        step = self._graph.get(step_id)
        return step.copy() if step is not None else CompiledStep(id=step_id)

    def get_current_step(self, request: Any) -> CompiledStep:
        """The step bound to the route handling `request`."""
        return self.get_step(current_step_id(request) or "")

    def record_methods(self, step_id: str, methods: Iterable[str]) -> None:
        """Note the HTTP verbs bound to a step's route."""
        step = self._graph.get(step_id)
        if step is not None:
            step.method = list(methods)

    # -------------------------------------------------------------------------
    # Session data
    # -------------------------------------------------------------------------

    def get_session_data(self, request: Any) -> Mapping[str, Any]:
        if self._get_session is None:
            raise JourneyMapError("Session data accessors are not registered")
        return self._get_session(request) or {}

    def set_session_data(self, request: Any, patch: Mapping[str, Any]) -> None:
        if self._set_session is None:
            raise JourneyMapError("Session data accessors are not registered")
        self._set_session(request, patch)

    def session_reader(self, request: Any) -> Callable[[], Mapping[str, Any]]:
        """Bind the session getter to one request, for the navigator."""
        return lambda: self.get_session_data(request)


# Module-level convenience functions
def _get_registry() -> JourneyRegistry:
    return JourneyRegistry.get_instance()


def get_map(base_path: Optional[Union[str, Path]] = None) -> Dict[str, Dict[str, Any]]:
    """Get a copy of the compiled journey map."""
    return _get_registry().get_map(base_path)


def get_step(step_id: str) -> CompiledStep:
    """Get a copy of one compiled step."""
    return _get_registry().get_step(step_id)


def get_current_step(request: Any) -> CompiledStep:
    """Get the step handling `request`."""
    return _get_registry().get_current_step(request)


def get_session_data(request: Any) -> Mapping[str, Any]:
    """Read session data through the registered getter."""
    return _get_registry().get_session_data(request)


def set_session_data(request: Any, patch: Mapping[str, Any]) -> None:
    """Write session data through the registered setter."""
    _get_registry().set_session_data(request, patch)


def clear_map() -> None:
    """Discard the default registry's graph."""
    _get_registry().reset()
