"""
Test fixtures for journey map tests.

Each journey fixture writes a descriptor tree into a temporary directory and
returns its base path:

- simple_journey: home -> complete
- modules_journey: home -> quiz (questions module, whose question-3 expands
  the bonus module) -> complete
- branching_journey: question-1 branches on the `answer` session field
- params_journey: next step path carries {reference} placeholders
"""

from pathlib import Path
from textwrap import dedent
from typing import Any, Dict, Optional

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from journey_map.api.plugin import JourneyOptions, RouteDefinition, register
from journey_map.map.registry import JourneyRegistry


def write_journey(base: Path, files: Dict[str, str]) -> Path:
    """Write descriptor files (relative path -> YAML text) under `base`."""
    for relative, content in files.items():
        target = base / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(dedent(content).lstrip(), encoding="utf-8")
    return base


SIMPLE_FILES = {
    "map.yml": """
        home:
          path: /
          route: home.route
        complete:
          path: /complete
          route: complete.route
    """,
}

MODULES_FILES = {
    "map.yml": """
        home:
          path: /
          route: home.route
        quiz:
          path: /quiz
          module: questions
          options:
            title: Super quiz
        complete:
          path: /complete
          route: complete.route
    """,
    "questions/questions.map.yml": """
        question-1:
          path: /question-1
          route: question-1.route
        question-2:
          path: /question-2
          route: question-2.route
        question-3:
          path: /question-3
          module: bonus
          options:
            title: Question 3 is a bonus round
    """,
    "bonus/bonus.map.yml": """
        quick-fire:
          path: /quick-fire
          route: quick-fire.route
    """,
}

BRANCHING_FILES = {
    "map.yml": """
        home:
          path: /
          route: home.route
        question-1:
          path: /question-1
          route: question-1.route
          next:
            query: answer
            when:
              yes: complete
        question-2:
          path: /question-2
          route: question-2.route
        complete:
          path: /complete
          route: complete.route
    """,
}

PARAMS_FILES = {
    "map.yml": """
        start:
          path: /
          route: start.route
        details:
          path: /claims/{reference}/details
          route: details.route
          hint: shown on the details page
    """,
}


@pytest.fixture
def simple_journey(tmp_path) -> Path:
    return write_journey(tmp_path / "simple", SIMPLE_FILES)


@pytest.fixture
def modules_journey(tmp_path) -> Path:
    return write_journey(tmp_path / "modules", MODULES_FILES)


@pytest.fixture
def branching_journey(tmp_path) -> Path:
    return write_journey(tmp_path / "branching", BRANCHING_FILES)


@pytest.fixture
def params_journey(tmp_path) -> Path:
    return write_journey(tmp_path / "params", PARAMS_FILES)


@pytest.fixture(autouse=True)
def reset_default_registry(monkeypatch):
    """Keep the process-wide registry and JOURNEY_MAP_* settings from leaking between tests."""
    for name in ("JOURNEY_MAP_BASE_PATH", "JOURNEY_MAP_INQUIRY_PATH", "JOURNEY_MAP_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    JourneyRegistry.reset_instance()
    yield
    JourneyRegistry.reset_instance()


class SessionStore:
    """In-memory session data shared by every request of a test client."""

    def __init__(self):
        self.data: Dict[str, Any] = {}

    def get(self, request: Request) -> Dict[str, Any]:
        return dict(self.data)

    def set(self, request: Request, patch: Dict[str, Any]) -> None:
        self.data.update(patch)


async def accept_step(request: Request, answer: Optional[str] = None):
    """Generic step handler: optionally records `answer`, returns JSON."""
    if answer is not None:
        request.app.state.journey.set_session_data(request, {"answer": answer})
    return {"ok": True}


def make_handlers(*routes: str) -> Dict[str, RouteDefinition]:
    return {route: RouteDefinition(accept_step, method=["GET", "POST"]) for route in routes}


@pytest.fixture
def session_store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def make_client(session_store):
    """Factory: build a TestClient serving the journey at `base_path`."""

    def _make(base_path: Path, handlers: Optional[Dict[str, Any]] = None, **options: Any) -> TestClient:
        app = FastAPI()
        registry = JourneyRegistry()
        app.state.journey = registry
        register(
            app,
            JourneyOptions(
                base_path=base_path,
                get_session_data=session_store.get,
                set_session_data=session_store.set,
                handlers=handlers if handlers is not None else _all_routes(base_path),
                registry=registry,
                **options,
            ),
        )
        return TestClient(app)

    return _make


def _all_routes(base_path: Path) -> Dict[str, RouteDefinition]:
    registry = JourneyRegistry(base_path)
    routes = [step.route for step in registry.ensure_built().steps() if step.route]
    return make_handlers(*routes)
