"""
navigator.py - Decide where a journey goes after a step's handler has run.

The navigator is called once per completed request with the id of the step
that handled it. It never raises for configuration problems: the outcome is
always one of

- CONTINUE: leave the handler's response alone
- REDIRECT: send the client to the next step's concrete path
- ERROR: the journey map is misconfigured for this request

Decision order:

1. Not a journey step -> CONTINUE
2. Handler rendered a view or already redirected -> CONTINUE
3. Step has no next rule -> CONTINUE
4. Fixed next step -> REDIRECT with {param} placeholders filled from session data
5. Conditional next -> pick a branch from session data and repeat 3-5,
   or ERROR if no branch applies

Usage:
    from journey_map.runtime.navigator import Navigator, ResponseOutcome

    outcome = Navigator(graph).decide(
        step_id="question-1",
        response=ResponseOutcome(status_code=200),
        get_session_data=lambda: session,
    )
    if outcome.decision == NavigationDecision.REDIRECT:
        return redirect(outcome.location)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from journey_map.map.types import (
    CompiledStep,
    Conditional,
    GoTo,
    JourneyGraph,
    NextSpec,
    Terminal,
    fill_path,
)

logger = logging.getLogger(__name__)

SessionDataGetter = Callable[[], Optional[Mapping[str, Any]]]


class NavigationDecision(str, Enum):
    """What the caller should do with the response."""

    CONTINUE = "continue"
    REDIRECT = "redirect"
    ERROR = "error"


@dataclass
class NavigationConfigError:
    """A journey map defect detected while navigating.

    Returned inside a NavigationOutcome, never raised.
    """

    step_id: str
    path: str
    message: str
    query: Optional[str] = None
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_id": self.step_id,
            "path": self.path,
            "message": self.message,
            "query": self.query,
            "value": self.value,
        }


@dataclass
class NavigationOutcome:
    """Result of a navigation decision.

    Attributes:
        decision: CONTINUE, REDIRECT or ERROR.
        location: Redirect target (REDIRECT only).
        next_step_id: Step the redirect leads to (REDIRECT only).
        error: Configuration defect (ERROR only).
        reason: Human-readable explanation.
    """

    decision: NavigationDecision
    location: Optional[str] = None
    next_step_id: Optional[str] = None
    error: Optional[NavigationConfigError] = None
    reason: str = ""

    @classmethod
    def proceed(cls, reason: str) -> "NavigationOutcome":
        return cls(decision=NavigationDecision.CONTINUE, reason=reason)

    @classmethod
    def redirect(cls, location: str, next_step_id: str) -> "NavigationOutcome":
        return cls(
            decision=NavigationDecision.REDIRECT,
            location=location,
            next_step_id=next_step_id,
            reason=f"advance to '{next_step_id}'",
        )

    @classmethod
    def failure(cls, error: NavigationConfigError) -> "NavigationOutcome":
        return cls(decision=NavigationDecision.ERROR, error=error, reason=error.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "decision": self.decision.value,
            "location": self.location,
            "next_step_id": self.next_step_id,
            "error": self.error.to_dict() if self.error else None,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ResponseOutcome:
    """What the step handler produced, as far as navigation cares.

    Attributes:
        status_code: HTTP status of the handler's response.
        is_view: True when the handler rendered a page.
        location: Location header, if any.
    """

    status_code: int = 200
    is_view: bool = False
    location: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        if self.status_code == 302:
            return True
        return 300 <= self.status_code < 400 and self.location is not None


@dataclass
class _SessionView:
    """Reads session data at most once per decision."""

    getter: SessionDataGetter
    _data: Optional[Mapping[str, Any]] = field(default=None, init=False)

    def data(self) -> Mapping[str, Any]:
        if self._data is None:
            self._data = self.getter() or {}
        return self._data


class Navigator:
    """Walks the outgoing edge of a compiled step."""

    def __init__(self, graph: JourneyGraph):
        self.graph = graph

    def get_step(self, step_id: str) -> CompiledStep:
        step = self.graph.get(step_id)
        return step if step is not None else CompiledStep(id=step_id)

    def decide(
        self,
        step_id: Optional[str],
        response: ResponseOutcome,
        get_session_data: SessionDataGetter,
    ) -> NavigationOutcome:
        """Decide what to do after the handler for `step_id` has run.

        Args:
            step_id: Id of the journey step that handled the request, or None
                if the route is not part of the journey.
            response: Classification of the handler's response.
            get_session_data: Returns the caller's session data for this request.

        Returns:
            NavigationOutcome; configuration defects come back as ERROR.
        """
        if step_id is None:
            return NavigationOutcome.proceed("not a journey step")

        if response.is_view or response.is_redirect:
            return NavigationOutcome.proceed("handler took control of the response")

        step = self.get_step(step_id)
        outcome = self._follow(step, step.next, _SessionView(get_session_data))
        logger.debug("Navigation from '%s': %s %s", step_id, outcome.decision.value, outcome.reason)
        return outcome

    def resolve_path(self, step: CompiledStep, target: CompiledStep, session: Mapping[str, Any]) -> str:
        """Fill the placeholders of `target.path` from session data.

        A placeholder without a value is logged and left in the path.
        """
        path, missing = fill_path(target.path, session)
        for param in missing:
            logger.error(
                'Route "%s" with path "%s" failed to set parameter "%s"',
                step.id,
                target.path,
                param,
            )
        return path

    def _follow(
        self,
        step: CompiledStep,
        rule: NextSpec,
        session: _SessionView,
    ) -> NavigationOutcome:
        if isinstance(rule, Terminal):
            return NavigationOutcome.proceed("terminal step")

        if isinstance(rule, GoTo):
            target = self.graph.get(rule.target)
            if target is None:
                return NavigationOutcome.failure(
                    NavigationConfigError(
                        step_id=step.id,
                        path=step.path,
                        message=(
                            f'Route "{step.id}" with path "{step.path}" '
                            f'links to unknown step "{rule.target}"'
                        ),
                    )
                )
            return NavigationOutcome.redirect(
                self.resolve_path(step, target, session.data()), target.id
            )

        if isinstance(rule, Conditional):
            value = session.data().get(rule.query)
            branch = rule.select(value)
            if branch is None:
                return NavigationOutcome.failure(
                    NavigationConfigError(
                        step_id=step.id,
                        path=step.path,
                        query=rule.query,
                        value=value,
                        message=(
                            f'Route "{step.id}" with path "{step.path}" set incorrect '
                            f'value "{value}" for query "{rule.query}"'
                        ),
                    )
                )
            return self._follow(step, branch, session)

        return NavigationOutcome.failure(
            NavigationConfigError(
                step_id=step.id,
                path=step.path,
                message=f'Route "{step.id}" with path "{step.path}" has an unresolvable next rule',
            )
        )
