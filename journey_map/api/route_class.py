"""
JourneyRoute - FastAPI route class that navigates after the handler runs.

Each journey step is bound with this route class. The wrapped handler:

1. stores the step id on request.state so handlers can look up their step
2. runs the step handler as usual
3. asks the Navigator what to do with the handler's response

A rendered page (HTMLResponse, including template responses) or a redirect
is left untouched; otherwise the client is redirected to the next step.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Coroutine

from fastapi import Request, Response
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.routing import APIRoute

from journey_map.map.registry import STEP_ID_STATE_ATTR
from journey_map.runtime.navigator import (
    NavigationDecision,
    NavigationOutcome,
    ResponseOutcome,
)

if TYPE_CHECKING:
    from journey_map.map.registry import JourneyRegistry

logger = logging.getLogger(__name__)

JOURNEY_ROUTE_TAG = "journey-map-route"


def response_outcome(response: Response) -> ResponseOutcome:
    """Classify a handler response for the navigator."""
    return ResponseOutcome(
        status_code=response.status_code,
        is_view=isinstance(response, HTMLResponse),
        location=response.headers.get("location"),
    )


def apply_outcome(outcome: NavigationOutcome, response: Response) -> Response:
    """Turn a navigation outcome into the response sent to the client."""
    if outcome.decision == NavigationDecision.REDIRECT:
        redirect = RedirectResponse(outcome.location, status_code=302)
        for cookie in response.headers.getlist("set-cookie"):
            redirect.headers.append("set-cookie", cookie)
        redirect.background = response.background
        return redirect

    if outcome.decision == NavigationDecision.ERROR:
        logger.error("Journey navigation failed: %s", outcome.reason)
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    return response


class JourneyRoute(APIRoute):
    """APIRoute bound to one compiled journey step."""

    def __init__(
        self,
        path: str,
        endpoint: Callable[..., Any],
        *,
        step_id: str,
        registry: "JourneyRegistry",
        **kwargs: Any,
    ):
        self.step_id = step_id
        self.registry = registry
        super().__init__(path, endpoint, **kwargs)

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        original_route_handler = super().get_route_handler()

        async def journey_route_handler(request: Request) -> Response:
            setattr(request.state, STEP_ID_STATE_ATTR, self.step_id)
            response = await original_route_handler(request)
            outcome = self.registry.navigator().decide(
                self.step_id,
                response_outcome(response),
                self.registry.session_reader(request),
            )
            return apply_outcome(outcome, response)

        return journey_route_handler
