"""
links.py - Structural checks over a compiled journey graph.

Checks:
- every fixed link (including every conditional branch) names a step
- every conditional has somewhere to go when its query field is unset
- every step declares a route to bind

Dangling links are errors: navigating from that step fails at request time.
The other checks are warnings.
"""

from __future__ import annotations

import logging
from typing import Dict, Union

from journey_map.map.types import (
    CompiledStep,
    Conditional,
    GoTo,
    JourneyGraph,
    NextSpec,
    ReturnToCaller,
)

from .errors import ValidationResult

logger = logging.getLogger(__name__)

DANGLING_LINK = "DANGLING_LINK"
UNRESOLVED_RETURN = "UNRESOLVED_RETURN"
NO_DEFAULT_BRANCH = "NO_DEFAULT_BRANCH"
NO_ROUTE = "NO_ROUTE"


def _check_rule(
    steps: Dict[str, CompiledStep],
    step: CompiledStep,
    rule: NextSpec,
    label: str,
    result: ValidationResult,
) -> None:
    if isinstance(rule, GoTo):
        if rule.target not in steps:
            result.add_error(
                DANGLING_LINK,
                step.id,
                f"{label} links to unknown step '{rule.target}'",
                "Point next at a step id declared in the same descriptor, or add the missing step",
                target=rule.target,
            )
    elif isinstance(rule, ReturnToCaller):
        result.add_error(
            UNRESOLVED_RETURN,
            step.id,
            f"{label} still holds a 'return' rule",
            "Recompile the journey; 'return' is only valid inside a module",
        )
    elif isinstance(rule, Conditional):
        if rule.otherwise is None and rule.fallback is None:
            result.add_warning(
                NO_DEFAULT_BRANCH,
                step.id,
                f"query '{rule.query}' has no otherwise branch and no following step",
                "Add `otherwise` under `when` so unset or unexpected answers have a target",
            )
        for key, branch in rule.branches():
            _check_rule(steps, step, branch, f"branch '{key}' of query '{rule.query}'", result)


def validate_graph(graph: Union[JourneyGraph, Dict[str, CompiledStep]]) -> ValidationResult:
    """Check a compiled journey for broken or suspect links."""
    if isinstance(graph, JourneyGraph):
        steps = {step.id: step for step in graph.steps()}
    else:
        steps = graph

    result = ValidationResult()
    for step in steps.values():
        _check_rule(steps, step, step.next, "next", result)
        if not step.route:
            result.add_warning(
                NO_ROUTE,
                step.id,
                "declares no route and will not be served",
                "Add `route` naming the step's handler",
            )

    logger.debug(
        "Validated %d step(s): %d error(s), %d warning(s)",
        len(steps),
        len(result.errors),
        len(result.warnings),
    )
    return result
