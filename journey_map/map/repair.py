"""
repair.py - Point links at modules to the module's first step.

A descriptor may name a sibling that is itself a module step, e.g.
`next: question-3` where question-3 expands to `quiz:question-3:quick-fire`.
Module steps are not graph nodes, so such links are rewritten to the first
compiled step under that id. Links that match nothing are left dangling and
surface as a navigation error at request time.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from .types import ID_SEPARATOR, CompiledStep, Conditional, GoTo, NextSpec

logger = logging.getLogger(__name__)


def find_module_entry(graph: Dict[str, CompiledStep], target: str) -> Optional[str]:
    """Return the first step id (insertion order) nested under `target`."""
    prefix = target + ID_SEPARATOR
    return next((step_id for step_id in graph if step_id.startswith(prefix)), None)


def _repair_rule(graph: Dict[str, CompiledStep], rule: NextSpec, owner: str) -> NextSpec:
    if isinstance(rule, GoTo):
        if rule.target in graph:
            return rule
        entry = find_module_entry(graph, rule.target)
        if entry is None:
            logger.warning("Step '%s' links to unknown step '%s'", owner, rule.target)
            return rule
        return GoTo(entry)
    if isinstance(rule, Conditional):
        return Conditional(
            query=rule.query,
            when={key: _repair_rule(graph, branch, owner) for key, branch in rule.when.items()},
            otherwise=_repair_rule(graph, rule.otherwise, owner) if rule.otherwise is not None else None,
            fallback=_repair_rule(graph, rule.fallback, owner) if rule.fallback is not None else None,
        )
    return rule


def repair_links(graph: Dict[str, CompiledStep]) -> Dict[str, CompiledStep]:
    """Rewrite module-targeted links in place and return the same graph.

    Running it again on a repaired graph changes nothing.
    """
    for step in graph.values():
        step.next = _repair_rule(graph, step.next, step.id)
    return graph
