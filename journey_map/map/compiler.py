"""
compiler.py - Compile nested step descriptors into one flat journey graph.

The compiler walks the root descriptor in declaration order. A step that
declares `module` is not emitted itself; the module's own descriptor is
compiled in its place, with that step as the enclosing scope:

    id      quiz + question-1          -> quiz:question-1
    path    /quiz + /question-1        -> /quiz/question-1
    route   questions + q1.route       -> questions/q1.route
    next    return (inside module)     -> whatever `quiz` goes to next

A step without `next` goes to its next sibling, and the last sibling of a
module returns to the caller. Conditional rules are resolved branch by branch
and get an implicit fallback branch pointing at that same adjacency target.

Usage:
    from journey_map.map.compiler import build_graph

    steps = build_graph("app/journey")
    steps["quiz:question-1"].next  # GoTo("quiz:question-2")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from journey_map.errors import DescriptorParseError

from .loader import descriptor_path, load_step_options
from .repair import repair_links
from .types import (
    ID_SEPARATOR,
    RETURN_TO_CALLER,
    ROUTE_SEPARATOR,
    TERMINAL,
    CompiledStep,
    Conditional,
    GoTo,
    NextSpec,
    ParentRef,
    ReturnToCaller,
    StepOptions,
    Terminal,
)

logger = logging.getLogger(__name__)

DescriptorSource = Callable[[str, Union[str, Path]], Dict[str, StepOptions]]


@dataclass(frozen=True)
class _Scope:
    """The module step a descriptor is being expanded under."""

    id: str = ""
    path: str = ""
    module: str = ""
    next: NextSpec = TERMINAL
    parent: Optional[ParentRef] = None
    modules: Tuple[str, ...] = ()


_ROOT_SCOPE = _Scope()


def qualify_id(scope_id: str, local_id: str) -> str:
    """Prefix a local step id with its enclosing module step id."""
    return f"{scope_id}{ID_SEPARATOR}{local_id}" if scope_id else local_id


def _resolve_next(rule: NextSpec, adjacent: NextSpec, scope: _Scope) -> NextSpec:
    if isinstance(rule, GoTo):
        return GoTo(qualify_id(scope.id, rule.target))
    if isinstance(rule, ReturnToCaller):
        return scope.next
    if isinstance(rule, Conditional):
        fallback = _resolve_next(adjacent, adjacent, scope)
        return Conditional(
            query=rule.query,
            when={key: _resolve_next(branch, adjacent, scope) for key, branch in rule.when.items()},
            otherwise=(
                _resolve_next(rule.otherwise, adjacent, scope)
                if rule.otherwise is not None
                else None
            ),
            fallback=None if isinstance(fallback, Terminal) else fallback,
        )
    return rule


def _compile_module(
    module_name: str,
    base_path: Union[str, Path],
    scope: _Scope,
    source: DescriptorSource,
) -> List[CompiledStep]:
    entries = list(source(module_name, base_path).values())
    compiled: List[CompiledStep] = []

    for index, options in enumerate(entries):
        adjacent: NextSpec = (
            GoTo(entries[index + 1].id) if index < len(entries) - 1 else RETURN_TO_CALLER
        )
        step_id = qualify_id(scope.id, options.id)
        path = scope.path + options.path
        declared = options.next if options.next is not None else adjacent
        next_rule = _resolve_next(declared, adjacent, scope)

        if options.module:
            if options.module in scope.modules:
                raise DescriptorParseError(
                    options.module,
                    descriptor_path(options.module, base_path),
                    f"module is nested inside itself via step '{step_id}'",
                )
            child = _Scope(
                id=step_id,
                path=path,
                module=options.module,
                next=next_rule,
                parent=ParentRef(id=step_id, path=path, options=options.options, parent=scope.parent),
                modules=scope.modules + (options.module,),
            )
            compiled.extend(_compile_module(options.module, base_path, child, source))
            continue

        route = options.route
        if route and scope.module:
            route = f"{scope.module}{ROUTE_SEPARATOR}{route}"

        compiled.append(
            CompiledStep(
                id=step_id,
                path=path,
                route=route,
                next=next_rule,
                parent=scope.parent,
                options=options.options,
                extra=dict(options.extra),
            )
        )

    return compiled


def compile_graph(
    base_path: Union[str, Path],
    source: DescriptorSource = load_step_options,
) -> Dict[str, CompiledStep]:
    """Compile the root descriptor and every nested module into one graph.

    Args:
        base_path: Journey base directory holding map.yml.
        source: Descriptor reader, (module_name, base_path) -> StepOptions by id.

    Returns:
        Qualified step id -> CompiledStep, in declaration order.

    Raises:
        DescriptorError: If any descriptor is missing or malformed.
    """
    graph: Dict[str, CompiledStep] = {}
    for step in _compile_module("", base_path, _ROOT_SCOPE, source):
        if step.id in graph:
            logger.warning("Duplicate step id '%s' in journey map; keeping the last one", step.id)
        graph[step.id] = step
    return graph


def build_graph(
    base_path: Union[str, Path],
    source: DescriptorSource = load_step_options,
) -> Dict[str, CompiledStep]:
    """Compile a journey and repair links that point at modules."""
    graph = repair_links(compile_graph(base_path, source))
    logger.info("Compiled journey map from %s: %d step(s)", base_path, len(graph))
    return graph
