"""
types.py - Dataclasses for journey step descriptors and the compiled graph.

A descriptor file declares steps with a `next` rule. The rule is modelled as
a tagged variant:

- Terminal: no further step, the handler owns the response
- GoTo: a fixed edge to another step id
- ReturnToCaller: resume the enclosing module step's own next rule
- Conditional: choose an edge from session data

ReturnToCaller only exists in descriptors. The compiler always substitutes
it, so a compiled graph never contains one.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

# Separator between a module step id and the ids of the steps it expands to
ID_SEPARATOR = ":"

# Separator between a module name and a route reference declared inside it
ROUTE_SEPARATOR = "/"

RETURN = "return"
OTHERWISE = "otherwise"

_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")


# =============================================================================
# Next rules
# =============================================================================


@dataclass(frozen=True)
class Terminal:
    """No next step."""

    def to_value(self) -> Any:
        return None


@dataclass(frozen=True)
class GoTo:
    """Fixed edge to another step."""

    target: str

    def to_value(self) -> Any:
        return self.target


@dataclass(frozen=True)
class ReturnToCaller:
    """Continue with whatever the enclosing module step goes to next."""

    def to_value(self) -> Any:
        return RETURN


@dataclass(frozen=True)
class Conditional:
    """Edge chosen by the value of a session field.

    Attributes:
        query: Session data key whose value selects the branch.
        when: Branch value -> next rule, in declaration order.
        otherwise: Branch the author declared under `when.otherwise`; used for
            any value without an exact match.
        fallback: Implicit branch filled in from sibling adjacency; used only
            when the query field has no value at all.
    """

    query: str
    when: Mapping[str, "NextSpec"] = field(default_factory=dict, hash=False)
    otherwise: Optional["NextSpec"] = None
    fallback: Optional["NextSpec"] = None

    def select(self, value: Any) -> Optional["NextSpec"]:
        """Pick the branch for a session value, or None if nothing applies.

        Only None and "" count as unset. Other falsy values such as False or 0
        are ordinary answers: they match a "false" or "0" label, else fall to
        `otherwise`.
        """
        if not _is_unset(value):
            branch = self.when.get(branch_key(value))
            if branch is not None:
                return branch
        if self.otherwise is not None:
            return self.otherwise
        if _is_unset(value):
            return self.fallback
        return None

    def branches(self) -> Iterator[Tuple[str, "NextSpec"]]:
        """Yield every (label, rule) pair, including otherwise and fallback."""
        yield from self.when.items()
        if self.otherwise is not None:
            yield OTHERWISE, self.otherwise
        if self.fallback is not None:
            yield "fallback", self.fallback

    def to_value(self) -> Any:
        when = {key: rule.to_value() for key, rule in self.when.items()}
        if self.otherwise is not None:
            when[OTHERWISE] = self.otherwise.to_value()
        result: Dict[str, Any] = {"query": self.query, "when": when}
        if self.fallback is not None:
            result["fallback"] = self.fallback.to_value()
        return result


NextSpec = Union[Terminal, GoTo, ReturnToCaller, Conditional]

TERMINAL = Terminal()
RETURN_TO_CALLER = ReturnToCaller()


def _is_unset(value: Any) -> bool:
    return value is None or value == ""


def branch_key(value: Any) -> str:
    """Normalize a branch label or session value for comparison."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def next_spec_from_value(raw: Any) -> Optional[NextSpec]:
    """Parse a descriptor `next` value.

    Returns None when `raw` is None (rule not declared).

    Raises:
        ValueError: If the value is neither a step id nor a {query, when} mapping.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        return RETURN_TO_CALLER if raw == RETURN else GoTo(raw)
    if isinstance(raw, dict):
        query = raw.get("query")
        when_raw = raw.get("when")
        if not isinstance(query, str) or not query:
            raise ValueError("conditional next requires a non-empty 'query' string")
        if not isinstance(when_raw, dict):
            raise ValueError(f"conditional next on query '{query}' requires a 'when' mapping")
        when: Dict[str, NextSpec] = {}
        otherwise: Optional[NextSpec] = None
        for key, value in when_raw.items():
            rule = next_spec_from_value(value)
            if rule is None:
                raise ValueError(f"branch '{key}' of query '{query}' has no target")
            if branch_key(key) == OTHERWISE:
                otherwise = rule
            else:
                when[branch_key(key)] = rule
        return Conditional(query=query, when=when, otherwise=otherwise)
    raise ValueError(f"unsupported next value: {raw!r}")


# =============================================================================
# Descriptor entries
# =============================================================================


@dataclass
class StepOptions:
    """One entry of a step descriptor file, as authored.

    Attributes:
        id: Local step id (unique within its descriptor file).
        path: Path segment, appended verbatim to the parent path.
        route: Handler reference, relative to the declaring module.
        next: Declared next rule, or None to use sibling adjacency.
        module: Name of a nested module expanded in place of this step.
        options: Display options (e.g. a title) exposed to nested steps.
        extra: Any other authored fields, preserved verbatim.
    """

    id: str
    path: str = ""
    route: Optional[str] = None
    next: Optional[NextSpec] = None
    module: Optional[str] = None
    options: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Compiled graph
# =============================================================================


@dataclass(frozen=True)
class ParentRef:
    """Read-only link to an enclosing module step."""

    id: str
    path: str
    options: Optional[Dict[str, Any]] = field(default=None, hash=False)
    parent: Optional["ParentRef"] = None

    @property
    def depth(self) -> int:
        return 1 + (self.parent.depth if self.parent else 0)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"id": self.id, "path": self.path}
        if self.options is not None:
            result["options"] = copy.deepcopy(self.options)
        if self.parent is not None:
            result["parent"] = self.parent.to_dict()
        return result


@dataclass
class CompiledStep:
    """One node of the flattened journey graph."""

    id: str
    path: str = ""
    route: Optional[str] = None
    next: NextSpec = TERMINAL
    method: Optional[List[str]] = None
    parent: Optional[ParentRef] = None
    options: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def depth(self) -> int:
        """Module nesting depth (0 for root steps)."""
        return self.parent.depth if self.parent else 0

    @property
    def is_terminal(self) -> bool:
        return isinstance(self.next, Terminal)

    @property
    def path_params(self) -> List[str]:
        """Names of `{param}` placeholders in the path."""
        return _PLACEHOLDER_RE.findall(self.path)

    def copy(self) -> "CompiledStep":
        """Shallow copy with its own method list and extra map."""
        return replace(
            self,
            method=list(self.method) if self.method is not None else None,
            extra=dict(self.extra),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dictionary.

        Authored extra fields come first; computed fields overwrite any
        authored field of the same name.
        """
        result: Dict[str, Any] = copy.deepcopy(self.extra)
        if self.options is not None:
            result["options"] = copy.deepcopy(self.options)
        result["id"] = self.id
        result["path"] = self.path
        if self.route is not None:
            result["route"] = self.route
        if not isinstance(self.next, Terminal):
            result["next"] = self.next.to_value()
        if self.method is not None:
            result["method"] = list(self.method)
        if self.parent is not None:
            result["parent"] = self.parent.to_dict()
        return result


def fill_path(path: str, values: Mapping[str, Any]) -> Tuple[str, List[str]]:
    """Substitute `{param}` placeholders from `values`.

    Returns:
        The filled path and the names of placeholders left unresolved.
    """
    missing: List[str] = []

    def _sub(match: "re.Match[str]") -> str:
        name = match.group(1)
        value = values.get(name)
        if value is None:
            missing.append(name)
            return match.group(0)
        return str(value)

    return _PLACEHOLDER_RE.sub(_sub, path), missing


class JourneyGraph:
    """Compiled journey: qualified step id -> CompiledStep, in declaration order."""

    def __init__(self, steps: Optional[Dict[str, CompiledStep]] = None):
        self._steps: Dict[str, CompiledStep] = steps if steps is not None else {}

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._steps

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[str]:
        return iter(self._steps)

    @property
    def is_empty(self) -> bool:
        return not self._steps

    def get(self, step_id: str) -> Optional[CompiledStep]:
        return self._steps.get(step_id)

    def steps(self) -> List[CompiledStep]:
        return list(self._steps.values())

    def find_by_path(self, path: str) -> Optional[CompiledStep]:
        """Return the first step whose qualified path equals `path`."""
        for step in self._steps.values():
            if step.path == path:
                return step
        return None

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Deep, JSON-ready copy of the whole graph."""
        return {step_id: step.to_dict() for step_id, step in self._steps.items()}
