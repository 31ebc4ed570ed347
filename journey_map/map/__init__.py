"""
journey_map/map - Descriptor loading and journey graph compilation.

- types: step descriptors, next rules and compiled steps
- loader: read map.yml / <module>/<module>.map.yml
- compiler: flatten nested modules into one graph
- repair: point links at modules to the module's first step
- registry: process-wide compiled graph and session accessors
"""

from .types import (
    ID_SEPARATOR,
    TERMINAL,
    CompiledStep,
    Conditional,
    GoTo,
    JourneyGraph,
    NextSpec,
    ParentRef,
    ReturnToCaller,
    StepOptions,
    Terminal,
)
from .loader import descriptor_path, load_descriptor, load_step_options
from .compiler import build_graph, compile_graph
from .repair import repair_links
from .registry import JourneyRegistry

__all__ = [
    "ID_SEPARATOR",
    "TERMINAL",
    "CompiledStep",
    "Conditional",
    "GoTo",
    "JourneyGraph",
    "JourneyRegistry",
    "NextSpec",
    "ParentRef",
    "ReturnToCaller",
    "StepOptions",
    "Terminal",
    "build_graph",
    "compile_graph",
    "descriptor_path",
    "load_descriptor",
    "load_step_options",
    "repair_links",
]
