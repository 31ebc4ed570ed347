"""
loader.py - Load step descriptors from YAML files.

Descriptor files live under the journey base path:

    <base_path>/map.yml                     root descriptor
    <base_path>/<module>/<module>.map.yml   nested module descriptor

Each file is a mapping of local step id -> step options, read in declaration
order. The loader does no caching; the registry owns the compiled result.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from journey_map.errors import DescriptorNotFoundError, DescriptorParseError

from .types import StepOptions, next_spec_from_value

logger = logging.getLogger(__name__)

ROOT_DESCRIPTOR = "map.yml"
MODULE_DESCRIPTOR_SUFFIX = ".map.yml"

_KNOWN_FIELDS = ("path", "route", "next", "module", "options")


class DescriptorYamlLoader(yaml.SafeLoader):
    """SafeLoader that keeps yes/no/on/off as plain strings.

    Branch labels such as `yes:` must survive as text; only true/false are
    read as booleans.
    """


DescriptorYamlLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:bool"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
DescriptorYamlLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


def descriptor_path(module_name: str, base_path: Union[str, Path]) -> Path:
    """Get the descriptor file path for a module ('' for the root map)."""
    base = Path(base_path)
    if module_name:
        return base / module_name / f"{module_name}{MODULE_DESCRIPTOR_SUFFIX}"
    return base / ROOT_DESCRIPTOR


def load_descriptor(module_name: str, base_path: Union[str, Path]) -> Dict[str, Dict[str, Any]]:
    """Load the raw descriptor for a module.

    Args:
        module_name: Module name, or '' for the root descriptor.
        base_path: Journey base directory.

    Returns:
        Ordered mapping of local step id -> raw options mapping.

    Raises:
        DescriptorNotFoundError: If the descriptor file does not exist.
        DescriptorParseError: If the file is not a mapping of step mappings.
    """
    path = descriptor_path(module_name, base_path)

    if not path.is_file():
        raise DescriptorNotFoundError(module_name, path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.load(f, Loader=DescriptorYamlLoader)
    except yaml.YAMLError as e:
        raise DescriptorParseError(module_name, path, f"invalid YAML: {e}") from e

    if not data:
        raise DescriptorParseError(module_name, path, "descriptor is empty")
    if not isinstance(data, dict):
        raise DescriptorParseError(
            module_name, path, f"expected a mapping of steps, got {type(data).__name__}"
        )

    steps: Dict[str, Dict[str, Any]] = {}
    for step_id, options in data.items():
        if options is None:
            options = {}
        if not isinstance(options, dict):
            raise DescriptorParseError(
                module_name, path, f"step '{step_id}' must be a mapping, got {type(options).__name__}"
            )
        steps[str(step_id)] = options

    logger.debug("Loaded %d step(s) from %s", len(steps), path)
    return steps


def parse_step_options(step_id: str, raw: Dict[str, Any]) -> StepOptions:
    """Convert a raw descriptor entry into StepOptions.

    Raises:
        ValueError: If a known field has the wrong shape.
    """
    path = raw.get("path", "")
    if path is None:
        path = ""
    if not isinstance(path, str):
        raise ValueError(f"step '{step_id}': path must be a string")

    route = raw.get("route")
    if route is not None and not isinstance(route, str):
        raise ValueError(f"step '{step_id}': route must be a string")

    module = raw.get("module")
    if module is not None and not isinstance(module, str):
        raise ValueError(f"step '{step_id}': module must be a string")

    options = raw.get("options")
    if options is not None and not isinstance(options, dict):
        raise ValueError(f"step '{step_id}': options must be a mapping")

    try:
        next_rule = next_spec_from_value(raw.get("next"))
    except ValueError as e:
        raise ValueError(f"step '{step_id}': {e}") from e

    return StepOptions(
        id=step_id,
        path=path,
        route=route,
        next=next_rule,
        module=module,
        options=options,
        extra={k: v for k, v in raw.items() if k not in _KNOWN_FIELDS and k != "id"},
    )


def load_step_options(module_name: str, base_path: Union[str, Path]) -> Dict[str, StepOptions]:
    """Load a descriptor and parse every entry into StepOptions.

    Raises:
        DescriptorNotFoundError: If the descriptor file does not exist.
        DescriptorParseError: If the file or any entry is malformed.
    """
    raw_steps = load_descriptor(module_name, base_path)
    parsed: Dict[str, StepOptions] = {}
    for step_id, raw in raw_steps.items():
        try:
            parsed[step_id] = parse_step_options(step_id, raw)
        except ValueError as e:
            raise DescriptorParseError(
                module_name, descriptor_path(module_name, base_path), str(e)
            ) from e
    return parsed
