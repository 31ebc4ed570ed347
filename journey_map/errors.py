"""
errors.py - Exception types for journey map loading and route binding.

Navigation problems are not raised; see NavigationConfigError in
journey_map.runtime.navigator, which is returned as a value.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class JourneyMapError(Exception):
    """Base exception for journey map errors."""

    pass


class DescriptorError(JourneyMapError):
    """Raised when a step descriptor file cannot be loaded."""

    def __init__(self, module_name: str, path: Path, message: str):
        self.module_name = module_name
        self.path = path
        label = f"module '{module_name}'" if module_name else "root map"
        super().__init__(f"Descriptor for {label} at {path}: {message}")


class DescriptorNotFoundError(DescriptorError):
    """Raised when the descriptor file for a module does not exist."""

    def __init__(self, module_name: str, path: Path):
        super().__init__(module_name, path, "file not found")


class DescriptorParseError(DescriptorError):
    """Raised when a descriptor file is not a valid mapping of steps."""

    pass


class RouteRegistrationError(JourneyMapError):
    """Raised when a step's handler cannot be bound to the application.

    Registration catches these per step and logs them, so one bad handler
    never stops the rest of the journey from being served.
    """

    def __init__(self, step_id: str, path: str, reason: str, route: Optional[str] = None):
        self.step_id = step_id
        self.path = path
        self.route = route
        self.reason = reason
        super().__init__(f'Route "{step_id}" with path "{path}" failed to be registered: {reason}')
