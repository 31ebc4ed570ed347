"""Structural checks for compiled journey maps."""

from .errors import LinkFinding, ValidationResult
from .links import validate_graph

__all__ = ["LinkFinding", "ValidationResult", "validate_graph"]
