"""Request-time navigation between journey steps."""

from .navigator import (
    NavigationConfigError,
    NavigationDecision,
    NavigationOutcome,
    Navigator,
    ResponseOutcome,
)

__all__ = [
    "NavigationConfigError",
    "NavigationDecision",
    "NavigationOutcome",
    "Navigator",
    "ResponseOutcome",
]
