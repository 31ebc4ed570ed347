"""Configuration for journey_map."""

from .settings import DEFAULT_INQUIRY_PATH, JourneySettings, load_settings

__all__ = ["DEFAULT_INQUIRY_PATH", "JourneySettings", "load_settings"]
