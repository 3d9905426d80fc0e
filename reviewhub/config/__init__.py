"""Configuration for ReviewHub."""

from reviewhub.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
