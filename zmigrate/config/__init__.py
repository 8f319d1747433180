"""
Configuration management for the migration core.

Loads and validates settings from environment variables and an optional
.env file. Exposes a single source of truth for runtime configuration.
"""

from zmigrate.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
