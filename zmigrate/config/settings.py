"""
Application settings.

Collects the environment-driven values from config.env into one frozen
Settings object used by the pipeline and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass

from zmigrate.config import env


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings; see config.env for the variables behind each field."""

    network: str = env.DEFAULT_NETWORK
    concurrency: int = env.DEFAULT_CONCURRENCY
    max_in_flight: int = env.DEFAULT_CONCURRENCY * env.IN_FLIGHT_PER_WORKER
    validate: bool = True
    legacy_grouping: str = env.LEGACY_GROUPING_PER_KEY


def get_settings() -> Settings:
    """
    Return the current settings, read fresh from the environment.

    Raises ValueError when a variable holds an unsupported value.
    """
    concurrency = env.get_concurrency()
    return Settings(
        network=env.get_network(),
        concurrency=concurrency,
        max_in_flight=env.get_max_in_flight(concurrency),
        validate=env.validation_enabled(),
        legacy_grouping=env.get_legacy_grouping(),
    )
