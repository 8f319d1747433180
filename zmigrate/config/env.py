"""
Environment variable loading and validation for zmigrate.

- ZMIGRATE_NETWORK: main | test | regtest (default: main)
- ZMIGRATE_CONCURRENCY: assignment worker threads (default: 8)
- ZMIGRATE_MAX_IN_FLIGHT: cap on dispatched, uncollected transactions (default: 4x concurrency)
- ZMIGRATE_VALIDATE: run the assignment validator (default: on)
- ZMIGRATE_LEGACY_GROUPING: per_key | per_seed (default: per_key)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is zmigrate/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

NETWORKS = ("main", "test", "regtest")
DEFAULT_NETWORK = "main"
DEFAULT_CONCURRENCY = 8
MIN_CONCURRENCY = 1
IN_FLIGHT_PER_WORKER = 4

LEGACY_GROUPING_PER_KEY = "per_key"
LEGACY_GROUPING_PER_SEED = "per_seed"
LEGACY_GROUPINGS = (LEGACY_GROUPING_PER_KEY, LEGACY_GROUPING_PER_SEED)

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


def load_zmigrate_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    if _ENV_PATH.is_file():
        load_dotenv(_ENV_PATH, override=False)


def normalize_network(value: str) -> str:
    """Map a network name or its mainnet/testnet alias to main | test | regtest."""
    raw = value.strip().lower()
    if raw in ("mainnet", "main"):
        return "main"
    if raw in ("testnet", "test"):
        return "test"
    if raw == "regtest":
        return "regtest"
    raise ValueError(f"network must be one of {NETWORKS}, got {raw!r}")


def get_network() -> str:
    """
    Return ZMIGRATE_NETWORK from env: main | test | regtest.
    Aliases mainnet/testnet are accepted. Default: main.
    """
    load_zmigrate_env()
    return normalize_network(os.getenv("ZMIGRATE_NETWORK") or DEFAULT_NETWORK)


def get_concurrency() -> int:
    """Return ZMIGRATE_CONCURRENCY, clamped to at least one worker."""
    load_zmigrate_env()
    raw = (os.getenv("ZMIGRATE_CONCURRENCY") or "").strip()
    if not raw:
        return DEFAULT_CONCURRENCY
    return max(MIN_CONCURRENCY, int(raw))


def get_max_in_flight(concurrency: int) -> int:
    """Return ZMIGRATE_MAX_IN_FLIGHT, never below the worker count."""
    load_zmigrate_env()
    raw = (os.getenv("ZMIGRATE_MAX_IN_FLIGHT") or "").strip()
    if not raw:
        return concurrency * IN_FLIGHT_PER_WORKER
    return max(concurrency, int(raw))


def validation_enabled() -> bool:
    """Return True unless ZMIGRATE_VALIDATE is explicitly switched off."""
    load_zmigrate_env()
    raw = (os.getenv("ZMIGRATE_VALIDATE") or "").strip().lower()
    if raw in _FALSY:
        return False
    if raw and raw not in _TRUTHY:
        raise ValueError(f"ZMIGRATE_VALIDATE must be a boolean flag, got {raw!r}")
    return True


def get_legacy_grouping() -> str:
    """
    Return ZMIGRATE_LEGACY_GROUPING: per_key (one legacy account per owning key)
    or per_seed (legacy HD keys grouped by seed fingerprint).
    """
    load_zmigrate_env()
    raw = (os.getenv("ZMIGRATE_LEGACY_GROUPING") or LEGACY_GROUPING_PER_KEY).strip().lower()
    if raw not in LEGACY_GROUPINGS:
        raise ValueError(f"ZMIGRATE_LEGACY_GROUPING must be one of {LEGACY_GROUPINGS}, got {raw!r}")
    return raw
