"""
Configuration loading utilities for the Portal client.

YAML tables live next to this module. Environment variables (optionally
from a .env file) override the portal endpoint settings.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from core.constants import (
    DATASET_CACHE_TTL_SECONDS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_PORTAL_URL,
    DEFAULT_TIMEOUT_MS,
    STREAM_TIMEOUT_MS,
)
from core.exceptions import ConfigError

CONFIG_DIR = Path(__file__).parent


@dataclass(frozen=True)
class PortalSettings:
    """Resolved Portal endpoint settings."""
    url: str = DEFAULT_PORTAL_URL
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    stream_timeout_ms: int = STREAM_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    dataset_cache_ttl_seconds: float = DATASET_CACHE_TTL_SECONDS

    def dataset_url(self, dataset: str, endpoint: str = "") -> str:
        """URL of /datasets/{dataset}[/{endpoint}]."""
        url = f"{self.url}/datasets/{dataset}"
        return f"{url}/{endpoint}" if endpoint else url


def load_yaml(filename: str) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        filename: Name of file in config directory

    Returns:
        Parsed YAML as dict
    """
    filepath = CONFIG_DIR / filename
    if not filepath.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _env_override(name: str, default: Any, cast: Callable[[str], Any]) -> Any:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ConfigError(
            f"Invalid value for {name}: {raw!r}",
            [f"Set {name} to a valid {cast.__name__}"],
            {"variable": name, "value": raw},
        ) from e


def load_settings(filename: str = "portal.yaml", use_dotenv: bool = True) -> PortalSettings:
    """
    Load Portal settings from YAML with environment overrides.

    Args:
        filename: YAML file in the config directory
        use_dotenv: Load a .env file into the environment first

    Returns:
        PortalSettings
    """
    if use_dotenv:
        load_dotenv()

    portal = load_yaml(filename).get("portal", {})

    settings = PortalSettings(
        url=_env_override("PORTAL_URL", portal.get("url", DEFAULT_PORTAL_URL), str).rstrip("/"),
        timeout_ms=_env_override(
            "PORTAL_TIMEOUT_MS", int(portal.get("timeout_ms", DEFAULT_TIMEOUT_MS)), int
        ),
        stream_timeout_ms=_env_override(
            "PORTAL_STREAM_TIMEOUT_MS", int(portal.get("stream_timeout_ms", STREAM_TIMEOUT_MS)), int
        ),
        max_retries=_env_override(
            "PORTAL_MAX_RETRIES", int(portal.get("max_retries", DEFAULT_MAX_RETRIES)), int
        ),
        dataset_cache_ttl_seconds=_env_override(
            "PORTAL_DATASET_CACHE_TTL",
            float(portal.get("dataset_cache_ttl_seconds", DATASET_CACHE_TTL_SECONDS)),
            float,
        ),
    )

    if not settings.url.startswith(("http://", "https://")):
        raise ConfigError(
            f"Portal URL must be http(s): {settings.url}",
            ["Set PORTAL_URL to e.g. https://portal.sqd.dev"],
            {"url": settings.url},
        )
    if settings.timeout_ms <= 0 or settings.stream_timeout_ms <= 0:
        raise ConfigError(
            "Timeouts must be positive",
            ["Check PORTAL_TIMEOUT_MS and PORTAL_STREAM_TIMEOUT_MS"],
            {"timeout_ms": settings.timeout_ms, "stream_timeout_ms": settings.stream_timeout_ms},
        )
    if settings.max_retries < 0:
        raise ConfigError(
            "max_retries must be >= 0",
            ["Check PORTAL_MAX_RETRIES"],
            {"max_retries": settings.max_retries},
        )

    return settings


@lru_cache(maxsize=1)
def load_query_limits() -> Dict[str, Any]:
    """Load query-size guard thresholds."""
    return load_yaml("query_limits.yaml")


@lru_cache(maxsize=1)
def load_chain_aliases() -> Dict[str, List[str]]:
    """Load common chain aliases (canonical dataset -> aliases)."""
    return {
        name: [str(a).lower() for a in aliases or []]
        for name, aliases in load_yaml("chain_aliases.yaml").items()
    }


@lru_cache(maxsize=1)
def load_chains() -> Dict[str, Any]:
    """Load chain classification markers."""
    return load_yaml("chains.yaml")


def get_chain_aliases(dataset: str) -> Optional[List[str]]:
    """
    Get the common aliases configured for a canonical dataset.

    Args:
        dataset: Canonical dataset name (e.g., 'binance-mainnet')

    Returns:
        Alias list or None if not configured
    """
    return load_chain_aliases().get(dataset)
