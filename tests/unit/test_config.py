# PATH: tests/unit/test_config.py
"""
Unit tests for configuration loading.
"""

import os
import unittest
from pathlib import Path
from unittest.mock import patch

from config import (
    PortalSettings,
    get_chain_aliases,
    load_chain_aliases,
    load_chains,
    load_query_limits,
    load_settings,
    load_yaml,
)
from core.exceptions import ConfigError

CONFIG_DIR = Path(__file__).parent.parent.parent / "config"

PORTAL_ENV = (
    "PORTAL_URL",
    "PORTAL_TIMEOUT_MS",
    "PORTAL_STREAM_TIMEOUT_MS",
    "PORTAL_MAX_RETRIES",
    "PORTAL_DATASET_CACHE_TTL",
)


class TestConfigLoading(unittest.TestCase):
    """Tests for YAML table loading."""

    def test_config_dir_exists(self):
        """Config directory exists."""
        self.assertTrue(CONFIG_DIR.exists())

    def test_load_query_limits(self):
        """query_limits.yaml has every section."""
        limits = load_query_limits()
        for section in ("recommended", "maximum", "filter_fields"):
            self.assertIn(section, limits)
        self.assertEqual(limits["result_limit_warning"], 10000)

    def test_load_chains(self):
        """chains.yaml has classification markers."""
        chains = load_chains()
        self.assertIn("solana", chains["solana_markers"])
        self.assertIn("base", chains["l2_patterns"])

    def test_chain_aliases_lowercase(self):
        """Aliases are normalized to lowercase."""
        for aliases in load_chain_aliases().values():
            for alias in aliases:
                self.assertEqual(alias, alias.lower())

    def test_chain_aliases_unique(self):
        """Each alias maps to exactly one dataset."""
        aliases = [a for values in load_chain_aliases().values() for a in values]
        self.assertEqual(len(aliases), len(set(aliases)))

    def test_get_chain_aliases(self):
        self.assertEqual(get_chain_aliases("binance-mainnet"), ["bsc", "bnb", "binance"])
        self.assertIsNone(get_chain_aliases("unknown-chain"))

    def test_missing_file(self):
        """Missing file raises FileNotFoundError."""
        with self.assertRaises(FileNotFoundError):
            load_yaml("does_not_exist.yaml")


class TestLoadSettings(unittest.TestCase):
    """Tests for portal settings and env overrides."""

    def setUp(self):
        env = {k: v for k, v in os.environ.items() if k not in PORTAL_ENV}
        patcher = patch.dict("os.environ", env, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_defaults_from_yaml(self):
        settings = load_settings(use_dotenv=False)
        self.assertEqual(settings, PortalSettings())
        self.assertEqual(settings.url, "https://portal.sqd.dev")
        self.assertEqual(settings.timeout_ms, 10000)
        self.assertEqual(settings.stream_timeout_ms, 15000)
        self.assertEqual(settings.max_retries, 2)
        self.assertEqual(settings.dataset_cache_ttl_seconds, 300)

    def test_env_overrides(self):
        with patch.dict("os.environ", {
            "PORTAL_URL": "http://localhost:8080/",
            "PORTAL_TIMEOUT_MS": "500",
            "PORTAL_MAX_RETRIES": "0",
            "PORTAL_DATASET_CACHE_TTL": "1.5",
        }):
            settings = load_settings(use_dotenv=False)

        self.assertEqual(settings.url, "http://localhost:8080")
        self.assertEqual(settings.timeout_ms, 500)
        self.assertEqual(settings.max_retries, 0)
        self.assertEqual(settings.dataset_cache_ttl_seconds, 1.5)

    def test_blank_env_ignored(self):
        with patch.dict("os.environ", {"PORTAL_TIMEOUT_MS": "  "}):
            self.assertEqual(load_settings(use_dotenv=False).timeout_ms, 10000)

    def test_non_numeric_env(self):
        with patch.dict("os.environ", {"PORTAL_MAX_RETRIES": "three"}):
            with self.assertRaises(ConfigError) as ctx:
                load_settings(use_dotenv=False)
        self.assertEqual(ctx.exception.context["variable"], "PORTAL_MAX_RETRIES")

    def test_bad_url(self):
        with patch.dict("os.environ", {"PORTAL_URL": "portal.sqd.dev"}):
            with self.assertRaises(ConfigError):
                load_settings(use_dotenv=False)

    def test_non_positive_timeout(self):
        with patch.dict("os.environ", {"PORTAL_STREAM_TIMEOUT_MS": "0"}):
            with self.assertRaises(ConfigError):
                load_settings(use_dotenv=False)

    def test_negative_retries(self):
        with patch.dict("os.environ", {"PORTAL_MAX_RETRIES": "-1"}):
            with self.assertRaises(ConfigError):
                load_settings(use_dotenv=False)

    def test_dataset_url(self):
        settings = PortalSettings(url="https://portal.test")
        self.assertEqual(
            settings.dataset_url("base-mainnet", "stream"),
            "https://portal.test/datasets/base-mainnet/stream",
        )
        self.assertEqual(settings.dataset_url("base-mainnet"), "https://portal.test/datasets/base-mainnet")


if __name__ == "__main__":
    unittest.main()
