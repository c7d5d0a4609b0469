# PATH: tests/unit/test_imports_contract.py
"""
Import contract smoke tests.

PURPOSE: Catch ImportError and circular-import regressions EARLY.
RUN FIRST: python -m pytest tests/unit/test_imports_contract.py -v

CRITICAL CONTRACTS (DO NOT WEAKEN):
- ErrorKind and every PortalError subclass importable from core
- portal package importable without portal.service (guards import portal)
- PortalService importable once guards are loaded
"""

import importlib
import unittest


class TestCoreImports(unittest.TestCase):
    """core re-exports."""

    def test_error_taxonomy(self):
        from core import ErrorKind, PortalError, RequestTimeoutError, ValidationError  # noqa: F401

        self.assertTrue(ErrorKind.TIMEOUT.retryable)
        self.assertFalse(ErrorKind.VALIDATION.retryable)

    def test_models(self):
        from core import BlockHead, CacheEntry, Dataset, QuerySizeDecision, ValidatedRange  # noqa: F401


class TestPackageImports(unittest.TestCase):
    """Every library module imports cleanly."""

    MODULES = (
        "config",
        "core.constants",
        "core.exceptions",
        "core.logging",
        "core.models",
        "core.time",
        "core.validators",
        "portal.ndjson",
        "portal.transport",
        "portal.classifier",
        "portal.client",
        "portal.chain",
        "portal.registry",
        "guards.query_size",
        "guards.block_range",
        "portal.service",
    )

    def test_modules(self):
        for name in self.MODULES:
            with self.subTest(module=name):
                importlib.import_module(name)

    def test_portal_package_does_not_export_service(self):
        import portal

        self.assertFalse(hasattr(portal, "PortalService"))

    def test_service(self):
        from portal.service import PortalService

        self.assertTrue(hasattr(PortalService, "stream_query"))


if __name__ == "__main__":
    unittest.main()
