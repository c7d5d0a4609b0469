# PATH: tests/unit/test_core_models.py
"""
Unit tests for core data models.

Includes:
- Wire-shape parsing of datasets, metadata and heads
- Model immutability
"""

import dataclasses
import unittest

from core.constants import ChainType, Severity
from core.exceptions import ResponseDecodeError
from core.models import (
    BlockHead,
    Dataset,
    DatasetInfo,
    DatasetMetadata,
    QuerySizeDecision,
    ValidatedRange,
)


class TestDataset(unittest.TestCase):
    """Dataset wire shape."""

    def test_from_api(self):
        dataset = Dataset.from_api({"dataset": "base-mainnet", "aliases": ["base"], "real_time": True})
        self.assertEqual(dataset.name, "base-mainnet")
        self.assertEqual(dataset.aliases, frozenset({"base"}))
        self.assertTrue(dataset.supports_realtime)

    def test_optional_fields(self):
        dataset = Dataset.from_api({"dataset": "x-testnet", "aliases": None})
        self.assertEqual(dataset.aliases, frozenset())
        self.assertFalse(dataset.supports_realtime)

    def test_missing_name(self):
        with self.assertRaises(ResponseDecodeError):
            Dataset.from_api({"aliases": []})

    def test_non_dict(self):
        with self.assertRaises(ResponseDecodeError):
            Dataset.from_api(["ethereum-mainnet"])

    def test_matches(self):
        dataset = Dataset("ethereum-mainnet", frozenset({"ethereum"}))
        self.assertTrue(dataset.matches("ethereum-mainnet"))
        self.assertTrue(dataset.matches("ethereum"))
        self.assertFalse(dataset.matches("Ethereum"))

    def test_to_dict_round_trip(self):
        payload = {"dataset": "base-mainnet", "aliases": ["b", "base"], "real_time": True}
        self.assertEqual(Dataset.from_api(payload).to_dict(), payload)

    def test_frozen(self):
        dataset = Dataset("base-mainnet")
        with self.assertRaises(dataclasses.FrozenInstanceError):
            dataset.name = "other"


class TestMetadataAndHead(unittest.TestCase):
    """Metadata and head parsing."""

    def test_metadata(self):
        metadata = DatasetMetadata.from_api({"dataset": "base-mainnet", "start_block": "12"})
        self.assertEqual(metadata.start_block, 12)
        self.assertEqual(metadata.to_dict()["start_block"], 12)

    def test_metadata_requires_start_block(self):
        with self.assertRaises(ResponseDecodeError):
            DatasetMetadata.from_api({"dataset": "base-mainnet"})

    def test_head(self):
        self.assertEqual(BlockHead.from_api({"number": 5, "hash": "0x1"}), BlockHead(5, "0x1"))
        self.assertEqual(BlockHead.from_api({"number": 5}).hash, "")

    def test_head_requires_number(self):
        with self.assertRaises(ResponseDecodeError):
            BlockHead.from_api({"hash": "0x1"})


class TestDerivedModels(unittest.TestCase):
    """Range, decision and info models."""

    def test_validated_range(self):
        validated = ValidatedRange(100, 250, BlockHead(300))
        self.assertEqual(validated.block_range, 150)
        self.assertEqual(validated.to_dict()["head"], {"number": 300, "hash": ""})

    def test_decision_defaults(self):
        decision = QuerySizeDecision(allowed=True)
        self.assertEqual(decision.severity, Severity.NONE)
        self.assertFalse(decision.has_warning)

    def test_dataset_info(self):
        info = DatasetInfo(
            metadata=DatasetMetadata("base-mainnet", start_block=0),
            head=BlockHead(10),
            chain_type=ChainType.EVM,
            is_l2=True,
        )
        data = info.to_dict()
        self.assertEqual(data["chain_type"], "evm")
        self.assertTrue(data["is_l2"])
        self.assertEqual(data["head"]["number"], 10)


if __name__ == "__main__":
    unittest.main()
