"""
portal/chain.py - Chain classification by dataset name.

Only EVM and Solana families exist; anything not marked Solana is EVM.
"""

from config import load_chains
from core.constants import ChainType


def detect_chain_type(dataset: str) -> ChainType:
    """Detect the chain family of a dataset from its name."""
    lower = dataset.lower()
    markers = load_chains().get("solana_markers", [])
    if any(marker in lower for marker in markers):
        return ChainType.SOLANA
    return ChainType.EVM


def is_l2_chain(dataset: str) -> bool:
    """True for datasets of known L2 rollups."""
    lower = dataset.lower()
    return any(pattern in lower for pattern in load_chains().get("l2_patterns", []))
