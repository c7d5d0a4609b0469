"""
guards - Pre-flight checks run before a data query reaches the network.

- query_size.py: Query-size admission guard (pure)
- block_range.py: Block-range validation against dataset heads
"""

from guards.block_range import BlockRangeValidator
from guards.query_size import (
    QueryLimits,
    RangeThresholds,
    check_query_size,
    default_limits,
    enforce_query_size,
)

__all__ = [
    "BlockRangeValidator",
    "QueryLimits",
    "RangeThresholds",
    "check_query_size",
    "default_limits",
    "enforce_query_size",
]
