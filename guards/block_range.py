"""
guards/block_range.py - Block-range validation against dataset heads.

Rules, in order:
1. from_block must not precede the dataset start block
2. max_block = finalized head (finalized_only and one exists) else latest head
3. from_block must not exceed max_block
4. to_block is clamped to max_block (clamping is a fixed point)
5. ranges wider than the category's recommended width get a warning,
   never an error

Metadata and heads are fetched fresh on every call. The finalized head
is only fetched for finalized_only validations.
"""

import asyncio
from typing import Optional

from core.constants import FinalityMode, QueryCategory
from core.exceptions import BlockRangeError
from core.logging import get_logger
from core.models import ValidatedRange
from guards.query_size import QueryLimits, default_limits
from portal.registry import DatasetRegistry

logger = get_logger(__name__)

# Above this width the pre-flight error lists range-size suggestions
VERY_LARGE_RANGE = 100_000
LARGE_RANGE = 10_000


def block_range_error(from_block: int, to_block: int, reason: str) -> BlockRangeError:
    """BlockRangeError with suggestions derived from the range itself."""
    width = to_block - from_block + 1
    suggestions = []

    if width > VERY_LARGE_RANGE:
        suggestions += [
            f"Block range is very large ({width:,} blocks)",
            f"Reduce range to < {LARGE_RANGE:,} blocks for logs queries",
            "Reduce range to < 5,000 blocks for traces queries",
        ]
    elif width > LARGE_RANGE:
        suggestions += [
            f"Block range ({width:,} blocks) may be slow",
            f"Consider reducing to < {LARGE_RANGE:,} blocks for better performance",
        ]

    if to_block < from_block:
        suggestions += [
            "toBlock must be >= fromBlock",
            f"Current: fromBlock={from_block}, toBlock={to_block}",
        ]

    if from_block < 0:
        suggestions.append("fromBlock must be >= 0")

    return BlockRangeError(
        reason,
        suggestions,
        {"fromBlock": from_block, "toBlock": to_block, "range": width},
    )


def large_range_warning(
    from_block: int,
    to_block: int,
    category: QueryCategory,
    limits: QueryLimits,
) -> str:
    """Latency expectation for a range wider than the recommendation."""
    width = to_block - from_block
    return (
        f"LARGE RANGE: {width:,} blocks ({from_block} -> {to_block}) "
        f"for {category.value}. For fast responses (<1-3s) use "
        f"<{limits.recommended_for(category, True):,} blocks. "
        f"Large ranges may take >15s or time out."
    )


class BlockRangeValidator:
    """Validates and clamps requested ranges for a dataset."""

    def __init__(
        self,
        registry: DatasetRegistry,
        limits: QueryLimits | None = None,
    ):
        self.registry = registry
        self.limits = limits or default_limits()

    async def validate(
        self,
        dataset: str,
        from_block: int,
        to_block: Optional[int] = None,
        finalized_only: bool = False,
        category: QueryCategory = QueryCategory.LOGS,
    ) -> ValidatedRange:
        """
        Validate a block range.

        Args:
            dataset: Canonical dataset name
            from_block: First block requested
            to_block: Last block requested (None = up to head)
            finalized_only: Clamp to the finalized head when one exists
            category: Query category, for the large-range warning

        Returns:
            ValidatedRange whose head is the head that governed clamping

        Raises:
            BlockRangeError: Range cannot be served
        """
        category = QueryCategory(category)

        if from_block < 0:
            raise block_range_error(
                from_block,
                from_block if to_block is None else to_block,
                f"fromBlock ({from_block}) must be >= 0",
            )
        if to_block is not None and to_block < from_block:
            raise block_range_error(
                from_block,
                to_block,
                f"toBlock ({to_block}) is before fromBlock ({from_block})",
            )

        lookups = [self.registry.get_metadata(dataset), self.registry.get_head(dataset)]
        if finalized_only:
            lookups.append(self.registry.get_finalized_head_or_none(dataset))
        metadata, head, *finalized = await asyncio.gather(*lookups)
        finalized_head = finalized[0] if finalized else None

        if from_block < metadata.start_block:
            raise BlockRangeError(
                f"fromBlock ({from_block}) is before dataset start block ({metadata.start_block})",
                [f"Use fromBlock >= {metadata.start_block} for {dataset}"],
                {"dataset": dataset, "fromBlock": from_block, "start_block": metadata.start_block},
            )

        use_finalized = finalized_only and finalized_head is not None
        governing = finalized_head if use_finalized else head
        max_block = governing.number

        if from_block > max_block:
            label = (FinalityMode.FINALIZED if use_finalized else FinalityMode.LATEST).value
            raise BlockRangeError(
                f"fromBlock ({from_block}) is beyond {label} block ({max_block})",
                [
                    f"Use fromBlock <= {max_block}",
                    "Query the dataset head to find the latest block",
                ],
                {"dataset": dataset, "fromBlock": from_block, "max_block": max_block, "head": label},
            )

        validated_to = max_block if to_block is None else min(to_block, max_block)

        warning = None
        if validated_to - from_block > self.limits.recommended_for(category, True):
            warning = large_range_warning(from_block, validated_to, category, self.limits)
            logger.warning(
                warning,
                extra={"context": {
                    "dataset": dataset,
                    "from_block": from_block,
                    "to_block": validated_to,
                    "category": category.value,
                }},
            )

        return ValidatedRange(
            from_block=from_block,
            to_block=validated_to,
            head=governing,
            warning=warning,
        )
