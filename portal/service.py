"""
portal/service.py - Portal service facade.

Wires the client layer into the data-request control flow:

    query-size guard -> block-range validator -> retrying client (stream)
        -> NDJSON decoder -> caller

Any failure along the way surfaces as exactly one classified PortalError.
"""

from typing import Any, Dict, List, Optional

from config import PortalSettings, load_settings
from core.constants import ChainType, QueryCategory
from core.exceptions import BlockRangeError
from core.logging import get_logger
from core.models import BlockHead, Dataset, DatasetInfo, QueryResult
from core.time import Clock
from core.validators import normalize_query_addresses
from guards.block_range import BlockRangeValidator
from guards.query_size import QueryLimits, default_limits, enforce_query_size
from portal.chain import detect_chain_type, is_l2_chain
from portal.client import RetryingClient
from portal.registry import DatasetRegistry
from portal.transport import PortalTransport

logger = get_logger(__name__)


def block_bound(query: Dict[str, Any], key: str) -> Optional[int]:
    """
    Read fromBlock / toBlock from a query as an int.

    fromBlock is required; a missing toBlock means "up to the head".
    """
    value = query.get(key)
    if value is None:
        if key == "toBlock":
            return None
        raise BlockRangeError(
            "Query is missing fromBlock",
            ["Set fromBlock to the first block to scan (e.g. the dataset start block)"],
            {"query_keys": sorted(query)},
        )
    if isinstance(value, bool):
        value = None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BlockRangeError(
            f"{key} must be an integer block number, got {query[key]!r}",
            [f"Pass {key} as a number, e.g. {key}: 19000000"],
            {key: query[key]},
        ) from None


class PortalService:
    """
    Entry point for callers that hand over a query description.

    Usage:
        async with PortalService() as portal:
            result = await portal.stream_query("ethereum", query, has_filters=True)
    """

    def __init__(
        self,
        settings: PortalSettings | None = None,
        client: RetryingClient | None = None,
        limits: QueryLimits | None = None,
        clock: Clock | None = None,
    ):
        self.settings = settings or load_settings()
        self.client = client or RetryingClient(
            PortalTransport(),
            max_retries=self.settings.max_retries,
            timeout_ms=self.settings.timeout_ms,
            stream_timeout_ms=self.settings.stream_timeout_ms,
        )
        self.limits = limits or default_limits()
        self.registry = DatasetRegistry(
            self.client,
            base_url=self.settings.url,
            ttl_seconds=self.settings.dataset_cache_ttl_seconds,
            clock=clock,
        )
        self.validator = BlockRangeValidator(self.registry, self.limits)

    async def __aenter__(self) -> "PortalService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.close()

    # =========================================================================
    # DATASETS
    # =========================================================================

    async def list_datasets(
        self,
        chain_type: ChainType | None = None,
        pattern: str | None = None,
        realtime_only: bool = False,
    ) -> List[Dataset]:
        if chain_type is None and pattern is None and not realtime_only:
            return await self.registry.list_datasets()
        return await self.registry.filter_datasets(chain_type, pattern, realtime_only)

    async def search_datasets(self, query: str) -> List[Dataset]:
        return await self.registry.search_datasets(query)

    async def resolve_dataset(self, name: str) -> str:
        return await self.registry.resolve_dataset(name)

    async def get_block_number(self, dataset: str, finalized: bool = False) -> BlockHead:
        """Latest (or finalized) head of a dataset."""
        dataset = await self.registry.resolve_dataset(dataset)
        if finalized:
            return await self.registry.get_finalized_head(dataset)
        return await self.registry.get_head(dataset)

    async def get_dataset_info(self, dataset: str) -> DatasetInfo:
        """Metadata, head and chain classification for a dataset."""
        dataset = await self.registry.resolve_dataset(dataset)
        metadata = await self.registry.get_metadata(dataset)
        head = await self.registry.get_head(dataset)
        chain_type = detect_chain_type(dataset)
        return DatasetInfo(
            metadata=metadata,
            head=head,
            chain_type=chain_type,
            is_l2=chain_type == ChainType.EVM and is_l2_chain(dataset),
        )

    # =========================================================================
    # DATA QUERIES
    # =========================================================================

    async def stream_query(
        self,
        dataset: str,
        query: Dict[str, Any],
        *,
        category: QueryCategory = QueryCategory.LOGS,
        has_filters: bool = False,
        result_limit: int = 0,
        finalized_only: bool = False,
        timeout_ms: Optional[int] = None,
    ) -> QueryResult:
        """
        Run a streaming data query.

        `query` holds fromBlock, an optional toBlock, fields and category
        filters; type, fromBlock and toBlock are filled from the validated
        range before sending.

        The size guard runs on the requested range first (no network), then
        again on the clamped range once the head is known.

        Raises:
            ValidationError: Guard or validator rejected the query
            PortalError: Classified network failure
        """
        from_block = block_bound(query, "fromBlock")
        to_block = block_bound(query, "toBlock")

        if to_block is not None:
            enforce_query_size(to_block - from_block, has_filters, category, result_limit, self.limits)

        dataset = await self.registry.resolve_dataset(dataset)
        chain_type = detect_chain_type(dataset)
        body = normalize_query_addresses(query, chain_type)

        validated = await self.validator.validate(
            dataset,
            from_block,
            to_block,
            finalized_only=finalized_only,
            category=category,
        )
        decision = enforce_query_size(
            validated.block_range, has_filters, category, result_limit, self.limits
        )

        body.setdefault("type", chain_type.value)
        body["fromBlock"] = validated.from_block
        body["toBlock"] = validated.to_block

        records = await self.client.stream(
            self.settings.dataset_url(dataset, "stream"),
            body,
            timeout_ms=timeout_ms,
        )

        logger.info(
            "Query completed",
            extra={"context": {
                "dataset": dataset,
                "category": QueryCategory(category).value,
                "from_block": validated.from_block,
                "to_block": validated.to_block,
                "records": len(records),
            }},
        )
        return QueryResult(records=records, range=validated, decision=decision)
