"""
portal/registry.py - Dataset registry with a TTL cache.

Pipeline:
1. list_datasets() serves the dataset list from a single cache slot
   (5 minute TTL by default); the caller that observes expiry refreshes it
2. validate_dataset_name() / resolve_dataset() map user input onto
   canonical dataset names using that list
3. get_metadata() / get_head() / get_finalized_head() always hit the Portal:
   heads move every few seconds and a stale head means a wrong range

There is no lock around the refresh. Concurrent callers that both see an
expired slot each fetch, and the last completed fetch replaces the slot.
The list is idempotent and replaceable, so the race only costs a
redundant request.
"""

import re
from typing import List, Optional

from config import get_chain_aliases
from core.constants import (
    DATASET_CACHE_TTL_SECONDS,
    DEFAULT_PORTAL_URL,
    MAX_DATASET_SUGGESTIONS,
    ChainType,
)
from core.exceptions import NotFoundError, ResponseDecodeError, UnknownDatasetError, ValidationError
from core.logging import get_logger
from core.models import BlockHead, CacheEntry, Dataset, DatasetMetadata
from core.time import Clock, SystemClock
from portal.chain import detect_chain_type
from portal.client import RetryingClient

logger = get_logger(__name__)


class DatasetRegistry:
    """
    Dataset discovery and per-dataset head lookups.

    Clock and client are injected so tests can advance time and script
    responses without sleeping or touching the network.
    """

    def __init__(
        self,
        client: RetryingClient,
        base_url: str = DEFAULT_PORTAL_URL,
        ttl_seconds: float = DATASET_CACHE_TTL_SECONDS,
        clock: Clock | None = None,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.ttl_seconds = ttl_seconds
        self.clock = clock or SystemClock()
        self._datasets: CacheEntry[List[Dataset]] | None = None
        self.refresh_count = 0

    def _url(self, *parts: str) -> str:
        return "/".join([self.base_url, "datasets", *parts])

    # =========================================================================
    # DATASET LIST (cached)
    # =========================================================================

    async def list_datasets(self) -> List[Dataset]:
        """
        List queryable datasets.

        Within the TTL the identical list object is returned.
        """
        entry = self._datasets
        if entry is not None and not entry.is_stale(self.clock.now(), self.ttl_seconds):
            return entry.value

        payload = await self.client.fetch_json(self._url())
        if not isinstance(payload, list):
            raise ResponseDecodeError(
                "Malformed dataset list: expected a JSON array",
                ["The Portal returned an unexpected /datasets payload"],
                {"url": self._url()},
            )

        datasets = [Dataset.from_api(item) for item in payload]
        self._datasets = CacheEntry(value=datasets, fetched_at=self.clock.now())
        self.refresh_count += 1

        logger.info(
            "Dataset list refreshed",
            extra={"context": {"datasets": len(datasets), "ttl_s": self.ttl_seconds}},
        )
        return datasets

    def invalidate(self) -> None:
        """Drop the cached dataset list."""
        self._datasets = None

    # =========================================================================
    # NAME RESOLUTION
    # =========================================================================

    @staticmethod
    def suggest_datasets(name: str, datasets: List[Dataset]) -> List[str]:
        """Up to 5 datasets whose name contains `name` or whose chain prefix `name` contains."""
        lower = name.lower()
        return [
            d.name
            for d in datasets
            if lower in d.name.lower() or d.chain_prefix in lower
        ][:MAX_DATASET_SUGGESTIONS]

    async def validate_dataset_name(self, name: str) -> Dataset:
        """
        Check a dataset name or alias against the cached list.

        Returns:
            The matching Dataset (canonical name in .name)

        Raises:
            UnknownDatasetError: No exact or alias match
        """
        datasets = await self.list_datasets()
        for dataset in datasets:
            if dataset.matches(name):
                return dataset

        raise UnknownDatasetError(
            name,
            self.suggest_datasets(name, datasets),
            available_count=len(datasets),
        )

    async def resolve_dataset(self, name: str) -> str:
        """
        Resolve user input to a canonical dataset name.

        Order: exact/alias match, common chain alias, "{name}-mainnet",
        partial name match (mainnet preferred).

        Raises:
            UnknownDatasetError: Nothing matched
        """
        datasets = await self.list_datasets()
        by_name = {d.name: d for d in datasets}

        for dataset in datasets:
            if dataset.matches(name):
                return dataset.name

        lower = name.lower()

        for dataset in datasets:
            if lower in (get_chain_aliases(dataset.name) or []):
                return dataset.name

        mainnet = f"{lower}-mainnet"
        if mainnet in by_name:
            return mainnet

        partial = [
            d for d in datasets
            if d.name.lower().startswith(lower)
            or f"-{lower}-" in d.name.lower()
            or ("-" in lower and lower in d.name.lower())
        ]
        if partial:
            preferred = next((d for d in partial if "-mainnet" in d.name), partial[0])
            logger.debug(
                "Dataset resolved by partial match",
                extra={"context": {"input": name, "dataset": preferred.name}},
            )
            return preferred.name

        raise UnknownDatasetError(
            name,
            self.suggest_datasets(name, datasets),
            available_count=len(datasets),
        )

    async def search_datasets(self, query: str) -> List[Dataset]:
        """
        Search datasets by name, alias, common alias, or name segment.

        Sorted exact match first, then prefix matches, then alphabetically.
        """
        lower = query.lower()
        def matches(d: Dataset) -> bool:
            name = d.name.lower()
            if lower in name:
                return True
            if any(lower in a.lower() for a in d.aliases):
                return True
            if any(a in lower or lower in a for a in get_chain_aliases(d.name) or []):
                return True
            return any(part in lower or lower in part for part in name.split("-"))

        def rank(d: Dataset) -> tuple:
            name = d.name.lower()
            return (name != lower, not name.startswith(lower), name)

        return sorted((d for d in await self.list_datasets() if matches(d)), key=rank)

    async def filter_datasets(
        self,
        chain_type: ChainType | None = None,
        pattern: str | None = None,
        realtime_only: bool = False,
    ) -> List[Dataset]:
        """
        Filter the dataset list.

        Args:
            chain_type: Keep only EVM or Solana datasets
            pattern: Case-insensitive regex over names and aliases
            realtime_only: Keep only datasets with real-time data
        """
        datasets = list(await self.list_datasets())

        if chain_type is not None:
            datasets = [d for d in datasets if detect_chain_type(d.name) == chain_type]

        if pattern:
            try:
                regex = re.compile(pattern, re.IGNORECASE)
            except re.error as e:
                raise ValidationError(
                    f"Invalid dataset pattern: {pattern}",
                    ["Use a valid regular expression, e.g. 'eth|base'"],
                    {"pattern": pattern, "error": str(e)},
                ) from e
            datasets = [
                d for d in datasets
                if regex.search(d.name) or any(regex.search(a) for a in d.aliases)
            ]

        if realtime_only:
            datasets = [d for d in datasets if d.supports_realtime]

        return datasets

    # =========================================================================
    # PER-DATASET LOOKUPS (never cached)
    # =========================================================================

    async def get_metadata(self, dataset: str) -> DatasetMetadata:
        payload = await self.client.fetch_json(self._url(dataset, "metadata"))
        return DatasetMetadata.from_api(payload)

    async def get_head(self, dataset: str) -> BlockHead:
        payload = await self.client.fetch_json(self._url(dataset, "head"))
        return BlockHead.from_api(payload)

    async def get_finalized_head(self, dataset: str) -> BlockHead:
        payload = await self.client.fetch_json(self._url(dataset, "finalized-head"))
        return BlockHead.from_api(payload)

    async def get_finalized_head_or_none(self, dataset: str) -> Optional[BlockHead]:
        """
        Finalized head, or None for datasets that do not track finality.

        A 404, an empty (204) body, or a JSON null mean "no finalized head";
        every other failure propagates.
        """
        try:
            payload = await self.client.fetch_json(self._url(dataset, "finalized-head"))
        except NotFoundError:
            payload = None

        if not payload:
            logger.debug(
                "Dataset has no finalized head",
                extra={"context": {"dataset": dataset}},
            )
            return None
        return BlockHead.from_api(payload)
