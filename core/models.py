# PATH: core/models.py
"""
Core data models for the Portal client.

WIRE SHAPES
===========
Dataset:          {"dataset": str, "aliases": [str], "real_time": bool}
DatasetMetadata:  Dataset + {"start_block": int}
BlockHead:        {"number": int, "hash": str}

All models are immutable. The dataset list is replaced as a whole on
cache refresh, never merged.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

from core.constants import ChainType, LatencyBand, Severity
from core.exceptions import ResponseDecodeError
from core.time import is_fresh

T = TypeVar("T")


def _require(payload: Any, key: str, kind: str) -> Any:
    if not isinstance(payload, dict) or key not in payload:
        raise ResponseDecodeError(
            f"Malformed {kind} payload: missing '{key}'",
            ["The Portal response did not match the expected shape"],
            {"payload": payload},
        )
    return payload[key]


@dataclass(frozen=True)
class Dataset:
    """One queryable chain dataset."""
    name: str
    aliases: frozenset[str] = field(default_factory=frozenset)
    supports_realtime: bool = False

    def matches(self, name: str) -> bool:
        """Exact name or alias match."""
        return name == self.name or name in self.aliases

    @property
    def chain_prefix(self) -> str:
        return self.name.split("-")[0].lower()

    @classmethod
    def from_api(cls, payload: dict) -> "Dataset":
        return cls(
            name=_require(payload, "dataset", "dataset"),
            aliases=frozenset(payload.get("aliases") or ()),
            supports_realtime=bool(payload.get("real_time", False)),
        )

    def to_dict(self) -> dict:
        return {
            "dataset": self.name,
            "aliases": sorted(self.aliases),
            "real_time": self.supports_realtime,
        }


@dataclass(frozen=True)
class DatasetMetadata(Dataset):
    """Dataset plus the earliest block it serves."""
    start_block: int = 0

    @classmethod
    def from_api(cls, payload: dict) -> "DatasetMetadata":
        return cls(
            name=_require(payload, "dataset", "metadata"),
            aliases=frozenset(payload.get("aliases") or ()),
            supports_realtime=bool(payload.get("real_time", False)),
            start_block=int(_require(payload, "start_block", "metadata")),
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["start_block"] = self.start_block
        return data


@dataclass(frozen=True)
class BlockHead:
    """
    Latest or latest finalized block of a dataset.

    Which one it is depends on the caller's finality mode.
    """
    number: int
    hash: str = ""

    @classmethod
    def from_api(cls, payload: dict) -> "BlockHead":
        return cls(
            number=int(_require(payload, "number", "head")),
            hash=str(payload.get("hash") or ""),
        )

    def to_dict(self) -> dict:
        return {"number": self.number, "hash": self.hash}


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cached value with its fetch time (clock seconds)."""
    value: T
    fetched_at: float

    def is_stale(self, now: float, ttl_seconds: float) -> bool:
        return not is_fresh(self.fetched_at, ttl_seconds, now)


@dataclass(frozen=True)
class ValidatedRange:
    """
    Block range checked against dataset bounds.

    Guarantees start_block <= from_block <= to_block <= head.number.
    """
    from_block: int
    to_block: int
    head: BlockHead
    warning: Optional[str] = None

    @property
    def block_range(self) -> int:
        return self.to_block - self.from_block

    def to_dict(self) -> dict:
        return {
            "from_block": self.from_block,
            "to_block": self.to_block,
            "head": self.head.to_dict(),
            "warning": self.warning,
        }


@dataclass(frozen=True)
class QuerySizeDecision:
    """Outcome of the query-size guard."""
    allowed: bool
    severity: Severity = Severity.NONE
    message: Optional[str] = None
    recommended_range: Optional[int] = None
    recommendation: Optional[str] = None
    expected_latency: Optional[LatencyBand] = None

    @property
    def has_warning(self) -> bool:
        return self.severity == Severity.WARN


@dataclass(frozen=True)
class DatasetInfo:
    """Dataset metadata enriched with head and chain classification."""
    metadata: DatasetMetadata
    head: BlockHead
    chain_type: ChainType
    is_l2: bool

    def to_dict(self) -> dict:
        data = self.metadata.to_dict()
        data.update({
            "head": self.head.to_dict(),
            "chain_type": self.chain_type.value,
            "is_l2": self.is_l2,
        })
        return data


@dataclass(frozen=True)
class QueryResult:
    """Decoded records of a streaming query and the range that produced them."""
    records: list
    range: ValidatedRange
    decision: QuerySizeDecision

    def __len__(self) -> int:
        return len(self.records)
