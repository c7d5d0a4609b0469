"""
core - Core types and utilities for the Portal client.

This package contains:
- constants.py: Enums, defaults, and wire constants
- exceptions.py: Typed exceptions with remediation suggestions
- models.py: Data models (Dataset, BlockHead, ValidatedRange, ...)
- time.py: Injectable clocks and freshness rules
- validators.py: Address validation and normalization
- logging.py: Structured JSON logging
"""

from core.constants import (
    ChainType,
    ErrorKind,
    FinalityMode,
    LatencyBand,
    QueryCategory,
    Severity,
)
from core.exceptions import (
    BlockRangeError,
    ClientRequestError,
    ConfigError,
    InvalidAddressError,
    NotFoundError,
    PortalError,
    QueryTooLargeError,
    RateLimitedError,
    ReorgConflictError,
    RequestTimeoutError,
    ResponseDecodeError,
    ServerError,
    UnclassifiedError,
    UnknownDatasetError,
    ValidationError,
)
from core.logging import get_logger, setup_logging
from core.models import (
    BlockHead,
    CacheEntry,
    Dataset,
    DatasetInfo,
    DatasetMetadata,
    QueryResult,
    QuerySizeDecision,
    ValidatedRange,
)
from core.time import Clock, ManualClock, SystemClock

__all__ = [
    # Constants
    "ChainType",
    "ErrorKind",
    "FinalityMode",
    "LatencyBand",
    "QueryCategory",
    "Severity",
    # Exceptions
    "BlockRangeError",
    "ClientRequestError",
    "ConfigError",
    "InvalidAddressError",
    "NotFoundError",
    "PortalError",
    "QueryTooLargeError",
    "RateLimitedError",
    "ReorgConflictError",
    "RequestTimeoutError",
    "ResponseDecodeError",
    "ServerError",
    "UnclassifiedError",
    "UnknownDatasetError",
    "ValidationError",
    # Models
    "BlockHead",
    "CacheEntry",
    "Dataset",
    "DatasetInfo",
    "DatasetMetadata",
    "QueryResult",
    "QuerySizeDecision",
    "ValidatedRange",
    # Time
    "Clock",
    "ManualClock",
    "SystemClock",
    # Logging
    "get_logger",
    "setup_logging",
]
