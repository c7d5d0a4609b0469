# PATH: core/constants.py
"""
Constants for the Portal client.

Contains enums, defaults, and wire-level constants. Tunable thresholds
(query-size limits, chain aliases) live in the YAML tables under config/.
"""

from enum import Enum
from typing import Final

# =============================================================================
# PORTAL ENDPOINT DEFAULTS
# =============================================================================

DEFAULT_PORTAL_URL: Final[str] = "https://portal.sqd.dev"
PORTAL_STATUS_URL: Final[str] = "https://status.sqd.dev"

# Timing defaults (milliseconds)
DEFAULT_TIMEOUT_MS: Final[int] = 10_000  # point lookups, avg response ~200ms
STREAM_TIMEOUT_MS: Final[int] = 15_000  # streaming queries
DEFAULT_MAX_RETRIES: Final[int] = 2

# Backoff base for the exponential schedule: delay = 2 ** attempt * base
BACKOFF_BASE_SECONDS: Final[float] = 1.0

# Dataset list cache
DATASET_CACHE_TTL_SECONDS: Final[float] = 300.0  # 5 minutes

# Suggestions returned for an unknown dataset
MAX_DATASET_SUGGESTIONS: Final[int] = 5

# =============================================================================
# WIRE CONSTANTS
# =============================================================================

CONTENT_TYPE_JSON: Final[str] = "application/json"
ACCEPT_JSON: Final[str] = "application/json"
ACCEPT_NDJSON: Final[str] = "application/x-ndjson"
ACCEPT_ENCODING: Final[str] = "gzip"

HTTP_NO_CONTENT: Final[int] = 204
HTTP_BAD_REQUEST: Final[int] = 400
HTTP_NOT_FOUND: Final[int] = 404
HTTP_CONFLICT: Final[int] = 409
HTTP_TOO_MANY_REQUESTS: Final[int] = 429


class ChainType(str, Enum):
    """Chain families served by the Portal."""
    EVM = "evm"
    SOLANA = "solana"


class FinalityMode(str, Enum):
    """Which head governs a block range."""
    LATEST = "latest"
    FINALIZED = "finalized"


class QueryCategory(str, Enum):
    """Query categories with distinct cost profiles."""
    LOGS = "logs"
    TRANSACTIONS = "transactions"
    TRACES = "traces"
    STATE_DIFFS = "state_diffs"


class Severity(str, Enum):
    """Query-size decision severity."""
    NONE = "none"
    WARN = "warn"
    REJECT = "reject"


class LatencyBand(str, Enum):
    """Expected response time for an over-recommendation range."""
    FAST = "<1-3s"
    SLOW = "3-10s"
    VERY_SLOW = ">10s"


class ErrorKind(str, Enum):
    """
    Closed taxonomy of Portal failures.

    Classified kinds come from the error classifier; the remaining kinds are
    raised locally and never reach the network.
    """
    # Classified (network) failures
    TIMEOUT = "TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"
    REORG_CONFLICT = "REORG_CONFLICT"
    CLIENT_REQUEST = "CLIENT_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    SERVER_ERROR = "SERVER_ERROR"
    UNCLASSIFIED = "UNCLASSIFIED"

    # Local failures
    VALIDATION = "VALIDATION"
    DECODE = "DECODE"
    CONFIG = "CONFIG"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE_KINDS


_RETRYABLE_KINDS: Final[frozenset[ErrorKind]] = frozenset([
    ErrorKind.TIMEOUT,
    ErrorKind.RATE_LIMITED,
    ErrorKind.REORG_CONFLICT,
    ErrorKind.SERVER_ERROR,
])
