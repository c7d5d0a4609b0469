# PATH: core/exceptions.py
"""
Typed exceptions for the Portal client.

Every failure surfaced to a caller is a PortalError carrying:
- kind: ErrorKind tag (drives retry decisions)
- suggestions: ordered, human-readable remediation steps
- context: machine-usable diagnostics (url, query, attempt, ...)
"""

import json
from typing import Any, Optional

from core.constants import ErrorKind


class PortalError(Exception):
    """Base exception for the Portal client."""

    kind: ErrorKind = ErrorKind.UNCLASSIFIED

    def __init__(
        self,
        message: str,
        suggestions: Optional[list[str]] = None,
        context: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.suggestions = list(suggestions or [])
        self.context = dict(context or {})

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def render(self) -> dict[str, Any]:
        """Render as {message, suggestions, context}."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "suggestions": list(self.suggestions),
            "context": dict(self.context),
        }

    def __str__(self):
        parts = [f"[{self.kind.value}] {self.message}"]

        if self.suggestions:
            parts.append("")
            parts.append("Suggestions:")
            for i, suggestion in enumerate(self.suggestions, start=1):
                parts.append(f"  {i}. {suggestion}")

        if self.context:
            parts.append("")
            parts.append("Context:")
            for key, value in self.context.items():
                parts.append(f"  {key}: {json.dumps(value, default=str)}")

        return "\n".join(parts)


# =============================================================================
# CLASSIFIED (NETWORK) ERRORS
# =============================================================================

class RequestTimeoutError(PortalError):
    """Attempt exceeded its deadline or the connection was aborted."""
    kind = ErrorKind.TIMEOUT


class RateLimitedError(PortalError):
    """Portal throttled the request (429)."""
    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        suggestions: Optional[list[str]] = None,
        context: Optional[dict] = None,
        retry_after_seconds: Optional[float] = None,
    ):
        super().__init__(message, suggestions, context)
        self.retry_after_seconds = retry_after_seconds


class ReorgConflictError(PortalError):
    """Requested range was affected by a chain reorganization (409)."""
    kind = ErrorKind.REORG_CONFLICT


class ClientRequestError(PortalError):
    """
    Caller error (4xx other than 404/409/429).

    `error_kind` names the remediation rule that matched the server message
    ("generic" when none did); `field` is the offending field when known.
    """
    kind = ErrorKind.CLIENT_REQUEST

    def __init__(
        self,
        message: str,
        suggestions: Optional[list[str]] = None,
        context: Optional[dict] = None,
        error_kind: str = "generic",
        field: Optional[str] = None,
        status: int = 400,
    ):
        super().__init__(message, suggestions, context)
        self.error_kind = error_kind
        self.field = field
        self.status = status


class NotFoundError(PortalError):
    """Resource does not exist (404)."""
    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        message: str,
        suggestions: Optional[list[str]] = None,
        context: Optional[dict] = None,
        resource_hint: Optional[str] = None,
    ):
        super().__init__(message, suggestions, context)
        self.resource_hint = resource_hint


class ServerError(PortalError):
    """Portal infrastructure failure (5xx)."""
    kind = ErrorKind.SERVER_ERROR

    def __init__(
        self,
        message: str,
        suggestions: Optional[list[str]] = None,
        context: Optional[dict] = None,
        status: int = 500,
    ):
        super().__init__(message, suggestions, context)
        self.status = status


class UnclassifiedError(PortalError):
    """Failure outside the known status-code contract."""
    kind = ErrorKind.UNCLASSIFIED


# =============================================================================
# LOCAL ERRORS (never reach the network)
# =============================================================================

class ValidationError(PortalError):
    """Request rejected before any network call."""
    kind = ErrorKind.VALIDATION


class UnknownDatasetError(ValidationError):
    """Dataset name matches neither a dataset nor an alias."""

    def __init__(
        self,
        dataset: str,
        candidates: Optional[list[str]] = None,
        available_count: int = 0,
    ):
        self.dataset = dataset
        self.candidates = list(candidates or [])

        message = f"Unknown dataset: '{dataset}'."
        if self.candidates:
            message += f" Did you mean: {', '.join(self.candidates)}?"

        suggestions = [f"Did you mean '{name}'?" for name in self.candidates]
        suggestions += [
            f"List datasets to see all {available_count} available datasets",
            "Search datasets by chain name (e.g., 'ethereum', 'base')",
            "Common aliases: 'ethereum', 'polygon', 'base', 'arbitrum', 'optimism'",
        ]
        super().__init__(
            message,
            suggestions,
            {"dataset": dataset, "available_datasets": available_count},
        )


class BlockRangeError(ValidationError):
    """Requested block range cannot be served."""


class QueryTooLargeError(ValidationError):
    """Query-size guard rejected the request."""

    def __init__(
        self,
        message: str,
        suggestions: Optional[list[str]] = None,
        context: Optional[dict] = None,
        decision=None,
    ):
        super().__init__(message, suggestions, context)
        self.decision = decision


class InvalidAddressError(ValidationError):
    """Address does not match the chain's format."""


class ResponseDecodeError(PortalError):
    """Response body could not be decoded; no partial results are returned."""
    kind = ErrorKind.DECODE


class ConfigError(PortalError):
    """Configuration value is missing or malformed."""
    kind = ErrorKind.CONFIG
