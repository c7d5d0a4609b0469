"""
portal/classifier.py - Error classification and remediation.

Maps raw failure signals (status code, body text, aborted attempt) onto the
closed ErrorKind taxonomy. Each error carries ordered suggestions and a
context map echoing the offending URL/query.

The Portal reports request problems only as prose. 400 remediation is
therefore a best-effort pattern match over the body text, kept in an
ordered rule table (REMEDIATION_RULES) that can be extended with
register_rule() without touching transport or retry code. When no rule
matches, generic suggestions are returned.
"""

import math
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern

from core.constants import (
    HTTP_BAD_REQUEST,
    HTTP_CONFLICT,
    HTTP_NOT_FOUND,
    HTTP_TOO_MANY_REQUESTS,
    PORTAL_STATUS_URL,
)
from core.exceptions import (
    ClientRequestError,
    NotFoundError,
    PortalError,
    RateLimitedError,
    ReorgConflictError,
    RequestTimeoutError,
    ServerError,
    UnclassifiedError,
)
from core.logging import get_logger

logger = get_logger(__name__)

DATASET_PATH_RE = re.compile(r"/datasets/([^/?#]+)")
RETRY_AFTER_BODY_RE = re.compile(r"Retry after (\d+)s")


# =============================================================================
# 400 REMEDIATION RULES
# =============================================================================

@dataclass(frozen=True)
class RemediationRule:
    """
    One pattern over a 400 body.

    `suggest` receives the match and returns suggestions; `field` extracts
    the offending field name (None when the rule does not name one).
    """
    name: str
    pattern: Pattern[str]
    suggest: Callable[[re.Match], List[str]]
    field: Callable[[re.Match], Optional[str]] = lambda m: None


def _group_or_none(match: re.Match) -> Optional[str]:
    return match.group(1) if match.groups() and match.group(1) else None


def _unknown_field(match: re.Match) -> List[str]:
    name = _group_or_none(match)
    if not name:
        return ["Check the Portal API documentation for valid field names"]
    return [
        f"Remove the unsupported field '{name}' from your query",
        "Check the Portal API documentation for valid field names",
    ]


def _missing_field(match: re.Match) -> List[str]:
    name = _group_or_none(match)
    if not name:
        return ["Add the missing required field to your query"]
    return [f"Add the required field '{name}' to your query"]


REMEDIATION_RULES: List[RemediationRule] = [
    RemediationRule(
        name="unknown_field",
        pattern=re.compile(r"unknown field(?: [`'\"](\w+)[`'\"])?"),
        suggest=_unknown_field,
        field=_group_or_none,
    ),
    RemediationRule(
        name="missing_field",
        pattern=re.compile(r"missing field(?: [`'\"](\w+)[`'\"])?"),
        suggest=_missing_field,
        field=_group_or_none,
    ),
    RemediationRule(
        name="from_block",
        pattern=re.compile(r"fromBlock"),
        suggest=lambda m: [
            "Ensure fromBlock is a valid block number (integer)",
            "Fetch the dataset head to find the latest block",
        ],
        field=lambda m: "fromBlock",
    ),
    RemediationRule(
        name="to_block",
        pattern=re.compile(r"toBlock"),
        suggest=lambda m: [
            "Ensure toBlock >= fromBlock",
            "Fetch the dataset head to find the latest block",
        ],
        field=lambda m: "toBlock",
    ),
    RemediationRule(
        name="invalid_address",
        pattern=re.compile(r"invalid address"),
        suggest=lambda m: [
            "Use lowercase hex addresses (e.g., '0xabc...')",
            "Ensure addresses are 42 characters long (0x + 40 hex digits)",
        ],
    ),
    RemediationRule(
        name="invalid_topic",
        pattern=re.compile(r"invalid topic"),
        suggest=lambda m: [
            "Use 32-byte hex topics (e.g., '0x' + 64 hex digits)",
            "Ensure topic0, topic1, etc. are correctly formatted",
        ],
    ),
]

GENERIC_400_SUGGESTIONS = [
    "Verify all query parameters are correctly formatted",
    "Check that addresses are lowercase hex strings",
    "Ensure block numbers are valid integers",
]


def register_rule(rule: RemediationRule, index: Optional[int] = None) -> None:
    """
    Add a remediation rule.

    Rules are evaluated in order; every matching rule contributes
    suggestions and the first match names the error kind and field.
    """
    if index is None:
        REMEDIATION_RULES.append(rule)
    else:
        REMEDIATION_RULES.insert(index, rule)


# =============================================================================
# HELPERS
# =============================================================================

def parse_retry_after(header: Optional[str], body_text: str = "") -> Optional[float]:
    """
    Seconds to wait before retrying a 429.

    The Retry-After header wins; otherwise a "Retry after Ns" phrase in the
    body is used. HTTP-date headers are not supported and are ignored.
    """
    if header is not None:
        try:
            seconds = float(header.strip())
        except ValueError:
            seconds = None
        if seconds is not None and math.isfinite(seconds) and seconds >= 0:
            return seconds

    match = RETRY_AFTER_BODY_RE.search(body_text or "")
    if match:
        return float(match.group(1))
    return None


def dataset_from_url(url: Optional[str]) -> Optional[str]:
    """Dataset segment of a /datasets/{name}/... URL."""
    if not url:
        return None
    match = DATASET_PATH_RE.search(url)
    return match.group(1) if match else None


def _format_seconds(seconds: float) -> str:
    return str(int(seconds)) if float(seconds).is_integer() else f"{seconds:g}"


# =============================================================================
# CLASSIFIERS
# =============================================================================

def classify_client_error(status: int, body_text: str, context: dict) -> ClientRequestError:
    """Classify a 4xx caller error using the remediation rule table."""
    suggestions: List[str] = []
    error_kind = "generic"
    field = None

    if status == HTTP_BAD_REQUEST:
        for rule in REMEDIATION_RULES:
            match = rule.pattern.search(body_text)
            if not match:
                continue
            if error_kind == "generic":
                error_kind = rule.name
                field = rule.field(match)
            for suggestion in rule.suggest(match):
                if suggestion not in suggestions:
                    suggestions.append(suggestion)

    if not suggestions:
        suggestions = list(GENERIC_400_SUGGESTIONS)

    message = f"Invalid request: {body_text}" if status == HTTP_BAD_REQUEST \
        else f"Request rejected ({status}): {body_text}"

    return ClientRequestError(
        message,
        suggestions,
        context,
        error_kind=error_kind,
        field=field,
        status=status,
    )


def classify_not_found(body_text: str, context: dict) -> NotFoundError:
    dataset = dataset_from_url(context.get("url"))
    if dataset:
        suggestions = [
            f"Dataset '{dataset}' not found or not available",
            "List datasets to see available datasets",
            "Search datasets by chain name",
        ]
    else:
        suggestions = [
            "Verify the dataset name is correct",
            "List datasets to see all available datasets",
        ]
    return NotFoundError(
        f"Resource not found: {body_text}",
        suggestions,
        context,
        resource_hint=dataset,
    )


def classify_rate_limited(
    body_text: str,
    context: dict,
    retry_after: Optional[float],
) -> RateLimitedError:
    if retry_after is not None:
        seconds = _format_seconds(retry_after)
        message = f"Rate limited. Retry after {seconds} seconds"
        suggestions = [f"Wait {seconds} seconds before retrying"]
    else:
        message = "Rate limited"
        suggestions = ["Wait a few seconds before retrying"]
    suggestions += [
        "Reduce the frequency of your requests",
        "Use smaller block ranges per query",
        "Consider caching results",
    ]
    return RateLimitedError(
        message,
        suggestions,
        context,
        retry_after_seconds=retry_after,
    )


def classify_timeout(timeout_ms: int, context: Optional[dict] = None) -> RequestTimeoutError:
    """Error for an attempt that exceeded its deadline or was aborted."""
    return RequestTimeoutError(
        f"Request timeout after {timeout_ms}ms",
        [
            f"Request timed out after {timeout_ms}ms",
            "Try reducing the block range (query fewer blocks)",
            "Add more specific filters (addresses, topics) to reduce result size",
            "Increase the request timeout",
        ],
        context,
    )


def classify(
    status: int,
    body_text: str = "",
    context: Optional[dict] = None,
    retry_after: Optional[str] = None,
) -> PortalError:
    """
    Classify a failed HTTP response.

    Args:
        status: HTTP status code
        body_text: Response body (free-text server message)
        context: Diagnostics echoed on the error (url, query, attempt, ...)
        retry_after: Raw Retry-After header value, if any

    Returns:
        A PortalError subclass tagged with its ErrorKind
    """
    context = dict(context or {})
    context.setdefault("status", status)
    body_text = body_text or ""

    if status == HTTP_NOT_FOUND:
        return classify_not_found(body_text, context)

    if status == HTTP_CONFLICT:
        return ReorgConflictError(
            "Chain reorganization detected",
            [
                "Wait a few seconds and retry with the same parameters",
                "Query finalized blocks only (older blocks that won't reorg)",
                "For recent data, use smaller block ranges (< 100 blocks)",
            ],
            context,
        )

    if status == HTTP_TOO_MANY_REQUESTS:
        return classify_rate_limited(
            body_text, context, parse_retry_after(retry_after, body_text)
        )

    if 400 <= status < 500:
        return classify_client_error(status, body_text, context)

    if status >= 500:
        return ServerError(
            f"Portal server error ({status}): {body_text}",
            [
                "This is a Portal API infrastructure issue",
                "Wait a few minutes and retry",
                "Try a different dataset or smaller block range",
                f"Check Portal status at {PORTAL_STATUS_URL}",
            ],
            context,
            status=status,
        )

    logger.warning(
        "Unexpected Portal status",
        extra={"context": {"status": status, "url": context.get("url")}},
    )
    return UnclassifiedError(
        f"Unexpected Portal response ({status}): {body_text}",
        ["Review the error details and query parameters below"],
        context,
    )
