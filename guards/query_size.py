"""
guards/query_size.py - Query-size admission guard.

Pure pre-flight check: no I/O. Rejects queries wide enough to exhaust
memory or time out and annotates slow ones with an expected latency.

Thresholds come from config/query_limits.yaml, per category and split by
whether the caller supplied narrowing filters (addresses/topics/sighashes).
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from config import load_query_limits
from core.constants import LatencyBand, QueryCategory, Severity
from core.exceptions import ConfigError, QueryTooLargeError
from core.logging import get_logger
from core.models import QuerySizeDecision

logger = get_logger(__name__)


# =============================================================================
# THRESHOLD TABLE
# =============================================================================

# Latency bands by how far over the recommendation a range is
SLOW_FACTOR = 2
VERY_SLOW_FACTOR = 5


@dataclass(frozen=True)
class RangeThresholds:
    """Block-range width limits for one category."""
    filtered: int
    unfiltered: int

    def pick(self, has_filters: bool) -> int:
        return self.filtered if has_filters else self.unfiltered


@dataclass(frozen=True)
class QueryLimits:
    """Recommended and maximum widths for every query category."""
    recommended: Mapping[QueryCategory, RangeThresholds]
    maximum: Mapping[QueryCategory, RangeThresholds]
    filter_fields: Mapping[QueryCategory, List[str]]
    result_limit_warning: int = 10_000

    def recommended_for(self, category: QueryCategory, has_filters: bool) -> int:
        return self.recommended[category].pick(has_filters)

    def maximum_for(self, category: QueryCategory, has_filters: bool) -> int:
        return self.maximum[category].pick(has_filters)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueryLimits":
        """
        Build the table from a parsed query_limits.yaml.

        Raises:
            ConfigError: A category or threshold is missing or not positive
        """
        def table(section: str) -> Dict[QueryCategory, RangeThresholds]:
            raw = data.get(section) or {}
            result = {}
            for category in QueryCategory:
                entry = raw.get(category.value)
                if not entry:
                    raise ConfigError(
                        f"Missing {section} thresholds for {category.value}",
                        [f"Add '{section}.{category.value}' to query_limits.yaml"],
                        {"section": section, "category": category.value},
                    )
                thresholds = RangeThresholds(
                    filtered=int(entry["filtered"]),
                    unfiltered=int(entry["unfiltered"]),
                )
                if thresholds.filtered <= 0 or thresholds.unfiltered <= 0:
                    raise ConfigError(
                        f"Thresholds must be positive for {section}.{category.value}",
                        ["Use block counts greater than zero"],
                        {"section": section, "category": category.value},
                    )
                result[category] = thresholds
            return result

        fields = data.get("filter_fields") or {}
        return cls(
            recommended=table("recommended"),
            maximum=table("maximum"),
            filter_fields={c: list(fields.get(c.value) or []) for c in QueryCategory},
            result_limit_warning=int(data.get("result_limit_warning", 10_000)),
        )


_default_limits: Optional[QueryLimits] = None


def default_limits() -> QueryLimits:
    """Thresholds from config/query_limits.yaml (loaded once)."""
    global _default_limits
    if _default_limits is None:
        _default_limits = QueryLimits.from_dict(load_query_limits())
    return _default_limits


# =============================================================================
# DECISION
# =============================================================================

def expected_latency(block_range: int, recommended: int) -> LatencyBand:
    """Latency band scaled by how far over the recommendation the range is."""
    if block_range > recommended * VERY_SLOW_FACTOR:
        return LatencyBand.VERY_SLOW
    if block_range > recommended * SLOW_FACTOR:
        return LatencyBand.SLOW
    return LatencyBand.FAST


def _reject_message(
    block_range: int,
    has_filters: bool,
    category: QueryCategory,
    limits: QueryLimits,
) -> tuple[str, str]:
    maximum = limits.maximum_for(category, has_filters)
    recommended = limits.recommended_for(category, has_filters)

    if not has_filters:
        lines = [
            f"Query too large ({block_range:,} blocks unfiltered).",
            "",
            f"WARNING: Unfiltered {category.value} queries over "
            f"{recommended:,} blocks can exhaust memory.",
            "",
            "SOLUTION: Add filters to query specific data:",
        ]
        lines += [f"   - {field}" for field in limits.filter_fields.get(category, [])]
        lines += ["", f"ALTERNATIVE: Reduce range to <{maximum:,} blocks"]
        recommendation = (
            f"Add a filter to narrow the query, or reduce to the last "
            f"{recommended:,} blocks."
        )
        return "\n".join(lines), recommendation

    message = (
        f"Query too large ({block_range:,} blocks).\n\n"
        f"Even with filters, this exceeds the maximum safe range of {maximum:,} blocks.\n\n"
        f"Reduce block range to <{maximum:,} blocks"
    )
    recommendation = (
        f"Split into multiple queries of {recommended:,} blocks each, "
        f"or use a smaller time window."
    )
    return message, recommendation


def check_query_size(
    block_range: int,
    has_filters: bool,
    category: QueryCategory = QueryCategory.LOGS,
    result_limit: int = 0,
    limits: QueryLimits | None = None,
) -> QuerySizeDecision:
    """
    Decide whether a query may be sent.

    Args:
        block_range: to_block - from_block
        has_filters: Caller supplied narrowing filters
        category: Query category
        result_limit: Requested max result count (0 = none)
        limits: Threshold table (defaults to config/query_limits.yaml)

    Returns:
        QuerySizeDecision
    """
    limits = limits or default_limits()
    category = QueryCategory(category)
    recommended = limits.recommended_for(category, has_filters)
    maximum = limits.maximum_for(category, has_filters)

    if block_range > maximum:
        message, recommendation = _reject_message(block_range, has_filters, category, limits)
        return QuerySizeDecision(
            allowed=False,
            severity=Severity.REJECT,
            message=message,
            recommended_range=recommended,
            recommendation=recommendation,
        )

    warnings: List[str] = []
    latency = None
    recommendation = None

    if block_range > recommended:
        latency = expected_latency(block_range, recommended)
        warnings.append(
            f"Large block range ({block_range:,} blocks). "
            f"Expected response time: {latency.value}. "
            f"Recommended: <{recommended:,} blocks for <1s response."
        )
        recommendation = (
            f"For faster results, reduce block range to <{recommended:,} blocks."
            if has_filters
            else "Add filters (addresses, topics) to significantly improve performance."
        )

    if result_limit > limits.result_limit_warning:
        warnings.append(
            f"Large limit ({result_limit:,}). Response may be very large. "
            f"Consider a smaller limit or splitting the range."
        )

    if not warnings:
        return QuerySizeDecision(allowed=True, recommended_range=recommended)

    return QuerySizeDecision(
        allowed=True,
        severity=Severity.WARN,
        message=" ".join(warnings),
        recommended_range=recommended,
        recommendation=recommendation,
        expected_latency=latency,
    )


def enforce_query_size(
    block_range: int,
    has_filters: bool,
    category: QueryCategory = QueryCategory.LOGS,
    result_limit: int = 0,
    limits: QueryLimits | None = None,
) -> QuerySizeDecision:
    """
    check_query_size(), raising on reject.

    Raises:
        QueryTooLargeError: The decision was a reject
    """
    decision = check_query_size(block_range, has_filters, category, result_limit, limits)

    if not decision.allowed:
        raise QueryTooLargeError(
            decision.message,
            [decision.recommendation] if decision.recommendation else [],
            {
                "block_range": block_range,
                "category": QueryCategory(category).value,
                "has_filters": has_filters,
                "recommended_range": decision.recommended_range,
            },
            decision=decision,
        )

    if decision.has_warning:
        logger.warning(
            decision.message,
            extra={"context": {
                "block_range": block_range,
                "category": QueryCategory(category).value,
                "expected_latency": decision.expected_latency.value if decision.expected_latency else None,
            }},
        )

    return decision
