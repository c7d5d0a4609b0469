"""
Unit tests for error classification and remediation rules.
"""

import re

import pytest

from core.constants import ErrorKind
from core.exceptions import (
    ClientRequestError,
    NotFoundError,
    RateLimitedError,
    ReorgConflictError,
    RequestTimeoutError,
    ServerError,
    UnclassifiedError,
)
from portal import classifier
from portal.classifier import (
    REMEDIATION_RULES,
    RemediationRule,
    classify,
    classify_timeout,
    dataset_from_url,
    parse_retry_after,
    register_rule,
)

STREAM_URL = "https://portal.test/datasets/ethereum-mainnet/stream"


class TestStatusMapping:
    """Status code -> ErrorKind table."""

    @pytest.mark.parametrize("status,error_type,retryable", [
        (400, ClientRequestError, False),
        (401, ClientRequestError, False),
        (403, ClientRequestError, False),
        (404, NotFoundError, False),
        (409, ReorgConflictError, True),
        (429, RateLimitedError, True),
        (500, ServerError, True),
        (502, ServerError, True),
        (503, ServerError, True),
        (302, UnclassifiedError, False),
    ])
    def test_mapping(self, status, error_type, retryable):
        error = classify(status, "boom", {"url": STREAM_URL})
        assert isinstance(error, error_type)
        assert error.retryable is retryable

    def test_context_echoes_url_and_query(self):
        query = {"fromBlock": 1}
        error = classify(500, "x", {"url": STREAM_URL, "query": query})
        assert error.context["url"] == STREAM_URL
        assert error.context["query"] == query
        assert error.context["status"] == 500

    def test_server_error_points_to_status_page(self):
        error = classify(503, "unavailable")
        assert error.status == 503
        assert any("status.sqd.dev" in s for s in error.suggestions)

    def test_timeout(self):
        error = classify_timeout(15_000, {"url": STREAM_URL})
        assert isinstance(error, RequestTimeoutError)
        assert error.kind == ErrorKind.TIMEOUT
        assert "15000ms" in error.message
        assert error.retryable


class TestBadRequestRules:
    """400 remediation pattern matching."""

    def test_unknown_field(self):
        error = classify(400, "unknown field `foo`, expected one of ...")
        assert error.error_kind == "unknown_field"
        assert error.field == "foo"
        assert error.suggestions[0] == "Remove the unsupported field 'foo' from your query"

    def test_missing_field(self):
        error = classify(400, "missing field 'fromBlock'")
        assert error.error_kind == "missing_field"
        assert error.field == "fromBlock"
        assert "Add the required field 'fromBlock' to your query" in error.suggestions
        # fromBlock rule also contributes
        assert "Ensure fromBlock is a valid block number (integer)" in error.suggestions

    def test_to_block(self):
        error = classify(400, "toBlock must not be less than fromBlock")
        assert error.error_kind == "from_block"
        assert "Ensure toBlock >= fromBlock" in error.suggestions

    def test_invalid_address(self):
        error = classify(400, "invalid address: 0xZZ")
        assert error.error_kind == "invalid_address"
        assert error.field is None
        assert any("lowercase hex" in s for s in error.suggestions)

    def test_invalid_topic(self):
        error = classify(400, "invalid topic at position 0")
        assert error.error_kind == "invalid_topic"
        assert any("32-byte" in s for s in error.suggestions)

    def test_generic_fallback(self):
        error = classify(400, "something unexpected")
        assert error.error_kind == "generic"
        assert error.suggestions == classifier.GENERIC_400_SUGGESTIONS
        assert error.message == "Invalid request: something unexpected"

    def test_suggestions_not_duplicated(self):
        error = classify(400, "fromBlock ... toBlock ...")
        assert error.suggestions.count("Fetch the dataset head to find the latest block") == 1

    def test_register_rule(self, monkeypatch):
        monkeypatch.setattr(classifier, "REMEDIATION_RULES", list(REMEDIATION_RULES))
        register_rule(RemediationRule(
            name="range_too_wide",
            pattern=re.compile(r"range too wide"),
            suggest=lambda m: ["Split the range"],
        ), index=0)

        error = classify(400, "range too wide")
        assert error.error_kind == "range_too_wide"
        assert error.suggestions == ["Split the range"]


class TestNotFound:
    """404 dataset hints."""

    def test_names_dataset(self):
        error = classify(404, "not found", {"url": STREAM_URL})
        assert error.resource_hint == "ethereum-mainnet"
        assert error.suggestions[0] == "Dataset 'ethereum-mainnet' not found or not available"

    def test_without_dataset_segment(self):
        error = classify(404, "not found", {"url": "https://portal.test/other"})
        assert error.resource_hint is None
        assert error.suggestions[0] == "Verify the dataset name is correct"

    def test_dataset_from_url(self):
        assert dataset_from_url("https://p/datasets/base-mainnet/head") == "base-mainnet"
        assert dataset_from_url("https://p/datasets/base-mainnet") == "base-mainnet"
        assert dataset_from_url("https://p/other") is None
        assert dataset_from_url(None) is None


class TestRateLimited:
    """429 Retry-After handling."""

    def test_header_value(self):
        error = classify(429, "", retry_after="7")
        assert error.retry_after_seconds == 7
        assert error.message == "Rate limited. Retry after 7 seconds"
        assert error.suggestions[0] == "Wait 7 seconds before retrying"
        assert error.suggestions[1:] == [
            "Reduce the frequency of your requests",
            "Use smaller block ranges per query",
            "Consider caching results",
        ]

    def test_body_phrase(self):
        error = classify(429, "Too many requests. Retry after 3s")
        assert error.retry_after_seconds == 3

    def test_no_hint(self):
        error = classify(429, "Too many requests")
        assert error.retry_after_seconds is None
        assert error.suggestions[0] == "Wait a few seconds before retrying"

    def test_parse_retry_after(self):
        assert parse_retry_after("12") == 12
        assert parse_retry_after(" 1.5 ") == 1.5
        assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") is None
        assert parse_retry_after("-1") is None
        assert parse_retry_after(None, "Retry after 9s") == 9
        assert parse_retry_after("4", "Retry after 9s") == 4


class TestRendering:
    """Errors render to {message, suggestions, context}."""

    def test_render(self):
        rendered = classify(409, "", {"url": STREAM_URL}).render()
        assert rendered["kind"] == "REORG_CONFLICT"
        assert rendered["message"] == "Chain reorganization detected"
        assert len(rendered["suggestions"]) == 3
        assert rendered["context"]["url"] == STREAM_URL

    def test_str_lists_suggestions_and_context(self):
        text = str(classify(409, "", {"url": STREAM_URL}))
        assert text.startswith("[REORG_CONFLICT] Chain reorganization detected")
        assert "Suggestions:" in text
        assert "  1. Wait a few seconds" in text
        assert "Context:" in text
        assert STREAM_URL in text
