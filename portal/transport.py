"""
portal/transport.py - Single-attempt HTTP transport.

Provides one Portal request per call with:
- Hard wall-clock deadline per attempt
- Content negotiation (JSON point lookups, gzip NDJSON streams)
- Body decoding on success
- Connection pooling and latency tracking

It never retries; failures come back as a RawOutcome for the classifier.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from core.constants import (
    ACCEPT_ENCODING,
    ACCEPT_JSON,
    ACCEPT_NDJSON,
    CONTENT_TYPE_JSON,
    DEFAULT_TIMEOUT_MS,
)
from core.exceptions import ResponseDecodeError
from core.logging import get_logger
from core.time import now_ms
from portal.ndjson import decode_body

logger = get_logger(__name__)


@dataclass
class TransportStats:
    """Statistics for the transport."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    timeouts: int = 0
    total_latency_ms: int = 0
    last_error: str | None = None

    @property
    def avg_latency_ms(self) -> int:
        if self.successful_requests == 0:
            return 0
        return self.total_latency_ms // self.successful_requests

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests


@dataclass
class RawOutcome:
    """
    Result of one attempt.

    Exactly one of these holds:
    - ok: 2xx, `payload` is the decoded body
    - timed_out: deadline expired or the connection was aborted
    - otherwise: non-2xx `status` with `body_text` for classification
    """
    url: str
    status: int | None = None
    body_text: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    elapsed_ms: int = 0
    payload: Any = None
    timed_out: bool = False
    network_error: str | None = None

    @property
    def ok(self) -> bool:
        return (
            not self.timed_out
            and self.status is not None
            and 200 <= self.status < 300
        )

    @property
    def retry_after(self) -> str | None:
        return self.headers.get("retry-after") or self.headers.get("Retry-After")


def build_headers(stream: bool) -> dict[str, str]:
    """Request headers for a point lookup or a streaming query."""
    return {
        "Content-Type": CONTENT_TYPE_JSON,
        "Accept-Encoding": ACCEPT_ENCODING,
        "Accept": ACCEPT_NDJSON if stream else ACCEPT_JSON,
    }


class PortalTransport:
    """
    HTTP transport for the Portal API.

    Holds one pooled httpx.AsyncClient; no per-request mutable state,
    so concurrent callers are safe.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        max_connections: int = 10,
    ):
        self._client = client
        self._owns_client = client is None
        self.max_connections = max_connections
        self.stats = TransportStats()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                limits=httpx.Limits(max_connections=self.max_connections),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def execute(
        self,
        url: str,
        method: str = "GET",
        body: Any = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        stream: bool = False,
    ) -> RawOutcome:
        """
        Execute one request with a hard deadline.

        Args:
            url: Absolute Portal URL
            method: HTTP method
            body: JSON-serializable request body
            timeout_ms: Wall-clock deadline for the whole attempt
            stream: Expect an NDJSON body

        Returns:
            RawOutcome

        Raises:
            ResponseDecodeError: 2xx body could not be decoded
        """
        client = await self._get_client()
        timeout_s = timeout_ms / 1000
        self.stats.total_requests += 1
        start = now_ms()

        def elapsed() -> int:
            return now_ms() - start

        try:
            response = await asyncio.wait_for(
                client.request(
                    method,
                    url,
                    json=body,
                    headers=build_headers(stream),
                    timeout=httpx.Timeout(timeout_s),
                ),
                timeout=timeout_s,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            self.stats.failed_requests += 1
            self.stats.timeouts += 1
            self.stats.last_error = f"Timeout after {elapsed()}ms"
            logger.debug(
                "Request deadline expired",
                extra={"context": {"url": url, "timeout_ms": timeout_ms}},
            )
            return RawOutcome(url=url, elapsed_ms=elapsed(), timed_out=True)
        except httpx.TransportError as e:
            self.stats.failed_requests += 1
            self.stats.last_error = str(e)
            logger.debug(
                "Request aborted",
                extra={"context": {"url": url, "error": repr(e)}},
            )
            return RawOutcome(
                url=url,
                elapsed_ms=elapsed(),
                timed_out=True,
                network_error=repr(e),
            )

        latency_ms = elapsed()
        outcome = RawOutcome(
            url=url,
            status=response.status_code,
            body_text=response.text,
            headers=response.headers,
            elapsed_ms=latency_ms,
        )

        if not outcome.ok:
            self.stats.failed_requests += 1
            self.stats.last_error = f"HTTP {response.status_code}"
            return outcome

        try:
            outcome.payload = decode_body(response.status_code, response.text, stream, url)
        except ResponseDecodeError as e:
            self.stats.failed_requests += 1
            self.stats.last_error = e.message
            raise
        self.stats.successful_requests += 1
        self.stats.total_latency_ms += latency_ms
        return outcome
