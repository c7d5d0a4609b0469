"""
portal/client.py - Retrying Portal client.

Wraps PortalTransport with a bounded retry policy driven by ErrorKind:
- 409 reorg, 429 rate limit, 5xx, timeouts: retry with backoff
- every other 4xx and undecodable bodies: fail after one attempt

Each attempt yields a tagged AttemptResult (Ok / Retryable / Fatal); the
loop driver alone decides whether to continue. Attempts are strictly
sequential and the backoff sleep is a cooperative await.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from core.constants import (
    BACKOFF_BASE_SECONDS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT_MS,
    STREAM_TIMEOUT_MS,
)
from core.exceptions import PortalError, RateLimitedError, ResponseDecodeError
from core.logging import get_logger
from portal.classifier import classify, classify_timeout
from portal.transport import PortalTransport, RawOutcome

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


# =============================================================================
# ATTEMPT RESULTS
# =============================================================================

@dataclass(frozen=True)
class Ok:
    """Attempt succeeded."""
    value: Any


@dataclass(frozen=True)
class Retryable:
    """
    Attempt failed transiently.

    `delay_seconds` is the server-mandated wait (Retry-After) or None to
    fall back to the exponential schedule.
    """
    error: PortalError
    delay_seconds: Optional[float] = None


@dataclass(frozen=True)
class Fatal:
    """Attempt failed in a way retrying cannot fix."""
    error: PortalError


AttemptResult = Union[Ok, Retryable, Fatal]


def backoff_delay(attempt: int, base_seconds: float = BACKOFF_BASE_SECONDS) -> float:
    """Exponential schedule: 2 ** attempt * base (attempt starts at 0)."""
    return (2 ** attempt) * base_seconds


def outcome_to_result(outcome: RawOutcome, timeout_ms: int, context: dict) -> AttemptResult:
    """Turn a transport outcome into a tagged attempt result."""
    if outcome.ok:
        return Ok(outcome.payload)

    if outcome.timed_out:
        ctx = dict(context)
        if outcome.network_error:
            ctx["network_error"] = outcome.network_error
        return Retryable(classify_timeout(timeout_ms, ctx))

    error = classify(outcome.status, outcome.body_text, context, outcome.retry_after)
    if not error.retryable:
        return Fatal(error)
    if isinstance(error, RateLimitedError):
        return Retryable(error, error.retry_after_seconds)
    return Retryable(error)


class RetryingClient:
    """
    Portal client with bounded retries.

    Holds no per-request state; safe to share between concurrent callers.
    """

    def __init__(
        self,
        transport: PortalTransport | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        stream_timeout_ms: int = STREAM_TIMEOUT_MS,
        backoff_base_seconds: float = BACKOFF_BASE_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ):
        self.transport = transport or PortalTransport()
        self.max_retries = max_retries
        self.timeout_ms = timeout_ms
        self.stream_timeout_ms = stream_timeout_ms
        self.backoff_base_seconds = backoff_base_seconds
        self._sleep = sleep

    async def close(self) -> None:
        await self.transport.close()

    async def _attempt(
        self,
        url: str,
        method: str,
        body: Any,
        timeout_ms: int,
        stream: bool,
        context: dict,
    ) -> AttemptResult:
        try:
            outcome = await self.transport.execute(
                url,
                method=method,
                body=body,
                timeout_ms=timeout_ms,
                stream=stream,
            )
        except ResponseDecodeError as e:
            e.context.update(context)
            return Fatal(e)
        return outcome_to_result(outcome, timeout_ms, context)

    async def request_with_retry(
        self,
        url: str,
        body: Any = None,
        *,
        method: str | None = None,
        timeout_ms: int | None = None,
        max_retries: int | None = None,
        stream: bool = False,
    ) -> Any:
        """
        Execute a request, retrying transient failures.

        Args:
            url: Absolute Portal URL
            body: JSON body (implies POST unless method is given)
            method: HTTP method override
            timeout_ms: Per-attempt deadline
            max_retries: Retries after the first attempt
            stream: Decode the body as NDJSON

        Returns:
            Decoded payload (list of records when streaming)

        Raises:
            PortalError: Fatal classification or the last retryable error
        """
        method = method or ("POST" if body is not None else "GET")
        if timeout_ms is None:
            timeout_ms = self.stream_timeout_ms if stream else self.timeout_ms
        if max_retries is None:
            max_retries = self.max_retries
        max_retries = max(0, max_retries)

        last_error: PortalError | None = None

        for attempt in range(max_retries + 1):
            context = {
                "url": url,
                "attempt": attempt + 1,
                "max_attempts": max_retries + 1,
            }
            if body is not None:
                context["query"] = body

            result = await self._attempt(url, method, body, timeout_ms, stream, context)

            if isinstance(result, Ok):
                if attempt > 0:
                    logger.info(
                        "Request succeeded after retry",
                        extra={"context": {"url": url, "attempt": attempt + 1}},
                    )
                return result.value

            if isinstance(result, Fatal):
                logger.error(
                    "Request failed",
                    extra={"context": {
                        "url": url,
                        "kind": result.error.kind.value,
                        "attempt": attempt + 1,
                    }},
                )
                raise result.error

            last_error = result.error
            if attempt >= max_retries:
                break

            delay = result.delay_seconds
            if delay is None:
                delay = backoff_delay(attempt, self.backoff_base_seconds)

            logger.warning(
                "Request failed, retrying",
                extra={"context": {
                    "url": url,
                    "kind": result.error.kind.value,
                    "attempt": attempt + 1,
                    "delay_s": delay,
                }},
            )
            await self._sleep(delay)

        logger.error(
            "Request failed after retries",
            extra={"context": {
                "url": url,
                "kind": last_error.kind.value if last_error else None,
                "attempts": max_retries + 1,
            }},
        )
        raise last_error

    async def fetch_json(self, url: str, timeout_ms: int | None = None) -> Any:
        """GET a JSON point lookup."""
        return await self.request_with_retry(url, timeout_ms=timeout_ms)

    async def stream(self, url: str, body: Any, timeout_ms: int | None = None) -> list:
        """POST a streaming query and decode the NDJSON records."""
        return await self.request_with_retry(url, body, timeout_ms=timeout_ms, stream=True)
