"""Resilient HTTP retrieval for the source page and the schedule document.

Fetcher wraps a requests.Session in a bounded tenacity retry loop:
attempts run one at a time, attempt ``n`` waits ``n * backoff_base``
seconds (plus optional jitter) before the next one, and exhaustion surfaces
as a single RetrievalFailure naming the attempt count and the last error.
Bodies are streamed and cut off at the configured size limit.
"""

import time
from typing import Callable

import requests
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
    wait_random,
)

from src.timetable.config import TimetableConfig, get_config
from src.timetable.errors import (
    OversizedResponse,
    RateLimitError,
    RetrievalFailure,
    TransientError,
)
from src.timetable.headers import RequestShaper
from src.timetable.logging import get_logger

logger = get_logger(__name__)

RATE_LIMIT_STATUSES: frozenset[int] = frozenset({429, 503})
CHUNK_SIZE = 64 * 1024


class Fetcher:
    """Fetches bytes from a URL with retries, timeouts and header shaping."""

    def __init__(
        self,
        config: TimetableConfig | None = None,
        *,
        session: requests.Session | None = None,
        shaper: RequestShaper | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize Fetcher.

        Args:
            config: Pipeline configuration (defaults to the singleton).
            session: HTTP session, created on demand if omitted.
            shaper: Header builder, derived from config if omitted.
            sleep: Function used to wait between attempts.
        """
        self.config = config or get_config()
        self.session = session or requests.Session()
        self.shaper = shaper or RequestShaper(
            spoof_client_ip=self.config.spoof_client_ip,
            client_ip_pool=self.config.client_ip_pool,
        )
        self._sleep = sleep

    def fetch(
        self,
        url: str,
        *,
        referer: str | None = None,
        kind: str = "document",
        max_attempts: int | None = None,
        max_bytes: int | None = None,
    ) -> bytes:
        """Fetch ``url`` and return the full response body.

        The body is streamed and abandoned as soon as it grows past
        ``max_bytes``; an oversized response is not retried.

        Args:
            url: Absolute http(s) URL.
            referer: Referer header value (the source page for documents).
            kind: "page" or "document", selects the Accept header.
            max_attempts: Override for config.max_attempts.
            max_bytes: Override for config.max_document_size.

        Raises:
            RetrievalFailure: If every attempt failed.
            OversizedResponse: If the body exceeds the size limit.
            ValueError: If max_attempts is below 1.
        """
        attempts = self.config.max_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {attempts}")
        limit = self.config.max_document_size if max_bytes is None else max_bytes

        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=self._wait_strategy(),
            retry=retry_if_exception_type(TransientError),
            after=self._log_failed_attempt,
            before_sleep=self._log_backoff,
            sleep=self._sleep,
        )

        try:
            body = retrying(self._attempt, url, kind, referer, limit)
        except RetryError as e:
            last_attempt = e.last_attempt
            last_error = last_attempt.exception()
            logger.error(
                "fetch_exhausted",
                url=url,
                attempts=last_attempt.attempt_number,
                error=str(last_error),
            )
            raise RetrievalFailure(
                url, attempts=last_attempt.attempt_number, last_error=last_error
            ) from last_error
        except OversizedResponse as e:
            logger.error("fetch_oversized", url=url, limit=e.limit)
            raise

        logger.info("fetch_succeeded", url=url, kind=kind, size=len(body))
        return body

    def backoff_delay(self, attempt_number: int) -> float:
        """Deterministic part of the wait after failed attempt ``attempt_number``."""
        return attempt_number * self.config.backoff_base

    def _wait_strategy(self):
        base = self.config.backoff_base
        wait = wait_incrementing(start=base, increment=base)
        if self.config.backoff_jitter > 0:
            wait = wait + wait_random(0, self.config.backoff_jitter)
        return wait

    def _attempt(self, url: str, kind: str, referer: str | None, limit: int) -> bytes:
        """One bounded round-trip. Any failure except an oversized body is transient."""
        headers = self.shaper.headers_for(kind, referer=referer)
        try:
            response = self.session.get(
                url,
                headers=headers,
                timeout=self.config.attempt_timeout,
                allow_redirects=True,
                stream=True,
            )
        except requests.Timeout as e:
            raise TransientError(f"Timed out after {self.config.attempt_timeout}s") from e
        except requests.RequestException as e:
            raise TransientError(f"Network error: {e}") from e

        try:
            status = response.status_code
            if status in RATE_LIMIT_STATUSES:
                raise RateLimitError(f"HTTP {status}: upstream is throttling", status)
            if status != 200:
                raise TransientError(f"HTTP {status}", status)
            body = self._read_body(response, url, limit)
        finally:
            response.close()

        if not body:
            raise TransientError("HTTP 200 with empty body", status)
        return body

    def _read_body(self, response: requests.Response, url: str, limit: int) -> bytes:
        declared = response.headers.get("Content-Length", "")
        if declared.isdigit() and int(declared) > limit:
            raise OversizedResponse(url, limit)

        chunks: list[bytes] = []
        received = 0
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                received += len(chunk)
                if received > limit:
                    raise OversizedResponse(url, limit)
                chunks.append(chunk)
        except requests.Timeout as e:
            raise TransientError(
                f"Timed out reading body after {self.config.attempt_timeout}s"
            ) from e
        except requests.RequestException as e:
            raise TransientError(f"Network error while reading body: {e}") from e
        return b"".join(chunks)

    @staticmethod
    def _log_failed_attempt(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "fetch_attempt_failed",
            url=retry_state.args[0] if retry_state.args else None,
            attempt=retry_state.attempt_number,
            error=str(error),
            type=type(error).__name__,
        )

    @staticmethod
    def _log_backoff(retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.info(
            "fetch_backoff",
            attempt=retry_state.attempt_number,
            sleep_seconds=round(delay, 3),
        )
