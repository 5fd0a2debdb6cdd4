"""Error hierarchy for schedule acquisition and normalization.

Retrieval classifies each failed attempt as transient (retried by the
tenacity loop in ``retrieval.py``) and surfaces exhaustion as a single
``RetrievalFailure``. Everything else is permanent for the current operation.

Example usage with tenacity:
    Retrying(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(3))
"""


class ScheduleError(Exception):
    """Base exception for all pipeline errors."""

    kind = "schedule_error"

    def to_payload(self) -> dict[str, object]:
        """Machine-readable error description for API clients."""
        return {"success": False, "error": self.kind, "message": str(self)}


class TransientError(ScheduleError):
    """A single retrieval attempt failed in a way that may succeed on retry.

    Examples: network timeouts, connection resets, HTTP 5xx, empty body.
    """

    kind = "transient_error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(TransientError):
    """Upstream is throttling (HTTP 429/503).

    Inherits from TransientError so the retry loop keeps going.
    """

    kind = "rate_limited"


class RetrievalFailure(ScheduleError):
    """All retry attempts for a resource were exhausted."""

    kind = "retrieval_failure"

    def __init__(self, url: str, attempts: int, last_error: BaseException | None) -> None:
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        noun = "attempt" if attempts == 1 else "attempts"
        super().__init__(
            f"Failed to fetch {url} after {attempts} {noun}: {last_error}"
        )


class LocatorFailure(ScheduleError):
    """Source page unreachable or unparsable.

    Never leaves the locator: it is absorbed and the fallback URL is used.
    """

    kind = "locator_failure"


class PermanentError(ScheduleError):
    """Failure that won't succeed on retry."""

    kind = "permanent_error"


class ParseFailure(PermanentError):
    """Bytes are not a readable spreadsheet, or expected columns are absent."""

    kind = "parse_failure"


class NotFoundFailure(PermanentError):
    """No current document exists and none could be acquired."""

    kind = "not_found"


class UnreadableDocument(PermanentError):
    """A local schedule file could not be opened or read."""

    kind = "unreadable_file"


class OversizedResponse(PermanentError):
    """A response body grew past the configured size limit while streaming."""

    kind = "too_large"

    def __init__(self, url: str, limit: int) -> None:
        self.url = url
        self.limit = limit
        super().__init__(f"Response from {url} exceeds {limit} bytes")
