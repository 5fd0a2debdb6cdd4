"""SchedulePipeline - the acquisition and normalization facade.

Ties the pieces together for the query/upload surface:

    get_schedule()  cache hit -> snapshot (from_cache=True)
                    miss      -> current document, or locate + fetch one
                              -> read_grid -> normalize_grid -> cache.store

    load_from_bytes / load_from_url / load_from_source
                    accept a new document, replacing the current one and
                    invalidating the cache

Failures propagate as a single ScheduleError; the cache is never populated
with a partial result.
"""

from datetime import datetime, timezone
from typing import Callable

from src.timetable.config import TimetableConfig, get_config
from src.timetable.errors import NotFoundFailure, ParseFailure
from src.timetable.locator import DocumentLocator
from src.timetable.logging import get_logger
from src.timetable.models import LoadResult, ScheduleSnapshot
from src.timetable.parsers import filter_by_group, normalize_grid, read_grid
from src.timetable.parsers.workbook import detect_engine
from src.timetable.retrieval import Fetcher
from src.timetable.store import ScheduleStore

log = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SchedulePipeline:
    """Serves the normalized schedule and accepts new schedule documents."""

    def __init__(
        self,
        config: TimetableConfig | None = None,
        *,
        store: ScheduleStore | None = None,
        fetcher: Fetcher | None = None,
        locator: DocumentLocator | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config or get_config()
        self.store = store or ScheduleStore(
            state_dir=self.config.state_dir, document_name=self.config.document_name
        )
        self.fetcher = fetcher or Fetcher(self.config)
        self.locator = locator or DocumentLocator(self.fetcher, self.config)
        self._clock = clock

    # -- loading -----------------------------------------------------------

    def load_from_bytes(self, data: bytes, *, source: str = "upload") -> LoadResult:
        """Accept ``data`` as the current schedule document.

        Raises:
            ParseFailure: If the bytes are empty, too large, or not a workbook.
        """
        self._validate_document(data)
        with self.store.lock:
            self.store.replace_document(data)
        log.info("schedule_loaded", source=source, size=len(data))
        return LoadResult(size=len(data), source=source, accepted_at=self._clock())

    def load_from_url(self, url: str) -> LoadResult:
        """Download a spreadsheet from ``url`` and make it current.

        The current document is untouched if the download or validation fails.
        """
        url = url.strip()
        if not url:
            raise ValueError("url is required")
        log.info("schedule_download_started", url=url)
        data = self.fetcher.fetch(url, kind="document")
        return self.load_from_bytes(data, source=url)

    def load_from_source(self, page_url: str | None = None) -> LoadResult:
        """Locate the spreadsheet on the source page, then download it.

        The page lookup always finishes before the spreadsheet request starts;
        the spreadsheet request carries the page URL as Referer.
        """
        page_url = page_url or self.config.source_page_url
        if page_url:
            document_url = self.locator.locate(page_url)
        elif self.config.fallback_document_url:
            document_url = self.config.fallback_document_url
        else:
            raise NotFoundFailure("No source page or fallback document URL configured")

        data = self.fetcher.fetch(document_url, referer=page_url or None, kind="document")
        return self.load_from_bytes(data, source=document_url)

    # -- querying ----------------------------------------------------------

    def get_schedule(self) -> ScheduleSnapshot:
        """Return the normalized schedule, computing it on a cache miss.

        Raises:
            NotFoundFailure: No document exists and none could be acquired.
            RetrievalFailure: Acquiring a document from the source failed.
            ParseFailure: The current document could not be normalized.
        """
        with self.store.lock:
            cached = self.store.cache.lookup()
            if cached is not None:
                return cached

            document = self.store.document
            if document is None:
                document = self._acquire_document()

            grid = read_grid(document)
            records = normalize_grid(
                grid,
                group_mode=self.config.group_mode,
                group_pattern=self.config.group_pattern,
                unknown_group=self.config.unknown_group,
                missing_marker=self.config.missing_marker,
            )
            return self.store.cache.store(records, self._clock())

    def get_group_schedule(self, group: str) -> ScheduleSnapshot:
        """Schedule restricted to one group (exact, case-insensitive match)."""
        snapshot = self.get_schedule()
        return snapshot.model_copy(
            update={"records": filter_by_group(snapshot.records, group)}
        )

    def refresh(self) -> None:
        """Drop the cached schedule so the next query recomputes it."""
        with self.store.lock:
            self.store.cache.invalidate()

    def status(self) -> dict[str, object]:
        """Cache and document summary for health/landing pages."""
        with self.store.lock:
            document = self.store.document
            last_updated = self.store.cache.last_updated
            return {
                "cache": "populated" if self.store.cache.is_populated else "empty",
                "lastUpdated": last_updated.isoformat() if last_updated else None,
                "hasDocument": document is not None,
                "documentSize": len(document) if document is not None else 0,
                "sourcePage": self.config.source_page_url or None,
            }

    # -- helpers -----------------------------------------------------------

    def _acquire_document(self) -> bytes:
        if not (self.config.source_page_url or self.config.fallback_document_url):
            raise NotFoundFailure(
                "Schedule not loaded yet. Upload a file or load one by URL first"
            )
        log.info("schedule_acquire_from_source", page_url=self.config.source_page_url)
        self.load_from_source()
        document = self.store.document
        if document is None:
            raise NotFoundFailure("Schedule document could not be established")
        return document

    def _validate_document(self, data: bytes) -> None:
        if not data:
            raise ParseFailure("Schedule document is empty")
        if len(data) > self.config.max_document_size:
            raise ParseFailure(
                f"Schedule document exceeds {self.config.max_document_size} bytes"
            )
        if detect_engine(data) is None:
            raise ParseFailure("Schedule document is not an Excel workbook")
