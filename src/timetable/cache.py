"""In-memory cache of the last normalized schedule.

EMPTY -> POPULATED on store(); POPULATED -> EMPTY on invalidate(). There is
no expiry timer: invalidation only happens when a new document arrives or a
refresh is requested.
"""

from datetime import datetime

from src.timetable.logging import get_logger
from src.timetable.models import ScheduleRecord, ScheduleSnapshot

logger = get_logger(__name__)


class ScheduleCache:
    """Holds the most recent schedule and the time it was computed."""

    def __init__(self) -> None:
        self._records: list[ScheduleRecord] | None = None
        self._last_updated: datetime | None = None

    @property
    def is_populated(self) -> bool:
        return self._records is not None

    @property
    def last_updated(self) -> datetime | None:
        return self._last_updated

    def lookup(self) -> ScheduleSnapshot | None:
        """Cached snapshot marked ``from_cache=True``, or None when empty."""
        if self._records is None or self._last_updated is None:
            return None
        logger.debug("schedule_cache_hit", records=len(self._records))
        return ScheduleSnapshot(
            records=list(self._records),
            last_updated=self._last_updated,
            from_cache=True,
        )

    def store(self, records: list[ScheduleRecord], timestamp: datetime) -> ScheduleSnapshot:
        """Populate the cache and return the fresh (non-cached) snapshot."""
        self._records = list(records)
        self._last_updated = timestamp
        logger.info(
            "schedule_cache_stored",
            records=len(records),
            last_updated=timestamp.isoformat(),
        )
        return ScheduleSnapshot(records=list(records), last_updated=timestamp)

    def invalidate(self) -> None:
        if self._records is not None:
            logger.info("schedule_cache_invalidated")
        self._records = None
        self._last_updated = None
