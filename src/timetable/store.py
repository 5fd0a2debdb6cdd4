"""Persistence for the current schedule document and its cache.

ScheduleStore owns the single "current" spreadsheet blob (kept on disk so a
restart still serves the last upload) together with the ScheduleCache built
from it. A newly accepted document replaces the old one wholesale and always
invalidates the cache.
"""

import os
import threading
from pathlib import Path

from src.timetable.cache import ScheduleCache
from src.timetable.logging import get_logger

logger = get_logger(__name__)


class ScheduleStore:
    """Current document + cache entry, guarded by one reentrant lock.

    Callers hold ``lock`` across read-modify-write sequences (check cache,
    recompute, store) so a concurrent load cannot interleave with them.
    """

    def __init__(
        self, state_dir: str = "data/uploads", document_name: str = "current-schedule.xlsx"
    ) -> None:
        """Initialize ScheduleStore.

        Args:
            state_dir: Directory holding the current document.
            document_name: File name of the current document.
        """
        self.state_dir = Path(state_dir)
        self.document_file = self.state_dir / document_name
        self.cache = ScheduleCache()
        self.lock = threading.RLock()
        self._document: bytes | None = None
        self._loaded = False

        self.state_dir.mkdir(parents=True, exist_ok=True)

        logger.info("schedule_store_initialized", document_file=str(self.document_file))

    @property
    def document(self) -> bytes | None:
        """Raw bytes of the current document, read from disk on first access."""
        with self.lock:
            if not self._loaded:
                if self.document_file.exists():
                    self._document = self.document_file.read_bytes()
                    logger.info(
                        "document_restored",
                        path=str(self.document_file),
                        size=len(self._document),
                    )
                self._loaded = True
            return self._document

    def has_document(self) -> bool:
        return self.document is not None

    def replace_document(self, data: bytes) -> None:
        """Persist ``data`` as the current document and invalidate the cache."""
        with self.lock:
            tmp_file = self.document_file.with_suffix(self.document_file.suffix + ".tmp")
            tmp_file.write_bytes(data)
            os.replace(tmp_file, self.document_file)

            self._document = data
            self._loaded = True
            self.cache.invalidate()
            logger.info("document_replaced", path=str(self.document_file), size=len(data))

    def clear_document(self) -> None:
        """Delete the current document and invalidate the cache."""
        with self.lock:
            if self.document_file.exists():
                self.document_file.unlink()
                logger.info("document_cleared", path=str(self.document_file))
            else:
                logger.debug("document_clear_skipped", reason="file_not_found")
            self._document = None
            self._loaded = True
            self.cache.invalidate()
