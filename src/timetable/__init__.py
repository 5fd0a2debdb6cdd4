"""University timetable feed.

Locates the published schedule spreadsheet, downloads it with retries and
normalizes its merged-cell layout into flat schedule records.
"""

from src.timetable.models import LoadResult, ScheduleRecord, ScheduleSnapshot
from src.timetable.pipeline import SchedulePipeline

__all__ = [
    "SchedulePipeline",
    "ScheduleRecord",
    "ScheduleSnapshot",
    "LoadResult",
]
