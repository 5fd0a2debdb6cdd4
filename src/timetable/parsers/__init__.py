from src.timetable.parsers.normalize import filter_by_group, normalize_grid
from src.timetable.parsers.workbook import detect_engine, read_grid

__all__ = [
    "normalize_grid",
    "filter_by_group",
    "read_grid",
    "detect_engine",
]
