"""Grid normalization - turns the schedule sheet into flat ScheduleRecords.

Sheet layout (first sheet of the published workbook):

    col 0      col 1   col 2    col 3..N
    week       day     number   one column per group
    ---------  ------  -------  -------------------------
    нечётная   Пн      1        Физика       Химия
                       2        Математика
               Вт      1        ...

The week/day/number columns are merged vertically in the original sheet, so
only the first row of each block carries a value. Empty context cells take
the nearest non-empty value above them (forward-fill), computed in a single
pass with a running "last seen" value per context column.

Group identity comes from one of two layouts, chosen per document:
  header  - row 0 holds the group name of each subject column
  pattern - row 0 is not read for group names; the group code is embedded
            in the cell text and is extracted with a regex (e.g. "ИПБ-24")

In both layouts row 0 only seeds the forward-fill; records start at row 1.
A group code must stand alone: "ABCDE-1234" is not read as "BCDE-123".
"""

import re

from src.timetable.errors import ParseFailure
from src.timetable.logging import get_logger
from src.timetable.models import ScheduleRecord
from src.timetable.parsers.workbook import cell_text

log = get_logger(__name__)

CONTEXT_COLUMNS = ("week", "day", "number")
FIRST_SUBJECT_COLUMN = len(CONTEXT_COLUMNS)

DEFAULT_GROUP_PATTERN = r"(?<![A-ZА-ЯЁ])[A-ZА-ЯЁ]{2,4}-\d{2,3}(?!\d)"
DEFAULT_UNKNOWN_GROUP = "unknown"
DEFAULT_MISSING_MARKER = "undefined"


def normalize_grid(
    grid: list[list[object]],
    *,
    group_mode: str = "header",
    group_pattern: str = DEFAULT_GROUP_PATTERN,
    unknown_group: str = DEFAULT_UNKNOWN_GROUP,
    missing_marker: str = DEFAULT_MISSING_MARKER,
) -> list[ScheduleRecord]:
    """Reduce a sheet grid to schedule records.

    Records come out row by row, and left to right within a row.

    Args:
        grid: Rows of cell values; rows may be ragged or empty.
        group_mode: "header" or "pattern" (see module docstring).
        group_pattern: Regex for group codes in pattern mode.
        unknown_group: Group used when none can be determined.
        missing_marker: Cells containing this text are export artifacts.

    Returns:
        Records in row-major order; [] for sheets with fewer than 2 rows.

    Raises:
        ParseFailure: If the sheet has rows but no subject columns.
        ValueError: If group_mode is not recognized.
    """
    if group_mode not in ("header", "pattern"):
        raise ValueError(f"Unknown group mode {group_mode!r}")

    if len(grid) < 2:
        log.info("grid_too_small", rows=len(grid))
        return []

    width = max((len(row) for row in grid if row), default=0)
    if width <= FIRST_SUBJECT_COLUMN:
        raise ParseFailure(
            f"Expected group columns after week/day/number, sheet has {width} column(s)"
        )

    headers = list(grid[0] or []) if group_mode == "header" else []
    group_regex = re.compile(group_pattern)

    last_seen = ["" for _ in CONTEXT_COLUMNS]
    records: list[ScheduleRecord] = []

    for row_index, row in enumerate(grid):
        cells = list(row or [])

        for col in range(len(CONTEXT_COLUMNS)):
            value = _cell(cells, col)
            if value:
                last_seen[col] = value

        if row_index == 0:
            continue

        week, day, number = last_seen
        for col in range(FIRST_SUBJECT_COLUMN, len(cells)):
            subject = _cell(cells, col)
            if not _is_content(subject, missing_marker):
                continue

            if group_mode == "header":
                group = _cell(headers, col) or unknown_group
            else:
                match = group_regex.search(subject)
                group = match.group(0) if match else unknown_group

            records.append(
                ScheduleRecord(
                    week=week, day=day, number=number, subject=subject, group=group
                )
            )

    log.info("grid_normalized", rows=len(grid), records=len(records), mode=group_mode)
    return records


def filter_by_group(records: list[ScheduleRecord], group: str) -> list[ScheduleRecord]:
    """Records whose group equals ``group`` exactly, ignoring case and padding."""
    wanted = group.strip().upper()
    if not wanted:
        return []
    return [record for record in records if record.group.strip().upper() == wanted]


def _cell(cells: list[object], index: int) -> str:
    if index >= len(cells):
        return ""
    return cell_text(cells[index])


def _is_content(text: str, missing_marker: str) -> bool:
    """True if a subject cell holds real content, not a formatting leftover."""
    if len(text) <= 1:
        return False
    if missing_marker and missing_marker in text:
        return False
    return True
