"""Reads raw spreadsheet bytes into a rectangular grid of strings."""

import io
import math
from typing import Any

import pandas as pd

from src.timetable.errors import ParseFailure
from src.timetable.logging import get_logger

log = get_logger(__name__)

# Magic numbers mapped to the pandas engine able to read them.
SIGNATURE_ENGINES: tuple[tuple[bytes, str], ...] = (
    (b"\x50\x4b\x03\x04", "openpyxl"),  # ZIP container (XLSX)
    (b"\xd0\xcf\x11\xe0", "xlrd"),  # OLE2 compound file (XLS)
    (b"\x09\x08\x10\x00", "xlrd"),  # bare BIFF stream
)


def detect_engine(data: bytes) -> str | None:
    """Return the pandas engine for ``data``, or None if it isn't a workbook."""
    for signature, engine in SIGNATURE_ENGINES:
        if data.startswith(signature):
            return engine
    return None


def cell_text(value: Any) -> str:
    """Render one cell as trimmed text; blanks become ""."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    elif pd.isna(value):
        return ""
    return str(value).strip()


def read_grid(data: bytes) -> list[list[str]]:
    """Parse the first sheet of a workbook into rows of cell strings.

    Every row has the same width. Empty cells are "" (never None/NaN) so the
    normalizer can test emptiness uniformly.

    Raises:
        ParseFailure: If the bytes are empty, not a workbook, or unreadable.
    """
    if not data:
        raise ParseFailure("Schedule document is empty")

    engine = detect_engine(data)
    if engine is None:
        raise ParseFailure("Schedule document is not an Excel workbook")

    try:
        df = pd.read_excel(
            io.BytesIO(data),
            sheet_name=0,
            header=None,
            dtype=object,
            engine=engine,
        )
    except Exception as e:
        raise ParseFailure(f"Unreadable spreadsheet: {e}") from e

    grid = [[cell_text(value) for value in row] for row in df.itertuples(index=False)]
    log.debug("grid_read", engine=engine, rows=len(grid), cols=df.shape[1])
    return grid
