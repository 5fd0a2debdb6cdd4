"""Shared test fixtures and utilities.

Fake HTTP sessions, in-memory workbooks and config helpers so no test
touches the network or the real upload directory.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Dict, List, Optional, Union

import openpyxl
import requests

from src.timetable.config import TimetableConfig
from src.timetable.logging import setup_logging

setup_logging(log_level="WARNING")

REPO_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = REPO_ROOT / "tests" / "data"

SCENARIO_GRID = [
    ["", "", "", "GR-1", "GR-2"],
    ["нечетная", "Пн", "1", "Физика", "Химия"],
    ["", "", "2", "Мат", ""],
]


def read_fixture(name: str) -> bytes:
    """Raw bytes of a committed file under tests/data/."""
    return (DATA_DIR / name).read_bytes()


def make_config(state_dir: Union[str, Path], **overrides) -> TimetableConfig:
    """Config isolated from the environment and .env, pointed at ``state_dir``."""
    values = {
        "state_dir": str(state_dir),
        "source_page_url": "",
        "fallback_document_url": "",
        "backoff_base": 2.0,
        "attempt_timeout": 5.0,
    }
    values.update(overrides)
    return TimetableConfig(_env_file=None, **values)


def make_workbook(rows: List[List[object]], title: str = "Расписание") -> bytes:
    """Build an .xlsx in memory; "" and None both become empty cells."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = title
    for row in rows:
        ws.append([None if value == "" else value for value in row])
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


# -----------------------------------------------------------------------------
# HTTP fakes
# -----------------------------------------------------------------------------


class FakeResponse:
    """Streamed response; ``error`` is raised after the first chunk is read."""

    def __init__(
        self,
        status_code: int = 200,
        content: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.status_code = status_code
        self.content = content
        self.headers = dict(headers or {})
        self.error = error
        self.bytes_read = 0
        self.closed = False

    def iter_content(self, chunk_size: int = 1, decode_unicode: bool = False):
        for start in range(0, len(self.content), chunk_size):
            chunk = self.content[start : start + chunk_size]
            self.bytes_read += len(chunk)
            yield chunk
            if self.error is not None:
                raise self.error

    def close(self) -> None:
        self.closed = True


Outcome = Union[FakeResponse, Exception]


class FakeSession:
    """Stands in for requests.Session.

    ``routes`` maps a URL to one outcome or a list of outcomes consumed in
    order; the last outcome repeats once the list is exhausted.
    """

    def __init__(self, routes: Dict[str, Union[Outcome, List[Outcome]]]) -> None:
        self.routes = {
            url: list(outcome) if isinstance(outcome, list) else [outcome]
            for url, outcome in routes.items()
        }
        self.calls: List[dict] = []

    def get(self, url, headers=None, timeout=None, allow_redirects=True, stream=False):
        self.calls.append(
            {"url": url, "headers": dict(headers or {}), "timeout": timeout, "stream": stream}
        )
        outcomes = self.routes.get(url)
        if not outcomes:
            raise requests.ConnectionError(f"no route for {url}")
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def urls(self) -> List[str]:
        return [call["url"] for call in self.calls]


class SleepRecorder:
    """Replacement for time.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def page_html(*links: str, title: Optional[str] = "Расписание занятий") -> bytes:
    """Minimal HTML page containing the given raw <a> snippets."""
    body = "\n".join(links)
    return (
        f"<html><head><title>{title}</title></head><body>{body}</body></html>"
    ).encode("utf-8")
