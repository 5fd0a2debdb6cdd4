"""Pydantic models for schedule data.

All data structures use Pydantic v2 for validation, serialization, and type safety.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class ScheduleRecord(BaseModel):
    """One teaching slot for one group.

    Produced by the normalizer from a single subject cell. ``week``, ``day``
    and ``number`` may be inherited from rows above (merged cells in the
    source sheet); ``subject`` and ``group`` always belong to the cell itself.
    """

    week: str = ""  # "нечётная", "чётная" or blank
    day: str = ""  # "Пн", "Понедельник", ...
    number: str = ""  # period, usually numeric text like "1"
    subject: str  # raw cell text, trimmed
    group: str  # "ИПБ-24-1", or the unknown-group sentinel

    @field_validator("subject")
    @classmethod
    def _subject_has_content(cls, value: str) -> str:
        value = value.strip()
        if len(value) <= 1:
            raise ValueError("subject must be longer than one character")
        return value


class ScheduleSnapshot(BaseModel):
    """Normalized schedule as served to clients."""

    records: list[ScheduleRecord] = Field(default_factory=list)
    last_updated: datetime
    from_cache: bool = False

    def to_payload(self) -> dict[str, object]:
        """JSON response body for schedule queries."""
        return {
            "success": True,
            "schedule": [record.model_dump() for record in self.records],
            "lastUpdated": self.last_updated.isoformat(),
            "fromCache": self.from_cache,
        }


class LoadResult(BaseModel):
    """Outcome of accepting a new schedule document."""

    size: int
    source: str  # "upload" or the URL the bytes came from
    accepted_at: datetime

    def to_payload(self) -> dict[str, object]:
        return {
            "success": True,
            "message": "Schedule document accepted",
            "size": self.size,
            "source": self.source,
        }
