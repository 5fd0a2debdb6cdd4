"""Pipeline configuration loaded from environment variables.

Every knob of the acquisition pipeline lives here: where the spreadsheet is
published, how hard to retry, how outbound requests are shaped, and which
parsing mode the current spreadsheet layout needs.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

GROUP_MODES: frozenset[str] = frozenset({"header", "pattern"})


class TimetableConfig(BaseSettings):
    """Pipeline configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Source discovery
    source_page_url: str = Field(
        default="https://www.rsatu.ru/students/raspisanie-zanyatiy/",
        description="Page that links to the current schedule spreadsheet",
    )
    fallback_document_url: str = Field(
        default="",
        description="Spreadsheet URL used when no link is found on the source page",
    )
    link_extensions: list[str] = Field(
        default=[".xls", ".xlsx"],
        description="URL path suffixes that identify a spreadsheet link",
    )
    link_text_phrase: str = Field(
        default="расписание",
        description="Link text (case-insensitive) that identifies a spreadsheet link",
    )
    accept_any_link: bool = Field(
        default=False,
        description="Fall back to the first resolvable link when nothing matches",
    )

    # Retrieval
    max_attempts: int = Field(
        default=3,
        description="Maximum fetch attempts per resource",
    )
    attempt_timeout: float = Field(
        default=60.0,
        description="Per-attempt timeout in seconds",
    )
    backoff_base: float = Field(
        default=2.0,
        description="Attempt n waits n * backoff_base seconds before retrying",
    )
    backoff_jitter: float = Field(
        default=0.0,
        description="Extra random delay (0..jitter seconds) added to each wait",
    )

    # Request shaping (best effort, no bypass guarantee)
    spoof_client_ip: bool = Field(
        default=False,
        description="Send X-Forwarded-For style headers drawn from client_ip_pool",
    )
    client_ip_pool: list[str] = Field(
        default=["95.24.0.17", "178.66.12.4", "213.87.140.9", "31.173.80.2"],
        description="Addresses used for client-IP headers",
    )

    # Normalization
    group_mode: str = Field(
        default="header",
        description="'header' takes groups from row 0, 'pattern' extracts them from cell text",
    )
    group_pattern: str = Field(
        default=r"(?<![A-ZА-ЯЁ])[A-ZА-ЯЁ]{2,4}-\d{2,3}(?!\d)",
        description="Regex for group codes in pattern mode",
    )
    unknown_group: str = Field(
        default="unknown",
        description="Group assigned when none can be determined",
    )
    missing_marker: str = Field(
        default="undefined",
        description="Cells containing this text are treated as export artifacts",
    )

    # Storage
    state_dir: str = Field(
        default="data/uploads",
        description="Directory holding the current schedule document",
    )
    document_name: str = Field(
        default="current-schedule.xlsx",
        description="File name of the current schedule document",
    )
    max_document_size: int = Field(
        default=5 * 1024 * 1024,
        description="Largest accepted spreadsheet in bytes",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("max_attempts")
    @classmethod
    def _check_attempts(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_attempts must be at least 1")
        return value

    @field_validator("group_mode")
    @classmethod
    def _check_group_mode(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in GROUP_MODES:
            raise ValueError(f"group_mode must be one of {sorted(GROUP_MODES)}")
        return value


# Singleton pattern
_config: TimetableConfig | None = None


def get_config() -> TimetableConfig:
    """Get the pipeline configuration singleton.

    Returns:
        TimetableConfig: Pipeline configuration instance
    """
    global _config
    if _config is None:
        _config = TimetableConfig()
    return _config
