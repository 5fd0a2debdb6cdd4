"""structlog setup for the timetable feed.

Every pipeline stage logs events such as ``fetch_attempt_failed`` or
``grid_normalized`` with key/value context. Events are written to stderr:
the fetch_schedule script prints the schedule JSON on stdout, and log lines
must never end up inside it.
"""

import logging
import sys

import structlog

# Libraries that log each HTTP connection at DEBUG; kept at WARNING so a
# debug run shows retry decisions rather than socket chatter.
NOISY_LOGGERS = ("urllib3", "chardet", "charset_normalizer")


def setup_logging(json_output: bool = False, log_level: str = "INFO") -> None:
    """Route structlog events and stdlib records to stderr.

    Args:
        json_output: One JSON object per line (for log collectors) instead of
            the colored console format.
        log_level: Minimum level name; unknown names fall back to INFO.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_output:
        # Cyrillic subjects and group codes stay readable in the JSON lines.
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers = [logging.StreamHandler(sys.stderr)]
    root.setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> structlog.BoundLogger:
    """Logger for one pipeline module; pass ``__name__``."""
    return structlog.get_logger(name)
