"""Load the university class schedule and print it as JSON or a table.

Standalone CLI around SchedulePipeline. Optionally accepts a new schedule
document (local file, direct URL, or the source page), then prints the
normalized schedule.

Run with: python scripts/fetch_schedule.py
Upload:   python scripts/fetch_schedule.py --file raspisanie.xlsx
By URL:   python scripts/fetch_schedule.py --url https://example.com/raspisanie.xlsx
Source:   python scripts/fetch_schedule.py --page https://www.rsatu.ru/students/raspisanie-zanyatiy/
Group:    python scripts/fetch_schedule.py --group ИПБ-24-1 --table
Status:   python scripts/fetch_schedule.py --status

Exit codes:
  0 = success (JSON or table on stdout, or file written with --output)
  1 = error (JSON error payload on stdout, message on stderr)
"""

import argparse
import json
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.timetable.config import get_config  # noqa: E402
from src.timetable.errors import ScheduleError, UnreadableDocument  # noqa: E402
from src.timetable.logging import setup_logging  # noqa: E402
from src.timetable.models import ScheduleRecord  # noqa: E402
from src.timetable.pipeline import SchedulePipeline  # noqa: E402


def _log(msg: str) -> None:
    """Write diagnostic messages to stderr so stdout stays clean for JSON."""
    print(msg, file=sys.stderr)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Load the class schedule spreadsheet and print it as JSON or table.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    source_group = parser.add_mutually_exclusive_group()
    source_group.add_argument(
        "--file",
        type=str,
        default=None,
        help="Accept a local .xls/.xlsx file as the current schedule.",
    )
    source_group.add_argument(
        "--url",
        type=str,
        default=None,
        help="Download the spreadsheet from this URL and make it current.",
    )
    source_group.add_argument(
        "--page",
        type=str,
        default=None,
        help="Find the spreadsheet link on this page, then download it.",
    )

    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Drop the cached schedule before querying.",
    )
    parser.add_argument(
        "--group",
        type=str,
        default=None,
        help="Only show records for this group (exact, case-insensitive).",
    )

    output_group = parser.add_mutually_exclusive_group()
    output_group.add_argument(
        "--table",
        action="store_true",
        help="Output a human-readable table to stdout.",
    )
    output_group.add_argument(
        "--status",
        action="store_true",
        help="Print cache/document status instead of the schedule.",
    )

    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the JSON payload to this path instead of stdout.",
    )
    return parser.parse_args(argv)


def _format_table(records: list[ScheduleRecord]) -> str:
    """Format records as an aligned text table."""
    if not records:
        return "(no schedule entries)"

    headers = ["Week", "Day", "No", "Group", "Subject"]
    rows = [[r.week, r.day, r.number, r.group, r.subject] for r in records]

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    separator = "-+-".join("-" * w for w in widths)
    row_lines = [
        " | ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)) for row in rows
    ]
    return "\n".join([header_line, separator, *row_lines])


def _emit(payload: dict, output_path: str | None) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output_path:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(text, encoding="utf-8")
        _log(f"  Wrote {output_file}")
    else:
        print(text)


def main(args: argparse.Namespace, pipeline: SchedulePipeline | None = None) -> int:
    pipeline = pipeline or SchedulePipeline(get_config())

    _log("fetch_schedule: starting")
    try:
        if args.file:
            try:
                data = Path(args.file).read_bytes()
            except OSError as e:
                raise UnreadableDocument(f"Cannot read {args.file}: {e.strerror or e}") from e
            result = pipeline.load_from_bytes(data, source=Path(args.file).name)
            _log(f"  Accepted {args.file} ({result.size} bytes)")
        elif args.url:
            result = pipeline.load_from_url(args.url)
            _log(f"  Downloaded {result.source} ({result.size} bytes)")
        elif args.page:
            result = pipeline.load_from_source(args.page)
            _log(f"  Located and downloaded {result.source} ({result.size} bytes)")

        if args.refresh:
            pipeline.refresh()

        if args.status:
            _emit(pipeline.status(), args.output)
            return 0

        if args.group:
            snapshot = pipeline.get_group_schedule(args.group)
        else:
            snapshot = pipeline.get_schedule()
    except ScheduleError as e:
        _log(f"ERROR: {e}")
        _emit(e.to_payload(), args.output)
        return 1

    _log(
        f"  {len(snapshot.records)} records "
        f"({'cached' if snapshot.from_cache else 'fresh'}, {snapshot.last_updated.isoformat()})"
    )
    if args.table:
        print(_format_table(snapshot.records))
    else:
        _emit(snapshot.to_payload(), args.output)

    _log("fetch_schedule: done")
    return 0


if __name__ == "__main__":
    cli_args = _parse_args()
    config = get_config()
    setup_logging(json_output=config.log_json, log_level=config.log_level)
    try:
        sys.exit(main(cli_args))
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
