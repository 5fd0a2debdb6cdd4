"""Tests for scripts/fetch_schedule.py."""
import contextlib
import importlib.util
import io
import json
import tempfile
import unittest
from pathlib import Path

from src.timetable.models import ScheduleRecord
from src.timetable.pipeline import SchedulePipeline
from tests.fixtures import REPO_ROOT, SCENARIO_GRID, make_config, make_workbook


def _load_script():
    path = REPO_ROOT / "scripts" / "fetch_schedule.py"
    spec = importlib.util.spec_from_file_location("fetch_schedule", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


cli = _load_script()


class TestFormatTable(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(cli._format_table([]), "(no schedule entries)")

    def test_columns_aligned(self):
        table = cli._format_table(
            [
                ScheduleRecord(week="нечётная", day="Пн", number="1", subject="Физика", group="GR-1"),
                ScheduleRecord(week="", day="Вт", number="12", subject="Химия", group="GR-22"),
            ]
        )
        lines = table.splitlines()
        self.assertEqual(len(lines), 4)
        self.assertTrue(lines[0].startswith("Week"))
        self.assertEqual(len({len(line) for line in lines}), 1)


class TestMain(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.pipeline = SchedulePipeline(make_config(Path(self._tmp.name) / "state"))

    def run_cli(self, *argv):
        stdout, stderr = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
            code = cli.main(cli._parse_args(list(argv)), pipeline=self.pipeline)
        return code, stdout.getvalue()

    def test_file_upload_then_group_query(self):
        path = Path(self._tmp.name) / "rasp.xlsx"
        path.write_bytes(make_workbook(SCENARIO_GRID))
        code, out = self.run_cli("--file", str(path), "--group", "GR-2")
        self.assertEqual(code, 0)
        payload = json.loads(out)
        self.assertTrue(payload["success"])
        self.assertEqual([r["subject"] for r in payload["schedule"]], ["Химия"])

    def test_missing_schedule_reports_error(self):
        code, out = self.run_cli()
        self.assertEqual(code, 1)
        payload = json.loads(out)
        self.assertFalse(payload["success"])
        self.assertEqual(payload["error"], "not_found")

    def test_missing_file_reports_error_payload(self):
        missing = Path(self._tmp.name) / "nope.xlsx"
        code, out = self.run_cli("--file", str(missing))
        self.assertEqual(code, 1)
        payload = json.loads(out)
        self.assertFalse(payload["success"])
        self.assertEqual(payload["error"], "unreadable_file")
        self.assertIn("nope.xlsx", payload["message"])
        self.assertFalse(self.pipeline.store.has_document())

    def test_directory_as_file_reports_error_payload(self):
        code, out = self.run_cli("--file", self._tmp.name)
        self.assertEqual(code, 1)
        self.assertEqual(json.loads(out)["error"], "unreadable_file")

    def test_status_output(self):
        code, out = self.run_cli("--status")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["cache"], "empty")

    def test_output_file(self):
        self.pipeline.load_from_bytes(make_workbook(SCENARIO_GRID))
        target = Path(self._tmp.name) / "out" / "schedule.json"
        code, _ = self.run_cli("--output", str(target))
        self.assertEqual(code, 0)
        self.assertEqual(len(json.loads(target.read_text(encoding="utf-8"))["schedule"]), 3)


if __name__ == "__main__":
    unittest.main()
