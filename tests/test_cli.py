"""
Tests for CLI entry points.

Every test runs main() against the memory backend seeded from a temporary
data directory, so the packaged mock data is never relied upon (except in
the smoke test) and nothing outside the temp dir is written.
"""

import contextlib
import io
import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from collegeadmin.cli import build_parser, main
from collegeadmin.config import default_data_dir


TABLES = {
    "student": [
        {"Id": 1, "student_id": "STU00001", "first_name": "Emma", "last_name": "Johnson", "email": "emma@c.edu", "program": "Computer Science", "academic_status": "Active", "gpa": 3.85},
        {"Id": 2, "student_id": "STU00002", "first_name": "Michael", "last_name": "Chen", "email": "mc@c.edu", "program": "Biology", "academic_status": "Probation", "gpa": 2.2},
    ],
    "course": [
        {"Id": 1, "course_code": "CS101", "title": "Intro", "credits": 3, "department": "Computer Science", "max_enrollment": 30, "current_enrollment": 28, "semester": "Fall", "year": 2024},
        {"Id": 2, "course_code": "BIO210", "title": "Cells", "credits": 4, "department": "Biology", "max_enrollment": 20, "current_enrollment": 5, "semester": "Fall", "year": 2024},
    ],
    "faculty": [
        {"Id": 1, "first_name": "Sarah", "last_name": "Mitchell", "email": "s@c.edu", "department": "Computer Science", "max_course_load": 3, "courses": "CS101"},
    ],
    "schedule": [
        {"Id": 1, "course_id": 1, "faculty_id": 1, "room": "Tech 101", "day_of_week": "Monday", "start_time": "09:00", "end_time": "10:30", "semester": "Fall", "year": 2024},
        {"Id": 2, "course_id": 2, "faculty_id": 1, "room": "Lab 2", "day_of_week": "Monday", "start_time": "10:00", "end_time": "11:00", "semester": "Fall", "year": 2024},
    ],
    "enrollment": [
        {"Id": 1, "student_id": 1, "course_id": 1, "enrollment_date": "2024-08-20", "semester": "Fall", "year": 2024, "status": "enrolled"},
        {"Id": 2, "student_id": 2, "course_id": 2, "enrollment_date": "2024-08-19", "semester": "Fall", "year": 2024, "grade": "B+", "grade_points": 3.3, "status": "completed"},
    ],
}


class TestCLI(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.data_dir = Path(self._tmp.name) / "mock"
        self.data_dir.mkdir()
        for table, rows in TABLES.items():
            (self.data_dir / f"{table}.json").write_text(json.dumps(rows), encoding="utf-8")

    def run_cli(self, *argv: str) -> tuple[int, str]:
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            with self.assertRaises(SystemExit) as ctx:
                main(["--backend", "memory", "--data-dir", str(self.data_dir), *argv])
        return ctx.exception.code, out.getvalue()

    def test_parser_requires_command(self) -> None:
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                build_parser().parse_args([])
        self.assertNotEqual(ctx.exception.code, 0)

    def test_list_with_search(self) -> None:
        code, out = self.run_cli("students", "list", "--search", "chen")
        self.assertEqual(code, 0)
        self.assertIn("Students (1)", out)
        self.assertNotIn("Johnson", out)

    def test_list_where_and_sort(self) -> None:
        code, out = self.run_cli("courses", "list", "--where", "department=Biology", "--sort", "title", "--desc")
        self.assertEqual(code, 0)
        self.assertIn("Courses (1)", out)
        self.assertNotIn("CS101", out)

    def test_list_empty(self) -> None:
        code, out = self.run_cli("students", "list", "--search", "nobody")
        self.assertEqual(code, 0)
        self.assertIn("No students found", out)

    def test_list_rejects_unknown_filter_and_sort(self) -> None:
        code, out = self.run_cli("students", "list", "--where", "shoe_size=42")
        self.assertEqual(code, 1)
        self.assertIn("Unknown filter field", out)
        code, out = self.run_cli("students", "list", "--sort", "academic_status")
        self.assertEqual(code, 1)
        self.assertIn("Cannot sort by", out)

    def test_show(self) -> None:
        code, out = self.run_cli("students", "show", "2")
        self.assertEqual(code, 0)
        self.assertIn("mc@c.edu", out)
        self.assertIn("Grade GPA: 3.30 (from 1 graded enrollments)", out)

        code, out = self.run_cli("students", "show", "1")
        self.assertEqual(code, 0)
        self.assertNotIn("Grade GPA", out)

    def test_show_missing(self) -> None:
        code, out = self.run_cli("students", "show", "99")
        self.assertEqual(code, 1)
        self.assertIn("Student not found", out)

    def test_add(self) -> None:
        code, out = self.run_cli(
            "courses",
            "add",
            "--set",
            "course_code=CS301",
            "--set",
            "title=Operating Systems",
            "--set",
            "credits=4",
            "--set",
            "department=Computer Science",
            "--set",
            "max_enrollment=25",
        )
        self.assertEqual(code, 0)
        self.assertIn("Course added successfully! (id 3)", out)

    def test_add_validation(self) -> None:
        code, out = self.run_cli("courses", "add", "--set", "course_code=CS301")
        self.assertEqual(code, 1)
        self.assertIn("Missing required fields", out)
        code, out = self.run_cli("courses", "add", "--set", "credits=four")
        self.assertEqual(code, 1)
        self.assertIn("whole number", out)

    def test_add_schedule_warns_on_conflict(self) -> None:
        code, out = self.run_cli(
            "schedules",
            "add",
            "--set",
            "course_id=2",
            "--set",
            "faculty_id=2",
            "--set",
            "room=Tech 101",
            "--set",
            "day_of_week=Monday",
            "--set",
            "start_time=10:00",
            "--set",
            "end_time=11:00",
            "--set",
            "semester=Fall",
            "--set",
            "year=2024",
        )
        self.assertEqual(code, 0)
        self.assertIn("Warning", out)
        self.assertIn("Schedule added successfully!", out)

    def test_update_and_delete(self) -> None:
        code, out = self.run_cli("enrollments", "update", "1", "--set", "status=completed")
        self.assertEqual(code, 0)
        self.assertIn("Enrollment updated successfully!", out)

        code, out = self.run_cli("faculty", "delete", "1")
        self.assertEqual(code, 0)
        self.assertIn("deleted successfully!", out)

        code, out = self.run_cli("faculty", "delete", "7")
        self.assertEqual(code, 1)
        self.assertIn("Faculty member not found", out)

    def test_grade(self) -> None:
        code, out = self.run_cli("grade", "1", "b+")
        self.assertEqual(code, 0)
        self.assertIn("B+ = 3.3", out)

        code, out = self.run_cli("grade", "1", "E")
        self.assertEqual(code, 1)
        self.assertIn("Unknown grade", out)

    def test_dashboard(self) -> None:
        code, out = self.run_cli("dashboard")
        self.assertEqual(code, 0)
        self.assertIn("Quick Stats", out)
        self.assertIn("Emma Johnson enrolled in Intro", out)

    def test_report_csv(self) -> None:
        csv_path = Path(self._tmp.name) / "academic.csv"
        code, out = self.run_cli("report", "academic", "--csv", str(csv_path))
        self.assertEqual(code, 0)
        self.assertIn("Academic Performance", out)
        self.assertTrue(csv_path.exists())
        self.assertIn("Top Performers", csv_path.read_text(encoding="utf-8"))

    def test_conflicts(self) -> None:
        code, out = self.run_cli("conflicts")
        self.assertEqual(code, 0)
        self.assertIn("Conflicts found: 1", out)

        code, out = self.run_cli("conflicts", "--semester", "Spring")
        self.assertEqual(code, 0)
        self.assertIn("No conflicts found.", out)

    def test_export_ics(self) -> None:
        out_path = Path(self._tmp.name) / "timetable.ics"
        code, out = self.run_cli("export-ics", str(out_path), "--term-start", "2024-09-02", "--weeks", "12")
        self.assertEqual(code, 0)
        text = out_path.read_text(encoding="utf-8")
        self.assertEqual(text.count("BEGIN:VEVENT"), 2)
        self.assertIn("RRULE:FREQ=WEEKLY;COUNT=12", text)

    def test_export_ics_bad_date(self) -> None:
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                main(["export-ics", "out.ics", "--term-start", "next monday"])
        self.assertEqual(ctx.exception.code, 2)

    def test_remote_without_url(self) -> None:
        with mock.patch.dict(os.environ, {"RECORD_STORE_URL": ""}):
            out = io.StringIO()
            with contextlib.redirect_stdout(out):
                with self.assertRaises(SystemExit) as ctx:
                    main(["--backend", "remote", "dashboard"])
        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("RECORD_STORE_URL", out.getvalue())

    def test_packaged_mock_data_smoke(self) -> None:
        self.data_dir = default_data_dir()
        code, out = self.run_cli("report", "overview")
        self.assertEqual(code, 0)
        self.assertIn("Key Metrics", out)


if __name__ == "__main__":
    unittest.main()
