import tempfile
import unittest
from datetime import date
from pathlib import Path

from collegeadmin.export_ics import export_schedules_to_ics, first_meeting
from collegeadmin.model import Course, FacultyMember, Schedule


class TestExportICS(unittest.TestCase):
    def test_first_meeting(self) -> None:
        monday = date(2024, 9, 2)
        self.assertEqual(first_meeting(monday, "Monday"), monday)
        self.assertEqual(first_meeting(monday, "Wednesday"), date(2024, 9, 4))
        self.assertEqual(first_meeting(date(2024, 9, 5), "Monday"), date(2024, 9, 9))

    def test_export_creates_file_and_contains_calendar(self) -> None:
        schedules = [
            Schedule(
                id=1,
                course_id=1,
                faculty_id=1,
                room="Tech 101",
                day_of_week="Wednesday",
                start_time="09:00",
                end_time="10:30",
                semester="Fall",
                year=2024,
            )
        ]
        courses = {1: Course(id=1, course_code="CS101", title="Introduction to Programming")}
        faculty = {1: FacultyMember(id=1, first_name="Sarah", last_name="Mitchell", email="s@c.edu")}

        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "out.ics"
            n = export_schedules_to_ics(schedules, out, date(2024, 9, 2), weeks=14, courses=courses, faculty=faculty)
            self.assertEqual(n, 1)
            text = out.read_text(encoding="utf-8")
            self.assertIn("BEGIN:VCALENDAR", text)
            self.assertIn("BEGIN:VEVENT", text)
            self.assertIn("SUMMARY:CS101 - Introduction to Programming", text)
            self.assertIn("DTSTART:20240904T090000", text)
            self.assertIn("DTEND:20240904T103000", text)
            self.assertIn("RRULE:FREQ=WEEKLY;COUNT=14", text)
            self.assertIn("LOCATION:Tech 101", text)
            self.assertIn("DESCRIPTION:Instructor: Sarah Mitchell", text)

    def test_unknown_day_and_bad_times_skipped(self) -> None:
        schedules = [
            Schedule(id=1, course_id=9, faculty_id=1, room="", day_of_week="Sunday", start_time="09:00", end_time="10:00"),
            Schedule(id=2, course_id=9, faculty_id=1, room="", day_of_week="Monday", start_time="9am", end_time="10am"),
            Schedule(id=3, course_id=9, faculty_id=1, room="", day_of_week="Friday", start_time="14:00", end_time="15:00"),
        ]
        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "out.ics"
            n = export_schedules_to_ics(schedules, out, date(2024, 9, 2))
            self.assertEqual(n, 1)
            text = out.read_text(encoding="utf-8")
            self.assertEqual(text.count("BEGIN:VEVENT"), 1)
            self.assertIn("SUMMARY:Course #9", text)
            self.assertNotIn("LOCATION:", text)


if __name__ == "__main__":
    unittest.main()
