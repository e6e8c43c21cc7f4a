"""
iCalendar (.ics) export of class schedules.

Each schedule becomes one weekly recurring event, starting on the first
matching weekday on or after the term start date, so the file can be
imported into Google Calendar, Outlook or Apple Calendar.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, Mapping

from collegeadmin.model import DAYS_OF_WEEK, Course, FacultyMember, Schedule


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _dt_local(day: date, time_hh_mm: str) -> str:
    """
    Convert date + time to ICS local datetime string 'YYYYMMDDTHHMM00'.
    """
    dt = datetime.strptime(f"{day.isoformat()} {time_hh_mm}", "%Y-%m-%d %H:%M")
    return dt.strftime("%Y%m%dT%H%M00")


def first_meeting(term_start: date, day_of_week: str) -> date:
    """
    First date on or after term_start that falls on day_of_week.
    """
    target = DAYS_OF_WEEK.index(day_of_week)
    return term_start + timedelta(days=(target - term_start.weekday()) % 7)


def export_schedules_to_ics(
    schedules: Iterable[Schedule],
    out_path: str | Path,
    term_start: date,
    weeks: int = 15,
    courses: Mapping[int, Course] | None = None,
    faculty: Mapping[int, FacultyMember] | None = None,
) -> int:
    """
    Export schedules to an .ics file. Returns number of exported events.
    Schedules with an unknown weekday or unparsable times are skipped.
    """
    courses = courses or {}
    faculty = faculty or {}

    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append("PRODID:-//collegeadmin//EN")
    lines.append("CALSCALE:GREGORIAN")

    count = 0
    for s in schedules:
        if s.day_of_week not in DAYS_OF_WEEK or not (s.start_time and s.end_time):
            continue

        day = first_meeting(term_start, s.day_of_week)
        try:
            dtstart = _dt_local(day, s.start_time)
            dtend = _dt_local(day, s.end_time)
        except ValueError:
            continue

        course = courses.get(s.course_id)
        summary = course.label if course else f"Course #{s.course_id}"
        instructor = faculty.get(s.faculty_id)

        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{_ics_escape(f'schedule-{s.id}-{dtstart}@collegeadmin')}")
        dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        lines.append(f"DTSTAMP:{dtstamp}")
        lines.append(f"DTSTART:{dtstart}")
        lines.append(f"DTEND:{dtend}")
        lines.append(f"RRULE:FREQ=WEEKLY;COUNT={max(1, weeks)}")
        lines.append(f"SUMMARY:{_ics_escape(summary)}")
        if s.room.strip():
            lines.append(f"LOCATION:{_ics_escape(s.room.strip())}")
        if instructor:
            lines.append(f"DESCRIPTION:{_ics_escape(f'Instructor: {instructor.full_name}')}")
        lines.append("END:VEVENT")
        count += 1

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    out.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")
    return count
