"""
Grade scale, GPA and the small display rules derived from entity fields.

Badge "variants" are colour names shared with views.py:
    success, warning, error, info, primary, accent, secondary
"""

from __future__ import annotations

from typing import Iterable, Optional

from collegeadmin.errors import ValidationError
from collegeadmin.model import Enrollment, FacultyMember


GRADE_SCALE: list[tuple[str, float]] = [
    ("A+", 4.0),
    ("A", 4.0),
    ("A-", 3.7),
    ("B+", 3.3),
    ("B", 3.0),
    ("B-", 2.7),
    ("C+", 2.3),
    ("C", 2.0),
    ("C-", 1.7),
    ("D+", 1.3),
    ("D", 1.0),
    ("F", 0.0),
]

GRADE_LETTERS = [letter for letter, _ in GRADE_SCALE]

_POINTS = dict(GRADE_SCALE)


def normalize_grade(letter: str) -> str:
    grade = (letter or "").strip().upper()
    if grade not in _POINTS:
        raise ValidationError(f"Unknown grade {letter!r} (expected one of: {', '.join(GRADE_LETTERS)})")
    return grade


def grade_points(letter: str) -> float:
    return _POINTS[normalize_grade(letter)]


def grade_variant(letter: Optional[str]) -> str:
    if not letter:
        return "secondary"
    if letter in ("A+", "A", "A-"):
        return "success"
    if letter in ("B+", "B", "B-"):
        return "primary"
    if letter in ("C+", "C", "C-"):
        return "warning"
    if letter in ("D+", "D"):
        return "info"
    return "error"


def gpa(enrollments: Iterable[Enrollment]) -> Optional[float]:
    """
    Mean grade points over graded enrollments. None if nothing is graded.
    """
    points = [e.grade_points for e in enrollments if e.grade and e.grade_points is not None]
    if not points:
        return None
    return sum(points) / len(points)


def enrollment_status(current: int, maximum: int) -> tuple[str, str]:
    """
    Capacity badge of a course as (text, variant).

    >= 90% full -> Full, >= 75% -> Almost Full, otherwise Available.
    A course without capacity counts as full.
    """
    if maximum <= 0:
        return ("Full", "error")
    percentage = current / maximum * 100
    if percentage >= 90:
        return ("Full", "error")
    if percentage >= 75:
        return ("Almost Full", "warning")
    return ("Available", "success")


def academic_status_variant(status: str) -> str:
    return {"Active": "success", "Probation": "warning", "Suspended": "error"}.get(status, "secondary")


def position_variant(position: str) -> str:
    return {
        "Professor": "primary",
        "Associate Professor": "accent",
        "Assistant Professor": "success",
    }.get(position, "secondary")


def day_variant(day: str) -> str:
    return {
        "Monday": "primary",
        "Tuesday": "accent",
        "Wednesday": "success",
        "Thursday": "warning",
        "Friday": "info",
        "Saturday": "secondary",
    }.get(day, "secondary")


def enrollment_status_variant(status: str) -> str:
    return "success" if status == "enrolled" else "secondary"


def faculty_load(member: FacultyMember) -> float:
    if member.max_course_load <= 0:
        return float("inf") if member.courses else 0.0
    return len(member.courses) / member.max_course_load


def load_category(member: FacultyMember) -> str:
    """
    under (< 75%), optimal (75% - 100%) or over (> 100%).
    """
    load = faculty_load(member)
    if load > 1.0:
        return "over"
    if load >= 0.75:
        return "optimal"
    return "under"
