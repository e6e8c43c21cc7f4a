"""
Central data model definitions used across the project.

This module defines the canonical shape of the five entities so that:
- the services, the reports and the UI layers share the same field names
- the flat record schema of the store stays a concern of the services only

Relations between entities are plain numeric ids (Enrollment -> Student,
Course; Schedule -> Course, FacultyMember). Nothing here enforces them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


PROGRAMS = [
    "Computer Science",
    "Business Administration",
    "Psychology",
    "Engineering",
    "Biology",
    "Mathematics",
    "Art History",
    "Chemistry",
    "English Literature",
    "Physics",
]

ACADEMIC_STATUSES = ["Active", "Probation", "Suspended", "Graduated", "Withdrawn"]

DEPARTMENTS = [
    "Computer Science",
    "Mathematics",
    "English",
    "Biology",
    "History",
    "Chemistry",
    "Psychology",
    "Economics",
    "Art",
    "Physics",
]

POSITIONS = ["Professor", "Associate Professor", "Assistant Professor", "Lecturer", "Instructor"]

SEMESTERS = ["Fall", "Spring", "Summer"]

DAYS_OF_WEEK = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

# 08:00, 08:30, ... 19:30
TIME_SLOTS = [f"{h:02d}:{m:02d}" for h in range(8, 20) for m in (0, 30)]

ENROLLMENT_STATUSES = ["enrolled", "completed", "dropped", "withdrawn"]


@dataclass
class Address:
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""

    def one_line(self) -> str:
        parts = [self.street, self.city, f"{self.state} {self.zip_code}".strip()]
        return ", ".join(p for p in parts if p)


@dataclass
class Student:
    """
    One student as shown on the Students page.

    `student_id` is the human-facing code (STU00001), `id` the record id.
    """

    first_name: str
    last_name: str
    email: str
    phone: str = ""
    date_of_birth: str = ""
    address: Address = field(default_factory=Address)
    program: str = ""
    academic_status: str = "Active"
    enrollment_date: str = ""
    gpa: Optional[float] = None
    credits: int = 0
    student_id: str = ""
    id: Optional[int] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class Course:
    course_code: str
    title: str
    description: str = ""
    credits: int = 3
    department: str = ""
    prerequisites: List[str] = field(default_factory=list)
    max_enrollment: int = 30
    current_enrollment: int = 0
    semester: str = "Fall"
    year: int = 0
    id: Optional[int] = None

    @property
    def label(self) -> str:
        return f"{self.course_code} - {self.title}"


@dataclass
class FacultyMember:
    first_name: str
    last_name: str
    email: str
    phone: str = ""
    department: str = ""
    position: str = "Assistant Professor"
    office_location: str = ""
    max_course_load: int = 3
    courses: List[str] = field(default_factory=list)
    id: Optional[int] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class Schedule:
    """
    A weekly class meeting: one course, one instructor, one room, one slot.
    """

    course_id: int
    faculty_id: int
    room: str
    day_of_week: str = "Monday"
    start_time: str = ""
    end_time: str = ""
    semester: str = "Fall"
    year: int = 0
    id: Optional[int] = None


@dataclass
class Enrollment:
    student_id: int
    course_id: int
    semester: str = "Fall"
    year: int = 0
    enrollment_date: str = ""
    grade: Optional[str] = None
    grade_points: Optional[float] = None
    status: str = "enrolled"
    id: Optional[int] = None
