"""
Table layouts for the entity pages.

Each page has columns (label, how to render a cell, how to sort it), the
fields its search box looks at, and its equality filters. Cross-entity
columns (student name on an enrollment, course on a schedule) resolve ids
through a Lookups object built from already-loaded lists.
"""

from __future__ import annotations

import dataclasses
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from rich import box
from rich.markup import escape
from rich.table import Table

from collegeadmin import model
from collegeadmin.grading import (
    academic_status_variant,
    day_variant,
    enrollment_status,
    enrollment_status_variant,
    grade_variant,
    position_variant,
)
from collegeadmin.listing import Field, SortState, filter_equals, index_by_id, search, sort_rows
from collegeadmin.reports import Activity, DashboardStats, Report, faculty_load_percent
from collegeadmin.services import Services, fetch_parallel


BADGE_STYLES = {
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "info": "cyan",
    "primary": "bold blue",
    "accent": "magenta",
    "secondary": "dim",
}


def badge(text: str, variant: str) -> str:
    style = BADGE_STYLES.get(variant, "dim")
    return f"[{style}]{escape(text)}[/]"


@dataclass
class Lookups:
    students: dict[int, model.Student] = field(default_factory=dict)
    courses: dict[int, model.Course] = field(default_factory=dict)
    faculty: dict[int, model.FacultyMember] = field(default_factory=dict)

    @classmethod
    def build(cls, students: Any = (), courses: Any = (), faculty: Any = ()) -> "Lookups":
        return cls(students=index_by_id(students), courses=index_by_id(courses), faculty=index_by_id(faculty))

    def student_name(self, student_id: int) -> str:
        s = self.students.get(student_id)
        return s.full_name if s else "Unknown"

    def student_code(self, student_id: int) -> str:
        s = self.students.get(student_id)
        return s.student_id if s else ""

    def course_label(self, course_id: int) -> str:
        c = self.courses.get(course_id)
        return c.label if c else "Unknown"

    def course_title(self, course_id: int) -> str:
        c = self.courses.get(course_id)
        return c.title if c else ""

    def course_code(self, course_id: int) -> str:
        c = self.courses.get(course_id)
        return c.course_code if c else ""

    def faculty_name(self, faculty_id: int) -> str:
        f = self.faculty.get(faculty_id)
        return f.full_name if f else "Unknown"


@dataclass
class Column:
    key: str
    label: str
    render: Callable[[Any], str]
    sortable: bool = True
    sort_field: Optional[Field] = None

    def sort_by(self) -> Field:
        return self.sort_field if self.sort_field is not None else self.key


@dataclass
class Filter:
    field: str
    label: str
    choices: list[tuple[str, str]]  # (value, label)


@dataclass
class Page:
    name: str
    title: str
    columns: list[Column]
    search_fields: list[Field]
    filters: list[Filter]
    empty_title: str
    empty_hint: str

    def column(self, key: str) -> Column:
        for c in self.columns:
            if c.key == key:
                return c
        raise KeyError(key)


def _plain(attr: str) -> Callable[[Any], str]:
    return lambda row: escape(str(getattr(row, attr, "") or ""))


def _choices(values: list[str]) -> list[tuple[str, str]]:
    return [(v, v) for v in values]


_CALENDAR_ORDER = ("Spring", "Summer", "Fall")


def _term_order(row: Any) -> Optional[int]:
    # Spring 2025 < Summer 2025 < Fall 2025 < Spring 2026
    if not row.year:
        return None
    rank = _CALENDAR_ORDER.index(row.semester) if row.semester in _CALENDAR_ORDER else len(_CALENDAR_ORDER)
    return row.year * 10 + rank


def students_page(ctx: Lookups) -> Page:
    return Page(
        name="students",
        title="Students",
        columns=[
            Column("student_id", "Student ID", _plain("student_id")),
            Column("name", "Name", lambda s: escape(s.full_name), sort_field=lambda s: s.full_name),
            Column("email", "Email", _plain("email")),
            Column("program", "Program", _plain("program")),
            Column(
                "academic_status",
                "Status",
                lambda s: badge(s.academic_status, academic_status_variant(s.academic_status)),
                sortable=False,
            ),
            Column("gpa", "GPA", lambda s: f"{s.gpa:.2f}" if s.gpa is not None else "N/A"),
            Column("credits", "Credits", lambda s: str(s.credits)),
        ],
        search_fields=[lambda s: s.full_name, "email", "student_id", "program"],
        filters=[
            Filter("academic_status", "Status", _choices(model.ACADEMIC_STATUSES)),
            Filter("program", "Program", _choices(model.PROGRAMS)),
        ],
        empty_title="No students found",
        empty_hint="Start by adding your first student to the system.",
    )


def _capacity(c: model.Course) -> str:
    text, variant = enrollment_status(c.current_enrollment, c.max_enrollment)
    return badge(text, variant)


def courses_page(ctx: Lookups) -> Page:
    return Page(
        name="courses",
        title="Courses",
        columns=[
            Column("course_code", "Code", _plain("course_code")),
            Column("title", "Title", _plain("title")),
            Column("department", "Department", _plain("department")),
            Column("credits", "Credits", lambda c: str(c.credits)),
            Column(
                "enrollment",
                "Enrollment",
                lambda c: f"{c.current_enrollment}/{c.max_enrollment}",
                sort_field="current_enrollment",
            ),
            Column("capacity", "Capacity", _capacity, sortable=False),
            Column("term", "Term", lambda c: f"{c.semester} {c.year}", sort_field=_term_order),
            Column(
                "prerequisites",
                "Prerequisites",
                lambda c: " ".join(badge(p, "secondary") for p in c.prerequisites),
                sortable=False,
            ),
        ],
        search_fields=["title", "course_code", "description", "department"],
        filters=[
            Filter("department", "Department", _choices(model.DEPARTMENTS)),
            Filter("semester", "Semester", _choices(model.SEMESTERS)),
        ],
        empty_title="No courses available",
        empty_hint="Create your first course to get started.",
    )


def faculty_page(ctx: Lookups) -> Page:
    return Page(
        name="faculty",
        title="Faculty",
        columns=[
            Column("name", "Name", lambda m: escape(m.full_name), sort_field=lambda m: m.full_name),
            Column("email", "Email", _plain("email")),
            Column("department", "Department", _plain("department")),
            Column("position", "Position", lambda m: badge(m.position, position_variant(m.position))),
            Column("office_location", "Office", _plain("office_location")),
            Column(
                "load",
                "Load",
                lambda m: f"{len(m.courses)}/{m.max_course_load} ({faculty_load_percent(m):.0f}%)",
                sort_field=faculty_load_percent,
            ),
            Column("courses", "Courses", lambda m: escape(", ".join(m.courses)), sortable=False),
        ],
        search_fields=[lambda m: m.full_name, "email", "department", "position"],
        filters=[
            Filter("department", "Department", _choices(model.DEPARTMENTS)),
            Filter("position", "Position", _choices(model.POSITIONS)),
        ],
        empty_title="No faculty members",
        empty_hint="Add faculty members to manage courses.",
    )


def schedules_page(ctx: Lookups) -> Page:
    return Page(
        name="schedules",
        title="Schedules",
        columns=[
            Column(
                "course",
                "Course",
                lambda s: escape(ctx.course_label(s.course_id)),
                sort_field=lambda s: ctx.course_label(s.course_id),
            ),
            Column(
                "instructor",
                "Instructor",
                lambda s: escape(ctx.faculty_name(s.faculty_id)),
                sort_field=lambda s: ctx.faculty_name(s.faculty_id),
            ),
            Column("room", "Room", _plain("room")),
            Column(
                "day_of_week",
                "Day",
                lambda s: badge(s.day_of_week, day_variant(s.day_of_week)),
                sort_field=lambda s: model.DAYS_OF_WEEK.index(s.day_of_week) if s.day_of_week in model.DAYS_OF_WEEK else None,
            ),
            Column("time", "Time", lambda s: f"{s.start_time} - {s.end_time}", sort_field="start_time"),
            Column("term", "Term", lambda s: f"{s.semester} {s.year}", sort_field=_term_order),
        ],
        search_fields=[
            lambda s: ctx.course_title(s.course_id),
            lambda s: ctx.course_code(s.course_id),
            lambda s: ctx.faculty_name(s.faculty_id),
            "room",
        ],
        filters=[
            Filter("day_of_week", "Day", _choices(model.DAYS_OF_WEEK)),
            Filter("semester", "Semester", _choices(model.SEMESTERS)),
        ],
        empty_title="No schedules created",
        empty_hint="Start creating class schedules for your courses.",
    )


def _grade_cell(e: model.Enrollment) -> str:
    if e.grade:
        return badge(e.grade, grade_variant(e.grade))
    return badge("Not Graded", "secondary")


def enrollments_page(ctx: Lookups) -> Page:
    course_choices = [(str(c.id), c.label) for c in ctx.courses.values()]
    return Page(
        name="enrollments",
        title="Grades",
        columns=[
            Column(
                "student",
                "Student",
                lambda e: escape(ctx.student_name(e.student_id)),
                sort_field=lambda e: ctx.student_name(e.student_id),
            ),
            Column(
                "student_code",
                "Student ID",
                lambda e: escape(ctx.student_code(e.student_id)),
                sort_field=lambda e: ctx.student_code(e.student_id),
            ),
            Column(
                "course",
                "Course",
                lambda e: escape(ctx.course_label(e.course_id)),
                sort_field=lambda e: ctx.course_label(e.course_id),
            ),
            Column("term", "Term", lambda e: f"{e.semester} {e.year}", sort_field=_term_order),
            Column("grade", "Grade", _grade_cell, sortable=False),
            Column(
                "grade_points",
                "Points",
                lambda e: f"{e.grade_points:.1f}" if e.grade_points is not None else "-",
            ),
            Column("status", "Status", lambda e: badge(e.status, enrollment_status_variant(e.status)), sortable=False),
        ],
        search_fields=[
            lambda e: ctx.student_name(e.student_id),
            lambda e: ctx.student_code(e.student_id),
            lambda e: ctx.course_title(e.course_id),
            lambda e: ctx.course_code(e.course_id),
        ],
        filters=[
            Filter("course_id", "Course", course_choices),
            Filter("semester", "Semester", _choices(model.SEMESTERS)),
        ],
        empty_title="No grades recorded",
        empty_hint="Begin entering grades for your students.",
    )


def visible_rows(
    page: Page,
    rows: list[Any],
    text: str = "",
    filters: Optional[dict[str, str]] = None,
    sort: Optional[SortState] = None,
) -> list[Any]:
    """
    What the page shows: search text, then equality filters, then sort.
    """
    out = search(rows, text, page.search_fields)
    for name, value in (filters or {}).items():
        out = filter_equals(out, name, value)
    if sort is not None and sort.field:
        out = sort_rows(out, page.column(sort.field).sort_by(), sort.direction)
    return out


PAGES: dict[str, Callable[[Lookups], Page]] = {
    "students": students_page,
    "courses": courses_page,
    "faculty": faculty_page,
    "schedules": schedules_page,
    "enrollments": enrollments_page,
}


def load_page_data(services: Services, name: str, strict: bool = True) -> tuple[list[Any], Lookups]:
    """
    Rows of an entity page plus the lookups its columns need. Related
    tables are fetched in parallel with the rows.
    """
    if name == "schedules":
        rows, courses, faculty = fetch_parallel(
            lambda: services.schedules.get_all(strict=strict),
            lambda: services.courses.get_all(strict=strict),
            lambda: services.faculty.get_all(strict=strict),
        )
        return rows, Lookups.build(courses=courses, faculty=faculty)
    if name == "enrollments":
        rows, students, courses = fetch_parallel(
            lambda: services.enrollments.get_all(strict=strict),
            lambda: services.students.get_all(strict=strict),
            lambda: services.courses.get_all(strict=strict),
        )
        return rows, Lookups.build(students=students, courses=courses)
    return services.by_name(name).get_all(strict=strict), Lookups()


def render_table(page: Page, rows: list[Any], sort: Optional[SortState] = None, numbered: bool = False) -> Table:
    """
    Build a rich table for `rows` (already filtered and sorted).
    The active sort column carries an arrow in its header.
    """
    table = Table(title=f"{page.title} ({len(rows)})", box=box.SIMPLE)
    if numbered:
        table.add_column("#", justify="right")
    table.add_column("Id", justify="right", style="dim")
    for col in page.columns:
        label = col.label
        if sort is not None and sort.field == col.key:
            label += " ▼" if sort.descending else " ▲"
        table.add_column(label)

    for i, row in enumerate(rows, start=1):
        cells = [col.render(row) for col in page.columns]
        head = [str(i)] if numbered else []
        table.add_row(*head, str(row.id), *cells)
    return table


def render_report(report: Report) -> list[Table]:
    tables: list[Table] = []
    for section in report.sections:
        table = Table(title=section.title, box=box.SIMPLE, show_header=False)
        table.add_column("Item")
        table.add_column("Value", justify="right")
        if not section.rows:
            table.add_row("[dim](none)[/]", "")
        for label, value in section.rows:
            table.add_row(escape(str(label)), escape(str(value)))
        tables.append(table)
    return tables


def render_record(entity: Any, title: str = "") -> Table:
    """
    Field/value table for a single entity ("show" command).
    """
    table = Table(title=title or None, box=box.SIMPLE, show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for f in dataclasses.fields(entity):
        value = getattr(entity, f.name)
        if isinstance(value, model.Address):
            text = value.one_line()
        elif isinstance(value, list):
            text = ", ".join(str(v) for v in value)
        elif value is None:
            text = ""
        else:
            text = str(value)
        table.add_row(f.name, escape(text))
    return table


def render_dashboard(stats: DashboardStats, students: list[model.Student], activity: list[Activity]) -> list[Table]:
    avg = f"{stats.average_gpa:.2f}" if stats.average_gpa is not None else "N/A"

    quick = Table(title="Quick Stats", box=box.SIMPLE, show_header=False)
    quick.add_column("Metric")
    quick.add_column("Value", justify="right")
    quick.add_row("Total Students", str(stats.total_students))
    quick.add_row("Active Courses", str(stats.total_courses))
    quick.add_row("Faculty Members", str(stats.total_faculty))
    quick.add_row("Average GPA", avg)
    quick.add_row("Active Students", badge(str(stats.active_students), "success"))
    quick.add_row("On Probation", badge(str(stats.probation_students), "warning"))
    quick.add_row("Total Enrollments", str(stats.total_enrollments))

    counts = Counter(s.academic_status for s in students)
    dist = Table(title="Student Status Distribution", box=box.SIMPLE, show_header=False)
    dist.add_column("Status")
    dist.add_column("Students", justify="right")
    for status in model.ACADEMIC_STATUSES:
        dist.add_row(badge(status, academic_status_variant(status)), str(counts.get(status, 0)))

    recent = Table(title="Recent Activity", box=box.SIMPLE, show_header=False)
    recent.add_column("When", style="dim")
    recent.add_column("What")
    if not activity:
        recent.add_row("", "[dim](nothing yet)[/]")
    for item in activity:
        recent.add_row(escape(item.timestamp), escape(item.message))

    return [quick, dist, recent]
