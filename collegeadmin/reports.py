"""
Dashboard figures and the analytics reports.

Everything here is computed from already-loaded entity lists; nothing talks
to the store. Reports are plain data (sections of label/value rows) so the
same Report can be shown as rich tables or written to CSV.
"""

from __future__ import annotations

import csv
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional

from collegeadmin.grading import faculty_load, gpa, load_category
from collegeadmin.listing import index_by_id
from collegeadmin.model import Course, Enrollment, FacultyMember, Student


REPORT_KINDS = {
    "overview": "Overview",
    "enrollment": "Enrollment Trends",
    "academic": "Academic Performance",
    "faculty": "Faculty Workload",
}

TOP_PERFORMER_GPA = 3.8
AT_RISK_GPA = 2.5


@dataclass
class DashboardStats:
    total_students: int
    active_students: int
    probation_students: int
    total_courses: int
    total_faculty: int
    total_enrollments: int
    average_gpa: Optional[float]


@dataclass
class Activity:
    id: Optional[int]
    message: str
    timestamp: str


@dataclass
class ReportSection:
    title: str
    rows: list[tuple[str, Any]] = field(default_factory=list)


@dataclass
class Report:
    kind: str
    title: str
    sections: list[ReportSection] = field(default_factory=list)


def count_by(rows: Iterable[Any], attr: str) -> dict[str, int]:
    """
    Occurrences per attribute value, in order of first appearance. Empty
    values are not counted.
    """
    counts: dict[str, int] = {}
    for row in rows:
        key = getattr(row, attr, None)
        if key in (None, ""):
            continue
        counts[str(key)] = counts.get(str(key), 0) + 1
    return counts


def average_gpa(students: Iterable[Student]) -> Optional[float]:
    values = [s.gpa for s in students if s.gpa is not None]
    return sum(values) / len(values) if values else None


def dashboard_stats(
    students: list[Student],
    courses: list[Course],
    faculty: list[FacultyMember],
    enrollments: list[Enrollment],
) -> DashboardStats:
    return DashboardStats(
        total_students=len(students),
        active_students=sum(1 for s in students if s.academic_status == "Active"),
        probation_students=sum(1 for s in students if s.academic_status == "Probation"),
        total_courses=len(courses),
        total_faculty=len(faculty),
        total_enrollments=len(enrollments),
        average_gpa=average_gpa(students),
    )


def recent_activity(
    enrollments: list[Enrollment],
    students: list[Student],
    courses: list[Course],
    limit: int = 8,
) -> list[Activity]:
    """
    Latest enrollments (by enrollment date, newest first) as activity lines.
    """
    student_by_id = index_by_id(students)
    course_by_id = index_by_id(courses)

    latest = sorted(enrollments, key=lambda e: e.enrollment_date or "", reverse=True)[:limit]
    out: list[Activity] = []
    for e in latest:
        student = student_by_id.get(e.student_id)
        course = course_by_id.get(e.course_id)
        who = student.full_name if student else "Unknown student"
        what = course.title if course else "an unknown course"
        out.append(Activity(id=e.id, message=f"{who} enrolled in {what}", timestamp=e.enrollment_date))
    return out


def grade_stats(enrollments: list[Enrollment]) -> dict[str, Any]:
    """
    Figures shown above the grade table: graded, pending, average points.
    """
    graded = [e for e in enrollments if e.grade]
    average = gpa(graded)
    return {
        "total": len(enrollments),
        "graded": len(graded),
        "pending": len(enrollments) - len(graded),
        "average_points": average if average is not None else 0.0,
    }


def enrollments_by_month(enrollments: Iterable[Enrollment]) -> dict[str, int]:
    months = Counter(e.enrollment_date[:7] for e in enrollments if len(e.enrollment_date or "") >= 7)
    return dict(sorted(months.items()))


def completion_rate(enrollments: list[Enrollment]) -> Optional[float]:
    """
    Percentage of enrollments that reached "completed".
    """
    if not enrollments:
        return None
    done = sum(1 for e in enrollments if e.status == "completed")
    return done / len(enrollments) * 100


def student_faculty_ratio(students: list[Student], faculty: list[FacultyMember]) -> str:
    if not faculty:
        return "n/a"
    return f"1:{round(len(students) / len(faculty))}"


def gpa_by_program(students: Iterable[Student]) -> dict[str, float]:
    buckets: dict[str, list[float]] = {}
    for s in students:
        if s.gpa is None or not s.program:
            continue
        buckets.setdefault(s.program, []).append(s.gpa)
    return {program: sum(v) / len(v) for program, v in sorted(buckets.items())}


def _fmt(value: Optional[float], digits: int = 2, suffix: str = "") -> str:
    return "n/a" if value is None else f"{value:.{digits}f}{suffix}"


def build_report(
    kind: str,
    students: list[Student],
    courses: list[Course],
    faculty: list[FacultyMember],
    enrollments: list[Enrollment],
) -> Report:
    """
    Assemble one of REPORT_KINDS. Key metrics lead every report.
    """
    if kind not in REPORT_KINDS:
        raise ValueError(f"Unknown report: {kind!r}")

    report = Report(kind=kind, title=REPORT_KINDS[kind])
    report.sections.append(
        ReportSection(
            "Key Metrics",
            [
                ("Total Students", len(students)),
                ("Course Completion", _fmt(completion_rate(enrollments), 0, "%")),
                ("Average GPA", _fmt(average_gpa(students))),
                ("Faculty Ratio", student_faculty_ratio(students, faculty)),
            ],
        )
    )

    if kind == "overview":
        report.sections.append(ReportSection("Enrollment by Program", list(count_by(students, "program").items())))
        report.sections.append(
            ReportSection("Student Status Distribution", list(count_by(students, "academic_status").items()))
        )
    elif kind == "enrollment":
        report.sections.append(ReportSection("Enrollments by Month", list(enrollments_by_month(enrollments).items())))
        report.sections.append(ReportSection("Enrollments by Semester", list(count_by(enrollments, "semester").items())))
        report.sections.append(
            ReportSection(
                "Course Capacity",
                [(c.course_code, f"{c.current_enrollment}/{c.max_enrollment}") for c in courses],
            )
        )
    elif kind == "academic":
        report.sections.append(ReportSection("Grade Distribution", list(count_by(enrollments, "grade").items())))
        top = [s for s in students if s.gpa is not None and s.gpa >= TOP_PERFORMER_GPA][:5]
        risk = [s for s in students if s.gpa is not None and s.gpa < AT_RISK_GPA][:5]
        report.sections.append(ReportSection("Top Performers", [(s.full_name, f"{s.gpa:.2f}") for s in top]))
        report.sections.append(ReportSection("At Risk Students", [(s.full_name, f"{s.gpa:.2f}") for s in risk]))
        report.sections.append(
            ReportSection("Program Performance", [(p, f"{v:.2f}") for p, v in gpa_by_program(students).items()])
        )
    elif kind == "faculty":
        report.sections.append(ReportSection("Faculty by Department", list(count_by(faculty, "department").items())))
        report.sections.append(
            ReportSection(
                "Faculty Workload Analysis",
                [(m.full_name, f"{len(m.courses)}/{m.max_course_load}") for m in faculty],
            )
        )
        categories = Counter(load_category(m) for m in faculty)
        report.sections.append(
            ReportSection(
                "Course Load Summary",
                [
                    ("Optimal Load (75-100%)", categories.get("optimal", 0)),
                    ("Under-utilized (<75%)", categories.get("under", 0)),
                    ("Overloaded (>100%)", categories.get("over", 0)),
                ],
            )
        )

    return report


def export_report_csv(report: Report, out_path: str | Path) -> int:
    """
    Write a report as CSV rows (section, label, value). Returns row count.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with out.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow(["section", "label", "value"])
        for section in report.sections:
            for label, value in section.rows:
                writer.writerow([section.title, label, value])
                count += 1
    return count


def faculty_load_percent(member: FacultyMember) -> float:
    return faculty_load(member) * 100
