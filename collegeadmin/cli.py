"""
CLI (Command Line Interface).

Quick terminal commands for admins and for scripting, e.g.:

    collegeadmin students list --search chen --sort gpa --desc
    collegeadmin courses add --set course_code=CS301 --set title="Operating Systems" ...
    collegeadmin enrollments update 4 --set status=completed
    collegeadmin grade 4 B+
    collegeadmin dashboard
    collegeadmin report academic --csv academic.csv
    collegeadmin conflicts
    collegeadmin export-ics timetable.ics --term-start 2024-09-02
    collegeadmin interactive

Global flags (--backend, --data-dir) override the environment / .env.

Note:
- The interactive UI lives in collegeadmin/interactive.py
- Every command returns 0 on success and 1 on a handled error
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape

from collegeadmin import model
from collegeadmin.config import BACKENDS, configure_logging, load_settings
from collegeadmin.conflicts import conflicts_with, find_conflicts
from collegeadmin.errors import CollegeAdminError, ValidationError
from collegeadmin.export_ics import export_schedules_to_ics
from collegeadmin.forms import apply_values, missing_required, parse_assignments
from collegeadmin.grading import gpa, grade_points, normalize_grade
from collegeadmin.listing import DESC, SortState, filter_equals, index_by_id
from collegeadmin.reports import REPORT_KINDS, build_report, dashboard_stats, export_report_csv, recent_activity
from collegeadmin.services import ENTITY_NAMES, Services, fetch_parallel
from collegeadmin.store import build_store
from collegeadmin.views import (
    PAGES,
    Lookups,
    load_page_data,
    render_dashboard,
    render_record,
    render_report,
    render_table,
    visible_rows,
)


logger = logging.getLogger(__name__)

console = Console()

ENTITY_TYPES = {
    "students": model.Student,
    "courses": model.Course,
    "faculty": model.FacultyMember,
    "schedules": model.Schedule,
    "enrollments": model.Enrollment,
}

SINGULAR = {
    "students": "Student",
    "courses": "Course",
    "faculty": "Faculty member",
    "schedules": "Schedule",
    "enrollments": "Enrollment",
}


def _ok(msg: str) -> None:
    console.print(f"[green]{escape(msg)}[/]")


def _error(msg: str) -> None:
    console.print(f"[red]Error:[/] {escape(msg)}")


def _where_fields(entity_name: str) -> set[str]:
    names = {f.name for f in dataclasses.fields(ENTITY_TYPES[entity_name])}
    if entity_name == "students":
        names |= {f"address.{f.name}" for f in dataclasses.fields(model.Address)}
    return names


def _load_all(services: Services) -> list[Any]:
    return fetch_parallel(
        lambda: services.students.get_all(strict=True),
        lambda: services.courses.get_all(strict=True),
        lambda: services.faculty.get_all(strict=True),
        lambda: services.enrollments.get_all(strict=True),
    )


def _warn_conflicts(services: Services, schedule: model.Schedule) -> None:
    """
    Print clashes of `schedule` with the stored timetable. Never blocks the save.
    """
    clashes = conflicts_with(schedule, services.schedules.get_all())
    if not clashes:
        return
    courses = index_by_id(services.courses.get_all())
    for other, reasons in clashes:
        course = courses.get(other.course_id)
        label = course.label if course else f"Course #{other.course_id}"
        console.print(
            f"[yellow]Warning:[/] overlaps {escape(label)} "
            f"({other.day_of_week} {other.start_time}-{other.end_time}, same {' and '.join(reasons)})"
        )


# ---------------------------------------------------------------------------
# Entity commands
# ---------------------------------------------------------------------------


def _cmd_list(args: argparse.Namespace, services: Services) -> int:
    """
    List rows of one entity with search, equality filters and sort.
    """
    name = args.entity
    filters = parse_assignments(args.where)
    known = _where_fields(name)
    for field_name in filters:
        if field_name not in known:
            raise ValidationError(f"Unknown filter field {field_name!r} (known: {', '.join(sorted(known))})")

    rows, ctx = load_page_data(services, name)
    page = PAGES[name](ctx)

    sort = None
    if args.sort:
        sortable = [c.key for c in page.columns if c.sortable]
        if args.sort not in sortable:
            raise ValidationError(f"Cannot sort by {args.sort!r} (sortable: {', '.join(sortable)})")
        sort = SortState(field=args.sort)
        if args.desc:
            sort.direction = DESC

    shown = visible_rows(page, rows, args.search or "")
    for field_name, value in filters.items():
        shown = filter_equals(shown, field_name, value)
    if sort is not None:
        shown = visible_rows(page, shown, sort=sort)

    if not shown:
        console.print(page.empty_title)
        return 0
    console.print(render_table(page, shown, sort))
    return 0


def _cmd_show(args: argparse.Namespace, services: Services) -> int:
    entity = services.by_name(args.entity).get_by_id(args.id)
    console.print(render_record(entity, title=f"{SINGULAR[args.entity]} #{args.id}"))
    if args.entity == "students":
        graded = [e for e in services.enrollments.get_by_student(args.id) if e.grade]
        value = gpa(graded)
        if value is not None:
            console.print(f"Grade GPA: {value:.2f} (from {len(graded)} graded enrollments)")
    return 0


def _cmd_add(args: argparse.Namespace, services: Services) -> int:
    name = args.entity
    entity = apply_values(name, parse_assignments(args.set))
    missing = missing_required(name, entity)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    if name == "schedules":
        _warn_conflicts(services, entity)

    created = services.by_name(name).create(entity)
    _ok(f"{SINGULAR[name]} added successfully! (id {created.id})")
    return 0


def _cmd_update(args: argparse.Namespace, services: Services) -> int:
    name = args.entity
    values = parse_assignments(args.set)
    if not values:
        raise ValidationError("Nothing to update (use --set FIELD=VALUE)")

    service = services.by_name(name)
    current = service.get_by_id(args.id)
    entity = apply_values(name, values, current)
    missing = missing_required(name, entity)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    if name == "schedules":
        _warn_conflicts(services, entity)

    service.update(args.id, entity)
    _ok(f"{SINGULAR[name]} updated successfully!")
    return 0


def _cmd_delete(args: argparse.Namespace, services: Services) -> int:
    name = args.entity
    services.by_name(name).delete(args.id)
    _ok(f"{SINGULAR[name]} deleted successfully!")
    return 0


ENTITY_ACTIONS = {
    "list": _cmd_list,
    "show": _cmd_show,
    "add": _cmd_add,
    "update": _cmd_update,
    "delete": _cmd_delete,
}


# ---------------------------------------------------------------------------
# Grades, dashboard, reports
# ---------------------------------------------------------------------------


def _cmd_grade(args: argparse.Namespace, services: Services) -> int:
    """
    Record a letter grade; the grade points come from the grade scale.
    """
    letter = normalize_grade(args.letter)
    points = grade_points(letter)
    services.enrollments.update(args.enrollment_id, {"grade": letter, "grade_points": points})
    _ok(f"Grade updated successfully! ({letter} = {points:.1f} points)")
    return 0


def _cmd_dashboard(args: argparse.Namespace, services: Services) -> int:
    students, courses, faculty, enrollments = _load_all(services)
    stats = dashboard_stats(students, courses, faculty, enrollments)
    for table in render_dashboard(stats, students, recent_activity(enrollments, students, courses)):
        console.print(table)
    return 0


def _cmd_report(args: argparse.Namespace, services: Services) -> int:
    students, courses, faculty, enrollments = _load_all(services)
    report = build_report(args.kind, students, courses, faculty, enrollments)

    console.print(f"[bold]=== {report.title} ===[/]")
    for table in render_report(report):
        console.print(table)

    if args.csv:
        n = export_report_csv(report, args.csv)
        _ok(f"Exported {n} rows to: {args.csv}")
    return 0


# ---------------------------------------------------------------------------
# Timetable
# ---------------------------------------------------------------------------


def _term_schedules(args: argparse.Namespace, services: Services) -> tuple[list[model.Schedule], Lookups]:
    schedules, ctx = load_page_data(services, "schedules")
    if args.semester:
        schedules = filter_equals(schedules, "semester", args.semester)
    if args.year:
        schedules = filter_equals(schedules, "year", args.year)
    return schedules, ctx


def _cmd_conflicts(args: argparse.Namespace, services: Services) -> int:
    """
    Print schedule pairs that share a room or an instructor at overlapping times.
    """
    schedules, ctx = _term_schedules(args, services)
    confs = find_conflicts(schedules)
    if not confs:
        console.print("No conflicts found.")
        return 0

    def describe(s: model.Schedule) -> str:
        return f"{s.day_of_week} {s.start_time}-{s.end_time} {ctx.course_label(s.course_id)} ({s.room})"

    console.print(f"Conflicts found: {len(confs)}")
    for a, b, reasons in confs:
        console.print(f"- {escape(describe(a))}  <->  {escape(describe(b))}  \\[same {' and '.join(reasons)}]")
    return 0


def _cmd_export_ics(args: argparse.Namespace, services: Services) -> int:
    """
    Export schedules into an iCalendar (.ics) file of weekly events.
    """
    schedules, ctx = _term_schedules(args, services)
    if not schedules:
        console.print("No schedules to export.")
        return 0

    n = export_schedules_to_ics(
        schedules,
        args.out,
        term_start=args.term_start,
        weeks=args.weeks,
        courses=ctx.courses,
        faculty=ctx.faculty,
    )
    _ok(f"Exported {n} events to: {args.out}")
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _iso_date(text: str) -> date:
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a date as YYYY-MM-DD, got {text!r}")


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a whole number, got {text!r}")
    if value <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive number, got {text!r}")
    return value


def _add_term_filters(p: argparse.ArgumentParser) -> None:
    p.add_argument("--semester", choices=model.SEMESTERS, help="Only schedules of this semester")
    p.add_argument("--year", type=int, help="Only schedules of this year")


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="collegeadmin", description="College administration dashboard")
    parser.add_argument("--backend", choices=BACKENDS, help="Record store backend (default: from environment)")
    parser.add_argument("--data-dir", help="Directory with mock JSON tables (memory backend)")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ENTITY_NAMES:
        p_entity = sub.add_parser(name, help=f"Manage {name}")
        actions = p_entity.add_subparsers(dest="action", required=True)

        p_list = actions.add_parser("list", help=f"List {name}")
        p_list.add_argument("--search", type=str, default="", help="Case-insensitive search text")
        p_list.add_argument(
            "--where", action="append", default=[], metavar="FIELD=VALUE", help="Equality filter (repeatable)"
        )
        p_list.add_argument("--sort", type=str, help="Column to sort by")
        p_list.add_argument("--desc", action="store_true", help="Sort descending")

        p_show = actions.add_parser("show", help="Show one record")
        p_show.add_argument("id", type=int, help="Record id")

        p_add = actions.add_parser("add", help="Create a record")
        p_add.add_argument(
            "--set", action="append", default=[], metavar="FIELD=VALUE", help="Field value (repeatable)"
        )

        p_update = actions.add_parser("update", help="Change fields of a record")
        p_update.add_argument("id", type=int, help="Record id")
        p_update.add_argument(
            "--set", action="append", default=[], metavar="FIELD=VALUE", help="Field value (repeatable)"
        )

        p_delete = actions.add_parser("delete", help="Delete a record")
        p_delete.add_argument("id", type=int, help="Record id")

    p_grade = sub.add_parser("grade", help="Record a letter grade for an enrollment")
    p_grade.add_argument("enrollment_id", type=int, help="Enrollment id")
    p_grade.add_argument("letter", type=str, help="Letter grade (A+ .. F)")

    sub.add_parser("dashboard", help="Show the dashboard figures")

    p_report = sub.add_parser("report", help="Show an analytics report")
    p_report.add_argument("kind", nargs="?", default="overview", choices=list(REPORT_KINDS), help="Report kind")
    p_report.add_argument("--csv", type=str, help="Also write the report to this CSV file")

    p_conflicts = sub.add_parser("conflicts", help="Show room/instructor double bookings")
    _add_term_filters(p_conflicts)

    p_export = sub.add_parser("export-ics", help="Export schedules to .ics")
    p_export.add_argument("out", type=str, help="Output file path (e.g. timetable.ics)")
    p_export.add_argument("--term-start", type=_iso_date, required=True, help="First day of term (YYYY-MM-DD)")
    p_export.add_argument("--weeks", type=_positive_int, default=15, help="Number of weekly meetings (default 15)")
    _add_term_filters(p_export)

    sub.add_parser("interactive", help="Interactive menu mode")

    return parser


COMMANDS = {
    "grade": _cmd_grade,
    "dashboard": _cmd_dashboard,
    "report": _cmd_report,
    "conflicts": _cmd_conflicts,
    "export-ics": _cmd_export_ics,
}


def _dispatch(args: argparse.Namespace, services: Services) -> int:
    if args.command in ENTITY_NAMES:
        args.entity = args.command
        return ENTITY_ACTIONS[args.action](args, services)
    if args.command in COMMANDS:
        return COMMANDS[args.command](args, services)

    if args.command == "interactive":
        from collegeadmin.interactive import run_interactive

        run_interactive(services)
        return 0

    return 2


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, builds the store selected by settings,
    dispatches to a command handler and exits via SystemExit with its
    return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
        if args.backend:
            settings.backend = args.backend
        if args.data_dir:
            settings.data_dir = Path(args.data_dir)
        configure_logging(settings)

        services = Services.from_store(build_store(settings))
        code = _dispatch(args, services)
    except CollegeAdminError as e:
        logger.debug("Command %s failed: %s %s", args.command, e.message, e.details)
        _error(e.message)
        code = 1
    except OSError as e:
        _error(str(e))
        code = 1

    raise SystemExit(code)
