from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from collegeadmin.conflicts import conflicts_with
from collegeadmin.errors import CollegeAdminError
from collegeadmin.forms import FORMS, FormField, apply_values, current_text, missing_required
from collegeadmin.grading import GRADE_SCALE, grade_points, normalize_grade
from collegeadmin.listing import SortState
from collegeadmin.reports import (
    REPORT_KINDS,
    build_report,
    dashboard_stats,
    export_report_csv,
    grade_stats,
    recent_activity,
)
from collegeadmin.services import Services, fetch_parallel
from collegeadmin.views import (
    PAGES,
    Lookups,
    Page,
    badge,
    load_page_data,
    render_dashboard,
    render_report,
    render_table,
    visible_rows,
)


console = Console()

T = TypeVar("T")

NAVIGATION = [
    ("1", "Dashboard", "dashboard"),
    ("2", "Students", "students"),
    ("3", "Courses", "courses"),
    ("4", "Faculty", "faculty"),
    ("5", "Schedules", "schedules"),
    ("6", "Grades", "enrollments"),
    ("7", "Reports", "reports"),
]

QUICK_ACTIONS = [
    ("a", "Add Student", "students"),
    ("n", "New Course", "courses"),
    ("s", "Schedule Class", "schedules"),
]

SINGULAR = {
    "students": "Student",
    "courses": "Course",
    "faculty": "Faculty member",
    "schedules": "Schedule",
    "enrollments": "Enrollment",
}


def _println(msg: str = "") -> None:
    console.print(msg)


def _prompt(msg: str) -> str:
    # prompts are plain text: "[y/N]" or "[s] Search" must not parse as markup
    return console.input(escape(msg))


def _toast_ok(msg: str) -> None:
    _println(f"[green]✔ {escape(msg)}[/]")


def _toast_error(msg: str) -> None:
    _println(f"[red]✘ {escape(msg)}[/]")


def _confirm(msg: str, default: bool = False) -> bool:
    hint = "[Y/n]" if default else "[y/N]"
    answer = _prompt(f"{msg} {hint}: ").strip().lower()
    if not answer:
        return default
    return answer == "y"


def _load(loader: Callable[[], T]) -> Optional[T]:
    """
    Run a loader; on failure show the error and offer a retry.
    Returns None when the user gives up.
    """
    while True:
        try:
            return loader()
        except CollegeAdminError as e:
            _println("\n[bold red]Oops! Something went wrong[/]")
            _println(escape(e.message))
            if not _confirm("Try again?", default=True):
                return None


def run_interactive(services: Services) -> None:
    """
    Navigation shell: main menu -> page loop -> back to main menu.
    """
    while True:
        _println("\n[bold]=== College Admin ===[/]")
        for key, label, _ in NAVIGATION:
            _println(escape(f"[{key}] {label}"))
        _println(escape("[0] Exit"))

        choice = _prompt("Select: ").strip()
        if choice == "0":
            _println("Bye.")
            return

        target = next((name for key, _, name in NAVIGATION if key == choice), None)
        if target is None:
            _println("Invalid choice.")
        elif target == "dashboard":
            _flow_dashboard(services)
        elif target == "reports":
            _flow_reports(services)
        else:
            _flow_page(services, target)


# ---------------------------------------------------------------------------
# Dashboard + reports
# ---------------------------------------------------------------------------


def _load_everything(services: Services) -> list[Any]:
    return fetch_parallel(
        lambda: services.students.get_all(strict=True),
        lambda: services.courses.get_all(strict=True),
        lambda: services.faculty.get_all(strict=True),
        lambda: services.enrollments.get_all(strict=True),
    )


def _flow_dashboard(services: Services) -> None:
    data = _load(lambda: _load_everything(services))
    if data is None:
        return
    students, courses, faculty, enrollments = data

    stats = dashboard_stats(students, courses, faculty, enrollments)
    activity = recent_activity(enrollments, students, courses)
    for table in render_dashboard(stats, students, activity):
        console.print(table)

    _println("\n[bold]Quick Actions[/]")
    for key, label, _ in QUICK_ACTIONS:
        _println(escape(f"[{key}] {label}"))
    choice = _prompt("Select (blank = back): ").strip().lower()
    target = next((name for key, _, name in QUICK_ACTIONS if key == choice), None)
    if target is None:
        return
    loaded = _load(lambda: load_page_data(services, target))
    if loaded is not None:
        _flow_save(services, target, loaded[1], None)


def _flow_reports(services: Services) -> None:
    data = _load(lambda: _load_everything(services))
    if data is None:
        return
    students, courses, faculty, enrollments = data

    kinds = list(REPORT_KINDS.items())
    while True:
        _println("\nReports:")
        for i, (_, title) in enumerate(kinds, start=1):
            _println(f"{i}) {title}")
        pick = _prompt("Choose report [blank = back]: ").strip()
        if not pick:
            return
        if not pick.isdigit() or not (1 <= int(pick) <= len(kinds)):
            _println("Out of range.")
            continue

        kind = kinds[int(pick) - 1][0]
        report = build_report(kind, students, courses, faculty, enrollments)
        _println(f"\n[bold]=== {report.title} ===[/]")
        for table in render_report(report):
            console.print(table)

        if _confirm("Export this report to CSV?"):
            default_name = f"report-{kind}.csv"
            out_in = _prompt(f"File name [{default_name}]: ").strip()
            out_path = Path(out_in or default_name)
            try:
                n = export_report_csv(report, out_path)
            except OSError as e:
                _toast_error(f"Export failed: {e}")
            else:
                _toast_ok(f"Exported {n} rows to {out_path.resolve()}")


# ---------------------------------------------------------------------------
# Entity pages
# ---------------------------------------------------------------------------


def _row_label(name: str, row: Any, ctx: Lookups) -> str:
    if name in ("students", "faculty"):
        return row.full_name
    if name == "courses":
        return row.title
    if name == "schedules":
        return f"the schedule for {ctx.course_label(row.course_id)}"
    return f"{ctx.student_name(row.student_id)} in {ctx.course_label(row.course_id)}"


def _flow_page(services: Services, name: str) -> None:
    text = ""
    filters: dict[str, str] = {}
    sort = SortState()

    while True:
        data = _load(lambda: load_page_data(services, name))
        if data is None:
            return
        rows, ctx = data
        page = PAGES[name](ctx)
        shown = visible_rows(page, rows, text, filters, sort)

        if name == "enrollments":
            _print_grade_stats(rows)

        if shown:
            console.print(render_table(page, shown, sort, numbered=True))
        else:
            _println(f"\n[bold]{page.empty_title}[/]")
            _println(f"[dim]{page.empty_hint}[/]")

        active = [f"search={text!r}"] if text else []
        active += [f"{k}={v}" for k, v in filters.items()]
        if active:
            _println(f"[dim]Active filters: {escape(', '.join(active))}[/]")

        actions = "[s] Search  [f] Filter  [o] Sort  [c] Clear  [a] Add  [e] Edit  [d] Delete"
        if name == "enrollments":
            actions += "  [g] Grade"
        choice = _prompt(f"\n{actions}  [b] Back\nSelect: ").strip().lower()

        if choice in ("b", ""):
            return
        if choice == "s":
            text = _prompt("Search text [blank = all]: ").strip()
        elif choice == "f":
            _choose_filter(page, filters)
        elif choice == "o":
            _choose_sort(page, sort)
        elif choice == "c":
            text, filters = "", {}
        elif choice == "a":
            _flow_save(services, name, ctx, None)
        elif choice == "e":
            row = _pick_row(shown, "edit")
            if row is not None:
                _flow_save(services, name, ctx, row)
        elif choice == "d":
            row = _pick_row(shown, "delete")
            if row is not None:
                _flow_delete(services, name, ctx, row)
        elif choice == "g" and name == "enrollments":
            row = _pick_row(shown, "grade")
            if row is not None:
                _flow_grade(services, row)
        else:
            _println("Invalid choice.")


def _print_grade_stats(enrollments: list[Any]) -> None:
    stats = grade_stats(enrollments)
    _println(
        f"\nTotal: {stats['total']} | Graded: {badge(str(stats['graded']), 'success')} | "
        f"Pending: {badge(str(stats['pending']), 'warning')} | "
        f"Avg points: {stats['average_points']:.2f}"
    )


def _pick_number(count: int, msg: str) -> Optional[int]:
    pick = _prompt(msg).strip()
    if not pick:
        return None
    if not pick.isdigit():
        _println("Not a number.")
        return None
    i = int(pick)
    if not (1 <= i <= count):
        _println("Out of range.")
        return None
    return i


def _pick_row(rows: list[Any], action: str) -> Optional[Any]:
    if not rows:
        _println("Nothing to select.")
        return None
    i = _pick_number(len(rows), f"Enter number to {action} [blank = cancel]: ")
    return rows[i - 1] if i else None


def _choose_filter(page: Page, filters: dict[str, str]) -> None:
    for i, f in enumerate(page.filters, start=1):
        current = filters.get(f.field, "All")
        _println(f"{i}) {f.label} (now: {escape(current)})")
    i = _pick_number(len(page.filters), "Filter by [blank = cancel]: ")
    if not i:
        return
    flt = page.filters[i - 1]

    _println(f"0) All {flt.label}")
    for j, (_, label) in enumerate(flt.choices, start=1):
        _println(f"{j}) {escape(label)}")
    pick = _prompt("Choose: ").strip()
    if pick == "0":
        filters.pop(flt.field, None)
    elif pick.isdigit() and 1 <= int(pick) <= len(flt.choices):
        filters[flt.field] = flt.choices[int(pick) - 1][0]
    else:
        _println("Out of range.")


def _choose_sort(page: Page, sort: SortState) -> None:
    sortable = [c for c in page.columns if c.sortable]
    for i, col in enumerate(sortable, start=1):
        _println(f"{i}) {col.label}")
    i = _pick_number(len(sortable), "Sort by (again = reverse) [blank = cancel]: ")
    if i:
        sort.toggle(sortable[i - 1].key)


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------


def _ask_field(f: FormField, default: str) -> str:
    suffix = f" [{default}]" if default else ""
    if f.kind == "choice" and f.choices:
        for j, choice in enumerate(f.choices, start=1):
            _println(f"  {j}) {choice}")
        raw = _prompt(f"{f.label}{suffix}: ").strip()
        if raw.isdigit() and 1 <= int(raw) <= len(f.choices):
            return f.choices[int(raw) - 1]
        return raw or default
    if f.kind == "time" and f.choices:
        _println("  Slots: " + " ".join(f.choices))
    raw = _prompt(f"{f.label}{suffix}: ").strip()
    return raw or default


def _print_id_choices(ctx: Lookups, field_name: str) -> None:
    options = {
        "student_id": [(i, f"{s.student_id} {s.full_name}") for i, s in ctx.students.items()],
        "course_id": [(i, c.label) for i, c in ctx.courses.items()],
        "faculty_id": [(i, m.full_name) for i, m in ctx.faculty.items()],
    }.get(field_name, [])
    for record_id, label in options:
        _println(f"  {record_id}) {escape(label)}")


def _fill_form(name: str, base: Any, ctx: Lookups) -> Optional[Any]:
    """
    Prompt every field of the entity form. Blank input keeps the shown
    default. Returns the new entity or None if input was invalid.
    """
    fields = FORMS[name]
    if name == "enrollments" and base is not None:
        # an enrollment keeps its student and course; only term and status change
        fields = [f for f in fields if f.name not in ("student_id", "course_id")]
    values: dict[str, str] = {}
    for f in fields:
        default = current_text(base, f) if base is not None else ""
        _print_id_choices(ctx, f.name)
        raw = _ask_field(f, default)
        if raw:
            values[f.name] = raw

    try:
        entity = apply_values(name, values, base)
    except CollegeAdminError as e:
        _toast_error(e.message)
        return None

    missing = missing_required(name, entity)
    if missing:
        _toast_error(f"Missing required fields: {', '.join(missing)}")
        return None
    return entity


def _flow_save(services: Services, name: str, ctx: Lookups, row: Optional[Any]) -> None:
    title = f"Edit {SINGULAR[name]}" if row is not None else f"Add {SINGULAR[name]}"
    _println(f"\n[bold]{title}[/]")
    entity = _fill_form(name, row, ctx)
    if entity is None:
        return

    if name == "schedules":
        others = services.schedules.get_all()
        clashes = conflicts_with(entity, others)
        for other, reasons in clashes:
            _println(
                f"[yellow]Warning:[/] overlaps {escape(ctx.course_label(other.course_id))} "
                f"({escape(other.day_of_week)} {other.start_time}-{other.end_time}, same {' and '.join(reasons)})"
            )
        if clashes and not _confirm("Save anyway?"):
            return

    service = services.by_name(name)
    try:
        if row is not None:
            service.update(row.id, entity)
            _toast_ok(f"{SINGULAR[name]} updated successfully!")
        else:
            service.create(entity)
            _toast_ok(f"{SINGULAR[name]} added successfully!")
    except CollegeAdminError as e:
        _toast_error(e.message)


def _flow_delete(services: Services, name: str, ctx: Lookups, row: Any) -> None:
    if not _confirm(f"Are you sure you want to delete {_row_label(name, row, ctx)}?"):
        return
    try:
        services.by_name(name).delete(row.id)
        _toast_ok(f"{SINGULAR[name]} deleted successfully!")
    except CollegeAdminError as e:
        _toast_error(e.message)


def _flow_grade(services: Services, enrollment: Any) -> None:
    table = Table(title="Grade scale", box=box.SIMPLE)
    table.add_column("Grade")
    table.add_column("Points", justify="right")
    for letter, points in GRADE_SCALE:
        table.add_row(letter, f"{points:.1f}")
    console.print(table)

    current = enrollment.grade or ""
    raw = _prompt(f"Grade [{current or 'none'}]: ").strip() or current
    if not raw:
        return
    try:
        letter = normalize_grade(raw)
        services.enrollments.update(enrollment.id, {"grade": letter, "grade_points": grade_points(letter)})
        _toast_ok("Grade updated successfully!")
    except CollegeAdminError as e:
        _toast_error(e.message)
