"""
Add/edit forms for the five entities.

A form is a list of FormField. Raw text typed by the user (interactive
prompt or CLI "--set field=value") is coerced per field kind, then applied
to a new or existing entity. Nested address fields use dotted names
("address.city").
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional

from collegeadmin import model
from collegeadmin.errors import ValidationError
from collegeadmin.services import split_list


@dataclass
class FormField:
    name: str
    label: str
    kind: str = "text"  # text | int | float | choice | list | date | time
    choices: Optional[list[str]] = None
    required: bool = False


STUDENT_FORM = [
    FormField("first_name", "First Name", required=True),
    FormField("last_name", "Last Name", required=True),
    FormField("email", "Email", required=True),
    FormField("phone", "Phone"),
    FormField("date_of_birth", "Date of Birth", kind="date"),
    FormField("address.street", "Street"),
    FormField("address.city", "City"),
    FormField("address.state", "State"),
    FormField("address.zip_code", "ZIP Code"),
    FormField("program", "Program", kind="choice", choices=model.PROGRAMS, required=True),
    FormField("academic_status", "Academic Status", kind="choice", choices=model.ACADEMIC_STATUSES),
]

COURSE_FORM = [
    FormField("course_code", "Course Code", required=True),
    FormField("title", "Title", required=True),
    FormField("description", "Description"),
    FormField("credits", "Credits", kind="int", required=True),
    FormField("department", "Department", kind="choice", choices=model.DEPARTMENTS, required=True),
    FormField("prerequisites", "Prerequisites (comma-separated)", kind="list"),
    FormField("max_enrollment", "Max Enrollment", kind="int", required=True),
    FormField("semester", "Semester", kind="choice", choices=model.SEMESTERS),
    FormField("year", "Year", kind="int"),
]

FACULTY_FORM = [
    FormField("first_name", "First Name", required=True),
    FormField("last_name", "Last Name", required=True),
    FormField("email", "Email", required=True),
    FormField("phone", "Phone"),
    FormField("department", "Department", kind="choice", choices=model.DEPARTMENTS, required=True),
    FormField("position", "Position", kind="choice", choices=model.POSITIONS),
    FormField("office_location", "Office Location"),
    FormField("max_course_load", "Max Course Load", kind="int"),
]

SCHEDULE_FORM = [
    FormField("course_id", "Course Id", kind="int", required=True),
    FormField("faculty_id", "Faculty Id", kind="int", required=True),
    FormField("room", "Room", required=True),
    FormField("day_of_week", "Day", kind="choice", choices=model.DAYS_OF_WEEK),
    FormField("start_time", "Start Time", kind="time", choices=model.TIME_SLOTS, required=True),
    FormField("end_time", "End Time", kind="time", choices=model.TIME_SLOTS, required=True),
    FormField("semester", "Semester", kind="choice", choices=model.SEMESTERS),
    FormField("year", "Year", kind="int"),
]

ENROLLMENT_FORM = [
    FormField("student_id", "Student Id", kind="int", required=True),
    FormField("course_id", "Course Id", kind="int", required=True),
    FormField("semester", "Semester", kind="choice", choices=model.SEMESTERS),
    FormField("year", "Year", kind="int"),
    FormField("status", "Status", kind="choice", choices=model.ENROLLMENT_STATUSES),
]

FORMS: dict[str, list[FormField]] = {
    "students": STUDENT_FORM,
    "courses": COURSE_FORM,
    "faculty": FACULTY_FORM,
    "schedules": SCHEDULE_FORM,
    "enrollments": ENROLLMENT_FORM,
}


def _blank(entity_name: str) -> Any:
    """
    Empty entity with the same defaults as a freshly reset form.
    """
    year = date.today().year
    if entity_name == "students":
        return model.Student(first_name="", last_name="", email="")
    if entity_name == "courses":
        return model.Course(course_code="", title="", credits=0, max_enrollment=0, year=year)
    if entity_name == "faculty":
        return model.FacultyMember(first_name="", last_name="", email="")
    if entity_name == "schedules":
        return model.Schedule(course_id=0, faculty_id=0, room="", year=year)
    if entity_name == "enrollments":
        return model.Enrollment(student_id=0, course_id=0, year=year)
    raise ValidationError(f"Unknown entity: {entity_name!r}")


def get_field(entity_name: str, name: str) -> FormField:
    for f in FORMS.get(entity_name, []):
        if f.name == name:
            return f
    known = ", ".join(f.name for f in FORMS.get(entity_name, []))
    raise ValidationError(f"Unknown field {name!r} (known: {known})")


def coerce(f: FormField, raw: str) -> Any:
    """
    Convert user text to the field's value type. Raises ValidationError.
    """
    text = (raw or "").strip()
    if f.kind == "int":
        if not text:
            return 0
        try:
            return int(text)
        except ValueError:
            raise ValidationError(f"{f.label} must be a whole number, got {raw!r}")
    if f.kind == "float":
        if not text:
            return None
        try:
            return float(text)
        except ValueError:
            raise ValidationError(f"{f.label} must be a number, got {raw!r}")
    if f.kind == "list":
        return split_list(text)
    if f.kind == "choice" and text:
        for choice in f.choices or []:
            if choice.lower() == text.lower():
                return choice
        raise ValidationError(f"{f.label} must be one of: {', '.join(f.choices or [])}")
    if f.kind == "date" and text:
        try:
            return datetime.strptime(text, "%Y-%m-%d").date().isoformat()
        except ValueError:
            raise ValidationError(f"{f.label} must be a date (YYYY-MM-DD), got {raw!r}")
    if f.kind == "time" and text:
        try:
            value = datetime.strptime(text, "%H:%M").strftime("%H:%M")
        except ValueError:
            raise ValidationError(f"{f.label} must be a time (HH:MM), got {raw!r}")
        if f.choices and value not in f.choices:
            raise ValidationError(f"{f.label} must be a slot between {f.choices[0]} and {f.choices[-1]}, got {raw!r}")
        return value
    return text


def parse_assignments(pairs: list[str]) -> dict[str, str]:
    """
    ["credits=4", "title=Intro"] -> {"credits": "4", "title": "Intro"}
    """
    out: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValidationError(f"Expected FIELD=VALUE, got {pair!r}")
        key, value = pair.split("=", 1)
        key = key.strip()
        if not key:
            raise ValidationError(f"Expected FIELD=VALUE, got {pair!r}")
        out[key] = value
    return out


def apply_values(entity_name: str, raw_values: Mapping[str, str], base: Any = None) -> Any:
    """
    Coerce raw form values and apply them to `base` (or a blank entity).
    Returns a new entity; `base` is not modified.
    """
    entity = base if base is not None else _blank(entity_name)
    top: dict[str, Any] = {}
    address: dict[str, Any] = {}

    for name, raw in raw_values.items():
        f = get_field(entity_name, name)
        value = coerce(f, raw)
        if name.startswith("address."):
            address[name.split(".", 1)[1]] = value
        else:
            top[name] = value

    if address:
        top["address"] = dataclasses.replace(entity.address, **address)
    return dataclasses.replace(entity, **top)


def missing_required(entity_name: str, entity: Any) -> list[str]:
    """
    Labels of required fields that are still empty on `entity`.
    """
    out: list[str] = []
    for f in FORMS[entity_name]:
        if not f.required:
            continue
        value: Any = entity
        for part in f.name.split("."):
            value = getattr(value, part)
        if value in (None, "", 0, []):
            out.append(f.label)
    return out


def current_text(entity: Any, f: FormField) -> str:
    """
    Field value as editable text (prompt default when editing).
    """
    value: Any = entity
    for part in f.name.split("."):
        value = getattr(value, part, None)
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(value)
    if f.kind == "int" and value == 0:
        return ""
    return str(value)
