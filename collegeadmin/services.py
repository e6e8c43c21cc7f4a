"""
Entity access objects.

Each service wraps one table of the record store and maps its flat rows to
the dataclasses in collegeadmin.model:

- nested Student.address <-> address_street / address_city / ... columns
- list fields (Course.prerequisites, FacultyMember.courses) <-> comma-separated text
- lookup columns that come back as {"Id": 3, "Name": "..."} -> plain id

Error contract:
- get_all(strict=False) and the filtered queries log store errors and return []
- get_all(strict=True) re-raises, so a page can offer a retry
- get_by_id / update / delete raise RecordNotFoundError for unknown ids
- create / update / delete raise RecordStoreError when the row is rejected
"""

from __future__ import annotations

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Any, Callable, Generic, Iterable, Mapping, Optional, TypeVar

from collegeadmin.errors import RecordNotFoundError, RecordStoreError, ValidationError
from collegeadmin.model import Address, Course, Enrollment, FacultyMember, Schedule, Student


logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Field coercion helpers
# ---------------------------------------------------------------------------


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _float_or_none(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _lookup_id(value: Any) -> int:
    """
    Reduce a lookup column to the referenced id.
    """
    if isinstance(value, dict):
        value = value.get("Id")
    return _int(value)


def split_list(value: Any) -> list[str]:
    """
    "CS101, MATH201" -> ["CS101", "MATH201"]. Lists pass through cleaned.
    """
    if value is None:
        return []
    items = value if isinstance(value, list) else str(value).split(",")
    return [str(x).strip() for x in items if str(x).strip()]


def join_list(items: Iterable[str]) -> str:
    return ",".join(str(x).strip() for x in items if str(x).strip())


def today_iso() -> str:
    return date.today().isoformat()


# ---------------------------------------------------------------------------
# Base service
# ---------------------------------------------------------------------------


class EntityService(Generic[T]):
    """
    Shared CRUD plumbing. Subclasses set table/label/fields and implement
    to_record() and from_record().
    """

    table: str = ""
    label: str = "Record"
    fields: list[str] = []

    def __init__(self, store: Any):
        self.store = store

    def to_record(self, entity: T) -> dict[str, Any]:
        raise NotImplementedError

    def from_record(self, record: dict[str, Any]) -> T:
        raise NotImplementedError

    def apply_defaults(self, record: dict[str, Any]) -> dict[str, Any]:
        return record

    def _query(self, where: Optional[Mapping[str, Any]] = None, strict: bool = False) -> list[T]:
        try:
            rows = self.store.fetch_records(self.table, self.fields, where=where)
        except RecordStoreError as e:
            logger.error("Error fetching %s records: %s", self.table, e.message)
            if strict:
                raise
            return []
        return [self.from_record(r) for r in rows]

    def get_all(self, strict: bool = False) -> list[T]:
        return self._query(strict=strict)

    def get_by_id(self, record_id: int) -> T:
        record = self.store.get_record(self.table, int(record_id), self.fields)
        if not record:
            raise RecordNotFoundError(f"{self.label} not found", details={"id": record_id})
        return self.from_record(record)

    def create(self, entity: T) -> T:
        record = self.apply_defaults(self.to_record(entity))
        record.pop("Id", None)
        result = self.store.create_records(self.table, [record])
        if result.failed:
            raise RecordStoreError(result.failed[0].describe(), details={"table": self.table})
        created = result.first()
        if created is None:
            raise RecordStoreError(f"{self.label} was not created", details={"table": self.table})
        logger.info("Created %s %s", self.table, created.get("Id"))
        return self.from_record(created)

    def update(self, record_id: int, changes: T | Mapping[str, Any]) -> T:
        """
        Update one record. `changes` is either a full entity or a mapping of
        entity attribute names to new values (partial update).
        """
        current = self.get_by_id(record_id)
        if isinstance(changes, Mapping):
            try:
                merged = dataclasses.replace(current, **dict(changes))
            except TypeError as e:
                raise ValidationError(f"Unknown {self.label.lower()} field: {e}") from e
        else:
            merged = changes

        record = self.to_record(merged)
        record["Id"] = int(record_id)
        result = self.store.update_records(self.table, [record])
        if result.failed:
            raise RecordStoreError(result.failed[0].describe(), details={"table": self.table, "id": record_id})
        updated = result.first()
        return self.from_record(updated) if updated else dataclasses.replace(merged, id=int(record_id))

    def delete(self, record_id: int) -> T:
        existing = self.get_by_id(record_id)
        result = self.store.delete_records(self.table, [int(record_id)])
        if result.failed:
            raise RecordStoreError(result.failed[0].describe(), details={"table": self.table, "id": record_id})
        logger.info("Deleted %s %s", self.table, record_id)
        return existing

    def _next_id(self) -> int:
        rows = self.store.fetch_records(self.table, ["Id"])
        return max([_int(r.get("Id")) for r in rows] + [0]) + 1


# ---------------------------------------------------------------------------
# Entity services
# ---------------------------------------------------------------------------


class StudentService(EntityService[Student]):
    table = "student"
    label = "Student"
    fields = [
        "Id",
        "student_id",
        "first_name",
        "last_name",
        "email",
        "phone",
        "date_of_birth",
        "address_street",
        "address_city",
        "address_state",
        "address_zip_code",
        "program",
        "academic_status",
        "enrollment_date",
        "gpa",
        "credits",
    ]

    def to_record(self, entity: Student) -> dict[str, Any]:
        return {
            "student_id": entity.student_id,
            "first_name": entity.first_name,
            "last_name": entity.last_name,
            "email": entity.email,
            "phone": entity.phone,
            "date_of_birth": entity.date_of_birth,
            "address_street": entity.address.street,
            "address_city": entity.address.city,
            "address_state": entity.address.state,
            "address_zip_code": entity.address.zip_code,
            "program": entity.program,
            "academic_status": entity.academic_status,
            "enrollment_date": entity.enrollment_date,
            "gpa": entity.gpa,
            "credits": entity.credits,
        }

    def from_record(self, record: dict[str, Any]) -> Student:
        return Student(
            id=_int(record.get("Id")),
            student_id=_text(record.get("student_id")),
            first_name=_text(record.get("first_name")),
            last_name=_text(record.get("last_name")),
            email=_text(record.get("email")),
            phone=_text(record.get("phone")),
            date_of_birth=_text(record.get("date_of_birth")),
            address=Address(
                street=_text(record.get("address_street")),
                city=_text(record.get("address_city")),
                state=_text(record.get("address_state")),
                zip_code=_text(record.get("address_zip_code")),
            ),
            program=_text(record.get("program")),
            academic_status=_text(record.get("academic_status")) or "Active",
            enrollment_date=_text(record.get("enrollment_date")),
            gpa=_float_or_none(record.get("gpa")),
            credits=_int(record.get("credits")),
        )

    def apply_defaults(self, record: dict[str, Any]) -> dict[str, Any]:
        if not record.get("student_id"):
            record["student_id"] = f"STU{self._next_id():05d}"
        if not record.get("enrollment_date"):
            record["enrollment_date"] = today_iso()
        return record

    def get_by_program(self, program: str) -> list[Student]:
        return self._query({"program": program})

    def get_by_academic_status(self, status: str) -> list[Student]:
        return self._query({"academic_status": status})


class CourseService(EntityService[Course]):
    table = "course"
    label = "Course"
    fields = [
        "Id",
        "course_code",
        "title",
        "description",
        "credits",
        "department",
        "prerequisites",
        "max_enrollment",
        "current_enrollment",
        "semester",
        "year",
    ]

    def to_record(self, entity: Course) -> dict[str, Any]:
        return {
            "course_code": entity.course_code,
            "title": entity.title,
            "description": entity.description,
            "credits": entity.credits,
            "department": entity.department,
            "prerequisites": join_list(entity.prerequisites),
            "max_enrollment": entity.max_enrollment,
            "current_enrollment": entity.current_enrollment,
            "semester": entity.semester,
            "year": entity.year,
        }

    def from_record(self, record: dict[str, Any]) -> Course:
        return Course(
            id=_int(record.get("Id")),
            course_code=_text(record.get("course_code")),
            title=_text(record.get("title")),
            description=_text(record.get("description")),
            credits=_int(record.get("credits")),
            department=_text(record.get("department")),
            prerequisites=split_list(record.get("prerequisites")),
            max_enrollment=_int(record.get("max_enrollment")),
            current_enrollment=_int(record.get("current_enrollment")),
            semester=_text(record.get("semester")),
            year=_int(record.get("year")),
        )

    def apply_defaults(self, record: dict[str, Any]) -> dict[str, Any]:
        record.setdefault("current_enrollment", 0)
        if not record.get("year"):
            record["year"] = date.today().year
        return record

    def get_by_department(self, department: str) -> list[Course]:
        return self._query({"department": department})

    def get_by_semester(self, semester: str, year: int) -> list[Course]:
        return self._query({"semester": semester, "year": year})


class FacultyService(EntityService[FacultyMember]):
    table = "faculty"
    label = "Faculty member"
    fields = [
        "Id",
        "first_name",
        "last_name",
        "email",
        "phone",
        "department",
        "position",
        "office_location",
        "max_course_load",
        "courses",
    ]

    def to_record(self, entity: FacultyMember) -> dict[str, Any]:
        return {
            "first_name": entity.first_name,
            "last_name": entity.last_name,
            "email": entity.email,
            "phone": entity.phone,
            "department": entity.department,
            "position": entity.position,
            "office_location": entity.office_location,
            "max_course_load": entity.max_course_load,
            "courses": join_list(entity.courses),
        }

    def from_record(self, record: dict[str, Any]) -> FacultyMember:
        return FacultyMember(
            id=_int(record.get("Id")),
            first_name=_text(record.get("first_name")),
            last_name=_text(record.get("last_name")),
            email=_text(record.get("email")),
            phone=_text(record.get("phone")),
            department=_text(record.get("department")),
            position=_text(record.get("position")),
            office_location=_text(record.get("office_location")),
            max_course_load=_int(record.get("max_course_load"), default=3),
            courses=split_list(record.get("courses")),
        )

    def apply_defaults(self, record: dict[str, Any]) -> dict[str, Any]:
        record.setdefault("courses", "")
        return record

    def get_by_department(self, department: str) -> list[FacultyMember]:
        return self._query({"department": department})


class ScheduleService(EntityService[Schedule]):
    table = "schedule"
    label = "Schedule"
    fields = [
        "Id",
        "course_id",
        "faculty_id",
        "room",
        "day_of_week",
        "start_time",
        "end_time",
        "semester",
        "year",
    ]

    def to_record(self, entity: Schedule) -> dict[str, Any]:
        return {
            "course_id": int(entity.course_id),
            "faculty_id": int(entity.faculty_id),
            "room": entity.room,
            "day_of_week": entity.day_of_week,
            "start_time": entity.start_time,
            "end_time": entity.end_time,
            "semester": entity.semester,
            "year": entity.year,
        }

    def from_record(self, record: dict[str, Any]) -> Schedule:
        return Schedule(
            id=_int(record.get("Id")),
            course_id=_lookup_id(record.get("course_id")),
            faculty_id=_lookup_id(record.get("faculty_id")),
            room=_text(record.get("room")),
            day_of_week=_text(record.get("day_of_week")),
            start_time=_text(record.get("start_time")),
            end_time=_text(record.get("end_time")),
            semester=_text(record.get("semester")),
            year=_int(record.get("year")),
        )

    def apply_defaults(self, record: dict[str, Any]) -> dict[str, Any]:
        if not record.get("year"):
            record["year"] = date.today().year
        return record

    def get_by_semester(self, semester: str, year: int) -> list[Schedule]:
        return self._query({"semester": semester, "year": year})

    def get_by_faculty(self, faculty_id: int) -> list[Schedule]:
        return self._query({"faculty_id": int(faculty_id)})


class EnrollmentService(EntityService[Enrollment]):
    table = "enrollment"
    label = "Enrollment"
    fields = [
        "Id",
        "student_id",
        "course_id",
        "enrollment_date",
        "semester",
        "year",
        "grade",
        "grade_points",
        "status",
    ]

    def to_record(self, entity: Enrollment) -> dict[str, Any]:
        return {
            "student_id": int(entity.student_id),
            "course_id": int(entity.course_id),
            "enrollment_date": entity.enrollment_date,
            "semester": entity.semester,
            "year": entity.year,
            "grade": entity.grade or "",
            "grade_points": entity.grade_points,
            "status": entity.status,
        }

    def from_record(self, record: dict[str, Any]) -> Enrollment:
        return Enrollment(
            id=_int(record.get("Id")),
            student_id=_lookup_id(record.get("student_id")),
            course_id=_lookup_id(record.get("course_id")),
            enrollment_date=_text(record.get("enrollment_date")),
            semester=_text(record.get("semester")),
            year=_int(record.get("year")),
            grade=_text(record.get("grade")) or None,
            grade_points=_float_or_none(record.get("grade_points")),
            status=_text(record.get("status")) or "enrolled",
        )

    def apply_defaults(self, record: dict[str, Any]) -> dict[str, Any]:
        if not record.get("enrollment_date"):
            record["enrollment_date"] = today_iso()
        if not record.get("status"):
            record["status"] = "enrolled"
        return record

    def get_by_student(self, student_id: int) -> list[Enrollment]:
        return self._query({"student_id": int(student_id)})

    def get_by_course(self, course_id: int) -> list[Enrollment]:
        return self._query({"course_id": int(course_id)})

    def get_by_semester(self, semester: str, year: int) -> list[Enrollment]:
        return self._query({"semester": semester, "year": year})


# ---------------------------------------------------------------------------
# Service bundle + parallel loading
# ---------------------------------------------------------------------------


ENTITY_NAMES = ("students", "courses", "faculty", "schedules", "enrollments")


@dataclasses.dataclass
class Services:
    students: StudentService
    courses: CourseService
    faculty: FacultyService
    schedules: ScheduleService
    enrollments: EnrollmentService

    @classmethod
    def from_store(cls, store: Any) -> "Services":
        return cls(
            students=StudentService(store),
            courses=CourseService(store),
            faculty=FacultyService(store),
            schedules=ScheduleService(store),
            enrollments=EnrollmentService(store),
        )

    def by_name(self, name: str) -> EntityService[Any]:
        if name not in ENTITY_NAMES:
            raise ValidationError(f"Unknown entity: {name!r}")
        return getattr(self, name)


def fetch_parallel(*loaders: Callable[[], Any]) -> list[Any]:
    """
    Run independent loaders concurrently and return their results in the
    order given. The first loader (in that order) that raised re-raises here.
    """
    if not loaders:
        return []
    with ThreadPoolExecutor(max_workers=len(loaders)) as pool:
        futures = [pool.submit(fn) for fn in loaders]
        return [f.result() for f in futures]
