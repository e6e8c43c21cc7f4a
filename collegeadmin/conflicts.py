"""
Schedule conflict detection.

Two weekly schedules conflict when they fall in the same term (semester +
year), on the same weekday, overlap in time and share a room or an
instructor.

Overlap rule:
    start < other_end AND end > other_start
"""

from __future__ import annotations

from typing import Iterable, Optional

from collegeadmin.model import Schedule


def _time_to_minutes(hhmm: str) -> int:
    """
    Convert 'HH:MM' to minutes since midnight.
    Raises ValueError for invalid formats.
    """
    parts = hhmm.strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"Invalid time format: {hhmm!r}")
    h = int(parts[0])
    m = int(parts[1])
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValueError(f"Invalid time value: {hhmm!r}")
    return h * 60 + m


def _overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return a_start < b_end and a_end > b_start


def _slot(s: Schedule) -> Optional[tuple[int, int]]:
    try:
        start = _time_to_minutes(s.start_time)
        end = _time_to_minutes(s.end_time)
    except ValueError:
        return None
    # end <= start is a data error, not a conflict
    if end <= start:
        return None
    return start, end


def conflict_reasons(a: Schedule, b: Schedule) -> list[str]:
    """
    Why a and b clash ("room", "faculty"); empty if they don't.
    """
    if a.id is not None and a.id == b.id:
        return []
    if (a.semester, a.year, a.day_of_week) != (b.semester, b.year, b.day_of_week):
        return []
    sa = _slot(a)
    sb = _slot(b)
    if sa is None or sb is None or not _overlaps(sa[0], sa[1], sb[0], sb[1]):
        return []

    reasons: list[str] = []
    if a.room.strip() and a.room.strip().lower() == b.room.strip().lower():
        reasons.append("room")
    if a.faculty_id and a.faculty_id == b.faculty_id:
        reasons.append("faculty")
    return reasons


def find_conflicts(schedules: Iterable[Schedule]) -> list[tuple[Schedule, Schedule, list[str]]]:
    """
    Find clashing schedule pairs (A, B, reasons); each pair appears once.
    """
    items = list(schedules)
    conflicts: list[tuple[Schedule, Schedule, list[str]]] = []

    # O(n^2) is fine for one college's timetable
    for i in range(len(items)):
        for j in range(i + 1, len(items)):
            reasons = conflict_reasons(items[i], items[j])
            if reasons:
                conflicts.append((items[i], items[j], reasons))
    return conflicts


def conflicts_with(candidate: Schedule, schedules: Iterable[Schedule]) -> list[tuple[Schedule, list[str]]]:
    """
    Existing schedules that clash with `candidate` (used as a warning on save).
    """
    out: list[tuple[Schedule, list[str]]] = []
    for other in schedules:
        reasons = conflict_reasons(candidate, other)
        if reasons:
            out.append((other, reasons))
    return out
