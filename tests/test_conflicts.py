"""
Unit tests for schedule conflict detection.

Definition used here:
- Two schedules clash if they share a room or an instructor, in the same
  semester/year, on the same weekday, at overlapping times.
- Touching endpoints (end == start) is NOT a conflict.
"""

import unittest

from collegeadmin.conflicts import conflicts_with, find_conflicts
from collegeadmin.model import Schedule


def _s(id, room="R1", faculty_id=1, day="Monday", start="10:00", end="11:00", semester="Fall", year=2024):
    return Schedule(
        id=id,
        course_id=id,
        faculty_id=faculty_id,
        room=room,
        day_of_week=day,
        start_time=start,
        end_time=end,
        semester=semester,
        year=year,
    )


class TestConflicts(unittest.TestCase):
    def test_same_room_overlap(self) -> None:
        confs = find_conflicts([_s(1, faculty_id=1), _s(2, faculty_id=2, start="10:30", end="12:00")])
        self.assertEqual(len(confs), 1)
        self.assertEqual(confs[0][2], ["room"])

    def test_same_instructor_different_room(self) -> None:
        confs = find_conflicts([_s(1, room="R1"), _s(2, room="R2", start="10:59", end="11:30")])
        self.assertEqual(confs[0][2], ["faculty"])

    def test_room_and_instructor(self) -> None:
        confs = find_conflicts([_s(1), _s(2, start="09:00", end="12:00")])
        self.assertEqual(confs[0][2], ["room", "faculty"])

    def test_no_overlap_touching_end(self) -> None:
        # end == start is allowed (no overlap)
        self.assertEqual(find_conflicts([_s(1), _s(2, start="11:00", end="12:00")]), [])

    def test_other_day_term_or_resources(self) -> None:
        self.assertEqual(find_conflicts([_s(1), _s(2, day="Tuesday")]), [])
        self.assertEqual(find_conflicts([_s(1), _s(2, semester="Spring")]), [])
        self.assertEqual(find_conflicts([_s(1), _s(2, year=2025)]), [])
        self.assertEqual(find_conflicts([_s(1), _s(2, room="R2", faculty_id=2)]), [])

    def test_bad_times_are_ignored(self) -> None:
        self.assertEqual(find_conflicts([_s(1), _s(2, start="", end="")]), [])
        self.assertEqual(find_conflicts([_s(1), _s(2, start="11:00", end="10:00")]), [])

    def test_candidate_does_not_clash_with_itself(self) -> None:
        existing = [_s(1), _s(2, room="R2", faculty_id=2)]
        self.assertEqual(conflicts_with(_s(1, start="10:30"), existing), [])

    def test_new_candidate(self) -> None:
        existing = [_s(1), _s(2, room="R2", faculty_id=2)]
        clashes = conflicts_with(_s(None, room="R2", faculty_id=3), existing)
        self.assertEqual([(other.id, reasons) for other, reasons in clashes], [(2, ["room"])])


if __name__ == "__main__":
    unittest.main()
