"""
Unit tests for the generic search / filter / sort helpers.

Sorting rule used here:
- strings compare case-insensitively, numbers numerically
- missing values (None or "") always go last, in both directions
"""

import unittest

from collegeadmin.listing import ASC, DESC, SortState, field_value, filter_equals, search, sort_rows
from collegeadmin.model import Address, Student


def _student(first: str, last: str, gpa=None, city: str = "", program: str = "") -> Student:
    return Student(first_name=first, last_name=last, email=f"{first}@x.edu", gpa=gpa, program=program, address=Address(city=city))


class TestSearch(unittest.TestCase):
    def setUp(self) -> None:
        self.rows = [
            _student("Emma", "Johnson", program="Computer Science"),
            _student("Michael", "Chen", program="Business Administration"),
            _student("Sofia", "Rodriguez", program="Psychology"),
        ]

    def test_blank_text_keeps_everything(self) -> None:
        self.assertEqual(search(self.rows, "  ", ["email"]), self.rows)

    def test_case_insensitive_substring(self) -> None:
        out = search(self.rows, "CHEN", [lambda s: s.full_name, "email"])
        self.assertEqual([s.last_name for s in out], ["Chen"])

    def test_any_field_matches_once(self) -> None:
        # "emma" is in both the name and the email: row still appears once
        out = search(self.rows, "emma", [lambda s: s.full_name, "email"])
        self.assertEqual(len(out), 1)

    def test_dotted_field(self) -> None:
        rows = [_student("A", "A", city="Springfield"), _student("B", "B", city="Peoria")]
        self.assertEqual(field_value(rows[1], "address.city"), "Peoria")
        self.assertEqual(len(search(rows, "spring", ["address.city"])), 1)


class TestFilterEquals(unittest.TestCase):
    def test_blank_value_keeps_everything(self) -> None:
        rows = [{"semester": "Fall"}, {"semester": "Spring"}]
        self.assertEqual(filter_equals(rows, "semester", ""), rows)
        self.assertEqual(filter_equals(rows, "semester", None), rows)

    def test_string_value_matches_number(self) -> None:
        rows = [{"year": 2024}, {"year": 2025}]
        self.assertEqual(filter_equals(rows, "year", "2025"), [{"year": 2025}])


class TestSort(unittest.TestCase):
    def test_toggle_same_field_flips_direction(self) -> None:
        state = SortState()
        state.toggle("gpa")
        self.assertEqual((state.field, state.direction), ("gpa", ASC))
        state.toggle("gpa")
        self.assertEqual(state.direction, DESC)
        self.assertTrue(state.descending)

    def test_toggle_new_field_starts_ascending(self) -> None:
        state = SortState(field="gpa", direction=DESC)
        state.toggle("credits")
        self.assertEqual((state.field, state.direction), ("credits", ASC))

    def test_strings_case_insensitive(self) -> None:
        rows = [{"n": "banana"}, {"n": "Apple"}, {"n": "cherry"}]
        self.assertEqual([r["n"] for r in sort_rows(rows, "n")], ["Apple", "banana", "cherry"])

    def test_numbers_numeric_not_lexicographic(self) -> None:
        rows = [{"n": 10}, {"n": 9}, {"n": 100}]
        self.assertEqual([r["n"] for r in sort_rows(rows, "n")], [9, 10, 100])

    def test_missing_values_last_in_both_directions(self) -> None:
        rows = [{"gpa": None}, {"gpa": 3.1}, {"gpa": ""}, {"gpa": 3.9}]
        asc = [r["gpa"] for r in sort_rows(rows, "gpa", ASC)]
        desc = [r["gpa"] for r in sort_rows(rows, "gpa", DESC)]
        self.assertEqual(asc[:2], [3.1, 3.9])
        self.assertEqual(desc[:2], [3.9, 3.1])
        self.assertEqual(set(map(str, asc[2:])), {"None", ""})
        self.assertEqual(set(map(str, desc[2:])), {"None", ""})

    def test_no_field_keeps_input_order(self) -> None:
        rows = [{"n": 2}, {"n": 1}]
        self.assertEqual(sort_rows(rows, None), rows)
        self.assertEqual(sort_rows(rows, ""), rows)

    def test_callable_field(self) -> None:
        rows = [_student("Zoe", "Adams"), _student("Adam", "Zed")]
        out = sort_rows(rows, lambda s: s.full_name)
        self.assertEqual(out[0].first_name, "Adam")


if __name__ == "__main__":
    unittest.main()
