"""
Generic list filtering and sorting used by every page.

Rows can be dataclasses or dicts. A field is either
- a name ("email"), a dotted path ("address.city"), or
- a callable taking the row (for computed columns like a full name).

Sorting rule:
    strings compare case-insensitively, numbers numerically,
    missing values always go last (in both directions)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Sequence, Union

Field = Union[str, Callable[[Any], Any]]

ASC = "asc"
DESC = "desc"


def field_value(row: Any, field: Field) -> Any:
    if callable(field):
        return field(row)
    value = row
    for part in field.split("."):
        if value is None:
            return None
        if isinstance(value, dict):
            value = value.get(part)
        else:
            value = getattr(value, part, None)
    return value


def search(rows: Iterable[Any], text: str, fields: Sequence[Field]) -> list[Any]:
    """
    Keep rows where any of `fields` contains `text` (case-insensitive).
    Blank text keeps everything.
    """
    query = (text or "").strip().lower()
    rows = list(rows)
    if not query:
        return rows

    out: list[Any] = []
    for row in rows:
        for f in fields:
            value = field_value(row, f)
            if value is not None and query in str(value).lower():
                out.append(row)
                break
    return out


def filter_equals(rows: Iterable[Any], field: Field, value: Any) -> list[Any]:
    """
    Keep rows whose field equals value. None or "" keeps everything.
    Values are compared as strings so "2024" matches 2024.
    """
    rows = list(rows)
    if value is None or value == "":
        return rows
    wanted = str(value)
    return [r for r in rows if str(field_value(r, field)) == wanted]


@dataclass
class SortState:
    """
    Column sort state of one table. Clicking (toggling) the active column
    flips the direction; a new column starts ascending.
    """

    field: str = ""
    direction: str = ASC

    def toggle(self, field: str) -> "SortState":
        if self.field == field:
            self.direction = DESC if self.direction == ASC else ASC
        else:
            self.field = field
            self.direction = ASC
        return self

    @property
    def descending(self) -> bool:
        return self.direction == DESC


def _sort_key(value: Any) -> tuple[int, Any]:
    # bool is an int subclass; keep it with the numbers
    if isinstance(value, (int, float)):
        return (0, value)
    return (1, str(value).lower())


def sort_rows(rows: Iterable[Any], field: Optional[Field], direction: str = ASC) -> list[Any]:
    """
    Return a sorted copy. No field means input order. Sorting is stable.
    """
    rows = list(rows)
    if not field:
        return rows

    present = [r for r in rows if field_value(r, field) not in (None, "")]
    missing = [r for r in rows if field_value(r, field) in (None, "")]

    present.sort(key=lambda r: _sort_key(field_value(r, field)), reverse=(direction == DESC))
    return present + missing


def index_by_id(rows: Iterable[Any]) -> dict[int, Any]:
    """
    {row.id: row} for cross-entity lookups (course title on a schedule, ...).
    """
    return {field_value(r, "id"): r for r in rows if field_value(r, "id") is not None}
