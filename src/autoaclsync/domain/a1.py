"""
A1 notation helpers.

Ranges are expressed as ``<sheet>!<col><row>:<col>[<row>]``, e.g. ``Log!A1:H``
or ``ACL!A2:E100``. Columns use bijective base-26 letters: A=0 ... Z=25,
AA=26, AB=27 ...
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from autoaclsync.domain.errors import InvalidRangeError

_RANGE_RE = re.compile(r"^(.+?)!([a-zA-Z]+)([0-9]+):([a-zA-Z]+)([0-9]+)?$")
_SHEET_RE = re.compile(r"^(.+?)!.*$")


def column_to_index(column: str) -> int:
    """Convert column letters to a zero-based index ('A' -> 0, 'AA' -> 26)."""
    letters = column.strip().upper()
    if not letters or not letters.isalpha() or not letters.isascii():
        raise ValueError(f"Invalid column '{column}'")

    index = 0
    for ch in letters:
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index - 1


def index_to_column(index: int) -> str:
    """Convert a zero-based column index to letters (0 -> 'A', 26 -> 'AA')."""
    if index < 0:
        raise ValueError(f"Invalid column index {index}")

    letters = ""
    n = index + 1
    while n > 0:
        n, remainder = divmod(n - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def offset_column(column: str, offset: int) -> str:
    return index_to_column(column_to_index(column) + offset)


def sheet_name(area: str) -> str:
    """Worksheet name of an A1 range ('ACL!A2:E' -> 'ACL')."""
    match = _SHEET_RE.match(area.strip())
    if not match:
        raise InvalidRangeError(area)
    return match.group(1)


@dataclass(frozen=True)
class SheetRange:
    """A rectangular A1 range. ``bottom`` is None for open-ended ranges."""

    sheet: str
    left: str
    top: int
    right: str
    bottom: int | None = None

    @classmethod
    def parse(cls, area: str) -> SheetRange:
        match = _RANGE_RE.match(area.strip())
        if not match:
            raise InvalidRangeError(area)

        sheet, left, top, right, bottom = match.groups()
        return cls(
            sheet=sheet,
            left=left.upper(),
            top=int(top),
            right=right.upper(),
            bottom=int(bottom) if bottom else None,
        )

    @property
    def width(self) -> int:
        return column_to_index(self.right) - column_to_index(self.left) + 1

    def column(self, offset: int) -> str:
        """Column letters at ``offset`` from the left edge."""
        return offset_column(self.left, offset)

    def row(self, row: int) -> SheetRange:
        """Single row of this range."""
        return replace(self, top=row, bottom=row)

    def rows_from(self, row: int, bottom: int | None = None) -> SheetRange:
        return replace(self, top=row, bottom=bottom)

    def cell(self, column: str, row: int) -> SheetRange:
        return SheetRange(self.sheet, column, row, column, row)

    def column_range(self, column: str, top: int, bottom: int | None = None) -> SheetRange:
        """Sub-range covering a single, dynamically located column."""
        return SheetRange(self.sheet, column, top, column, bottom)

    def __str__(self) -> str:
        bottom = "" if self.bottom is None else str(self.bottom)
        return f"{self.sheet}!{self.left}{self.top}:{self.right}{bottom}"
