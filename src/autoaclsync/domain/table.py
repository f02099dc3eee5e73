"""
Table Extractor.

Turns the raw header+rows grid read from the ACL worksheet into a validated
Table with a canonical column order:

    card number, [PIN], from, to, <other columns in original order>

Rows with an invalid card number, PIN or date are silently dropped - that is
a data-quality filter, not a validation failure. Structural problems with the
header row (duplicate or missing columns) raise a ValidationError.

Architecture Note:
    Pure transform - no I/O. Cell values are resolved to trimmed strings at
    the grid boundary, everything downstream operates on str only.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Sequence

from autoaclsync.domain.errors import (
    DuplicateColumnError,
    EmptySheetError,
    MissingColumnError,
)


# Normalised names of the canonical columns
CARD_NUMBER = "cardnumber"
PIN = "pin"
FROM = "from"
TO = "to"

CANONICAL = (CARD_NUMBER, PIN, FROM, TO)

# Display names used in error messages
COLUMN_NAMES = {
    CARD_NUMBER: "card number",
    PIN: "PIN",
    FROM: "from",
    TO: "to",
}

_CARD_NUMBER_RE = re.compile(r"^\s*[0-9]+\s*$")
_PIN_RE = re.compile(r"^\s*[0-9]*\s*$")
_DATE_RE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")


@dataclass(frozen=True)
class Table:
    """Canonically ordered ACL table. Immutable once built."""

    header: tuple[str, ...]
    records: tuple[tuple[str, ...], ...]

    def column(self, name: str) -> int | None:
        """Index of the column whose normalised name matches, or None."""
        key = normalise(name)
        for i, h in enumerate(self.header):
            if normalise(h) == key:
                return i
        return None


# =============================================================================
# Cell helpers
# =============================================================================


def cell_text(value: Any) -> str:
    """Resolve a raw cell value (blank, text, number, date) to a string."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.strftime("%Y-%m-%d")
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def clean(value: Any) -> str:
    return cell_text(value).strip()


def normalise(value: Any) -> str:
    """Column identity: lowercase with all whitespace removed."""
    return "".join(cell_text(value).split()).lower()


def parse_date(value: str) -> date | None:
    """Parse a strict YYYY-MM-DD date, returning None if invalid."""
    text = value.strip()
    if not _DATE_RE.match(text):
        return None
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        return None


# =============================================================================
# Extraction
# =============================================================================


def extract_table(grid: Sequence[Sequence[Any]], with_pin: bool = False) -> Table:
    """
    Build a canonical Table from a raw worksheet grid.

    Args:
        grid: Header row followed by data rows, as read from the worksheet.
        with_pin: Include (and validate) the PIN column.

    Returns:
        Table with canonical header order and trimmed record cells.

    Raises:
        EmptySheetError: The grid has no rows.
        DuplicateColumnError: Two header cells normalise to the same name.
        MissingColumnError: A required column is absent.
    """
    if not grid:
        raise EmptySheetError()

    # ... build index
    index: dict[str, int] = {}
    row = grid[0]
    for i, v in enumerate(row):
        k = normalise(v)
        if k in index:
            raise DuplicateColumnError(clean(v))
        index[k] = i

    # ... header
    required = [CARD_NUMBER, PIN, FROM, TO] if with_pin else [CARD_NUMBER, FROM, TO]
    header = [clean(row[index[k]]) for k in required if k in index]
    header.extend(clean(v) for v in row if normalise(v) not in CANONICAL)

    for position, k in enumerate(required):
        if len(header) <= position or normalise(header[position]) != k:
            raise MissingColumnError(COLUMN_NAMES[k])

    # ... records
    keys = [normalise(h) for h in header]
    records = []
    for row in grid[1:]:
        cells = {k: _cell(row, ix) for k, ix in index.items()}

        if not _CARD_NUMBER_RE.match(cells[CARD_NUMBER]):
            continue

        if with_pin and not _PIN_RE.match(cells[PIN]):
            continue

        if parse_date(cells[FROM]) is None or parse_date(cells[TO]) is None:
            continue

        records.append(tuple(cells.get(k, "").strip() for k in keys))

    return Table(header=tuple(header), records=tuple(records))


def _cell(row: Sequence[Any], ix: int) -> str:
    # Trailing blank cells are omitted from short rows
    return cell_text(row[ix]) if ix < len(row) else ""
