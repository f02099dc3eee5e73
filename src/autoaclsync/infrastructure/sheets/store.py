"""
Spreadsheet store interface.

The reconciliation engine only talks to the spreadsheet through this
protocol. Ranges are A1 strings (``Sheet!A1:H``); values are rows of cells.

Architecture Note:
    Implementations must return trimmed grids from ``get_values`` - no
    trailing blank cells on a row and no trailing blank rows - which is
    how hosted spreadsheet APIs report values.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterator, Mapping, Protocol, Sequence


@dataclass(frozen=True)
class RevisionInfo:
    """One entry of a document's revision history."""

    id: str
    modified_at: datetime


class SpreadsheetStore(Protocol):
    """Protocol for reading and mutating a spreadsheet document."""

    @property
    def document_id(self) -> str:
        """Identifier of the backing document."""
        ...

    def get_values(self, area: str) -> list[list[str]]:
        """Read the cells of a range as strings."""
        ...

    def batch_update(self, data: Mapping[str, Sequence[Sequence[Any]]]) -> None:
        """Write rows into each range, starting at the range's top left cell."""
        ...

    def append(self, area: str, rows: Sequence[Sequence[Any]], insert: bool = True) -> None:
        """Append rows after the last non-empty row of the range."""
        ...

    def batch_clear(self, areas: Sequence[str]) -> None:
        """Blank every cell in each range."""
        ...

    def delete_rows(self, sheet: str, ranges: Sequence[tuple[int, int]]) -> None:
        """
        Delete rows, one structural delete per [start, end) zero-based range.

        Ranges are applied in order, so callers must account for rows removed
        by earlier ranges.
        """
        ...

    def list_revisions(self, document_id: str) -> Iterator[list[RevisionInfo]]:
        """Yield the document's revision history one page at a time."""
        ...
