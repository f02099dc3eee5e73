"""
Local workbook spreadsheet store.

Implements SpreadsheetStore on top of an .xlsx workbook using openpyxl, so
the whole sync can run offline against a file on a shared drive.

Hosted spreadsheet value semantics are emulated:
- reads drop trailing blank cells and rows
- ``append`` writes after the last non-empty row inside the range
- blank strings are stored as empty cells

Every mutation loads the workbook, applies the change and saves it through
an atomic replace, so a crash mid-save never leaves a truncated workbook.

The revision history holds a single entry: the SHA-256 of the workbook
bytes, stamped with the file modification time.
"""

from __future__ import annotations

import hashlib
import logging
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Mapping, Sequence

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from autoaclsync.domain.a1 import SheetRange, column_to_index
from autoaclsync.domain.errors import SpreadsheetIOError
from autoaclsync.domain.table import cell_text
from autoaclsync.infrastructure.atomic import atomic_write
from autoaclsync.infrastructure.sheets.store import RevisionInfo

logger = logging.getLogger(__name__)


class WorkbookStore:
    """SpreadsheetStore backed by a local .xlsx workbook."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    @property
    def document_id(self) -> str:
        return str(self.path)

    # =========================================================================
    # Workbook access
    # =========================================================================

    def _load(self) -> Workbook:
        if not self.path.exists():
            raise SpreadsheetIOError(f"Workbook not found: {self.path}")
        try:
            return load_workbook(self.path)
        except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as e:
            raise SpreadsheetIOError(f"Unable to open workbook {self.path}: {e}") from e

    def _save(self, wb: Workbook) -> None:
        try:
            atomic_write(self.path, wb.save)
        except OSError as e:
            raise SpreadsheetIOError(f"Unable to save workbook {self.path}: {e}") from e
        logger.debug("Saved workbook %s", self.path)

    @staticmethod
    def _worksheet(wb: Workbook, sheet: str, create: bool = False) -> Worksheet:
        if sheet in wb.sheetnames:
            return wb[sheet]
        if not create:
            raise SpreadsheetIOError(f"No worksheet named '{sheet}'")
        logger.info("Creating worksheet '%s'", sheet)
        return wb.create_sheet(sheet)

    @staticmethod
    def _bounds(ws: Worksheet, rng: SheetRange) -> tuple[int, int, int, int]:
        """(first col, last col, first row, last row), 1-based inclusive."""
        left = column_to_index(rng.left) + 1
        right = column_to_index(rng.right) + 1
        bottom = rng.bottom if rng.bottom is not None else max(ws.max_row, rng.top)
        return left, right, rng.top, bottom

    # =========================================================================
    # Reads
    # =========================================================================

    def get_values(self, area: str) -> list[list[str]]:
        rng = SheetRange.parse(area)
        wb = self._load()
        ws = self._worksheet(wb, rng.sheet)
        left, right, top, bottom = self._bounds(ws, rng)

        rows: list[list[str]] = []
        for row in ws.iter_rows(min_row=top, max_row=bottom, min_col=left, max_col=right, values_only=True):
            values = [cell_text(v) for v in row]
            while values and values[-1] == "":
                values.pop()
            rows.append(values)

        while rows and not rows[-1]:
            rows.pop()

        logger.debug("Read %d row(s) from %s", len(rows), area)
        return rows

    def list_revisions(self, document_id: str) -> Iterator[list[RevisionInfo]]:
        if document_id != self.document_id:
            raise SpreadsheetIOError(f"Unknown document '{document_id}'")
        try:
            digest = hashlib.sha256(self.path.read_bytes()).hexdigest()
            mtime = self.path.stat().st_mtime
        except OSError as e:
            raise SpreadsheetIOError(f"Unable to read workbook {self.path}: {e}") from e

        yield [RevisionInfo(id=digest, modified_at=datetime.fromtimestamp(mtime, tz=timezone.utc))]

    # =========================================================================
    # Writes
    # =========================================================================

    def batch_update(self, data: Mapping[str, Sequence[Sequence[Any]]]) -> None:
        wb = self._load()
        for area, rows in data.items():
            rng = SheetRange.parse(area)
            ws = self._worksheet(wb, rng.sheet, create=True)
            left, right, top, bottom = self._bounds(ws, rng)

            if rng.bottom is not None and len(rows) > bottom - top + 1:
                raise SpreadsheetIOError(f"{len(rows)} row(s) do not fit in range {area}")
            for r, row in enumerate(rows):
                if len(row) > right - left + 1:
                    raise SpreadsheetIOError(f"Row {top + r} is wider than range {area}")
                self._write_row(ws, top + r, left, row)

        self._save(wb)

    def append(self, area: str, rows: Sequence[Sequence[Any]], insert: bool = True) -> None:
        if not rows:
            return

        rng = SheetRange.parse(area)
        wb = self._load()
        ws = self._worksheet(wb, rng.sheet, create=True)
        left, right, top, bottom = self._bounds(ws, rng)

        last = top - 1
        for r in range(top, bottom + 1):
            if any(ws.cell(row=r, column=c).value not in (None, "") for c in range(left, right + 1)):
                last = r
        start = last + 1

        if insert and start <= ws.max_row:
            ws.insert_rows(start, amount=len(rows))

        for r, row in enumerate(rows):
            self._write_row(ws, start + r, left, row[: right - left + 1])

        self._save(wb)
        logger.debug("Appended %d row(s) to %s at row %d", len(rows), area, start)

    def batch_clear(self, areas: Sequence[str]) -> None:
        wb = self._load()
        for area in areas:
            rng = SheetRange.parse(area)
            if rng.sheet not in wb.sheetnames:
                continue
            ws = wb[rng.sheet]
            left, right, top, bottom = self._bounds(ws, rng)
            for row in ws.iter_rows(min_row=top, max_row=bottom, min_col=left, max_col=right):
                for cell in row:
                    cell.value = None

        self._save(wb)

    def delete_rows(self, sheet: str, ranges: Sequence[tuple[int, int]]) -> None:
        if not ranges:
            return

        wb = self._load()
        ws = self._worksheet(wb, sheet)
        for start, end in ranges:
            if end <= start:
                raise SpreadsheetIOError(f"Invalid row range [{start}, {end})")
            ws.delete_rows(start + 1, end - start)

        self._save(wb)

    @staticmethod
    def _write_row(ws: Worksheet, row: int, left: int, values: Sequence[Any]) -> None:
        for offset, value in enumerate(values):
            ws.cell(row=row, column=left + offset).value = None if value == "" else value
