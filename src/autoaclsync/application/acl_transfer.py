"""
ACL transfer between the worksheet, TSV files and the devices.

Backs the get-acl, put-acl, upload-acl and compare-acl commands:

- get-acl    worksheet -> validated table -> TSV file
- put-acl    TSV file -> worksheet (header row at the top of the range)
- upload-acl devices -> table -> worksheet (timestamp, header, records)
- compare-acl per-device differences -> worksheet (timestamp, header, blocks)

Architecture Note:
    TSV files are written through an atomic replace, so a reader never
    sees half an ACL.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

from autoaclsync.application.audit_writer import REPORT_PADDING, TIMESTAMP_FORMAT
from autoaclsync.domain.a1 import SheetRange
from autoaclsync.domain.acl import Diff, card_numbers
from autoaclsync.domain.errors import InvalidRangeError, NoDataError, ValidationError
from autoaclsync.domain.table import Table, extract_table, normalise
from autoaclsync.infrastructure.atomic import atomic_write_text
from autoaclsync.infrastructure.sheets.store import SpreadsheetStore

logger = logging.getLogger(__name__)


def fetch_table(store: SpreadsheetStore, area: str, with_pin: bool = False) -> Table:
    """
    Read and extract the ACL worksheet.

    Raises:
        NoDataError: The range is empty.
        ValidationError: The header row is invalid.
    """
    grid = store.get_values(area)
    if not grid:
        raise NoDataError(area)

    table = extract_table(grid, with_pin)
    logger.info("Extracted %d record(s) from %s", len(table.records), area)
    return table


# =============================================================================
# TSV
# =============================================================================


TSV_TIMESTAMP_FORMAT = "%Y-%m-%d %H%M%S"


def default_tsv_path(now: datetime) -> Path:
    """get-acl output file when none is given, in the working directory."""
    return Path(f"ACL - {now.strftime(TSV_TIMESTAMP_FORMAT)}.tsv")


def write_tsv(table: Table, path: Path | str) -> None:
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter="\t", lineterminator="\n")
    writer.writerow(table.header)
    writer.writerows(table.records)

    atomic_write_text(Path(path), buffer.getvalue())
    logger.info("Wrote %d record(s) to %s", len(table.records), path)


def read_tsv(path: Path | str) -> tuple[list[str], list[list[str]]]:
    """
    Read a TSV file as (header, rows).

    Raises:
        ValidationError: The file is empty.
    """
    with open(path, encoding="utf-8", newline="") as f:
        records = list(csv.reader(f, delimiter="\t"))

    records = [r for r in records if r]
    if not records:
        raise ValidationError(f"TSV file {path} is empty")

    return records[0], records[1:]


def put_tsv(store: SpreadsheetStore, area: str, path: Path | str) -> int:
    """
    Upload a TSV file to the worksheet: header at the top row of the range,
    records on the rows below.

    Returns:
        Number of records uploaded.
    """
    header, rows = read_tsv(path)
    rng = SheetRange.parse(area)

    store.batch_update(
        {
            str(rng.row(rng.top)): [header],
            str(rng.rows_from(rng.top + 1, rng.top + max(len(rows), 1))): rows,
        }
    )

    logger.info("Uploaded TSV file %s to %s", path, area)
    return len(rows)


# =============================================================================
# Upload
# =============================================================================


def upload_table(store: SpreadsheetStore, area: str, table: Table, now: datetime) -> int:
    """
    Replace the worksheet ACL with ``table``.

    Layout: timestamp at the top left cell, header row below it, records
    from the row after that. Records are mapped onto the existing header by
    column name; if the worksheet has no header yet, the table's header is
    written.

    Returns:
        Number of records uploaded.
    """
    rng = SheetRange.parse(area)
    title = rng.cell(rng.left, rng.top)
    header_range = rng.row(rng.top + 1)
    data_top = rng.top + 2

    existing = store.get_values(str(header_range))
    header = existing[0] if existing else []

    xref: dict[int, int] = {}
    for i, column in enumerate(table.header):
        for j, h in enumerate(header):
            if normalise(column) == normalise(h):
                xref[i] = j

    updates: dict[str, list[list[str]]] = {}
    if not xref:
        xref = {i: i for i in range(len(table.header))}
        updates[str(header_range)] = [list(table.header)]
    else:
        missing = [c for i, c in enumerate(table.header) if i not in xref]
        if missing:
            logger.warning("No column in %s for: %s", header_range, ", ".join(missing))

    width = max(xref.values()) + 1
    rows = []
    for record in table.records:
        row = [""] * width
        for i, value in enumerate(record):
            if i in xref:
                row[xref[i]] = value
        rows.append(row)

    data = rng.rows_from(data_top, rng.bottom)
    logger.info("Clearing existing ACL from %s", data)
    store.batch_clear([str(title), str(data)])

    updates[str(title)] = [[now.strftime(TIMESTAMP_FORMAT)]]
    updates[str(rng.rows_from(data_top, data_top + len(rows) + REPORT_PADDING - 1))] = rows
    store.batch_update(updates)

    logger.info("Uploaded %d record(s) to %s", len(rows), area)
    return len(rows)


# =============================================================================
# Compare report
# =============================================================================


def write_compare_report(
    store: SpreadsheetStore,
    area: str,
    diffs: Mapping[int, Diff],
    now: datetime,
    device_errors: Mapping[int, str] | None = None,
) -> int:
    """
    Write the compare-acl result to a worksheet.

    Layout: timestamp at the top left cell, the operator's header row below
    it, then one block per device from the row after that. The first row of
    a block holds the device ID, and the updated, added and deleted card
    numbers run down the next three columns ("-" when a column is empty).
    Blocks are separated by a blank row. A device that could not be read
    gets a single row with the reason.

    Returns:
        Number of devices written.
    """
    rng = SheetRange.parse(area)
    if rng.width < 4:
        raise InvalidRangeError(area, "Compare!A1:D")
    title = rng.cell(rng.left, rng.top)
    data_top = rng.top + 2

    blocks: dict[int, list[list[Any]]] = {}
    for device_id in sorted(diffs):
        diff = diffs[device_id]
        columns = [card_numbers(diff.updated), card_numbers(diff.added), card_numbers(diff.deleted)]
        block = [[device_id, "-", "-", "-"]]
        for i in range(1, max(len(c) for c in columns)):
            block.append(["", "", "", ""])
        for j, numbers in enumerate(columns, start=1):
            for i, card_number in enumerate(numbers):
                block[i][j] = card_number
        blocks[device_id] = block

    for device_id, reason in (device_errors or {}).items():
        blocks[device_id] = [[device_id, f"unreachable ({reason})", "", ""]]

    rows: list[list[Any]] = []
    for device_id in sorted(blocks):
        if rows:
            rows.append(["", "", "", ""])
        rows.extend(blocks[device_id])

    data = rng.rows_from(data_top, rng.bottom)
    logger.info("Clearing existing compare report from %s", data)
    store.batch_clear([str(title), str(data)])

    store.batch_update(
        {
            str(title): [[now.strftime(TIMESTAMP_FORMAT)]],
            str(rng.rows_from(data_top, data_top + len(rows) + REPORT_PADDING - 1)): rows,
        }
    )

    logger.info("Wrote comparison of %d device(s) to %s", len(blocks), area)
    return len(blocks)
