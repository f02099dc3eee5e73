"""
Audit Writer - Operational log and consolidated report worksheets.

Two destinations, each with its own retention window:

Log (append-only, pruned):
    One row per device per run. Columns are located by reading the header
    row at the top of the log range, so operators may reorder or drop
    columns between runs. Rows older than the retention window are deleted
    with one structural delete per contiguous block of stale rows.

Report (rewritten every run):
    Row ``top`` holds the last-updated timestamp, row ``top + 1`` the
    header, data starts at ``top + 2``. Recent rows are read back and
    re-written above the new rows; new rows are grouped by action with one
    row per card.

Architecture Note:
    - All sheet access goes through the SpreadsheetStore protocol
    - Column addressing is recomputed on every run (never cached)
    - Outcomes are reported as events
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Mapping, Sequence

from autoaclsync.domain.a1 import SheetRange, column_to_index
from autoaclsync.domain.events import EventSink, LoggingEventSink, emit
from autoaclsync.domain.report import Report, ReportAction
from autoaclsync.domain.table import normalise
from autoaclsync.infrastructure.sheets.store import SpreadsheetStore

logger = logging.getLogger(__name__)


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Blank rows included below the written report so the target range always
# covers the rows that were written.
REPORT_PADDING = 2

LOG_FIELDS = ("timestamp", "deviceid", "unchanged", "updated", "added", "deleted", "failed", "errors")
REPORT_FIELDS = ("timestamp", "deviceid", "action", "cardnumber")


def local_now() -> datetime:
    return datetime.now().astimezone()


# =============================================================================
# Addressing
# =============================================================================


@dataclass(frozen=True)
class AuditRange:
    """Addressing for one audit destination, derived from its header row."""

    sheet: str
    top: int
    timestamp_cell: str | None
    header_range: str
    data_range: str
    columns: Mapping[str, str] = field(default_factory=dict)
    left: str = "A"
    width: int = 0

    def offset(self, name: str) -> int | None:
        """Zero-based position of a field within a data row, or None if absent."""
        column = self.columns.get(name)
        if column is None:
            return None
        return column_to_index(column) - column_to_index(self.left)

    def row(self, values: Mapping[str, Any]) -> list[Any]:
        """Build a data row, leaving fields without a column blank."""
        row: list[Any] = [""] * self.width
        for name, value in values.items():
            ix = self.offset(name)
            if ix is not None:
                row[ix] = value
        return row


def resolve_columns(
    store: SpreadsheetStore,
    rng: SheetRange,
    header_row: int,
    data_top: int,
    fields: Iterable[str],
    timestamp_cell: str | None = None,
) -> AuditRange:
    """Locate the known fields in the header row of a range."""
    header_range = rng.row(header_row)
    values = store.get_values(str(header_range))
    header = values[0] if values else []

    known = set(fields)
    columns: dict[str, str] = {}
    for i, cell in enumerate(header):
        name = normalise(cell)
        if name in known and name not in columns:
            columns[name] = rng.column(i)

    return AuditRange(
        sheet=rng.sheet,
        top=data_top,
        timestamp_cell=timestamp_cell,
        header_range=str(header_range),
        data_range=str(rng.rows_from(data_top, rng.bottom)),
        columns=columns,
        left=rng.left,
        width=rng.width,
    )


def parse_timestamp(value: str) -> datetime | None:
    text = value.strip()
    for fmt in (TIMESTAMP_FORMAT, "%Y-%m-%d %H:%M", "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def retention_cutoff(now: datetime, retention_days: int) -> datetime:
    """Local midnight ``retention_days - 1`` days before ``now`` (naive)."""
    day = now - timedelta(days=retention_days - 1)
    return day.replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)


def contiguous(indices: Sequence[int]) -> list[tuple[int, int]]:
    """Collapse sorted row indices into maximal [start, end) ranges."""
    ranges: list[tuple[int, int]] = []
    for ix in indices:
        if ranges and ranges[-1][1] == ix:
            ranges[-1] = (ranges[-1][0], ix + 1)
        else:
            ranges.append((ix, ix + 1))
    return ranges


def shift_for_deletion(ranges: Sequence[tuple[int, int]]) -> list[tuple[int, int]]:
    """Adjust ranges so each stays valid after the earlier ones are deleted."""
    adjusted = []
    removed = 0
    for start, end in ranges:
        adjusted.append((start - removed, end - removed))
        removed += end - start
    return adjusted


# =============================================================================
# Writer
# =============================================================================


class AuditWriter:
    """Writes per-run reports to the log and report worksheets."""

    def __init__(
        self,
        store: SpreadsheetStore,
        sink: EventSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.sink = sink or LoggingEventSink()
        self.clock = clock or local_now

    # -------------------------------------------------------------------------
    # Log
    # -------------------------------------------------------------------------

    def write_log(self, reports: Mapping[int, Report], log_range: str, retention_days: int) -> int:
        """
        Append one row per device to the log and prune expired rows.

        Returns:
            Number of rows pruned.
        """
        rng = SheetRange.parse(log_range)
        audit = resolve_columns(self.store, rng, rng.top, rng.top + 1, LOG_FIELDS)

        if not audit.columns:
            emit(self.sink, "log-skipped", "No recognised columns in log header", level=logging.WARNING, range=log_range)
            return 0

        now = self.clock()
        timestamp = now.strftime(TIMESTAMP_FORMAT)

        rows = []
        for device_id in sorted(reports):
            report = reports[device_id]
            if report.unreachable:
                # No counts for a device that was never read
                values = {"timestamp": timestamp, "deviceid": device_id, "errors": f"unreachable: {report.unreachable}"}
            else:
                values = {
                    "timestamp": timestamp,
                    "deviceid": device_id,
                    "unchanged": len(report.unchanged),
                    "updated": len(report.updated),
                    "added": len(report.added),
                    "deleted": len(report.deleted),
                    "failed": len(report.failed),
                    "errors": len(report.errored),
                }
            rows.append(audit.row(values))

        if rows:
            self.store.append(audit.data_range, rows, insert=True)
            emit(self.sink, "log-appended", rows=len(rows), range=log_range)

        return self._prune_log(rng, audit, retention_days, now)

    def _prune_log(self, rng: SheetRange, audit: AuditRange, retention_days: int, now: datetime) -> int:
        column = audit.columns.get("timestamp")
        if column is None:
            logger.warning("Log %s has no timestamp column - not pruning", audit.header_range)
            return 0

        cutoff = retention_cutoff(now, retention_days)
        values = self.store.get_values(str(rng.column_range(column, audit.top, rng.bottom)))

        stale = []
        for i, row in enumerate(values):
            timestamp = parse_timestamp(row[0]) if row else None
            if timestamp is not None and timestamp < cutoff:
                stale.append(audit.top - 1 + i)  # zero-based sheet row

        if not stale:
            return 0

        ranges = contiguous(stale)
        self.store.delete_rows(rng.sheet, shift_for_deletion(ranges))
        emit(self.sink, "rows-pruned", count=len(stale), ranges=len(ranges), cutoff=cutoff.date())
        return len(stale)

    # -------------------------------------------------------------------------
    # Report
    # -------------------------------------------------------------------------

    def write_report(
        self,
        reports: Mapping[int, Report],
        report_range: str,
        retention_days: int,
        always_write: bool = False,
    ) -> bool:
        """
        Rewrite the consolidated report.

        Returns:
            True if the report was written, False if it was skipped because
            nothing interesting happened.
        """
        if not always_write and not any(r.is_interesting for r in reports.values()):
            emit(self.sink, "report-skipped", "Nothing to report")
            return False

        rng = SheetRange.parse(report_range)
        title = rng.cell(rng.left, rng.top)
        audit = resolve_columns(self.store, rng, rng.top + 1, rng.top + 2, REPORT_FIELDS, timestamp_cell=str(title))

        if not audit.columns:
            emit(self.sink, "report-skipped", "No recognised columns in report header", level=logging.WARNING, range=report_range)
            return False

        now = self.clock()
        timestamp = now.strftime(TIMESTAMP_FORMAT)
        kept = self._recent_rows(audit, retention_cutoff(now, retention_days))

        rows = []
        for action in ReportAction:
            for device_id in sorted(reports):
                report = reports[device_id]
                if action is ReportAction.UNREACHABLE:
                    numbers = [""] if report.unreachable else []
                else:
                    numbers = report.cards(action)
                for card_number in numbers:
                    rows.append(
                        audit.row(
                            {
                                "timestamp": timestamp,
                                "deviceid": device_id,
                                "action": action.value,
                                "cardnumber": card_number,
                            }
                        )
                    )

        content = kept + rows
        bottom = audit.top + len(content) + REPORT_PADDING - 1
        target = SheetRange.parse(audit.data_range).rows_from(audit.top, bottom)

        self.store.batch_clear([audit.timestamp_cell, audit.data_range])
        self.store.batch_update({audit.timestamp_cell: [[timestamp]], str(target): content})

        emit(self.sink, "report-written", rows=len(rows), kept=len(kept), range=report_range)
        return True

    def _recent_rows(self, audit: AuditRange, cutoff: datetime) -> list[list[Any]]:
        """Existing report rows with a timestamp at or after the cutoff."""
        ix = audit.offset("timestamp")
        if ix is None:
            return []

        kept = []
        for row in self.store.get_values(audit.data_range):
            timestamp = parse_timestamp(row[ix]) if ix < len(row) else None
            if timestamp is not None and timestamp >= cutoff:
                values = [as_number(v) for v in row]
                kept.append(values + [""] * (audit.width - len(values)))
        return kept


def as_number(text: str) -> Any:
    """Cell text back to the integer it was written as (device IDs, card numbers)."""
    if text.isdecimal() and (text == "0" or not text.startswith("0")):
        return int(text)
    return text
