"""
Sync Service - Orchestrator for the load-acl run.

Takes the lock, decides whether the spreadsheet warrants a sync, and if so
extracts the ACL, compares it with the devices, pushes the changes and
writes the audit trail.

State machine (linear):

    Locked -> RevisionChecked -> (SkippedNoChange | SkippedUnstable
           | Fetched -> Parsed -> Diffed -> (SkippedNoDiff | Pushed -> Audited))
           -> RevisionPersisted -> Unlocked

Architecture Note:
    - Extraction, parsing and comparison are pure domain functions
    - Spreadsheet and devices are reached only through their protocols
    - Fatal conditions raise SyncError subclasses; per-device and per-card
      problems are carried on the RunOutcome and written to the log and
      report worksheets
    - A device that cannot be read is left out of the comparison and the
      push, the remaining devices are still synced

Revision persistence policy:
    The evaluated revision is stored when the run completes with every
    device reached, whether or not a push occurred. It is NOT stored, so
    the next scheduled run evaluates the same revision again, when:
    - the revision is deferred as unstable (storing it would hide the edit
      once it settles, since the revision would then compare as unchanged)
    - the run is a dry run (the devices were not updated)
    - a device could not be read (it is brought up to date once it is back)
    - the run raised
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Sequence

from autoaclsync.application.audit_writer import AuditWriter, local_now
from autoaclsync.application.device_acl import get_acl, put_acl
from autoaclsync.application.revision_tracker import RevisionTracker, latest_revision
from autoaclsync.domain.acl import compare, parse_table
from autoaclsync.domain.config import DeviceConfig, RevisionFetchPolicy, SyncSettings
from autoaclsync.domain.errors import DiffError, HardPushError, LockError, NoDataError, RevisionFetchError
from autoaclsync.domain.events import EventSink, LoggingEventSink, emit
from autoaclsync.domain.report import Report, RunOutcome, RunState
from autoaclsync.domain.revision import Revision
from autoaclsync.domain.table import extract_table
from autoaclsync.infrastructure.devices.fleet import DeviceFleet
from autoaclsync.infrastructure.lock import locked
from autoaclsync.infrastructure.sheets.store import SpreadsheetStore

logger = logging.getLogger(__name__)


class SyncService:
    """
    Orchestrator for a single sync run.

    Workflow:
    1. Acquire the lock (fails immediately if another run holds it)
    2. Fetch the latest revision and apply the debounce rule
    3. Read and extract the ACL worksheet
    4. Parse the ACL and compare it against the devices
    5. Push if anything changed (or forced)
    6. Write the log and report worksheets
    7. Persist the revision and release the lock
    """

    def __init__(
        self,
        store: SpreadsheetStore,
        fleet: DeviceFleet,
        devices: Sequence[DeviceConfig],
        settings: SyncSettings,
        sink: EventSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.fleet = fleet
        self.devices = list(devices)
        self.settings = settings
        self.sink = sink or LoggingEventSink()
        self.clock = clock or local_now

    def run(self) -> RunOutcome:
        """
        Execute one sync run.

        Returns:
            RunOutcome describing what was decided and done

        Raises:
            LockError: Another run holds the lock (nothing else is touched)
            SyncError: Any other fatal condition
        """
        lock_path = self.settings.lock_path()
        try:
            with locked(lock_path):
                emit(self.sink, "lock-acquired", level=logging.DEBUG, path=lock_path)
                return self._run_locked()
        except LockError:
            emit(self.sink, "lock-denied", "Another instance is running", level=logging.ERROR, path=lock_path)
            raise

    # =========================================================================
    # Phases
    # =========================================================================

    def _run_locked(self) -> RunOutcome:
        settings = self.settings
        document_id = self.store.document_id
        tracker = RevisionTracker(settings.revision_path(document_id), self.sink)

        # ── Revision check ──────────────────────────────────────────────────
        revision = self._fetch_revision(document_id)

        if revision is not None and not settings.force:
            last = tracker.load()
            if not tracker.should_sync(revision, settings.stability_delay, self.clock()):
                if revision == last:
                    self._persist(tracker, revision)
                    return RunOutcome(state=RunState.SKIPPED_NO_CHANGE, revision=revision, dry_run=settings.dry_run)
                return RunOutcome(state=RunState.SKIPPED_UNSTABLE, revision=revision, dry_run=settings.dry_run)

        # ── Fetch and parse ─────────────────────────────────────────────────
        grid = self.store.get_values(settings.acl_range)
        if not grid:
            raise NoDataError(settings.acl_range)

        table = extract_table(grid, settings.with_pin)
        emit(self.sink, "acl-extracted", records=len(table.records), columns=len(table.header))

        desired, duplicates = parse_table(table, self.devices, settings.with_pin, settings.strict)
        if duplicates:
            emit(
                self.sink,
                "duplicate-cards",
                "Duplicate card numbers - first occurrence used",
                level=logging.WARNING,
                cards=",".join(str(c) for c in duplicates),
            )

        # ── Compare ─────────────────────────────────────────────────────────
        current, device_errors = get_acl(self.fleet, self.devices)
        for device_id, reason in device_errors.items():
            emit(self.sink, "device-unreachable", reason, level=logging.WARNING, device=device_id)
        if device_errors and not current:
            raise DiffError(device_errors)

        diffs = compare(current, desired, settings.with_pin)
        outcome = RunOutcome(
            state=RunState.SKIPPED_NO_DIFF,
            revision=revision,
            records=len(table.records),
            diffs=diffs,
            reports={device_id: Report(unreachable=reason) for device_id, reason in device_errors.items()},
            device_errors=dict(device_errors),
            duplicates=duplicates,
            dry_run=settings.dry_run,
        )

        errors: list[str] = []
        if settings.force or any(d.has_changes() for d in diffs.values()):
            # ── Push ────────────────────────────────────────────────────────
            reachable = {device_id: cards for device_id, cards in desired.items() if device_id in current}
            reports, errors = put_acl(self.fleet, reachable, settings.dry_run, settings.with_pin)

            for device_id, report in reports.items():
                if report.unreachable:
                    outcome.device_errors[device_id] = report.unreachable
                    emit(self.sink, "device-unreachable", report.unreachable, level=logging.WARNING, device=device_id)

            outcome.reports.update(reports)
            if duplicates:
                for device_id in desired:
                    outcome.reports.setdefault(device_id, Report()).errored.update(duplicates)

            outcome.state = RunState.PUSHED
            emit(
                self.sink,
                "acl-pushed",
                devices=len(reports),
                dry_run=settings.dry_run,
            )
        else:
            emit(self.sink, "no-changes", "No changes to push")

        # ── Audit ───────────────────────────────────────────────────────────
        if outcome.state is RunState.PUSHED or outcome.device_errors:
            self._audit(outcome.reports)

        if errors:
            raise HardPushError(errors)

        if outcome.device_errors:
            emit(
                self.sink,
                "revision-retained",
                "Not every device was reached - the next run evaluates this revision again",
                level=logging.WARNING,
                devices=",".join(str(d) for d in sorted(outcome.device_errors)),
            )
        else:
            self._persist(tracker, revision)
        return outcome

    def _audit(self, reports: dict[int, Report]) -> None:
        settings = self.settings
        writer = AuditWriter(self.store, self.sink, self.clock)
        if not settings.no_log:
            writer.write_log(reports, settings.log_range, settings.log_retention_days)
        if not settings.no_report:
            writer.write_report(reports, settings.report_range, settings.report_retention_days, settings.always_report)

    def _fetch_revision(self, document_id: str) -> Revision | None:
        try:
            return latest_revision(self.store, document_id)
        except RevisionFetchError as e:
            if self.settings.revision_fetch_policy is RevisionFetchPolicy.ABORT:
                raise
            emit(self.sink, "revision-unavailable", f"{e} - proceeding with sync", level=logging.ERROR)
            return None

    def _persist(self, tracker: RevisionTracker, revision: Revision | None) -> None:
        # A dry run leaves the devices untouched, so the next real run must
        # still see this revision as new.
        if revision is None or self.settings.dry_run:
            return
        tracker.store(revision)
        emit(self.sink, "revision-stored", level=logging.DEBUG, revision=revision.revision_id)
