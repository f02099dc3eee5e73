"""
End-to-end tests for a load-acl run against a workbook and an in-memory fleet.
"""

from datetime import datetime, timezone

import pytest

from autoaclsync.application.sync_service import SyncService
from autoaclsync.domain.config import RevisionFetchPolicy
from autoaclsync.domain.errors import (
    DiffError,
    DuplicateCardError,
    HardPushError,
    NoDataError,
    RevisionFetchError,
    SpreadsheetIOError,
)
from autoaclsync.domain.report import RunState
from fakes import ACL_ROWS, LOG_HEADER, REPORT_HEADER, FlakyFleet, SpyWorkbookStore, card, make_workbook, read_sheet

DUPLICATE_ROW = ["6001002", "2025-01-01", "2025-12-31", "Y", "Y", "Y"]


class NoHistoryStore(SpyWorkbookStore):
    def list_revisions(self, document_id):
        raise SpreadsheetIOError("revision history unavailable")


@pytest.fixture
def run(devices, sink, clock):
    """Run a sync with the given store, fleet and settings."""

    def execute(store, fleet, settings, clock_fn=clock):
        return SyncService(store, fleet, devices, settings, sink=sink, clock=clock_fn).run()

    return execute


def revision_file(settings, store):
    return settings.revision_path(store.document_id)


class TestFirstRun:

    def test_pushes_and_audits(self, workbook, settings, run, sink):
        store = SpyWorkbookStore(workbook)
        fleet = FlakyFleet()

        outcome = run(store, fleet, settings)

        assert outcome.state is RunState.PUSHED
        assert outcome.records == 3
        assert set(fleet.cards[101]) == {6001001, 6001002}
        assert set(fleet.cards[202]) == {6001001, 6001003}
        assert fleet.cards[202][6001003] == card(
            6001003, [True, False], start=datetime(2024, 2, 1).date(), end=datetime(2024, 11, 30).date()
        )
        assert outcome.reports[101].added == {6001001, 6001002}

        log = read_sheet(workbook, "Log")
        assert log[0] == LOG_HEADER
        assert [row[1:5] for row in log[1:]] == [[101, 0, 0, 2], [202, 0, 0, 2]]

        report = read_sheet(workbook, "Report")
        assert report[1] == REPORT_HEADER
        assert [row[1:] for row in report[2:]] == [
            [101, "Added", 6001001],
            [101, "Added", 6001002],
            [202, "Added", 6001001],
            [202, "Added", 6001003],
        ]

        assert revision_file(settings, store).exists()
        assert not settings.lock_path().exists()
        assert sink.names()[0] == "lock-acquired"
        assert "acl-pushed" in sink.names()

    def test_deletes_and_updates(self, workbook, settings, run):
        fleet = FlakyFleet(
            {
                101: [card(6001001, [True, True]), card(6001002, [False, True]), card(42, [True, False])],
                202: [card(6001001, [True, False])],
            }
        )

        outcome = run(SpyWorkbookStore(workbook), fleet, settings)

        assert outcome.reports[101].updated == {6001001}
        assert outcome.reports[101].deleted == {42}
        assert outcome.reports[101].unchanged == {6001002}
        assert outcome.reports[202].added == {6001003}
        assert 42 not in fleet.cards[101]


class TestIdempotence:

    def test_unchanged_sheet_touches_nothing(self, workbook, settings, run, sink):
        """A second run over the same revision makes no writes at all."""
        quiet = settings.model_copy(update={"no_log": True, "no_report": True})
        run(SpyWorkbookStore(workbook), FlakyFleet(), quiet)

        store = SpyWorkbookStore(workbook)
        fleet = FlakyFleet()
        outcome = run(store, fleet, quiet)

        assert outcome.state is RunState.SKIPPED_NO_CHANGE
        assert store.writes == []
        assert fleet.calls == []
        assert "revision-unchanged" in sink.names()

    def test_converges_after_audit(self, workbook, settings, run):
        """The audit write is a new revision; it is re-evaluated once, then left alone."""
        fleet = FlakyFleet()
        assert run(SpyWorkbookStore(workbook), fleet, settings).state is RunState.PUSHED

        store = SpyWorkbookStore(workbook)
        assert run(store, fleet, settings).state is RunState.SKIPPED_NO_DIFF
        assert store.writes == []
        assert fleet.writes == [
            ("put_card", 101, 6001001),
            ("put_card", 101, 6001002),
            ("put_card", 202, 6001001),
            ("put_card", 202, 6001003),
        ]

        store = SpyWorkbookStore(workbook)
        assert run(store, fleet, settings).state is RunState.SKIPPED_NO_CHANGE
        assert store.writes == []


class TestRevisionDecisions:

    def test_recent_edit_deferred(self, workbook, settings, run):
        """An unstable revision is not synced and not recorded."""
        store = SpyWorkbookStore(workbook)
        fleet = FlakyFleet()

        outcome = run(store, fleet, settings, clock_fn=lambda: datetime.now(timezone.utc))

        assert outcome.state is RunState.SKIPPED_UNSTABLE
        assert fleet.calls == []
        assert not revision_file(settings, store).exists()

    def test_force_ignores_revision(self, workbook, settings, run):
        quiet = settings.model_copy(update={"no_log": True, "no_report": True})
        fleet = FlakyFleet()
        run(SpyWorkbookStore(workbook), fleet, quiet)

        outcome = run(SpyWorkbookStore(workbook), fleet, quiet.model_copy(update={"force": True}))

        assert outcome.state is RunState.PUSHED
        assert outcome.reports[101].unchanged == {6001001, 6001002}
        assert len(fleet.writes) == 4

    def test_fetch_failure_proceeds(self, workbook, settings, run, sink):
        store = NoHistoryStore(workbook)

        outcome = run(store, FlakyFleet(), settings)

        assert outcome.state is RunState.PUSHED
        assert outcome.revision is None
        assert "revision-unavailable" in sink.names()
        assert not revision_file(settings, store).exists()

    def test_fetch_failure_aborts(self, workbook, settings, run):
        store = NoHistoryStore(workbook)
        fleet = FlakyFleet()
        settings = settings.model_copy(update={"revision_fetch_policy": RevisionFetchPolicy.ABORT})

        with pytest.raises(RevisionFetchError):
            run(store, fleet, settings)
        assert fleet.calls == []
        assert store.writes == []


class TestDuplicates:

    def test_reported_as_errors(self, tmp_path, settings, run, sink):
        path = make_workbook(
            tmp_path / "acl.xlsx",
            {"ACL": ACL_ROWS + [DUPLICATE_ROW], "Log": [LOG_HEADER], "Report": [["Last updated"], REPORT_HEADER]},
        )

        outcome = run(SpyWorkbookStore(path), FlakyFleet(), settings)

        assert outcome.duplicates == [6001002]
        assert outcome.reports[101].errored == {6001002}
        assert outcome.reports[202].errored == {6001002}
        assert "duplicate-cards" in sink.names()
        report = read_sheet(path, "Report")
        assert [row[1:] for row in report if row[2:3] == ["Error"]] == [[101, "Error", 6001002], [202, "Error", 6001002]]

    def test_strict(self, tmp_path, settings, run):
        path = make_workbook(tmp_path / "acl.xlsx", {"ACL": ACL_ROWS + [DUPLICATE_ROW]})
        store = SpyWorkbookStore(path)
        fleet = FlakyFleet()

        with pytest.raises(DuplicateCardError):
            run(store, fleet, settings.model_copy(update={"strict": True}))
        assert fleet.calls == []
        assert not revision_file(settings, store).exists()
        assert not settings.lock_path().exists()


class TestFailures:

    def test_rejected_card(self, workbook, settings, run):
        outcome = run(SpyWorkbookStore(workbook), FlakyFleet(rejected=[6001002]), settings)

        assert outcome.state is RunState.PUSHED
        assert outcome.reports[101].failed == {6001002}
        assert outcome.reports[101].added == {6001001}
        assert [row[2:] for row in read_sheet(workbook, "Report")[2:] if row[2] == "Failed"] == [["Failed", 6001002]]

    def test_unreachable_device(self, workbook, settings, run, sink):
        """The other devices are synced and the unreachable one is logged, not fatal."""
        store = SpyWorkbookStore(workbook)
        fleet = FlakyFleet(unreachable=[202])

        outcome = run(store, fleet, settings)

        assert outcome.state is RunState.PUSHED
        assert outcome.device_errors == {202: "no response"}
        assert set(outcome.diffs) == {101}
        assert set(fleet.cards[101]) == {6001001, 6001002}
        assert {call[1] for call in fleet.writes} == {101}
        assert sink.first("device-unreachable").fields["device"] == 202

        log = read_sheet(workbook, "Log")
        assert [row[1:5] for row in log[1:2]] == [[101, 0, 0, 2]]
        assert log[2][1] == 202
        assert log[2][-1] == "unreachable: no response"

        report = read_sheet(workbook, "Report")
        assert [row[1:3] for row in report[2:] if row[2] == "Unreachable"] == [[202, "Unreachable"]]

        assert not revision_file(settings, store).exists()
        assert "revision-retained" in sink.names()
        assert not settings.lock_path().exists()

    def test_unreachable_device_synced_when_back(self, workbook, settings, run):
        fleet = FlakyFleet(unreachable=[202])
        run(SpyWorkbookStore(workbook), fleet, settings)

        fleet.unreachable.clear()
        store = SpyWorkbookStore(workbook)
        outcome = run(store, fleet, settings)

        assert outcome.state is RunState.PUSHED
        assert outcome.reports[101].unchanged == {6001001, 6001002}
        assert outcome.reports[202].added == {6001001, 6001003}
        assert revision_file(settings, store).exists()

    def test_unreachable_device_without_changes(self, workbook, settings, run):
        """Nothing to push to the reachable devices, the outage is still logged."""
        fleet = FlakyFleet({101: [card(6001001, [True, False]), card(6001002, [False, True])]}, unreachable=[202])

        outcome = run(SpyWorkbookStore(workbook), fleet, settings)

        assert outcome.state is RunState.SKIPPED_NO_DIFF
        assert fleet.writes == []
        assert [row[1] for row in read_sheet(workbook, "Log")[1:]] == [202]

    def test_no_device_reachable(self, workbook, settings, run):
        store = SpyWorkbookStore(workbook)
        fleet = FlakyFleet(unreachable=[101, 202])

        with pytest.raises(DiffError):
            run(store, fleet, settings)
        assert fleet.writes == []
        assert store.writes == []

    def test_fleet_outage_during_push(self, workbook, settings, run):
        store = SpyWorkbookStore(workbook)
        fleet = FlakyFleet(down_after=1)

        with pytest.raises(HardPushError) as ctx:
            run(store, fleet, settings)

        assert "controller network unreachable" in str(ctx.value)
        assert set(fleet.cards[101]) == {6001001}
        assert not revision_file(settings, store).exists()
        assert not settings.lock_path().exists()

    def test_empty_acl(self, tmp_path, settings, run):
        path = make_workbook(tmp_path / "acl.xlsx", {"ACL": []})
        with pytest.raises(NoDataError):
            run(SpyWorkbookStore(path), FlakyFleet(), settings)

    def test_dry_run(self, workbook, settings, run):
        store = SpyWorkbookStore(workbook)
        fleet = FlakyFleet()

        outcome = run(store, fleet, settings.model_copy(update={"dry_run": True, "no_log": True, "no_report": True}))

        assert outcome.state is RunState.PUSHED
        assert outcome.dry_run
        assert outcome.reports[202].added == {6001001, 6001003}
        assert fleet.writes == []
        assert store.writes == []
        assert not revision_file(settings, store).exists()
