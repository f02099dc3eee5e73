"""
Tests for the .xlsx spreadsheet store.
"""

from datetime import datetime, timezone

import pytest

from autoaclsync.domain.errors import SpreadsheetIOError
from autoaclsync.infrastructure.sheets import WorkbookStore
from fakes import make_workbook, read_sheet


@pytest.fixture
def store(tmp_path):
    path = make_workbook(
        tmp_path / "book.xlsx",
        {
            "Data": [
                ["a", "b", "c"],
                [1, None, None],
                [None, None, None],
                ["x", "y"],
            ]
        },
    )
    return WorkbookStore(path)


class TestReads:

    def test_values_as_text_trimmed(self, store):
        assert store.get_values("Data!A1:C") == [["a", "b", "c"], ["1"], [], ["x", "y"]]

    def test_bounded_range(self, store):
        assert store.get_values("Data!B1:C2") == [["b", "c"]]

    def test_beyond_data(self, store):
        assert store.get_values("Data!A10:C") == []

    def test_missing_sheet(self, store):
        with pytest.raises(SpreadsheetIOError, match="Nope"):
            store.get_values("Nope!A1:C")

    def test_missing_workbook(self, tmp_path):
        with pytest.raises(SpreadsheetIOError, match="not found"):
            WorkbookStore(tmp_path / "none.xlsx").get_values("Data!A1:C")

    def test_not_a_workbook(self, tmp_path):
        path = tmp_path / "junk.xlsx"
        path.write_text("not a zip file")
        with pytest.raises(SpreadsheetIOError):
            WorkbookStore(path).get_values("Data!A1:C")


class TestWrites:

    def test_batch_update(self, store):
        store.batch_update({"Data!B2:C3": [["p", "q"], ["r", ""]], "Other!A1:A1": [["new sheet"]]})

        assert read_sheet(store.path, "Data")[1:3] == [[1, "p", "q"], [None, "r"]]
        assert read_sheet(store.path, "Other") == [["new sheet"]]

    def test_batch_update_overflow(self, store):
        with pytest.raises(SpreadsheetIOError):
            store.batch_update({"Data!A1:B1": [["1", "2"], ["3", "4"]]})
        with pytest.raises(SpreadsheetIOError):
            store.batch_update({"Data!A1:B": [["1", "2", "3"]]})

    def test_append_after_last_row(self, store):
        store.append("Data!A1:B", [["m", "n"]], insert=False)
        assert read_sheet(store.path, "Data")[4] == ["m", "n"]

    def test_append_inserts(self, tmp_path):
        path = make_workbook(tmp_path / "book.xlsx", {"Data": [["h"], [None, "beside"]]})
        store = WorkbookStore(path)

        store.append("Data!A1:A", [["v"]], insert=True)

        assert read_sheet(path, "Data") == [["h"], ["v"], [None, "beside"]]

    def test_append_overwrites_without_insert(self, tmp_path):
        path = make_workbook(tmp_path / "book.xlsx", {"Data": [["h"], [None, "beside"]]})
        store = WorkbookStore(path)

        store.append("Data!A1:A", [["v"]], insert=False)

        assert read_sheet(path, "Data") == [["h"], ["v", "beside"]]

    def test_batch_clear(self, store):
        store.batch_clear(["Data!A2:C", "Missing!A1:B"])
        assert read_sheet(store.path, "Data") == [["a", "b", "c"]]

    def test_delete_rows(self, store):
        """Ranges are zero-based, half open and applied in order."""
        store.delete_rows("Data", [(1, 2), (1, 2)])
        assert read_sheet(store.path, "Data") == [["a", "b", "c"], ["x", "y"]]

    def test_delete_rows_invalid(self, store):
        with pytest.raises(SpreadsheetIOError):
            store.delete_rows("Data", [(3, 3)])


class TestRevisions:

    def test_single_revision(self, store):
        pages = list(store.list_revisions(store.document_id))

        assert len(pages) == 1 and len(pages[0]) == 1
        info = pages[0][0]
        assert len(info.id) == 64
        assert info.modified_at.tzinfo is timezone.utc
        assert info.modified_at <= datetime.now(timezone.utc)

    def test_revision_follows_content(self, store):
        before = next(store.list_revisions(store.document_id))[0].id
        store.batch_update({"Data!A1:A1": [["changed"]]})
        after = next(store.list_revisions(store.document_id))[0].id

        assert before != after

    def test_unknown_document(self, store):
        with pytest.raises(SpreadsheetIOError):
            next(store.list_revisions("some-other-document"))
