"""
Tests for the compare-acl worksheet report and the get-acl file name.
"""

from datetime import datetime
from pathlib import Path

import pytest

from autoaclsync.application.acl_transfer import default_tsv_path, write_compare_report
from autoaclsync.domain.acl import Diff
from autoaclsync.domain.errors import InvalidRangeError
from fakes import NOW, SpyWorkbookStore, card, make_workbook, read_sheet

TS = NOW.strftime("%Y-%m-%d %H:%M:%S")
COMPARE_HEADER = ["Device ID", "Updated", "Added", "Deleted"]


@pytest.fixture
def compare_book(tmp_path):
    return make_workbook(tmp_path / "acl.xlsx", {"Compare": [["Compared"], COMPARE_HEADER]})


class TestCompareReport:

    def test_one_block_per_device(self, compare_book):
        store = SpyWorkbookStore(compare_book)
        diffs = {
            202: Diff(unchanged=[card(1, [True])]),
            101: Diff(
                updated=[card(5, [True])],
                added=[card(7, [True]), card(6, [True])],
                deleted=[card(9, [True]), card(8, [True]), card(10, [True])],
            ),
        }

        assert write_compare_report(store, "Compare!A1:D", diffs, NOW) == 2

        assert read_sheet(compare_book, "Compare") == [
            [TS],
            COMPARE_HEADER,
            [101, 5, 6, 8],
            [None, None, 7, 9],
            [None, None, None, 10],
            [],
            [202, "-", "-", "-"],
        ]
        assert [c[0] for c in store.writes] == ["batch_clear", "batch_update"]
        assert store.writes[0][1][0] == ["Compare!A1:A1", "Compare!A3:D"]

    def test_replaces_previous_report(self, compare_book):
        store = SpyWorkbookStore(compare_book)
        write_compare_report(store, "Compare!A1:D", {101: Diff(added=[card(1, [True]), card(2, [True])])}, NOW)

        write_compare_report(store, "Compare!A1:D", {101: Diff()}, NOW)

        assert read_sheet(compare_book, "Compare")[2:] == [[101, "-", "-", "-"]]

    def test_unreachable_device(self, compare_book):
        store = SpyWorkbookStore(compare_book)

        write_compare_report(store, "Compare!A1:D", {101: Diff()}, NOW, {202: "no response"})

        assert read_sheet(compare_book, "Compare")[2:] == [
            [101, "-", "-", "-"],
            [],
            [202, "unreachable (no response)"],
        ]

    def test_range_too_narrow(self, compare_book):
        store = SpyWorkbookStore(compare_book)

        with pytest.raises(InvalidRangeError):
            write_compare_report(store, "Compare!A1:C", {101: Diff()}, NOW)
        assert store.writes == []


def test_default_tsv_path():
    assert default_tsv_path(datetime(2024, 3, 1, 9, 5, 7)) == Path("ACL - 2024-03-01 090507.tsv")
