"""
Tests for the file-backed device fleet and the device ACL capability.
"""

import json

import pytest

from autoaclsync.application.device_acl import get_acl, put_acl
from autoaclsync.domain.errors import DeviceError, FleetError
from autoaclsync.infrastructure.devices import FileDeviceFleet
from fakes import FlakyFleet, card


@pytest.fixture
def fleet(tmp_path, devices):
    return FileDeviceFleet(tmp_path / "devices", devices)


class TestFileDeviceFleet:

    def test_new_device_is_empty(self, fleet):
        assert fleet.get_cards(101) == []

    def test_put_and_get(self, fleet):
        fleet.put_card(101, card(7, [True, False], pin=1234))
        fleet.put_card(101, card(3, [False, True]))

        assert fleet.get_cards(101) == [card(3, [False, True]), card(7, [True, False], pin=1234)]
        assert fleet.get_cards(202) == []

    def test_file_format(self, fleet):
        fleet.put_card(202, card(9, [True, False]))

        data = json.loads((fleet.directory / "202.json").read_text())
        assert data == {
            "device-id": 202,
            "cards": [
                {"card-number": 9, "from": "2024-01-01", "to": "2024-12-31", "doors": [True, False], "pin": None}
            ],
        }

    def test_put_replaces(self, fleet):
        fleet.put_card(101, card(7, [True, False]))
        fleet.put_card(101, card(7, [True, True]))
        assert fleet.get_cards(101) == [card(7, [True, True])]

    def test_delete(self, fleet):
        fleet.put_card(101, card(7, [True, False]))
        fleet.delete_card(101, 7)
        assert fleet.get_cards(101) == []

        with pytest.raises(DeviceError, match="not found"):
            fleet.delete_card(101, 7)

    def test_unconfigured_device(self, fleet):
        with pytest.raises(DeviceError) as ctx:
            fleet.get_cards(999)
        assert ctx.value.device_id == 999

    def test_corrupt_file(self, fleet):
        fleet.directory.mkdir()
        (fleet.directory / "101.json").write_text('{"cards": [{"card-number": 1}]}')

        with pytest.raises(DeviceError, match="unreadable"):
            fleet.get_cards(101)

    def test_device_directory_not_a_directory(self, fleet):
        fleet.directory.write_text("not a directory")

        with pytest.raises(FleetError):
            fleet.get_cards(101)
        with pytest.raises(FleetError):
            fleet.put_card(101, card(7, [True, False]))


class TestDeviceACL:

    def test_get_acl_collects_errors(self, devices):
        fleet = FlakyFleet({101: [card(1, [True, False])]}, unreachable=[202])

        acl, errors = get_acl(fleet, devices)

        assert acl == {101: {1: card(1, [True, False])}}
        assert errors == {202: "no response"}

    def test_put_acl(self):
        fleet = FlakyFleet({1: [card(1, [True]), card(2, [True]), card(3, [True])]}, rejected=[3])
        desired = {1: {1: card(1, [True]), 2: card(2, [False]), 4: card(4, [True])}}

        reports, errors = put_acl(fleet, desired)

        assert errors == []
        report = reports[1]
        assert (report.unchanged, report.updated, report.added, report.deleted, report.failed) == (
            {1},
            {2},
            {4},
            set(),
            {3},
        )
        assert set(fleet.cards[1]) == {1, 2, 3, 4}

    def test_put_acl_dry_run(self):
        fleet = FlakyFleet({1: [card(3, [True])]})

        reports, _ = put_acl(fleet, {1: {4: card(4, [True])}}, dry_run=True)

        assert reports[1].added == {4}
        assert reports[1].deleted == {3}
        assert fleet.writes == []

    def test_put_acl_unreadable_device(self):
        """An unreadable device is reported, the others are still updated."""
        fleet = FlakyFleet(unreachable=[2])

        reports, errors = put_acl(fleet, {1: {4: card(4, [True])}, 2: {5: card(5, [True])}, 3: {6: card(6, [True])}})

        assert errors == []
        assert reports[2].unreachable == "no response"
        assert reports[2].is_interesting
        assert reports[1].added == {4}
        assert reports[3].added == {6}
        assert ("put_card", 2, 5) not in fleet.calls

    def test_put_acl_fleet_down(self):
        fleet = FlakyFleet(down_after=0)

        reports, errors = put_acl(fleet, {1: {4: card(4, [True])}, 2: {5: card(5, [True])}})

        assert reports == {}
        assert errors == ["controller network unreachable"]
        assert fleet.calls == [("get_cards", 1), ("put_card", 1, 4)]
