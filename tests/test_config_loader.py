"""
Tests for configuration loading and the settings models.
"""

import json
import shutil
from datetime import timedelta
from pathlib import Path

import pytest

from autoaclsync.domain.config import DeviceConfig, RevisionFetchPolicy, SyncSettings, parse_duration
from autoaclsync.infrastructure.config_loader import ConfigLoader

EXAMPLE = Path(__file__).parents[1] / "config" / "acl_sync.example.json"


def write_config(directory, data, name="acl_sync.json"):
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(data if isinstance(data, str) else json.dumps(data))
    return path


class TestConfigLoader:

    def test_example_config(self, tmp_path):
        shutil.copy(EXAMPLE, tmp_path / "acl_sync.json")

        config = ConfigLoader(str(tmp_path)).load_app_config()

        assert [d.device_id for d in config.devices] == [303986753, 405419896]
        assert config.devices[0].doors == ["Gate", "Tower", "", "Dungeon"]
        assert config.sync.stability_delay == timedelta(minutes=5)
        assert config.sync.revision_fetch_policy is RevisionFetchPolicy.PROCEED

    def test_relative_paths_resolved(self, tmp_path):
        write_config(
            tmp_path / "config",
            {"workbook": "data/acl.xlsx", "sync": {"workdir": "work", "lock_file": "/var/run/acl.lock"}},
        )

        config = ConfigLoader(str(tmp_path / "config")).load_app_config()

        base = tmp_path.resolve()
        assert config.workbook == str(base / "data" / "acl.xlsx")
        assert config.device_dir == str(base / "devices")
        assert config.sync.workdir == str(base / "work")
        assert config.sync.lock_file == "/var/run/acl.lock"
        assert config.sync.revision_file is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Hint"):
            ConfigLoader(str(tmp_path)).load_app_config()

    @pytest.mark.parametrize(
        "content,message",
        [
            ("", "empty"),
            ("{nope", "Invalid JSON"),
            ("[1, 2]", "JSON object"),
            ('{"devices": []}', "workbook"),
            ('{"workbook": "a.xlsx", "sync": {"acl_range": "ACL"}}', "sync.acl_range"),
            ('{"workbook": "a.xlsx", "devices": [{"device_id": 1, "doors": ["A"]}, {"device_id": 1, "doors": ["B"]}]}', "Duplicate device"),
        ],
    )
    def test_invalid(self, tmp_path, content, message):
        write_config(tmp_path, content)
        with pytest.raises(ValueError, match=message):
            ConfigLoader(str(tmp_path)).load_app_config()


class TestSettings:

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("90", timedelta(seconds=90)),
            ("90s", timedelta(seconds=90)),
            ("5m", timedelta(minutes=5)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            (" 2H ", timedelta(hours=2)),
        ],
    )
    def test_parse_duration(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["", "5 minutes", "m5", "-5m"])
    def test_parse_duration_invalid(self, text):
        with pytest.raises(ValueError):
            parse_duration(text)

    def test_delay_formats(self):
        assert SyncSettings(stability_delay="PT2M").stability_delay == timedelta(minutes=2)
        assert SyncSettings(stability_delay=30).stability_delay == timedelta(seconds=30)

    def test_ranges_validated(self):
        with pytest.raises(ValueError):
            SyncSettings(log_range="Log")

    def test_retention_validated(self):
        with pytest.raises(ValueError):
            SyncSettings(report_retention_days=0)

    def test_paths(self, tmp_path):
        settings = SyncSettings(workdir=str(tmp_path))

        assert settings.lock_path() == tmp_path / "autoaclsync.lock"
        assert settings.revision_path("/data/My ACL.xlsx") == tmp_path / "My_ACL.xlsx.revision.json"
        assert SyncSettings(revision_file="r.json").revision_path("x") == Path("r.json")

    def test_device_doors(self):
        assert DeviceConfig(device_id=1, doors=[" Gate ", ""]).doors == ["Gate", ""]
        with pytest.raises(ValueError):
            DeviceConfig(device_id=1, doors=[])
        with pytest.raises(ValueError):
            DeviceConfig(device_id=0, doors=["A"])
