"""
Shared fixtures.

Puts ``src`` on the import path and provides a small two-device fleet, an
ACL workbook with log and report worksheets, and a fixed clock.
"""

from __future__ import annotations

import sys
from datetime import timedelta
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parents[1] / "src"))
sys.path.insert(0, str(Path(__file__).parent))

import pytest

from autoaclsync.domain.config import DeviceConfig, SyncSettings
from fakes import ACL_ROWS, LOG_HEADER, NOW, REPORT_HEADER, RecordingSink, make_workbook


@pytest.fixture
def devices():
    return [
        DeviceConfig(device_id=101, name="Front", doors=["Gate", "Tower"]),
        DeviceConfig(device_id=202, name="Cellar", doors=["Dungeon", ""]),
    ]


@pytest.fixture
def workbook(tmp_path):
    return make_workbook(
        tmp_path / "acl.xlsx",
        {
            "ACL": ACL_ROWS,
            "Log": [LOG_HEADER],
            "Report": [["Last updated"], REPORT_HEADER],
        },
    )


@pytest.fixture
def settings(tmp_path):
    return SyncSettings(workdir=str(tmp_path / "work"), stability_delay=timedelta(minutes=5))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def clock():
    return lambda: NOW
