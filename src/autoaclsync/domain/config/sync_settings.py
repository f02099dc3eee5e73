"""
Sync settings domain model.

Contains every setting that controls how (and whether) a sync run is
performed: target ranges, retention windows, stability delay and the
force/strict/dry-run/no-log/no-report/with-PIN flags.
"""

import re
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from autoaclsync.domain.a1 import SheetRange
from autoaclsync.domain.errors import InvalidRangeError


_DURATION_RE = re.compile(r"^(?:(\d+)h)?(?:(\d+)m)?(?:(\d+)s)?$")


def parse_duration(value: str) -> timedelta:
    """
    Parse a compact duration such as ``90s``, ``5m`` or ``1h30m``.

    A bare number is taken as seconds.

    Raises:
        ValueError: If the value is not a recognised duration.
    """
    text = value.strip().lower()
    if text.isdigit():
        return timedelta(seconds=int(text))

    match = _DURATION_RE.match(text)
    if not text or not match:
        raise ValueError(f"Invalid duration '{value}' - expected something like '5m' or '1h30m'")

    hours, minutes, seconds = (int(g) if g else 0 for g in match.groups())
    return timedelta(hours=hours, minutes=minutes, seconds=seconds)


class RevisionFetchPolicy(str, Enum):
    """What to do when the latest spreadsheet revision cannot be fetched."""

    PROCEED = "proceed"  # Fail open - sync as though the sheet was revised
    ABORT = "abort"


class SyncSettings(BaseModel):
    """
    Domain model for a sync run.

    The CLI overrides individual fields with ``model_copy(update=...)``.
    """

    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    acl_range: str = Field("ACL!A1:K", description="Worksheet range holding the ACL")
    log_range: str = Field("Log!A1:H", description="Worksheet range for the operational log")
    log_retention_days: int = Field(30, description="Days of log rows to keep")
    report_range: str = Field("Report!A1:D", description="Worksheet range for the consolidated report")
    report_retention_days: int = Field(7, description="Days of report rows to keep")
    stability_delay: timedelta = Field(
        timedelta(minutes=5),
        description="Minimum time since the last edit before the sheet is considered stable",
    )

    force: bool = Field(False, description="Sync even if the sheet is unchanged or stable")
    strict: bool = Field(False, description="Fail on duplicate card numbers")
    dry_run: bool = Field(False, description="Report changes without updating the devices")
    no_log: bool = Field(False, description="Do not append to the log worksheet")
    no_report: bool = Field(False, description="Do not rewrite the report worksheet")
    always_report: bool = Field(False, description="Rewrite the report even if nothing changed")
    with_pin: bool = Field(False, description="Include card keypad PINs")

    revision_fetch_policy: RevisionFetchPolicy = Field(RevisionFetchPolicy.PROCEED)

    workdir: str = Field("work", description="Directory for lock and revision files")
    lock_file: Optional[str] = Field(None, description="Lock file path (default: <workdir>/autoaclsync.lock)")
    revision_file: Optional[str] = Field(None, description="Revision file path (default: <workdir>/<document>.revision.json)")

    @field_validator("stability_delay", mode="before")
    @classmethod
    def parse_stability_delay(cls, v):
        """Accept compact durations ('5m') as well as seconds and ISO 8601."""
        if isinstance(v, str) and not v.upper().startswith("P"):
            return parse_duration(v)
        return v

    @field_validator("stability_delay")
    @classmethod
    def validate_stability_delay(cls, v: timedelta) -> timedelta:
        if v < timedelta(0):
            raise ValueError("Stability delay cannot be negative")
        return v

    @field_validator("acl_range", "log_range", "report_range")
    @classmethod
    def validate_range(cls, v: str) -> str:
        try:
            SheetRange.parse(v)
        except InvalidRangeError as e:
            raise ValueError(str(e)) from e
        return v.strip()

    @field_validator("log_retention_days", "report_retention_days")
    @classmethod
    def validate_retention(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Retention must be at least 1 day")
        return v

    def lock_path(self) -> Path:
        if self.lock_file:
            return Path(self.lock_file)
        return Path(self.workdir) / "autoaclsync.lock"

    def revision_path(self, document_id: str) -> Path:
        if self.revision_file:
            return Path(self.revision_file)
        safe = re.sub(r"[^A-Za-z0-9_.-]+", "_", Path(document_id).name) or "spreadsheet"
        return Path(self.workdir) / f"{safe}.revision.json"
