"""
Spreadsheet revision fingerprint and the debounce rule.

A Revision identifies a specific state of the backing spreadsheet document.
It is persisted between runs and compared structurally to decide whether
anything changed since the last evaluation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any


@dataclass(frozen=True)
class Revision:
    """Fingerprint of a spreadsheet document at a point in time."""

    document_id: str
    revision_id: str
    modified_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "file-id": self.document_id,
            "id": self.revision_id,
            "modified": _as_utc(self.modified_at).isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Revision:
        """
        Rebuild a Revision from its persisted form.

        Raises:
            KeyError: A field is missing.
            ValueError: The modification time is not ISO 8601.
        """
        return cls(
            document_id=str(data["file-id"]),
            revision_id=str(data["id"]),
            modified_at=_as_utc(datetime.fromisoformat(str(data["modified"]))),
        )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_stable(candidate: Revision, stability_delay: timedelta, now: datetime) -> bool:
    """True if the document has not been edited within the stability delay."""
    return _as_utc(now) - _as_utc(candidate.modified_at) >= stability_delay


def is_sync_warranted(
    candidate: Revision,
    last: Revision | None,
    stability_delay: timedelta,
    now: datetime,
) -> bool:
    """
    Decide whether a revision warrants a sync.

    - unchanged since the last evaluation -> False
    - edited less than ``stability_delay`` ago -> False (may still be mid-edit)
    - otherwise -> True
    """
    if last is not None and candidate == last:
        return False

    return is_stable(candidate, stability_delay, now)
