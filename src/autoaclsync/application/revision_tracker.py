"""
Revision Tracker - Decides whether a sync is warranted.

Spreadsheet edits are bursty: somebody changes several cells over a few
minutes. The tracker compares the latest document revision against the one
persisted by the previous run, and defers while the document is still being
edited.

Architecture Note:
    - The decision rule itself is pure (domain/revision.py)
    - This module owns the persisted revision file and the revision fetch
    - Outcomes are reported as events, not log calls
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from pathlib import Path

from autoaclsync.domain.errors import RevisionFetchError, SyncError
from autoaclsync.domain.events import EventSink, LoggingEventSink, emit
from autoaclsync.domain.revision import Revision, is_sync_warranted
from autoaclsync.infrastructure.atomic import atomic_write_json
from autoaclsync.infrastructure.sheets.store import SpreadsheetStore

logger = logging.getLogger(__name__)


class RevisionTracker:
    """Loads, compares and persists the last evaluated revision."""

    def __init__(self, path: Path | str, sink: EventSink | None = None):
        self.path = Path(path)
        self.sink = sink or LoggingEventSink()

    def load(self) -> Revision | None:
        """The persisted revision, or None if the file is absent or unreadable."""
        if not self.path.exists():
            return None

        try:
            return Revision.from_dict(json.loads(self.path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable revision file %s: %s", self.path, e)
            return None

    def store(self, revision: Revision) -> None:
        atomic_write_json(self.path, revision.to_dict())
        logger.debug("Stored revision %s to %s", revision.revision_id, self.path)

    def should_sync(self, candidate: Revision, stability_delay: timedelta, now: datetime) -> bool:
        """
        Apply the debounce rule against the persisted revision.

        Returns:
            False if the revision was already evaluated or was edited less than
            ``stability_delay`` ago, otherwise True.
        """
        last = self.load()

        if is_sync_warranted(candidate, last, stability_delay, now):
            emit(self.sink, "revision-changed", revision=candidate.revision_id)
            return True

        if candidate == last:
            emit(self.sink, "revision-unchanged", "Nothing to do", revision=candidate.revision_id)
        else:
            emit(
                self.sink,
                "revision-unstable",
                "Spreadsheet modified recently, deferring until it is stable",
                revision=candidate.revision_id,
                modified=candidate.modified_at.isoformat(),
                delay=stability_delay,
            )
        return False


def should_sync(
    candidate: Revision,
    persisted_path: Path | str,
    stability_delay: timedelta,
    now: datetime,
) -> bool:
    """Module-level form of RevisionTracker.should_sync."""
    return RevisionTracker(persisted_path).should_sync(candidate, stability_delay, now)


def latest_revision(store: SpreadsheetStore, document_id: str) -> Revision:
    """
    Walk the document's paged revision history and return the newest entry.

    Raises:
        RevisionFetchError: The history is empty or could not be read.
    """
    latest = None
    try:
        for page in store.list_revisions(document_id):
            for info in page:
                if latest is None or info.modified_at > latest.modified_at:
                    latest = info
    except SyncError as e:
        raise RevisionFetchError(document_id, str(e)) from e

    if latest is None:
        raise RevisionFetchError(document_id, "no revisions")

    return Revision(document_id=document_id, revision_id=latest.id, modified_at=latest.modified_at)
