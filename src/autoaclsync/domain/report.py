"""
Per-device push reports and the outcome of a sync run.

Reports are ephemeral - they exist only within one run and are handed to the
audit writer. Per-card failures are data, not control flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Set

from autoaclsync.domain.acl import Diff
from autoaclsync.domain.revision import Revision


class ReportAction(str, Enum):
    """Action column values for the consolidated report, in output order."""

    UPDATED = "Updated"
    ADDED = "Added"
    DELETED = "Deleted"
    FAILED = "Failed"
    ERROR = "Error"
    UNREACHABLE = "Unreachable"


@dataclass
class Report:
    """Outcome of pushing the ACL to a single device."""

    unchanged: Set[int] = field(default_factory=set)
    updated: Set[int] = field(default_factory=set)
    added: Set[int] = field(default_factory=set)
    deleted: Set[int] = field(default_factory=set)
    failed: Set[int] = field(default_factory=set)
    errored: Set[int] = field(default_factory=set)
    # Why the device could not be read, empty if it was
    unreachable: str = ""

    @property
    def is_interesting(self) -> bool:
        """True if anything other than 'unchanged' happened."""
        return bool(self.updated or self.added or self.deleted or self.failed or self.errored or self.unreachable)

    def cards(self, action: ReportAction) -> List[int]:
        """Card numbers for a report action, sorted (none for Unreachable)."""
        lookup = {
            ReportAction.UPDATED: self.updated,
            ReportAction.ADDED: self.added,
            ReportAction.DELETED: self.deleted,
            ReportAction.FAILED: self.failed,
            ReportAction.ERROR: self.errored,
        }
        return sorted(lookup.get(action, ()))

    def summary(self) -> str:
        if self.unreachable:
            return f"unreachable ({self.unreachable})"
        return (
            f"unchanged:{len(self.unchanged)}  updated:{len(self.updated)}  "
            f"added:{len(self.added)}  deleted:{len(self.deleted)}  "
            f"failed:{len(self.failed)}  errors:{len(self.errored)}"
        )


class RunState(str, Enum):
    """Terminal state of a sync run that did not raise."""

    SKIPPED_NO_CHANGE = "skipped-no-change"
    SKIPPED_UNSTABLE = "skipped-unstable"
    SKIPPED_NO_DIFF = "skipped-no-diff"
    PUSHED = "pushed"


@dataclass
class RunOutcome:
    """Everything a caller (CLI, tests) needs to know about a completed run."""

    state: RunState
    revision: Revision | None = None
    records: int = 0
    diffs: Dict[int, Diff] = field(default_factory=dict)
    reports: Dict[int, Report] = field(default_factory=dict)
    device_errors: Dict[int, str] = field(default_factory=dict)
    duplicates: List[int] = field(default_factory=list)
    dry_run: bool = False
