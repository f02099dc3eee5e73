"""
Error taxonomy for the reconciliation engine.

Fatal conditions are raised as subclasses of SyncError and abort the run.
Non-fatal conditions (bad rows, per-device failures, non-strict duplicates)
are never raised - they are carried as data on Report/RunOutcome and
surfaced through the audit trail.

Architecture Note:
    Pure domain module with NO external dependencies.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable


class SyncError(Exception):
    """Base class for all fatal reconciliation errors."""


# =============================================================================
# Validation (bad/missing/duplicate columns, malformed ranges)
# =============================================================================


class ValidationError(SyncError):
    """The ACL worksheet (or a configured range) failed structural validation."""


class EmptySheetError(ValidationError):
    def __init__(self) -> None:
        super().__init__("Empty sheet")


class DuplicateColumnError(ValidationError):
    def __init__(self, column: str) -> None:
        self.column = column
        super().__init__(f"Duplicate column name '{column}'")


class MissingColumnError(ValidationError):
    def __init__(self, column: str) -> None:
        self.column = column
        super().__init__(f"Missing '{column}' column")


class InvalidRangeError(ValidationError):
    def __init__(self, area: str, example: str = "ACL!A1:E") -> None:
        self.area = area
        super().__init__(f"Invalid range '{area}' - expected something like '{example}'")


# =============================================================================
# Spreadsheet I/O
# =============================================================================


class NoDataError(SyncError):
    def __init__(self, area: str) -> None:
        self.area = area
        super().__init__(f"No data in spreadsheet/range '{area}'")


class SpreadsheetIOError(SyncError):
    """Reading from or writing to the spreadsheet store failed."""


class RevisionFetchError(SyncError):
    def __init__(self, document_id: str, reason: str = "") -> None:
        self.document_id = document_id
        message = f"Unable to identify latest revision for document '{document_id}'"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


# =============================================================================
# ACL / devices
# =============================================================================


class DuplicateCardError(SyncError):
    """Raised in strict mode when a card number appears on more than one row."""

    def __init__(self, card_numbers: Iterable[int]) -> None:
        self.card_numbers = sorted(set(card_numbers))
        cards = ", ".join(str(c) for c in self.card_numbers)
        super().__init__(f"Duplicate card number(s) in ACL: {cards}")


class DiffError(SyncError):
    """The worksheet ACL could not be compared against the devices."""

    def __init__(self, device_errors: dict[int, str]) -> None:
        self.device_errors = dict(device_errors)
        reasons = "; ".join(f"{d}: {r}" for d, r in sorted(self.device_errors.items()))
        super().__init__(f"No access controller could be read ({reasons})")


class DeviceError(SyncError):
    """A single device could not be read or written."""

    def __init__(self, device_id: int, reason: str) -> None:
        self.device_id = device_id
        self.reason = reason
        super().__init__(f"{device_id}: {reason}")


class FleetError(SyncError):
    """The device fleet as a whole is unavailable, not any one device."""


class HardPushError(SyncError):
    """The push failed in a way that belongs to no single device or card."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("Error(s) updating access controllers: " + "; ".join(self.errors))


# =============================================================================
# Locking
# =============================================================================


class LockError(SyncError):
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(
            f"Lock file '{self.path}' exists - another instance is running "
            f"(or a previous run crashed and the lock must be removed manually)"
        )
