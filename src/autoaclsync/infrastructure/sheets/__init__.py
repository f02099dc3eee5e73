"""
Spreadsheet store package.

Provides the SpreadsheetStore protocol consumed by the engine and the
openpyxl-backed WorkbookStore implementation.
"""

from autoaclsync.infrastructure.sheets.store import RevisionInfo, SpreadsheetStore
from autoaclsync.infrastructure.sheets.workbook_store import WorkbookStore

__all__ = ["RevisionInfo", "SpreadsheetStore", "WorkbookStore"]
