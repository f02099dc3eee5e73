"""
Domain layer package.

Contains pure data models and rules with no I/O dependencies:
- Table extraction (table)
- ACL model, table conversion and comparison (acl)
- Revision fingerprint and debounce rule (revision)
- Push reports and run outcome (report)
- A1 range arithmetic (a1)
- Error taxonomy (errors) and observability events (events)
"""

from autoaclsync.domain.acl import ACL, Card, Diff, compare, make_table, parse_table
from autoaclsync.domain.report import Report, ReportAction, RunOutcome, RunState
from autoaclsync.domain.revision import Revision, is_sync_warranted
from autoaclsync.domain.table import Table, extract_table

__all__ = [
    "ACL",
    "Card",
    "Diff",
    "Report",
    "ReportAction",
    "Revision",
    "RunOutcome",
    "RunState",
    "Table",
    "compare",
    "extract_table",
    "is_sync_warranted",
    "make_table",
    "parse_table",
]
