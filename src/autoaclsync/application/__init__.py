"""
Application layer package.

Contains the services that orchestrate the sync workflow.
Services coordinate between domain models and infrastructure.
"""

from autoaclsync.application.audit_writer import AuditWriter
from autoaclsync.application.revision_tracker import RevisionTracker
from autoaclsync.application.sync_service import SyncService

__all__ = [
    "AuditWriter",
    "RevisionTracker",
    "SyncService",
]
