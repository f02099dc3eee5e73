"""
AutoACLSync - Spreadsheet to Access Controller ACL Synchronisation.

Reconciles an access control list maintained in a spreadsheet with the
card permissions held on a fleet of access controllers. Designed to be
run periodically from cron.

Usage:
    # CLI (recommended)
    autoaclsync --config config/acl_sync.json load-acl

    # Programmatic
    from autoaclsync.application.sync_service import SyncService

    service = SyncService(store, fleet, devices, settings)
    outcome = service.run()
"""

__version__ = "0.1.0"
__author__ = "AutoACLSync Team"

__all__ = ["__version__"]
