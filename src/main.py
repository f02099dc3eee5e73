"""
AutoACLSync - Spreadsheet to access controller ACL synchronisation.

Reconciles the access control list maintained in a workbook with the cards
held on a fleet of access controllers, normally from cron.
"""

import sys
from autoaclsync.interface.cli import main


if __name__ == "__main__":
    sys.exit(main())
