"""
AutoACLSync CLI entry point.

Main entry point for the application CLI. Normally invoked from cron as
``autoaclsync load-acl``; the remaining commands are operator tools.
"""

import argparse
import logging
import sys
from pathlib import Path

from autoaclsync.application.acl_transfer import (
    default_tsv_path,
    fetch_table,
    put_tsv,
    upload_table,
    write_compare_report,
    write_tsv,
)
from autoaclsync.application.audit_writer import local_now
from autoaclsync.application.device_acl import get_acl
from autoaclsync.application.sync_service import SyncService
from autoaclsync.domain.acl import compare, make_table, parse_table
from autoaclsync.domain.config import AppConfig, SyncSettings, parse_duration
from autoaclsync.domain.errors import DeviceError, DiffError, LockError, SyncError
from autoaclsync.infrastructure.config_loader import ConfigLoader
from autoaclsync.infrastructure.devices import FileDeviceFleet
from autoaclsync.infrastructure.logging_config import setup_logging
from autoaclsync.infrastructure.sheets import WorkbookStore
from autoaclsync.interface.formatted_console import ConsoleRenderer
from autoaclsync.interface.formatters import DiffFormatter, OutcomeFormatter

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path("config") / "acl_sync.json"

# load-acl option -> SyncSettings field
SETTING_OVERRIDES = {
    "range": "acl_range",
    "log_range": "log_range",
    "log_retention": "log_retention_days",
    "report_range": "report_range",
    "report_retention": "report_retention_days",
    "delay": "stability_delay",
    "force": "force",
    "strict": "strict",
    "dry_run": "dry_run",
    "no_log": "no_log",
    "no_report": "no_report",
    "always_report": "always_report",
    "with_pin": "with_pin",
}


def _flag(parser: argparse.ArgumentParser, name: str, help_text: str) -> None:
    # None when absent, so the config file value stands
    parser.add_argument(name, action="store_true", default=None, help=help_text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autoaclsync",
        description="AutoACLSync - Spreadsheet to access controller ACL sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global args
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--log-file", type=str, help="Write logs to file")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG, help="Configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Command: LOAD-ACL
    parser_load = subparsers.add_parser("load-acl", help="Sync the worksheet ACL to the devices")
    parser_load.add_argument("--range", type=str, help="Worksheet range holding the ACL")
    parser_load.add_argument("--log-range", type=str, help="Worksheet range for the log")
    parser_load.add_argument("--log-retention", type=int, help="Days of log rows to keep")
    parser_load.add_argument("--report-range", type=str, help="Worksheet range for the report")
    parser_load.add_argument("--report-retention", type=int, help="Days of report rows to keep")
    parser_load.add_argument("--delay", type=parse_duration, help="Stability delay (e.g. 5m)")
    _flag(parser_load, "--force", "Sync even if unchanged or recently edited")
    _flag(parser_load, "--strict", "Fail on duplicate card numbers")
    _flag(parser_load, "--dry-run", "Report changes without updating the devices")
    _flag(parser_load, "--no-log", "Do not write the log worksheet")
    _flag(parser_load, "--no-report", "Do not write the report worksheet")
    _flag(parser_load, "--always-report", "Rewrite the report even if nothing changed")
    _flag(parser_load, "--with-pin", "Include card keypad PINs")

    # Command: COMPARE-ACL
    parser_compare = subparsers.add_parser("compare-acl", help="Compare the worksheet ACL with the devices")
    parser_compare.add_argument("--range", type=str, help="Worksheet range holding the ACL")
    parser_compare.add_argument(
        "--report-range", dest="compare_range", type=str, help="Worksheet range for the comparison report"
    )
    _flag(parser_compare, "--with-pin", "Include card keypad PINs")

    # Command: GET-ACL
    parser_get = subparsers.add_parser("get-acl", help="Save the worksheet ACL to a TSV file")
    parser_get.add_argument("--file", type=Path, help="TSV file to write (default: ACL - <timestamp>.tsv)")
    parser_get.add_argument("--range", type=str, help="Worksheet range holding the ACL")
    _flag(parser_get, "--with-pin", "Include card keypad PINs")

    # Command: PUT-ACL
    parser_put = subparsers.add_parser("put-acl", help="Upload a TSV file to the worksheet")
    parser_put.add_argument("--file", type=Path, required=True, help="TSV file to upload")
    parser_put.add_argument("--range", type=str, required=True, help="Worksheet range to write")

    # Command: UPLOAD-ACL
    parser_upload = subparsers.add_parser("upload-acl", help="Upload the device ACLs to the worksheet")
    parser_upload.add_argument("--range", type=str, required=True, help="Worksheet range to write")
    _flag(parser_upload, "--with-pin", "Include card keypad PINs")

    return parser


def main(argv=None) -> int:
    """Main entry point for AutoACLSync CLI."""
    argv = sys.argv[1:] if argv is None else list(argv)

    # Intercept --help / -h for rich formatted help
    if not argv or argv in (["-h"], ["--help"]):
        from autoaclsync.interface.cli_help import print_main_help

        print_main_help()
        return 0

    # Command-specific help
    if len(argv) >= 2 and argv[1] in ("-h", "--help"):
        from autoaclsync.interface import cli_help

        help_map = {
            "load-acl": cli_help.print_load_acl_help,
            "compare-acl": cli_help.print_compare_acl_help,
            "get-acl": cli_help.print_get_acl_help,
            "put-acl": cli_help.print_put_acl_help,
            "upload-acl": cli_help.print_upload_acl_help,
        }
        if argv[0] in help_map:
            help_map[argv[0]]()
            return 0

    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logging(log_level, args.log_file)

    if not args.command:
        parser.print_help()
        return 1

    renderer = ConsoleRenderer()
    handlers = {
        "load-acl": handle_load_acl,
        "compare-acl": handle_compare_acl,
        "get-acl": handle_get_acl,
        "put-acl": handle_put_acl,
        "upload-acl": handle_upload_acl,
    }

    try:
        config = ConfigLoader(str(args.config.parent)).load_app_config(args.config.name)
        return handlers[args.command](config, args, renderer)

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except LockError as e:
        renderer.locked(str(e))
        return 1
    except (SyncError, ValueError, FileNotFoundError, PermissionError) as e:
        logger.error("%s", e)
        renderer.error(str(e))
        return 1


def settings_from_args(settings: SyncSettings, args: argparse.Namespace) -> SyncSettings:
    """Overlay explicitly given command line options on the configured settings."""
    updates = {}
    for option, setting in SETTING_OVERRIDES.items():
        value = getattr(args, option, None)
        if value is not None:
            updates[setting] = value

    if not updates:
        return settings
    # Re-validate, model_copy alone would accept a malformed range
    return SyncSettings.model_validate({**settings.model_dump(), **updates})


# =============================================================================
# Command handlers
# =============================================================================


def handle_load_acl(config: AppConfig, args: argparse.Namespace, renderer: ConsoleRenderer) -> int:
    settings = settings_from_args(config.sync, args)
    store = WorkbookStore(config.workbook)
    fleet = FileDeviceFleet(config.device_dir, config.devices)

    outcome = SyncService(store, fleet, config.devices, settings).run()
    OutcomeFormatter().display(outcome, config.devices)
    return 0


def handle_compare_acl(config: AppConfig, args: argparse.Namespace, renderer: ConsoleRenderer) -> int:
    settings = settings_from_args(config.sync, args)
    store = WorkbookStore(config.workbook)
    fleet = FileDeviceFleet(config.device_dir, config.devices)

    table = fetch_table(store, settings.acl_range, settings.with_pin)
    desired, duplicates = parse_table(table, config.devices, settings.with_pin)
    if duplicates:
        renderer.warning(f"Duplicate card numbers (first occurrence used): {', '.join(map(str, duplicates))}")

    current, errors = get_acl(fleet, config.devices)
    if errors and not current:
        raise DiffError(errors)
    diffs = compare(current, desired, settings.with_pin)
    DiffFormatter().display(diffs, config.devices, errors)

    if args.compare_range:
        write_compare_report(store, args.compare_range, diffs, local_now(), errors)
        renderer.success(f"Comparison written to {args.compare_range}")
    return 0


def handle_get_acl(config: AppConfig, args: argparse.Namespace, renderer: ConsoleRenderer) -> int:
    settings = settings_from_args(config.sync, args)
    store = WorkbookStore(config.workbook)

    path = args.file or default_tsv_path(local_now())

    table = fetch_table(store, settings.acl_range, settings.with_pin)
    write_tsv(table, path)
    renderer.success(f"Saved {len(table.records)} record(s) from {settings.acl_range} to {path}")
    return 0


def handle_put_acl(config: AppConfig, args: argparse.Namespace, renderer: ConsoleRenderer) -> int:
    store = WorkbookStore(config.workbook)

    count = put_tsv(store, args.range, args.file)
    renderer.success(f"Uploaded {count} record(s) from {args.file} to {args.range}")
    return 0


def handle_upload_acl(config: AppConfig, args: argparse.Namespace, renderer: ConsoleRenderer) -> int:
    settings = settings_from_args(config.sync, args)
    store = WorkbookStore(config.workbook)
    fleet = FileDeviceFleet(config.device_dir, config.devices)

    current, errors = get_acl(fleet, config.devices)
    if errors:
        # A partial upload would look like deleted cards to the next load-acl
        device_id = min(errors)
        raise DeviceError(device_id, errors[device_id])

    table = make_table(current, config.devices, settings.with_pin)
    count = upload_table(store, args.range, table, local_now())
    renderer.success(f"Uploaded {count} card(s) from {len(config.devices)} device(s) to {args.range}")
    return 0
