"""
Rich-formatted CLI help display.

Provides colorful help output for the AutoACLSync CLI.
"""

import sys
from pathlib import Path

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

console = Console()


def _get_exe_name() -> str:
    """Get executable name - handles PyInstaller frozen mode."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).name
    return "autoaclsync"


EXE_NAME = _get_exe_name()


def _options_table(rows) -> Table:
    table = Table(show_header=True, header_style="bold", box=box.ROUNDED)
    table.add_column("Option", style="bright_cyan", width=22)
    table.add_column("Description", style="white")
    table.add_column("Default", style="dim", width=18)
    for row in rows:
        table.add_row(*row)
    return table


def print_main_help() -> None:
    """Print the main CLI help with rich formatting."""
    banner = Text()
    banner.append("╔═══════════════════════════════════════════════════════════════╗\n", style="bold cyan")
    banner.append("║  ", style="bold cyan")
    banner.append("🔑 AutoACLSync", style="bold white")
    banner.append(" - Spreadsheet to access controller ACL sync ", style="bold cyan")
    banner.append("║\n", style="bold cyan")
    banner.append("╚═══════════════════════════════════════════════════════════════╝", style="bold cyan")
    console.print(banner)
    console.print()

    console.print("[bold yellow]USAGE:[/bold yellow]")
    console.print(
        f"  {EXE_NAME} [dim][--verbose] [--log-file FILE] [--config FILE][/dim] "
        f"[bright_cyan]<command>[/bright_cyan] [dim][options][/dim]\n"
    )

    commands = Table(show_header=True, header_style="bold magenta", box=box.SIMPLE, padding=(0, 2))
    commands.add_column("Command", style="bright_cyan", width=12)
    commands.add_column("Description", style="white")
    commands.add_column("Key Options", style="dim")

    commands.add_row("load-acl", "Sync the worksheet ACL to the devices", "--force, --dry-run, --delay")
    commands.add_row("compare-acl", "Compare the worksheet ACL with the devices", "--range, --with-pin")
    commands.add_row("get-acl", "Save the worksheet ACL to a TSV file", "--file, --range")
    commands.add_row("put-acl", "Upload a TSV file to the worksheet", "--file, --range")
    commands.add_row("upload-acl", "Upload the device ACLs to the worksheet", "--range, --with-pin")

    console.print(Panel(commands, title="[bold green]📋 COMMANDS[/bold green]", border_style="green"))

    console.print("\n[bold yellow]QUICK START:[/bold yellow]")
    examples = [
        ("Sync (from cron):", f"{EXE_NAME} load-acl"),
        ("Preview changes:", f"{EXE_NAME} load-acl --dry-run --force"),
        ("Check devices:", f"{EXE_NAME} compare-acl"),
        ("Backup the ACL:", f"{EXE_NAME} get-acl --file acl.tsv"),
    ]
    for label, cmd in examples:
        console.print(f"  [dim]{label}[/dim]")
        console.print(f"    [bright_green]{cmd}[/bright_green]")

    console.print(
        f"\n[dim]Use[/dim] [bright_cyan]{EXE_NAME} <command> --help[/bright_cyan] "
        f"[dim]for command-specific options.[/dim]\n"
    )


def print_load_acl_help() -> None:
    """Print help for the load-acl command."""
    console.print("\n[bold cyan]🔄 LOAD-ACL COMMAND[/bold cyan]")
    console.print(
        "[dim]Update the access controllers from the worksheet ACL, if it has changed "
        "and has not been edited within the stability delay.[/dim]\n"
    )

    console.print(
        _options_table(
            [
                ("--range", "Worksheet range holding the ACL", "ACL!A1:K"),
                ("--log-range", "Worksheet range for the log", "Log!A1:H"),
                ("--log-retention", "Days of log rows to keep", "30"),
                ("--report-range", "Worksheet range for the report", "Report!A1:D"),
                ("--report-retention", "Days of report rows to keep", "7"),
                ("--delay", "Stability delay (e.g. 90s, 5m, 1h30m)", "5m"),
                ("--force", "Sync even if unchanged or recently edited", "-"),
                ("--strict", "Fail on duplicate card numbers", "-"),
                ("--dry-run", "Report changes without updating devices", "-"),
                ("--no-log", "Do not write the log worksheet", "-"),
                ("--no-report", "Do not write the report worksheet", "-"),
                ("--always-report", "Rewrite the report even if nothing changed", "-"),
                ("--with-pin", "Include card keypad PINs", "-"),
            ]
        )
    )

    console.print("\n[bold yellow]Examples:[/bold yellow]")
    console.print(f"  [bright_green]{EXE_NAME} load-acl[/bright_green]")
    console.print(f"  [bright_green]{EXE_NAME} load-acl --force --dry-run --no-log[/bright_green]")
    console.print(f"  [bright_green]{EXE_NAME} load-acl --delay 15m --strict[/bright_green]\n")


def print_compare_acl_help() -> None:
    """Print help for the compare-acl command."""
    console.print("\n[bold cyan]🔍 COMPARE-ACL COMMAND[/bold cyan]")
    console.print("[dim]Compare the worksheet ACL with the cards on the devices. The devices are never written.[/dim]\n")
    console.print(
        _options_table(
            [
                ("--range", "Worksheet range holding the ACL", "ACL!A1:K"),
                ("--report-range", "Worksheet range for the comparison report", "console only"),
                ("--with-pin", "Include card keypad PINs", "-"),
            ]
        )
    )
    console.print()


def print_get_acl_help() -> None:
    """Print help for the get-acl command."""
    console.print("\n[bold cyan]📥 GET-ACL COMMAND[/bold cyan]")
    console.print("[dim]Extract the worksheet ACL and save it as a TSV file.[/dim]\n")
    console.print(
        _options_table(
            [
                ("--file", "TSV file to write", "ACL - <yyyy-mm-dd HHMMSS>.tsv"),
                ("--range", "Worksheet range holding the ACL", "ACL!A1:K"),
                ("--with-pin", "Include card keypad PINs", "-"),
            ]
        )
    )
    console.print()


def print_put_acl_help() -> None:
    """Print help for the put-acl command."""
    console.print("\n[bold cyan]📤 PUT-ACL COMMAND[/bold cyan]")
    console.print("[dim]Upload an ACL from a TSV file to the worksheet.[/dim]\n")
    console.print(
        _options_table(
            [
                ("--file", "TSV file to upload", "required"),
                ("--range", "Worksheet range to write", "required"),
            ]
        )
    )
    console.print()


def print_upload_acl_help() -> None:
    """Print help for the upload-acl command."""
    console.print("\n[bold cyan]⬆️  UPLOAD-ACL COMMAND[/bold cyan]")
    console.print(
        "[dim]Read the cards from every device and write them to the worksheet: "
        "timestamp in the first row, header in the second, records below.[/dim]\n"
    )
    console.print(
        _options_table(
            [
                ("--range", "Worksheet range to write", "required"),
                ("--with-pin", "Include card keypad PINs", "-"),
            ]
        )
    )
    console.print()
