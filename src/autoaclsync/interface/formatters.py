"""
CLI result formatters for sync outcomes and ACL comparisons.

Keeps display logic out of the command handlers.
"""

import logging
from typing import Dict, Mapping, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from autoaclsync.domain.acl import Diff, card_numbers
from autoaclsync.domain.config import DeviceConfig
from autoaclsync.domain.report import Report, RunOutcome

logger = logging.getLogger(__name__)
console = Console()


def _names(devices: Sequence[DeviceConfig]) -> Dict[int, str]:
    return {d.device_id: d.display_name for d in devices}


def _cards(numbers: Sequence[int], limit: int = 8) -> str:
    if not numbers:
        return "[dim]-[/dim]"
    text = ", ".join(str(n) for n in numbers[:limit])
    if len(numbers) > limit:
        text += f" [dim](+{len(numbers) - limit} more)[/dim]"
    return text


class DiffFormatter:
    """Renders the per-device comparison produced by compare-acl."""

    def display(
        self,
        diffs: Mapping[int, Diff],
        devices: Sequence[DeviceConfig],
        device_errors: Mapping[int, str] | None = None,
    ) -> None:
        names = _names(devices)

        table = Table(title="🔍 ACL Comparison")
        table.add_column("Device", style="cyan", no_wrap=True)
        table.add_column("Unchanged", justify="right")
        table.add_column("Updated", style="yellow")
        table.add_column("Added", style="green")
        table.add_column("Deleted", style="red")

        for device_id in sorted(diffs):
            diff = diffs[device_id]
            table.add_row(
                names.get(device_id, str(device_id)),
                str(len(diff.unchanged)),
                _cards(card_numbers(diff.updated)),
                _cards(card_numbers(diff.added)),
                _cards(card_numbers(diff.deleted)),
            )

        console.print(table)

        for device_id, reason in sorted((device_errors or {}).items()):
            console.print(f"[red]❌ {names.get(device_id, device_id)}: {reason}[/red]")

        changed = sum(1 for d in diffs.values() if d.has_changes())
        if changed:
            console.print(f"\n[yellow]⚠️  {changed} device(s) out of sync[/yellow]")
        else:
            console.print("\n[green]✅ All devices match the worksheet ACL[/green]")


class OutcomeFormatter:
    """Renders the result of a load-acl run."""

    STATE_TEXT = {
        "skipped-no-change": "[dim]No changes since the last run[/dim]",
        "skipped-unstable": "[yellow]Worksheet edited recently - deferred[/yellow]",
        "skipped-no-diff": "[green]Devices already match the worksheet[/green]",
        "pushed": "[green]ACL pushed to devices[/green]",
    }

    def display(self, outcome: RunOutcome, devices: Sequence[DeviceConfig]) -> None:
        lines = [self.STATE_TEXT[outcome.state.value]]
        if outcome.dry_run:
            lines.append("[magenta]DRY RUN - devices not updated[/magenta]")
        if outcome.records:
            lines.append(f"Records: {outcome.records}")
        if outcome.duplicates:
            lines.append(f"[yellow]Duplicate cards: {_cards(outcome.duplicates)}[/yellow]")

        console.print(Panel.fit("\n".join(lines), title="📋 load-acl", border_style="cyan"))

        if any(not r.unreachable for r in outcome.reports.values()):
            self._display_reports(outcome.reports, devices)

        names = _names(devices)
        for device_id, reason in sorted(outcome.device_errors.items()):
            console.print(f"[red]❌ {names.get(device_id, device_id)}: {reason}[/red]")

    def _display_reports(self, reports: Mapping[int, Report], devices: Sequence[DeviceConfig]) -> None:
        names = _names(devices)

        table = Table(title="📊 Device Reports")
        table.add_column("Device", style="cyan", no_wrap=True)
        for column in ("Unchanged", "Updated", "Added", "Deleted", "Failed", "Errors"):
            table.add_column(column, justify="right")

        for device_id in sorted(reports):
            r = reports[device_id]
            if r.unreachable:
                # Listed with the device errors below
                continue
            table.add_row(
                names.get(device_id, str(device_id)),
                str(len(r.unchanged)),
                str(len(r.updated)),
                str(len(r.added)),
                str(len(r.deleted)),
                f"[red]{len(r.failed)}[/red]" if r.failed else "0",
                f"[red]{len(r.errored)}[/red]" if r.errored else "0",
            )

        console.print(table)
