"""
Device ACL capability - fetch and push per-device card lists.

Architecture Note:
    - Device failures are data: a device that cannot be read is reported in
      the error map (get_acl) or as an unreachable Report (put_acl), a card
      that cannot be written lands in Report.failed
    - Only a FleetError, which belongs to no single device, is returned as a
      hard error, and the caller decides whether that aborts the run
"""

from __future__ import annotations

import logging
from typing import Sequence

from autoaclsync.domain.acl import ACL, compare
from autoaclsync.domain.config import DeviceConfig
from autoaclsync.domain.errors import DeviceError, FleetError
from autoaclsync.domain.report import Report
from autoaclsync.infrastructure.devices.fleet import DeviceFleet

logger = logging.getLogger(__name__)


def get_acl(fleet: DeviceFleet, devices: Sequence[DeviceConfig]) -> tuple[ACL, dict[int, str]]:
    """
    Read the cards currently held by every configured device.

    Returns:
        (acl, errors) - unreadable devices are absent from ``acl`` and
        listed in ``errors`` with the reason.

    Raises:
        FleetError: No device can be reached at all.
    """
    acl: ACL = {}
    errors: dict[int, str] = {}

    for device in devices:
        try:
            cards = fleet.get_cards(device.device_id)
        except DeviceError as e:
            logger.warning("%s: unable to retrieve cards (%s)", device.display_name, e.reason)
            errors[device.device_id] = e.reason
            continue

        acl[device.device_id] = {c.card_number: c for c in cards}
        logger.debug("%s: retrieved %d card(s)", device.display_name, len(cards))

    return acl, errors


def put_acl(
    fleet: DeviceFleet,
    acl: ACL,
    dry_run: bool = False,
    with_pin: bool = False,
) -> tuple[dict[int, Report], list[str]]:
    """
    Make every device's card list match ``acl``.

    Args:
        fleet: Devices to update.
        acl: Desired cards per device ID.
        dry_run: Work out (and report) the changes without writing them.
        with_pin: Treat PIN differences as changes.

    Returns:
        (reports, hard_errors) - one Report per device in ``acl``. A device
        that cannot be read gets a Report carrying only the reason. Hard
        errors stop the push: the device being updated at the time and the
        ones after it are not reported.
    """
    reports: dict[int, Report] = {}
    errors: list[str] = []

    for device_id in sorted(acl):
        try:
            report = _push_device(fleet, device_id, acl[device_id], dry_run, with_pin)
        except FleetError as e:
            logger.error("Device fleet unavailable: %s", e)
            errors.append(str(e))
            break

        reports[device_id] = report
        logger.info("%s: %s%s", device_id, report.summary(), " (dry run)" if dry_run else "")

    return reports, errors


def _push_device(fleet: DeviceFleet, device_id: int, cards, dry_run: bool, with_pin: bool) -> Report:
    try:
        current = {c.card_number: c for c in fleet.get_cards(device_id)}
    except DeviceError as e:
        return Report(unreachable=e.reason)

    diff = compare({device_id: current}, {device_id: cards}, with_pin)[device_id]
    report = Report(unchanged={c.card_number for c in diff.unchanged})

    for card in diff.updated:
        _apply(report.updated, report, card.card_number, dry_run, lambda c=card: fleet.put_card(device_id, c))
    for card in diff.added:
        _apply(report.added, report, card.card_number, dry_run, lambda c=card: fleet.put_card(device_id, c))
    for card in diff.deleted:
        _apply(
            report.deleted,
            report,
            card.card_number,
            dry_run,
            lambda c=card: fleet.delete_card(device_id, c.card_number),
        )

    return report


def _apply(outcome: set[int], report: Report, card_number: int, dry_run: bool, write) -> None:
    if dry_run:
        outcome.add(card_number)
        return

    try:
        write()
    except DeviceError as e:
        logger.warning("%s", e)
        report.failed.add(card_number)
    else:
        outcome.add(card_number)
