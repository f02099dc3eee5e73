"""
Access Control List model, table conversion and comparison.

The worksheet ACL is a single table of cards, with one column per door.
Each configured device owns a subset of those door columns, so parsing the
table yields one card list per device:

    Card Number | From       | To         | Gate | Tower | Dungeon
    6001001     | 2024-01-01 | 2024-12-31 | Y    | N     | Y

A card is only loaded onto a device if it grants at least one of that
device's doors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Dict, Iterable, List, Sequence, Tuple

from autoaclsync.domain.errors import DuplicateCardError, MissingColumnError
from autoaclsync.domain.table import (
    CARD_NUMBER,
    FROM,
    PIN,
    TO,
    Table,
    normalise,
    parse_date,
)

if TYPE_CHECKING:
    from autoaclsync.domain.config import DeviceConfig


GRANTED = frozenset({"Y", "YES", "TRUE"})


@dataclass(frozen=True)
class Card:
    """A single card entry on a device."""

    card_number: int
    from_date: date
    to_date: date
    doors: Tuple[bool, ...]
    pin: int | None = None

    def same_as(self, other: Card, with_pin: bool = False) -> bool:
        """Equality for comparison purposes (PIN only counts when asked to)."""
        if with_pin:
            return self == other
        return (
            self.card_number == other.card_number
            and self.from_date == other.from_date
            and self.to_date == other.to_date
            and self.doors == other.doors
        )

    @property
    def has_access(self) -> bool:
        return any(self.doors)


# device ID -> card number -> card
ACL = Dict[int, Dict[int, Card]]


@dataclass
class Diff:
    """Per-device difference between the current and the desired card lists."""

    unchanged: List[Card] = field(default_factory=list)
    updated: List[Card] = field(default_factory=list)
    added: List[Card] = field(default_factory=list)
    deleted: List[Card] = field(default_factory=list)

    def has_changes(self) -> bool:
        return bool(self.updated or self.added or self.deleted)


# =============================================================================
# Table -> ACL
# =============================================================================


def parse_table(
    table: Table,
    devices: Sequence[DeviceConfig],
    with_pin: bool = False,
    strict: bool = False,
) -> tuple[ACL, list[int]]:
    """
    Build a per-device ACL from a canonical Table.

    Args:
        table: Output of extract_table.
        devices: Configured devices; their door names select the door columns.
        with_pin: Read the PIN column (header position 1).
        strict: Raise on duplicate card numbers instead of reporting them.

    Returns:
        (acl, duplicates) - duplicate card numbers keep their first row.

    Raises:
        MissingColumnError: A configured door has no matching column.
        DuplicateCardError: Duplicate card numbers found in strict mode.
    """
    index = {normalise(h): i for i, h in enumerate(table.header)}

    doors: dict[int, list[int | None]] = {}
    for device in devices:
        columns: list[int | None] = []
        for door in device.doors:
            if not normalise(door):
                columns.append(None)
            elif normalise(door) in index:
                columns.append(index[normalise(door)])
            else:
                raise MissingColumnError(door)
        doors[device.device_id] = columns

    acl: ACL = {device.device_id: {} for device in devices}
    seen: set[int] = set()
    duplicates: list[int] = []

    for record in table.records:
        card_number = int(record[index[CARD_NUMBER]])
        if card_number in seen:
            if card_number not in duplicates:
                duplicates.append(card_number)
            continue
        seen.add(card_number)

        pin = None
        if with_pin and PIN in index and record[index[PIN]]:
            pin = int(record[index[PIN]])

        from_date = parse_date(record[index[FROM]])
        to_date = parse_date(record[index[TO]])

        for device_id, columns in doors.items():
            card = Card(
                card_number=card_number,
                from_date=from_date,
                to_date=to_date,
                doors=tuple(_granted(record, ix) for ix in columns),
                pin=pin,
            )
            if card.has_access:
                acl[device_id][card_number] = card

    if duplicates and strict:
        raise DuplicateCardError(duplicates)

    return acl, duplicates


def _granted(record: Sequence[str], ix: int | None) -> bool:
    if ix is None or ix >= len(record):
        return False
    return record[ix].strip().upper() in GRANTED


# =============================================================================
# ACL -> Table
# =============================================================================


def make_table(acl: ACL, devices: Sequence[DeviceConfig], with_pin: bool = False) -> Table:
    """
    Render a per-device ACL as a single canonical Table (inverse of parse_table).

    Cards held by several devices are merged into one row. Validity dates and
    PIN are taken from the first device holding the card.
    """
    header = ["Card Number"]
    if with_pin:
        header.append("PIN")
    header.extend(["From", "To"])

    door_columns: list[str] = []
    for device in devices:
        for door in device.doors:
            if normalise(door) and normalise(door) not in (normalise(d) for d in door_columns):
                door_columns.append(door.strip())
    header.extend(door_columns)

    position = {normalise(h): i for i, h in enumerate(header)}
    rows: dict[int, list[str]] = {}

    for device in devices:
        for card in acl.get(device.device_id, {}).values():
            row = rows.get(card.card_number)
            if row is None:
                row = ["N"] * len(header)
                row[0] = str(card.card_number)
                if with_pin:
                    row[1] = "" if card.pin is None else str(card.pin)
                row[position[FROM]] = card.from_date.strftime("%Y-%m-%d")
                row[position[TO]] = card.to_date.strftime("%Y-%m-%d")
                rows[card.card_number] = row

            for door, granted in zip(device.doors, card.doors):
                if granted and normalise(door):
                    row[position[normalise(door)]] = "Y"

    records = tuple(tuple(rows[k]) for k in sorted(rows))

    return Table(header=tuple(header), records=records)


# =============================================================================
# Comparison
# =============================================================================


def compare(current: ACL, desired: ACL, with_pin: bool = False) -> dict[int, Diff]:
    """
    Compare the current device ACL against the desired (worksheet) ACL.

    Every device present in both gets a Diff. A device missing from
    ``current`` could not be read, so there is nothing to compare it with and
    it is left out rather than treated as holding no cards.
    """
    diffs: dict[int, Diff] = {}

    for device_id in sorted(set(desired) & set(current)):
        have = current[device_id]
        want = desired[device_id]
        diff = Diff()

        for card_number in sorted(want):
            card = want[card_number]
            existing = have.get(card_number)
            if existing is None:
                diff.added.append(card)
            elif existing.same_as(card, with_pin):
                diff.unchanged.append(card)
            else:
                diff.updated.append(card)

        for card_number in sorted(set(have) - set(want)):
            diff.deleted.append(have[card_number])

        diffs[device_id] = diff

    return diffs


def card_numbers(cards: Iterable[Card]) -> list[int]:
    return sorted(c.card_number for c in cards)
