"""
File-backed device fleet.

Each configured device keeps its cards in ``<device_dir>/<device_id>.json``:

    {
      "device-id": 405419896,
      "cards": [
        {"card-number": 6001001, "from": "2024-01-01", "to": "2024-12-31",
         "doors": [true, false, true, false], "pin": null}
      ]
    }

A device without a file holds no cards. Files are rewritten atomically. A
device directory that exists but is not a directory fails the whole fleet.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Sequence

from autoaclsync.domain.acl import Card
from autoaclsync.domain.config import DeviceConfig
from autoaclsync.domain.errors import DeviceError, FleetError
from autoaclsync.infrastructure.atomic import atomic_write_json

logger = logging.getLogger(__name__)


class FileDeviceFleet:
    """DeviceFleet storing each device's cards in a JSON file."""

    def __init__(self, directory: Path | str, devices: Sequence[DeviceConfig]):
        self.directory = Path(directory)
        self.devices = {d.device_id: d for d in devices}

    def _path(self, device_id: int) -> Path:
        if device_id not in self.devices:
            raise DeviceError(device_id, "device not configured")
        if self.directory.exists() and not self.directory.is_dir():
            raise FleetError(f"Device directory {self.directory} is not a directory")
        return self.directory / f"{device_id}.json"

    # =========================================================================
    # DeviceFleet
    # =========================================================================

    def get_cards(self, device_id: int) -> list[Card]:
        return list(self._load(device_id).values())

    def put_card(self, device_id: int, card: Card) -> None:
        cards = self._load(device_id)
        cards[card.card_number] = card
        self._store(device_id, cards)
        logger.debug("%s: stored card %d", device_id, card.card_number)

    def delete_card(self, device_id: int, card_number: int) -> None:
        cards = self._load(device_id)
        if card_number not in cards:
            raise DeviceError(device_id, f"card {card_number} not found")
        del cards[card_number]
        self._store(device_id, cards)
        logger.debug("%s: deleted card %d", device_id, card_number)

    # =========================================================================
    # Persistence
    # =========================================================================

    def _load(self, device_id: int) -> dict[int, Card]:
        path = self._path(device_id)
        if not path.exists():
            return {}

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            cards = [_card_from_dict(item) for item in data.get("cards", [])]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise DeviceError(device_id, f"unreadable card file {path} ({e})") from e

        return {c.card_number: c for c in cards}

    def _store(self, device_id: int, cards: dict[int, Card]) -> None:
        path = self._path(device_id)
        payload = {
            "device-id": device_id,
            "cards": [_card_to_dict(cards[k]) for k in sorted(cards)],
        }
        try:
            atomic_write_json(path, payload)
        except OSError as e:
            raise DeviceError(device_id, f"unable to write card file {path} ({e})") from e


def _card_to_dict(card: Card) -> dict[str, Any]:
    return {
        "card-number": card.card_number,
        "from": card.from_date.isoformat(),
        "to": card.to_date.isoformat(),
        "doors": list(card.doors),
        "pin": card.pin,
    }


def _card_from_dict(data: dict[str, Any]) -> Card:
    pin = data.get("pin")
    return Card(
        card_number=int(data["card-number"]),
        from_date=date.fromisoformat(data["from"]),
        to_date=date.fromisoformat(data["to"]),
        doors=tuple(bool(d) for d in data["doors"]),
        pin=None if pin is None else int(pin),
    )
