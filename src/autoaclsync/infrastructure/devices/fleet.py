"""
Device fleet interface.

Card-level access to the configured access controllers. Every method
raises DeviceError when the device cannot be reached or the operation is
rejected, and FleetError when no device can be reached at all (the
transport itself is down).
"""

from __future__ import annotations

from typing import Protocol

from autoaclsync.domain.acl import Card


class DeviceFleet(Protocol):
    """Protocol for reading and writing cards on access controllers."""

    def get_cards(self, device_id: int) -> list[Card]:
        """All cards currently stored on the device."""
        ...

    def put_card(self, device_id: int, card: Card) -> None:
        """Add a card, or replace the card with the same number."""
        ...

    def delete_card(self, device_id: int, card_number: int) -> None:
        """Remove a card from the device."""
        ...
