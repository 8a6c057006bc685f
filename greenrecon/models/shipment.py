"""Shipping and receiving record models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from greenrecon.models.base import from_mapping


@dataclass
class ExpectedShipment:
    """A shipment as booked in the ERP export."""

    shipment_id: str
    expected_qty: int = 0
    expected_sku: str = ""
    vendor: str = ""
    ship_date: str = ""
    destination: str = ""
    notes: str = ""
    direction: str = "outbound"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExpectedShipment:
        return from_mapping(cls, data)


@dataclass
class BarcodeScan:
    """A barcode-to-PC scan logged on the dock."""

    shipment_id: str
    qty_scanned: int = 0
    sku: str = ""
    scanned_by: str = ""
    scanned_at: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BarcodeScan:
        return from_mapping(cls, data)


@dataclass
class ReceivedShipment:
    """A signed delivery receipt."""

    shipment_id: str
    received_qty: int = 0
    condition: str = ""
    receiver_name: str = ""
    received_at: str = ""
    reconciled: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReceivedShipment:
        return from_mapping(cls, data)
