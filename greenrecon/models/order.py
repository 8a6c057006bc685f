"""Customer order, price list and inventory models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from greenrecon.models.base import from_mapping


@dataclass
class CustomerOrder:
    """A customer purchase order header."""

    order_id: str
    customer_id: str = ""
    customer_name: str = ""
    customer_contact: str = ""
    order_date: str = ""
    requested_delivery: str = ""
    status: str = "pending"
    po_number: str = ""
    total_value: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CustomerOrder:
        return from_mapping(cls, data)


@dataclass
class OrderLine:
    """One line of a customer order.

    ``customer_price`` is the unit price the customer expects to pay; zero
    means the customer did not state one.
    """

    order_id: str
    line_number: int = 0
    sku: str = ""
    product_name: str = ""
    quantity: int = 0
    unit_price: float = 0.0
    customer_price: float = 0.0
    line_total: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OrderLine:
        return from_mapping(cls, data)


@dataclass
class PriceListItem:
    sku: str
    product_name: str = ""
    unit_price: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PriceListItem:
        if "unit_price" not in data and "price" in data:
            data = {**data, "unit_price": data["price"]}
        if "product_name" not in data and "name" in data:
            data = {**data, "product_name": data["name"]}
        return from_mapping(cls, data)


@dataclass
class InventoryItem:
    sku: str
    product_name: str = ""
    available_qty: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InventoryItem:
        if "available_qty" not in data and "available" in data:
            data = {**data, "available_qty": data["available"]}
        if "product_name" not in data and "name" in data:
            data = {**data, "product_name": data["name"]}
        return from_mapping(cls, data)
