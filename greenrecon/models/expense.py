"""Expense submission and policy models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from greenrecon.models.base import from_mapping


@dataclass
class ExpenseEntry:
    """An employee expense submission."""

    expense_id: str
    employee_id: str = ""
    employee_name: str = ""
    department: str = ""
    approver: str = ""
    submission_date: str = ""
    category: str = ""
    merchant: str = ""
    description: str = ""
    amount: float = 0.0
    receipt_attached: bool = False
    status: str = "pending"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExpenseEntry:
        return from_mapping(cls, data)


@dataclass
class PolicyLimit:
    """Spending limit for one expense category."""

    category: str
    limit_amount: float = 0.0
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PolicyLimit:
        if "limit_amount" not in data and "limit" in data:
            data = {**data, "limit_amount": data["limit"]}
        return from_mapping(cls, data)
