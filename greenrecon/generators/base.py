"""Shared pieces for the synthetic demo-data generators."""

from __future__ import annotations

import random
from dataclasses import asdict, dataclass, is_dataclass
from datetime import date, timedelta
from typing import Any, ClassVar, Mapping

# Slot index (position in the generated sequence) -> planted error type.
ErrorPlan = Mapping[int, str]


@dataclass
class PlantedError:
    """An error deliberately introduced into generated data.

    Mirrors what the matching reconciler is expected to rediscover.
    """

    subject_id: str
    type: str
    severity: str
    description: str
    recommended_action: str
    sku: str | None = None
    regulation_section: str | None = None


class Scenario:
    """Mixin for generated scenarios.

    Subclasses are dataclasses that declare ``TABLES`` as
    ``(table_name, attribute)`` pairs and carry a ``planted_errors`` list.
    """

    TABLES: ClassVar[tuple[tuple[str, str], ...]] = ()
    planted_errors: list[PlantedError]

    def tables(self) -> dict[str, list[dict[str, Any]]]:
        """Record sets keyed by document-store table name."""
        return {name: [_row(r) for r in getattr(self, attr)] for name, attr in self.TABLES}


def _row(record: Any) -> dict[str, Any]:
    return asdict(record) if is_dataclass(record) else dict(record)


def make_rng(rng: random.Random | None) -> random.Random:
    return rng if rng is not None else random.Random()


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def add_weeks(day: date, weeks: int) -> date:
    return day + timedelta(weeks=weeks)


def sequence_id(prefix: str, year: int, counter: int) -> str:
    return f"{prefix}-{year}-{counter:04d}"


def slot_of(plan: ErrorPlan, error_type: str) -> int | None:
    """Index of the slot that receives ``error_type``, if planned."""
    for index, planned in plan.items():
        if planned == error_type:
            return index
    return None
