"""Loose loading of flat records from document-store rows."""

from __future__ import annotations

import math
from dataclasses import MISSING, fields
from typing import Any, TypeVar

T = TypeVar("T")


def _finite(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _coerce(value: Any, default: Any) -> Any:
    """Coerce a raw value toward the type of its field default.

    Numbers that fail to parse, or are not finite, become zero; ``None``
    takes the default.
    """
    if value is None:
        return default
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1", "y")
        return bool(value)
    if isinstance(default, int) and not isinstance(value, bool):
        number = _finite(value)
        return int(number) if number is not None else 0
    if isinstance(default, float):
        number = _finite(value)
        return number if number is not None else 0.0
    if isinstance(default, str) and not isinstance(value, str):
        return str(value)
    return value


def from_mapping(cls: type[T], data: dict[str, Any]) -> T:
    """Build a dataclass from a mapping, ignoring unknown keys."""
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        if f.default is not MISSING:
            default = f.default
        elif f.default_factory is not MISSING:
            default = f.default_factory()
        else:
            # Required fields are identifiers; keep them as strings.
            kwargs[f.name] = str(data.get(f.name) or "")
            continue
        if f.name in data:
            kwargs[f.name] = _coerce(data[f.name], default)
    return cls(**kwargs)


def load_records(cls: type[T], rows: list[dict[str, Any]] | None) -> list[T]:
    """Build a list of records, accepting either mappings or instances."""
    records: list[T] = []
    for row in rows or []:
        if isinstance(row, cls):
            records.append(row)
        else:
            loader = getattr(cls, "from_dict", None)
            records.append(loader(row) if loader else from_mapping(cls, row))
    return records
