"""ETL normalisation of incoming source rows before reconciliation."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from greenrecon.reconcilers.base import round_half_up

logger = logging.getLogger(__name__)

LBS_TO_KG = 0.453592

# Vendor part numbers -> internal packaging SKUs.
SKU_MAP = {
    "VNP-1247": "CTN-12OZ",
    "VNP-1248": "CTN-1LB",
    "VNP-1249": "BAG-2LB",
    "NSP-445": "CTN-1LB",
    "NSP-446": "CTN-12OZ",
    "NSP-447": "BAG-2LB",
    "VPC-882": "CTN-12OZ",
    "VPC-883": "CTN-1LB",
    "CF-201": "BAG-2LB",
    "CF-202": "CTN-12OZ",
}

TEXT_DATE_FORMATS = ("%b %d %Y", "%B %d %Y", "%b %d, %Y", "%B %d, %Y", "%d %b %Y")

_LEADING_NUMBER = re.compile(r"^\s*[-+]?\d*\.?\d+")


@dataclass
class TransformationLog:
    field: str
    original: str
    transformed: str
    type: str


@dataclass
class WeightConversion:
    metric: float
    imperial: float
    display: str


@dataclass
class SkuMapping:
    vendor: str
    internal: str
    mapped: bool


@dataclass
class Location:
    zone: str
    row: str
    formatted: str


def _one_decimal(value: float) -> float:
    return round_half_up(value * 10) / 10


def _leading_float(value: str) -> float | None:
    match = _LEADING_NUMBER.match(value)
    return float(match.group()) if match else None


def _digits(value: str) -> float | None:
    cleaned = re.sub(r"[^\d.]", "", value)
    try:
        return float(cleaned)
    except ValueError:
        return None


def convert_weight(value: str) -> WeightConversion:
    """Convert a weight string; a bare number is taken to be pounds."""
    lowered = value.lower()
    if "lb" in lowered:
        lbs = _digits(value) or 0.0
        kg = _one_decimal(lbs * LBS_TO_KG)
        return WeightConversion(metric=kg, imperial=lbs, display=f"{kg:g} kg")
    if "kg" in lowered:
        kg = _digits(value) or 0.0
        lbs = _one_decimal(kg / LBS_TO_KG)
        return WeightConversion(metric=kg, imperial=lbs, display=f"{lbs:g} lbs")

    number = _leading_float(value)
    if number is not None:
        kg = _one_decimal(number * LBS_TO_KG)
        return WeightConversion(metric=kg, imperial=number, display=f"{kg:g} kg")
    return WeightConversion(metric=0.0, imperial=0.0, display="0 kg")


def standardize_date(value: str) -> str:
    """Rewrite ``M/D/YY``, ``M/D/YYYY`` and ``Jan 15 2025`` dates as ISO.

    Anything unrecognised is returned unchanged.
    """
    text = value.strip()
    if re.match(r"^\d{4}-\d{2}-\d{2}", text):
        return value

    match = re.match(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})", text)
    if match:
        month, day, year = match.groups()
        if len(year) == 2:
            year = f"20{year}"
        return f"{year}-{int(month):02d}-{int(day):02d}"

    for fmt in TEXT_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    return value


def map_vendor_sku(vendor_sku: str) -> SkuMapping:
    internal = SKU_MAP.get(vendor_sku)
    if internal:
        return SkuMapping(vendor=vendor_sku, internal=internal, mapped=True)
    return SkuMapping(vendor=vendor_sku, internal=vendor_sku, mapped=False)


def normalize_name(name: str) -> str:
    """Title-case a name and punctuate bare initials (``a chen`` -> ``A. Chen``)."""
    titled = " ".join(word[:1].upper() + word[1:] for word in name.lower().split(" "))
    return re.sub(r"\b([A-Z])\s+", r"\1. ", titled)


def parse_location(value: str) -> Location | None:
    """Parse a greenhouse location into zone/row, formatted as ``Z3-R12``."""
    text = value.strip()
    match = re.fullmatch(r"Z(\d+)-R(\d+)", text, re.IGNORECASE)
    if match:
        return Location(zone=match.group(1), row=match.group(2), formatted=text.upper())

    zone = re.search(r"zone\s*(\d+)", text, re.IGNORECASE)
    row = re.search(r"row\s*(\d+)", text, re.IGNORECASE)
    if zone and row:
        return Location(
            zone=zone.group(1),
            row=row.group(1),
            formatted=f"Z{zone.group(1)}-R{row.group(1)}",
        )

    match = re.search(r"(\d+)\D{0,2}?(\d+)", text)
    if match:
        return Location(
            zone=match.group(1),
            row=match.group(2),
            formatted=f"Z{match.group(1)}-R{match.group(2)}",
        )
    return None


def transform_record(row: dict[str, Any]) -> tuple[dict[str, Any], list[TransformationLog]]:
    """Apply every normalisation that fits ``row``.

    Returns the transformed copy and one log entry per changed field.
    """
    transformed = dict(row)
    logs: list[TransformationLog] = []

    weight = row.get("weight")
    if weight:
        weight = str(weight)
        result = convert_weight(weight)
        if result.metric != _leading_float(weight):
            logs.append(TransformationLog("weight", weight, result.display, "unit_conversion"))
            transformed["weight"] = result.display

    for key in ("date", "ship_date"):
        if row.get(key):
            original = str(row[key])
            standardized = standardize_date(original)
            if standardized != original:
                logs.append(TransformationLog(key, original, standardized, "date_format"))
                transformed[key] = standardized

    for key in ("sku", "expected_sku"):
        if row.get(key):
            mapping = map_vendor_sku(str(row[key]))
            if mapping.mapped:
                logs.append(
                    TransformationLog(key, mapping.vendor, mapping.internal, "sku_mapping")
                )
                transformed[key] = mapping.internal

    for key in ("name", "employee_name"):
        if row.get(key):
            original = str(row[key])
            normalized = normalize_name(original)
            if normalized != original:
                logs.append(TransformationLog(key, original, normalized, "name_normalization"))
                transformed[key] = normalized

    location = row.get("location")
    if location:
        parsed = parse_location(str(location))
        if parsed and parsed.formatted != location:
            logs.append(
                TransformationLog("location", str(location), parsed.formatted, "location_parsing")
            )
            transformed["location"] = parsed.formatted

    if logs:
        logger.debug("Transformed %d field(s): %s", len(logs), [log.field for log in logs])
    return transformed, logs
