from __future__ import annotations

import math
from datetime import date, datetime
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from .models import WeightEntry

INPUT_DATE_FORMAT = "%Y-%m-%d"
DISPLAY_DATE_FORMAT = "%d/%m/%Y"
SORT_KEYS = ("date", "weight")


def parse_float(value: str) -> Optional[float]:
    cleaned = value.strip().replace(",", ".")
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_weight_kg(value: str) -> Optional[float]:
    weight = parse_float(value)
    if weight is None or not math.isfinite(weight) or weight <= 0:
        return None
    return weight


def _parse_iso(value: str) -> date:
    # Timestamps such as 2024-03-05T00:00:00.000Z keep only their calendar date
    return date.fromisoformat(value.strip()[:10])


def to_input_date(value: str | date) -> str:
    """Normalise an ISO date or timestamp to the ``YYYY-MM-DD`` form sent to the store."""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.strftime(INPUT_DATE_FORMAT)
    return _parse_iso(value).strftime(INPUT_DATE_FORMAT)


def to_display_date(value: str | date) -> str:
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        value = _parse_iso(value)
    return value.strftime(DISPLAY_DATE_FORMAT)


def format_weight(weight: float) -> str:
    return f"{weight:.1f}"


def format_entry_line(entry: "WeightEntry", index: int | None = None) -> str:
    prefix = f"{index}. " if index is not None else ""
    return f"{prefix}{to_display_date(entry.date)}: {format_weight(entry.weight)} kg"


def sort_entries(
    entries: Iterable["WeightEntry"], key: str = "date", descending: bool = False
) -> list["WeightEntry"]:
    if key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {key}")
    if key == "date":
        # ISO dates sort lexicographically; id keeps equal dates stable
        return sorted(entries, key=lambda e: (e.date, e.id), reverse=descending)
    return sorted(entries, key=lambda e: (e.weight, e.date), reverse=descending)


def format_history_table(entries: Iterable["WeightEntry"]) -> str:
    rows = list(entries)
    if not rows:
        return "No entries yet."
    lines = [f"{'Date':<10}  {'Weight (kg)':>11}", f"{'-' * 10}  {'-' * 11}"]
    for entry in rows:
        lines.append(f"{to_display_date(entry.date):<10}  {format_weight(entry.weight):>11}")
    return "\n".join(lines)
