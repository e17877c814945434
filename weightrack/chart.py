from __future__ import annotations

import io
from typing import Iterable, Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from .formatting import format_weight, sort_entries, to_display_date  # noqa: E402
from .models import WeightEntry  # noqa: E402

NO_DATA_TEXT = "No data to show."
MAX_TICK_LABELS = 12


def chart_series(entries: Iterable[WeightEntry]) -> list[tuple[str, float]]:
    return [(to_display_date(entry.date), entry.weight) for entry in sort_entries(entries, key="date")]


def format_chart_caption(entries: Sequence[WeightEntry]) -> str:
    if not entries:
        return NO_DATA_TEXT
    ordered = sort_entries(entries, key="date")
    first, latest = ordered[0], ordered[-1]
    lines = [f"Latest: {format_weight(latest.weight)} kg on {to_display_date(latest.date)}"]
    if len(ordered) > 1:
        change = latest.weight - first.weight
        lines.append(f"Change since {to_display_date(first.date)}: {change:+.1f} kg")
    lines.append(f"Entries: {len(ordered)}")
    return "\n".join(lines)


def build_chart(entries: Iterable[WeightEntry]) -> io.BytesIO:
    series = chart_series(entries)
    fig, ax = plt.subplots(figsize=(8, 5))
    fig.patch.set_facecolor("white")
    if series:
        labels = [label for label, _ in series]
        values = [value for _, value in series]
        # Positions rather than categorical labels so repeated dates stay separate points
        positions = list(range(len(series)))
        ax.plot(positions, values, marker="o", linewidth=2, color="#2563eb", label="Weight (kg)")
        ax.fill_between(positions, values, min(values), color="#2563eb", alpha=0.2)
        step = max(1, len(labels) // MAX_TICK_LABELS)
        ax.set_xticks(positions[::step])
        ax.set_xticklabels(labels[::step], rotation=25, ha="right")
        ax.grid(True, linestyle="--", alpha=0.4)
        ax.set_xlabel("Date")
        ax.set_ylabel("Weight (kg)")
        ax.set_title("Weight over time", fontsize=12, color="#333")
        ax.legend(loc="upper right")
    else:
        ax.axis("off")
        ax.text(0.5, 0.5, NO_DATA_TEXT, ha="center", va="center", fontsize=12, color="#6b7280")

    buffer = io.BytesIO()
    fig.tight_layout()
    fig.savefig(buffer, format="png", dpi=150, facecolor=fig.get_facecolor())
    plt.close(fig)
    buffer.seek(0)
    return buffer
