from __future__ import annotations

import calendar
from datetime import date
from typing import Sequence

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, KeyboardButton, ReplyKeyboardMarkup

from .formatting import SORT_KEYS, format_entry_line
from .models import WeightEntry


ADD_ENTRY = "Add entry"
EDIT_ENTRY = "Edit entries"
HISTORY = "History"
CHART = "Chart"
CANCEL = "Cancel"
KEEP_WEIGHT_PREFIX = "Keep "
CONFIRM_DELETE = "Yes, delete"
DATEPICKER_PREFIX = "DP"
SORT_PREFIX = "SORT"
EDIT_PAGE_SIZE = 5
EDIT_PREV = "◀ Prev"
EDIT_NEXT = "Next ▶"
DELETE_ICON = "🗑"


def main_keyboard() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text=ADD_ENTRY), KeyboardButton(text=EDIT_ENTRY)],
            [KeyboardButton(text=HISTORY), KeyboardButton(text=CHART)],
        ],
        resize_keyboard=True,
        input_field_placeholder="Choose an action",
    )


def cancel_keyboard() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=CANCEL)]],
        resize_keyboard=True,
        input_field_placeholder="Type a value or cancel",
    )


def keep_weight_keyboard(weight: str) -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=f"{KEEP_WEIGHT_PREFIX}{weight}")], [KeyboardButton(text=CANCEL)]],
        resize_keyboard=True,
        input_field_placeholder="Send new weight or keep",
    )


def confirm_delete_keyboard() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=CONFIRM_DELETE), KeyboardButton(text=CANCEL)]],
        resize_keyboard=True,
        input_field_placeholder="Delete this entry?",
    )


WEEKDAY_LABELS = ("Mo", "Tu", "We", "Th", "Fr", "Sa", "Su")
_MONTHS = calendar.Calendar(firstweekday=calendar.MONDAY)


def _shift_month(first: date, step: int) -> date:
    index = first.year * 12 + first.month - 1 + step
    return date(index // 12, index % 12 + 1, 1)


def _day_button(prefix: str, text: str, action: str = "noop", payload: str = "") -> InlineKeyboardButton:
    return InlineKeyboardButton(text=text, callback_data=f"{DATEPICKER_PREFIX}|{prefix}|{action}|{payload}")


def datepicker_keyboard(prefix: str, month: date | None = None, default_date: date | None = None) -> InlineKeyboardMarkup:
    """Month calendar; only ``pick`` and ``nav`` buttons carry a payload."""
    today = date.today()
    first = (month or today).replace(day=1)
    keyboard = [
        [
            _day_button(prefix, "◀", "nav", _shift_month(first, -1).isoformat()),
            _day_button(prefix, first.strftime("%B %Y")),
            _day_button(prefix, "▶", "nav", _shift_month(first, 1).isoformat()),
        ],
        [_day_button(prefix, label) for label in WEEKDAY_LABELS],
    ]
    for week in _MONTHS.monthdatescalendar(first.year, first.month):
        keyboard.append(
            [
                _day_button(prefix, str(day.day), "pick", day.isoformat()) if day.month == first.month
                else _day_button(prefix, " ")
                for day in week
            ]
        )
    shortcuts = [_day_button(prefix, "Today", "pick", today.isoformat())]
    if default_date:
        shortcuts.append(_day_button(prefix, f"Keep {default_date.strftime('%d/%m/%Y')}", "pick", default_date.isoformat()))
    keyboard.append(shortcuts)
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def parse_datepicker_data(data: str) -> tuple[str, str, str] | None:
    if not data or not data.startswith(f"{DATEPICKER_PREFIX}|"):
        return None
    parts = data.split("|", maxsplit=3)
    if len(parts) != 4:
        return None
    _, prefix, action, payload = parts
    return prefix, action, payload


def edit_entries_keyboard(
    entries: Sequence[WeightEntry], page: int = 0, page_size: int = EDIT_PAGE_SIZE
) -> ReplyKeyboardMarkup:
    total = len(entries)
    total_pages = max(1, (total + page_size - 1) // page_size)
    page = max(0, min(page, total_pages - 1))
    start = page * page_size
    end = min(start + page_size, total)
    rows: list[list[KeyboardButton]] = []
    for idx, entry in enumerate(entries[start:end], start=start):
        rows.append(
            [
                KeyboardButton(text=format_entry_line(entry, idx + 1)),
                KeyboardButton(text=f"{DELETE_ICON}{idx + 1}"),
            ]
        )
    nav_row: list[KeyboardButton] = []
    if page > 0:
        nav_row.append(KeyboardButton(text=EDIT_PREV))
    nav_row.append(KeyboardButton(text=CANCEL))
    if page < total_pages - 1:
        nav_row.append(KeyboardButton(text=EDIT_NEXT))
    rows.append(nav_row)
    return ReplyKeyboardMarkup(
        keyboard=rows,
        resize_keyboard=True,
        input_field_placeholder=f"Page {page + 1}/{total_pages}: tap an entry",
    )


def parse_edit_selection_text(text: str) -> tuple[str, int] | None:
    if text == EDIT_NEXT:
        return ("nav", 1)
    if text == EDIT_PREV:
        return ("nav", -1)
    if text == CANCEL:
        return ("cancel", 0)
    if text.startswith(DELETE_ICON):
        stripped = text.replace(DELETE_ICON, "", 1).strip()
        try:
            idx = int(stripped) - 1
        except ValueError:
            return None
        return ("delete", idx)
    parts = text.split(".", maxsplit=1)
    try:
        idx = int(parts[0]) - 1
    except (ValueError, IndexError):
        return None
    return ("pick", idx)


def parse_keep_weight(text: str) -> str | None:
    if not text.startswith(KEEP_WEIGHT_PREFIX):
        return None
    return text[len(KEEP_WEIGHT_PREFIX):].strip() or None


def history_sort_keyboard(key: str = "date", descending: bool = True) -> InlineKeyboardMarkup:
    buttons: list[InlineKeyboardButton] = []
    for sort_key in SORT_KEYS:
        # Tapping the active key flips its direction
        next_descending = not descending if sort_key == key else True
        arrow = ""
        if sort_key == key:
            arrow = " ↓" if descending else " ↑"
        buttons.append(
            InlineKeyboardButton(
                text=f"{sort_key.capitalize()}{arrow}",
                callback_data=f"{SORT_PREFIX}|{sort_key}|{'desc' if next_descending else 'asc'}",
            )
        )
    return InlineKeyboardMarkup(inline_keyboard=[buttons])


def parse_sort_data(data: str) -> tuple[str, bool] | None:
    if not data or not data.startswith(f"{SORT_PREFIX}|"):
        return None
    parts = data.split("|")
    if len(parts) != 3:
        return None
    _, key, direction = parts
    if key not in SORT_KEYS or direction not in ("asc", "desc"):
        return None
    return key, direction == "desc"
