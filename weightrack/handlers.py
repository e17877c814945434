from __future__ import annotations

import html
from datetime import date

from aiogram import Bot, F, Router
from aiogram.filters import Command, CommandStart, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import BufferedInputFile, CallbackQuery, Message

from .chart import build_chart, format_chart_caption
from .controller import ControllerRegistry, EntryController
from .formatting import format_entry_line, format_history_table, parse_weight_kg, sort_entries
from .keyboards import (
    ADD_ENTRY,
    CANCEL,
    CHART,
    CONFIRM_DELETE,
    DATEPICKER_PREFIX,
    EDIT_ENTRY,
    EDIT_PAGE_SIZE,
    HISTORY,
    SORT_PREFIX,
    cancel_keyboard,
    confirm_delete_keyboard,
    datepicker_keyboard,
    edit_entries_keyboard,
    history_sort_keyboard,
    keep_weight_keyboard,
    main_keyboard,
    parse_datepicker_data,
    parse_edit_selection_text,
    parse_keep_weight,
    parse_sort_data,
)
from .models import WeightEntry
from .states import AddEntryState, EditEntryState

router = Router()


def get_controller_for(bot: Bot | None, user_id: int) -> EntryController:
    registry = getattr(bot, "controllers", None)
    if not isinstance(registry, ControllerRegistry):
        raise RuntimeError("Controllers are not configured")
    return registry.get(user_id)


def get_controller(message: Message) -> EntryController:
    return get_controller_for(message.bot, message.from_user.id)  # type: ignore[union-attr]


def _edit_list(controller: EntryController) -> list[WeightEntry]:
    return sort_entries(controller.entries, key="date", descending=True)


def _history_text(entries: tuple[WeightEntry, ...], key: str, descending: bool) -> str:
    table = format_history_table(sort_entries(entries, key=key, descending=descending))
    return f"<b>Weight history</b>\n<pre>{html.escape(table)}</pre>"


def _form_date(controller: EntryController) -> date | None:
    return date.fromisoformat(controller.form.date) if controller.form.date else None


async def _show_edit_entries(
    message: Message,
    state: FSMContext,
    controller: EntryController,
    page: int = 0,
    prefix: str = "Pick an entry to edit or delete",
    refresh: bool = True,
) -> None:
    if refresh:
        await controller.refresh()
    entries = _edit_list(controller)
    if not entries:
        await state.clear()
        await message.answer("No entries to edit.", reply_markup=main_keyboard())
        return
    total_pages = max(1, (len(entries) + EDIT_PAGE_SIZE - 1) // EDIT_PAGE_SIZE)
    page = max(0, min(total_pages - 1, page))
    await state.clear()
    await state.set_state(EditEntryState.choosing_entry)
    await state.update_data(edit_page=page)
    await message.answer(
        f"{prefix} (page {page + 1}/{total_pages}):",
        reply_markup=edit_entries_keyboard(entries, page=page),
    )


@router.message(CommandStart())
async def cmd_start(message: Message, state: FSMContext) -> None:
    await state.clear()
    controller = get_controller(message)
    controller.cancel_edit()
    await controller.refresh()
    await message.answer(
        "Hi! I keep track of your body weight. Use the buttons below.",
        reply_markup=main_keyboard(),
    )


@router.message(Command("cancel"), StateFilter("*"))
@router.message(F.text == CANCEL, StateFilter("*"))
async def cancel_any(message: Message, state: FSMContext) -> None:
    await state.clear()
    get_controller(message).cancel_edit()
    await message.answer("Cancelled. Choose next action.", reply_markup=main_keyboard())


@router.message(F.text == ADD_ENTRY)
async def add_entry_start(message: Message, state: FSMContext) -> None:
    await state.clear()
    get_controller(message).cancel_edit()
    await state.set_state(AddEntryState.weight)
    await message.answer("Send weight in kg (e.g., 82.3).", reply_markup=cancel_keyboard())


@router.message(F.text == EDIT_ENTRY)
async def edit_entry_start(message: Message, state: FSMContext) -> None:
    controller = get_controller(message)
    controller.cancel_edit()
    await _show_edit_entries(message, state, controller, page=0)


@router.message(F.text == HISTORY)
async def history(message: Message, state: FSMContext) -> None:
    await state.clear()
    controller = get_controller(message)
    await controller.refresh()
    await message.answer(
        _history_text(controller.entries, "date", True),
        reply_markup=history_sort_keyboard("date", True),
    )


@router.callback_query(F.data.startswith(f"{SORT_PREFIX}|"))
async def history_sort(callback: CallbackQuery) -> None:
    parsed = parse_sort_data(callback.data or "")
    if parsed is None or callback.message is None:
        await callback.answer()
        return
    key, descending = parsed
    controller = get_controller_for(callback.bot, callback.from_user.id)
    await callback.message.edit_text(
        _history_text(controller.entries, key, descending),
        reply_markup=history_sort_keyboard(key, descending),
    )
    await callback.answer()


@router.message(F.text == CHART)
async def chart(message: Message, state: FSMContext) -> None:
    await state.clear()
    controller = get_controller(message)
    await controller.refresh()
    image = build_chart(controller.entries)
    photo = BufferedInputFile(image.getvalue(), filename="weight.png")
    await message.answer_photo(
        photo=photo,
        caption=format_chart_caption(controller.entries),
        reply_markup=main_keyboard(),
    )


@router.message(AddEntryState.weight)
async def add_entry_weight(message: Message, state: FSMContext) -> None:
    text = message.text or ""
    if parse_weight_kg(text) is None:
        await message.answer("Please send a valid weight number.", reply_markup=cancel_keyboard())
        return
    get_controller(message).update_form(weight=text)
    await state.set_state(AddEntryState.date)
    await message.answer(
        "Pick a date. Use the calendar below or type Cancel.",
        reply_markup=datepicker_keyboard(prefix="add", month=date.today()),
    )


@router.message(EditEntryState.choosing_entry)
async def edit_entry_choose(message: Message, state: FSMContext) -> None:
    controller = get_controller(message)
    entries = _edit_list(controller)
    data = await state.get_data()
    page = int(data.get("edit_page") or 0)
    parsed = parse_edit_selection_text(message.text or "")
    total_pages = max(1, (len(entries) + EDIT_PAGE_SIZE - 1) // EDIT_PAGE_SIZE)
    if parsed is None:
        await message.answer(
            "Use the keyboard buttons to pick, delete, or navigate entries.",
            reply_markup=edit_entries_keyboard(entries, page=page),
        )
        return
    action, value = parsed
    if action == "cancel":
        await cancel_any(message, state)
        return
    if action == "nav":
        page = max(0, min(total_pages - 1, page + value))
        await state.update_data(edit_page=page)
        await message.answer(
            f"Pick an entry to edit or delete (page {page + 1}/{total_pages}):",
            reply_markup=edit_entries_keyboard(entries, page=page),
        )
        return
    if value < 0 or value >= len(entries):
        await message.answer("Out of range. Try again.", reply_markup=edit_entries_keyboard(entries, page=page))
        return
    entry = entries[value]
    if action == "delete":
        await state.update_data(delete_id=entry.id)
        await state.set_state(EditEntryState.confirm_delete)
        await message.answer(f"Delete {format_entry_line(entry)}?", reply_markup=confirm_delete_keyboard())
        return
    controller.begin_edit(entry)
    await state.set_state(EditEntryState.weight)
    await message.answer(
        f"Send new weight for {format_entry_line(entry)}",
        reply_markup=keep_weight_keyboard(controller.form.weight),
    )


@router.message(EditEntryState.confirm_delete)
async def edit_entry_confirm_delete(message: Message, state: FSMContext) -> None:
    if message.text != CONFIRM_DELETE:
        await message.answer(f"Tap '{CONFIRM_DELETE}' or {CANCEL}.", reply_markup=confirm_delete_keyboard())
        return
    data = await state.get_data()
    entry_id = data.get("delete_id")
    page = int(data.get("edit_page") or 0)
    controller = get_controller(message)
    if entry_id is None:
        await _show_edit_entries(message, state, controller, page=page)
        return
    await controller.remove(str(entry_id))
    await _show_edit_entries(message, state, controller, page=page, refresh=False)


@router.message(EditEntryState.weight)
async def edit_entry_weight(message: Message, state: FSMContext) -> None:
    controller = get_controller(message)
    if controller.form.editing_id is None:
        await state.clear()
        await message.answer("Nothing is being edited. Choose next action.", reply_markup=main_keyboard())
        return
    text = message.text or ""
    kept = parse_keep_weight(text)
    weight_text = kept if kept is not None else text
    if parse_weight_kg(weight_text) is None:
        await message.answer(
            "Please send a valid weight number.",
            reply_markup=keep_weight_keyboard(controller.form.weight),
        )
        return
    controller.update_form(weight=weight_text)
    await state.set_state(EditEntryState.date)
    default_date = _form_date(controller)
    await message.answer(
        "Pick a date (defaults to the entry's current date). Use the calendar or type Cancel.",
        reply_markup=datepicker_keyboard(prefix="edit", month=default_date, default_date=default_date),
    )


@router.callback_query(F.data.startswith(f"{DATEPICKER_PREFIX}|add|"))
async def add_entry_datepicker(callback: CallbackQuery, state: FSMContext) -> None:
    parsed = parse_datepicker_data(callback.data or "")
    if not parsed or callback.message is None:
        await callback.answer()
        return
    _, action, payload = parsed
    if await state.get_state() != AddEntryState.date.state:
        await callback.answer()
        return
    if action == "nav":
        await callback.message.edit_reply_markup(
            reply_markup=datepicker_keyboard(prefix="add", month=date.fromisoformat(payload))
        )
        await callback.answer()
        return
    if action != "pick":
        await callback.answer()
        return
    controller = get_controller_for(callback.bot, callback.from_user.id)
    controller.update_form(date=payload)
    if await controller.submit():
        await state.clear()
        await callback.message.answer("Choose next action.", reply_markup=main_keyboard())
        await callback.answer("Saved")
        return
    selected = date.fromisoformat(payload)
    await callback.message.answer(
        "Entry was not saved. Pick the date again to retry, or type Cancel.",
        reply_markup=datepicker_keyboard(prefix="add", month=selected, default_date=selected),
    )
    await callback.answer()


@router.callback_query(F.data.startswith(f"{DATEPICKER_PREFIX}|edit|"))
async def edit_entry_datepicker(callback: CallbackQuery, state: FSMContext) -> None:
    parsed = parse_datepicker_data(callback.data or "")
    if not parsed or callback.message is None:
        await callback.answer()
        return
    _, action, payload = parsed
    if await state.get_state() != EditEntryState.date.state:
        await callback.answer()
        return
    controller = get_controller_for(callback.bot, callback.from_user.id)
    if action == "nav":
        await callback.message.edit_reply_markup(
            reply_markup=datepicker_keyboard(
                prefix="edit", month=date.fromisoformat(payload), default_date=_form_date(controller)
            )
        )
        await callback.answer()
        return
    if action != "pick":
        await callback.answer()
        return
    controller.update_form(date=payload)
    if await controller.submit():
        data = await state.get_data()
        await _show_edit_entries(
            callback.message, state, controller, page=int(data.get("edit_page") or 0), refresh=False
        )
        await callback.answer("Updated")
        return
    selected = date.fromisoformat(payload)
    await callback.message.answer(
        "Entry was not updated. Pick the date again to retry, or type Cancel.",
        reply_markup=datepicker_keyboard(prefix="edit", month=selected, default_date=selected),
    )
    await callback.answer()
