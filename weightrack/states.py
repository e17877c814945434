from aiogram.fsm.state import State, StatesGroup


class AddEntryState(StatesGroup):
    weight = State()
    date = State()


class EditEntryState(StatesGroup):
    choosing_entry = State()
    weight = State()
    date = State()
    confirm_delete = State()
