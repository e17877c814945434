from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from .errors import ServerError, ValidationError
from .formatting import parse_float, to_input_date


class FormMode(str, Enum):
    CREATE = "create"
    EDITING = "editing"


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class WeightEntry:
    id: str
    date: str
    weight: float

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "WeightEntry":
        try:
            entry_id = payload["_id"]
            raw_date = payload["date"]
            weight = float(payload["weight"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ServerError(f"Malformed weight entry: {payload!r}") from exc
        try:
            entry_date = to_input_date(str(raw_date))
        except ValueError as exc:
            raise ServerError(f"Malformed entry date: {raw_date!r}") from exc
        return cls(id=str(entry_id), date=entry_date, weight=weight)


@dataclass
class FormState:
    weight: str = ""
    date: str = ""
    editing_id: Optional[str] = None

    @property
    def mode(self) -> FormMode:
        return FormMode.CREATE if self.editing_id is None else FormMode.EDITING

    def payload(self) -> tuple[float, str]:
        """Return the wire payload ``(weight, date)`` or raise ValidationError."""
        if not self.weight or not self.date:
            raise ValidationError("Weight and date are required")
        weight = parse_float(self.weight)
        if weight is None or not math.isfinite(weight):
            raise ValidationError(f"Weight is not a number: {self.weight!r}")
        return weight, self.date

    def reset(self) -> None:
        self.weight = ""
        self.date = ""
        self.editing_id = None


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    message: str

    @classmethod
    def success(cls, message: str) -> "Notification":
        return cls(NotificationKind.SUCCESS, message)

    @classmethod
    def error(cls, message: str) -> "Notification":
        return cls(NotificationKind.ERROR, message)
