# aidevelo/chat/actions.py
"""
Typed action hints returned alongside a chat reply.

The collaborator sends a loose {isActionRequired, actionType, actionData}
triple; here it becomes one variant of a tagged union. The UI layer performs
the actual follow-up (lead form, booking message, hand-off notice).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ActionType(str, Enum):
    BOOK_APPOINTMENT = "book_appointment"
    CAPTURE_LEAD = "capture_lead"
    ESCALATE_HUMAN = "escalate_human"


class _ActionBase(BaseModel):
    model_config = ConfigDict(
        frozen=True, populate_by_name=True, alias_generator=to_camel, extra="ignore"
    )


class NoAction(_ActionBase):
    kind: Literal["none"] = "none"


class CaptureLead(_ActionBase):
    kind: Literal["capture_lead"] = "capture_lead"
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class BookAppointment(_ActionBase):
    kind: Literal["book_appointment"] = "book_appointment"
    preferred_time: Optional[str] = None
    notes: Optional[str] = None


class EscalateHuman(_ActionBase):
    kind: Literal["escalate_human"] = "escalate_human"
    reason: Optional[str] = None


Action = Union[NoAction, CaptureLead, BookAppointment, EscalateHuman]

NO_ACTION = NoAction()

_VARIANTS = {
    ActionType.CAPTURE_LEAD.value: CaptureLead,
    ActionType.BOOK_APPOINTMENT.value: BookAppointment,
    ActionType.ESCALATE_HUMAN.value: EscalateHuman,
}


def _scalar_fields(data: Any) -> Dict[str, str]:
    """Keep only scalar payload values, stringified; anything else is dropped."""
    if not isinstance(data, dict):
        return {}
    out: Dict[str, str] = {}
    for k, v in data.items():
        if isinstance(v, bool) or v is None:
            continue
        if isinstance(v, (str, int, float)):
            s = str(v).strip()
            if s:
                out[str(k)] = s
    return out


def build_action(action_type: Any, action_data: Any = None) -> Action:
    """Map an action tag plus free-form payload onto a typed variant (NoAction if unknown)."""
    variant = _VARIANTS.get(action_type if isinstance(action_type, str) else "")
    if variant is None:
        return NO_ACTION
    fields = _scalar_fields(action_data)
    fields.pop("kind", None)
    return variant.model_validate(fields)


def action_type_of(action: Action) -> Optional[str]:
    return None if isinstance(action, NoAction) else action.kind


def action_data_of(action: Action) -> Optional[Dict[str, Any]]:
    if isinstance(action, NoAction):
        return None
    return action.model_dump(by_alias=True, exclude={"kind"}, exclude_none=True)
