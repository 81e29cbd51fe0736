from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict

from ._errors import MalformedActionError


__all__ = (
    "INIT_ACTION_TYPE",
    "Action",
    "Immutable",
    "InitAction",

    "action_type",
    "ensure_action",
    "is_init_action"
)


INIT_ACTION_TYPE = "@@rstate/INIT"


class Immutable(BaseModel):
    model_config = ConfigDict(frozen=True)


class Action(Immutable):
    type: str

    def __getitem__(self, key: str) -> Any:
        if key not in type(self).model_fields:
            raise KeyError(key)

        return getattr(self, key)

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default


class InitAction(Action):
    type: Literal["@@rstate/INIT"] = INIT_ACTION_TYPE


def action_type(action: Any) -> Optional[str]:
    if isinstance(action, Mapping):
        tag = action.get("type")
    else:
        tag = getattr(action, "type", None)

    if isinstance(tag, str) and tag:
        return tag

    return None


def ensure_action(action: Any) -> Any:
    if action_type(action) is None:
        raise MalformedActionError(action)

    return action


def is_init_action(action: Any) -> bool:
    return action_type(action) == INIT_ACTION_TYPE
