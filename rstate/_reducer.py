from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, Optional, TypeVar

from pydantic import BaseModel


__all__ = (
    "Reducer",

    "combine_reducers"
)


A = TypeVar("A")
S = TypeVar("S")


Reducer = Callable[[Optional[S], A], S]


def _get_slice(state: Any, key: str) -> Any:
    if state is None:
        return None

    if isinstance(state, Mapping):
        return state.get(key)

    return getattr(state, key, None)


def combine_reducers(
    reducers: Mapping[str, Reducer],
    state_type: Optional[type[BaseModel]] = None
) -> Reducer:
    """Build a reducer that delegates each field of the state to its own
    reducer.

    Every field is recomputed on every action and the result is always a
    new record: an instance of ``state_type`` when given, otherwise a
    read-only mapping keyed by field name.
    """

    if not reducers:
        raise ValueError("combine_reducers needs at least one reducer")

    for key, reducer in reducers.items():
        if not callable(reducer):
            raise TypeError(f"Reducer for {key!r} is not callable")

    field_reducers = dict(reducers)

    def combination(state: Any, action: Any) -> Any:
        next_state = {
            key: reducer(_get_slice(state, key), action)
            for key, reducer in field_reducers.items()
        }

        if state_type is not None:
            return state_type(**next_state)

        return MappingProxyType(next_state)

    return combination
