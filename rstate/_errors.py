from __future__ import annotations

from typing import Any


__all__ = (
    "ConcurrencyError",
    "InvalidStateError",
    "MalformedActionError",
    "StoreError",
    "TransitionError"
)


class StoreError(Exception):
    pass


class InvalidStateError(StoreError):
    pass


class ConcurrencyError(StoreError):
    pass


class MalformedActionError(StoreError):
    def __init__(self, action: Any) -> None:
        super().__init__(f"Action has no type tag: {action!r}")

        self.action = action


class TransitionError(StoreError):
    def __init__(self, action: Any) -> None:
        super().__init__(f"Reducer failed for action: {action!r}")

        self.action = action
