from __future__ import annotations

import logging

from typing import TypeVar

from ._store import Dispatch, Store


__all__ = (
    "logging_middleware",
)


logger = logging.getLogger(__name__)


A = TypeVar("A")
S = TypeVar("S")


def logging_middleware(
    store: Store[S, A],
    next_dispatch: Dispatch,
    action: A
) -> A:
    logger.debug("Action: %r", action)

    result = next_dispatch(action)

    logger.debug("Next state: %r", store.get_state())

    return result
