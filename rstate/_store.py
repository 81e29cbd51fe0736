from __future__ import annotations

import logging

from threading import RLock
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from ._action import InitAction, ensure_action
from ._errors import TransitionError
from ._reducer import Reducer


__all__ = (
    "Dispatch",
    "Listener",
    "Middleware",
    "Store",
    "Unsubscribe",

    "create_store"
)


logger = logging.getLogger(__name__)


A = TypeVar("A")
S = TypeVar("S")


Dispatch = Callable[[A], A]
Listener = Callable[[], None]
Unsubscribe = Callable[[], None]


class Store(Generic[S, A]):
    def dispatch(self, action: A) -> A:
        raise NotImplementedError

    def get_state(self) -> S:
        raise NotImplementedError

    def subscribe(self, listener: Listener) -> Unsubscribe:
        raise NotImplementedError

    @property
    def listener_count(self) -> int:
        raise NotImplementedError


Middleware = Callable[[Store[S, A], Dispatch, A], A]


def _chain(
    middleware: Middleware,
    store: Store[S, A],
    next_dispatch: Dispatch
) -> Dispatch:
    def dispatch(action: A) -> A:
        return middleware(store, next_dispatch, action)

    return dispatch


def _apply_middleware(
    middleware: Sequence[Middleware]
) -> Callable[[Store[S, A]], Store[S, A]]:
    def apply(original_store: Store[S, A]) -> Store[S, A]:
        class EnhancedStore(Store[S, A]):
            def get_state(self) -> S:
                return original_store.get_state()

            def subscribe(self, listener: Listener) -> Unsubscribe:
                return original_store.subscribe(listener)

            @property
            def listener_count(self) -> int:
                return original_store.listener_count

        enhanced_store = EnhancedStore()

        enhanced_dispatch: Dispatch = original_store.dispatch

        for callable in reversed(middleware):
            enhanced_dispatch = _chain(
                callable,
                enhanced_store,
                enhanced_dispatch
            )

        setattr(enhanced_store, "dispatch", enhanced_dispatch)

        return enhanced_store

    return apply


class _Subscription:
    __slots__ = ("listener", "active")

    def __init__(self, listener: Listener) -> None:
        self.listener = listener
        self.active = True


class _DefaultStore(Store[S, A]):
    _reducer: Reducer
    _state: S

    _subscriptions: list[_Subscription]

    _lock: RLock

    _validate_actions: bool

    def __init__(
        self,
        reducer: Reducer,
        preloaded_state: Optional[S],
        validate_actions: bool
    ) -> None:
        self._reducer = reducer
        self._subscriptions = []
        self._lock = RLock()
        self._validate_actions = validate_actions

        self._state = self._reduce(preloaded_state, InitAction())

    def _reduce(self, state: Optional[S], action: Any) -> S:
        try:
            return self._reducer(state, action)
        except Exception as exc:
            logger.debug("Reducer raised for %r", action, exc_info=True)

            raise TransitionError(action) from exc

    def _notify(self) -> None:
        # Listeners subscribed during this pass wait for the next dispatch
        for subscription in list(self._subscriptions):
            if subscription.active:
                subscription.listener()

    def dispatch(self, action: A) -> A:
        if self._validate_actions:
            ensure_action(action)

        with self._lock:
            self._state = self._reduce(self._state, action)

            logger.debug(
                "Dispatched %r to %d listener(s)",
                action,
                len(self._subscriptions)
            )

            self._notify()

        return action

    def get_state(self) -> S:
        with self._lock:
            return self._state

    def subscribe(self, listener: Listener) -> Unsubscribe:
        if not callable(listener):
            raise TypeError(f"Listener is not callable: {listener!r}")

        subscription = _Subscription(listener)

        with self._lock:
            self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            with self._lock:
                if not subscription.active:
                    return

                subscription.active = False
                self._subscriptions.remove(subscription)

            logger.debug("Unsubscribed %r", listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)


def create_store(
    reducer: Reducer,
    preloaded_state: Optional[S] = None,
    middleware: Sequence[Middleware] = (),
    validate_actions: bool = False
) -> Store[S, A]:
    if not callable(reducer):
        raise TypeError(f"Reducer is not callable: {reducer!r}")

    store: Store[S, A] = _DefaultStore(
        reducer,
        preloaded_state,
        validate_actions
    )

    if not middleware:
        return store

    return _apply_middleware(middleware)(store)
