"""
Tests for the store contract: get_state, dispatch, subscribe.
"""

import threading

from typing import Literal

import pytest

from rstate import (
    Action,
    MalformedActionError,
    TransitionError,
    create_store,
    is_init_action
)


class Increment(Action):
    type: Literal["INC"] = "INC"


class Explode(Action):
    type: Literal["EXPLODE"] = "EXPLODE"


def counter(state, action):
    if state is None:
        state = 0

    if action.type == "INC":
        return state + 1

    if action.type == "EXPLODE":
        raise RuntimeError("boom")

    return state


def test_counter_scenario():
    """Walk through create, dispatch, subscribe and unsubscribe."""
    store = create_store(counter)
    assert store.get_state() == 0

    store.dispatch(Increment())
    assert store.get_state() == 1

    calls = []
    unsubscribe = store.subscribe(lambda: calls.append(store.get_state()))

    store.dispatch(Increment())
    assert calls == [2]
    assert store.get_state() == 2

    unsubscribe()
    store.dispatch(Increment())
    assert calls == [2]
    assert store.get_state() == 3


def test_initial_state_comes_from_init_action():
    """Reducer is called once with (None, init action) on construction."""
    seen = []

    def reducer(state, action):
        seen.append((state, action))
        return {"ready": True}

    store = create_store(reducer)

    assert store.get_state() == {"ready": True}
    assert len(seen) == 1
    assert seen[0][0] is None
    assert is_init_action(seen[0][1])


def test_preloaded_state_reaches_init_call():
    store = create_store(counter, preloaded_state=41)

    assert store.get_state() == 41

    store.dispatch(Increment())
    assert store.get_state() == 42


def test_get_state_is_stable_between_dispatches():
    store = create_store(lambda state, action: state or {"items": []})

    assert store.get_state() is store.get_state()


def test_dispatch_returns_action():
    store = create_store(counter)
    action = Increment()

    assert store.dispatch(action) is action


def test_unsubscribe_is_idempotent():
    """Calling the handle twice removes the listener once and never raises."""
    store = create_store(counter)
    calls = []

    unsubscribe = store.subscribe(lambda: calls.append("a"))
    store.subscribe(lambda: calls.append("b"))

    unsubscribe()
    unsubscribe()

    assert store.listener_count == 1

    store.dispatch(Increment())
    assert calls == ["b"]


def test_same_listener_subscribed_twice_is_two_entries():
    store = create_store(counter)
    calls = []

    def listener():
        calls.append(1)

    first = store.subscribe(listener)
    store.subscribe(listener)

    store.dispatch(Increment())
    assert len(calls) == 2

    first()
    first()

    store.dispatch(Increment())
    assert len(calls) == 3


def test_listeners_notified_in_registration_order():
    store = create_store(counter)
    calls = []

    for name in ("a", "b", "c", "d"):
        store.subscribe(lambda name=name: calls.append(name))

    store.dispatch(Increment())

    assert calls == ["a", "b", "c", "d"]


def test_failed_transition_keeps_state_and_skips_listeners():
    store = create_store(counter)
    store.dispatch(Increment())

    calls = []
    store.subscribe(lambda: calls.append(1))
    before = store.get_state()

    with pytest.raises(TransitionError) as info:
        store.dispatch(Explode())

    assert isinstance(info.value.__cause__, RuntimeError)
    assert info.value.action == Explode()
    assert store.get_state() == before
    assert calls == []


def test_failing_init_raises_transition_error():
    def reducer(state, action):
        raise ValueError("no initial state")

    with pytest.raises(TransitionError):
        create_store(reducer)


def test_validate_actions_rejects_untagged_action():
    store = create_store(
        lambda state, action: (state or 0) + 1,
        validate_actions=True
    )
    calls = []
    store.subscribe(lambda: calls.append(1))

    with pytest.raises(MalformedActionError):
        store.dispatch({"payload": 1})

    with pytest.raises(MalformedActionError):
        store.dispatch({"type": ""})

    assert store.get_state() == 1
    assert calls == []

    store.dispatch({"type": "ANYTHING"})
    store.dispatch(Increment())

    assert store.get_state() == 3


def test_actions_are_opaque_without_validation():
    store = create_store(lambda state, action: action)

    store.dispatch(None)
    assert store.get_state() is None

    store.dispatch(42)
    assert store.get_state() == 42


def test_listener_removed_during_pass_is_not_called():
    store = create_store(counter)
    calls = []
    handles = {}

    def first():
        calls.append("first")
        handles["second"]()

    store.subscribe(first)
    handles["second"] = store.subscribe(lambda: calls.append("second"))

    store.dispatch(Increment())
    assert calls == ["first"]

    store.dispatch(Increment())
    assert calls == ["first", "first"]


def test_listener_added_during_pass_runs_on_next_dispatch():
    store = create_store(counter)
    calls = []

    def late():
        calls.append("late")

    def adder():
        calls.append("adder")

        if store.get_state() == 1:
            store.subscribe(late)

    store.subscribe(adder)

    store.dispatch(Increment())
    assert "adder" in calls

    calls.clear()
    store.dispatch(Increment())
    assert calls == ["adder", "late"]


def test_nested_dispatch_completes_before_outer_pass_resumes():
    store = create_store(counter)
    log = []

    def first():
        state = store.get_state()
        log.append(("first", state))

        if state == 1:
            store.dispatch(Increment())

    store.subscribe(first)
    store.subscribe(lambda: log.append(("second", store.get_state())))

    store.dispatch(Increment())

    assert log == [
        ("first", 1),
        ("first", 2),
        ("second", 2),
        ("second", 2)
    ]
    assert store.get_state() == 2


def test_listener_error_propagates_after_transition():
    store = create_store(counter)
    calls = []

    def broken():
        raise KeyError("listener")

    store.subscribe(broken)
    store.subscribe(lambda: calls.append(1))

    with pytest.raises(KeyError):
        store.dispatch(Increment())

    assert store.get_state() == 1
    assert calls == []


def test_subscribe_rejects_non_callable():
    store = create_store(counter)

    with pytest.raises(TypeError):
        store.subscribe("not a listener")


def test_create_store_rejects_non_callable_reducer():
    with pytest.raises(TypeError):
        create_store({"not": "a reducer"})


def test_concurrent_dispatches_are_serialized():
    store = create_store(counter)
    calls = []
    store.subscribe(lambda: calls.append(1))

    def worker():
        for _ in range(200):
            store.dispatch(Increment())

    threads = [threading.Thread(target=worker) for _ in range(8)]

    for thread in threads:
        thread.start()

    for thread in threads:
        thread.join()

    assert store.get_state() == 1600
    assert len(calls) == 1600


def test_reducer_may_index_actions_like_mappings():
    """Init and model actions support action["type"] as dicts do."""
    def reducer(state, action):
        if state is None:
            state = 0

        if action["type"] == "INC":
            return state + action.get("by", 1)

        return state

    store = create_store(reducer)
    assert store.get_state() == 0

    store.dispatch({"type": "INC"})
    store.dispatch(Increment())
    store.dispatch({"type": "INC", "by": 5})

    assert store.get_state() == 7
