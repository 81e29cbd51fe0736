from ._action import (
    INIT_ACTION_TYPE,
    Action,
    Immutable,
    InitAction,
    action_type,
    ensure_action,
    is_init_action
)
from ._errors import (
    ConcurrencyError,
    InvalidStateError,
    MalformedActionError,
    StoreError,
    TransitionError
)
from ._reducer import Reducer, combine_reducers
from ._store import (
    Dispatch,
    Listener,
    Middleware,
    Store,
    Unsubscribe,
    create_store
)


__all__ = (
    "INIT_ACTION_TYPE",
    "Action",
    "ConcurrencyError",
    "Dispatch",
    "Immutable",
    "InitAction",
    "InvalidStateError",
    "Listener",
    "MalformedActionError",
    "Middleware",
    "Reducer",
    "Store",
    "StoreError",
    "TransitionError",
    "Unsubscribe",

    "action_type",
    "combine_reducers",
    "create_store",
    "ensure_action",
    "is_init_action"
)
