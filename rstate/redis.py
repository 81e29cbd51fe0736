from __future__ import annotations

import logging

from typing import Any, Optional, Sequence, TypeVar, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ValidationError, field_validator
from redis import Redis, WatchError

from ._errors import ConcurrencyError, InvalidStateError
from ._reducer import Reducer
from ._store import Middleware, Store, Unsubscribe, create_store


__all__ = (
    "create_persistent_store",
    "default_redis_namespace",
    "load_state",
    "persist",
    "save_state"
)


logger = logging.getLogger(__name__)


S = TypeVar("S", bound=BaseModel)


def _decode(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode()

    return value


class _Snapshot(BaseModel):
    version: UUID
    state: str

    @field_validator("version", "state", mode="before")
    @classmethod
    def decode(cls, value: Union[bytes, str, UUID]) -> Union[str, UUID]:
        return _decode(value)

    @staticmethod
    def version_key(namespace: str) -> str:
        return f"{namespace}:version"

    @staticmethod
    def state_key(namespace: str) -> str:
        return f"{namespace}:state"


def default_redis_namespace(state_type: type[BaseModel]) -> str:
    return f"rstate:{state_type.__qualname__}"


def _get_snapshot(client: Redis, namespace: str) -> Optional[_Snapshot]:
    if not client.exists(_Snapshot.version_key(namespace)):
        return None

    version, state = client.mget(
        _Snapshot.version_key(namespace),
        _Snapshot.state_key(namespace)
    )

    try:
        return _Snapshot(version=version, state=state)
    except ValidationError as exc:
        raise InvalidStateError(
            f"Corrupt snapshot under {namespace!r}"
        ) from exc


def _load_versioned_state(
    client: Redis,
    state_type: type[S],
    namespace: str
) -> Optional[tuple[UUID, S]]:
    snapshot = _get_snapshot(client, namespace)

    if snapshot is None:
        return None

    try:
        return snapshot.version, state_type.model_validate_json(snapshot.state)
    except ValidationError as exc:
        raise InvalidStateError(
            f"Snapshot under {namespace!r} is not a {state_type.__qualname__}"
        ) from exc


def load_state(
    client: Redis,
    state_type: type[S],
    namespace: Optional[str] = None
) -> Optional[S]:
    loaded = _load_versioned_state(
        client,
        state_type,
        namespace or default_redis_namespace(state_type)
    )

    if loaded is None:
        return None

    return loaded[1]


def save_state(
    client: Redis,
    state: BaseModel,
    namespace: Optional[str] = None,
    expected_version: Optional[UUID] = None
) -> UUID:
    """Write ``state`` as a new snapshot and return its version.

    When ``expected_version`` is given, the write only succeeds if the
    stored version still matches it; otherwise ``ConcurrencyError`` is
    raised and nothing is written.
    """

    namespace = namespace or default_redis_namespace(type(state))
    version_key = _Snapshot.version_key(namespace)
    version = uuid4()

    with client.pipeline(transaction=True) as pipe:
        pipe.watch(version_key)

        if expected_version is not None:
            current = pipe.get(version_key)

            if current is None:
                raise ConcurrencyError(f"Snapshot under {namespace!r} vanished")

            if _decode(current) != str(expected_version):
                raise ConcurrencyError(
                    f"Snapshot under {namespace!r} was changed by another writer"
                )

        pipe.multi()
        pipe.mset(
            {
                version_key: str(version),
                _Snapshot.state_key(namespace): state.model_dump_json()
            }
        )

        try:
            pipe.execute()
        except WatchError:
            raise ConcurrencyError(
                f"Snapshot under {namespace!r} was changed by another writer"
            )

    logger.debug("Saved snapshot %s under %r", version, namespace)

    return version


def persist(
    store: Store[S, Any],
    client: Redis,
    namespace: Optional[str] = None,
    expected_version: Optional[UUID] = None
) -> Unsubscribe:
    """Mirror every transition of ``store`` into redis.

    The current state is written immediately, guarded by
    ``expected_version`` when the store was seeded from a snapshot. If a
    later write finds the snapshot changed by another writer, the listener
    unsubscribes itself and the ``ConcurrencyError`` reaches that one
    dispatch; later dispatches no longer touch redis.
    """

    state = store.get_state()

    if not isinstance(state, BaseModel):
        raise TypeError(
            f"Only pydantic states can be persisted, got {type(state)!r}"
        )

    namespace = namespace or default_redis_namespace(type(state))
    version = save_state(
        client,
        state,
        namespace,
        expected_version=expected_version
    )

    def write_snapshot() -> None:
        nonlocal version

        try:
            version = save_state(
                client,
                store.get_state(),
                namespace,
                expected_version=version
            )
        except ConcurrencyError:
            logger.warning(
                "Stopped persisting to %r after a conflicting write",
                namespace
            )

            unsubscribe()

            raise

    unsubscribe = store.subscribe(write_snapshot)

    return unsubscribe


def create_persistent_store(
    reducer: Reducer,
    client: Redis,
    state_type: type[S],
    namespace: Optional[str] = None,
    middleware: Sequence[Middleware] = (),
    validate_actions: bool = False
) -> Store[S, Any]:
    namespace = namespace or default_redis_namespace(state_type)
    loaded = _load_versioned_state(client, state_type, namespace)

    version: Optional[UUID] = None
    preloaded_state: Optional[S] = None

    if loaded is not None:
        version, preloaded_state = loaded

    store: Store[S, Any] = create_store(
        reducer,
        preloaded_state=preloaded_state,
        middleware=middleware,
        validate_actions=validate_actions
    )

    persist(store, client, namespace, expected_version=version)

    return store
