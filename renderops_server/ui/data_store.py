"""Copy-on-write data store and its provider scope.

Every write clones the current snapshot, applies the change to the clone and
then publishes the clone as the new snapshot. A published snapshot is never
mutated, so consumers can compare snapshots by identity.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

from renderops_server.errors import ProviderScopeError
from renderops_server.ui.paths import deep_clone, get_value_by_path, set_value_by_path

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], None]


class DataStore:
    """Session-scoped state container addressed by path expressions."""

    def __init__(self, initial_data: Optional[Mapping[str, Any]] = None):
        self._data: Dict[str, Any] = deep_clone(dict(initial_data)) if initial_data else {}
        self._listeners: List[Listener] = []

    @property
    def data(self) -> Dict[str, Any]:
        """Current snapshot. Treat as read-only."""
        return self._data

    def get_value(self, path: str, default: Any = None) -> Any:
        return get_value_by_path(self._data, path, default)

    def set_value(self, path: str, value: Any) -> None:
        """Set a single path and publish a new snapshot."""
        new_data = deep_clone(self._data)
        set_value_by_path(new_data, path, value)
        self._publish(new_data)

    def set_multiple(self, updates: Mapping[str, Any]) -> None:
        """
        Apply several path writes as one snapshot replacement.

        Observers see either the snapshot before the batch or the one after
        it, never a partially applied batch.

        Args:
            updates: Mapping of path to value
        """
        new_data = deep_clone(self._data)
        for path, value in updates.items():
            set_value_by_path(new_data, path, value)
        logger.debug("Batched data update: %s", sorted(updates.keys()))
        self._publish(new_data)

    def reset(self, new_data: Optional[Mapping[str, Any]] = None) -> None:
        """Replace the whole store with ``new_data`` or an empty mapping."""
        self._publish(deep_clone(dict(new_data)) if new_data else {})

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with every new snapshot.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, new_data: Dict[str, Any]) -> None:
        self._data = new_data
        for listener in list(self._listeners):
            listener(new_data)


_current_store: ContextVar[Optional[DataStore]] = ContextVar(
    "renderops_data_store", default=None
)


@contextmanager
def data_provider(
    initial_data: Optional[Mapping[str, Any]] = None,
    store: Optional[DataStore] = None,
) -> Iterator[DataStore]:
    """Make a store available to ``use_data`` within the block."""
    active = store if store is not None else DataStore(initial_data)
    token = _current_store.set(active)
    try:
        yield active
    finally:
        _current_store.reset(token)


def use_data() -> DataStore:
    """Return the store of the enclosing ``data_provider``."""
    store = _current_store.get()
    if store is None:
        raise ProviderScopeError(
            "use_data must be used within a data_provider",
            hint="Wrap the call in 'with data_provider(...)' or a UISession",
        )
    return store


def use_data_value(path: str, default: Any = None) -> Any:
    return use_data().get_value(path, default)


def use_set_data() -> Tuple[Callable[[str, Any], None], Callable[[Mapping[str, Any]], None]]:
    store = use_data()
    return store.set_value, store.set_multiple
