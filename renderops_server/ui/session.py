"""Per-session bundle of data store, action dispatcher and renderer."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

from renderops_server.ui.actions import ActionDispatcher, ActionHandler, _current_dispatcher
from renderops_server.ui.components import default_registry
from renderops_server.ui.data_store import DataStore, _current_store
from renderops_server.ui.elements import TreeInput
from renderops_server.ui.handlers import ExecuteFn, build_client_handlers
from renderops_server.ui.renderer import Component, Renderer


class UISession:
    """
    State for one UI session.

    Each session owns its store, so two sessions never see each other's data.
    ``activate`` exposes the store and dispatcher to ``use_data`` and
    ``use_actions`` for the duration of a block.
    """

    def __init__(
        self,
        registry: Optional[Mapping[str, Component]] = None,
        handlers: Optional[Mapping[str, ActionHandler]] = None,
        initial_data: Optional[Mapping[str, Any]] = None,
        is_authenticated: bool = True,
    ):
        self.store = DataStore(initial_data)
        self.dispatcher = ActionDispatcher(handlers or {}, self.store)
        self.renderer = Renderer(
            registry if registry is not None else default_registry(),
            on_action=self.dispatcher.execute_action,
        )
        self.is_authenticated = is_authenticated

    @classmethod
    def connect(
        cls,
        execute: ExecuteFn,
        connection_id: str,
        table: str,
        **kwargs: Any,
    ) -> "UISession":
        """Session whose database actions run on a server against one table."""
        session = cls(**kwargs)
        session.register_handlers(build_client_handlers(session.store, execute, connection_id, table))
        return session

    @contextmanager
    def activate(self) -> Iterator["UISession"]:
        store_token = _current_store.set(self.store)
        dispatcher_token = _current_dispatcher.set(self.dispatcher)
        try:
            yield self
        finally:
            _current_dispatcher.reset(dispatcher_token)
            _current_store.reset(store_token)

    def register_handlers(self, handlers: Mapping[str, ActionHandler]) -> None:
        self.dispatcher.handlers.update(handlers)

    def render(self, tree: TreeInput) -> List[Any]:
        return self.renderer.render(tree, self.store.data, self.is_authenticated)

    @property
    def diagnostics(self):
        return self.renderer.diagnostics

    def snapshot(self) -> Dict[str, Any]:
        return self.store.data
