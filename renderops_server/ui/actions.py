"""Client-side action dispatch bound to a data store."""

from __future__ import annotations

import inspect
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Awaitable, Callable, Dict, Iterator, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from renderops_server.errors import ProviderScopeError
from renderops_server.ui.data_store import DataStore, use_data
from renderops_server.ui.paths import get_value_by_path

logger = logging.getLogger(__name__)

ActionHandler = Callable[[Dict[str, Any]], Union[Awaitable[Any], Any]]


class ConfirmSpec(BaseModel):
    title: str
    message: str
    variant: Literal["default", "danger", "warning"] = "default"


class ActionCallbacks(BaseModel):
    set: Optional[Dict[str, Any]] = None
    action: Optional[str] = None


class Action(BaseModel):
    """Action payload attached to buttons, forms and table rows."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    params: Optional[Dict[str, Any]] = None
    confirm: Optional[ConfirmSpec] = None
    on_success: Optional[ActionCallbacks] = Field(default=None, alias="onSuccess")
    on_error: Optional[ActionCallbacks] = Field(default=None, alias="onError")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ActionDispatcher:
    """
    Execute named actions against registered handlers.

    Results and failures are written back to the store through the action's
    ``onSuccess`` / ``onError`` callbacks. Actions carrying a ``confirm`` block
    are parked until ``confirm_action`` or ``cancel_confirm`` is called.
    """

    def __init__(self, handlers: Mapping[str, ActionHandler], store: DataStore):
        self.handlers = dict(handlers)
        self.store = store
        self.is_loading = False
        self.pending_confirm: Optional[Action] = None

    async def execute_action(self, action: Union[Action, Mapping[str, Any]]) -> None:
        if not isinstance(action, Action):
            action = Action.model_validate(action)

        if action.confirm is not None and self.pending_confirm is None:
            self.pending_confirm = action
            return

        handler = self.handlers.get(action.name)
        if handler is None:
            logger.error("Unknown action: %s", action.name)
            return

        self.is_loading = True
        try:
            resolved = self.resolve_params(action.params)
            result = handler(resolved)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.error("Action %s failed: %s", action.name, exc)
            message = str(exc) or "An error occurred"
            self.apply_callbacks(action.on_error, {"message": message})
            follow_up = action.on_error
        else:
            self.apply_callbacks(action.on_success, result)
            follow_up = action.on_success
        finally:
            self.is_loading = False

        if follow_up is not None and follow_up.action:
            await self.execute_action(Action(name=follow_up.action))

    async def __call__(self, action: Union[Action, Mapping[str, Any]]) -> None:
        await self.execute_action(action)

    def resolve_params(self, params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Replace ``{"path": ...}`` references with values from the store."""
        if not params:
            return {}

        snapshot = self.store.data
        resolved: Dict[str, Any] = {}
        for key, value in params.items():
            if isinstance(value, Mapping) and "path" in value:
                resolved[key] = get_value_by_path(snapshot, value["path"])
            else:
                resolved[key] = value
        return resolved

    def apply_callbacks(self, callbacks: Optional[ActionCallbacks], result: Any = None) -> None:
        if callbacks is None or not callbacks.set:
            return

        updates: Dict[str, Any] = {}
        for path, value in callbacks.set.items():
            if isinstance(value, str) and value.startswith("$error."):
                prop = value[len("$error."):]
                if isinstance(result, Mapping) and prop in result:
                    updates[path] = result[prop]
            elif value == "$result":
                updates[path] = result
            else:
                updates[path] = value
        self.store.set_multiple(updates)

    async def confirm_action(self) -> None:
        if self.pending_confirm is None:
            return
        action = self.pending_confirm.model_copy(update={"confirm": None})
        self.pending_confirm = None
        await self.execute_action(action)

    def cancel_confirm(self) -> None:
        self.pending_confirm = None


_current_dispatcher: ContextVar[Optional[ActionDispatcher]] = ContextVar(
    "renderops_action_dispatcher", default=None
)


@contextmanager
def action_provider(
    handlers: Mapping[str, ActionHandler],
    store: Optional[DataStore] = None,
) -> Iterator[ActionDispatcher]:
    """Make a dispatcher available to ``use_actions`` within the block."""
    dispatcher = ActionDispatcher(handlers, store if store is not None else use_data())
    token = _current_dispatcher.set(dispatcher)
    try:
        yield dispatcher
    finally:
        _current_dispatcher.reset(token)


def use_actions() -> ActionDispatcher:
    dispatcher = _current_dispatcher.get()
    if dispatcher is None:
        raise ProviderScopeError("use_actions must be used within an action_provider")
    return dispatcher
