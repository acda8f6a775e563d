"""Server-side actions executed on behalf of generated UIs."""

from renderops_server.actions.base import ActionHandler, ActionParams, ActionResult
from renderops_server.actions.db_actions import (
    db_delete,
    db_get,
    db_insert,
    db_list,
    db_search,
    db_update,
)
from renderops_server.actions.http_actions import http_request

ACTION_HANDLERS: dict[str, ActionHandler] = {
    "db_list": db_list,
    "db_get": db_get,
    "db_insert": db_insert,
    "db_update": db_update,
    "db_delete": db_delete,
    "db_search": db_search,
    "http_request": http_request,
}


def is_valid_action(name: str) -> bool:
    return name in ACTION_HANDLERS


def get_available_actions() -> list[str]:
    return list(ACTION_HANDLERS)


__all__ = [
    "ACTION_HANDLERS",
    "ActionHandler",
    "ActionParams",
    "ActionResult",
    "get_available_actions",
    "is_valid_action",
]
