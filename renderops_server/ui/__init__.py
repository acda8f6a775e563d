"""Declarative UI runtime: JSON trees, data store, actions and rendering."""

from renderops_server.ui.elements import UIElement, VisibilityCondition, parse_tree
from renderops_server.ui.data_store import DataStore, data_provider, use_data
from renderops_server.ui.actions import Action, ActionDispatcher, action_provider, use_actions
from renderops_server.ui.renderer import Renderer, RenderedNode, RenderContext
from renderops_server.ui.handlers import RemoteActionExecutor, build_client_handlers
from renderops_server.ui.session import UISession

__all__ = [
    "UIElement",
    "VisibilityCondition",
    "parse_tree",
    "DataStore",
    "data_provider",
    "use_data",
    "Action",
    "ActionDispatcher",
    "action_provider",
    "use_actions",
    "Renderer",
    "RenderedNode",
    "RenderContext",
    "RemoteActionExecutor",
    "build_client_handlers",
    "UISession",
]
