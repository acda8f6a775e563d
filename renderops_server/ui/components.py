"""Default component registry.

Every default component produces a :class:`RenderedNode`. Props whose name
ends in ``Path`` are bound: the value stored at that path is copied into the
node's ``bindings`` under the same prop name.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List

from renderops_server.ui.catalog import COMPONENTS
from renderops_server.ui.elements import UIElement
from renderops_server.ui.paths import get_value_by_path
from renderops_server.ui.renderer import Component, RenderContext, RenderedNode


def resolve_bindings(props: Dict[str, Any], data: Any) -> Dict[str, Any]:
    bindings = {}
    for name, value in props.items():
        if name.endswith("Path") and isinstance(value, str) and value:
            bindings[name] = get_value_by_path(data, value)
    return bindings


def make_component(tag: str) -> Component:
    """Build the default component for ``tag``."""

    def component(element: UIElement, children: List[Any], context: RenderContext) -> RenderedNode:
        return RenderedNode(
            key=context.key,
            type=tag,
            props=dict(element.props),
            bindings=resolve_bindings(element.props, context.data),
            children=children,
        )

    component.__name__ = tag
    return component


def _text(element: UIElement, children: List[Any], context: RenderContext) -> RenderedNode:
    node = make_component(element.type)(element, children, context)
    if node.props.get("content") is None and "valuePath" in node.bindings:
        bound = node.bindings["valuePath"]
        node.props["content"] = "" if bound is None else str(bound)
    return node


_OVERRIDES: Dict[str, Callable[..., RenderedNode]] = {
    "Text": _text,
    "Badge": _text,
}


def default_registry() -> Dict[str, Component]:
    """Return a fresh registry covering every catalog component."""
    registry: Dict[str, Component] = {}
    for tag in COMPONENTS:
        registry[tag] = _OVERRIDES.get(tag) or make_component(tag)
    return registry
