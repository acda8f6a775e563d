"""Tree renderer.

The renderer walks a UI tree, drops nodes whose visibility condition is
false, resolves each node's ``type`` in an injected component registry and
hands the rendered children to the parent component.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from renderops_server.ui.actions import use_actions
from renderops_server.ui.data_store import use_data
from renderops_server.ui.elements import TreeInput, UIElement
from renderops_server.ui.visibility import evaluate_visibility

logger = logging.getLogger(__name__)


@dataclass
class RenderContext:
    """Everything a component needs besides its own element."""

    key: str
    data: Mapping[str, Any]
    is_authenticated: bool
    on_action: Optional[Callable[..., Any]]


@dataclass
class RenderedNode:
    """Output of the default components."""

    key: str
    type: str
    props: Dict[str, Any] = field(default_factory=dict)
    bindings: Dict[str, Any] = field(default_factory=dict)
    children: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"key": self.key, "type": self.type, "props": self.props}
        if self.bindings:
            result["bindings"] = self.bindings
        if self.children:
            result["children"] = [
                child.to_dict() if isinstance(child, RenderedNode) else child
                for child in self.children
            ]
        return result


Component = Callable[[UIElement, List[Any], RenderContext], Any]


@dataclass
class RenderDiagnostic:
    key: str
    type: str
    message: str


class Renderer:
    """
    Render UI trees with a string-keyed component registry.

    Args:
        registry: Mapping of type tag to component callable
        on_action: Callback passed to every component. When omitted, the
            dispatcher of the enclosing ``action_provider`` is used.
    """

    def __init__(
        self,
        registry: Mapping[str, Component],
        *,
        on_action: Optional[Callable[..., Any]] = None,
    ):
        self.registry = registry
        self.on_action = on_action
        self.diagnostics: List[RenderDiagnostic] = []

    def render(
        self,
        tree: TreeInput,
        data: Optional[Mapping[str, Any]] = None,
        is_authenticated: bool = True,
    ) -> List[Any]:
        """
        Render a node, a list of nodes, or nothing.

        Args:
            tree: Root element(s)
            data: Data snapshot. Read from the enclosing ``data_provider``
                when omitted.
            is_authenticated: Whether the viewer is signed in

        Returns:
            Rendered outputs of the visible, known root nodes
        """
        if data is None:
            data = use_data().data
        on_action = self.on_action
        if on_action is None:
            on_action = use_actions().execute_action

        self.diagnostics = []
        if tree is None:
            return []

        roots: Sequence[UIElement] = [tree] if isinstance(tree, UIElement) else tree
        rendered = []
        for index, element in enumerate(roots):
            output = self._render_element(element, index, data, is_authenticated, on_action)
            if output is not None:
                rendered.append(output)
        return rendered

    def _render_element(
        self,
        element: UIElement,
        index: int,
        data: Mapping[str, Any],
        is_authenticated: bool,
        on_action: Callable[..., Any],
    ) -> Any:
        key = f"{element.type}-{index}"

        if element.visible is not None and not evaluate_visibility(
            element.visible, data, is_authenticated
        ):
            return None

        component = self.registry.get(element.type)
        if component is None:
            logger.warning("Unknown component type: %s", element.type)
            self.diagnostics.append(
                RenderDiagnostic(key=key, type=element.type, message="Unknown component type")
            )
            return None

        children = []
        for child_index, child in enumerate(element.children or []):
            output = self._render_element(child, child_index, data, is_authenticated, on_action)
            if output is not None:
                children.append(output)

        context = RenderContext(
            key=key,
            data=data,
            is_authenticated=is_authenticated,
            on_action=on_action,
        )
        return component(element, children, context)
