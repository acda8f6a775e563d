"""Tests for the tree renderer, default components and UI sessions."""

import pytest
from pydantic import ValidationError

from renderops_server.errors import ProviderScopeError
from renderops_server.ui import (
    DataStore,
    RenderedNode,
    Renderer,
    UIElement,
    UISession,
    action_provider,
    data_provider,
    parse_tree,
)
from renderops_server.ui.components import default_registry, resolve_bindings


def record(element, children, context):
    """Component that echoes what it received."""
    return {"key": context.key, "type": element.type, "children": children}


@pytest.fixture
def registry():
    return {"Page": record, "Card": record, "Text": record}


def node(type_, children=None, visible=None, **props):
    raw = {"type": type_, "props": props}
    if children is not None:
        raw["children"] = children
    if visible is not None:
        raw["visible"] = visible
    return raw


class TestRenderer:
    def test_render_none(self, registry):
        renderer = Renderer(registry, on_action=lambda action: None)
        assert renderer.render(None, {}) == []

    def test_keys_use_type_and_sibling_index(self, registry):
        tree = parse_tree(node("Page", [node("Text"), node("Card", [node("Text")])]))
        renderer = Renderer(registry, on_action=lambda action: None)
        [page] = renderer.render(tree, {})

        assert page["key"] == "Page-0"
        assert [c["key"] for c in page["children"]] == ["Text-0", "Card-1"]
        assert page["children"][1]["children"][0]["key"] == "Text-0"

    def test_list_of_roots(self, registry):
        tree = parse_tree([node("Text"), node("Card")])
        rendered = Renderer(registry, on_action=lambda action: None).render(tree, {})
        assert [r["key"] for r in rendered] == ["Text-0", "Card-1"]

    def test_nested_root_lists_are_rejected(self):
        with pytest.raises(ValidationError):
            parse_tree([[node("Text")]])

    def test_hidden_subtree_is_skipped(self, registry):
        tree = parse_tree(node("Page", [
            node("Card", [node("Nope")], visible={"path": "/ui/show"}),
            node("Text"),
        ]))
        renderer = Renderer(registry, on_action=lambda action: None)
        [page] = renderer.render(tree, {"ui": {"show": False}})

        assert [c["key"] for c in page["children"]] == ["Text-1"]
        # Unknown types inside a hidden subtree are never visited
        assert renderer.diagnostics == []

    def test_unknown_type_does_not_affect_siblings(self, registry, caplog):
        tree = parse_tree(node("Page", [node("Text"), node("Chart"), node("Card")]))
        renderer = Renderer(registry, on_action=lambda action: None)
        [page] = renderer.render(tree, {})

        assert [c["key"] for c in page["children"]] == ["Text-0", "Card-2"]
        assert len(renderer.diagnostics) == 1
        assert renderer.diagnostics[0].key == "Chart-1"
        assert renderer.diagnostics[0].type == "Chart"
        assert "Unknown component type: Chart" in caplog.text

    def test_diagnostics_reset_between_renders(self, registry):
        renderer = Renderer(registry, on_action=lambda action: None)
        renderer.render(parse_tree(node("Chart")), {})
        assert len(renderer.diagnostics) == 1
        renderer.render(parse_tree(node("Text")), {})
        assert renderer.diagnostics == []

    def test_signed_out_visibility(self, registry):
        tree = parse_tree([
            node("Text", visible={"auth": "signedIn"}),
            node("Card", visible={"auth": "signedOut"}),
        ])
        renderer = Renderer(registry, on_action=lambda action: None)
        assert [r["type"] for r in renderer.render(tree, {}, is_authenticated=False)] == ["Card"]

    def test_context_from_providers(self, registry):
        seen = {}

        def capture(element, children, context):
            seen["data"] = context.data
            seen["on_action"] = context.on_action
            return element.type

        with data_provider({"a": 1}):
            with action_provider({}) as dispatcher:
                Renderer({"Text": capture}).render(parse_tree(node("Text")))

        assert seen["data"] == {"a": 1}
        assert seen["on_action"] == dispatcher.execute_action

    def test_missing_providers_raise(self, registry):
        with pytest.raises(ProviderScopeError):
            Renderer(registry).render(parse_tree(node("Text")))


class TestDefaultComponents:
    def test_registry_covers_catalog(self):
        registry = default_registry()
        assert "Table" in registry
        assert "FormModal" in registry
        assert len(registry) == 23

    def test_resolve_bindings(self):
        props = {"dataPath": "/data/items", "title": "Users", "valuePath": ""}
        data = {"data": {"items": [1, 2]}}
        assert resolve_bindings(props, data) == {"dataPath": [1, 2]}

    def test_rendered_node_dict(self):
        tree = parse_tree(node("Card", [node("Text", content="Hi")], title="Users"))
        renderer = Renderer(default_registry(), on_action=lambda action: None)
        [card] = renderer.render(tree, {})

        assert isinstance(card, RenderedNode)
        assert card.to_dict() == {
            "key": "Card-0",
            "type": "Card",
            "props": {"title": "Users"},
            "children": [{"key": "Text-0", "type": "Text", "props": {"content": "Hi"}}],
        }

    def test_text_value_binding(self):
        tree = parse_tree(node("Text", valuePath="/stats/total"))
        renderer = Renderer(default_registry(), on_action=lambda action: None)
        [text] = renderer.render(tree, {"stats": {"total": 42}})
        assert text.props["content"] == "42"
        assert text.bindings == {"valuePath": 42}


class TestUISession:
    def test_sessions_are_isolated(self):
        first = UISession(initial_data={"count": 1})
        second = UISession(initial_data={"count": 1})
        first.store.set_value("/count", 2)
        assert second.snapshot() == {"count": 1}

    def test_render_uses_session_store(self):
        session = UISession(initial_data={"ui": {"show": True}})
        tree = UIElement.from_dict(node("Alert", visible={"path": "/ui/show"}, message="Hi"))
        assert [n.type for n in session.render(tree)] == ["Alert"]

        session.store.set_value("/ui/show", False)
        assert session.render(tree) == []

    def test_unknown_component_diagnostics(self):
        session = UISession()
        session.render(parse_tree(node("Page", [node("Chart")], title="x")))
        assert [d.type for d in session.diagnostics] == ["Chart"]

    @pytest.mark.asyncio
    async def test_actions_write_to_session_store(self):
        session = UISession(handlers={"load": lambda params: [{"id": 1}]})
        await session.dispatcher.execute_action({
            "name": "load",
            "onSuccess": {"set": {"/data/items": "$result"}},
        })
        assert session.snapshot()["data"]["items"] == [{"id": 1}]

    def test_activate_exposes_providers(self):
        from renderops_server.ui import use_actions, use_data

        session = UISession(initial_data={"a": 1})
        with session.activate():
            assert use_data() is session.store
            assert use_actions() is session.dispatcher

    def test_register_handlers(self):
        session = UISession()
        session.register_handlers({"noop": lambda params: None})
        assert "noop" in session.dispatcher.handlers

    def test_explicit_registry(self):
        store_registry = {"Text": lambda element, children, context: element.props["content"]}
        session = UISession(registry=store_registry)
        assert session.render(parse_tree(node("Text", content="x"))) == ["x"]
        assert isinstance(session.store, DataStore)
