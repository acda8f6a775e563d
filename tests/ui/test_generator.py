"""Tests for CRUD UI generation and catalog validation."""

import pytest

from renderops_server.database.introspection import ColumnSchema, TableSchema
from renderops_server.ui import UISession, parse_tree
from renderops_server.ui.catalog import COMPONENTS, validate_tree
from renderops_server.ui.generator import (
    ColumnDictionary,
    detect_cell_type,
    display_columns,
    form_field,
    generate_crud_ui,
    generate_list_ui,
    searchable_columns,
    table_column,
    title_case,
)


def column(name, udt="text", field_type="text", **kwargs):
    return ColumnSchema(name=name, type=udt, udt_type=udt, field_type=field_type, **kwargs)


@pytest.fixture
def orders_schema():
    return TableSchema(
        table="orders",
        primary_key=["id"],
        columns=[
            column("id", "int4", "number", nullable=False, has_default=True, is_primary_key=True),
            column("customer_email", "varchar", max_length=255, nullable=False),
            column("status", "varchar"),
            column("notes", "varchar", max_length=1000),
            column("total_amount", "numeric", "number"),
            column("paid", "bool", "boolean", nullable=False),
            column("category_id", "int4", "number"),
            column("metadata", "jsonb", "json", has_default=True),
            column("created_at", "timestamptz", "datetime", has_default=True),
            column("ship_date", "date", "date"),
            column("deleted_at", "timestamptz", "datetime"),
        ],
    )


def find(element, type_):
    """Depth-first list of nodes of a type."""
    found = [element] if element.type == type_ else []
    for child in element.children or []:
        found.extend(find(child, type_))
    return found


class TestColumnHelpers:
    def test_title_case(self):
        assert title_case("order_items") == "Order Items"
        assert title_case("users") == "Users"

    def test_display_columns(self, orders_schema):
        names = [c.name for c in display_columns(orders_schema.columns)]
        assert names[0] == "id"
        assert "deleted_at" not in names

    def test_searchable_columns(self, orders_schema):
        names = [c.name for c in searchable_columns(orders_schema.columns)]
        assert names == ["customer_email", "status", "notes", "created_at", "ship_date"]

    @pytest.mark.parametrize("col,expected", [
        (column("category_id", "int4", "number"), ("foreignKey", "categories")),
        (column("user_id", "int4", "number"), ("foreignKey", "users")),
        (column("status", "varchar"), ("category", None)),
        (column("usage_rate", "float8", "number"), ("percentage", None)),
        (column("total_amount", "numeric", "number"), ("currency", None)),
        (column("paid", "bool", "boolean"), ("boolean", None)),
        (column("updated_at", "varchar"), ("datetime", None)),
        (column("birthday", "date", "date"), ("date", None)),
        (column("quantity", "int4", "number"), ("number", None)),
        (column("name", "varchar"), ("text", None)),
    ])
    def test_detect_cell_type(self, col, expected):
        assert detect_cell_type(col) == expected

    def test_table_column_with_dictionary(self):
        dictionary = {
            "status": ColumnDictionary.from_dict({
                "columnName": "status",
                "label": "Order status",
                "description": "Lifecycle state",
                "enumMapping": {"new": "New", "done": "Done"},
            }),
            "fee": ColumnDictionary(column_name="fee", format_type="percent"),
        }
        status = table_column(column("status", "varchar"), dictionary)
        assert status == {
            "key": "status",
            "label": "Order status",
            "type": "text",
            "cellType": "category",
            "enumMapping": {"new": "New", "done": "Done"},
            "description": "Lifecycle state",
        }
        fee = table_column(column("fee", "numeric", "number"), dictionary)
        assert fee["cellType"] == "percentage"
        assert fee["type"] == "number"


class TestFormField:
    def test_email_field(self):
        field = form_field(column("customer_email", "varchar", nullable=False), "/form")
        assert field.type == "TextField"
        assert field.props["type"] == "email"
        assert field.props["required"] is True
        assert field.props["valuePath"] == "/form/customer_email"
        assert field.props["checks"][0]["fn"] == "email"

    def test_long_text_is_multiline(self):
        field = form_field(column("notes", "varchar", max_length=1000), "/form")
        assert field.props["multiline"] is True
        assert field.props["rows"] == 3

    def test_boolean_select(self):
        field = form_field(column("paid", "bool", "boolean"), "/form")
        assert field.type == "SelectField"
        assert field.props["options"] == [
            {"value": True, "label": "Yes"},
            {"value": False, "label": "No"},
        ]

    def test_currency_prefix(self):
        field = form_field(column("price", "money", "currency"), "/form", currency_prefix="$")
        assert field.type == "NumberField"
        assert field.props["prefix"] == "$"
        assert field.props["step"] == 0.01

    def test_datetime_includes_time(self):
        field = form_field(column("starts", "timestamp", "datetime"), "/form")
        assert field.type == "DateField"
        assert field.props["includeTime"] is True

    def test_json_field(self):
        assert form_field(column("meta", "jsonb", "json"), "/form").type == "JsonField"

    def test_enum_mapping_select(self):
        dictionary = {"status": ColumnDictionary(column_name="status", enum_mapping={"a": "Active"})}
        field = form_field(column("status", "varchar"), "/form", dictionary)
        assert field.type == "SelectField"
        assert field.props["options"] == [{"value": "a", "label": "Active"}]

    def test_nullable_or_default_not_required(self):
        assert form_field(column("a", nullable=True), "/form").props["required"] is False
        assert form_field(column("b", nullable=False, has_default=True), "/form").props["required"] is False


class TestGenerateCrudUI:
    def test_page_structure(self, orders_schema):
        page = generate_crud_ui(orders_schema, "conn-1")
        assert page.type == "Page"
        assert page.props["title"] == "Orders Management"
        assert [c.type for c in page.children] == ["Alert", "Section", "FormModal", "FormModal", "ModalConfirm"]

    def test_table_and_actions(self, orders_schema):
        page = generate_crud_ui(orders_schema, "conn-1")
        [table] = find(page, "Table")
        assert table.props["dataPath"] == "/data/items"
        assert table.props["rowKey"] == "id"
        assert [a["name"] for a in table.props["rowActions"]] == ["db_get", "db_delete"]
        assert table.props["rowActions"][1]["confirm"]["variant"] == "danger"

        labels = [b.props["label"] for b in find(page, "Button")]
        assert labels == ["Export", "Refresh", "Add"]

    def test_search_filter(self, orders_schema):
        [search] = find(generate_crud_ui(orders_schema, "conn-1"), "SearchFilter")
        assert search.props["onSearch"]["name"] == "db_search"
        assert search.props["onSearch"]["params"]["search"] == {"path": "/filters/search"}
        types = {f["key"]: f["type"] for f in search.props["filters"]}
        assert types["created_at"] == "daterange"
        assert types["status"] == "text"

    def test_form_columns(self, orders_schema):
        page = generate_crud_ui(orders_schema, "conn-1")
        create_modal = page.children[2]
        paths = [f.props["valuePath"] for f in create_modal.children]
        # Primary key and defaulted columns are left out, except JSON
        assert "/form/id" not in paths
        assert "/form/created_at" not in paths
        assert "/form/metadata" in paths
        assert create_modal.props["onConfirm"]["name"] == "db_insert"

        edit_modal = page.children[3]
        assert edit_modal.props["onConfirm"]["params"]["id"] == {"path": "/form/id"}

    def test_readonly_has_no_mutations(self, orders_schema):
        page = generate_crud_ui(orders_schema, "conn-1", readonly=True)
        assert [c.type for c in page.children] == ["Alert", "Section"]
        [table] = find(page, "Table")
        assert "rowActions" not in table.props
        assert [b.props["label"] for b in find(page, "Button")] == ["Export", "Refresh"]

    def test_generated_tree_validates(self, orders_schema):
        assert validate_tree(generate_crud_ui(orders_schema, "conn-1")) == []
        assert validate_tree(generate_crud_ui(orders_schema, "conn-1", readonly=True)) == []
        assert validate_tree(generate_list_ui(orders_schema, "conn-1")) == []

    def test_generated_tree_renders_without_diagnostics(self, orders_schema):
        page = generate_crud_ui(orders_schema, "conn-1")
        session = UISession(initial_data={"data": {"items": [{"id": 1}]}})
        [rendered] = session.render(page)
        assert session.diagnostics == []
        assert rendered.type == "Page"

    def test_json_round_trip(self, orders_schema):
        page = generate_crud_ui(orders_schema, "conn-1")
        assert parse_tree(page.to_dict()) == page

    def test_list_ui(self, orders_schema):
        card = generate_list_ui(orders_schema, "conn-1")
        assert card.type == "Card"
        assert card.children[0].props["dataPath"] == "/data/orders"


class TestValidateTree:
    def test_unknown_component(self):
        issues = validate_tree(parse_tree({"type": "Page", "props": {"title": "x"}, "children": [
            {"type": "Chart", "props": {}},
        ]}))
        assert [(i.location, i.type) for i in issues] == [("Page-0/Chart-0", "Chart")]

    def test_missing_required_prop(self):
        issues = validate_tree(parse_tree({"type": "Button", "props": {"label": "Go"}}))
        assert len(issues) == 1
        assert issues[0].message.startswith("action")

    def test_unknown_action_name(self):
        issues = validate_tree(parse_tree({
            "type": "Button",
            "props": {"label": "Go", "action": {"name": "drop_database"}},
        }))
        assert issues and issues[0].type == "Button"

    def test_children_not_allowed(self):
        issues = validate_tree(parse_tree({
            "type": "Text",
            "props": {"content": "x"},
            "children": [{"type": "Text", "props": {}}],
        }))
        assert [i.message for i in issues] == ["Component does not accept children"]

    def test_none_is_valid(self):
        assert validate_tree(None) == []

    def test_catalog_size(self):
        assert len(COMPONENTS) == 23
