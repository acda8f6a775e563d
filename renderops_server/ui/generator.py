"""Generate CRUD UI trees from table schemas."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from renderops_server.database.introspection import ColumnSchema, TableSchema
from renderops_server.ui.elements import UIElement

EXCLUDED_DISPLAY_COLUMNS = {"deleted_at"}
TECHNICAL_COLUMNS = {"deleted_at", "id"}

CATEGORY_PATTERNS = ("status", "type", "category", "state", "role", "tier", "level", "plan", "method")
PERCENT_PATTERNS = ("percent", "rate", "ratio", "usage", "progress")
CURRENCY_PATTERNS = ("price", "cost", "amount", "total", "subtotal", "fee", "salary", "revenue", "budget")

FORMAT_TO_CELL_TYPE = {
    "currency": "currency",
    "percent": "percentage",
    "date": "date",
    "datetime": "datetime",
    "boolean": "boolean",
    "number": "number",
}

DELETE_CONFIRM_MESSAGE = "Are you sure you want to delete this record? This action cannot be undone."


@dataclass
class ColumnDictionary:
    """Human-facing metadata for a column."""

    column_name: str
    label: Optional[str] = None
    description: Optional[str] = None
    format_type: Optional[str] = None
    enum_mapping: Optional[Dict[str, str]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ColumnDictionary":
        return cls(
            column_name=data.get("columnName") or data.get("column_name") or "",
            label=data.get("label"),
            description=data.get("description"),
            format_type=data.get("formatType") or data.get("format_type"),
            enum_mapping=data.get("enumMapping") or data.get("enum_mapping"),
        )


Dictionary = Mapping[str, ColumnDictionary]


def title_case(name: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in name.split("_"))


def _label(column: ColumnSchema, dictionary: Optional[Dictionary]) -> str:
    entry = dictionary.get(column.name) if dictionary else None
    return (entry.label if entry and entry.label else None) or title_case(column.name)


def field_component(column: ColumnSchema) -> str:
    if column.field_type in ("number", "currency"):
        return "NumberField"
    if column.field_type == "boolean":
        return "SelectField"
    if column.field_type in ("date", "datetime"):
        return "DateField"
    if column.field_type == "json":
        return "JsonField"
    return "TextField"


def display_columns(columns: List[ColumnSchema]) -> List[ColumnSchema]:
    """Primary key first, then every other column except soft-delete markers."""
    pk = next((c for c in columns if c.is_primary_key), None)
    rest = [
        c for c in columns
        if not c.is_primary_key and c.name.lower() not in EXCLUDED_DISPLAY_COLUMNS
    ]
    return [pk, *rest] if pk else rest


def searchable_columns(columns: List[ColumnSchema]) -> List[ColumnSchema]:
    candidates = [
        c for c in columns
        if not c.is_primary_key and c.name.lower() not in TECHNICAL_COLUMNS
    ]
    text_and_bool = [c for c in candidates if c.field_type in ("text", "boolean")][:3]
    dates = [c for c in candidates if c.field_type in ("date", "datetime")][:2]
    return text_and_bool + dates


def detect_cell_type(column: ColumnSchema) -> Tuple[str, Optional[str]]:
    """
    Guess a rich display type from the column name and field type.

    Returns:
        (cell type, referenced table for foreign keys)
    """
    name = column.name.lower()

    if name.endswith("_id") and name != "id":
        base = name[:-3]
        table = base[:-1] + "ies" if base.endswith("y") else base + "s"
        return "foreignKey", table

    if column.field_type == "text" and any(p in name for p in CATEGORY_PATTERNS):
        return "category", None
    if column.field_type == "number" and any(p in name for p in PERCENT_PATTERNS):
        return "percentage", None
    if column.field_type in ("number", "currency") and any(p in name for p in CURRENCY_PATTERNS):
        return "currency", None
    if column.field_type == "boolean":
        return "boolean", None
    if column.field_type == "datetime" or name.endswith("_at"):
        return "datetime", None
    if column.field_type == "date":
        return "date", None
    if column.field_type == "number":
        return "number", None
    return "text", None


def table_column(column: ColumnSchema, dictionary: Optional[Dictionary] = None) -> Dict[str, Any]:
    entry = dictionary.get(column.name) if dictionary else None
    cell_type, foreign_table = detect_cell_type(column)
    if entry and entry.format_type:
        cell_type = FORMAT_TO_CELL_TYPE.get(entry.format_type, cell_type)

    if column.field_type in ("number", "currency", "boolean"):
        basic_type = column.field_type
    elif column.field_type in ("date", "datetime"):
        basic_type = "date"
    else:
        basic_type = "text"

    result: Dict[str, Any] = {
        "key": column.name,
        "label": _label(column, dictionary),
        "type": basic_type,
        "cellType": cell_type,
    }
    if foreign_table:
        result["foreignTable"] = foreign_table
    if entry and entry.enum_mapping:
        result["enumMapping"] = entry.enum_mapping
    if entry and entry.description:
        result["description"] = entry.description
    return result


def form_field(
    column: ColumnSchema,
    base_path: str,
    dictionary: Optional[Dictionary] = None,
    currency_prefix: str = "R$",
) -> UIElement:
    """Build the form input for one column."""
    entry = dictionary.get(column.name) if dictionary else None
    label = _label(column, dictionary)
    value_path = f"{base_path}/{column.name}"
    required = not column.nullable and not column.has_default
    helper_text = entry.description if entry and entry.description else None

    def props(**extra: Any) -> Dict[str, Any]:
        base = {"label": label, "valuePath": value_path, "required": required}
        if helper_text:
            base["helperText"] = helper_text
        base.update(extra)
        return base

    if entry and entry.enum_mapping:
        options = [{"value": value, "label": text} for value, text in entry.enum_mapping.items()]
        return UIElement(type="SelectField", props=props(options=options, placeholder="Select..."))

    if column.field_type == "boolean":
        options = [{"value": True, "label": "Yes"}, {"value": False, "label": "No"}]
        return UIElement(type="SelectField", props=props(options=options, placeholder="Select..."))

    component = field_component(column)
    extra: Dict[str, Any] = {}
    if component == "TextField":
        if column.max_length and column.max_length > 255:
            extra.update(multiline=True, rows=3)
        if "email" in column.name.lower():
            extra["type"] = "email"
            extra["checks"] = [{"fn": "email", "message": "Invalid email address"}]
    elif component == "NumberField" and column.field_type == "currency":
        extra.update(prefix=currency_prefix, step=0.01)
    elif component == "DateField" and column.field_type == "datetime":
        extra["includeTime"] = True

    return UIElement(type=component, props=props(**extra))


def _search_filter(column: ColumnSchema, dictionary: Optional[Dictionary]) -> Dict[str, Any]:
    label = _label(column, dictionary)
    if column.field_type == "boolean":
        return {
            "key": column.name,
            "label": label,
            "type": "select",
            "options": [{"value": "true", "label": "Yes"}, {"value": "false", "label": "No"}],
        }
    if column.field_type in ("date", "datetime"):
        return {
            "key": column.name,
            "label": label,
            "type": "daterange",
            "includeTime": column.field_type == "datetime",
        }
    return {"key": column.name, "label": label, "type": "text"}


def generate_crud_ui(
    schema: TableSchema,
    connection_id: str,
    readonly: bool = False,
    dictionary: Optional[Dictionary] = None,
    currency_prefix: str = "R$",
) -> UIElement:
    """
    Build a full management page for a table.

    The page lists records with search, filters and pagination. Unless
    ``readonly`` is set it also has create and edit form modals and a
    delete confirmation.

    Args:
        schema: Introspected table schema
        connection_id: Connection the page's actions target
        readonly: Omit every mutating control
        dictionary: Column labels, descriptions and enum mappings
        currency_prefix: Prefix shown on currency inputs

    Returns:
        Root ``Page`` element
    """
    table = schema.table
    pk_column = schema.primary_key[0] if schema.primary_key else "id"
    title = title_case(table)
    target = {"connectionId": connection_id, "table": table}
    form_columns = [
        c for c in schema.columns
        if not c.is_primary_key and (not c.has_default or c.field_type == "json")
    ]

    def fields() -> List[UIElement]:
        return [form_field(c, "/form", dictionary, currency_prefix) for c in form_columns]

    buttons = [
        UIElement(type="Button", props={
            "label": "Export",
            "variant": "secondary",
            "icon": "download",
            "action": {"name": "db_export", "params": {**target, "filters": {"path": "/filters"}}},
        }),
        UIElement(type="Button", props={
            "label": "Refresh",
            "variant": "secondary",
            "icon": "refresh",
            "action": {
                "name": "db_list",
                "params": {**target, "page": 1, "limit": 20},
                "onSuccess": {"set": {"/data/items": "$result", "/ui/isLoading": False}},
            },
        }),
    ]
    if not readonly:
        buttons.append(UIElement(type="Button", props={
            "label": "Add",
            "variant": "primary",
            "icon": "plus",
            "action": {
                "name": "set_data",
                "onSuccess": {"set": {"/form": {}, "/ui/showCreateModal": True}},
            },
        }))

    table_props: Dict[str, Any] = {
        "columns": [table_column(c, dictionary) for c in display_columns(schema.columns)],
        "dataPath": "/data/items",
        "rowKey": pk_column,
        "connectionId": connection_id,
        "loadingPath": "/ui/isLoading",
        "paginationPath": "/data/pagination",
        "enableColumnToggle": True,
        "defaultVisibleColumns": 6,
        "emptyMessage": (
            f"No {table} found." if readonly else f'No {table} found. Click "Add" to create one.'
        ),
        "onPageChange": {"name": "db_list", "params": {**target, "limit": 20}},
    }
    if not readonly:
        table_props["rowActions"] = [
            {"name": "db_get", "params": dict(target)},
            {
                "name": "db_delete",
                "params": dict(target),
                "confirm": {
                    "title": "Confirm Delete",
                    "message": DELETE_CONFIRM_MESSAGE,
                    "variant": "danger",
                },
            },
        ]

    card = UIElement(type="Card", props={"padding": "none"}, children=[
        UIElement(type="SearchFilter", props={
            "searchPath": "/filters/search",
            "searchPlaceholder": f"Search {table}...",
            "filters": [_search_filter(c, dictionary) for c in searchable_columns(schema.columns)],
            "onSearch": {
                "name": "db_search",
                "params": {
                    **target,
                    "search": {"path": "/filters/search"},
                    "filters": {"path": "/filters"},
                },
            },
        }),
        UIElement(type="Row", props={"gap": "sm", "justify": "end"}, children=buttons),
        UIElement(type="Table", props=table_props),
    ])

    children: List[UIElement] = [
        UIElement(type="Alert", props={
            "messagePath": "/ui/successMessage",
            "variant": "success",
            "dismissible": True,
        }),
        UIElement(type="Section", props={"title": "Records"}, children=[card]),
    ]

    if not readonly:
        children.append(UIElement(type="FormModal", props={
            "title": f"Create {title}",
            "openPath": "/ui/showCreateModal",
            "errorPath": "/ui/createError",
            "confirmLabel": "Create",
            "onConfirm": {
                "name": "db_insert",
                "params": {**target, "data": {"path": "/form"}},
                "onSuccess": {"set": {
                    "/ui/showCreateModal": False,
                    "/ui/successMessage": "Record created successfully",
                    "/form": {},
                }},
                "onError": {"set": {"/ui/createError": "$error.message"}},
            },
        }, children=fields()))
        children.append(UIElement(type="FormModal", props={
            "title": f"Edit {title}",
            "openPath": "/ui/showEditModal",
            "errorPath": "/ui/editError",
            "confirmLabel": "Save",
            "onConfirm": {
                "name": "db_update",
                "params": {
                    **target,
                    "id": {"path": f"/form/{pk_column}"},
                    "data": {"path": "/form"},
                },
                "onSuccess": {"set": {
                    "/ui/showEditModal": False,
                    "/ui/successMessage": "Record updated successfully",
                }},
                "onError": {"set": {"/ui/editError": "$error.message"}},
            },
        }, children=fields()))
        children.append(UIElement(type="ModalConfirm", props={
            "id": "deleteModal",
            "title": "Confirm Delete",
            "message": DELETE_CONFIRM_MESSAGE,
            "openPath": "/ui/showDeleteModal",
            "errorPath": "/ui/deleteError",
            "confirmLabel": "Delete",
            "variant": "danger",
            "onConfirm": {
                "name": "db_delete",
                "params": {**target, "id": {"path": "/ui/deleteId"}},
                "onSuccess": {"set": {
                    "/ui/showDeleteModal": False,
                    "/ui/successMessage": "Record deleted successfully",
                }},
                "onError": {"set": {"/ui/deleteError": "$error.message"}},
            },
        }))

    return UIElement(
        type="Page",
        props={"title": f"{title} Management", "subtitle": f"View and manage {table} records"},
        children=children,
    )


def generate_list_ui(
    schema: TableSchema,
    connection_id: str,
    dictionary: Optional[Dictionary] = None,
) -> UIElement:
    """Build a read-only card listing a table's records."""
    pk_column = schema.primary_key[0] if schema.primary_key else "id"
    return UIElement(
        type="Card",
        props={"title": title_case(schema.table), "padding": "none"},
        children=[
            UIElement(type="Table", props={
                "columns": [table_column(c, dictionary) for c in display_columns(schema.columns)],
                "dataPath": f"/data/{schema.table}",
                "rowKey": pk_column,
                "connectionId": connection_id,
                "emptyMessage": "No records found",
            }),
        ],
    )
