"""Component and action catalog used to validate UI trees."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from renderops_server.ui.elements import TreeInput, UIElement

ActionName = Literal[
    "db_list",
    "db_get",
    "db_insert",
    "db_update",
    "db_delete",
    "db_search",
    "db_export",
    "http_request",
    "navigate",
    "set_data",
    "open_modal",
    "close_modal",
]

ACTIONS: Dict[str, str] = {
    "db_list": "List records from a database table with pagination and filtering",
    "db_get": "Get a single record from a database table by ID",
    "db_insert": "Insert a new record into a database table",
    "db_update": "Update an existing record in a database table",
    "db_delete": "Delete a record from a database table",
    "db_search": "Search and filter records with text search and column filters",
    "db_export": "Export every record matching the current filters",
    "http_request": "Make an HTTP request to an allowed webhook endpoint",
    "navigate": "Navigate to a different page or route",
    "set_data": "Set data in the data store",
    "open_modal": "Open a modal dialog",
    "close_modal": "Close a modal dialog",
}


class _Props(BaseModel):
    model_config = ConfigDict(extra="allow")


class ConfirmSchema(_Props):
    title: str
    message: str
    variant: Optional[Literal["default", "danger", "warning"]] = None


class CallbackSchema(_Props):
    set: Optional[Dict[str, Any]] = None
    action: Optional[str] = None


class ActionSchema(_Props):
    name: ActionName
    params: Optional[Dict[str, Any]] = None
    confirm: Optional[ConfirmSchema] = None
    onSuccess: Optional[CallbackSchema] = None
    onError: Optional[CallbackSchema] = None


class CheckSchema(_Props):
    fn: Literal["required", "email", "min", "max", "pattern", "minLength", "maxLength"]
    message: str
    value: Any = None


class ColumnSchema(_Props):
    key: str
    label: str
    type: Optional[Literal["text", "number", "date", "boolean", "currency"]] = None
    sortable: Optional[bool] = None
    width: Optional[str] = None


class OptionSchema(_Props):
    value: Union[str, int, float, bool]
    label: str


class FilterSchema(_Props):
    key: str
    label: str
    type: Literal["text", "select", "date", "daterange"]
    options: Optional[List[OptionSchema]] = None


class PageProps(_Props):
    title: str
    subtitle: Optional[str] = None


class SectionProps(_Props):
    title: Optional[str] = None
    collapsible: Optional[bool] = None
    defaultCollapsed: Optional[bool] = None


class CardProps(_Props):
    title: Optional[str] = None
    subtitle: Optional[str] = None
    padding: Optional[Literal["none", "sm", "md", "lg"]] = None


class RowProps(_Props):
    gap: Optional[Literal["none", "xs", "sm", "md", "lg"]] = None
    align: Optional[Literal["start", "center", "end", "stretch"]] = None
    justify: Optional[Literal["start", "center", "end", "between", "around"]] = None
    wrap: Optional[bool] = None


class TableProps(_Props):
    columns: List[ColumnSchema]
    dataPath: str
    rowKey: str = "id"
    selectable: Optional[bool] = None
    selectedPath: Optional[str] = None
    emptyMessage: Optional[str] = None
    rowActions: Optional[List[ActionSchema]] = None


class SearchFilterProps(_Props):
    searchPath: str
    searchPlaceholder: Optional[str] = None
    filters: Optional[List[FilterSchema]] = None
    onSearch: ActionSchema


class FormProps(_Props):
    id: Optional[str] = None
    dataPath: str
    onSubmit: Optional[ActionSchema] = None


class _FieldProps(_Props):
    label: str
    valuePath: str
    placeholder: Optional[str] = None
    disabled: Optional[bool] = None
    required: Optional[bool] = None


class TextFieldProps(_FieldProps):
    checks: Optional[List[CheckSchema]] = None
    validateOn: Optional[Literal["change", "blur", "submit"]] = None
    type: Optional[Literal["text", "email", "password", "url", "tel"]] = None
    multiline: Optional[bool] = None
    rows: Optional[int] = None


class NumberFieldProps(_FieldProps):
    checks: Optional[List[CheckSchema]] = None
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None


class DateFieldProps(_FieldProps):
    includeTime: Optional[bool] = None
    minDate: Optional[str] = None
    maxDate: Optional[str] = None


class JsonFieldProps(_FieldProps):
    pass


class SelectFieldProps(_FieldProps):
    options: List[OptionSchema]
    multiple: Optional[bool] = None


class ButtonProps(_Props):
    label: str
    action: ActionSchema
    variant: Optional[Literal["primary", "secondary", "danger", "ghost", "link"]] = None
    size: Optional[Literal["sm", "md", "lg"]] = None
    disabled: Optional[bool] = None
    loading: Optional[bool] = None
    icon: Optional[str] = None


class AlertProps(_Props):
    message: Optional[str] = None
    messagePath: Optional[str] = None
    variant: Optional[Literal["info", "success", "warning", "error"]] = None
    dismissible: Optional[bool] = None
    dismissPath: Optional[str] = None


class ToastProps(_Props):
    message: str
    variant: Optional[Literal["info", "success", "warning", "error"]] = None
    duration: Optional[int] = None


class ModalConfirmProps(_Props):
    id: str
    title: str
    message: str
    confirmLabel: Optional[str] = None
    cancelLabel: Optional[str] = None
    variant: Optional[Literal["default", "danger", "warning"]] = None
    onConfirm: ActionSchema
    onCancel: Optional[ActionSchema] = None
    openPath: str


class FormModalProps(_Props):
    title: str
    openPath: str
    errorPath: Optional[str] = None
    confirmLabel: str = "Save"
    cancelLabel: str = "Cancel"
    variant: Optional[Literal["default", "danger", "warning"]] = None
    onConfirm: ActionSchema


class SpacerProps(_Props):
    size: Optional[Literal["xs", "sm", "md", "lg", "xl"]] = None


class DividerProps(_Props):
    orientation: Optional[Literal["horizontal", "vertical"]] = None


class TextProps(_Props):
    content: Optional[str] = None
    valuePath: Optional[str] = None
    variant: Optional[Literal["h1", "h2", "h3", "body", "caption", "code"]] = None
    color: Optional[Literal["default", "muted", "primary", "success", "warning", "error"]] = None


class SkeletonProps(_Props):
    variant: Literal["text", "circular", "rectangular"] = "text"
    width: Optional[Union[str, int]] = None
    height: Optional[Union[str, int]] = None
    count: int = Field(default=1, ge=1)


class EmptyStateProps(_Props):
    icon: Literal["document", "search", "filter", "plus"] = "document"
    title: str = "No data"
    description: Optional[str] = None
    action: Optional[ActionSchema] = None
    actionLabel: Optional[str] = None


class BadgeProps(_Props):
    content: Optional[Union[str, int, float]] = None
    valuePath: Optional[str] = None
    variant: Literal["default", "primary", "success", "warning", "danger"] = "default"
    size: Literal["sm", "md"] = "md"
    dot: bool = False


@dataclass(frozen=True)
class ComponentSpec:
    props: Type[BaseModel]
    has_children: bool = False


COMPONENTS: Dict[str, ComponentSpec] = {
    "Page": ComponentSpec(PageProps, has_children=True),
    "Section": ComponentSpec(SectionProps, has_children=True),
    "Card": ComponentSpec(CardProps, has_children=True),
    "Row": ComponentSpec(RowProps, has_children=True),
    "Table": ComponentSpec(TableProps),
    "SearchFilter": ComponentSpec(SearchFilterProps),
    "Form": ComponentSpec(FormProps, has_children=True),
    "TextField": ComponentSpec(TextFieldProps),
    "NumberField": ComponentSpec(NumberFieldProps),
    "DateField": ComponentSpec(DateFieldProps),
    "JsonField": ComponentSpec(JsonFieldProps),
    "SelectField": ComponentSpec(SelectFieldProps),
    "Button": ComponentSpec(ButtonProps),
    "Alert": ComponentSpec(AlertProps),
    "Toast": ComponentSpec(ToastProps),
    "ModalConfirm": ComponentSpec(ModalConfirmProps),
    "FormModal": ComponentSpec(FormModalProps, has_children=True),
    "Spacer": ComponentSpec(SpacerProps),
    "Divider": ComponentSpec(DividerProps),
    "Text": ComponentSpec(TextProps),
    "Skeleton": ComponentSpec(SkeletonProps),
    "EmptyState": ComponentSpec(EmptyStateProps),
    "Badge": ComponentSpec(BadgeProps),
}


@dataclass
class CatalogIssue:
    """A problem found while validating a tree against the catalog."""

    location: str
    type: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"location": self.location, "type": self.type, "message": self.message}


def validate_tree(tree: TreeInput) -> List[CatalogIssue]:
    """
    Check every node of a tree against the component catalog.

    Args:
        tree: Parsed UI tree

    Returns:
        Issues found, empty when the tree is valid
    """
    issues: List[CatalogIssue] = []
    if tree is None:
        return issues
    roots = [tree] if isinstance(tree, UIElement) else list(tree)
    for index, element in enumerate(roots):
        _validate_element(element, f"{element.type}-{index}", issues)
    return issues


def _validate_element(element: UIElement, location: str, issues: List[CatalogIssue]) -> None:
    spec = COMPONENTS.get(element.type)
    if spec is None:
        issues.append(CatalogIssue(location, element.type, "Unknown component type"))
        return

    try:
        spec.props.model_validate(element.props)
    except ValidationError as exc:
        for error in exc.errors():
            field_path = ".".join(str(part) for part in error["loc"])
            issues.append(CatalogIssue(location, element.type, f"{field_path}: {error['msg']}"))

    if element.children and not spec.has_children:
        issues.append(CatalogIssue(location, element.type, "Component does not accept children"))

    for child_index, child in enumerate(element.children or []):
        _validate_element(child, f"{location}/{child.type}-{child_index}", issues)
