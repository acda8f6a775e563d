"""UI tree models.

The JSON wire format uses the keys ``type``, ``props``, ``children`` and
``visible`` on nodes, and ``path``, ``auth``, ``eq``, ``and``, ``or`` and
``not`` on visibility conditions.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field


class EqCondition(BaseModel):
    """Equality check between the value at ``path`` and a literal."""

    model_config = ConfigDict(frozen=True)

    path: str
    value: Any = None


class VisibilityCondition(BaseModel):
    """Predicate controlling whether a node is rendered."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: Optional[str] = None
    auth: Optional[str] = None
    eq: Optional[EqCondition] = None
    and_: Optional[List["VisibilityCondition"]] = Field(default=None, alias="and")
    or_: Optional[List["VisibilityCondition"]] = Field(default=None, alias="or")
    not_: Optional["VisibilityCondition"] = Field(default=None, alias="not")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class UIElement(BaseModel):
    """A node of the UI tree."""

    model_config = ConfigDict(frozen=True)

    type: str
    props: Dict[str, Any] = Field(default_factory=dict)
    children: Optional[List["UIElement"]] = None
    visible: Optional[VisibilityCondition] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UIElement":
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


VisibilityCondition.model_rebuild()
UIElement.model_rebuild()


TreeInput = Union[UIElement, Sequence[UIElement], None]


def parse_tree(raw: Any) -> TreeInput:
    """
    Parse a JSON-decoded tree.

    Args:
        raw: A node mapping, a list of node mappings, or None

    Returns:
        A UIElement, a list of UIElements, or None
    """
    if raw is None:
        return None
    if isinstance(raw, UIElement):
        return raw
    if isinstance(raw, list):
        return [item if isinstance(item, UIElement) else UIElement.model_validate(item) for item in raw]
    return UIElement.model_validate(raw)


def dump_tree(tree: TreeInput) -> Any:
    if tree is None:
        return None
    if isinstance(tree, UIElement):
        return tree.to_dict()
    return [element.to_dict() for element in tree]
