"""Path addressing over JSON-like data.

Paths accept three spellings that all resolve to the same location::

    "form.address.city"
    "/form/address/city"
    "items[0].name"

Lookups never raise; writes create intermediate containers as needed.
"""

from __future__ import annotations

import copy
import math
import re
from typing import Any, List, Mapping


class _Missing:
    """Marker for a value that is absent, as opposed to an explicit ``None``."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


MISSING: Any = _Missing()

_INDEX_PATTERN = re.compile(r"\[(\d+)\]")
_NUMERIC_KEY = re.compile(r"^\d+$")


def normalize_path(path: str) -> List[str]:
    """Split a path expression into its keys."""
    if not path:
        return []
    normalized = path[1:] if path.startswith("/") else path
    normalized = normalized.replace("/", ".")
    normalized = _INDEX_PATTERN.sub(r".\1", normalized)
    return normalized.split(".")


def _step(current: Any, key: str) -> Any:
    if isinstance(current, Mapping):
        return current.get(key, MISSING)
    if isinstance(current, (list, tuple)):
        if not _NUMERIC_KEY.match(key):
            return MISSING
        index = int(key)
        if index >= len(current):
            return MISSING
        return current[index]
    return MISSING


def get_value_by_path(obj: Any, path: str, default: Any = None) -> Any:
    """
    Read the value stored at ``path``.

    Args:
        obj: Root mapping or list
        path: Path expression
        default: Returned when any segment is absent

    Returns:
        The stored value, or ``default`` when the path does not resolve
    """
    if not path or obj is None:
        return default

    current = obj
    for key in normalize_path(path):
        if current is None or current is MISSING:
            return default
        current = _step(current, key)

    if current is MISSING:
        return default
    return current


def set_value_by_path(obj: Any, path: str, value: Any) -> None:
    """
    Assign ``value`` at ``path`` in place.

    Missing intermediate containers are created: a list when the following
    key is numeric, a dict otherwise. Lists are padded with ``None``.
    """
    if not path:
        return

    keys = normalize_path(path)
    current = obj
    for index, key in enumerate(keys[:-1]):
        next_key = keys[index + 1]
        existing = _step(current, key)
        if existing is None or existing is MISSING:
            existing = [] if _NUMERIC_KEY.match(next_key) else {}
            _assign(current, key, existing)
        current = existing

    _assign(current, keys[-1], value)


def _assign(container: Any, key: str, value: Any) -> None:
    if isinstance(container, list):
        if not _NUMERIC_KEY.match(key):
            raise TypeError(f"Cannot use non-numeric key '{key}' on a list")
        index = int(key)
        if index >= len(container):
            container.extend([None] * (index + 1 - len(container)))
        container[index] = value
        return
    if isinstance(container, dict):
        container[key] = value
        return
    raise TypeError(f"Cannot set key '{key}' on {type(container).__name__}")


def deep_clone(obj: Any) -> Any:
    """Structural copy of a JSON-like value."""
    return copy.deepcopy(obj)


def is_truthy(value: Any) -> bool:
    """JavaScript truthiness for JSON values: empty containers are truthy."""
    if value is None or value is MISSING or value is False:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, (int, float)):
        return not (value == 0 or (isinstance(value, float) and math.isnan(value)))
    if isinstance(value, str):
        return value != ""
    return True


def strict_equals(left: Any, right: Any) -> bool:
    """Value equality without type coercion."""
    if left is MISSING or right is MISSING:
        return False
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if isinstance(left, str) or isinstance(right, str):
        return isinstance(left, str) and isinstance(right, str) and left == right
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        if set(left.keys()) != set(right.keys()):
            return False
        return all(strict_equals(left[key], right[key]) for key in left)
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        if len(left) != len(right):
            return False
        return all(strict_equals(a, b) for a, b in zip(left, right))
    return left == right
