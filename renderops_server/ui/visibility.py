"""Visibility predicate evaluation."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from renderops_server.ui.elements import VisibilityCondition
from renderops_server.ui.paths import MISSING, get_value_by_path, is_truthy, strict_equals

ConditionInput = Union[VisibilityCondition, Mapping[str, Any], None]


def _coerce(condition: ConditionInput) -> Optional[VisibilityCondition]:
    if condition is None or isinstance(condition, VisibilityCondition):
        return condition
    return VisibilityCondition.model_validate(condition)


def evaluate_visibility(
    condition: ConditionInput,
    data: Any,
    is_authenticated: bool,
) -> bool:
    """
    Decide whether a node guarded by ``condition`` is visible.

    The first populated variant wins, in the order path, auth, eq, and, or,
    not. A condition with no populated variant is visible. Evaluation has no
    side effects and reads ``data`` only.

    Args:
        condition: Condition model or its JSON mapping
        data: Data store snapshot
        is_authenticated: Whether the current viewer is signed in

    Returns:
        True if the node should be rendered
    """
    cond = _coerce(condition)
    if cond is None:
        return True

    if cond.path:
        return is_truthy(get_value_by_path(data, cond.path, MISSING))

    if cond.auth == "signedIn":
        return is_authenticated
    if cond.auth == "signedOut":
        return not is_authenticated

    if cond.eq is not None:
        value = get_value_by_path(data, cond.eq.path, MISSING)
        return strict_equals(value, cond.eq.value)

    if cond.and_ is not None:
        return all(evaluate_visibility(c, data, is_authenticated) for c in cond.and_)

    if cond.or_ is not None:
        return any(evaluate_visibility(c, data, is_authenticated) for c in cond.or_)

    if cond.not_ is not None:
        return not evaluate_visibility(cond.not_, data, is_authenticated)

    return True
