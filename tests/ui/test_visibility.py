"""Tests for visibility predicates."""

import pytest

from renderops_server.ui.elements import VisibilityCondition
from renderops_server.ui.visibility import evaluate_visibility


@pytest.fixture
def data():
    return {
        "user": {"role": "admin", "active": True, "count": 0},
        "ui": {"showEditModal": False, "status": "active"},
        "items": [],
    }


class TestPathCondition:
    def test_truthy_path(self, data):
        assert evaluate_visibility({"path": "/user/active"}, data, True)

    def test_falsy_path(self, data):
        assert not evaluate_visibility({"path": "/ui/showEditModal"}, data, True)
        assert not evaluate_visibility({"path": "/user/count"}, data, True)

    def test_missing_path_is_hidden(self, data):
        assert not evaluate_visibility({"path": "/nope"}, data, True)

    def test_empty_list_is_truthy(self, data):
        assert evaluate_visibility({"path": "/items"}, data, True)


class TestAuthCondition:
    def test_signed_in(self, data):
        assert evaluate_visibility({"auth": "signedIn"}, data, True)
        assert not evaluate_visibility({"auth": "signedIn"}, data, False)

    def test_signed_out(self, data):
        assert evaluate_visibility({"auth": "signedOut"}, data, False)
        assert not evaluate_visibility({"auth": "signedOut"}, data, True)


class TestEqCondition:
    def test_equal_value(self, data):
        assert evaluate_visibility({"eq": {"path": "/ui/status", "value": "active"}}, data, True)

    def test_different_value(self, data):
        assert not evaluate_visibility({"eq": {"path": "/ui/status", "value": "archived"}}, data, True)

    def test_no_coercion(self, data):
        assert not evaluate_visibility({"eq": {"path": "/user/count", "value": False}}, data, True)
        assert not evaluate_visibility({"eq": {"path": "/user/count", "value": "0"}}, data, True)

    def test_missing_path_never_equals_null(self, data):
        assert not evaluate_visibility({"eq": {"path": "/nope", "value": None}}, data, True)


class TestCombinators:
    def test_and(self, data):
        condition = {"and": [{"auth": "signedIn"}, {"path": "/user/active"}]}
        assert evaluate_visibility(condition, data, True)
        assert not evaluate_visibility(condition, data, False)

    def test_or(self, data):
        condition = {"or": [{"path": "/ui/showEditModal"}, {"eq": {"path": "/user/role", "value": "admin"}}]}
        assert evaluate_visibility(condition, data, True)

    def test_not(self, data):
        assert evaluate_visibility({"not": {"path": "/ui/showEditModal"}}, data, True)
        assert not evaluate_visibility({"not": {"auth": "signedIn"}}, data, True)

    def test_empty_and_is_visible_empty_or_is_hidden(self, data):
        assert evaluate_visibility({"and": []}, data, True)
        assert not evaluate_visibility({"or": []}, data, True)

    def test_nested(self, data):
        condition = {
            "and": [
                {"not": {"auth": "signedOut"}},
                {"or": [{"path": "/nope"}, {"eq": {"path": "/ui/status", "value": "active"}}]},
            ]
        }
        assert evaluate_visibility(condition, data, True)


class TestPrecedence:
    """The first populated variant decides; the rest are ignored."""

    def test_path_wins_over_auth(self, data):
        assert evaluate_visibility({"path": "/user/active", "auth": "signedOut"}, data, True)

    def test_auth_wins_over_eq(self, data):
        condition = {"auth": "signedIn", "eq": {"path": "/ui/status", "value": "archived"}}
        assert evaluate_visibility(condition, data, True)

    def test_unknown_auth_value_is_visible(self, data):
        assert evaluate_visibility({"auth": "admin"}, data, True)
        assert evaluate_visibility({"auth": "admin"}, data, False)

    def test_unknown_auth_value_falls_through_to_eq(self, data):
        condition = {"auth": "admin", "eq": {"path": "/ui/status", "value": "archived"}}
        assert not evaluate_visibility(condition, data, True)

    def test_unknown_auth_value_in_rendered_tree(self):
        from renderops_server.ui import UISession, parse_tree

        tree = parse_tree([
            {"type": "Text", "props": {"content": "a"}, "visible": {"auth": "admin"}},
            {"type": "Text", "props": {"content": "b"}},
        ])
        assert [n.key for n in UISession().render(tree)] == ["Text-0", "Text-1"]

    def test_empty_condition_is_visible(self, data):
        assert evaluate_visibility({}, data, False)

    def test_none_is_visible(self, data):
        assert evaluate_visibility(None, data, False)


class TestConditionModel:
    def test_accepts_model(self, data):
        condition = VisibilityCondition.model_validate({"not": {"path": "/nope"}})
        assert evaluate_visibility(condition, data, True)

    def test_round_trip_aliases(self):
        raw = {"and": [{"auth": "signedIn"}, {"not": {"path": "/a"}}]}
        assert VisibilityCondition.model_validate(raw).to_dict() == raw

    def test_evaluation_does_not_mutate_data(self, data):
        before = repr(data)
        evaluate_visibility({"or": [{"path": "/x/y"}, {"eq": {"path": "/a/b", "value": 1}}]}, data, True)
        assert repr(data) == before
