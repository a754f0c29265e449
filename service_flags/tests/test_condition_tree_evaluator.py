"""
Unit tests for the condition tree evaluator.
"""

import pytest
from unittest.mock import MagicMock

from service_flags.app.conditions.models import (
    LeafNode, Operator, OperatorNode, parse_condition_tree
)
from service_flags.app.conditions.tree_evaluator import evaluate


CONDITION_A = {"name": "browser_type", "value": "safari", "type": "custom_attribute"}
CONDITION_B = {"name": "device_model", "value": "iphone6", "type": "custom_attribute"}
CONDITION_C = {"name": "location", "match": "exact", "type": "custom_attribute", "value": "CA"}


def returning(*results):
    """Leaf matcher that answers the given results in call order."""
    return MagicMock(side_effect=list(results))


class TestParseConditionTree:
    """Test cases for parse_condition_tree."""

    def test_leaf(self):
        assert parse_condition_tree(CONDITION_A) == LeafNode(CONDITION_A)

    def test_explicit_operator(self):
        tree = parse_condition_tree(["and", CONDITION_A, ["not", CONDITION_B]])

        assert tree == OperatorNode(
            Operator.AND,
            (LeafNode(CONDITION_A), OperatorNode(Operator.NOT, (LeafNode(CONDITION_B),)))
        )

    def test_implicit_or_keeps_every_element(self):
        tree = parse_condition_tree([CONDITION_A, CONDITION_B])

        assert tree.kind == Operator.OR
        assert tree.children == (LeafNode(CONDITION_A), LeafNode(CONDITION_B))

    def test_unknown_operator_token_is_an_operand(self):
        tree = parse_condition_tree(["xor", "1", "2"])

        assert tree.kind == Operator.OR
        assert tree.children == (LeafNode("xor"), LeafNode("1"), LeafNode("2"))

    def test_audience_ids_as_leaves(self):
        tree = parse_condition_tree(["or", "1", ["and", "2", "3"]])

        assert tree.children[0] == LeafNode("1")
        assert tree.children[1].kind == Operator.AND


class TestEvaluate:
    """Test cases for three-valued evaluation."""

    def test_leaf_true(self):
        assert evaluate(parse_condition_tree(CONDITION_A), lambda _: True) is True

    def test_leaf_false(self):
        assert evaluate(parse_condition_tree(CONDITION_A), lambda _: False) is False

    def test_leaf_matcher_receives_condition_payload(self):
        matcher = MagicMock(return_value=True)

        evaluate(parse_condition_tree(["and", CONDITION_A]), matcher)

        matcher.assert_called_once_with(CONDITION_A)

    def test_and_all_true(self):
        tree = parse_condition_tree(["and", CONDITION_A, CONDITION_B])
        assert evaluate(tree, lambda _: True) is True

    def test_and_one_false(self):
        tree = parse_condition_tree(["and", CONDITION_A, CONDITION_B])
        assert evaluate(tree, returning(True, False)) is False

    def test_and_all_unknown(self):
        tree = parse_condition_tree(["and", CONDITION_A, CONDITION_B])
        assert evaluate(tree, lambda _: None) is None

    def test_and_true_and_unknown(self):
        tree = parse_condition_tree(["and", CONDITION_A, CONDITION_B])
        assert evaluate(tree, returning(True, None)) is None

    def test_and_false_beats_unknown(self):
        tree = parse_condition_tree(["and", CONDITION_A, CONDITION_B])
        assert evaluate(tree, returning(False, None)) is False

    def test_and_short_circuits_on_false(self):
        tree = parse_condition_tree(["and", CONDITION_A, CONDITION_B, CONDITION_C])
        matcher = returning(None, False, True)

        assert evaluate(tree, matcher) is False
        assert matcher.call_count == 2

    def test_or_true_beats_unknown(self):
        tree = parse_condition_tree(["or", CONDITION_A, CONDITION_B])
        assert evaluate(tree, returning(True, None)) is True

    def test_or_unknown_after_false(self):
        tree = parse_condition_tree(["or", CONDITION_A, CONDITION_B])
        assert evaluate(tree, returning(False, None)) is None

    def test_or_all_false(self):
        tree = parse_condition_tree(["or", CONDITION_A, CONDITION_B])
        assert evaluate(tree, lambda _: False) is False

    def test_or_any_true(self):
        tree = parse_condition_tree(["or", CONDITION_A, CONDITION_B, CONDITION_C])
        assert evaluate(tree, returning(False, False, True)) is True

    def test_not_negates(self):
        assert evaluate(parse_condition_tree(["not", CONDITION_A]), lambda _: False) is True
        assert evaluate(parse_condition_tree(["not", CONDITION_B]), lambda _: True) is False

    def test_not_unknown(self):
        assert evaluate(parse_condition_tree(["not", CONDITION_A]), lambda _: None) is None

    def test_not_without_operand(self):
        assert evaluate(parse_condition_tree(["not"]), lambda _: True) is None

    def test_not_ignores_extra_operands(self):
        tree = parse_condition_tree(["not", "1", "2", "1"])

        assert evaluate(tree, lambda audience_id: audience_id == "1") is False
        assert evaluate(tree, lambda audience_id: audience_id == "2") is True

        tree = parse_condition_tree(["not", "1", "2", "3"])
        assert evaluate(tree, lambda audience_id: None if audience_id == "1" else audience_id == "3") is None

    def test_implicit_or(self):
        tree = parse_condition_tree([CONDITION_A, CONDITION_B])

        assert evaluate(tree, returning(True, False)) is True
        assert evaluate(tree, lambda _: False) is False

    @pytest.mark.parametrize("operator", ["and", "or"])
    def test_empty_operand_list_is_unknown(self, operator):
        assert evaluate(parse_condition_tree([operator]), lambda _: True) is None

    def test_empty_list_is_unknown(self):
        assert evaluate(parse_condition_tree([]), lambda _: True) is None

    def test_nested_tree(self):
        tree = parse_condition_tree(["and", "1", ["or", "2", ["not", "3"]]])
        results = {"1": True, "2": None, "3": False}

        assert evaluate(tree, results.get) is True

    @pytest.mark.parametrize("inner", [True, False])
    def test_not_is_negation_when_known(self, inner):
        tree = parse_condition_tree(["not", ["and", "1", "2"]])
        assert evaluate(tree, lambda _: inner) is (not inner)
