"""
Three-valued evaluation of condition trees.
"""

from typing import Any, Callable, Sequence

from .models import ConditionNode, LeafNode, Operator, OperatorNode, TriState


LeafMatcher = Callable[[Any], TriState]


def evaluate(node: ConditionNode, leaf_match: LeafMatcher) -> TriState:
    """
    Evaluate a condition tree using Kleene logic.

    Args:
        node: Root of a tree built by parse_condition_tree.
        leaf_match: Called with each leaf's condition payload.

    Returns:
        True or False when the tree can be decided, None otherwise.
    """
    if isinstance(node, LeafNode):
        return leaf_match(node.condition)

    if node.kind == Operator.AND:
        return _and(node.children, leaf_match)
    if node.kind == Operator.NOT:
        return _not(node.children, leaf_match)
    return _or(node.children, leaf_match)


def _and(operands: Sequence[ConditionNode], leaf_match: LeafMatcher) -> TriState:
    if not operands:
        return None

    saw_unknown = False
    for operand in operands:
        result = evaluate(operand, leaf_match)
        if result is False:
            return False
        if result is None:
            saw_unknown = True
    return None if saw_unknown else True


def _or(operands: Sequence[ConditionNode], leaf_match: LeafMatcher) -> TriState:
    if not operands:
        return None

    saw_unknown = False
    for operand in operands:
        result = evaluate(operand, leaf_match)
        if result is True:
            return True
        if result is None:
            saw_unknown = True
    return None if saw_unknown else False


def _not(operands: Sequence[ConditionNode], leaf_match: LeafMatcher) -> TriState:
    # Only the first operand is negated; the rest are ignored
    if not operands:
        return None
    result = evaluate(operands[0], leaf_match)
    return None if result is None else not result
