"""
Condition tree models for audience targeting.
"""

from typing import Any, Optional, Tuple, Union
from dataclasses import dataclass
from enum import Enum


# True/False, or None when there is not enough information to decide
TriState = Optional[bool]


class Operator(str, Enum):
    """Operators that may lead a condition list."""
    AND = "and"
    OR = "or"
    NOT = "not"


OPERATOR_TOKENS = {operator.value: operator for operator in Operator}


@dataclass(frozen=True)
class LeafNode:
    """A leaf condition, opaque to the tree walker."""
    condition: Any


@dataclass(frozen=True)
class OperatorNode:
    """An operator applied to its child nodes."""
    kind: Operator
    children: Tuple["ConditionNode", ...] = ()


ConditionNode = Union[OperatorNode, LeafNode]


def parse_condition_tree(raw: Any) -> ConditionNode:
    """
    Build a typed condition tree from a raw rules document.

    Lists are operator nodes. A list whose first element is "and", "or" or
    "not" applies that operator to the remaining elements; any other list is
    an implicit "or" over all of its elements, so unknown operator tokens
    degrade into leaves instead of failing the whole tree. Anything that is
    not a list becomes a leaf.
    """
    if isinstance(raw, (list, tuple)):
        head = raw[0] if raw else None
        if isinstance(head, str) and head in OPERATOR_TOKENS:
            kind = OPERATOR_TOKENS[head]
            operands = raw[1:]
        else:
            kind = Operator.OR
            operands = raw
        return OperatorNode(kind=kind, children=tuple(parse_condition_tree(item) for item in operands))

    return LeafNode(condition=raw)
