"""
Audience condition package.

Evaluates targeting rule trees with three-valued (Kleene) logic. The tree
walker knows nothing about leaf semantics; the custom attribute evaluator
supplies the leaf matcher used for user targeting.

Modules of interest:
- models: Typed condition tree and the one-time parser for raw documents.
- tree_evaluator: AND/OR/NOT walker over the typed tree.
- custom_attribute: Match kinds for custom attribute conditions.
- semantic_version: Version comparison used by the semver match kinds.
"""

from .models import Operator, OperatorNode, LeafNode, ConditionNode, TriState, parse_condition_tree
from .tree_evaluator import evaluate
from .custom_attribute import CustomAttributeEvaluator, make_attribute_matcher

__all__ = [
    "Operator",
    "OperatorNode",
    "LeafNode",
    "ConditionNode",
    "TriState",
    "parse_condition_tree",
    "evaluate",
    "CustomAttributeEvaluator",
    "make_attribute_matcher",
]
