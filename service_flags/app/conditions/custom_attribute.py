"""
Custom attribute condition evaluation.

A custom attribute condition is a leaf of an audience tree, e.g.

    {"type": "custom_attribute", "name": "plan", "match": "exact", "value": "pro"}

evaluated against the user's attribute map. Every check degrades to None
(unknown) on missing attributes, type mismatches, or condition kinds this
runtime does not recognize, so a forward-incompatible datafile never breaks
decisioning for the whole tree.
"""

import math
from typing import Any, Callable, Dict, Mapping, Optional

from shared.logging import get_logger
from .models import TriState
from .semantic_version import compare_version

CUSTOM_ATTRIBUTE_CONDITION_TYPE = "custom_attribute"

EXACT_MATCH_TYPE = "exact"
EXISTS_MATCH_TYPE = "exists"
GREATER_THAN_MATCH_TYPE = "gt"
GREATER_OR_EQUAL_MATCH_TYPE = "ge"
LESS_THAN_MATCH_TYPE = "lt"
LESS_OR_EQUAL_MATCH_TYPE = "le"
SUBSTRING_MATCH_TYPE = "substring"
SEMVER_EQUAL_MATCH_TYPE = "semver_eq"
SEMVER_GREATER_THAN_MATCH_TYPE = "semver_gt"
SEMVER_GREATER_OR_EQUAL_MATCH_TYPE = "semver_ge"
SEMVER_LESS_THAN_MATCH_TYPE = "semver_lt"
SEMVER_LESS_OR_EQUAL_MATCH_TYPE = "semver_le"

# Numbers beyond this magnitude cannot be compared exactly across runtimes
MAX_SAFE_NUMBER = 2 ** 53

AttributeMap = Mapping[str, Any]

_MISSING = object()


def _type_tag(value: Any) -> Optional[str]:
    """Classify a value the way datafile consumers do; bool is not a number."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return None


def _is_safe_number(value: Any) -> bool:
    return (
        _type_tag(value) == "number"
        and math.isfinite(value)
        and abs(value) <= MAX_SAFE_NUMBER
    )


class CustomAttributeEvaluator:
    """Leaf matcher for custom attribute audience conditions."""

    def __init__(self):
        self.logger = get_logger("flags.custom_attribute")
        self._evaluators: Dict[str, Callable[[Mapping[str, Any], Any], TriState]] = {
            EXACT_MATCH_TYPE: self._exact,
            EXISTS_MATCH_TYPE: self._exists,
            GREATER_THAN_MATCH_TYPE: self._numeric(lambda a, b: a > b),
            GREATER_OR_EQUAL_MATCH_TYPE: self._numeric(lambda a, b: a >= b),
            LESS_THAN_MATCH_TYPE: self._numeric(lambda a, b: a < b),
            LESS_OR_EQUAL_MATCH_TYPE: self._numeric(lambda a, b: a <= b),
            SUBSTRING_MATCH_TYPE: self._substring,
            SEMVER_EQUAL_MATCH_TYPE: self._semver(lambda result: result == 0),
            SEMVER_GREATER_THAN_MATCH_TYPE: self._semver(lambda result: result > 0),
            SEMVER_GREATER_OR_EQUAL_MATCH_TYPE: self._semver(lambda result: result >= 0),
            SEMVER_LESS_THAN_MATCH_TYPE: self._semver(lambda result: result < 0),
            SEMVER_LESS_OR_EQUAL_MATCH_TYPE: self._semver(lambda result: result <= 0),
        }

    def evaluate(self, condition: Mapping[str, Any], attributes: Optional[AttributeMap]) -> TriState:
        """
        Evaluate a custom attribute condition against user attributes.

        Returns:
            True/False if the attributes match/don't match the condition,
            None if the condition cannot be evaluated.
        """
        if not isinstance(condition, Mapping) or condition.get("type") != CUSTOM_ATTRIBUTE_CONDITION_TYPE:
            self.logger.warning("Unknown condition type", condition=condition)
            return None

        match = condition.get("match")
        if match is None:
            match = EXACT_MATCH_TYPE
        evaluator = self._evaluators.get(match)
        if evaluator is None:
            self.logger.warning("Unknown match type", match=match, condition=dict(condition))
            return None

        attributes = attributes or {}
        user_value = attributes.get(condition.get("name"), _MISSING)
        if user_value is _MISSING and match != EXISTS_MATCH_TYPE:
            self.logger.debug("Missing attribute value", name=condition.get("name"), match=match)
            return None

        return evaluator(condition, user_value)

    def _exists(self, condition: Mapping[str, Any], user_value: Any) -> TriState:
        return user_value is not _MISSING and user_value is not None

    def _exact(self, condition: Mapping[str, Any], user_value: Any) -> TriState:
        condition_value = condition.get("value")
        condition_type = _type_tag(condition_value)

        if condition_type is None or (condition_type == "number" and not _is_safe_number(condition_value)):
            self.logger.warning("Unexpected condition value", condition=dict(condition))
            return None

        if user_value is None:
            self.logger.debug("Attribute value is null", name=condition.get("name"))
            return None

        if _type_tag(user_value) != condition_type:
            self.logger.warning(
                "Unexpected attribute type",
                name=condition.get("name"),
                attribute_type=type(user_value).__name__
            )
            return None

        if condition_type == "number" and not _is_safe_number(user_value):
            self.logger.warning("Attribute value out of bounds", name=condition.get("name"))
            return None

        return condition_value == user_value

    def _numeric(self, compare: Callable[[Any, Any], bool]):
        def evaluate_numeric(condition: Mapping[str, Any], user_value: Any) -> TriState:
            condition_value = condition.get("value")
            if not _is_safe_number(condition_value):
                self.logger.warning("Unexpected condition value", condition=dict(condition))
                return None
            if not _is_safe_number(user_value):
                self.logger.warning(
                    "Attribute is not a comparable number",
                    name=condition.get("name"),
                    attribute_type=type(user_value).__name__
                )
                return None
            return compare(user_value, condition_value)

        return evaluate_numeric

    def _substring(self, condition: Mapping[str, Any], user_value: Any) -> TriState:
        condition_value = condition.get("value")
        if not isinstance(condition_value, str):
            self.logger.warning("Unexpected condition value", condition=dict(condition))
            return None
        if not isinstance(user_value, str):
            self.logger.warning(
                "Unexpected attribute type",
                name=condition.get("name"),
                attribute_type=type(user_value).__name__
            )
            return None
        return condition_value in user_value

    def _semver(self, accept: Callable[[int], bool]):
        def evaluate_semver(condition: Mapping[str, Any], user_value: Any) -> TriState:
            condition_value = condition.get("value")
            if not isinstance(condition_value, str):
                self.logger.warning("Unexpected condition value", condition=dict(condition))
                return None
            if not isinstance(user_value, str):
                self.logger.warning(
                    "Unexpected attribute type",
                    name=condition.get("name"),
                    attribute_type=type(user_value).__name__
                )
                return None
            result = compare_version(condition_value, user_value)
            if result is None:
                return None
            return accept(result)

        return evaluate_semver


_default_evaluator = CustomAttributeEvaluator()


def make_attribute_matcher(
    attributes: Optional[AttributeMap],
    evaluator: Optional[CustomAttributeEvaluator] = None
) -> Callable[[Any], TriState]:
    """Bind user attributes into a leaf matcher for the tree evaluator."""
    evaluator = evaluator or _default_evaluator

    def match(condition: Any) -> TriState:
        return evaluator.evaluate(condition, attributes)

    return match
