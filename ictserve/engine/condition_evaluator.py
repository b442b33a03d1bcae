"""Condition Evaluator - Safe evaluation of rule conditions"""
from typing import Any, Dict, List, Optional, Sequence

from ..domain.models import Condition, ConditionResult
from ..domain.enums import ConditionOperator
from ..utils.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


class ConditionEvaluator:
    """
    Evaluate rule conditions against a fact bag

    Conditions are ANDed. Uses a fixed operator set - no eval() or exec().
    A field absent from the fact bag makes its condition false.
    """

    def evaluate(
        self,
        conditions: Sequence[Condition],
        facts: Dict[str, Any]
    ) -> bool:
        """
        Evaluate a list of conditions

        Args:
            conditions: Conditions that must all hold
            facts: Attributes of the ticket, loan or asset

        Returns:
            True if every condition is met (or the list is empty)
        """
        for condition in conditions:
            if not self._evaluate_single(condition, facts):
                return False
        return True

    def explain(
        self,
        conditions: Sequence[Condition],
        facts: Dict[str, Any]
    ) -> List[ConditionResult]:
        """Per-condition results, used by the admin test commands"""
        results = []
        for condition in conditions:
            actual = self._get_field_value(condition.field, facts)
            results.append(ConditionResult(
                field=condition.field,
                operator=condition.operator,
                expected=condition.value,
                actual=None if actual is _MISSING else actual,
                matched=self._evaluate_single(condition, facts),
            ))
        return results

    def _evaluate_single(
        self,
        condition: Condition,
        facts: Dict[str, Any]
    ) -> bool:
        """Evaluate a single condition"""
        field_value = self._get_field_value(condition.field, facts)
        if field_value is _MISSING:
            logger.debug(f"Fact '{condition.field}' not present, condition is false")
            return False

        try:
            return self._compare(field_value, condition.operator, condition.value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Condition evaluation failed: {e}")
            return False  # Fail closed

    def _get_field_value(self, field_path: str, facts: Dict[str, Any]) -> Any:
        """
        Get field value from facts using dot notation

        Example: "form_values.amount" -> facts["form_values"]["amount"]
        """
        value: Any = facts
        for part in field_path.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return _MISSING
        return value

    def _compare(
        self,
        field_value: Any,
        operator: ConditionOperator,
        compare_value: Any
    ) -> bool:
        """Compare values using operator"""

        if operator == ConditionOperator.EQUALS:
            return self._loose_equals(field_value, compare_value)

        elif operator == ConditionOperator.NOT_EQUALS:
            return not self._loose_equals(field_value, compare_value)

        elif operator == ConditionOperator.GREATER_THAN:
            return self._compare_numeric(field_value, compare_value, lambda a, b: a > b)

        elif operator == ConditionOperator.LESS_THAN:
            return self._compare_numeric(field_value, compare_value, lambda a, b: a < b)

        elif operator == ConditionOperator.GREATER_THAN_OR_EQUALS:
            return self._compare_numeric(field_value, compare_value, lambda a, b: a >= b)

        elif operator == ConditionOperator.LESS_THAN_OR_EQUALS:
            return self._compare_numeric(field_value, compare_value, lambda a, b: a <= b)

        elif operator == ConditionOperator.CONTAINS:
            if field_value is None:
                return False
            if isinstance(field_value, (list, tuple, set)):
                return any(self._loose_equals(item, compare_value) for item in field_value)
            return str(compare_value) in str(field_value)

        elif operator == ConditionOperator.IN:
            return any(
                self._loose_equals(field_value, candidate)
                for candidate in self._as_list(compare_value)
            )

        return False

    def _compare_numeric(
        self,
        field_value: Any,
        compare_value: Any,
        comparator
    ) -> bool:
        """Compare numeric values; anything non-numeric is a non-match"""
        a = self._to_number(field_value)
        b = self._to_number(compare_value)
        if a is None or b is None:
            return False
        return comparator(a, b)

    def _loose_equals(self, field_value: Any, compare_value: Any) -> bool:
        """Equality with the coercions the admin form implies (all values are typed as text)"""
        if field_value is None or compare_value is None:
            return field_value is None and compare_value in (None, "")

        if isinstance(field_value, bool) or isinstance(compare_value, bool):
            return self._to_bool(field_value) == self._to_bool(compare_value)

        a = self._to_number(field_value)
        b = self._to_number(compare_value)
        if a is not None and b is not None:
            return a == b

        return str(field_value).strip() == str(compare_value).strip()

    @staticmethod
    def _as_list(value: Any) -> List[Any]:
        if isinstance(value, (list, tuple, set)):
            return list(value)
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return [value]

    @staticmethod
    def _to_number(value: Any) -> Optional[float]:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                return None
        return None

    @staticmethod
    def _to_bool(value: Any) -> Optional[bool]:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        text = str(value).strip().lower()
        if text in ("true", "1", "yes"):
            return True
        if text in ("false", "0", "no", ""):
            return False
        return None
