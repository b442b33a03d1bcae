"""Tests for the condition evaluator"""
import pytest

from ictserve.domain.enums import ConditionOperator
from ictserve.domain.models import Condition
from ictserve.engine.condition_evaluator import ConditionEvaluator


def cond(field, operator, value):
    return Condition(field=field, operator=operator, value=value)


@pytest.fixture
def evaluator() -> ConditionEvaluator:
    return ConditionEvaluator()


class TestConjunction:

    def test_fires_only_when_every_condition_holds(self, evaluator):
        conditions = [cond("priority", "=", "urgent"), cond("status", "!=", "closed")]

        assert evaluator.evaluate(conditions, {"priority": "urgent", "status": "open"}) is True
        assert evaluator.evaluate(conditions, {"priority": "urgent", "status": "closed"}) is False

    def test_empty_condition_list_matches(self, evaluator):
        assert evaluator.evaluate([], {"priority": "low"}) is True

    def test_missing_field_is_false(self, evaluator):
        assert evaluator.evaluate([cond("priority", "=", "urgent")], {"status": "open"}) is False
        assert evaluator.evaluate([cond("priority", "!=", "urgent")], {"status": "open"}) is False

    def test_dot_notation_reads_nested_facts(self, evaluator):
        facts = {"form_values": {"amount": 7500}}
        assert evaluator.evaluate([cond("form_values.amount", ">", 5000)], facts) is True
        assert evaluator.evaluate([cond("form_values.missing", ">", 5000)], facts) is False


class TestOperators:

    @pytest.mark.parametrize("operator,value,expected", [
        (">", 5000, True),
        (">", 6000, False),
        ("<", 6000, True),
        (">=", 5500, True),
        ("<=", 5499, False),
        ("=", "5500", True),
        ("!=", 5500, False),
    ])
    def test_numeric_comparisons(self, evaluator, operator, value, expected):
        assert evaluator.evaluate([cond("asset_value", operator, value)], {"asset_value": 5500}) is expected

    def test_numeric_string_facts_are_coerced(self, evaluator):
        assert evaluator.evaluate([cond("applicant_grade", ">=", 41)], {"applicant_grade": "44"}) is True

    def test_non_numeric_comparison_fails_closed(self, evaluator):
        assert evaluator.evaluate([cond("priority", ">", 3)], {"priority": "urgent"}) is False

    def test_contains_on_string_and_list(self, evaluator):
        assert evaluator.evaluate([cond("title", "contains", "printer")], {"title": "Broken printer on L3"}) is True
        assert evaluator.evaluate([cond("tags", "contains", "vip")], {"tags": ["vip", "network"]}) is True
        assert evaluator.evaluate([cond("tags", "contains", "vip")], {"tags": ["network"]}) is False

    def test_in_accepts_list_or_comma_string(self, evaluator):
        assert evaluator.evaluate([cond("priority", "in", ["high", "urgent"])], {"priority": "urgent"}) is True
        assert evaluator.evaluate([cond("priority", "in", "high, urgent")], {"priority": "high"}) is True
        assert evaluator.evaluate([cond("priority", "in", "low,normal")], {"priority": "urgent"}) is False

    def test_boolean_equality(self, evaluator):
        assert evaluator.evaluate([cond("is_vip", "=", "true")], {"is_vip": True}) is True
        assert evaluator.evaluate([cond("is_vip", "=", "0")], {"is_vip": False}) is True

    def test_unknown_operator_rejected_at_validation(self):
        with pytest.raises(ValueError):
            Condition(field="priority", operator="~=", value="urgent")


class TestExplain:

    def test_reports_each_condition(self, evaluator):
        conditions = [cond("priority", "=", "urgent"), cond("status", "!=", "closed")]
        results = evaluator.explain(conditions, {"priority": "urgent", "status": "closed"})

        assert [r.matched for r in results] == [True, False]
        assert results[1].actual == "closed"
        assert results[1].operator == ConditionOperator.NOT_EQUALS
