"""Tests for rule ordering"""
from ictserve.domain.models import Rule
from ictserve.engine.ordering import order_by_priority


def rule(name, priority, sequence=None):
    return Rule(name=name, module="helpdesk", priority=priority, sequence=sequence)


def test_higher_priority_first():
    ordered = order_by_priority([rule("low", 1), rule("high", 10), rule("mid", 5)])
    assert [r.name for r in ordered] == ["high", "mid", "low"]


def test_ties_break_by_sequence():
    ordered = order_by_priority([rule("second", 5, sequence=2), rule("first", 5, sequence=1)])
    assert [r.name for r in ordered] == ["first", "second"]


def test_ties_without_sequence_keep_list_order():
    ordered = order_by_priority([rule("a", 3), rule("b", 3), rule("c", 3)])
    assert [r.name for r in ordered] == ["a", "b", "c"]
