"""Rule ordering shared by the rule store and the resolvers"""
from typing import List, Sequence, TypeVar

from ..domain.models import RuleBase

R = TypeVar("R", bound=RuleBase)


def order_by_priority(rules: Sequence[R]) -> List[R]:
    """
    Higher priority first; ties keep insertion order

    Insertion order is the rule's `sequence` when it has one, otherwise its
    position in the given list.
    """
    indexed = list(enumerate(rules))
    indexed.sort(key=lambda pair: (
        -pair[1].priority,
        pair[1].sequence if pair[1].sequence is not None else pair[0],
        pair[0],
    ))
    return [rule for _, rule in indexed]
