from __future__ import annotations

from branchtale.api.models import Condition, ConditionOperator
from branchtale.core.variables import VariableStore


def evaluate(condition: Condition | None, store: VariableStore) -> bool:
    """Return whether `condition` holds for the current variable values.

    A missing or disabled condition never blocks a choice.
    """

    if condition is None or not condition.enabled:
        return True

    current = store.get(condition.category, condition.variable)
    target = condition.value

    match condition.operator:
        case ConditionOperator.equal:
            return current == target
        case ConditionOperator.not_equal:
            return current != target
        case ConditionOperator.greater:
            return current > target
        case ConditionOperator.greater_equal:
            return current >= target
        case ConditionOperator.less:
            return current < target
        case ConditionOperator.less_equal:
            return current <= target

    raise ValueError(f"Unknown condition operator: {condition.operator}")
