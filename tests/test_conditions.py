from __future__ import annotations

import pytest

from branchtale.api.models import Condition, ConditionOperator, VariableCategory
from branchtale.core.conditions import evaluate
from branchtale.core.variables import VariableStore


def _energy(op: ConditionOperator, value: float, *, enabled: bool = True) -> Condition:
    return Condition(
        enabled=enabled,
        category=VariableCategory.physiological,
        variable="energy",
        operator=op,
        value=value,
    )


def test_missing_or_disabled_condition_holds(store: VariableStore) -> None:
    assert evaluate(None, store) is True
    assert evaluate(Condition(), store) is True
    # Would be false if enabled.
    assert evaluate(_energy(ConditionOperator.less, 0, enabled=False), store) is True


@pytest.mark.parametrize(
    ("op", "value", "expected"),
    [
        (ConditionOperator.greater, 20, False),
        (ConditionOperator.greater, 10, True),
        (ConditionOperator.greater_equal, 15, True),
        (ConditionOperator.equal, 15, True),
        (ConditionOperator.not_equal, 15, False),
        (ConditionOperator.less, 15, False),
        (ConditionOperator.less_equal, 15, True),
    ],
)
def test_operators(store: VariableStore, op: ConditionOperator, value: float, expected: bool) -> None:
    store.set(VariableCategory.physiological, "energy", 15)
    assert evaluate(_energy(op, value), store) is expected


def test_unknown_variable_compares_as_zero(store: VariableStore) -> None:
    cond = Condition(
        enabled=True,
        category=VariableCategory.emotional,
        variable="courage",
        operator=ConditionOperator.equal,
        value=0,
    )
    assert evaluate(cond, store) is True


def test_operator_parses_from_wire_names() -> None:
    cond = Condition.model_validate({"enabled": True, "operator": "greaterEqual", "variable": "energy"})
    assert cond.operator is ConditionOperator.greater_equal


@pytest.mark.parametrize("op", list(ConditionOperator))
@pytest.mark.parametrize("category", list(VariableCategory))
@pytest.mark.parametrize("value", [-5, 0, 1e6])
def test_disabled_condition_ignores_other_fields(
    store: VariableStore, op: ConditionOperator, category: VariableCategory, value: float
) -> None:
    cond = Condition(enabled=False, category=category, variable="health", operator=op, value=value)
    assert evaluate(cond, store) is True
