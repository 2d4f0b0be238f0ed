"""Typed partial updates.

Each `apply_*` returns an updated copy and only touches the fields named by
its patch type; fields left as `None` keep their current value.
"""
from __future__ import annotations

from branchtale.api.models import (
    Choice,
    ChoicePatch,
    Condition,
    ConditionPatch,
    Node,
    NodePatch,
    VariableDefinition,
    VariableDefinitionPatch,
    VariableOperation,
    VariableOperationPatch,
)


def apply_node_patch(node: Node, patch: NodePatch) -> Node:
    updated = node.model_copy(deep=True)
    if patch.title is not None:
        updated.title = patch.title
    if patch.text is not None:
        updated.text = patch.text
    if patch.choices is not None:
        updated.choices = [c.model_copy(deep=True) for c in patch.choices]
    return updated


def apply_choice_patch(choice: Choice, patch: ChoicePatch) -> Choice:
    updated = choice.model_copy(deep=True)
    if patch.text is not None:
        updated.text = patch.text
    if patch.next_node is not None:
        updated.next_node = patch.next_node
    if patch.condition is not None:
        updated.condition = patch.condition.model_copy()
    if patch.variable_operations is not None:
        updated.variable_operations = [op.model_copy() for op in patch.variable_operations]
    return updated


def apply_condition_patch(condition: Condition, patch: ConditionPatch) -> Condition:
    updated = condition.model_copy()
    if patch.enabled is not None:
        updated.enabled = patch.enabled
    if patch.category is not None:
        updated.category = patch.category
    if patch.variable is not None:
        updated.variable = patch.variable
    if patch.operator is not None:
        updated.operator = patch.operator
    if patch.value is not None:
        updated.value = patch.value
    return updated


def apply_operation_patch(op: VariableOperation, patch: VariableOperationPatch) -> VariableOperation:
    updated = op.model_copy()
    if patch.category is not None:
        updated.category = patch.category
    if patch.variable is not None:
        updated.variable = patch.variable
    if patch.operation is not None:
        updated.operation = patch.operation
    if patch.value is not None:
        updated.value = patch.value
    return updated


def apply_definition_patch(definition: VariableDefinition, patch: VariableDefinitionPatch) -> VariableDefinition:
    updated = definition.model_copy()
    if patch.id is not None:
        updated.id = patch.id
    if patch.name is not None:
        updated.name = patch.name
    if patch.initial is not None:
        updated.initial = patch.initial
    if patch.min is not None:
        updated.min = patch.min
    if patch.max is not None:
        updated.max = patch.max
    return updated
