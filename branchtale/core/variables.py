from __future__ import annotations

import logging
from collections.abc import Mapping

from branchtale.api.models import (
    OperationKind,
    VariableCategory,
    VariableDefinition,
    VariableDefinitionSet,
    VariableValues,
)


logger = logging.getLogger(__name__)


def _empty_values() -> VariableValues:
    return {category: {} for category in VariableCategory}


def _as_category(category: VariableCategory | str) -> VariableCategory | None:
    try:
        return VariableCategory(category)
    except ValueError:
        return None


class VariableStore:
    """Named numeric variables grouped by category, each bounded by its definition.

    Reads of unknown variables yield 0 and writes to unknown variables are
    dropped, so dangling references in a story never raise during playback.
    """

    def __init__(self, definitions: VariableDefinitionSet | None = None) -> None:
        self._definitions = VariableDefinitionSet()
        self._values: VariableValues = _empty_values()
        if definitions is not None:
            self.initialize_from(definitions)

    @property
    def definitions(self) -> VariableDefinitionSet:
        return self._definitions

    def definition(self, category: VariableCategory | str, var_id: str) -> VariableDefinition | None:
        cat = _as_category(category)
        if cat is None:
            return None
        return self._definitions.find(cat, var_id)

    def get(self, category: VariableCategory | str, var_id: str) -> float:
        cat = _as_category(category)
        if cat is None:
            return 0
        return self._values[cat].get(var_id, 0)

    def set(self, category: VariableCategory | str, var_id: str, value: float) -> None:
        definition = self.definition(category, var_id)
        if definition is None:
            logger.debug("Dropping write to undefined variable %s.%s", category, var_id)
            return
        self._values[VariableCategory(category)][var_id] = definition.clamp(value)

    def modify(
        self,
        category: VariableCategory | str,
        var_id: str,
        operation: OperationKind | str,
        operand: float,
    ) -> None:
        current = self.get(category, var_id)

        match OperationKind(operation):
            case OperationKind.add:
                new_value = current + operand
            case OperationKind.subtract:
                new_value = current - operand
            case OperationKind.multiply:
                new_value = current * operand
            case OperationKind.divide:
                # Division by zero leaves the value alone.
                new_value = current / operand if operand != 0 else current
            case OperationKind.set:
                new_value = operand

        self.set(category, var_id, new_value)

    def initialize_from(self, definitions: VariableDefinitionSet) -> None:
        """Adopt a definition set and reset every value to its `initial`."""

        self._definitions = definitions.model_copy(deep=True)
        self._values = _empty_values()
        for category, definition in self._definitions.iter_definitions():
            self._values[category][definition.id] = definition.initial

    def replace_definitions(self, definitions: VariableDefinitionSet) -> None:
        """Swap bounds/names without resetting current values.

        Values that fall outside their new bounds are clamped into them.
        """

        self._definitions = definitions.model_copy(deep=True)
        for category, definition in self._definitions.iter_definitions():
            bucket = self._values[category]
            if definition.id in bucket:
                bucket[definition.id] = definition.clamp(bucket[definition.id])

    def values_for(self, category: VariableCategory) -> dict[str, float]:
        return dict(self._values[category])

    def snapshot(self) -> VariableValues:
        return {category: dict(values) for category, values in self._values.items()}

    def restore(self, values: Mapping[VariableCategory, Mapping[str, float]]) -> None:
        restored = _empty_values()
        for category, bucket in values.items():
            cat = _as_category(category)
            if cat is None:
                continue
            restored[cat] = dict(bucket)
        self._values = restored
