from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from branchtale.api.models import (
    GRAPH_VERSION,
    START_NODE_ID,
    Choice,
    ChoicePatch,
    ConditionPatch,
    ExportBundle,
    Node,
    NodePatch,
    StoryGraph,
    VariableCategory,
    VariableDefinition,
    VariableDefinitionPatch,
    VariableDefinitionSet,
    VariableOperationPatch,
)
from branchtale.assets.singleton import get_assets
from branchtale.core.defaults import default_story_graph, new_choice, new_node, new_variable_operation
from branchtale.core.patches import (
    apply_choice_patch,
    apply_condition_patch,
    apply_definition_patch,
    apply_node_patch,
    apply_operation_patch,
)
from branchtale.core.variables import VariableStore
from branchtale.story_store import StoryRepository


logger = logging.getLogger(__name__)


class StoryEditor:
    """Authoring operations over a story graph and its variable definitions.

    Every successful mutation writes the full graph (or definition set) back
    through the repository before returning. Lookups that miss return
    `False`/`None`; nothing here raises for a bad id or index.
    """

    def __init__(self, *, repo: StoryRepository, store: VariableStore, graph: StoryGraph | None = None) -> None:
        self._repo = repo
        self._store = store
        if graph is None:
            graph = repo.load_graph() or default_story_graph()
        self._graph = graph

    @property
    def graph(self) -> StoryGraph:
        return self._graph

    def save(self) -> StoryGraph:
        self._repo.save_graph(self._graph)
        return self._graph

    # ---------- Nodes ----------

    def get_node(self, node_id: str) -> Node | None:
        return self._graph.get_node(node_id)

    def list_nodes(self) -> list[Node]:
        return self._graph.list_nodes()

    def create_node(self) -> str:
        stamp = int(time.time() * 1000)
        while f"node_{stamp}" in self._graph.nodes:
            stamp += 1
        node_id = f"node_{stamp}"
        self._graph.nodes[node_id] = new_node(node_id)
        self.save()
        logger.info("Created node %s", node_id)
        return node_id

    def delete_node(self, node_id: str) -> bool:
        # Choices elsewhere that point at the deleted node are left dangling.
        if node_id == START_NODE_ID:
            return False
        self._graph.nodes.pop(node_id, None)
        self.save()
        return True

    def update_node(self, node_id: str, patch: NodePatch) -> bool:
        node = self._graph.get_node(node_id)
        if node is None:
            return False
        self._graph.nodes[node_id] = apply_node_patch(node, patch)
        self.save()
        return True

    # ---------- Choices ----------

    def _choices(self, node_id: str, choice_index: int) -> list[Choice] | None:
        node = self._graph.get_node(node_id)
        if node is None or not 0 <= choice_index < len(node.choices):
            return None
        return node.choices

    def add_choice(self, node_id: str) -> bool:
        node = self._graph.get_node(node_id)
        if node is None:
            return False
        node.choices.append(new_choice())
        self.save()
        return True

    def delete_choice(self, node_id: str, choice_index: int) -> bool:
        choices = self._choices(node_id, choice_index)
        if choices is None:
            return False
        del choices[choice_index]
        self.save()
        return True

    def update_choice(self, node_id: str, choice_index: int, patch: ChoicePatch) -> bool:
        choices = self._choices(node_id, choice_index)
        if choices is None:
            return False
        choices[choice_index] = apply_choice_patch(choices[choice_index], patch)
        self.save()
        return True

    def update_condition(self, node_id: str, choice_index: int, patch: ConditionPatch) -> bool:
        choices = self._choices(node_id, choice_index)
        if choices is None:
            return False
        choice = choices[choice_index]
        choice.condition = apply_condition_patch(choice.condition, patch)
        self.save()
        return True

    # ---------- Variable operations ----------

    def add_variable_operation(self, node_id: str, choice_index: int) -> bool:
        choices = self._choices(node_id, choice_index)
        if choices is None:
            return False
        choices[choice_index].variable_operations.append(new_variable_operation())
        self.save()
        return True

    def delete_variable_operation(self, node_id: str, choice_index: int, op_index: int) -> bool:
        choices = self._choices(node_id, choice_index)
        if choices is None:
            return False
        ops = choices[choice_index].variable_operations
        if not 0 <= op_index < len(ops):
            return False
        del ops[op_index]
        self.save()
        return True

    def update_variable_operation(
        self,
        node_id: str,
        choice_index: int,
        op_index: int,
        patch: VariableOperationPatch,
    ) -> bool:
        choices = self._choices(node_id, choice_index)
        if choices is None:
            return False
        ops = choices[choice_index].variable_operations
        if not 0 <= op_index < len(ops):
            return False
        ops[op_index] = apply_operation_patch(ops[op_index], patch)
        self.save()
        return True

    # ---------- Variable definitions ----------

    def _store_definitions(self, definitions: VariableDefinitionSet, *, reinitialize: bool) -> None:
        self._repo.save_definitions(definitions)
        if reinitialize:
            self._store.initialize_from(definitions)
        else:
            self._store.replace_definitions(definitions)

    def add_variable(self, category: VariableCategory, definition: VariableDefinition) -> bool:
        definitions = self._store.definitions.model_copy(deep=True)
        bucket = definitions.for_category(category)
        if any(d.id == definition.id for d in bucket):
            return False
        bucket.append(definition.model_copy())
        self._store_definitions(definitions, reinitialize=True)
        return True

    def update_variable(self, category: VariableCategory, var_id: str, patch: VariableDefinitionPatch) -> bool:
        definitions = self._store.definitions.model_copy(deep=True)
        bucket = definitions.for_category(category)
        idx = next((i for i, d in enumerate(bucket) if d.id == var_id), None)
        if idx is None:
            return False
        updated = apply_definition_patch(bucket[idx], patch)
        renamed = updated.id != var_id
        if renamed and any(d.id == updated.id for d in bucket):
            return False
        bucket[idx] = updated
        self._store_definitions(definitions, reinitialize=renamed)
        return True

    def delete_variable(self, category: VariableCategory, var_id: str) -> bool:
        # Conditions and operations that reference the variable are left as-is;
        # at playback they read 0 and their writes are dropped.
        definitions = self._store.definitions.model_copy(deep=True)
        bucket = definitions.for_category(category)
        remaining = [d for d in bucket if d.id != var_id]
        if len(remaining) == len(bucket):
            return False
        bucket[:] = remaining
        self._store_definitions(definitions, reinitialize=True)
        return True

    # ---------- Import / export ----------

    def export_graph(self) -> ExportBundle:
        return ExportBundle(
            nodes={k: v.model_copy(deep=True) for k, v in self._graph.nodes.items()},
            start_node=self._graph.start_node,
            variable_definitions=self._store.definitions.model_copy(deep=True),
            version=self._graph.version,
            export_date=datetime.now(tz=UTC).isoformat(),
        )

    def import_graph(self, data: Mapping[str, Any] | ExportBundle) -> bool:
        """Replace the graph (and variable definitions, when present) wholesale.

        Returns False without touching anything if `nodes` is missing, the
        payload does not validate, or it has no start node.
        """

        if isinstance(data, ExportBundle):
            data = data.to_wire()
        if not isinstance(data, Mapping) or data.get("nodes") is None:
            return False

        raw_definitions = data.get("variableDefinitions")
        try:
            graph = StoryGraph.model_validate(
                {
                    "nodes": data["nodes"],
                    "startNode": data.get("startNode") or START_NODE_ID,
                    "version": data.get("version") or GRAPH_VERSION,
                }
            )
            definitions = (
                VariableDefinitionSet.model_validate(raw_definitions) if raw_definitions is not None else None
            )
        except ValidationError as e:
            logger.warning("Rejected story import: %s", e)
            return False

        if not graph.has_node(START_NODE_ID):
            logger.warning("Rejected story import: no %r node", START_NODE_ID)
            return False

        self._graph = graph
        if definitions is not None:
            self._store_definitions(definitions, reinitialize=True)
        self.save()
        logger.info("Imported story with %d nodes", len(graph.nodes))
        return True

    def load_demo(self) -> bool:
        return self.import_graph(get_assets().demo_story)
