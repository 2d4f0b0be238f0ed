from __future__ import annotations

from enum import StrEnum
from typing import Any, Iterator
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


START_NODE_ID = "start"
GRAPH_VERSION = "1.0"


class WireModel(BaseModel):
    """Base for everything that is persisted, exported or served as JSON.

    Attributes are snake_case in Python; the wire format is camelCase so that
    story files and saves written by older editors load unchanged.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class VariableCategory(StrEnum):
    physiological = "physiological"
    emotional = "emotional"
    difficulty = "difficulty"


class ConditionOperator(StrEnum):
    greater = "greater"
    greater_equal = "greaterEqual"
    equal = "equal"
    less_equal = "lessEqual"
    less = "less"
    not_equal = "notEqual"


class OperationKind(StrEnum):
    add = "add"
    subtract = "subtract"
    multiply = "multiply"
    divide = "divide"
    set = "set"


class PlaybackStatus(StrEnum):
    playing = "playing"
    ended = "ended"
    stranded = "stranded"


# category -> variable id -> current value
VariableValues = dict[VariableCategory, dict[str, float]]


class VariableDefinition(WireModel):
    id: str
    name: str = ""
    initial: float = 0
    min: float = 0
    max: float = 100

    # Older editors wrote a cleared number input as null.
    @field_validator("initial", "min", mode="before")
    @classmethod
    def _null_to_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("max", mode="before")
    @classmethod
    def _null_max(cls, v: Any) -> Any:
        return 100 if v is None else v

    def clamp(self, value: float) -> float:
        return max(self.min, min(self.max, value))


class VariableDefinitionSet(WireModel):
    physiological: list[VariableDefinition] = Field(default_factory=list)
    emotional: list[VariableDefinition] = Field(default_factory=list)
    difficulty: list[VariableDefinition] = Field(default_factory=list)

    def for_category(self, category: VariableCategory) -> list[VariableDefinition]:
        match category:
            case VariableCategory.physiological:
                return self.physiological
            case VariableCategory.emotional:
                return self.emotional
            case VariableCategory.difficulty:
                return self.difficulty
        raise ValueError(f"Unknown variable category: {category}")

    def find(self, category: VariableCategory, var_id: str) -> VariableDefinition | None:
        return next((d for d in self.for_category(category) if d.id == var_id), None)

    def iter_definitions(self) -> Iterator[tuple[VariableCategory, VariableDefinition]]:
        for category in VariableCategory:
            for definition in self.for_category(category):
                yield category, definition


class Condition(WireModel):
    # Disabled conditions never block a choice; the remaining fields are kept
    # so that re-enabling restores what the author configured.
    enabled: bool = False
    category: VariableCategory = VariableCategory.physiological
    variable: str = ""
    operator: ConditionOperator = ConditionOperator.greater
    value: float = 0

    @field_validator("value", mode="before")
    @classmethod
    def _null_value(cls, v: Any) -> Any:
        return 0 if v is None else v


class VariableOperation(WireModel):
    category: VariableCategory = VariableCategory.physiological
    variable: str = ""
    operation: OperationKind = OperationKind.add
    value: float = 0

    @field_validator("value", mode="before")
    @classmethod
    def _null_value(cls, v: Any) -> Any:
        return 0 if v is None else v


class Choice(WireModel):
    text: str = ""
    # Empty string means "stay on the current node".
    next_node: str = ""
    condition: Condition = Field(default_factory=Condition)
    variable_operations: list[VariableOperation] = Field(default_factory=list)

    @field_validator("next_node", mode="before")
    @classmethod
    def _null_next_node(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("condition", mode="before")
    @classmethod
    def _null_condition(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("variable_operations", mode="before")
    @classmethod
    def _null_operations(cls, v: Any) -> Any:
        return [] if v is None else v


class AvailableChoice(Choice):
    available: bool


class Node(WireModel):
    id: str
    title: str = ""
    text: str = ""
    choices: list[Choice] = Field(default_factory=list)


class StoryGraph(WireModel):
    nodes: dict[str, Node] = Field(default_factory=dict)
    start_node: str = START_NODE_ID
    version: str = GRAPH_VERSION

    @model_validator(mode="before")
    @classmethod
    def _fill_node_ids(cls, data: Any) -> Any:
        # Hand-written story files sometimes omit the id inside each node.
        if not isinstance(data, dict) or not isinstance(data.get("nodes"), dict):
            return data
        nodes: dict[str, Any] = {}
        for key, raw in data["nodes"].items():
            if isinstance(raw, dict) and not raw.get("id"):
                raw = {**raw, "id": key}
            nodes[key] = raw
        return {**data, "nodes": nodes}

    def get_node(self, node_id: str) -> Node | None:
        return self.nodes.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def list_nodes(self) -> list[Node]:
        """Nodes in insertion order, with the start node moved to the front."""

        ordered = list(self.nodes.values())
        ordered.sort(key=lambda n: n.id != START_NODE_ID)
        return ordered


class HistoryEntry(WireModel):
    node_id: str
    text: str = ""
    choice: str = ""
    # Epoch milliseconds.
    timestamp: int = 0


class SaveSlot(WireModel):
    current_node_id: str
    variables: VariableValues = Field(default_factory=dict)
    history: list[HistoryEntry] = Field(default_factory=list)
    timestamp: int = 0


class ExportBundle(WireModel):
    nodes: dict[str, Node]
    start_node: str = START_NODE_ID
    variable_definitions: VariableDefinitionSet = Field(default_factory=VariableDefinitionSet)
    version: str = GRAPH_VERSION
    export_date: str


# Patches: `None` leaves a field untouched.


class NodePatch(WireModel):
    title: str | None = None
    text: str | None = None
    choices: list[Choice] | None = None


class ChoicePatch(WireModel):
    text: str | None = None
    next_node: str | None = None
    condition: Condition | None = None
    variable_operations: list[VariableOperation] | None = None


class ConditionPatch(WireModel):
    enabled: bool | None = None
    category: VariableCategory | None = None
    variable: str | None = None
    operator: ConditionOperator | None = None
    value: float | None = None


class VariableOperationPatch(WireModel):
    category: VariableCategory | None = None
    variable: str | None = None
    operation: OperationKind | None = None
    value: float | None = None


class VariableDefinitionPatch(WireModel):
    id: str | None = None
    name: str | None = None
    initial: float | None = None
    min: float | None = None
    max: float | None = None


# API views.


class VariableCreateRequest(WireModel):
    id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    initial: float | None = None
    min: float | None = None
    max: float | None = None


class PlaybackView(WireModel):
    current_node_id: str
    status: PlaybackStatus
    node: Node | None = None
    choices: list[AvailableChoice] = Field(default_factory=list)
    variables: VariableValues = Field(default_factory=dict)
    history_length: int = 0


class StoryIdResponse(WireModel):
    story_id: UUID


class StoryListResponse(WireModel):
    stories: list[UUID]


class NodeIdResponse(WireModel):
    node_id: str


class NodeListResponse(WireModel):
    nodes: list[Node]


class HistoryResponse(WireModel):
    history: list[HistoryEntry]


class SaveSlotListResponse(WireModel):
    slots: list[str]
