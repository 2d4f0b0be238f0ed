from __future__ import annotations

from branchtale.api.models import (
    GRAPH_VERSION,
    START_NODE_ID,
    Choice,
    Condition,
    ConditionOperator,
    Node,
    OperationKind,
    StoryGraph,
    VariableCategory,
    VariableDefinition,
    VariableDefinitionSet,
    VariableOperation,
)


NEW_NODE_TITLE = "New node"
NEW_NODE_TEXT = "Enter the story text here..."
NEW_CHOICE_TEXT = "New choice"

NEW_VARIABLE_INITIAL = 50.0
NEW_VARIABLE_MIN = 0.0
NEW_VARIABLE_MAX = 100.0


def _bounded(var_id: str, name: str, initial: float) -> VariableDefinition:
    return VariableDefinition(id=var_id, name=name, initial=initial, min=0, max=100)


def default_variable_definitions() -> VariableDefinitionSet:
    return VariableDefinitionSet(
        physiological=[
            _bounded("health", "Health", 100),
            _bounded("energy", "Energy", 100),
            _bounded("hunger", "Hunger", 0),
        ],
        emotional=[
            _bounded("affection", "Affection", 50),
            _bounded("trust", "Trust", 50),
            _bounded("shame", "Shame", 0),
        ],
        difficulty=[
            _bounded("sanity", "Sanity", 100),
            _bounded("sensitivity", "Sensitivity", 0),
            _bounded("stress", "Stress", 0),
        ],
    )


def default_story_graph() -> StoryGraph:
    start = Node(
        id=START_NODE_ID,
        title="Start",
        text=(
            "Welcome to your interactive story!\n\n"
            "This is where the story begins. Switch to the editor to change this text, "
            "add choices, and start writing."
        ),
        choices=[Choice(text="Continue")],
    )
    return StoryGraph(nodes={START_NODE_ID: start}, start_node=START_NODE_ID, version=GRAPH_VERSION)


def new_node(node_id: str) -> Node:
    return Node(id=node_id, title=NEW_NODE_TITLE, text=NEW_NODE_TEXT, choices=[])


def new_choice() -> Choice:
    return Choice(
        text=NEW_CHOICE_TEXT,
        next_node="",
        condition=Condition(
            enabled=False,
            category=VariableCategory.physiological,
            variable="",
            operator=ConditionOperator.greater,
            value=0,
        ),
        variable_operations=[],
    )


def new_variable_operation() -> VariableOperation:
    return VariableOperation(
        category=VariableCategory.physiological,
        variable="",
        operation=OperationKind.add,
        value=0,
    )


def new_variable_definition(var_id: str, name: str) -> VariableDefinition:
    return VariableDefinition(
        id=var_id,
        name=name,
        initial=NEW_VARIABLE_INITIAL,
        min=NEW_VARIABLE_MIN,
        max=NEW_VARIABLE_MAX,
    )
