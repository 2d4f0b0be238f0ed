from __future__ import annotations

import pytest

from branchtale.api.models import (
    Choice,
    Condition,
    ConditionOperator,
    Node,
    StoryGraph,
    VariableCategory,
)
from branchtale.choice_processing.validators import (
    ChoiceContext,
    ChoiceIndexValidator,
    ValidatorPipeline,
    take_choice,
)
from branchtale.core.engine import PlaybackEngine


def _gated_graph() -> StoryGraph:
    return StoryGraph(
        nodes={
            "start": Node(
                id="start",
                choices=[
                    Choice(text="Free", next_node="b"),
                    Choice(
                        text="Rest",
                        next_node="b",
                        condition=Condition(
                            enabled=True,
                            category=VariableCategory.physiological,
                            variable="energy",
                            operator=ConditionOperator.greater,
                            value=20,
                        ),
                    ),
                ],
            ),
            "b": Node(id="b"),
        }
    )


def test_take_choice_executes_available_choice(engine: PlaybackEngine) -> None:
    engine.load(_gated_graph())

    choice = take_choice(engine, 0)

    assert choice.text == "Free"
    assert engine.current_node_id == "b"


def test_unavailable_choice_is_rejected(engine: PlaybackEngine) -> None:
    engine.load(_gated_graph())
    engine.store.set(VariableCategory.physiological, "energy", 15)

    with pytest.raises(ValueError) as e:
        take_choice(engine, 1)

    assert str(e.value) == "Choice 'Rest' is not available"
    assert engine.current_node_id == "start"
    assert engine.get_history() == []


def test_out_of_range_index_is_rejected(engine: PlaybackEngine) -> None:
    engine.load(_gated_graph())

    with pytest.raises(ValueError) as e:
        take_choice(engine, 7)

    assert "out of range" in str(e.value)


def test_stranded_reader_cannot_choose(engine: PlaybackEngine) -> None:
    engine.load(_gated_graph())
    engine.execute_choice(Choice(text="Lost", next_node="gone"))

    with pytest.raises(ValueError) as e:
        take_choice(engine, 0)

    assert "Current node not found" in str(e.value)


def test_custom_pipeline_can_skip_availability(engine: PlaybackEngine) -> None:
    engine.load(_gated_graph())
    engine.store.set(VariableCategory.physiological, "energy", 0)

    lenient = ValidatorPipeline(validators=(ChoiceIndexValidator(),))
    take_choice(engine, 1, pipeline=lenient)

    assert engine.current_node_id == "b"


def test_index_validator_reports_choice_count(engine: PlaybackEngine) -> None:
    ctx = ChoiceContext(node_id="start", choice_index=2, choices=())

    with pytest.raises(ValueError) as e:
        ChoiceIndexValidator().validate(ctx=ctx, engine=engine)

    assert "(0 choices)" in str(e.value)
