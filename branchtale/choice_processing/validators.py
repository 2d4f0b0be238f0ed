from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from branchtale.api.models import AvailableChoice
from branchtale.core.engine import PlaybackEngine


@dataclass(frozen=True, slots=True)
class ChoiceContext:
    """Inputs available to validators."""

    node_id: str
    choice_index: int
    choices: tuple[AvailableChoice, ...]


class ChoiceValidator(ABC):
    """A small, composable validation unit for a requested choice."""

    @abstractmethod
    def validate(self, *, ctx: ChoiceContext, engine: PlaybackEngine) -> None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class NodeResolvedValidator(ChoiceValidator):
    """The reader must be standing on a node that exists."""

    def validate(self, *, ctx: ChoiceContext, engine: PlaybackEngine) -> None:
        if engine.get_current_node() is None:
            raise ValueError(f"Current node not found: {ctx.node_id}")


@dataclass(frozen=True, slots=True)
class ChoiceIndexValidator(ChoiceValidator):
    def validate(self, *, ctx: ChoiceContext, engine: PlaybackEngine) -> None:
        if not 0 <= ctx.choice_index < len(ctx.choices):
            raise ValueError(
                f"Choice index {ctx.choice_index} out of range for node '{ctx.node_id}' "
                f"({len(ctx.choices)} choices)"
            )


@dataclass(frozen=True, slots=True)
class ChoiceAvailableValidator(ChoiceValidator):
    """Reject choices whose condition does not hold right now."""

    def validate(self, *, ctx: ChoiceContext, engine: PlaybackEngine) -> None:
        choice = ctx.choices[ctx.choice_index]
        if not choice.available:
            raise ValueError(f"Choice '{choice.text}' is not available")


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[ChoiceValidator, ...]

    def validate(self, *, ctx: ChoiceContext, engine: PlaybackEngine) -> None:
        for v in self.validators:
            v.validate(ctx=ctx, engine=engine)


DEFAULT_CHOICE_PIPELINE = ValidatorPipeline(
    validators=(
        NodeResolvedValidator(),
        ChoiceIndexValidator(),
        ChoiceAvailableValidator(),
    )
)


def take_choice(
    engine: PlaybackEngine,
    choice_index: int,
    *,
    pipeline: ValidatorPipeline = DEFAULT_CHOICE_PIPELINE,
) -> AvailableChoice:
    """Validate and execute the choice at `choice_index` on the current node.

    Raises ValueError when the pipeline rejects the request; the engine is
    left untouched in that case.
    """

    ctx = ChoiceContext(
        node_id=engine.current_node_id,
        choice_index=choice_index,
        choices=tuple(engine.get_available_choices()),
    )
    pipeline.validate(ctx=ctx, engine=engine)
    choice = ctx.choices[choice_index]
    engine.execute_choice(choice)
    return choice
