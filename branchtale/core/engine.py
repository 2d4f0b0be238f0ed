from __future__ import annotations

import logging
import time

from branchtale.api.models import (
    START_NODE_ID,
    AvailableChoice,
    Choice,
    HistoryEntry,
    Node,
    PlaybackStatus,
    PlaybackView,
    SaveSlot,
    StoryGraph,
)
from branchtale.core.conditions import evaluate
from branchtale.core.variables import VariableStore
from branchtale.fsm import PlaybackFSM
from branchtale.story_store import AUTOSAVE_SLOT, StoryRepository


logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class PlaybackEngine:
    """Walks a story graph for one reader.

    Choices mutate variables through the `VariableStore`, every choice taken is
    recorded in a linear history, and the whole position can be written to or
    restored from named save slots.
    """

    def __init__(self, *, store: VariableStore, repo: StoryRepository, graph: StoryGraph | None = None) -> None:
        self._store = store
        self._repo = repo
        self._graph = StoryGraph()
        self._current_node_id = START_NODE_ID
        self._history: list[HistoryEntry] = []
        self._fsm = PlaybackFSM()
        if graph is not None:
            self.load(graph)
        else:
            self._sync_status()

    @property
    def graph(self) -> StoryGraph:
        return self._graph

    @property
    def store(self) -> VariableStore:
        return self._store

    @property
    def current_node_id(self) -> str:
        return self._current_node_id

    @property
    def status(self) -> PlaybackStatus:
        return self._fsm.status

    def _sync_status(self) -> None:
        status = self._fsm.sync(self.get_current_node())
        if status == PlaybackStatus.stranded:
            logger.warning("Current node %r not found in story", self._current_node_id)

    def load(self, graph: StoryGraph) -> None:
        self._graph = graph
        self._current_node_id = graph.start_node or START_NODE_ID
        self._history = []
        self._store.initialize_from(self._store.definitions)
        self._sync_status()

    def restart(self) -> None:
        self.load(self._graph)

    def get_current_node(self) -> Node | None:
        return self._graph.get_node(self._current_node_id)

    def get_available_choices(self) -> list[AvailableChoice]:
        node = self.get_current_node()
        if node is None:
            return []
        return [
            AvailableChoice(**choice.model_dump(), available=evaluate(choice.condition, self._store))
            for choice in node.choices
        ]

    def execute_choice(self, choice: Choice) -> None:
        """Apply a choice's effects, record it, and follow its `next_node`.

        Availability is the caller's responsibility; see
        `branchtale.choice_processing.validators.take_choice`.
        """

        for op in choice.variable_operations:
            self._store.modify(op.category, op.variable, op.operation, op.value)

        node = self.get_current_node()
        self._history.append(
            HistoryEntry(
                node_id=self._current_node_id,
                text=node.text if node is not None else "",
                choice=choice.text,
                timestamp=_now_ms(),
            )
        )

        if choice.next_node:
            logger.debug("Moving from %r to %r", self._current_node_id, choice.next_node)
            self._current_node_id = choice.next_node
        self._sync_status()

    def get_history(self) -> list[HistoryEntry]:
        return list(self._history)

    def jump_to_history(self, index: int) -> bool:
        """Rewind to the node recorded at `index`, discarding that entry and everything after it."""

        if not 0 <= index < len(self._history):
            return False
        self._current_node_id = self._history[index].node_id
        self._history = self._history[:index]
        self._sync_status()
        return True

    def save_game(self, slot: str = AUTOSAVE_SLOT) -> SaveSlot:
        data = SaveSlot(
            current_node_id=self._current_node_id,
            variables=self._store.snapshot(),
            history=[h.model_copy() for h in self._history],
            timestamp=_now_ms(),
        )
        self._repo.save_slot(slot, data)
        return data

    def load_game(self, slot: str = AUTOSAVE_SLOT) -> bool:
        data = self._repo.load_slot(slot)
        if data is None:
            return False
        self._current_node_id = data.current_node_id
        self._store.restore(data.variables)
        self._history = list(data.history)
        self._sync_status()
        return True

    def view(self) -> PlaybackView:
        return PlaybackView(
            current_node_id=self._current_node_id,
            status=self.status,
            node=self.get_current_node(),
            choices=self.get_available_choices(),
            variables=self._store.snapshot(),
            history_length=len(self._history),
        )
