from __future__ import annotations

import json
import logging
from typing import Any, Protocol
from uuid import UUID, uuid4

from pydantic import ValidationError

from branchtale.api.models import SaveSlot, StoryGraph, VariableDefinitionSet
from branchtale.core.defaults import default_story_graph, default_variable_definitions


logger = logging.getLogger(__name__)

STORIES_KEY = "branchtale:stories"
STORY_KEY_PREFIX = "branchtale:story:"  # + {uuid}:{name}

GRAPH_KEY = "storyData"
DEFINITIONS_KEY = "variableDefinitions"
SAVE_KEY_PREFIX = "save_"  # + {slot}
SAVES_INDEX_KEY = "saves"

AUTOSAVE_SLOT = "autosave"


class KeyValueStore(Protocol):
    """String-keyed persistence boundary.

    A `redis.Redis` client created with `decode_responses=True` satisfies this,
    as does `fakeredis.FakeRedis` in tests.
    """

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> Any: ...


class StoryNotFoundError(LookupError):
    pass


class StoryRepository:
    """Typed reads/writes of one story's graph, variable definitions and save slots."""

    def __init__(self, kv: KeyValueStore, story_id: str) -> None:
        self._kv = kv
        self.story_id = story_id

    def _key(self, name: str) -> str:
        return f"{STORY_KEY_PREFIX}{self.story_id}:{name}"

    def load_graph(self) -> StoryGraph | None:
        raw = self._kv.get(self._key(GRAPH_KEY))
        if not raw:
            return None
        return StoryGraph.model_validate_json(raw)

    def save_graph(self, graph: StoryGraph) -> None:
        self._kv.set(self._key(GRAPH_KEY), graph.to_json())

    def load_definitions(self) -> VariableDefinitionSet | None:
        raw = self._kv.get(self._key(DEFINITIONS_KEY))
        if not raw:
            return None
        return VariableDefinitionSet.model_validate_json(raw)

    def save_definitions(self, definitions: VariableDefinitionSet) -> None:
        self._kv.set(self._key(DEFINITIONS_KEY), definitions.to_json())

    def load_slot(self, slot: str) -> SaveSlot | None:
        raw = self._kv.get(self._key(f"{SAVE_KEY_PREFIX}{slot}"))
        if not raw:
            return None
        try:
            return SaveSlot.model_validate_json(raw)
        except ValidationError:
            # An unreadable save behaves like a missing one.
            logger.warning("Ignoring unreadable save slot %r for story %s", slot, self.story_id)
            return None

    def save_slot(self, slot: str, data: SaveSlot) -> None:
        self._kv.set(self._key(f"{SAVE_KEY_PREFIX}{slot}"), data.to_json())
        slots = self.list_slots()
        if slot not in slots:
            slots.append(slot)
            self._kv.set(self._key(SAVES_INDEX_KEY), json.dumps(slots))

    def list_slots(self) -> list[str]:
        raw = self._kv.get(self._key(SAVES_INDEX_KEY))
        if not raw:
            return []
        return [str(s) for s in json.loads(raw)]


def _read_catalog(kv: KeyValueStore) -> list[str]:
    raw = kv.get(STORIES_KEY)
    if not raw:
        return []
    return [str(s) for s in json.loads(raw)]


def create_story(*, kv: KeyValueStore) -> UUID:
    """Register a new story seeded with the default graph and variables."""

    story_id = uuid4()
    repo = StoryRepository(kv, str(story_id))
    repo.save_definitions(default_variable_definitions())
    repo.save_graph(default_story_graph())

    ids = _read_catalog(kv)
    ids.append(str(story_id))
    kv.set(STORIES_KEY, json.dumps(ids))

    logger.info("Created story %s", story_id)
    return story_id


def list_stories(*, kv: KeyValueStore) -> list[UUID]:
    out: list[UUID] = []
    for sid in _read_catalog(kv):
        try:
            out.append(UUID(sid))
        except ValueError:
            continue
    return out


def story_exists(*, kv: KeyValueStore, story_id: UUID | str) -> bool:
    return str(story_id) in _read_catalog(kv)


def require_story(*, kv: KeyValueStore, story_id: UUID | str) -> StoryRepository:
    if not story_exists(kv=kv, story_id=story_id):
        raise StoryNotFoundError("Story not found")
    return StoryRepository(kv, str(story_id))
