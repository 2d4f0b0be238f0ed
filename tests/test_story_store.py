from __future__ import annotations

import json
from uuid import uuid4

import fakeredis
import pytest

from branchtale.api.models import SaveSlot, VariableCategory
from branchtale.core.defaults import default_story_graph
from branchtale.session import open_session
from branchtale.story_store import (
    STORIES_KEY,
    StoryNotFoundError,
    StoryRepository,
    create_story,
    list_stories,
    require_story,
    story_exists,
)


def test_create_story_seeds_defaults(kv: fakeredis.FakeRedis) -> None:
    story_id = create_story(kv=kv)

    assert list_stories(kv=kv) == [story_id]
    assert story_exists(kv=kv, story_id=story_id)
    repo = require_story(kv=kv, story_id=story_id)
    assert repo.load_graph() == default_story_graph()
    defs = repo.load_definitions()
    assert defs is not None and defs.find(VariableCategory.physiological, "health") is not None


def test_keys_are_namespaced_per_story(kv: fakeredis.FakeRedis) -> None:
    story_id = create_story(kv=kv)

    raw = kv.get(f"branchtale:story:{story_id}:storyData")
    assert raw is not None
    assert json.loads(raw)["startNode"] == "start"
    assert kv.get(f"branchtale:story:{story_id}:variableDefinitions") is not None


def test_require_story_rejects_unknown(kv: fakeredis.FakeRedis) -> None:
    with pytest.raises(StoryNotFoundError):
        require_story(kv=kv, story_id=uuid4())


def test_catalog_skips_garbage_ids(kv: fakeredis.FakeRedis) -> None:
    story_id = create_story(kv=kv)
    kv.set(STORIES_KEY, json.dumps([str(story_id), "not-a-uuid"]))

    assert list_stories(kv=kv) == [story_id]


def test_missing_story_data_reads_as_none(repo: StoryRepository) -> None:
    assert repo.load_graph() is None
    assert repo.load_definitions() is None
    assert repo.load_slot("autosave") is None
    assert repo.list_slots() == []


def test_slots_are_indexed_once(repo: StoryRepository) -> None:
    slot = SaveSlot(current_node_id="start")
    repo.save_slot("a", slot)
    repo.save_slot("b", slot)
    repo.save_slot("a", slot)

    assert repo.list_slots() == ["a", "b"]
    loaded = repo.load_slot("a")
    assert loaded is not None and loaded.current_node_id == "start"


def test_unreadable_slot_is_treated_as_missing(repo: StoryRepository, kv: fakeredis.FakeRedis) -> None:
    kv.set("branchtale:story:test-story:save_broken", json.dumps({"history": "nope"}))
    assert repo.load_slot("broken") is None


def test_session_restores_autosave(kv: fakeredis.FakeRedis) -> None:
    story_id = create_story(kv=kv)

    first = open_session(kv=kv, story_id=story_id)
    first.store.set(VariableCategory.physiological, "energy", 33)
    first.engine.execute_choice(first.editor.graph.nodes["start"].choices[0])
    first.autosave()

    second = open_session(kv=kv, story_id=story_id)
    assert second.store.get(VariableCategory.physiological, "energy") == 33
    assert len(second.engine.get_history()) == 1

    fresh = open_session(kv=kv, story_id=story_id, restore_autosave=False)
    assert fresh.store.get(VariableCategory.physiological, "energy") == 100
    assert fresh.engine.get_history() == []


def test_sessions_for_different_stories_are_independent(kv: fakeredis.FakeRedis) -> None:
    a = open_session(kv=kv, story_id=create_story(kv=kv))
    b = open_session(kv=kv, story_id=create_story(kv=kv))

    a.editor.create_node()

    assert len(a.editor.graph.nodes) == 2
    assert len(b.editor.graph.nodes) == 1
