from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from branchtale.api.models import SaveSlot
from branchtale.core.defaults import default_variable_definitions
from branchtale.core.editor import StoryEditor
from branchtale.core.engine import PlaybackEngine
from branchtale.core.variables import VariableStore
from branchtale.story_store import AUTOSAVE_SLOT, KeyValueStore, StoryRepository, require_story


@dataclass(slots=True)
class StorySession:
    """One story's editor and one reader's playback, wired to a shared variable store.

    Sessions are plain objects built per caller; nothing here is process-global,
    so several stories (or several playthroughs) can live side by side.
    """

    story_id: str
    repo: StoryRepository
    store: VariableStore
    editor: StoryEditor
    engine: PlaybackEngine

    def autosave(self) -> SaveSlot:
        return self.engine.save_game(AUTOSAVE_SLOT)

    def reload_playback(self) -> None:
        """Restart playback on the editor's current graph (after import/demo)."""

        self.engine.load(self.editor.graph)


def build_session(*, repo: StoryRepository, restore_autosave: bool = True) -> StorySession:
    store = VariableStore(repo.load_definitions() or default_variable_definitions())
    editor = StoryEditor(repo=repo, store=store)
    engine = PlaybackEngine(store=store, repo=repo, graph=editor.graph)
    if restore_autosave:
        engine.load_game(AUTOSAVE_SLOT)
    return StorySession(story_id=repo.story_id, repo=repo, store=store, editor=editor, engine=engine)


def open_session(*, kv: KeyValueStore, story_id: UUID | str, restore_autosave: bool = True) -> StorySession:
    """Open a registered story; raises `StoryNotFoundError` for unknown ids."""

    repo = require_story(kv=kv, story_id=story_id)
    return build_session(repo=repo, restore_autosave=restore_autosave)
