from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, get_args
from uuid import UUID

import redis

from branchtale.api.models import PlaybackView, SaveSlot
from branchtale.choice_processing.validators import take_choice
from branchtale.lock import story_lock
from branchtale.session import open_session
from branchtale.story_store import AUTOSAVE_SLOT


logger = logging.getLogger(__name__)

PlayActionName = Literal["choose", "restart", "jump", "save", "load"]
PLAY_ACTIONS: frozenset[str] = frozenset(get_args(PlayActionName))


class SaveSlotNotFoundError(LookupError):
    pass


@dataclass(frozen=True, slots=True)
class PlayActionResult:
    view: PlaybackView
    saved: SaveSlot | None = None


def _index_field(payload: Mapping[str, Any], name: str = "index") -> int:
    raw = payload.get(name)
    if raw is None:
        raise ValueError(f"{name} is required")
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be an integer") from e


def _slot_field(payload: Mapping[str, Any]) -> str:
    return str(payload.get("slot") or AUTOSAVE_SLOT)


def dispatch_play_action(
    *,
    r: redis.Redis,
    story_id: UUID,
    action: PlayActionName,
    payload: Mapping[str, Any],
) -> PlayActionResult:
    """Entry point for every playback action coming from the UI.

    Applies an action by:
    - acquiring a per-story lock
    - opening the story session (which restores the autosave slot)
    - validating + applying the action on the playback engine
    - autosaving the resulting position
    """

    if action not in PLAY_ACTIONS:
        raise ValueError(f"Unknown action: {action}")

    sid = str(story_id)
    with story_lock(r=r, story_id=sid):
        session = open_session(kv=r, story_id=sid)
        engine = session.engine
        saved: SaveSlot | None = None

        if action == "choose":
            choice = take_choice(engine, _index_field(payload))
            logger.info("Story %s: took choice %r", sid, choice.text)

        elif action == "restart":
            engine.restart()

        elif action == "jump":
            index = _index_field(payload)
            if not engine.jump_to_history(index):
                raise ValueError(f"History index out of range: {index}")

        elif action == "save":
            saved = engine.save_game(_slot_field(payload))

        elif action == "load":
            slot = _slot_field(payload)
            if not engine.load_game(slot):
                raise SaveSlotNotFoundError(f"Save slot not found: {slot}")

        session.autosave()
        return PlayActionResult(view=engine.view(), saved=saved)
