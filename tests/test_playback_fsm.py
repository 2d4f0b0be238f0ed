from __future__ import annotations

from branchtale.api.models import Choice, Node, PlaybackStatus
from branchtale.fsm import PlaybackFSM


def test_sync_tracks_node_shape() -> None:
    fsm = PlaybackFSM()
    assert fsm.status == PlaybackStatus.playing

    assert fsm.sync(Node(id="end")) == PlaybackStatus.ended
    assert fsm.sync(None) == PlaybackStatus.stranded
    assert fsm.sync(Node(id="a", choices=[Choice(text="go")])) == PlaybackStatus.playing
    assert fsm.sync(Node(id="a", choices=[Choice(text="go")])) == PlaybackStatus.playing


def test_fsm_can_start_from_any_status() -> None:
    fsm = PlaybackFSM(PlaybackStatus.stranded)
    assert fsm.status == PlaybackStatus.stranded
    assert fsm.sync(None) == PlaybackStatus.stranded
    assert fsm.sync(Node(id="end")) == PlaybackStatus.ended
