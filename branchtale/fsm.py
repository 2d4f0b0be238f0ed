from __future__ import annotations

from statemachine import State, StateMachine

from branchtale.api.models import Node, PlaybackStatus


class PlaybackFSM(StateMachine):
    """Tracks what kind of place the reader is currently at.

    - playing: the current node exists and offers choices
    - ended: the current node exists but has no choices
    - stranded: the current node id does not resolve (dangling `nextNode`)

    Purely descriptive: the engine keeps accepting calls in every state.
    """

    playing = State(PlaybackStatus.playing.value, value=PlaybackStatus.playing.value, initial=True)
    ended = State(PlaybackStatus.ended.value, value=PlaybackStatus.ended.value)
    stranded = State(PlaybackStatus.stranded.value, value=PlaybackStatus.stranded.value)

    reach_node = playing.to.itself() | ended.to(playing) | stranded.to(playing)
    reach_ending = playing.to(ended) | ended.to.itself() | stranded.to(ended)
    lose_node = playing.to(stranded) | ended.to(stranded) | stranded.to.itself()

    def __init__(self, status: PlaybackStatus = PlaybackStatus.playing):
        super().__init__(start_value=status.value)

    @property
    def status(self) -> PlaybackStatus:
        return PlaybackStatus(str(self.current_state.value))

    def sync(self, node: Node | None) -> PlaybackStatus:
        if node is None:
            self.lose_node()
        elif not node.choices:
            self.reach_ending()
        else:
            self.reach_node()
        return self.status
