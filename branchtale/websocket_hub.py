from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket


logger = logging.getLogger(__name__)


class StoryWebSocketHub:
    """In-process WebSocket pub/sub keyed by story_id.

    Contract:
      - assign a connection to a story via `connect(story_id, websocket)`.
      - broadcast lightweight events with `broadcast(story_id, payload)`.

    Payloads should be JSON-serializable dicts. Connections that fail to
    receive a broadcast are dropped.
    """

    def __init__(self) -> None:
        self._by_story: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, story_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._by_story[story_id].add(websocket)

    async def disconnect(self, story_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            conns = self._by_story.get(story_id)
            if not conns:
                return
            conns.discard(websocket)
            if not conns:
                self._by_story.pop(story_id, None)

    async def broadcast(self, story_id: str, payload: dict[str, object]) -> None:
        async with self._lock:
            conns = list(self._by_story.get(story_id, set()))

        if not conns:
            return

        dead: list[WebSocket] = []
        for ws in conns:
            try:
                await ws.send_json(payload)
            except Exception:
                logger.debug("Dropping dead websocket for story %s", story_id, exc_info=True)
                dead.append(ws)

        if dead:
            async with self._lock:
                for ws in dead:
                    self._by_story.get(story_id, set()).discard(ws)

    async def story_updated(self, story_id: str) -> None:
        await self.broadcast(story_id, {"type": "story_updated", "story_id": story_id})


hub = StoryWebSocketHub()
