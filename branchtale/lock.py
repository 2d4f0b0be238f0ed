from __future__ import annotations

import time
from contextlib import contextmanager

import redis


@contextmanager
def story_lock(*, r: redis.Redis, story_id: str, ttl_ms: int = 5_000):
    """Best-effort per-story lock around a read-modify-write of story state.

    Single-holder scaffolding: the key is released unconditionally, so it is
    not safe against a holder whose TTL already expired.
    """

    key = f"lock:story:{story_id}"
    acquired = r.set(key, "1", nx=True, px=ttl_ms)
    if not acquired:
        raise ValueError("Story is busy")
    try:
        yield
    finally:
        r.delete(key)
        time.sleep(0)
