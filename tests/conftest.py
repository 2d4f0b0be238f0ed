from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import fakeredis
import pytest
from fastapi.testclient import TestClient

from branchtale.core.defaults import default_story_graph, default_variable_definitions
from branchtale.core.editor import StoryEditor
from branchtale.core.engine import PlaybackEngine
from branchtale.core.variables import VariableStore
from branchtale.story_store import StoryRepository


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs (e.g. BRANCHTALE_LOG_LEVEL=DEBUG).

    In CI we don't auto-load `.env` unless explicitly opted in with
    BRANCHTALE_LOAD_DOTENV_FOR_TESTS=1.
    """

    if os.environ.get("CI") and os.environ.get("BRANCHTALE_LOAD_DOTENV_FOR_TESTS") != "1":
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)


@pytest.fixture(scope="session", autouse=True)
def _init_assets() -> None:
    from branchtale.assets.singleton import init_assets, reset_assets_for_tests

    reset_assets_for_tests()
    init_assets()


@pytest.fixture()
def kv() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def repo(kv: fakeredis.FakeRedis) -> StoryRepository:
    return StoryRepository(kv, "test-story")


@pytest.fixture()
def store() -> VariableStore:
    return VariableStore(default_variable_definitions())


@pytest.fixture()
def editor(repo: StoryRepository, store: VariableStore) -> StoryEditor:
    return StoryEditor(repo=repo, store=store, graph=default_story_graph())


@pytest.fixture()
def engine(repo: StoryRepository, store: VariableStore) -> PlaybackEngine:
    return PlaybackEngine(store=store, repo=repo)


@pytest.fixture()
def client_and_redis() -> Generator[tuple[TestClient, fakeredis.FakeRedis], None, None]:
    """FastAPI TestClient wired to a fresh fakeredis instance."""

    from branchtale.api.deps import get_redis
    from branchtale.main import app

    r = fakeredis.FakeRedis(decode_responses=True)

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()


@pytest.fixture()
def client(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> TestClient:
    return client_and_redis[0]
