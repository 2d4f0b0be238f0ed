from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any


DEMO_STORY_FILE = "demo_story.json"


class AssetLoadError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class StoryAssets:
    """Bundled content shipped alongside the runtime.

    `demo_story` is kept as raw import data (the same shape as an exported
    story file) so it goes through the regular import path.
    """

    demo_story: dict[str, Any]


def default_assets_dir() -> Path:
    return Path(__file__).resolve().parent


def _read_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise AssetLoadError(f"Missing asset file: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise AssetLoadError(f"Invalid JSON in {path.name}: {e}") from e
    if not isinstance(data, dict):
        raise AssetLoadError(f"{path.name} must contain a JSON object")
    return data


def load_story_assets(*, root: Path | None = None) -> StoryAssets:
    assets_dir = root or default_assets_dir()
    demo = _read_json(assets_dir / DEMO_STORY_FILE)
    if not isinstance(demo.get("nodes"), dict):
        raise AssetLoadError(f"{DEMO_STORY_FILE} has no 'nodes' mapping")
    return StoryAssets(demo_story=demo)
