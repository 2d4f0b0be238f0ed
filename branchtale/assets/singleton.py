from __future__ import annotations

from pathlib import Path

from branchtale.assets.registry import StoryAssets, load_story_assets


_ASSETS: StoryAssets | None = None


def init_assets(*, assets_dir: Path | None = None) -> StoryAssets:
    """Load assets once and cache them.

    Safe to call multiple times; subsequent calls return the already loaded instance.
    """

    global _ASSETS
    if _ASSETS is None:
        _ASSETS = load_story_assets(root=assets_dir)
    return _ASSETS


def reset_assets_for_tests() -> None:
    global _ASSETS
    _ASSETS = None


def get_assets() -> StoryAssets:
    if _ASSETS is None:
        raise RuntimeError("Assets not initialized. Call init_assets() at startup.")
    return _ASSETS
