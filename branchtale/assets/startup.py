from __future__ import annotations

import os
from pathlib import Path

from branchtale.assets.singleton import init_assets


def init_assets_for_app() -> None:
    # BRANCHTALE_ASSETS_DIR overrides the directory bundled with the package.
    override = os.environ.get("BRANCHTALE_ASSETS_DIR")
    init_assets(assets_dir=Path(override) if override else None)
